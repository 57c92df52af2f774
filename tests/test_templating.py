"""Placeholder substitution and order summaries."""
import re

from order_automation.models import Customer, Order, OrderItem, OrderStatusNote
from order_automation.services.templating import (
    Placeholder,
    build_substitutions,
    format_order_summary,
    render,
)

from .conftest import NOW

UNRESOLVED = re.compile(r"\{\{\s*\w+\s*\}\}")

ORDER = Order(id="ord-1234567890", customer_id="cust-1", order_number="1042")
CUSTOMER = Customer(id="cust-1", name="Jane Doe", email="jane@example.com")
NOTE = OrderStatusNote(
    order_id="ord-1234567890",
    status="Casting Received",
    content="Your casting arrived",
    created_at=NOW,
)
ITEMS = [
    OrderItem(sku="RING-01", details="Size 7", qty=1, price=1250.0),
    OrderItem(sku="CHAIN-02", details=None, qty=2, price=80.5),
]


def test_every_token_is_substituted():
    template = " | ".join(p.value for p in Placeholder)
    rendered = render(template, build_substitutions(ORDER, CUSTOMER, NOTE, ITEMS, NOW))

    assert UNRESOLVED.search(rendered) is None
    assert rendered == (
        "1042 | Jane Doe | jane@example.com | Casting Received | Your casting arrived"
        " | 10/14/2026 | 11:00:00"
        " | RING-01 (Size 7) - Qty: 1 - $1250.00\nCHAIN-02 - Qty: 2 - $80.50"
    )


def test_fallback_values():
    order = Order(id="ord-42", customer_id="cust-2")
    customer = Customer(id="cust-2")
    note = OrderStatusNote(order_id="ord-42", status="Item Shipped", created_at=NOW)

    subs = build_substitutions(order, customer, note, [], NOW)

    assert subs[Placeholder.ORDER_NUMBER] == "ord-42"
    assert subs[Placeholder.CUSTOMER_NAME] == "Valued Customer"
    assert subs[Placeholder.CUSTOMER_EMAIL] == ""
    assert subs[Placeholder.NOTE] == ""
    assert subs[Placeholder.ORDER_SUMMARY] == "No items found"


def test_subject_and_body_render_independently():
    subs = build_substitutions(ORDER, CUSTOMER, NOTE, ITEMS, NOW)
    assert render("Order #{{ order_number }}: {{ status }}", subs) == "Order #1042: Casting Received"
    assert render("Hi {{ customer_name }},\n{{ note }}", subs) == "Hi Jane Doe,\nYour casting arrived"


def test_unknown_tokens_are_left_alone():
    subs = build_substitutions(ORDER, CUSTOMER, NOTE, ITEMS, NOW)
    assert render("Track: {{ tracking_number }}", subs) == "Track: {{ tracking_number }}"


def test_empty_template_renders_empty():
    subs = build_substitutions(ORDER, CUSTOMER, NOTE, ITEMS, NOW)
    assert render(None, subs) == ""
    assert render("", subs) == ""


def test_order_summary_handles_missing_price():
    summary = format_order_summary([OrderItem(sku="GIFT-BOX", qty=1, price=None)])
    assert summary == "GIFT-BOX - Qty: 1 - $0.00"


def test_substituted_values_are_not_expanded_again():
    customer = Customer(id="cust-1", name="{{ order_summary }}", email="jane@example.com")
    note = NOTE.model_copy(update={"content": "Ref {{ customer_email }}"})
    subs = build_substitutions(ORDER, customer, note, ITEMS, NOW)

    rendered = render("Hi {{ customer_name }}: {{ note }}", subs)

    assert rendered == "Hi {{ order_summary }}: Ref {{ customer_email }}"
