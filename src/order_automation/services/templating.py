"""Placeholder substitution for status email templates.

The token set is closed: anything not listed in ``Placeholder`` is left as is.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from order_automation.config.constants import (
    CURRENCY_DECIMAL_PLACES,
    DEFAULT_CUSTOMER_NAME,
    NO_ITEMS_SUMMARY,
)
from order_automation.core.timezone import BUSINESS_TZ, format_date, format_time
from order_automation.models import Customer, Order, OrderItem, OrderStatusNote


class Placeholder(str, Enum):
    """Recognized template tokens."""

    ORDER_NUMBER = "{{ order_number }}"
    CUSTOMER_NAME = "{{ customer_name }}"
    CUSTOMER_EMAIL = "{{ customer_email }}"
    STATUS = "{{ status }}"
    NOTE = "{{ note }}"
    DATE = "{{ date }}"
    TIME = "{{ time }}"
    ORDER_SUMMARY = "{{ order_summary }}"


PLACEHOLDER_PATTERN = re.compile("|".join(re.escape(p.value) for p in Placeholder))


def format_order_summary(items: List[OrderItem]) -> str:
    """One line per item: ``sku (details) - Qty: n - $price``."""
    if not items:
        return NO_ITEMS_SUMMARY

    lines = []
    for item in items:
        details = f" ({item.details})" if item.details else ""
        price = f"{item.price or 0:.{CURRENCY_DECIMAL_PLACES}f}"
        lines.append(f"{item.sku or ''}{details} - Qty: {item.qty} - ${price}")
    return "\n".join(lines)


def build_substitutions(
    order: Order,
    customer: Optional[Customer],
    note: OrderStatusNote,
    items: List[OrderItem],
    now: datetime,
    tz: ZoneInfo = BUSINESS_TZ,
) -> Dict[Placeholder, str]:
    """Evaluate every placeholder once for a notification set."""
    return {
        Placeholder.ORDER_NUMBER: order.order_number or order.id,
        Placeholder.CUSTOMER_NAME: (customer.name if customer else None) or DEFAULT_CUSTOMER_NAME,
        Placeholder.CUSTOMER_EMAIL: (customer.email if customer else None) or "",
        Placeholder.STATUS: note.status,
        Placeholder.NOTE: note.content or "",
        Placeholder.DATE: format_date(now, tz),
        Placeholder.TIME: format_time(now, tz),
        Placeholder.ORDER_SUMMARY: format_order_summary(items),
    }


def render(template: Optional[str], substitutions: Dict[Placeholder, str]) -> str:
    """Replace every recognized token in one pass; substituted text is not rescanned."""
    if not template:
        return ""

    return PLACEHOLDER_PATTERN.sub(
        lambda match: substitutions.get(Placeholder(match.group(0)), match.group(0)),
        template,
    )
