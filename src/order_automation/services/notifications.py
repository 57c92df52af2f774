"""
Notification planning for a status transition.

Routing policy (one per rule, never both):
- internal_recipient set: the internal address gets a fixed-format summary
  and the customer is NOT emailed directly.
- internal_recipient not set: the customer gets the rendered template when
  both subject and body exist and the customer has an email.
Additional recipients get the rendered template whenever it exists.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from order_automation.config.constants import (
    EMAIL_TYPE_ADDITIONAL,
    EMAIL_TYPE_CUSTOMER,
    EMAIL_TYPE_PRIVATE,
    NO_CUSTOMER_EMAIL,
    UNKNOWN_CUSTOMER_NAME,
)
from order_automation.core.timezone import BUSINESS_TZ, format_datetime
from order_automation.models import Customer, Order, OrderItem, OrderStatusNote, StatusRule
from order_automation.services.templating import build_substitutions, render


@dataclass
class NotificationRequest:
    """One email to dispatch and log."""
    email_type: str
    recipient: str
    subject: str
    message: str


def display_order_number(order: Order) -> str:
    """Human-facing number, or the tail of the internal id."""
    return order.order_number or order.id[-8:].upper()


def build_internal_notification(
    order: Order,
    customer: Optional[Customer],
    rule: StatusRule,
    note: OrderStatusNote,
    now: datetime,
    tz: ZoneInfo = BUSINESS_TZ,
) -> NotificationRequest:
    """Fixed-format summary for the rule's internal recipient."""
    order_number = display_order_number(order)
    customer_name = (customer.name if customer else None) or UNKNOWN_CUSTOMER_NAME
    customer_email = (customer.email if customer else None) or NO_CUSTOMER_EMAIL

    subject = f"Order Update: #{order_number} - {rule.trigger_status} -> {note.status}"

    lines = [
        "Order Update Notification",
        "",
        f"Order #{order_number} has been updated:",
        f"- From: {rule.trigger_status}",
        f"- To: {note.status}",
        f"- Customer: {customer_name} ({customer_email})",
        f"- Wait Time: {rule.wait_business_days} business days",
        f"- Updated: {format_datetime(now, tz)}",
    ]
    if rule.description:
        lines.extend(["", f"Description: {rule.description}"])
    lines.extend(["", "This is an automated notification from the order management system."])

    return NotificationRequest(
        email_type=EMAIL_TYPE_PRIVATE,
        recipient=rule.internal_recipient,
        subject=subject,
        message="\n".join(lines),
    )


def plan_notifications(
    order: Order,
    customer: Optional[Customer],
    rule: StatusRule,
    note: OrderStatusNote,
    items: List[OrderItem],
    now: datetime,
    tz: ZoneInfo = BUSINESS_TZ,
) -> List[NotificationRequest]:
    """Build the ordered list of notifications for one transition."""
    requests: List[NotificationRequest] = []

    has_template = rule.has_customer_template
    subject = message = ""
    if has_template:
        substitutions = build_substitutions(order, customer, note, items, now, tz)
        subject = render(rule.customer_email_subject, substitutions)
        message = render(rule.customer_email_body, substitutions)

    if has_template and customer and customer.email and not rule.internal_recipient:
        requests.append(
            NotificationRequest(EMAIL_TYPE_CUSTOMER, customer.email, subject, message)
        )

    if rule.internal_recipient:
        requests.append(build_internal_notification(order, customer, rule, note, now, tz))

    if has_template:
        for recipient in rule.additional_recipients:
            if recipient:
                requests.append(
                    NotificationRequest(EMAIL_TYPE_ADDITIONAL, recipient, subject, message)
                )

    return requests
