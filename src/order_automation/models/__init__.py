"""Domain models exchanged between repositories and the automation engine."""

from .automation import (
    Customer,
    Order,
    OrderItem,
    OrderStatusNote,
    SendAttempt,
    StatusRule,
)

__all__ = [
    "Customer",
    "Order",
    "OrderItem",
    "OrderStatusNote",
    "SendAttempt",
    "StatusRule",
]
