"""Database module."""

from .base import Base, get_engine, get_session_factory, init_db
from .models import (
    CustomerRecord,
    EmailLogRecord,
    OrderItemRecord,
    OrderRecord,
    OrderStatusNoteRecord,
    StatusRuleRecord,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "CustomerRecord",
    "EmailLogRecord",
    "OrderItemRecord",
    "OrderRecord",
    "OrderStatusNoteRecord",
    "StatusRuleRecord",
]
