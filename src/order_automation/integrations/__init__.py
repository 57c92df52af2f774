"""External integrations (email delivery)."""

from .email_dispatcher import (
    LoggingDispatcher,
    NotificationDispatcher,
    PostmarkDispatcher,
    build_dispatcher,
)

__all__ = ["LoggingDispatcher", "NotificationDispatcher", "PostmarkDispatcher", "build_dispatcher"]
