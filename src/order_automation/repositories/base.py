"""Abstract repositories consumed by the automation engine.

This allows easy swapping between storage backends (PostgreSQL,
in-memory fakes for tests, etc.)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from order_automation.models import (
    Customer,
    Order,
    OrderItem,
    OrderStatusNote,
    SendAttempt,
    StatusRule,
)


class RuleRepository(ABC):
    """Read access to the status model (plus bulk replace for imports)."""

    @abstractmethod
    async def list_active_rules(self) -> List[StatusRule]:
        """Return rules with is_active = true, oldest first."""
        pass

    @abstractmethod
    async def replace_rules(self, rules: List[StatusRule]) -> int:
        """Replace the whole status model in one transaction.

        Returns:
            Number of rules stored
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage backend is accessible."""
        pass


class OrderLedgerRepository(ABC):
    """Orders, customers and the append-only status note ledger."""

    @abstractmethod
    async def latest_note(self, order_id: str) -> Optional[OrderStatusNote]:
        """Return the note with the greatest created_at, or None."""
        pass

    @abstractmethod
    async def orders_with_latest_status(self, status: str) -> List[Order]:
        """Return orders whose latest note has the given status.

        Orders that had the status earlier but have since moved on must
        not be returned.
        """
        pass

    @abstractmethod
    async def append_note(
        self,
        order_id: str,
        status: str,
        content: Optional[str],
        rule_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> OrderStatusNote:
        """Append a new status note. Never updates existing notes."""
        pass

    @abstractmethod
    async def get_customer(self, customer_id: str) -> Optional[Customer]:
        """Look up the customer referenced by an order."""
        pass

    @abstractmethod
    async def get_order_items(self, order_id: str) -> List[OrderItem]:
        """Get all line items for an order."""
        pass


class SendAttemptLog(ABC):
    """Persisted history of notification attempts."""

    @abstractmethod
    async def record_attempt(self, attempt: SendAttempt) -> str:
        """Insert a pending attempt and return its id."""
        pass

    @abstractmethod
    async def update_attempt(
        self,
        attempt_id: str,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Move an attempt to its terminal state."""
        pass

    @abstractmethod
    async def list_attempts(
        self, status: Optional[str] = None, limit: int = 50
    ) -> List[SendAttempt]:
        """Most recent attempts first, optionally filtered by status."""
        pass
