"""
Pytest configuration and shared in-memory collaborators for automation tests.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

# Keep JSON log files out of the working tree
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "order_automation_test_logs"))

import pytest

from order_automation.core.exceptions import DispatchError
from order_automation.integrations.email_dispatcher import NotificationDispatcher
from order_automation.models import (
    Customer,
    Order,
    OrderItem,
    OrderStatusNote,
    SendAttempt,
    StatusRule,
)
from order_automation.repositories.base import (
    OrderLedgerRepository,
    RuleRepository,
    SendAttemptLog,
)
from order_automation.services.automation_service import AutomationConfig

# Wednesday 2026-10-14 11:00 in New York
NOW = datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)
# Friday 2026-10-09: three business days before NOW
THREE_BUSINESS_DAYS_AGO = datetime(2026, 10, 9, 15, 0, tzinfo=timezone.utc)


class InMemoryRuleRepository(RuleRepository):
    def __init__(self, rules: Optional[List[StatusRule]] = None):
        self.rules = list(rules or [])
        self.fail = False

    async def list_active_rules(self) -> List[StatusRule]:
        if self.fail:
            raise ConnectionError("rule store unreachable")
        return [rule for rule in self.rules if rule.is_active]

    async def replace_rules(self, rules: List[StatusRule]) -> int:
        self.rules = list(rules)
        return len(rules)

    async def health_check(self) -> bool:
        return True


class InMemoryLedger(OrderLedgerRepository):
    """Latest-only ledger backed by plain lists."""

    def __init__(self):
        self.orders: Dict[str, Order] = {}
        self.customers: Dict[str, Customer] = {}
        self.items: Dict[str, List[OrderItem]] = {}
        self.notes: List[OrderStatusNote] = []
        self.failing_statuses = set()
        self.failing_appends = set()
        self._next_note_id = 1

    def add_order(
        self,
        order_id: str,
        customer: Optional[Customer] = None,
        order_number: Optional[str] = None,
        items: Optional[List[OrderItem]] = None,
    ) -> Order:
        customer = customer or Customer(id=f"cust-{order_id}", name="Jane Doe", email="jane@example.com")
        self.customers[customer.id] = customer
        order = Order(id=order_id, customer_id=customer.id, order_number=order_number)
        self.orders[order_id] = order
        self.items[order_id] = list(items or [])
        return order

    def add_note(self, order_id: str, status: str, created_at: datetime, content: Optional[str] = None):
        note = OrderStatusNote(
            id=self._next_note_id,
            order_id=order_id,
            status=status,
            content=content,
            created_at=created_at,
        )
        self._next_note_id += 1
        self.notes.append(note)
        return note

    def notes_for(self, order_id: str) -> List[OrderStatusNote]:
        return [note for note in self.notes if note.order_id == order_id]

    async def latest_note(self, order_id: str) -> Optional[OrderStatusNote]:
        notes = self.notes_for(order_id)
        if not notes:
            return None
        return max(notes, key=lambda note: (note.created_at, note.id))

    async def orders_with_latest_status(self, status: str) -> List[Order]:
        if status in self.failing_statuses:
            raise ConnectionError(f"query for {status} failed")
        matches = []
        for order in self.orders.values():
            latest = await self.latest_note(order.id)
            if latest and latest.status == status:
                matches.append(order)
        return matches

    async def append_note(self, order_id, status, content, rule_id=None, created_at=None):
        if order_id in self.failing_appends:
            raise ConnectionError("insert failed")
        note = self.add_note(order_id, status, created_at or NOW, content)
        note.is_automated = rule_id is not None
        note.triggered_by_rule_id = rule_id
        return note

    async def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self.customers.get(customer_id)

    async def get_order_items(self, order_id: str) -> List[OrderItem]:
        return list(self.items.get(order_id, []))


class AnyNoteLedger(InMemoryLedger):
    """Returns orders with ANY note in the status, like a stale candidate query."""

    async def orders_with_latest_status(self, status: str) -> List[Order]:
        order_ids = {note.order_id for note in self.notes if note.status == status}
        return [self.orders[order_id] for order_id in sorted(order_ids)]


class InMemoryAttemptLog(SendAttemptLog):
    def __init__(self):
        self.attempts: Dict[str, SendAttempt] = {}
        self.fail_record = False

    async def record_attempt(self, attempt: SendAttempt) -> str:
        if self.fail_record:
            raise ConnectionError("email_logs unavailable")
        attempt_id = f"log-{len(self.attempts) + 1}"
        self.attempts[attempt_id] = attempt.model_copy(update={"id": attempt_id})
        return attempt_id

    async def update_attempt(self, attempt_id, status, provider_message_id=None, error_message=None):
        self.attempts[attempt_id] = self.attempts[attempt_id].model_copy(
            update={
                "status": status,
                "provider_message_id": provider_message_id,
                "error_message": error_message,
            }
        )

    async def list_attempts(self, status=None, limit=50) -> List[SendAttempt]:
        attempts = [a for a in self.attempts.values() if status is None or a.status == status]
        return attempts[:limit]


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, failing_recipients=()):
        self.sent = []
        self.failing_recipients = set(failing_recipients)

    async def send(self, to: str, subject: str, body: str) -> str:
        if to in self.failing_recipients:
            raise DispatchError(f"mailbox unavailable: {to}")
        self.sent.append({"to": to, "subject": subject, "body": body})
        return f"msg-{len(self.sent)}"


def make_rule(**overrides) -> StatusRule:
    data = {
        "id": "rule-casting",
        "trigger_status": "Casting Order",
        "target_status": "Casting Received",
        "wait_business_days": 2,
        "description": "Casting received from the workshop",
    }
    data.update(overrides)
    return StatusRule(**data)


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def attempt_log():
    return InMemoryAttemptLog()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def fast_config():
    return AutomationConfig(
        rule_concurrency=10,
        order_batch_size=50,
        rule_chunk_delay_seconds=0,
        order_batch_delay_seconds=0,
    )


@pytest.fixture
def clock():
    return lambda: NOW


def days_before(dt: datetime, days: int) -> datetime:
    return dt - timedelta(days=days)
