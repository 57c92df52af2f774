"""PostgreSQL repository implementations (SQLAlchemy async).

Each operation opens its own session from the factory, so repositories can be
shared by tasks running concurrently within one automation pass.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import and_, delete, func, select, text, update

from order_automation.config.constants import SEND_STATUS_SENT
from order_automation.core.logger import setup_logger
from order_automation.db.models import (
    CustomerRecord,
    EmailLogRecord,
    OrderItemRecord,
    OrderRecord,
    OrderStatusNoteRecord,
    StatusRuleRecord,
)
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

logger = setup_logger(__name__)


def _to_rule(record: StatusRuleRecord) -> StatusRule:
    return StatusRule(
        id=record.id,
        trigger_status=record.status,
        target_status=record.new_status,
        wait_business_days=record.wait_time_business_days or 0,
        description=record.description,
        customer_email_subject=record.email_subject,
        customer_email_body=record.email_custom_message,
        internal_recipient=record.private_email,
        additional_recipients=list(record.additional_recipients or []),
        is_active=bool(record.is_active),
    )


def _to_order(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        customer_id=record.customer_id,
        order_number=record.shopify_order_number,
    )


def _to_attempt(record: EmailLogRecord) -> SendAttempt:
    return SendAttempt(
        id=record.id,
        order_id=record.order_id,
        status_rule_id=record.status_rule_id,
        email_type=record.email_type,
        recipient=record.recipient_email,
        subject=record.subject,
        message=record.message,
        status=record.status,
        error_message=record.error_message,
        provider_message_id=record.provider_message_id,
        created_at=record.created_at,
        sent_at=record.sent_at,
    )


class PostgresRuleRepository(RuleRepository):
    """Status model stored in the statuses_model table."""

    def __init__(self, session_factory):
        """Initialize repository.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self._session_factory = session_factory

    async def list_active_rules(self) -> List[StatusRule]:
        query = (
            select(StatusRuleRecord)
            .where(StatusRuleRecord.is_active.is_(True))
            .order_by(StatusRuleRecord.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_rule(record) for record in result.scalars().all()]

    async def replace_rules(self, rules: List[StatusRule]) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(StatusRuleRecord))
                session.add_all(
                    [
                        StatusRuleRecord(
                            id=rule.id,
                            status=rule.trigger_status,
                            new_status=rule.target_status,
                            wait_time_business_days=rule.wait_business_days,
                            description=rule.description,
                            private_email=rule.internal_recipient,
                            email_subject=rule.customer_email_subject,
                            email_custom_message=rule.customer_email_body,
                            additional_recipients=list(rule.additional_recipients),
                            is_active=rule.is_active,
                        )
                        for rule in rules
                    ]
                )
        logger.info(f"Replaced status model with {len(rules)} rules")
        return len(rules)

    async def health_check(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


class PostgresOrderLedger(OrderLedgerRepository):
    """Orders, customers and order_customer_notes."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def latest_note(self, order_id: str) -> Optional[OrderStatusNote]:
        query = (
            select(OrderStatusNoteRecord)
            .where(OrderStatusNoteRecord.order_id == order_id)
            .order_by(
                OrderStatusNoteRecord.created_at.desc(),
                OrderStatusNoteRecord.id.desc(),
            )
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            record = result.scalars().first()
            return OrderStatusNote.model_validate(record) if record else None

    async def orders_with_latest_status(self, status: str) -> List[Order]:
        """Latest-only lookup: join each order's newest note and filter on it."""
        latest = (
            select(
                OrderStatusNoteRecord.order_id.label("order_id"),
                func.max(OrderStatusNoteRecord.created_at).label("latest_at"),
            )
            .group_by(OrderStatusNoteRecord.order_id)
            .subquery()
        )
        query = (
            select(OrderRecord)
            .join(latest, latest.c.order_id == OrderRecord.id)
            .join(
                OrderStatusNoteRecord,
                and_(
                    OrderStatusNoteRecord.order_id == latest.c.order_id,
                    OrderStatusNoteRecord.created_at == latest.c.latest_at,
                ),
            )
            .where(OrderStatusNoteRecord.status == status)
            .distinct()
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_order(record) for record in result.scalars().all()]

    async def append_note(
        self,
        order_id: str,
        status: str,
        content: Optional[str],
        rule_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> OrderStatusNote:
        record = OrderStatusNoteRecord(
            order_id=order_id,
            status=status,
            content=content,
            is_automated=rule_id is not None,
            triggered_by_rule_id=rule_id,
            created_at=created_at or datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return OrderStatusNote.model_validate(record)

    async def get_customer(self, customer_id: str) -> Optional[Customer]:
        async with self._session_factory() as session:
            record = await session.get(CustomerRecord, customer_id)
            return Customer.model_validate(record) if record else None

    async def get_order_items(self, order_id: str) -> List[OrderItem]:
        query = (
            select(OrderItemRecord)
            .where(OrderItemRecord.order_id == order_id)
            .order_by(OrderItemRecord.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [OrderItem.model_validate(record) for record in result.scalars().all()]


class PostgresSendAttemptLog(SendAttemptLog):
    """Notification attempts stored in the email_logs table."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def record_attempt(self, attempt: SendAttempt) -> str:
        record = EmailLogRecord(
            order_id=attempt.order_id,
            status_rule_id=attempt.status_rule_id,
            email_type=attempt.email_type,
            recipient_email=attempt.recipient,
            subject=attempt.subject,
            message=attempt.message,
            status=attempt.status,
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
            return record.id

    async def update_attempt(
        self,
        attempt_id: str,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        values = {
            "status": status,
            "provider_message_id": provider_message_id,
            "error_message": error_message,
        }
        if status == SEND_STATUS_SENT:
            values["sent_at"] = datetime.now(timezone.utc)

        stmt = update(EmailLogRecord).where(EmailLogRecord.id == attempt_id).values(**values)
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def list_attempts(
        self, status: Optional[str] = None, limit: int = 50
    ) -> List[SendAttempt]:
        query = select(EmailLogRecord).order_by(EmailLogRecord.created_at.desc()).limit(limit)
        if status:
            query = query.where(EmailLogRecord.status == status)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_attempt(record) for record in result.scalars().all()]
