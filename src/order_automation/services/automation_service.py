"""
Status Automation Service.

Advances orders through fulfillment statuses using the configured status model.
One pass:
1. Load active rules
2. Per rule, find orders whose LATEST note has the rule's trigger status
3. Gate each order on business days elapsed since that note
4. Append the target status note, then send the rule's notifications

Rules and orders are processed in bounded parallel chunks. Correctness does not
depend on ordering: every order re-reads its latest note before transitioning,
and transitions are appended, never written in place.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from order_automation.config.constants import (
    DEFAULT_BUSINESS_TIMEZONE,
    DEFAULT_ORDER_BATCH_DELAY_SECONDS,
    DEFAULT_ORDER_BATCH_SIZE,
    DEFAULT_RULE_CHUNK_DELAY_SECONDS,
    DEFAULT_RULE_CONCURRENCY,
    MAX_RESULT_ERRORS,
    SEND_STATUS_FAILED,
    SEND_STATUS_PENDING,
    SEND_STATUS_SENT,
)
from order_automation.core.business_days import calculate_business_days
from order_automation.core.exceptions import AutomationConfigError, RuleStoreError
from order_automation.core.logger import setup_logger
from order_automation.core.monitoring import capture_exception
from order_automation.core.timezone import now_utc
from order_automation.integrations.email_dispatcher import NotificationDispatcher
from order_automation.models import Order, OrderStatusNote, SendAttempt, StatusRule
from order_automation.repositories.base import (
    OrderLedgerRepository,
    RuleRepository,
    SendAttemptLog,
)
from order_automation.services.notifications import NotificationRequest, plan_notifications

logger = setup_logger(__name__)

T = TypeVar("T")


@dataclass
class AutomationConfig:
    """Concurrency and calendar settings for the engine."""
    rule_concurrency: int = DEFAULT_RULE_CONCURRENCY
    order_batch_size: int = DEFAULT_ORDER_BATCH_SIZE
    rule_chunk_delay_seconds: float = DEFAULT_RULE_CHUNK_DELAY_SECONDS
    order_batch_delay_seconds: float = DEFAULT_ORDER_BATCH_DELAY_SECONDS
    business_timezone: str = DEFAULT_BUSINESS_TIMEZONE

    def __post_init__(self):
        if self.rule_concurrency < 1 or self.order_batch_size < 1:
            raise AutomationConfigError("rule_concurrency and order_batch_size must be >= 1")
        if self.rule_chunk_delay_seconds < 0 or self.order_batch_delay_seconds < 0:
            raise AutomationConfigError("chunk delays cannot be negative")
        try:
            self.tz = ZoneInfo(self.business_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise AutomationConfigError(
                f"Unknown business timezone: {self.business_timezone}"
            ) from e

    @classmethod
    def from_settings(cls, settings) -> "AutomationConfig":
        """Build engine configuration from application settings."""
        return cls(
            rule_concurrency=settings.automation_rule_concurrency,
            order_batch_size=settings.automation_order_batch_size,
            rule_chunk_delay_seconds=settings.automation_rule_chunk_delay_seconds,
            order_batch_delay_seconds=settings.automation_order_batch_delay_seconds,
            business_timezone=settings.business_timezone,
        )


@dataclass
class AutomationResult:
    """Result of one automation pass."""
    pass_id: str
    started_at: float
    completed_at: float
    rules_evaluated: int = 0
    rules_failed: int = 0
    orders_matched: int = 0
    orders_processed: int = 0
    orders_skipped: int = 0
    orders_failed: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = True


class OrderOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class OrderReport:
    outcome: OrderOutcome
    notifications_sent: int = 0
    notifications_failed: int = 0
    error: Optional[str] = None


@dataclass
class RuleReport:
    rule_id: str
    orders_matched: int = 0
    order_reports: List[OrderReport] = field(default_factory=list)
    error: Optional[str] = None


def chunked(items: Sequence[T], size: int) -> List[Sequence[T]]:
    """Split a sequence into consecutive chunks of at most ``size`` items."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class AutomationService:
    """Runs the status model against the order ledger."""

    def __init__(
        self,
        rule_repository: RuleRepository,
        ledger: OrderLedgerRepository,
        attempt_log: SendAttemptLog,
        dispatcher: NotificationDispatcher,
        config: Optional[AutomationConfig] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        """
        Initialize automation service.

        Args:
            rule_repository: Source of active status rules
            ledger: Orders, customers and status notes
            attempt_log: Persisted log of email attempts
            dispatcher: Email provider abstraction
            config: Concurrency and calendar settings
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.rule_repository = rule_repository
        self.ledger = ledger
        self.attempt_log = attempt_log
        self.dispatcher = dispatcher
        self.config = config or AutomationConfig()
        self.clock = clock

    async def run_automation(self) -> AutomationResult:
        """
        Run one automation pass across all active rules.

        Rule and order failures are isolated and counted on the result.

        Raises:
            RuleStoreError: If the active rules cannot be loaded
        """
        result = AutomationResult(
            pass_id=uuid.uuid4().hex[:8],
            started_at=time.time(),
            completed_at=0.0,
        )
        logger.info(f"Starting automation pass {result.pass_id}", extra={"pass_id": result.pass_id})

        try:
            rules = await self.rule_repository.list_active_rules()
        except Exception as e:
            logger.error(f"Failed to fetch status rules: {e}", exc_info=True)
            raise RuleStoreError(f"Failed to fetch status rules: {e}") from e

        logger.info(f"Found {len(rules)} active status rules")
        if not rules:
            logger.info("No active rules found, skipping automation")
            result.completed_at = time.time()
            return result

        chunks = chunked(rules, self.config.rule_concurrency)
        for index, chunk in enumerate(chunks):
            reports = await asyncio.gather(*(self._process_rule(rule) for rule in chunk))
            for report in reports:
                self._merge_rule_report(result, report)

            # Small delay between chunks to avoid overwhelming the database
            if index < len(chunks) - 1 and self.config.rule_chunk_delay_seconds:
                await asyncio.sleep(self.config.rule_chunk_delay_seconds)

        result.completed_at = time.time()
        result.success = result.rules_failed == 0 and result.orders_failed == 0

        logger.info(
            f"Automation pass {result.pass_id} completed in "
            f"{result.completed_at - result.started_at:.2f}s: "
            f"{result.orders_processed}/{result.orders_matched} processed, "
            f"{result.orders_skipped} skipped, {result.orders_failed} failed, "
            f"{result.notifications_sent} emails sent, {result.notifications_failed} emails failed",
            extra={"pass_id": result.pass_id},
        )
        return result

    def _merge_rule_report(self, result: AutomationResult, report: RuleReport):
        result.rules_evaluated += 1
        result.orders_matched += report.orders_matched
        errors = []

        if report.error:
            result.rules_failed += 1
            errors.append(report.error)

        for order_report in report.order_reports:
            if order_report.outcome == OrderOutcome.PROCESSED:
                result.orders_processed += 1
            elif order_report.outcome == OrderOutcome.SKIPPED:
                result.orders_skipped += 1
            else:
                result.orders_failed += 1
                errors.append(order_report.error)
            result.notifications_sent += order_report.notifications_sent
            result.notifications_failed += order_report.notifications_failed

        room = MAX_RESULT_ERRORS - len(result.errors)
        if room > 0:
            result.errors.extend(errors[:room])

    async def _process_rule(self, rule: StatusRule) -> RuleReport:
        """Evaluate one rule; a failure here abandons only this rule."""
        report = RuleReport(rule_id=rule.id)
        log_extra = {"rule_id": rule.id}

        try:
            logger.info(
                f"Processing rule: {rule.trigger_status} -> {rule.target_status}",
                extra=log_extra,
            )
            orders = await self.ledger.orders_with_latest_status(rule.trigger_status)
        except Exception as e:
            error_msg = f"Failed to process rule {rule.id}: {e}"
            logger.error(error_msg, exc_info=True, extra=log_extra)
            capture_exception(e, {"rule_id": rule.id})
            report.error = error_msg
            return report

        report.orders_matched = len(orders)
        logger.info(
            f"Found {len(orders)} orders with latest status '{rule.trigger_status}'",
            extra=log_extra,
        )

        batches = chunked(orders, self.config.order_batch_size)
        for index, batch in enumerate(batches):
            reports = await asyncio.gather(
                *(self._process_order(order, rule) for order in batch)
            )
            report.order_reports.extend(reports)

            if index < len(batches) - 1 and self.config.order_batch_delay_seconds:
                await asyncio.sleep(self.config.order_batch_delay_seconds)

        return report

    def is_due(self, note: OrderStatusNote, rule: StatusRule, now: datetime) -> bool:
        """Wait-time gate. Zero-wait rules are due without any elapsed-time check."""
        if rule.wait_business_days == 0:
            return True

        elapsed = calculate_business_days(note.created_at, now, self.config.tz)
        logger.debug(
            f"Timing check for order {note.order_id}: {elapsed} business days elapsed, "
            f"{rule.wait_business_days} required",
            extra={"order_id": note.order_id, "rule_id": rule.id},
        )
        return elapsed >= rule.wait_business_days

    async def _process_order(self, order: Order, rule: StatusRule) -> OrderReport:
        """Gate, transition and notify one order; failures stay with this order."""
        log_extra = {"order_id": order.id, "rule_id": rule.id}

        try:
            latest = await self.ledger.latest_note(order.id)

            if latest is None:
                logger.warning(f"No status notes found for order {order.id}", extra=log_extra)
                return OrderReport(OrderOutcome.SKIPPED)

            if latest.status == rule.target_status:
                logger.debug(f"Order {order.id} already at '{rule.target_status}'", extra=log_extra)
                return OrderReport(OrderOutcome.SKIPPED)

            if latest.status != rule.trigger_status:
                # Moved on since the candidate query ran
                return OrderReport(OrderOutcome.SKIPPED)

            now = self.clock()
            if not self.is_due(latest, rule, now):
                logger.debug(f"Order {order.id} not ready for processing yet", extra=log_extra)
                return OrderReport(OrderOutcome.SKIPPED)

            customer = await self.ledger.get_customer(order.customer_id)
            if customer is None:
                raise LookupError(f"Customer {order.customer_id} not found")

            items = []
            if rule.has_customer_template:
                items = await self.ledger.get_order_items(order.id)

            new_note = await self.apply_transition(order.id, rule)

        except Exception as e:
            error_msg = f"Failed to process order {order.id} for rule {rule.id}: {e}"
            logger.error(error_msg, exc_info=True, extra=log_extra)
            capture_exception(e, {"order_id": order.id, "rule_id": rule.id})
            return OrderReport(OrderOutcome.FAILED, error=error_msg)

        requests = plan_notifications(order, customer, rule, new_note, items, now, self.config.tz)
        sent, failed = await self._send_notifications(order, rule, requests)

        logger.info(
            f"Successfully processed status transition for order {order.id}: "
            f"{rule.trigger_status} -> {rule.target_status} ({sent} sent, {failed} failed)",
            extra=log_extra,
        )
        return OrderReport(OrderOutcome.PROCESSED, notifications_sent=sent, notifications_failed=failed)

    async def apply_transition(self, order_id: str, rule: StatusRule) -> OrderStatusNote:
        """Append the rule's target status to the ledger."""
        return await self.ledger.append_note(
            order_id,
            rule.target_status,
            rule.description,
            rule_id=rule.id,
            created_at=self.clock(),
        )

    async def _send_notifications(
        self,
        order: Order,
        rule: StatusRule,
        requests: List[NotificationRequest],
    ) -> Tuple[int, int]:
        if not requests:
            return 0, 0

        outcomes = await asyncio.gather(
            *(self._dispatch(order.id, rule.id, request) for request in requests)
        )
        sent = sum(1 for ok in outcomes if ok)
        return sent, len(outcomes) - sent

    async def _dispatch(self, order_id: str, rule_id: str, request: NotificationRequest) -> bool:
        """Log, send and finalize one email. Never raises."""
        log_extra = {
            "order_id": order_id,
            "rule_id": rule_id,
            "email_type": request.email_type,
            "recipient": request.recipient,
        }

        attempt_id = None
        try:
            attempt_id = await self.attempt_log.record_attempt(
                SendAttempt(
                    order_id=order_id,
                    status_rule_id=rule_id,
                    email_type=request.email_type,
                    recipient=request.recipient,
                    subject=request.subject,
                    message=request.message,
                    status=SEND_STATUS_PENDING,
                )
            )
        except Exception as e:
            # Attempt logging is best effort; still send
            logger.error(f"Failed to log email attempt: {e}", extra=log_extra)

        try:
            message_id = await self.dispatcher.send(
                request.recipient, request.subject, request.message
            )
        except Exception as e:
            logger.error(f"Failed to send email to {request.recipient}: {e}", extra=log_extra)
            await self._finish_attempt(attempt_id, SEND_STATUS_FAILED, error_message=str(e))
            return False

        logger.info(f"Email sent successfully to {request.recipient}", extra=log_extra)
        await self._finish_attempt(attempt_id, SEND_STATUS_SENT, provider_message_id=message_id)
        return True

    async def _finish_attempt(self, attempt_id: Optional[str], status: str, **fields):
        if attempt_id is None:
            return
        try:
            await self.attempt_log.update_attempt(attempt_id, status, **fields)
        except Exception as e:
            logger.error(f"Failed to update email attempt {attempt_id} to {status}: {e}")
