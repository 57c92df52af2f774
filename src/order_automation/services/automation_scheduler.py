"""
Automation Scheduler using APScheduler.

Runs the automation pass every ``interval_minutes``. Only one pass is in
flight at a time: a tick (or manual trigger) that arrives while a pass is
running is logged and skipped.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from order_automation.config.constants import DEFAULT_AUTOMATION_INTERVAL_MINUTES
from order_automation.core.logger import setup_logger
from order_automation.core.monitoring import capture_exception, set_automation_context
from order_automation.services.automation_service import AutomationResult, AutomationService

logger = setup_logger(__name__)

JOB_ID = "status_automation"


@dataclass
class SchedulerConfig:
    """Scheduling options passed in by the application factory."""
    enabled: bool = True
    interval_minutes: int = DEFAULT_AUTOMATION_INTERVAL_MINUTES
    run_on_start: bool = True

    @classmethod
    def from_settings(cls, settings) -> "SchedulerConfig":
        return cls(
            enabled=settings.automation_enabled,
            interval_minutes=settings.automation_interval_minutes,
            run_on_start=settings.automation_run_on_start,
        )


class AutomationScheduler:
    """Manages the periodic automation job."""

    def __init__(self, service: AutomationService, config: Optional[SchedulerConfig] = None):
        self.service = service
        self.config = config or SchedulerConfig()
        self.scheduler = AsyncIOScheduler()
        self._started = False
        self._pass_in_progress = False
        self._pass_count = 0
        self.last_result: Optional[AutomationResult] = None
        self.last_error: Optional[str] = None
        self.last_run_at: Optional[datetime] = None

    async def start(self):
        """Start scheduler with the automation job."""
        if self._started:
            logger.warning("Scheduler already started")
            return

        if not self.config.enabled:
            logger.info("Automation cron job is disabled")
            return

        job_options = {}
        if self.config.run_on_start:
            # An explicit None would add the job paused
            job_options["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            self._run_scheduled_pass,
            IntervalTrigger(minutes=self.config.interval_minutes),
            id=JOB_ID,
            name="Order Status Automation",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_options,
        )
        logger.info(f"Added automation job (every {self.config.interval_minutes} minute(s))")

        self.scheduler.start()
        self._started = True
        logger.info("Automation scheduler started")

    async def stop(self):
        """Gracefully stop scheduler."""
        if not self._started:
            return

        self.scheduler.shutdown(wait=False)
        self._started = False
        logger.info("Automation scheduler stopped")

    async def _run_scheduled_pass(self):
        await self.run_once(trigger="scheduled")

    async def run_once(self, trigger: str = "manual") -> Optional[AutomationResult]:
        """
        Run one automation pass unless one is already running.

        Args:
            trigger: What started the pass, for logs and error context

        Returns:
            The pass result, or None if skipped or failed at pass level
        """
        if self._pass_in_progress:
            logger.warning(f"Automation is already running, skipping this {trigger} execution")
            return None

        self._pass_in_progress = True
        self._pass_count += 1
        self.last_run_at = datetime.now(timezone.utc)
        set_automation_context(trigger, self._pass_count)

        try:
            logger.info(f"Automation pass triggered ({trigger})")
            result = await self.service.run_automation()
            self.last_result = result
            self.last_error = None
            if result.success:
                logger.info(f"Automation pass completed: {result.orders_processed} orders processed")
            else:
                logger.warning(f"Automation pass had issues: {result.errors[:5]}")
            return result
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Automation workflow failed: {e}", exc_info=True)
            capture_exception(e, {"trigger": trigger})
            return None
        finally:
            self._pass_in_progress = False

    def get_next_run_time(self) -> Optional[str]:
        """Next scheduled pass as a formatted string."""
        job = self.scheduler.get_job(JOB_ID)
        if job and job.next_run_time:
            return job.next_run_time.strftime("%Y-%m-%d %H:%M:%S")
        return None

    def get_status(self) -> dict:
        """Scheduler state for the status endpoint."""
        return {
            "scheduled": self.is_running,
            "pass_in_progress": self._pass_in_progress,
            "interval_minutes": self.config.interval_minutes,
            "next_run": self.get_next_run_time(),
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": asdict(self.last_result) if self.last_result else None,
            "last_error": self.last_error,
        }

    @property
    def pass_in_progress(self) -> bool:
        return self._pass_in_progress

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._started and self.scheduler.running
