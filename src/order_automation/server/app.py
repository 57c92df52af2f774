"""Automation FastAPI application."""

import logging

import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from order_automation.config.settings import Settings, settings as default_settings
from order_automation.core.exceptions import AutomationConfigError
from order_automation.core.logger import setup_logger
from order_automation.db import get_engine, get_session_factory, init_db
from order_automation.integrations.email_dispatcher import build_dispatcher
from order_automation.repositories.postgres_repository import (
    PostgresOrderLedger,
    PostgresRuleRepository,
    PostgresSendAttemptLog,
)
from order_automation.server.routes import router, set_services
from order_automation.services.automation_scheduler import AutomationScheduler, SchedulerConfig
from order_automation.services.automation_service import AutomationConfig, AutomationService
from order_automation.services.status_model_import import (
    GoogleSheetsStatusModelSource,
    StatusModelImporter,
)

logger = setup_logger(__name__)


def init_monitoring(settings: Settings):
    """Initialize GlitchTip error monitoring when a DSN is configured."""
    if not settings.glitchtip_dsn:
        return

    try:
        sentry_sdk.init(
            dsn=settings.glitchtip_dsn,
            environment=settings.environment,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(
                    level=None,  # Capture all log levels as breadcrumbs
                    event_level=logging.ERROR  # Send ERROR logs as events
                ),
            ],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.0,
            send_default_pii=False,
        )
        logger.info("GlitchTip error monitoring initialized")
    except Exception as e:
        logger.error(f"Failed to initialize GlitchTip: {e}")


def create_app(settings: Settings = default_settings) -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Order Status Automation",
        description="Advances orders through fulfillment statuses and sends notifications",
        version="1.0.0"
    )

    init_monitoring(settings)

    @app.on_event("startup")
    async def startup():
        """Initialize repositories, engine and scheduler on startup.

        Steps:
        1. Connect to the database and create missing tables
        2. Initialize repositories and email dispatcher
        3. Initialize automation engine and scheduler
        4. Initialize status model importer (if a sheet is configured)
        """
        try:
            logger.info("=" * 60)
            logger.info("Starting Order Status Automation...")
            logger.info("=" * 60)

            if not settings.database_url:
                logger.error("DATABASE_URL not set in environment variables!")
                raise AutomationConfigError("DATABASE_URL is required")

            engine = get_engine(settings.database_url)
            await init_db(engine)
            session_factory = get_session_factory(engine)
            app.state.engine = engine
            logger.info("✓ Database initialized")

            rule_repository = PostgresRuleRepository(session_factory)
            ledger = PostgresOrderLedger(session_factory)
            attempt_log = PostgresSendAttemptLog(session_factory)
            dispatcher = build_dispatcher(settings)
            logger.info("✓ Repositories and email dispatcher initialized")

            service = AutomationService(
                rule_repository=rule_repository,
                ledger=ledger,
                attempt_log=attempt_log,
                dispatcher=dispatcher,
                config=AutomationConfig.from_settings(settings),
            )
            scheduler = AutomationScheduler(service, SchedulerConfig.from_settings(settings))
            logger.info("✓ Automation service initialized")

            importer = None
            if settings.status_model_spreadsheet_id:
                importer = StatusModelImporter(
                    source=GoogleSheetsStatusModelSource(
                        credentials_path=settings.google_credentials_path,
                        spreadsheet_id=settings.status_model_spreadsheet_id,
                        sheet_name=settings.status_model_sheet_name,
                    ),
                    rule_repository=rule_repository,
                )
                logger.info("✓ Status model importer initialized")

            set_services(scheduler, rule_repository, attempt_log, importer, dispatcher)
            app.state.scheduler = scheduler

            await scheduler.start()

            logger.info("=" * 60)
            logger.info("Order Status Automation started successfully!")
            if settings.automation_enabled:
                logger.info(f"Automation interval: {settings.automation_interval_minutes} minute(s)")
            else:
                logger.info("Automation scheduling disabled (manual runs only)")
            logger.info("=" * 60)

        except Exception as e:
            logger.error(f"Failed to start automation service: {e}", exc_info=True)
            raise

    @app.on_event("shutdown")
    async def shutdown():
        """Graceful shutdown: stop the scheduler and close the database pool."""
        logger.info("Shutting down Order Status Automation...")

        if hasattr(app.state, "scheduler"):
            await app.state.scheduler.stop()
        if hasattr(app.state, "engine"):
            await app.state.engine.dispose()

        logger.info("Shutdown completed")

    app.include_router(router)

    return app


# Create app instance
app = create_app()
