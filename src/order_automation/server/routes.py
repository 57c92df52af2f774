"""Automation API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from order_automation.config.constants import SEND_STATUSES
from order_automation.core.exceptions import DispatchError, StatusModelImportError
from order_automation.core.logger import setup_logger
from order_automation.server.auth import verify_api_key

logger = setup_logger(__name__)
router = APIRouter()

# Global instances (initialized in app.py on startup)
automation_scheduler = None
rule_repository = None
attempt_log = None
status_model_importer = None
email_dispatcher = None

TEST_EMAIL_SUBJECT = "Order Status Automation Test Email"


class EmailTestRequest(BaseModel):
    """Body for the email test endpoint."""
    email: str


def set_services(scheduler, rules, attempts, importer=None, dispatcher=None):
    """Set the global service instances.

    Called by app.py during startup event.
    """
    global automation_scheduler, rule_repository, attempt_log, status_model_importer, email_dispatcher
    automation_scheduler = scheduler
    rule_repository = rules
    attempt_log = attempts
    status_model_importer = importer
    email_dispatcher = dispatcher


@router.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "service": "Order Status Automation",
        "description": "Advances orders through fulfillment statuses and sends notifications",
        "endpoints": {
            "health": "/health",
            "automation_run_once": "/api/automation/run-once",
            "automation_status": "/api/automation/status",
            "email_logs": "/api/email-logs",
            "email_status": "/api/email/status",
            "email_test": "/api/email/test",
            "import_status_model": "/api/import/status-model",
        }
    }


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint (scheduler and database)."""
    if not automation_scheduler or not rule_repository:
        return {
            "status": "unhealthy",
            "service": "order-status-automation",
            "error": "Services not initialized"
        }

    try:
        storage_ok = await rule_repository.health_check()
    except Exception as e:
        logger.error(f"Health check error: {e}")
        storage_ok = False

    return {
        "status": "healthy" if storage_ok else "degraded",
        "service": "order-status-automation",
        "storage": "ok" if storage_ok else "error",
        "scheduler": "running" if automation_scheduler.is_running else "stopped",
    }


@router.post("/api/automation/run-once", dependencies=[Depends(verify_api_key)])
async def run_automation_once() -> dict:
    """Run one automation pass now (skipped if a pass is in progress)."""
    if not automation_scheduler:
        raise HTTPException(status_code=503, detail="Automation service not initialized")

    if automation_scheduler.pass_in_progress:
        return {"success": False, "skipped": True, "error": "Automation pass already in progress"}

    result = await automation_scheduler.run_once(trigger="manual")
    if result is None:
        return {
            "success": False,
            "skipped": False,
            "error": automation_scheduler.last_error or "Automation pass failed",
        }

    return {"success": result.success, "result": automation_scheduler.get_status()["last_result"]}


@router.get("/api/automation/status")
async def get_automation_status() -> dict:
    """Current scheduler state and the last pass result."""
    if not automation_scheduler:
        return {"success": False, "error": "Automation service not initialized"}

    return {"success": True, "status": automation_scheduler.get_status()}


@router.get("/api/email-logs", dependencies=[Depends(verify_api_key)])
async def list_email_logs(
    status: Optional[str] = Query(None, description="pending, sent or failed"),
    limit: int = Query(50, ge=1, le=500, description="Number of entries"),
) -> dict:
    """Recent notification attempts, newest first."""
    if not attempt_log:
        raise HTTPException(status_code=503, detail="Email log not initialized")

    if status and status not in SEND_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")

    attempts = await attempt_log.list_attempts(status=status, limit=limit)
    return {
        "success": True,
        "count": len(attempts),
        "logs": [attempt.model_dump(mode="json") for attempt in attempts],
    }


@router.post("/api/import/status-model", dependencies=[Depends(verify_api_key)])
async def import_status_model() -> dict:
    """Replace the stored status model with the configured Google Sheet."""
    if not status_model_importer:
        raise HTTPException(status_code=503, detail="Status model sheet not configured")

    try:
        rules = await status_model_importer.import_and_replace()
    except StatusModelImportError as e:
        logger.error(f"Status model import failed: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "imported": len(rules),
        "rules": [
            f"{rule.trigger_status} -> {rule.target_status}" for rule in rules
        ],
    }


@router.get("/api/email/status")
async def get_email_status() -> dict:
    """Which email transport is active."""
    if not email_dispatcher:
        return {"success": False, "error": "Email dispatcher not initialized"}

    return {
        "success": True,
        "provider": email_dispatcher.provider,
        "configured": email_dispatcher.provider != "logging",
    }


@router.post("/api/email/test", dependencies=[Depends(verify_api_key)])
async def send_test_email(request: EmailTestRequest) -> dict:
    """Send a test message through the configured transport."""
    if not email_dispatcher:
        raise HTTPException(status_code=503, detail="Email dispatcher not initialized")

    body = (
        f"This is a test email from the order status automation sent to {request.email}.\n\n"
        "If you received this email, the email system is working correctly!"
    )
    try:
        message_id = await email_dispatcher.send(request.email, TEST_EMAIL_SUBJECT, body)
    except DispatchError as e:
        logger.error(f"Test email to {request.email} failed: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "message": f"Test email sent to {request.email}",
        "provider": email_dispatcher.provider,
        "message_id": message_id,
    }
