"""HTTP endpoints for operating the automation."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from order_automation.config.constants import EMAIL_TYPE_PRIVATE, SEND_STATUS_SENT
from order_automation.config.settings import settings
from order_automation.core.exceptions import StatusModelImportError
from order_automation.integrations.email_dispatcher import LoggingDispatcher
from order_automation.models import SendAttempt
from order_automation.server import routes

from .conftest import InMemoryAttemptLog, InMemoryRuleRepository, RecordingDispatcher, make_rule

API_KEY = "test-dashboard-key"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def scheduler():
    scheduler = MagicMock()
    scheduler.is_running = True
    scheduler.pass_in_progress = False
    scheduler.last_error = None
    scheduler.run_once = AsyncMock(return_value=MagicMock(success=True))
    scheduler.get_status.return_value = {
        "scheduled": True,
        "pass_in_progress": False,
        "last_result": {"orders_processed": 2, "success": True},
    }
    return scheduler


@pytest.fixture
def attempts():
    return InMemoryAttemptLog()


@pytest.fixture
def client(monkeypatch, scheduler, attempts, dispatcher):
    monkeypatch.setattr(settings, "dashboard_api_key", API_KEY)
    routes.set_services(scheduler, InMemoryRuleRepository(), attempts, dispatcher=dispatcher)

    app = FastAPI()
    app.include_router(routes.router)
    yield TestClient(app)

    routes.set_services(None, None, None)


def test_health_before_startup():
    routes.set_services(None, None, None)
    client = TestClient(FastAPI(routes=routes.router.routes))

    assert client.get("/health").json()["status"] == "unhealthy"


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["scheduler"] == "running"


def test_run_once_requires_api_key(client):
    assert client.post("/api/automation/run-once").status_code == 422
    assert client.post("/api/automation/run-once", headers={"X-API-Key": "wrong"}).status_code == 401


def test_run_once(client, scheduler):
    response = client.post("/api/automation/run-once", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "result": {"orders_processed": 2, "success": True},
    }
    scheduler.run_once.assert_awaited_once_with(trigger="manual")


def test_run_once_while_pass_in_progress(client, scheduler):
    scheduler.pass_in_progress = True

    body = client.post("/api/automation/run-once", headers=HEADERS).json()

    assert body["success"] is False
    assert body["skipped"] is True
    scheduler.run_once.assert_not_awaited()


def test_run_once_pass_failure(client, scheduler):
    scheduler.run_once = AsyncMock(return_value=None)
    scheduler.last_error = "database down"

    body = client.post("/api/automation/run-once", headers=HEADERS).json()

    assert body == {"success": False, "skipped": False, "error": "database down"}


def test_automation_status(client):
    body = client.get("/api/automation/status").json()

    assert body["success"] is True
    assert body["status"]["last_result"]["orders_processed"] == 2


def test_email_logs(client, attempts):
    attempts.attempts["log-1"] = SendAttempt(
        id="log-1",
        order_id="ord-1",
        email_type=EMAIL_TYPE_PRIVATE,
        recipient="ops@example.com",
        subject="Order Update",
        message="body",
        status=SEND_STATUS_SENT,
        provider_message_id="pm-1",
    )

    body = client.get("/api/email-logs", params={"status": "sent"}, headers=HEADERS).json()

    assert body["count"] == 1
    assert body["logs"][0]["recipient"] == "ops@example.com"
    assert body["logs"][0]["provider_message_id"] == "pm-1"


def test_email_logs_rejects_unknown_status(client):
    response = client.get("/api/email-logs", params={"status": "bounced"}, headers=HEADERS)
    assert response.status_code == 400


def test_import_not_configured(client):
    response = client.post("/api/import/status-model", headers=HEADERS)
    assert response.status_code == 503


def test_import_status_model(client, scheduler, attempts):
    importer = MagicMock()
    importer.import_and_replace = AsyncMock(return_value=[make_rule()])
    routes.set_services(scheduler, InMemoryRuleRepository(), attempts, importer)

    body = client.post("/api/import/status-model", headers=HEADERS).json()

    assert body == {
        "success": True,
        "imported": 1,
        "rules": ["Casting Order -> Casting Received"],
    }


def test_import_status_model_failure(client, scheduler, attempts):
    importer = MagicMock()
    importer.import_and_replace = AsyncMock(side_effect=StatusModelImportError("No data found"))
    routes.set_services(scheduler, InMemoryRuleRepository(), attempts, importer)

    body = client.post("/api/import/status-model", headers=HEADERS).json()

    assert body == {"success": False, "error": "No data found"}


def test_email_status_with_logging_fallback(client, scheduler, attempts):
    routes.set_services(scheduler, InMemoryRuleRepository(), attempts, dispatcher=LoggingDispatcher())

    body = client.get("/api/email/status").json()

    assert body == {"success": True, "provider": "logging", "configured": False}


def test_email_status_with_provider(client, dispatcher):
    dispatcher.provider = "postmark"

    body = client.get("/api/email/status").json()

    assert body["provider"] == "postmark"
    assert body["configured"] is True


def test_send_test_email(client, dispatcher):
    response = client.post("/api/email/test", json={"email": "ops@example.com"}, headers=HEADERS)

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["message_id"] == "msg-1"
    assert [m["to"] for m in dispatcher.sent] == ["ops@example.com"]
    assert "ops@example.com" in dispatcher.sent[0]["body"]


def test_send_test_email_reports_dispatch_error(client, scheduler, attempts):
    failing = RecordingDispatcher(failing_recipients={"bounce@example.com"})
    routes.set_services(scheduler, InMemoryRuleRepository(), attempts, dispatcher=failing)

    body = client.post("/api/email/test", json={"email": "bounce@example.com"}, headers=HEADERS).json()

    assert body == {"success": False, "error": "mailbox unavailable: bounce@example.com"}


def test_send_test_email_requires_api_key_and_address(client, dispatcher):
    assert client.post("/api/email/test", json={"email": "ops@example.com"}).status_code == 422
    assert client.post("/api/email/test", json={}, headers=HEADERS).status_code == 422
    assert dispatcher.sent == []


def test_send_test_email_without_dispatcher(client, scheduler, attempts):
    routes.set_services(scheduler, InMemoryRuleRepository(), attempts)

    response = client.post("/api/email/test", json={"email": "ops@example.com"}, headers=HEADERS)

    assert response.status_code == 503
