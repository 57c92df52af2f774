"""Application factory and entry point."""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from order_automation.config.settings import Settings, settings
from order_automation.core.exceptions import AutomationConfigError
from order_automation.server.app import create_app


def test_routes_registered():
    app = create_app(Settings(database_url=None, glitchtip_dsn=None))
    paths = set(app.openapi()["paths"])

    assert {
        "/",
        "/health",
        "/api/automation/run-once",
        "/api/automation/status",
        "/api/email-logs",
        "/api/email/status",
        "/api/email/test",
        "/api/import/status-model",
    } <= paths


def test_startup_requires_database_url():
    app = create_app(Settings(database_url=None, glitchtip_dsn=None))

    with pytest.raises(AutomationConfigError):
        with TestClient(app):
            pass


def test_main_uses_server_settings(monkeypatch):
    from order_automation import main as entry_point

    monkeypatch.setattr(settings, "host", "127.0.0.1")
    monkeypatch.setattr(settings, "port", 9100)
    monkeypatch.setattr(settings, "log_level", "WARNING")

    with patch.object(entry_point.uvicorn, "run") as run:
        entry_point.main()

    kwargs = run.call_args.kwargs
    assert run.call_args.args == ("order_automation.server.app:app",)
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 9100
    assert kwargs["log_level"] == "warning"
