"""Unit tests for logging configuration."""

import pytest
import structlog

from sitedeploy.config import settings
from sitedeploy.utils.logging import configure_logging, deployment_context


@pytest.fixture
def restore_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_console_renderer_in_development(self, monkeypatch, restore_structlog):
        monkeypatch.setattr(settings, "app_env", "development")
        monkeypatch.setattr(settings, "log_format", "console")

        configure_logging()

        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_production_forces_json(self, monkeypatch, restore_structlog):
        monkeypatch.setattr(settings, "app_env", "production")
        monkeypatch.setattr(settings, "log_format", "console")

        configure_logging()

        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)


def test_deployment_context_binds_and_clears():
    with deployment_context("0b6f3c1e-0000-0000-0000-000000000001", "demo_local"):
        bound = structlog.contextvars.get_contextvars()
        assert bound == {
            "deployment_id": "0b6f3c1e-0000-0000-0000-000000000001",
            "site": "demo_local",
        }

    assert structlog.contextvars.get_contextvars() == {}
