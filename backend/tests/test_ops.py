# tests/test_ops.py
"""
Tests for the logging configuration, JSON formatter and health probes.
"""

import json
import logging
from unittest import mock

import pytest

from ops.health import HealthCheck
from ops.logging_config import APP_LOGGERS, JsonFormatter, get_logging_config


class TestLoggingConfig:

    def test_debug_uses_console_format(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        config = get_logging_config(debug=True)

        assert config["handlers"]["console"]["formatter"] == "verbose"
        assert config["loggers"]["accounting"]["level"] == "DEBUG"

    def test_production_uses_json(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        config = get_logging_config(debug=False)

        assert config["handlers"]["console"]["formatter"] == "json"
        for name in APP_LOGGERS:
            assert config["loggers"][name] == {"handlers": ["console"], "level": "WARNING", "propagate": False}


class TestJsonFormatter:

    def _record(self, **extra):
        record = logging.LogRecord(
            name="accounting.commands",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Journal entry posted",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_extra_fields_included(self):
        line = JsonFormatter().format(self._record(company_id=1, entry_number="CE-00001"))
        payload = json.loads(line)

        assert payload["level"] == "INFO"
        assert payload["logger"] == "accounting.commands"
        assert payload["message"] == "Journal entry posted"
        assert payload["extra"]["company_id"] == 1
        assert payload["extra"]["entry_number"] == "CE-00001"

    def test_unserializable_extra_stringified(self):
        line = JsonFormatter().format(self._record(amount=object()))
        assert json.loads(line)["extra"]["amount"].startswith("<object object")


@pytest.mark.django_db
class TestReadiness:

    def test_ready_when_ledger_tables_exist(self, client):
        response = client.get("/_health/ready")

        assert response.status_code == 200
        assert response.json()["ledger"] == {"status": "healthy"}

    def test_not_ready_without_ledger_tables(self, client):
        with mock.patch.object(HealthCheck, "check_ledger_tables", return_value={"status": "unhealthy", "missing": ["accounting_account"]}):
            response = client.get("/_health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
