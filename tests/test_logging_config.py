"""Tests for logging configuration and formatters."""

import json
import logging
import sys
from datetime import datetime, timezone

import pytest

from jobalerts.logging.config import JSONFormatter, KeyValueFormatter, configure_logging


def make_record(message="Alert pass started", **extra):
    record = logging.LogRecord("jobalerts.test", logging.INFO, "test.py", 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_mandatory_fields(self):
        log_obj = json.loads(JSONFormatter().format(make_record()))

        assert log_obj["level"] == "INFO"
        assert log_obj["logger"] == "jobalerts.test"
        assert log_obj["message"] == "Alert pass started"
        assert log_obj["timestamp"].endswith("Z")

    def test_extra_fields_are_serialized(self):
        when = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)
        record = make_record(event="alerts.pass.started", alert_count=3, started=when, tags=["a"])

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["event"] == "alerts.pass.started"
        assert log_obj["alert_count"] == 3
        assert log_obj["started"] == when.isoformat()
        assert log_obj["tags"] == ["a"]

    def test_unserializable_values_become_strings(self):
        log_obj = json.loads(JSONFormatter().format(make_record(obj=object())))
        assert log_obj["obj"].startswith("<object object")

    def test_exception_is_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "jobalerts.test", logging.ERROR, "test.py", 1, "failed", (), sys.exc_info()
            )

        log_obj = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in log_obj["exc_info"]


class TestKeyValueFormatter:
    def test_appends_sorted_extras(self):
        formatter = KeyValueFormatter("%(levelname)s %(message)s")
        output = formatter.format(make_record(event="digest.sent", alert_id=4))
        assert output == "INFO Alert pass started alert_id=4 event=digest.sent"

    def test_quotes_values_with_spaces_and_formats_scalars(self):
        formatter = KeyValueFormatter("%(message)s")
        output = formatter.format(make_record("m", reason="owner not found", ok=True, missing=None))
        assert 'reason="owner not found"' in output
        assert "ok=true" in output
        assert "missing=null" in output

    def test_skips_static_service_fields(self):
        formatter = KeyValueFormatter("%(message)s")
        output = formatter.format(make_record("m", service="svc", environment="local"))
        assert output == "m"


class TestConfigureLogging:
    def test_installs_single_handler(self, restore_root_logger):
        configure_logging(level="DEBUG", format_type="json")
        configure_logging(level="WARNING", format_type="key-value")

        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.WARNING
        assert isinstance(restore_root_logger.handlers[0].formatter, KeyValueFormatter)

    def test_json_format(self, restore_root_logger):
        configure_logging(level="INFO", format_type="json")
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_apscheduler_is_quieted(self, restore_root_logger):
        configure_logging(level="DEBUG")
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_invalid_level(self, restore_root_logger):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="LOUD")

    def test_invalid_format(self, restore_root_logger):
        with pytest.raises(ValueError, match="Invalid log format"):
            configure_logging(format_type="xml")
