"""Tests for observability utilities."""

import json
import logging

from civicline.observability.correlation import (
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from civicline.observability.logging import JsonFormatter, get_logger
from civicline.observability.redaction import (
    hash_identifier,
    message_id_prefix,
    redact_string,
    redact_value,
    safe_log_context,
)


class TestRedaction:
    """Tests for redaction helpers."""

    def test_redact_indian_mobile(self):
        result = redact_string("Call me at +91 98765 43210")
        assert "98765" not in result
        assert "[REDACTED]" in result

    def test_redact_bare_phone(self):
        assert "919876543210" not in redact_string("from 919876543210")

    def test_redact_email(self):
        result = redact_string("Email: citizen@example.com")
        assert "citizen@example.com" not in result
        assert "[REDACTED]" in result

    def test_redact_value_dict_only_keys(self):
        result = redact_value({"citizen_name": "Ravi", "phone": "919876543210"})
        assert "Ravi" not in result
        assert "citizen_name" in result

    def test_redact_value_list_only_len(self):
        assert redact_value(["a", "b", "c"]) == "list(len=3)"

    def test_redact_value_scalars(self):
        assert redact_value(None) == "null"
        assert redact_value(True) == "true"
        assert redact_value(7) == "7"

    def test_safe_log_context(self):
        ctx = safe_log_context(phone="+919876543210", count=42)
        assert "[REDACTED]" in ctx["phone"]
        assert ctx["count"] == "42"


class TestIdentifiers:
    def test_hash_is_stable_and_short(self):
        assert hash_identifier("zp-test:919876543210") == hash_identifier("zp-test:919876543210")
        assert len(hash_identifier("zp-test:919876543210")) == 12
        assert "9198" not in hash_identifier("zp-test:919876543210")

    def test_message_id_prefix(self):
        assert message_id_prefix("wamid.ABCDEFGHIJKLMNOPQRSTUVWXYZ") == "wamid.ABCDEFGHIJ"
        assert message_id_prefix("short") == "short"


class TestCorrelation:
    def test_set_and_reset(self):
        assert get_correlation_id() == ""
        token = set_correlation_id("cid-1")
        assert get_correlation_id() == "cid-1"
        reset_correlation_id(token)
        assert get_correlation_id() == ""


class TestJsonFormatter:
    def _record(self, **extra):
        record = logging.LogRecord("civicline.test", logging.INFO, __file__, 1, "event dispatched", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_one_json_object(self):
        payload = json.loads(JsonFormatter().format(self._record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "civicline.test"
        assert payload["message"] == "event dispatched"

    def test_extra_fields_are_merged(self):
        payload = json.loads(JsonFormatter().format(self._record(extra_fields={"flow": "MAIN_MENU"})))
        assert payload["flow"] == "MAIN_MENU"

    def test_correlation_id_included(self):
        token = set_correlation_id("cid-42")
        try:
            payload = json.loads(JsonFormatter().format(self._record()))
        finally:
            reset_correlation_id(token)
        assert payload["correlationId"] == "cid-42"

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("CIVICLINE_LOG_LEVEL", "warning")
        logger = get_logger("civicline.test.level_from_env")
        assert logger.level == logging.WARNING
        assert logger.propagate is False
