"""Tests for Meta outbound messaging - payload limits, retries, NO PII in logs."""

import io
import urllib.error
from unittest.mock import patch

import pytest

from civicline.domain.intents import Button, ListRow, ListSection
from civicline.infra.settings import MetaConfig
from civicline.whatsapp import meta_sender
from civicline.whatsapp.meta_sender import (
    LoggingMessenger,
    MetaMessenger,
    OutboundConfigError,
    build_buttons_payload,
    build_list_payload,
    build_text_payload,
    truncate,
)

from helpers import LogRecorder

PHONE = "919876543210"
BODY = "Reference GRV00000001 for Ravi Kumar"
CONFIG = MetaConfig(phone_number_id="123456789", access_token="test-token", api_version="v18.0")


def _http_error(code):
    return urllib.error.HTTPError("https://graph.facebook.com", code, "error", {}, io.BytesIO(b"{}"))


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(meta_sender, "RETRY_DELAY", 0)


class TestPayloads:
    def test_truncate_marks_cut(self):
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdefgh", 5) == "abcd…"
        assert len(truncate("x" * 30, 20)) == 20

    def test_text_payload(self):
        payload = build_text_payload(PHONE, "hello")
        assert payload["to"] == PHONE
        assert payload["type"] == "text"
        assert payload["text"] == {"body": "hello"}

    def test_long_text_is_cut_to_provider_limit(self):
        payload = build_text_payload(PHONE, "x" * 5000)
        assert len(payload["text"]["body"]) == meta_sender.MAX_TEXT_LENGTH

    def test_button_titles_are_cut(self):
        payload = build_buttons_payload(PHONE, "pick", [Button("confirm_yes", "✅ Confirm & Submit now please")])
        (button,) = payload["interactive"]["action"]["buttons"]
        assert button["reply"]["id"] == "confirm_yes"
        assert len(button["reply"]["title"]) == meta_sender.MAX_BUTTON_TITLE

    def test_list_payload_caps_rows_across_sections(self):
        rows = tuple(ListRow(f"r{n}", f"Row {n}", "d" * 100) for n in range(8))
        sections = [ListSection("First", rows), ListSection("Second", rows)]
        payload = build_list_payload(PHONE, "pick", "Select Department please", sections)

        action = payload["interactive"]["action"]
        assert len(action["button"]) == meta_sender.MAX_LIST_BUTTON_LABEL
        total = sum(len(s["rows"]) for s in action["sections"])
        assert total == 10
        assert len(action["sections"][0]["rows"][0]["description"]) == meta_sender.MAX_ROW_DESCRIPTION

    def test_row_without_description(self):
        payload = build_list_payload(PHONE, "pick", "Menu", [ListSection("Menu", (ListRow("help", "Help"),))])
        assert payload["interactive"]["action"]["sections"][0]["rows"] == [{"id": "help", "title": "Help"}]


class TestMetaMessenger:
    def test_requires_credentials(self):
        with pytest.raises(OutboundConfigError):
            MetaMessenger(MetaConfig(phone_number_id="123"))

    def test_url(self):
        assert MetaMessenger(CONFIG).url == "https://graph.facebook.com/v18.0/123456789/messages"

    def test_success(self):
        with patch("civicline.whatsapp.meta_sender._do_request", return_value={"messages": [{"id": "x"}]}) as req:
            assert MetaMessenger(CONFIG).send_text(PHONE, BODY) is True
        url, data, headers = req.call_args[0]
        assert headers["Authorization"] == "Bearer test-token"
        assert b'"to": "919876543210"' in data

    def test_retries_server_error_once(self):
        calls = []

        def flaky(url, data, headers):
            calls.append(1)
            if len(calls) == 1:
                raise _http_error(503)
            return {}

        with patch("civicline.whatsapp.meta_sender._do_request", side_effect=flaky):
            assert MetaMessenger(CONFIG).send_buttons(PHONE, BODY, [Button("a", "A")]) is True
        assert len(calls) == 2

    def test_network_error_exhausts_retries(self):
        with patch(
            "civicline.whatsapp.meta_sender._do_request",
            side_effect=urllib.error.URLError("unreachable"),
        ) as req:
            assert MetaMessenger(CONFIG).send_text(PHONE, BODY) is False
        assert req.call_count == meta_sender.MAX_RETRIES + 1

    def test_client_error_is_not_retried(self):
        with patch("civicline.whatsapp.meta_sender._do_request", side_effect=_http_error(400)) as req:
            assert MetaMessenger(CONFIG).send_list(PHONE, BODY, "Menu", []) is False
        assert req.call_count == 1


class TestNoPiiLeakage:
    """The recipient phone and the message body must never reach the logs."""

    def test_success_logs_no_pii(self):
        recorder = LogRecorder()
        with patch("civicline.whatsapp.meta_sender.logger", recorder):
            with patch("civicline.whatsapp.meta_sender._do_request", return_value={}):
                MetaMessenger(CONFIG).send_text(PHONE, BODY)

        logged = recorder.get_all_logged_content()
        assert PHONE not in logged
        assert "Ravi Kumar" not in logged
        assert "GRV00000001" not in logged
        assert recorder.has_extra_field("to_hash")
        assert recorder.has_extra_field("text_len")

    def test_failure_logs_no_pii(self):
        recorder = LogRecorder()
        with patch("civicline.whatsapp.meta_sender.logger", recorder):
            with patch("civicline.whatsapp.meta_sender._do_request", side_effect=_http_error(500)):
                MetaMessenger(CONFIG).send_text(PHONE, BODY)

        assert recorder.levels() == ["warning", "error"]
        logged = recorder.get_all_logged_content()
        assert PHONE not in logged
        assert "Ravi Kumar" not in logged

    def test_logging_messenger_records_without_logging_pii(self):
        recorder = LogRecorder()
        messenger = LoggingMessenger()
        with patch("civicline.whatsapp.meta_sender.logger", recorder):
            assert messenger.send_text(PHONE, BODY) is True

        assert messenger.sent[0]["body"] == BODY
        assert PHONE not in recorder.get_all_logged_content()
        assert BODY not in recorder.get_all_logged_content()
