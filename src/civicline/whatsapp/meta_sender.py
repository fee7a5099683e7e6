"""Outbound WhatsApp messaging via Meta Cloud API.

Security: NEVER log the recipient phone or the message body. Only hashes
and lengths.
"""

from __future__ import annotations

import json
import time
import urllib.error
import urllib.request
from typing import Any, Sequence

from civicline.domain.intents import MAX_BUTTONS, MAX_LIST_ROWS, Button, ListSection
from civicline.infra.settings import MetaConfig
from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

# Timeout for HTTP requests (seconds)
HTTP_TIMEOUT = 5

# Retry config
MAX_RETRIES = 1
RETRY_DELAY = 0.2

GRAPH_API_BASE = "https://graph.facebook.com"

# Provider limits
MAX_TEXT_LENGTH = 4096
MAX_INTERACTIVE_BODY = 1024
MAX_BUTTON_TITLE = 20
MAX_ROW_TITLE = 24
MAX_ROW_DESCRIPTION = 72
MAX_LIST_BUTTON_LABEL = 20
MAX_SECTION_TITLE = 24


class OutboundConfigError(Exception):
    """Raised when Meta credentials are missing."""

    pass


def truncate(text: str, limit: int) -> str:
    """Cut text to the provider limit, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def build_text_payload(to: str, body: str) -> dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": "text",
        "text": {"body": truncate(body, MAX_TEXT_LENGTH)},
    }


def build_buttons_payload(to: str, body: str, buttons: Sequence[Button]) -> dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": "interactive",
        "interactive": {
            "type": "button",
            "body": {"text": truncate(body, MAX_INTERACTIVE_BODY)},
            "action": {
                "buttons": [
                    {"type": "reply", "reply": {"id": b.id, "title": truncate(b.title, MAX_BUTTON_TITLE)}}
                    for b in list(buttons)[:MAX_BUTTONS]
                ]
            },
        },
    }


def build_list_payload(
    to: str,
    body: str,
    button_label: str,
    sections: Sequence[ListSection],
) -> dict[str, Any]:
    remaining = MAX_LIST_ROWS
    rendered_sections = []
    for section in sections:
        rows = []
        for row in section.rows[:remaining]:
            item = {"id": row.id, "title": truncate(row.title, MAX_ROW_TITLE)}
            if row.description:
                item["description"] = truncate(row.description, MAX_ROW_DESCRIPTION)
            rows.append(item)
        remaining -= len(rows)
        if rows:
            rendered_sections.append({"title": truncate(section.title, MAX_SECTION_TITLE), "rows": rows})

    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": "interactive",
        "interactive": {
            "type": "list",
            "body": {"text": truncate(body, MAX_INTERACTIVE_BODY)},
            "action": {
                "button": truncate(button_label, MAX_LIST_BUTTON_LABEL),
                "sections": rendered_sections,
            },
        },
    }


def _do_request(url: str, data: bytes, headers: dict[str, str]) -> dict[str, Any]:
    """Execute HTTP POST request. Raises on error."""
    req = urllib.request.Request(url, data=data, headers=headers, method="POST")
    with urllib.request.urlopen(req, timeout=HTTP_TIMEOUT) as resp:
        return json.loads(resp.read().decode())


class MetaMessenger:
    """Messenger backed by the Meta Cloud API /messages endpoint.

    Each send returns True when Meta accepted the message. Network errors and
    5xx responses get one retry; anything else fails immediately.
    """

    def __init__(self, config: MetaConfig) -> None:
        if not config.phone_number_id or not config.access_token:
            raise OutboundConfigError("META_PHONE_NUMBER_ID and META_ACCESS_TOKEN are required")
        self._config = config

    @property
    def url(self) -> str:
        return f"{GRAPH_API_BASE}/{self._config.api_version}/{self._config.phone_number_id}/messages"

    def send_text(self, to: str, body: str) -> bool:
        return self._post(build_text_payload(to, body), to, "text", len(body))

    def send_buttons(self, to: str, body: str, buttons: Sequence[Button]) -> bool:
        return self._post(build_buttons_payload(to, body, buttons), to, "buttons", len(body))

    def send_list(
        self,
        to: str,
        body: str,
        button_label: str,
        sections: Sequence[ListSection],
    ) -> bool:
        return self._post(build_list_payload(to, body, button_label, sections), to, "list", len(body))

    def _post(self, payload: dict[str, Any], to: str, message_type: str, body_len: int) -> bool:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.access_token}",
        }
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")

        # Safe logging context - NEVER include the phone or the body
        log_ctx = dict(
            correlationId=get_correlation_id() or "",
            to_hash=hash_identifier(to),
            text_len=body_len,
            message_type=message_type,
            provider="meta",
        )

        for attempt in range(MAX_RETRIES + 1):
            try:
                _do_request(self.url, data, headers)
                logger.info(
                    "outbound message sent via meta",
                    extra={"extra_fields": safe_log_context(**log_ctx, attempt=attempt)},
                )
                return True
            except (urllib.error.URLError, TimeoutError) as e:
                # HTTPError is a URLError subclass; only 5xx is worth retrying
                is_http = isinstance(e, urllib.error.HTTPError)
                retryable = not is_http or 500 <= e.code < 600
                if attempt < MAX_RETRIES and retryable:
                    logger.warning(
                        "outbound send via meta failed, retrying",
                        extra={
                            "extra_fields": safe_log_context(
                                **log_ctx, attempt=attempt, error_type=type(e).__name__
                            )
                        },
                    )
                    time.sleep(RETRY_DELAY)
                    continue

                logger.error(
                    "outbound send via meta failed",
                    extra={
                        "extra_fields": safe_log_context(
                            **log_ctx,
                            attempt=attempt,
                            error_type=type(e).__name__,
                            status_code=e.code if is_http else None,
                        )
                    },
                )
                return False
        return False


class LoggingMessenger:
    """Messenger for local runs without Meta credentials.

    Records what would have been sent; logs only sizes.
    """

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send_text(self, to: str, body: str) -> bool:
        return self._record(to, "text", body, {})

    def send_buttons(self, to: str, body: str, buttons: Sequence[Button]) -> bool:
        return self._record(to, "buttons", body, {"buttons": list(buttons)})

    def send_list(
        self,
        to: str,
        body: str,
        button_label: str,
        sections: Sequence[ListSection],
    ) -> bool:
        return self._record(to, "list", body, {"button_label": button_label, "sections": list(sections)})

    def _record(self, to: str, message_type: str, body: str, extra: dict[str, Any]) -> bool:
        self.sent.append({"to": to, "type": message_type, "body": body, **extra})
        logger.info(
            "outbound message recorded",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    to_hash=hash_identifier(to),
                    text_len=len(body),
                    message_type=message_type,
                )
            },
        )
        return True
