"""Shared test helpers for civicline tests.

Regular functions and small fakes, importable from conftest.py and test
modules alike. These are NOT fixtures.
"""

from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta, timezone
from typing import Any, Sequence

from civicline.domain.cases import Department
from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent, session_key_for
from civicline.domain.intents import Button, ListSection
from civicline.domain.localization import Localizer

TENANT = "zp-test"
PHONE = "919876543210"
OTHER_PHONE = "919800000001"

# 2026-01-15 06:30 UTC is 12:00 in Asia/Kolkata
T0 = datetime(2026, 1, 15, 6, 30, tzinfo=timezone.utc)

DEPARTMENTS = (
    Department("health", "Health Department", "Public health services", contact_phone="910000000001"),
    Department("water", "Water Supply Department", "Water supply and sanitation"),
    Department("education", "Education Department", "Schools and programs"),
)

_message_ids = itertools.count(1)


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def levels(self) -> list[str]:
        return [level for level, _, _ in self.calls]

    def messages(self) -> list[str]:
        return [args[0] for _, args, _ in self.calls if args]

    def has_extra_field(self, key: str) -> bool:
        """Check if any call has the given key in extra_fields."""
        for _, _, kwargs in self.calls:
            extra_fields = kwargs.get("extra", {}).get("extra_fields", {})
            if key in extra_fields:
                return True
        return False

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _level, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeMessenger:
    """Records every outbound message; can be told to fail."""

    def __init__(self, fail_times: int = 0, fail_always: bool = False):
        self.sent: list[dict[str, Any]] = []
        self.attempts = 0
        self._fail_times = fail_times
        self._fail_always = fail_always

    def fail_next(self, times: int) -> None:
        self._fail_times = times

    def _accept(self) -> bool:
        self.attempts += 1
        if self._fail_always:
            return False
        if self._fail_times > 0:
            self._fail_times -= 1
            return False
        return True

    def send_text(self, to: str, body: str) -> bool:
        ok = self._accept()
        if ok:
            self.sent.append({"to": to, "type": "text", "body": body})
        return ok

    def send_buttons(self, to: str, body: str, buttons: Sequence[Button]) -> bool:
        ok = self._accept()
        if ok:
            self.sent.append({"to": to, "type": "buttons", "body": body, "buttons": list(buttons)})
        return ok

    def send_list(self, to: str, body: str, button_label: str, sections: Sequence[ListSection]) -> bool:
        ok = self._accept()
        if ok:
            self.sent.append(
                {"to": to, "type": "list", "body": body, "button_label": button_label, "sections": list(sections)}
            )
        return ok

    def bodies(self) -> list[str]:
        return [m["body"] for m in self.sent]

    def last(self) -> dict[str, Any]:
        return self.sent[-1]


class FakeNotifier:
    def __init__(self, error: Exception | None = None):
        self.summaries = []
        self._error = error

    def notify_on_creation(self, summary) -> None:
        if self._error is not None:
            raise self._error
        self.summaries.append(summary)


def next_message_id() -> str:
    return f"wamid.TEST{next(_message_ids):08d}"


def text_event(text: str, phone: str = PHONE, message_id: str | None = None) -> InboundEvent:
    return InboundEvent(
        session_key=session_key_for(TENANT, phone),
        message_id=message_id or next_message_id(),
        kind="text",
        phone=phone,
        text=text,
    )


def button_event(selected_id: str, title: str = "", phone: str = PHONE, message_id: str | None = None) -> InboundEvent:
    return InboundEvent(
        session_key=session_key_for(TENANT, phone),
        message_id=message_id or next_message_id(),
        kind="button",
        phone=phone,
        text=title,
        selected_id=selected_id,
    )


def list_event(selected_id: str, title: str = "", phone: str = PHONE) -> InboundEvent:
    return InboundEvent(
        session_key=session_key_for(TENANT, phone),
        message_id=next_message_id(),
        kind="list",
        phone=phone,
        text=title,
        selected_id=selected_id,
    )


def media_event(media_type: str = "image", media_ref: str = "media-123", phone: str = PHONE) -> InboundEvent:
    return InboundEvent(
        session_key=session_key_for(TENANT, phone),
        message_id=next_message_id(),
        kind="media",
        phone=phone,
        media_ref=media_ref,
        media_type=media_type,
    )


def make_context(
    enabled: Sequence[str] = ("GRIEVANCE", "APPOINTMENT"),
    departments: Sequence[Department] = DEPARTMENTS,
    today: date = date(2026, 1, 15),
) -> FlowContext:
    return FlowContext(
        enabled_modules=frozenset(enabled),
        departments=tuple(departments),
        today=today,
        localizer=Localizer(),
    )
