"""Time utilities for consistent timestamp handling."""

from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Calendar date in the administration's timezone.

    Appointment dates are offered relative to this day, not the UTC day.
    """
    moment = now if now is not None else utc_now()
    return moment.astimezone(ZoneInfo(tz_name)).date()
