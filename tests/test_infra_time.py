"""Tests for time utilities."""

from datetime import date, datetime, timezone

from civicline.infra.clock import local_today, utc_now


class TestUtcNow:
    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)
        assert before <= now <= after


class TestLocalToday:
    def test_kolkata_is_ahead_of_utc(self):
        late_utc = datetime(2026, 1, 15, 20, 0, tzinfo=timezone.utc)
        assert local_today("Asia/Kolkata", late_utc) == date(2026, 1, 16)

    def test_same_day(self):
        morning_utc = datetime(2026, 1, 15, 3, 0, tzinfo=timezone.utc)
        assert local_today("Asia/Kolkata", morning_utc) == date(2026, 1, 15)
