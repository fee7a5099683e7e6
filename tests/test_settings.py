"""Tests for environment-driven settings."""

import pytest

from civicline.infra.settings import PortalSettings, load_settings

_ENV_VARS = (
    "CIVICLINE_TENANT_ID",
    "CIVICLINE_ENABLED_MODULES",
    "CIVICLINE_DEFAULT_LANGUAGE",
    "CIVICLINE_SESSION_TTL_MINUTES",
    "CIVICLINE_IDEMPOTENCY_RETENTION_HOURS",
    "CIVICLINE_TIMEZONE",
    "CIVICLINE_APPOINTMENT_SLOTS",
    "CIVICLINE_STORAGE_BACKEND",
    "META_PHONE_NUMBER_ID",
    "META_ACCESS_TOKEN",
    "META_GRAPH_API_VERSION",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults_match_dataclass(self):
        assert load_settings() == PortalSettings()

    def test_default_values(self):
        settings = load_settings()
        assert settings.enabled_modules == frozenset({"GRIEVANCE", "APPOINTMENT"})
        assert settings.session_ttl_minutes == 30
        assert settings.idempotency_retention_hours == 48
        assert settings.timezone == "Asia/Kolkata"
        assert settings.storage_backend == "memory"
        assert settings.meta.access_token is None


class TestOverrides:
    def test_enabled_modules_are_normalized(self, monkeypatch):
        monkeypatch.setenv("CIVICLINE_ENABLED_MODULES", " grievance , ")
        assert load_settings().enabled_modules == frozenset({"GRIEVANCE"})

    def test_empty_modules_disables_everything(self, monkeypatch):
        monkeypatch.setenv("CIVICLINE_ENABLED_MODULES", "")
        assert load_settings().enabled_modules == frozenset()

    def test_slots(self, monkeypatch):
        monkeypatch.setenv("CIVICLINE_APPOINTMENT_SLOTS", "09:30,11:00")
        assert load_settings().appointment_slots == ("09:30", "11:00")

    def test_meta_credentials(self, monkeypatch):
        monkeypatch.setenv("META_PHONE_NUMBER_ID", "123")
        monkeypatch.setenv("META_ACCESS_TOKEN", "tok")
        meta = load_settings().meta
        assert (meta.phone_number_id, meta.access_token, meta.api_version) == ("123", "tok", "v18.0")

    def test_ttl(self, monkeypatch):
        monkeypatch.setenv("CIVICLINE_SESSION_TTL_MINUTES", "45")
        assert load_settings().session_ttl_minutes == 45


class TestValidation:
    @pytest.mark.parametrize(
        "name,value",
        [
            ("CIVICLINE_ENABLED_MODULES", "GRIEVANCE,PAYMENTS"),
            ("CIVICLINE_DEFAULT_LANGUAGE", "fr"),
            ("CIVICLINE_STORAGE_BACKEND", "redis"),
            ("CIVICLINE_SESSION_TTL_MINUTES", "soon"),
            ("CIVICLINE_IDEMPOTENCY_RETENTION_HOURS", "0"),
            ("CIVICLINE_APPOINTMENT_SLOTS", "10:00,9:30am"),
            ("CIVICLINE_TIMEZONE", "Mars/Olympus_Mons"),
        ],
    )
    def test_malformed_values_raise(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(RuntimeError, match=name):
            load_settings()

    def test_known_timezone_is_kept(self, monkeypatch):
        monkeypatch.setenv("CIVICLINE_TIMEZONE", "Asia/Dubai")
        assert load_settings().timezone == "Asia/Dubai"
