"""Deployment settings for the single administration served by this portal.

All values come from environment variables with defaults matching the
production deployment. Settings are immutable once loaded.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from civicline.domain.localization import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES

StorageBackend = Literal["memory", "postgres"]

KNOWN_MODULES = ("GRIEVANCE", "APPOINTMENT")


@dataclass(frozen=True)
class MetaConfig:
    """Meta Cloud API credentials for outbound messages."""

    phone_number_id: str | None = None
    access_token: str | None = None
    api_version: str = "v18.0"


@dataclass(frozen=True)
class PortalSettings:
    """Settings for the conversational intake engine.

    Attributes:
        tenant_id: Administration identifier; scopes session keys.
        enabled_modules: Capabilities offered in the main menu.
        default_language: Fallback language for localization.
        session_ttl_minutes: Inactivity after which a session is discarded.
        idempotency_retention_hours: How long processed message ids are kept.
        timezone: Timezone used to offer appointment dates.
        appointment_slots: Time slots offered for appointments ("HH:MM").
        storage_backend: "memory" for dev/tests, "postgres" for deployments.
        meta: Outbound WhatsApp credentials.
    """

    tenant_id: str = "zp-amravati"
    enabled_modules: frozenset[str] = frozenset(KNOWN_MODULES)
    default_language: str = DEFAULT_LANGUAGE
    session_ttl_minutes: int = 30
    idempotency_retention_hours: int = 48
    timezone: str = "Asia/Kolkata"
    appointment_slots: tuple[str, ...] = ("10:00", "14:00", "16:00")
    storage_backend: StorageBackend = "memory"
    meta: MetaConfig = field(default_factory=MetaConfig)


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _slots_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    slots = tuple(_split_csv(raw))
    for slot in slots:
        try:
            datetime.strptime(slot, "%H:%M")
        except ValueError:
            raise RuntimeError(f"{name} entries must be HH:MM, got {slot!r}") from None
    return slots


def _timezone_env(name: str, default: str) -> str:
    tz_name = os.environ.get(name, default)
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise RuntimeError(f"Unknown {name}: {tz_name}") from None
    return tz_name


def load_settings() -> PortalSettings:
    """Load settings from environment.

    Raises:
        RuntimeError: If a value is present but malformed.
    """
    defaults = PortalSettings()

    modules_raw = os.environ.get("CIVICLINE_ENABLED_MODULES")
    if modules_raw is None:
        modules = defaults.enabled_modules
    else:
        modules = frozenset(m.upper() for m in _split_csv(modules_raw))
        unknown = modules - set(KNOWN_MODULES)
        if unknown:
            raise RuntimeError(f"Unknown CIVICLINE_ENABLED_MODULES: {sorted(unknown)}")

    language = os.environ.get("CIVICLINE_DEFAULT_LANGUAGE", defaults.default_language)
    if language not in SUPPORTED_LANGUAGES:
        raise RuntimeError(f"Unsupported CIVICLINE_DEFAULT_LANGUAGE: {language}")

    backend = os.environ.get("CIVICLINE_STORAGE_BACKEND", defaults.storage_backend)
    if backend not in ("memory", "postgres"):
        raise RuntimeError(f"Unknown CIVICLINE_STORAGE_BACKEND: {backend}")

    return PortalSettings(
        tenant_id=os.environ.get("CIVICLINE_TENANT_ID", defaults.tenant_id),
        enabled_modules=modules,
        default_language=language,
        session_ttl_minutes=_int_env("CIVICLINE_SESSION_TTL_MINUTES", defaults.session_ttl_minutes),
        idempotency_retention_hours=_int_env(
            "CIVICLINE_IDEMPOTENCY_RETENTION_HOURS", defaults.idempotency_retention_hours
        ),
        timezone=_timezone_env("CIVICLINE_TIMEZONE", defaults.timezone),
        appointment_slots=_slots_env("CIVICLINE_APPOINTMENT_SLOTS", defaults.appointment_slots),
        storage_backend=backend,  # type: ignore[arg-type]
        meta=MetaConfig(
            phone_number_id=os.environ.get("META_PHONE_NUMBER_ID") or None,
            access_token=os.environ.get("META_ACCESS_TOKEN") or None,
            api_version=os.environ.get("META_GRAPH_API_VERSION", "v18.0"),
        ),
    )
