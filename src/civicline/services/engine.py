"""Wiring: builds the Dispatcher and its collaborators from settings."""

from __future__ import annotations

import threading
from datetime import timedelta

from civicline.domain.idempotency import IdempotencyGuard, InMemoryIdempotencyStore
from civicline.domain.localization import Localizer
from civicline.domain.ports import Messenger
from civicline.domain.references import InMemoryReferenceReserver, ReferenceAllocator
from civicline.domain.sessions import InMemorySessionStore
from civicline.infra.memory_stores import InMemoryCaseStore
from civicline.infra.settings import PortalSettings, load_settings
from civicline.observability.logging import get_logger
from civicline.observability.redaction import safe_log_context
from civicline.services.dispatcher import Dispatcher
from civicline.services.notifier import MessengerNotifier
from civicline.whatsapp.meta_sender import LoggingMessenger, MetaMessenger

logger = get_logger(__name__)

_dispatcher: Dispatcher | None = None
_dispatcher_lock = threading.Lock()


def build_messenger(settings: PortalSettings) -> Messenger:
    if settings.meta.phone_number_id and settings.meta.access_token:
        return MetaMessenger(settings.meta)
    logger.warning(
        "meta credentials missing, outbound messages are only recorded",
        extra={"extra_fields": safe_log_context(tenant_id=settings.tenant_id)},
    )
    return LoggingMessenger()


def build_dispatcher(settings: PortalSettings | None = None, messenger: Messenger | None = None) -> Dispatcher:
    """Assemble a Dispatcher for the configured storage backend."""
    settings = settings or load_settings()
    ttl = timedelta(minutes=settings.session_ttl_minutes)
    retention = timedelta(hours=settings.idempotency_retention_hours)

    if settings.storage_backend == "postgres":
        # Imported here so memory-only deployments do not need a database driver
        from civicline.infra.postgres_stores import (
            PostgresCaseStore,
            PostgresIdempotencyStore,
            PostgresReferenceReserver,
            PostgresSessionStore,
        )

        sessions = PostgresSessionStore(ttl=ttl)
        idempotency = PostgresIdempotencyStore(retention=retention)
        reserver = PostgresReferenceReserver()
        cases = PostgresCaseStore()
    else:
        sessions = InMemorySessionStore(ttl=ttl)
        idempotency = InMemoryIdempotencyStore(retention=retention)
        reserver = InMemoryReferenceReserver()
        cases = InMemoryCaseStore()

    localizer = Localizer(default_language=settings.default_language)
    messenger = messenger or build_messenger(settings)

    logger.info(
        "dispatcher built",
        extra={
            "extra_fields": safe_log_context(
                tenant_id=settings.tenant_id,
                storage_backend=settings.storage_backend,
                enabled_modules=",".join(sorted(settings.enabled_modules)),
            )
        },
    )

    return Dispatcher(
        settings=settings,
        sessions=sessions,
        guard=IdempotencyGuard(idempotency),
        allocator=ReferenceAllocator(reserver),
        cases=cases,
        messenger=messenger,
        notifier=MessengerNotifier(cases, messenger, localizer),
        localizer=localizer,
    )


def get_dispatcher() -> Dispatcher:
    """Process-wide dispatcher (lazy, so settings are read at first use)."""
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = build_dispatcher()
        return _dispatcher


def set_dispatcher(dispatcher: Dispatcher | None) -> None:
    """Replace the process-wide dispatcher (for tests)."""
    global _dispatcher
    with _dispatcher_lock:
        _dispatcher = dispatcher
