"""Exactly-once admission of inbound messages by provider message id.

The guard is checked before any session mutation or side effect. If its
backing store is unreachable it fails open: the message is processed and a
degraded-mode warning is logged, trading strict dedup for citizen service.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Protocol

from civicline.infra.clock import Clock, utc_now
from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import message_id_prefix, safe_log_context

logger = get_logger(__name__)

# Matches the provider's maximum redelivery window
DEFAULT_RETENTION = timedelta(hours=48)


class IdempotencyStore(Protocol):
    def exists(self, message_id: str) -> bool:
        ...

    def insert_if_absent(self, message_id: str) -> bool:
        """Record the id. Returns False if it was already recorded."""
        ...


class InMemoryIdempotencyStore:
    """Process-local receipts with lazy expiry after the retention window."""

    def __init__(self, retention: timedelta = DEFAULT_RETENTION, clock: Clock = utc_now) -> None:
        self._retention = retention
        self._clock = clock
        self._processed: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def _live(self, message_id: str, now: datetime) -> bool:
        processed_at = self._processed.get(message_id)
        if processed_at is None:
            return False
        if now - processed_at >= self._retention:
            del self._processed[message_id]
            return False
        return True

    def exists(self, message_id: str) -> bool:
        now = self._clock()
        with self._lock:
            return self._live(message_id, now)

    def insert_if_absent(self, message_id: str) -> bool:
        now = self._clock()
        with self._lock:
            if self._live(message_id, now):
                return False
            self._processed[message_id] = now
            return True

    def purge(self) -> int:
        """Drop receipts older than the retention window."""
        cutoff = self._clock() - self._retention
        with self._lock:
            stale = [k for k, at in self._processed.items() if at <= cutoff]
            for key in stale:
                del self._processed[key]
        return len(stale)


class IdempotencyGuard:
    """Guards side effects so each provider message is applied at most once."""

    def __init__(self, store: IdempotencyStore) -> None:
        self._store = store

    def has_processed(self, message_id: str) -> bool:
        try:
            return self._store.exists(message_id)
        except Exception:
            self._log_degraded("has_processed", message_id)
            return False

    def mark_processed(self, message_id: str) -> None:
        try:
            self._store.insert_if_absent(message_id)
        except Exception:
            self._log_degraded("mark_processed", message_id)

    def claim(self, message_id: str) -> bool:
        """Atomically check and mark. True means the caller owns this message.

        Two concurrent deliveries of the same id cannot both get True while
        the store is reachable.
        """
        try:
            return self._store.insert_if_absent(message_id)
        except Exception:
            self._log_degraded("claim", message_id)
            return True

    def _log_degraded(self, operation: str, message_id: str) -> None:
        logger.warning(
            "idempotency store unavailable, failing open",
            exc_info=True,
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    operation=operation,
                    message_id_prefix=message_id_prefix(message_id),
                )
            },
        )
