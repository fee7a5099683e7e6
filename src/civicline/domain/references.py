"""Human-readable case reference allocation (GRV00000001, APT00000001).

Allocation reads the current maximum for a prefix, proposes max + 1 and
reserves it with an insert-if-absent. A lost race bumps the candidate past
the new maximum and tries again, up to MAX_ATTEMPTS. A reserved number is never handed out twice,
even if the case it was reserved for fails to persist.
"""

from __future__ import annotations

import threading
from typing import Protocol

from civicline.domain.cases import format_reference, parse_reference_number
from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import safe_log_context

logger = get_logger(__name__)

MAX_ATTEMPTS = 10


class AllocationError(Exception):
    """Raised when no unique reference could be reserved."""

    pass


class ReferenceReserver(Protocol):
    def current_max(self, prefix: str) -> int:
        """Highest number reserved so far for prefix (0 if none)."""
        ...

    def reserve(self, reference: str) -> bool:
        """Insert-if-absent. False if the reference is already taken."""
        ...


class InMemoryReferenceReserver:
    def __init__(self) -> None:
        self._taken: set[str] = set()
        self._lock = threading.Lock()

    def current_max(self, prefix: str) -> int:
        with self._lock:
            numbers = [parse_reference_number(ref, prefix) for ref in self._taken]
        return max((n for n in numbers if n is not None), default=0)

    def reserve(self, reference: str) -> bool:
        with self._lock:
            if reference in self._taken:
                return False
            self._taken.add(reference)
            return True


class ReferenceAllocator:
    """Allocates unique references under concurrent callers."""

    def __init__(self, reserver: ReferenceReserver, max_attempts: int = MAX_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._reserver = reserver
        self._max_attempts = max_attempts

    def allocate(self, prefix: str) -> str:
        """Reserve and return the next free reference for prefix.

        Raises:
            AllocationError: If every attempt collided.
        """
        candidate = self._reserver.current_max(prefix) + 1

        for attempt in range(self._max_attempts):
            reference = format_reference(prefix, candidate)
            if self._reserver.reserve(reference):
                if attempt:
                    logger.info(
                        "reference reserved after collision",
                        extra={
                            "extra_fields": safe_log_context(
                                correlationId=get_correlation_id(),
                                prefix=prefix,
                                attempts=attempt + 1,
                            )
                        },
                    )
                return reference
            # Skip everything reserved by the racers that beat us
            candidate = max(candidate + 1, self._reserver.current_max(prefix) + 1)

        logger.error(
            "reference allocation exhausted",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    prefix=prefix,
                    attempts=self._max_attempts,
                )
            },
        )
        raise AllocationError(f"no free {prefix} reference after {self._max_attempts} attempts")
