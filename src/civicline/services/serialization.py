"""Per-key mutual exclusion with FIFO admission.

Each webhook delivery runs in its own worker thread. Events that share a
session key must not interleave their load-transition-store cycle, so every
key gets a ticket queue: a caller waits until its ticket reaches the head.
Different keys never wait on each other.
"""

from __future__ import annotations

import threading
from collections import deque
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

T = TypeVar("T")


class KeyedSerializer:
    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._queues: dict[str, deque[object]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Block until every earlier holder of key has finished."""
        ticket = object()
        with self._cond:
            queue = self._queues.setdefault(key, deque())
            queue.append(ticket)
            while queue[0] is not ticket:
                self._cond.wait()
        try:
            yield
        finally:
            with self._cond:
                queue.popleft()
                if not queue:
                    del self._queues[key]
                self._cond.notify_all()

    def run(self, key: str, fn: Callable[[], T]) -> T:
        with self.hold(key):
            return fn()

    def pending(self, key: str) -> int:
        """Holders plus waiters currently queued for key."""
        with self._cond:
            queue = self._queues.get(key)
            return len(queue) if queue else 0

    def active_keys(self) -> int:
        with self._cond:
            return len(self._queues)
