"""Per-citizen conversation state and the session store contract.

A Session is replaced, never edited: flow code derives a new Session with
`moved_to` / `with_collected`, and only the dispatcher writes it back to the
store.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Protocol

from civicline.infra.clock import Clock, utc_now

DEFAULT_SESSION_TTL = timedelta(minutes=30)


class Flow(str, Enum):
    NONE = "NONE"
    LANGUAGE_SELECT = "LANGUAGE_SELECT"
    MAIN_MENU = "MAIN_MENU"
    GRIEVANCE = "GRIEVANCE"
    APPOINTMENT = "APPOINTMENT"
    TRACK_STATUS = "TRACK_STATUS"
    AWAITING_NEXT_ACTION = "AWAITING_NEXT_ACTION"


class Step(str, Enum):
    GRIEVANCE_NAME = "GRIEVANCE_NAME"
    GRIEVANCE_DEPARTMENT = "GRIEVANCE_DEPARTMENT"
    GRIEVANCE_DESCRIPTION = "GRIEVANCE_DESCRIPTION"
    GRIEVANCE_PHOTO = "GRIEVANCE_PHOTO"
    GRIEVANCE_CONFIRM = "GRIEVANCE_CONFIRM"
    APPOINTMENT_DEPARTMENT = "APPOINTMENT_DEPARTMENT"
    APPOINTMENT_NAME = "APPOINTMENT_NAME"
    APPOINTMENT_PURPOSE = "APPOINTMENT_PURPOSE"
    APPOINTMENT_DATE = "APPOINTMENT_DATE"
    APPOINTMENT_TIME = "APPOINTMENT_TIME"
    APPOINTMENT_CONFIRM = "APPOINTMENT_CONFIRM"


# "" is the only valid step for flows without sub-states
STEPS_BY_FLOW: dict[Flow, frozenset[str]] = {
    Flow.NONE: frozenset({""}),
    Flow.LANGUAGE_SELECT: frozenset({""}),
    Flow.MAIN_MENU: frozenset({""}),
    Flow.GRIEVANCE: frozenset(s.value for s in Step if s.value.startswith("GRIEVANCE_")),
    Flow.APPOINTMENT: frozenset(s.value for s in Step if s.value.startswith("APPOINTMENT_")),
    Flow.TRACK_STATUS: frozenset({""}),
    Flow.AWAITING_NEXT_ACTION: frozenset({""}),
}


class InvalidSessionState(ValueError):
    """Raised when a step does not belong to the session's flow."""


@dataclass(frozen=True)
class Session:
    """Conversation state for one citizen.

    Attributes:
        session_key: Tenant-scoped citizen identity.
        language: Chosen language code, None until the citizen picks one.
        flow: Current top-level flow.
        step: Flow-scoped sub-state ("" for flows without steps).
        collected: Fields entered so far, in entry order.
        last_activity_at: Last time an event was applied (drives TTL).
    """

    session_key: str
    language: str | None = None
    flow: Flow = Flow.NONE
    step: str = ""
    collected: Mapping[str, Any] = field(default_factory=dict)
    last_activity_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.validate()
        # Freeze the bag so flow code cannot mutate it behind the store's back
        if not isinstance(self.collected, MappingProxyType):
            object.__setattr__(self, "collected", MappingProxyType(dict(self.collected)))

    def validate(self) -> None:
        allowed = STEPS_BY_FLOW[self.flow]
        if self.step not in allowed:
            raise InvalidSessionState(f"step {self.step!r} is not valid for flow {self.flow.value}")

    def moved_to(
        self,
        flow: Flow,
        step: Step | str = "",
        *,
        reset_collected: bool = False,
    ) -> Session:
        """Copy positioned at (flow, step); optionally dropping collected fields."""
        step_value = step.value if isinstance(step, Step) else step
        collected = {} if reset_collected else dict(self.collected)
        return replace(self, flow=flow, step=step_value, collected=collected)

    def with_collected(self, **fields: Any) -> Session:
        merged = dict(self.collected)
        merged.update(fields)
        return replace(self, collected=merged)

    def with_language(self, language: str) -> Session:
        return replace(self, language=language)

    def touched(self, at: datetime) -> Session:
        return replace(self, last_activity_at=at)

    def is_expired(self, now: datetime, ttl: timedelta = DEFAULT_SESSION_TTL) -> bool:
        return now - self.last_activity_at >= ttl

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_key": self.session_key,
            "language": self.language,
            "flow": self.flow.value,
            "step": self.step,
            "collected": dict(self.collected),
            "last_activity_at": self.last_activity_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Session:
        return cls(
            session_key=data["session_key"],
            language=data.get("language"),
            flow=Flow(data.get("flow", Flow.NONE.value)),
            step=data.get("step", ""),
            collected=dict(data.get("collected") or {}),
            last_activity_at=datetime.fromisoformat(data["last_activity_at"]),
        )


def fresh_session(session_key: str, now: datetime) -> Session:
    return Session(session_key=session_key, last_activity_at=now)


class SessionStore(Protocol):
    """Storage contract for sessions. Expired sessions read as absent."""

    def get(self, session_key: str) -> Session:
        """Return the live session, or a fresh NONE session if absent/expired."""
        ...

    def put(self, session_key: str, session: Session) -> None:
        ...

    def clear(self, session_key: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local session store with lazy TTL expiry.

    Thread-safe for individual operations; read-modify-write sequences on one
    key must be serialized by the caller (the dispatcher does this).
    """

    def __init__(self, ttl: timedelta = DEFAULT_SESSION_TTL, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def get(self, session_key: str) -> Session:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_key)
            if session is not None and session.is_expired(now, self._ttl):
                del self._sessions[session_key]
                session = None
        return session if session is not None else fresh_session(session_key, now)

    def put(self, session_key: str, session: Session) -> None:
        if session.session_key != session_key:
            raise ValueError("session belongs to a different key")
        with self._lock:
            self._sessions[session_key] = session

    def clear(self, session_key: str) -> None:
        with self._lock:
            self._sessions.pop(session_key, None)

    def sweep(self) -> int:
        """Drop expired sessions. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, s in self._sessions.items() if s.is_expired(now, self._ttl)]
            for key in expired:
                del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
