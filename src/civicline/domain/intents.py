"""Declarative side-effect instructions emitted by the flow router.

The router never performs I/O. It returns a Transition whose intents the
dispatcher executes afterwards, strictly in list order.

Outbound intents carry a localization key and params instead of rendered
text: the body is rendered at send time, once earlier intents have produced
their results (the allocated `reference`, for instance).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from civicline.domain.cases import CaseDraft, CaseSummary
from civicline.domain.sessions import Session

MAX_BUTTONS = 3
MAX_LIST_ROWS = 10


@dataclass(frozen=True)
class Button:
    id: str
    title: str


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str = ""


@dataclass(frozen=True)
class ListSection:
    title: str
    rows: tuple[ListRow, ...]


@dataclass(frozen=True)
class SendText:
    key: str
    params: Mapping[str, Any] = field(default_factory=dict)
    # Set on the submission confirmation the citizen is waiting for
    critical: bool = False
    # Overrides the session language, for replies sent after the session is gone
    language: str | None = None


@dataclass(frozen=True)
class SendButtons:
    key: str
    buttons: tuple[Button, ...]
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= len(self.buttons) <= MAX_BUTTONS:
            raise ValueError(f"button messages hold 1-{MAX_BUTTONS} buttons, got {len(self.buttons)}")


@dataclass(frozen=True)
class SendList:
    key: str
    button_label: str
    sections: tuple[ListSection, ...]
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AllocateReference:
    prefix: str


@dataclass(frozen=True)
class PersistCase:
    draft: CaseDraft


@dataclass(frozen=True)
class Notify:
    summary: CaseSummary


@dataclass(frozen=True)
class LookupCase:
    """Resolve a case by reference, else by the citizen's most recent record.

    The dispatcher renders the status card (or the no-record message) from the
    lookup result; the session position does not depend on the outcome.
    """

    query: str
    phone: str


@dataclass(frozen=True)
class ClearSession:
    pass


Intent = Union[
    SendText,
    SendButtons,
    SendList,
    AllocateReference,
    PersistCase,
    Notify,
    LookupCase,
    ClearSession,
]

OUTBOUND_INTENTS = (SendText, SendButtons, SendList)


@dataclass(frozen=True)
class Transition:
    """Result of applying one event to one session."""

    session: Session
    intents: tuple[Intent, ...] = ()

    @property
    def clears_session(self) -> bool:
        return any(isinstance(i, ClearSession) for i in self.intents)

    def outbound_keys(self) -> list[str]:
        """Localization keys of outbound intents, in emission order."""
        return [i.key for i in self.intents if isinstance(i, OUTBOUND_INTENTS)]
