"""Collaborator interfaces the engine depends on.

Implementations live in civicline.infra (memory, postgres) and
civicline.whatsapp / civicline.services (outbound, notifications).
"""

from typing import Protocol, Sequence

from civicline.domain.cases import CaseDraft, CaseRecord, CaseSummary, Department
from civicline.domain.intents import Button, ListSection


class PersistenceError(Exception):
    """Raised when a case cannot be committed to storage."""

    pass


class CaseStore(Protocol):
    def create_case(self, draft: CaseDraft) -> CaseRecord:
        """Commit a case. Raises PersistenceError if it was not stored."""
        ...

    def find_case_by_reference(self, reference: str) -> CaseRecord | None:
        ...

    def find_case_by_phone(self, phone: str, most_recent: bool = True) -> CaseRecord | None:
        ...

    def find_department(self, department_id: str) -> Department | None:
        ...

    def list_departments(self, active_only: bool = True) -> list[Department]:
        ...


class Messenger(Protocol):
    """Outbound chat delivery. Each call returns True if the provider accepted it."""

    def send_text(self, to: str, body: str) -> bool:
        ...

    def send_buttons(self, to: str, body: str, buttons: Sequence[Button]) -> bool:
        ...

    def send_list(
        self,
        to: str,
        body: str,
        button_label: str,
        sections: Sequence[ListSection],
    ) -> bool:
        ...


class Notifier(Protocol):
    def notify_on_creation(self, summary: CaseSummary) -> None:
        ...
