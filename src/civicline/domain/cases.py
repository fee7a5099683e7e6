"""Case value types exchanged with the persistence collaborator.

The engine never stores cases itself: it builds a CaseDraft at submission and
hands it to the CaseStore.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum


class CaseType(str, Enum):
    GRIEVANCE = "GRIEVANCE"
    APPOINTMENT = "APPOINTMENT"


REFERENCE_PREFIXES: dict[CaseType, str] = {
    CaseType.GRIEVANCE: "GRV",
    CaseType.APPOINTMENT: "APT",
}

REFERENCE_DIGITS = 8
REFERENCE_PATTERN = re.compile(r"^(GRV|APT)(\d{8})$")

# Recorded when a grievance department selection does not resolve
FALLBACK_CATEGORY = "General"

GRIEVANCE_STATUSES = ("PENDING", "ASSIGNED", "IN_PROGRESS", "RESOLVED", "CLOSED")
APPOINTMENT_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "COMPLETED")

STATUS_EMOJI: dict[str, str] = {
    "PENDING": "⏳",
    "ASSIGNED": "📋",
    "IN_PROGRESS": "🔄",
    "RESOLVED": "✅",
    "CLOSED": "✔️",
    "CONFIRMED": "✅",
    "CANCELLED": "❌",
    "COMPLETED": "✔️",
}


def format_reference(prefix: str, number: int) -> str:
    """GRV + 42 -> GRV00000042."""
    if number < 1:
        raise ValueError("reference numbers start at 1")
    return f"{prefix}{number:0{REFERENCE_DIGITS}d}"


def parse_reference_number(reference: str, prefix: str) -> int | None:
    """Numeric part of a well-formed reference with the given prefix."""
    match = REFERENCE_PATTERN.match(reference)
    if match is None or match.group(1) != prefix:
        return None
    return int(match.group(2))


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    description: str = ""
    is_active: bool = True
    contact_phone: str | None = None


@dataclass(frozen=True)
class CaseDraft:
    """Submission payload built from a session's collected fields."""

    case_type: CaseType
    citizen_name: str
    citizen_phone: str
    language: str
    department_id: str | None = None
    category: str | None = None
    description: str | None = None
    media_ref: str | None = None
    purpose: str | None = None
    appointment_date: date | None = None
    appointment_time: str | None = None
    reference: str | None = None

    @property
    def prefix(self) -> str:
        return REFERENCE_PREFIXES[self.case_type]

    def with_reference(self, reference: str) -> CaseDraft:
        return replace(self, reference=reference)


@dataclass(frozen=True)
class CaseRecord:
    """A persisted grievance or appointment as returned by the CaseStore."""

    reference: str
    case_type: CaseType
    citizen_name: str
    citizen_phone: str
    status: str
    created_at: datetime
    department_id: str | None = None
    category: str | None = None
    description: str | None = None
    media_ref: str | None = None
    purpose: str | None = None
    appointment_date: date | None = None
    appointment_time: str | None = None
    language: str = "en"


@dataclass(frozen=True)
class CaseSummary:
    """What department staff are told about a new case. No citizen phone."""

    case_type: CaseType
    citizen_name: str
    department_id: str | None
    department_name: str | None
    category: str | None
    detail: str
    reference: str | None = None
    appointment_date: date | None = None
    appointment_time: str | None = None

    def with_reference(self, reference: str) -> CaseSummary:
        return replace(self, reference=reference)
