"""Process-local CaseStore for development, tests and single-node demos."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Iterable

from civicline.domain.cases import (
    REFERENCE_PATTERN,
    CaseDraft,
    CaseRecord,
    Department,
)
from civicline.domain.ports import PersistenceError
from civicline.infra.clock import Clock, utc_now

DEFAULT_DEPARTMENTS: tuple[Department, ...] = (
    Department("revenue", "Revenue Department", "Revenue collection, tax assessment and financial management"),
    Department("health", "Health Department", "Public health services, hospitals and health programs"),
    Department("water", "Water Supply Department", "Water supply, sanitation and water conservation"),
    Department("education", "Education Department", "Schools, colleges and educational programs"),
    Department("agriculture", "Agriculture Department", "Agricultural development and farmer welfare"),
    Department("pwd", "Public Works Department", "Roads, infrastructure and public construction"),
    Department("welfare", "Social Welfare Department", "Social security and welfare schemes"),
    Department("urban", "Urban Development Department", "Urban planning and municipal services"),
)


class InMemoryCaseStore:
    def __init__(
        self,
        departments: Iterable[Department] = DEFAULT_DEPARTMENTS,
        clock: Clock = utc_now,
    ) -> None:
        self._departments = {d.id: d for d in departments}
        self._cases: list[CaseRecord] = []
        self._clock = clock
        self._lock = threading.Lock()

    def create_case(self, draft: CaseDraft) -> CaseRecord:
        if not draft.reference or not REFERENCE_PATTERN.match(draft.reference):
            raise PersistenceError("case draft has no valid reference")

        record = CaseRecord(
            reference=draft.reference,
            case_type=draft.case_type,
            citizen_name=draft.citizen_name,
            citizen_phone=draft.citizen_phone,
            status="PENDING",
            created_at=self._clock(),
            department_id=draft.department_id,
            category=draft.category,
            description=draft.description,
            media_ref=draft.media_ref,
            purpose=draft.purpose,
            appointment_date=draft.appointment_date,
            appointment_time=draft.appointment_time,
            language=draft.language,
        )
        with self._lock:
            if any(c.reference == record.reference for c in self._cases):
                raise PersistenceError(f"duplicate reference {record.reference}")
            self._cases.append(record)
        return record

    def find_case_by_reference(self, reference: str) -> CaseRecord | None:
        wanted = reference.strip().upper()
        with self._lock:
            for record in self._cases:
                if record.reference.upper() == wanted:
                    return record
        return None

    def find_case_by_phone(self, phone: str, most_recent: bool = True) -> CaseRecord | None:
        with self._lock:
            matches = [c for c in self._cases if c.citizen_phone == phone]
        if not matches:
            return None
        # Stable sort keeps insertion order for equal timestamps
        matches.sort(key=lambda c: c.created_at)
        return matches[-1] if most_recent else matches[0]

    def find_department(self, department_id: str) -> Department | None:
        return self._departments.get(department_id)

    def list_departments(self, active_only: bool = True) -> list[Department]:
        departments = list(self._departments.values())
        if active_only:
            departments = [d for d in departments if d.is_active]
        return departments

    def set_status(self, reference: str, status: str) -> None:
        """Staff-side status change; used by demos and tests."""
        with self._lock:
            for index, record in enumerate(self._cases):
                if record.reference == reference:
                    self._cases[index] = replace(record, status=status)
                    return
        raise KeyError(reference)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cases)
