"""Read-only inputs the flow router needs besides the session and the event.

The dispatcher builds one FlowContext per event, before entering the router,
so flow code can stay free of I/O and clock reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from civicline.domain.cases import Department
from civicline.domain.localization import DEFAULT_LANGUAGE, Localizer

DEFAULT_TIME_SLOTS = ("10:00", "14:00", "16:00")
OFFERED_DAYS = 3


@dataclass(frozen=True)
class FlowContext:
    """Snapshot of deployment configuration and reference data.

    Attributes:
        enabled_modules: Capabilities switched on for this deployment.
        departments: Active departments, in display order.
        today: Local calendar date, used to offer appointment dates.
        time_slots: Appointment slots offered for any date.
        localizer: Resolves button and list captions.
        default_language: Language used before the citizen picks one.
    """

    enabled_modules: frozenset[str]
    departments: tuple[Department, ...] = ()
    today: date = field(default_factory=date.today)
    time_slots: tuple[str, ...] = DEFAULT_TIME_SLOTS
    localizer: Localizer = field(default_factory=Localizer)
    default_language: str = DEFAULT_LANGUAGE

    def is_enabled(self, module: str) -> bool:
        return module.upper() in self.enabled_modules

    @property
    def any_enabled(self) -> bool:
        return bool(self.enabled_modules)

    def find_department(self, department_id: str) -> Department | None:
        wanted = department_id.strip().lower()
        for department in self.departments:
            if department.id.lower() == wanted:
                return department
        return None

    def text(self, language: str | None, key: str, **params) -> str:
        return self.localizer.text(language or self.default_language, key, **params)
