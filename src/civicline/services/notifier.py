"""Department notifications for newly created cases."""

from __future__ import annotations

from civicline.domain.cases import CaseSummary, CaseType
from civicline.domain.localization import DEFAULT_LANGUAGE, Localizer
from civicline.domain.ports import CaseStore, Messenger
from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import safe_log_context

logger = get_logger(__name__)


class MessengerNotifier:
    """Sends a WhatsApp summary to the department's contact phone.

    Departments without a contact phone are skipped. Staff messages are
    always in the default language.
    """

    def __init__(
        self,
        cases: CaseStore,
        messenger: Messenger,
        localizer: Localizer | None = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._cases = cases
        self._messenger = messenger
        self._localizer = localizer or Localizer()
        self._language = language

    def notify_on_creation(self, summary: CaseSummary) -> None:
        correlation_id = get_correlation_id()
        department = self._cases.find_department(summary.department_id) if summary.department_id else None
        if department is None or not department.contact_phone:
            logger.info(
                "no department contact, notification skipped",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        reference=summary.reference,
                        has_department=department is not None,
                    )
                },
            )
            return

        delivered = self._messenger.send_text(department.contact_phone, self.render(summary))
        log = logger.info if delivered else logger.warning
        log(
            "department notified" if delivered else "department notification not delivered",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    reference=summary.reference,
                    department_id=department.id,
                )
            },
        )

    def render(self, summary: CaseSummary) -> str:
        if summary.case_type is CaseType.APPOINTMENT:
            return self._localizer.text(
                self._language,
                "notify_new_appointment",
                reference=summary.reference or "-",
                name=summary.citizen_name,
                date=summary.appointment_date.isoformat() if summary.appointment_date else "-",
                time=summary.appointment_time or "-",
                detail=summary.detail,
            )
        return self._localizer.text(
            self._language,
            "notify_new_grievance",
            reference=summary.reference or "-",
            name=summary.citizen_name,
            category=summary.category or "-",
            detail=summary.detail,
        )
