"""Tests for department notifications."""

from datetime import date

from civicline.domain.cases import CaseSummary, CaseType
from civicline.infra.memory_stores import InMemoryCaseStore
from civicline.services import notifier as notifier_module
from civicline.services.notifier import MessengerNotifier

from helpers import DEPARTMENTS, FakeMessenger, LogRecorder


def _grievance(department_id="health"):
    return CaseSummary(
        case_type=CaseType.GRIEVANCE,
        citizen_name="Ravi Kumar",
        department_id=department_id,
        department_name="Health Department",
        category="Health Department",
        detail="No doctor available at the PHC",
        reference="GRV00000007",
    )


class TestMessengerNotifier:
    def test_sends_to_department_contact(self):
        messenger = FakeMessenger()
        MessengerNotifier(InMemoryCaseStore(DEPARTMENTS), messenger).notify_on_creation(_grievance())

        (sent,) = messenger.sent
        assert sent["to"] == "910000000001"
        assert "GRV00000007" in sent["body"]
        assert "Ravi Kumar" in sent["body"]
        assert "No doctor available at the PHC" in sent["body"]

    def test_department_without_contact_is_skipped(self):
        messenger = FakeMessenger()
        MessengerNotifier(InMemoryCaseStore(DEPARTMENTS), messenger).notify_on_creation(_grievance("water"))
        assert messenger.sent == []

    def test_no_department_is_skipped(self):
        messenger = FakeMessenger()
        MessengerNotifier(InMemoryCaseStore(DEPARTMENTS), messenger).notify_on_creation(_grievance(None))
        assert messenger.sent == []

    def test_undelivered_is_logged_as_warning(self, monkeypatch):
        recorder = LogRecorder()
        monkeypatch.setattr(notifier_module, "logger", recorder)
        messenger = FakeMessenger(fail_always=True)

        MessengerNotifier(InMemoryCaseStore(DEPARTMENTS), messenger).notify_on_creation(_grievance())

        assert recorder.levels() == ["warning"]
        assert "Ravi Kumar" not in recorder.get_all_logged_content()

    def test_appointment_message(self):
        summary = CaseSummary(
            case_type=CaseType.APPOINTMENT,
            citizen_name="Asha Patil",
            department_id="health",
            department_name="Health Department",
            category="Health Department",
            detail="Birth certificate",
            reference="APT00000003",
            appointment_date=date(2026, 1, 16),
            appointment_time="14:00",
        )
        body = MessengerNotifier(InMemoryCaseStore(DEPARTMENTS), FakeMessenger()).render(summary)
        assert body.startswith("📢 *New Appointment Request*")
        assert "2026-01-16" in body
        assert "14:00" in body
