"""Dispatch orchestrator: one inbound event in, side effects out.

Per event:
1. claim the provider message id (duplicates stop here);
2. wait for the session key's turn (KeyedSerializer);
3. load the session, build the FlowContext, run the router;
4. execute the intents strictly in order;
5. store the next session, or drop it if the flow ended.

Allocation and case persistence are the critical path: if either fails the
session is cleared and the citizen gets a generic failure message. Outbound
and notification failures are logged and swallowed, except that the
submission confirmation is retried once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from civicline.domain.cases import CaseRecord, Department
from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows.tracking import render_lookup
from civicline.domain.idempotency import IdempotencyGuard
from civicline.domain.intents import (
    AllocateReference,
    ClearSession,
    Intent,
    LookupCase,
    Notify,
    PersistCase,
    SendButtons,
    SendList,
    SendText,
    Transition,
)
from civicline.domain.localization import Localizer
from civicline.domain.ports import CaseStore, Messenger, Notifier, PersistenceError
from civicline.domain.references import AllocationError, ReferenceAllocator
from civicline.domain.router import transition as route
from civicline.domain.sessions import Flow, Session, SessionStore, fresh_session
from civicline.infra.clock import Clock, local_today, utc_now
from civicline.infra.settings import PortalSettings
from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import hash_identifier, message_id_prefix, safe_log_context
from civicline.services.serialization import KeyedSerializer

logger = get_logger(__name__)

DispatchStatus = Literal["processed", "duplicate", "failed"]

SUBMISSION_ERROR_KEYS = {
    "GRV": "grievance_error",
    "APT": "appointment_error",
}

# Extra attempts for the confirmation the citizen is waiting on
CRITICAL_SEND_RETRIES = 1


class SubmissionFailed(Exception):
    """Critical-path failure while executing a submission's intents."""

    def __init__(self, prefix: str, cause: Exception) -> None:
        super().__init__(f"{prefix} submission failed: {type(cause).__name__}")
        self.prefix = prefix
        self.cause = cause


@dataclass
class DispatchResult:
    """What happened to one inbound event.

    Attributes:
        status: processed, duplicate (dropped by the idempotency guard) or
            failed (critical-path or unexpected error; session cleared).
        flow: Session flow after the event (NONE when the session was dropped).
        step: Session step after the event.
        reference: Reference allocated while handling the event, if any.
        confirmation_delivered: Whether the submission confirmation reached
            the messenger; None when no confirmation was due.
        sent: Localization keys of the outbound messages attempted, in order.
    """

    status: DispatchStatus
    flow: Flow | None = None
    step: str = ""
    reference: str | None = None
    confirmation_delivered: bool | None = None
    sent: list[str] = field(default_factory=list)


class Dispatcher:
    def __init__(
        self,
        settings: PortalSettings,
        sessions: SessionStore,
        guard: IdempotencyGuard,
        allocator: ReferenceAllocator,
        cases: CaseStore,
        messenger: Messenger,
        notifier: Notifier,
        localizer: Localizer | None = None,
        serializer: KeyedSerializer | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._sessions = sessions
        self._guard = guard
        self._allocator = allocator
        self._cases = cases
        self._messenger = messenger
        self._notifier = notifier
        self._localizer = localizer or Localizer(default_language=settings.default_language)
        self._serializer = serializer or KeyedSerializer()
        self._clock = clock

    @property
    def settings(self) -> PortalSettings:
        return self._settings

    @property
    def serializer(self) -> KeyedSerializer:
        return self._serializer

    def dispatch(self, event: InboundEvent) -> DispatchResult:
        """Process one inbound event exactly once."""
        correlation_id = get_correlation_id()

        if not self._guard.claim(event.message_id):
            logger.info(
                "duplicate message ignored",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        message_id_prefix=message_id_prefix(event.message_id),
                    )
                },
            )
            return DispatchResult(status="duplicate")

        return self._serializer.run(event.session_key, lambda: self._process(event))

    def _process(self, event: InboundEvent) -> DispatchResult:
        # Stands in for the stored session if loading it fails
        session = fresh_session(event.session_key, self._clock())
        result = DispatchResult(status="processed")

        try:
            session = self._sessions.get(event.session_key)
            ctx = self._context()
            transition = route(session, event, ctx)
            self._execute(session, transition, event, result)
        except SubmissionFailed as exc:
            logger.error(
                "submission failed",
                exc_info=exc.cause,
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        session=hash_identifier(event.session_key),
                        prefix=exc.prefix,
                        error_type=type(exc.cause).__name__,
                    )
                },
            )
            return self._fail(event, session, result, SUBMISSION_ERROR_KEYS.get(exc.prefix, "error_processing"))
        except Exception:
            logger.exception(
                "dispatch failed",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        session=hash_identifier(event.session_key),
                        flow=session.flow.value,
                        step=session.step,
                    )
                },
            )
            return self._fail(event, session, result, "error_processing")

        next_session = transition.session
        if next_session.flow is Flow.NONE:
            self._clear_quietly(event)
        else:
            try:
                self._sessions.put(event.session_key, next_session.touched(self._clock()))
            except Exception:
                logger.exception(
                    "session save failed",
                    extra={
                        "extra_fields": safe_log_context(
                            correlationId=get_correlation_id(),
                            session=hash_identifier(event.session_key),
                            flow=next_session.flow.value,
                        )
                    },
                )
                return self._fail(event, session, result, "error_processing")

        result.flow = next_session.flow
        result.step = next_session.step

        logger.info(
            "event dispatched",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    session=hash_identifier(event.session_key),
                    message_id_prefix=message_id_prefix(event.message_id),
                    kind=event.kind,
                    flow_before=session.flow.value,
                    flow=next_session.flow.value,
                    step=next_session.step,
                    intents=len(transition.intents),
                )
            },
        )
        return result

    def _context(self) -> FlowContext:
        settings = self._settings
        return FlowContext(
            enabled_modules=settings.enabled_modules,
            departments=tuple(self._cases.list_departments(active_only=True)),
            today=local_today(settings.timezone, self._clock()),
            time_slots=settings.appointment_slots,
            localizer=self._localizer,
            default_language=settings.default_language,
        )

    def _execute(
        self,
        session: Session,
        transition: Transition,
        event: InboundEvent,
        result: DispatchResult,
    ) -> None:
        language = transition.session.language or session.language
        bound: dict[str, Any] = {}
        prefix = ""

        for intent in transition.intents:
            if isinstance(intent, AllocateReference):
                prefix = intent.prefix
                try:
                    bound["reference"] = self._allocator.allocate(intent.prefix)
                except AllocationError as exc:
                    raise SubmissionFailed(prefix, exc) from exc
                result.reference = bound["reference"]
            elif isinstance(intent, PersistCase):
                prefix = prefix or intent.draft.prefix
                draft = intent.draft
                if "reference" in bound:
                    draft = draft.with_reference(bound["reference"])
                try:
                    self._cases.create_case(draft)
                except PersistenceError as exc:
                    raise SubmissionFailed(prefix, exc) from exc
            elif isinstance(intent, Notify):
                summary = intent.summary
                if "reference" in bound:
                    summary = summary.with_reference(bound["reference"])
                self._notify(summary, event)
            elif isinstance(intent, LookupCase):
                record, department = self._lookup(intent)
                for rendered in render_lookup(record, department, intent.query, language, self._localizer):
                    self._send(rendered, event, language, bound, result)
            elif isinstance(intent, ClearSession):
                self._clear_quietly(event)
            else:
                self._send(intent, event, language, bound, result)

    def _send(
        self,
        intent: Intent,
        event: InboundEvent,
        language: str | None,
        bound: dict[str, Any],
        result: DispatchResult,
    ) -> bool:
        if not isinstance(intent, (SendText, SendButtons, SendList)):
            raise TypeError(f"unexpected intent {type(intent).__name__}")

        if isinstance(intent, SendText) and intent.language:
            language = intent.language
        body = self._localizer.text(language, intent.key, **{**intent.params, **bound})
        result.sent.append(intent.key)

        critical = isinstance(intent, SendText) and intent.critical
        attempts = 1 + (CRITICAL_SEND_RETRIES if critical else 0)

        delivered = False
        for _ in range(attempts):
            delivered = self._deliver(intent, event.phone, body)
            if delivered:
                break

        if critical:
            result.confirmation_delivered = delivered
        if not delivered:
            log = logger.error if critical else logger.warning
            log(
                "outbound message not delivered",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        session=hash_identifier(event.session_key),
                        key=intent.key,
                        critical=critical,
                        attempts=attempts,
                    )
                },
            )
        return delivered

    def _deliver(self, intent: Intent, to: str, body: str) -> bool:
        try:
            if isinstance(intent, SendButtons):
                return self._messenger.send_buttons(to, body, intent.buttons)
            if isinstance(intent, SendList):
                return self._messenger.send_list(to, body, intent.button_label, intent.sections)
            return self._messenger.send_text(to, body)
        except Exception:
            logger.warning(
                "messenger raised",
                exc_info=True,
                extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
            )
            return False

    def _notify(self, summary, event: InboundEvent) -> None:
        try:
            self._notifier.notify_on_creation(summary)
        except Exception:
            logger.warning(
                "department notification failed",
                exc_info=True,
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        session=hash_identifier(event.session_key),
                        reference=summary.reference,
                    )
                },
            )

    def _lookup(self, intent: LookupCase) -> tuple[CaseRecord | None, Department | None]:
        try:
            record = self._cases.find_case_by_reference(intent.query)
            if record is None:
                record = self._cases.find_case_by_phone(intent.phone, most_recent=True)
            department = None
            if record is not None and record.department_id:
                department = self._cases.find_department(record.department_id)
        except Exception:
            # Lookup trouble reads as "no record" to the citizen
            logger.warning(
                "case lookup failed",
                exc_info=True,
                extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
            )
            return None, None
        return record, department

    def _fail(
        self,
        event: InboundEvent,
        session: Session,
        result: DispatchResult,
        key: str,
    ) -> DispatchResult:
        self._clear_quietly(event)
        self._send(SendText(key), event, session.language, {}, result)
        result.status = "failed"
        result.flow = Flow.NONE
        result.step = ""
        return result

    def _clear_quietly(self, event: InboundEvent) -> None:
        """Drop the session; a store failure leaves it to expire by TTL."""
        try:
            self._sessions.clear(event.session_key)
        except Exception:
            logger.exception(
                "session clear failed",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        session=hash_identifier(event.session_key),
                    )
                },
            )
