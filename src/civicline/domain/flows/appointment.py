"""Appointment booking: department, name, purpose, date, time, confirm."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from civicline.domain.cases import CaseDraft, CaseSummary, CaseType
from civicline.domain.context import OFFERED_DAYS, FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows import menu
from civicline.domain.flows.common import choices, department_caption, department_list, resolve_department
from civicline.domain.intents import (
    AllocateReference,
    Button,
    ClearSession,
    Intent,
    Notify,
    PersistCase,
    SendButtons,
    SendText,
    Transition,
)
from civicline.domain.parsing import clean_text, is_affirmative, is_negative, ordinal, strip_prefix
from civicline.domain.sessions import Flow, Session, Step, fresh_session

MIN_NAME_LENGTH = 2
MIN_PURPOSE_LENGTH = 5
DEPARTMENT_ID_PREFIX = "dept_"
DATE_ID_PREFIX = "date_"
TIME_ID_PREFIX = "time_"


def offered_dates(today: date, days: int = OFFERED_DAYS) -> list[str]:
    """ISO dates of the next `days` calendar days, today excluded."""
    return [(today + timedelta(days=offset)).isoformat() for offset in range(1, days + 1)]


def date_title(iso_date: str) -> str:
    return date.fromisoformat(iso_date).strftime("%a, %d %b")


def slot_title(slot: str) -> str:
    return datetime.strptime(slot, "%H:%M").strftime("%I:%M %p").lstrip("0")


def enter(session: Session, ctx: FlowContext) -> Transition:
    if not ctx.departments:
        return menu.enter(session, ctx, SendText("msg_no_dept"))
    moved = session.moved_to(Flow.APPOINTMENT, Step.APPOINTMENT_DEPARTMENT, reset_collected=True)
    return Transition(moved, (SendText("appointment_book"), department_list(moved, ctx, DEPARTMENT_ID_PREFIX)))


def prompt(session: Session, ctx: FlowContext) -> tuple[Intent, ...]:
    """Question for the session's current step."""
    step = session.step
    if step == Step.APPOINTMENT_DEPARTMENT.value:
        return (department_list(session, ctx, DEPARTMENT_ID_PREFIX),)
    if step == Step.APPOINTMENT_NAME.value:
        return (_name_prompt(session, ctx),)
    if step == Step.APPOINTMENT_PURPOSE.value:
        return (SendText("appointment_purpose"),)
    if step == Step.APPOINTMENT_DATE.value:
        return (_date_choices(session, ctx),)
    if step == Step.APPOINTMENT_TIME.value:
        return (_time_choices(session, ctx),)
    return (_confirm_buttons(session, ctx),)


def handle(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    step = session.step
    if step == Step.APPOINTMENT_DEPARTMENT.value:
        return _on_department(session, event, ctx)
    if step == Step.APPOINTMENT_NAME.value:
        return _on_name(session, event, ctx)
    if step == Step.APPOINTMENT_PURPOSE.value:
        return _on_purpose(session, event, ctx)
    if step == Step.APPOINTMENT_DATE.value:
        return _on_date(session, event, ctx)
    if step == Step.APPOINTMENT_TIME.value:
        return _on_time(session, event, ctx)
    return _on_confirm(session, event, ctx)


def _on_department(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    department = resolve_department(event.token, ctx, DEPARTMENT_ID_PREFIX) if event.token else None
    if department is None:
        return Transition(
            session,
            (SendText("invalid_option"), department_list(session, ctx, DEPARTMENT_ID_PREFIX)),
        )
    moved = session.with_collected(department_id=department.id).moved_to(
        Flow.APPOINTMENT, Step.APPOINTMENT_NAME
    )
    return Transition(moved, (_name_prompt(moved, ctx),))


def _on_name(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    name = clean_text(event.text) if event.kind == "text" else ""
    if len(name) < MIN_NAME_LENGTH:
        return Transition(session, (SendText("err_name_invalid"),))
    moved = session.with_collected(citizen_name=name).moved_to(Flow.APPOINTMENT, Step.APPOINTMENT_PURPOSE)
    return Transition(moved, (SendText("appointment_purpose"),))


def _on_purpose(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    purpose = clean_text(event.text) if event.kind == "text" else ""
    if len(purpose) < MIN_PURPOSE_LENGTH:
        return Transition(session, (SendText("err_purpose_short"),))
    # The dates offered now are the only ones accepted at the next step
    moved = session.with_collected(purpose=purpose, offered_dates=offered_dates(ctx.today)).moved_to(
        Flow.APPOINTMENT, Step.APPOINTMENT_DATE
    )
    return Transition(moved, (_date_choices(moved, ctx),))


def _on_date(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    offered = list(session.collected.get("offered_dates") or [])
    token = event.token
    picked = strip_prefix(token, DATE_ID_PREFIX) or token
    if picked not in offered:
        index = ordinal(token, len(offered))
        picked = offered[index] if index is not None else None
    if picked is None:
        return Transition(session, (SendText("invalid_option"), _date_choices(session, ctx)))

    moved = session.with_collected(appointment_date=picked).moved_to(Flow.APPOINTMENT, Step.APPOINTMENT_TIME)
    return Transition(moved, (_time_choices(moved, ctx),))


def _on_time(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    token = event.token
    picked = strip_prefix(token, TIME_ID_PREFIX) or token
    if picked not in ctx.time_slots:
        index = ordinal(token, len(ctx.time_slots))
        picked = ctx.time_slots[index] if index is not None else None
    if picked is None:
        return Transition(session, (SendText("invalid_option"), _time_choices(session, ctx)))

    moved = session.with_collected(appointment_time=picked).moved_to(Flow.APPOINTMENT, Step.APPOINTMENT_CONFIRM)
    return Transition(moved, (_confirm_buttons(moved, ctx),))


def _on_confirm(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    token = event.token
    cleared = fresh_session(session.session_key, session.last_activity_at)

    if is_affirmative(token):
        return Transition(cleared, submission_intents(session, event.phone, ctx))
    if is_negative(token):
        return Transition(cleared, (SendText("appointment_cancel"), ClearSession()))
    return Transition(session, (_confirm_buttons(session, ctx),))


def submission_intents(session: Session, phone: str, ctx: FlowContext) -> tuple[Intent, ...]:
    """Allocate, persist, notify, confirm, clear; in that order."""
    collected = session.collected
    department = ctx.find_department(collected["department_id"])
    appointment_date = date.fromisoformat(collected["appointment_date"])
    draft = CaseDraft(
        case_type=CaseType.APPOINTMENT,
        citizen_name=collected["citizen_name"],
        citizen_phone=phone,
        language=session.language or ctx.default_language,
        department_id=collected["department_id"],
        category=department.name if department else None,
        purpose=collected.get("purpose"),
        appointment_date=appointment_date,
        appointment_time=collected["appointment_time"],
    )
    summary = CaseSummary(
        case_type=CaseType.APPOINTMENT,
        citizen_name=draft.citizen_name,
        department_id=draft.department_id,
        department_name=department.name if department else None,
        category=draft.category,
        detail=draft.purpose or "",
        appointment_date=appointment_date,
        appointment_time=draft.appointment_time,
    )
    params = {
        "department": department_caption(session, ctx, draft.department_id, draft.category or ""),
        "date": date_title(collected["appointment_date"]),
        "time": slot_title(draft.appointment_time),
    }
    return (
        AllocateReference(draft.prefix),
        PersistCase(draft),
        Notify(summary),
        SendText("appointment_success", params=params, critical=True, language=session.language),
        ClearSession(),
    )


def _name_prompt(session: Session, ctx: FlowContext) -> SendText:
    caption = department_caption(session, ctx, session.collected.get("department_id"), "")
    return SendText("appointment_name", params={"department": caption})


def _date_choices(session: Session, ctx: FlowContext):
    offered = session.collected.get("offered_dates") or offered_dates(ctx.today)
    options = [(f"{DATE_ID_PREFIX}{iso}", date_title(iso)) for iso in offered]
    return choices(session, ctx, "label_select_date", options)


def _time_choices(session: Session, ctx: FlowContext):
    options = [(f"{TIME_ID_PREFIX}{slot}", slot_title(slot)) for slot in ctx.time_slots]
    return choices(session, ctx, "label_select_time", options)


def _confirm_buttons(session: Session, ctx: FlowContext) -> SendButtons:
    collected = session.collected
    return SendButtons(
        key="appointment_confirm",
        buttons=(
            Button(id="appt_confirm_yes", title=ctx.text(session.language, "btn_confirm_book")),
            Button(id="appt_confirm_no", title=ctx.text(session.language, "btn_cancel")),
        ),
        params={
            "name": collected.get("citizen_name", ""),
            "department": department_caption(session, ctx, collected.get("department_id"), ""),
            "purpose": collected.get("purpose", ""),
            "date": date_title(collected["appointment_date"]) if collected.get("appointment_date") else "",
            "time": slot_title(collected["appointment_time"]) if collected.get("appointment_time") else "",
        },
    )
