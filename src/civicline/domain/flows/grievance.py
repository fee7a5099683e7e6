"""Grievance intake: name, department, description, optional photo, confirm."""

from __future__ import annotations

from civicline.domain.cases import FALLBACK_CATEGORY, CaseDraft, CaseSummary, CaseType
from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows.common import department_caption, department_list, resolve_department
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
from civicline.domain.parsing import clean_text, is_affirmative, is_negative, is_skip
from civicline.domain.sessions import Flow, Session, Step, fresh_session
from civicline.observability.logging import get_logger
from civicline.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

MIN_NAME_LENGTH = 2
MIN_DESCRIPTION_LENGTH = 10
DEPARTMENT_ID_PREFIX = "grv_dept_"
ATTACHMENT_TYPES = ("image", "document", "video")


def enter(session: Session, ctx: FlowContext) -> Transition:
    moved = session.moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_NAME, reset_collected=True)
    return Transition(moved, (SendText("grievance_intro"), SendText("grievance_name")))


def prompt(session: Session, ctx: FlowContext) -> tuple[Intent, ...]:
    """Question for the session's current step."""
    step = session.step
    if step == Step.GRIEVANCE_NAME.value:
        return (SendText("grievance_name"),)
    if step == Step.GRIEVANCE_DEPARTMENT.value:
        return (department_list(session, ctx, DEPARTMENT_ID_PREFIX),)
    if step == Step.GRIEVANCE_DESCRIPTION.value:
        return (SendText("grievance_description"),)
    if step == Step.GRIEVANCE_PHOTO.value:
        return (_photo_buttons(session, ctx),)
    return (_confirm_buttons(session, ctx),)


def handle(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    step = session.step
    if step == Step.GRIEVANCE_NAME.value:
        return _on_name(session, event, ctx)
    if step == Step.GRIEVANCE_DEPARTMENT.value:
        return _on_department(session, event, ctx)
    if step == Step.GRIEVANCE_DESCRIPTION.value:
        return _on_description(session, event, ctx)
    if step == Step.GRIEVANCE_PHOTO.value:
        return _on_photo(session, event, ctx)
    return _on_confirm(session, event, ctx)


def _on_name(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    name = clean_text(event.text) if event.kind == "text" else ""
    if len(name) < MIN_NAME_LENGTH:
        return Transition(session, (SendText("err_name_invalid"),))

    named = session.with_collected(citizen_name=name)
    if not ctx.departments:
        # Nothing to pick from: record the fallback and move on
        described = named.with_collected(department_id=None, category=FALLBACK_CATEGORY)
        return Transition(
            described.moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_DESCRIPTION),
            (SendText("grievance_description"),),
        )
    moved = named.moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_DEPARTMENT)
    return Transition(moved, (department_list(moved, ctx, DEPARTMENT_ID_PREFIX),))


def _on_department(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    token = event.token
    if not token:
        return Transition(session, (department_list(session, ctx, DEPARTMENT_ID_PREFIX),))

    department = resolve_department(token, ctx, DEPARTMENT_ID_PREFIX)
    if department is None:
        logger.warning(
            "grievance department not resolved, using fallback category",
            extra={
                "extra_fields": safe_log_context(
                    session=hash_identifier(session.session_key),
                    selection_length=len(token),
                )
            },
        )
        updated = session.with_collected(department_id=None, category=FALLBACK_CATEGORY)
    else:
        updated = session.with_collected(department_id=department.id, category=department.name)

    moved = updated.moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_DESCRIPTION)
    return Transition(moved, (SendText("grievance_description"),))


def _on_description(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    description = clean_text(event.text) if event.kind == "text" else ""
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return Transition(session, (SendText("err_description_short"),))

    moved = session.with_collected(description=description).moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_PHOTO)
    return Transition(moved, (_photo_buttons(moved, ctx),))


def _on_photo(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    if event.kind == "media" and event.media_ref and event.media_type in ATTACHMENT_TYPES:
        attached = session.with_collected(media_ref=event.media_ref)
        moved = attached.moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_CONFIRM)
        return Transition(moved, (_confirm_buttons(moved, ctx),))

    token = event.token
    if is_skip(token):
        moved = session.with_collected(media_ref=None).moved_to(Flow.GRIEVANCE, Step.GRIEVANCE_CONFIRM)
        return Transition(moved, (_confirm_buttons(moved, ctx),))
    if token == "photo_upload":
        return Transition(session, (SendText("msg_upload_photo"),))
    return Transition(session, (_photo_buttons(session, ctx),))


def _on_confirm(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    token = event.token
    cleared = fresh_session(session.session_key, session.last_activity_at)

    if is_affirmative(token):
        return Transition(cleared, submission_intents(session, event.phone, ctx))
    if is_negative(token):
        return Transition(cleared, (SendText("grievance_cancel"), ClearSession()))
    return Transition(session, (_confirm_buttons(session, ctx),))


def submission_intents(session: Session, phone: str, ctx: FlowContext) -> tuple[Intent, ...]:
    """Allocate, persist, notify, confirm, clear; in that order."""
    collected = session.collected
    draft = CaseDraft(
        case_type=CaseType.GRIEVANCE,
        citizen_name=collected["citizen_name"],
        citizen_phone=phone,
        language=session.language or ctx.default_language,
        department_id=collected.get("department_id"),
        category=collected.get("category") or FALLBACK_CATEGORY,
        description=collected.get("description"),
        media_ref=collected.get("media_ref"),
    )
    department = ctx.find_department(draft.department_id) if draft.department_id else None
    summary = CaseSummary(
        case_type=CaseType.GRIEVANCE,
        citizen_name=draft.citizen_name,
        department_id=draft.department_id,
        department_name=department.name if department else None,
        category=draft.category,
        detail=draft.description or "",
    )
    caption = department_caption(session, ctx, draft.department_id, draft.category)
    return (
        AllocateReference(draft.prefix),
        PersistCase(draft),
        Notify(summary),
        SendText("grievance_success", params={"department": caption}, critical=True, language=session.language),
        ClearSession(),
    )


def _photo_buttons(session: Session, ctx: FlowContext) -> SendButtons:
    return SendButtons(
        key="grievance_photo",
        buttons=(
            Button(id="photo_skip", title=ctx.text(session.language, "btn_skip_photo")),
            Button(id="photo_upload", title=ctx.text(session.language, "btn_upload_photo")),
        ),
    )


def _confirm_buttons(session: Session, ctx: FlowContext) -> SendButtons:
    collected = session.collected
    attachment_key = "label_attached" if collected.get("media_ref") else "label_not_attached"
    return SendButtons(
        key="grievance_confirm",
        buttons=(
            Button(id="confirm_yes", title=ctx.text(session.language, "btn_confirm_submit")),
            Button(id="confirm_no", title=ctx.text(session.language, "btn_cancel")),
        ),
        params={
            "name": collected.get("citizen_name", ""),
            "department": department_caption(
                session, ctx, collected.get("department_id"), collected.get("category") or FALLBACK_CATEGORY
            ),
            "description": collected.get("description", ""),
            "attachment": ctx.text(session.language, attachment_key),
        },
    )
