"""Status tracking and the follow-up navigation that comes after it.

The router only asks for a lookup (LookupCase); the dispatcher performs it
and calls `render_lookup` to turn the result into messages.
"""

from __future__ import annotations

from civicline.domain.cases import STATUS_EMOJI, CaseRecord, CaseType, Department
from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows import menu
from civicline.domain.intents import Button, Intent, LookupCase, SendButtons, SendText, Transition
from civicline.domain.localization import Localizer
from civicline.domain.parsing import normalize_reference
from civicline.domain.sessions import Flow, Session

TRACK_ANOTHER = "track_another"
MAIN_MENU = "main_menu"
MAX_DESCRIPTION_LENGTH = 100

_TRACK_TOKENS = frozenset({TRACK_ANOTHER, "track"})
_MENU_TOKENS = frozenset({MAIN_MENU, "menu_back"})


def enter(session: Session, ctx: FlowContext) -> Transition:
    moved = session.moved_to(Flow.TRACK_STATUS, reset_collected=True)
    return Transition(moved, (SendText("track_prompt"),))


def handle(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    query = normalize_reference(event.text) if event.kind == "text" else ""
    if not query:
        return Transition(session, (SendText("track_prompt"),))
    moved = session.moved_to(Flow.AWAITING_NEXT_ACTION)
    return Transition(moved, (LookupCase(query=query, phone=event.phone),))


def handle_next_action(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    token = event.token
    if token in _TRACK_TOKENS:
        return enter(session, ctx)
    if token in _MENU_TOKENS:
        return menu.enter(session, ctx)
    return Transition(session, (navigation(session.language, ctx.localizer),))


def navigation(language: str | None, localizer: Localizer) -> SendButtons:
    return SendButtons(
        key="nav_prompt",
        buttons=(
            Button(id=TRACK_ANOTHER, title=localizer.text(language, "nav_track_another")),
            Button(id=MAIN_MENU, title=localizer.text(language, "nav_main_menu")),
        ),
    )


def render_lookup(
    record: CaseRecord | None,
    department: Department | None,
    query: str,
    language: str | None,
    localizer: Localizer,
) -> tuple[Intent, ...]:
    """Status card (or not-found notice) followed by the navigation buttons."""
    if record is None:
        card = SendText("err_no_record_found", params={"reference": query})
    else:
        card = status_card(record, department, language, localizer)
    return (card, navigation(language, localizer))


def status_card(
    record: CaseRecord,
    department: Department | None,
    language: str | None,
    localizer: Localizer,
) -> SendText:
    if department is not None:
        department_label = localizer.department_name(language, department.name)
    else:
        department_label = localizer.text(language, "label_placeholder_dept")

    status_label = localizer.resolve(language, f"status_{record.status}")
    if status_label is None:
        status_label = f"{STATUS_EMOJI.get(record.status, '📌')} {record.status}"

    if record.case_type is CaseType.APPOINTMENT:
        return SendText(
            "status_card_appointment",
            params={
                "reference": record.reference,
                "date": record.appointment_date.strftime("%d %b %Y") if record.appointment_date else "-",
                "time": record.appointment_time or "-",
                "department": department_label,
                "name": record.citizen_name,
                "status": status_label,
                "purpose": _truncate(record.purpose or "-"),
            },
        )
    return SendText(
        "status_card_grievance",
        params={
            "reference": record.reference,
            "created": record.created_at.strftime("%d %b %Y"),
            "department": department_label,
            "category": record.category or "-",
            "status": status_label,
            "description": _truncate(record.description or "-"),
        },
    )


def _truncate(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."
