"""Building blocks shared by the flow definitions."""

from __future__ import annotations

from typing import Sequence

from civicline.domain.context import FlowContext
from civicline.domain.intents import (
    MAX_BUTTONS,
    MAX_LIST_ROWS,
    Button,
    ListRow,
    ListSection,
    SendButtons,
    SendList,
)
from civicline.domain.sessions import Session


def choices(
    session: Session,
    ctx: FlowContext,
    key: str,
    options: Sequence[tuple[str, str]],
    button_label_key: str = "btn_select_dept",
    **params,
) -> SendButtons | SendList:
    """(id, title) options as buttons when they fit, else as a single-section list."""
    if len(options) <= MAX_BUTTONS:
        buttons = tuple(Button(id=option_id, title=title) for option_id, title in options)
        return SendButtons(key=key, buttons=buttons, params=params)
    rows = tuple(ListRow(id=option_id, title=title) for option_id, title in options[:MAX_LIST_ROWS])
    label = ctx.text(session.language, button_label_key)
    return SendList(key=key, button_label=label, sections=(ListSection(title=label, rows=rows),), params=params)


def department_list(session: Session, ctx: FlowContext, id_prefix: str) -> SendList:
    """Department picker; ids are `<id_prefix><department id>`."""
    localizer = ctx.localizer
    language = session.language
    rows = tuple(
        ListRow(
            id=f"{id_prefix}{department.id}",
            title=localizer.department_name(language, department.name),
            description=localizer.department_description(language, department.name, department.description),
        )
        for department in ctx.departments[:MAX_LIST_ROWS]
    )
    label = ctx.text(language, "btn_select_dept")
    return SendList(
        key="selection_department",
        button_label=label,
        sections=(ListSection(title=label, rows=rows),),
    )


def resolve_department(token: str, ctx: FlowContext, id_prefix: str):
    """Department picked by list id, bare id, or 1-based position."""
    raw = token[len(id_prefix):] if token.startswith(id_prefix) else token
    department = ctx.find_department(raw) if raw else None
    if department is None and raw.isdigit():
        index = int(raw) - 1
        if 0 <= index < min(len(ctx.departments), MAX_LIST_ROWS):
            department = ctx.departments[index]
    return department


def department_caption(session: Session, ctx: FlowContext, department_id: str | None, fallback: str) -> str:
    department = ctx.find_department(department_id) if department_id else None
    if department is None:
        return fallback
    return ctx.localizer.department_name(session.language, department.name)
