"""Main menu: which services are offered and how a choice is recognized."""

from __future__ import annotations

from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows.common import choices
from civicline.domain.intents import Intent, SendText, Transition
from civicline.domain.parsing import ordinal
from civicline.domain.sessions import Flow, Session

GRIEVANCE = "grievance"
APPOINTMENT = "appointment"
TRACK = "track"
HELP = "help"

# Menu entry -> capability that must be enabled (None: always offered)
CAPABILITIES: dict[str, str | None] = {
    GRIEVANCE: "GRIEVANCE",
    APPOINTMENT: "APPOINTMENT",
    TRACK: None,
    HELP: None,
}

TITLE_KEYS = {
    GRIEVANCE: "menu_grievance",
    APPOINTMENT: "menu_appointment",
    TRACK: "menu_track",
    HELP: "menu_help",
}

ALIASES = {
    "grievance": GRIEVANCE,
    "complaint": GRIEVANCE,
    "appointment": APPOINTMENT,
    "book": APPOINTMENT,
    "track": TRACK,
    "status": TRACK,
    "help": HELP,
}


def offered(ctx: FlowContext) -> list[str]:
    """Menu entries in display order, disabled capabilities left out."""
    return [
        entry
        for entry, capability in CAPABILITIES.items()
        if capability is None or ctx.is_enabled(capability)
    ]


def menu_intents(session: Session, ctx: FlowContext) -> tuple[Intent, ...]:
    options = [
        (entry, ctx.text(session.language, TITLE_KEYS[entry]))
        for entry in offered(ctx)
    ]
    return (choices(session, ctx, "main_menu", options, button_label_key="menu_button_label"),)


def enter(session: Session, ctx: FlowContext, *leading: Intent) -> Transition:
    """Position at MAIN_MENU and show it, after any leading messages."""
    moved = session.moved_to(Flow.MAIN_MENU, reset_collected=True)
    return Transition(moved, tuple(leading) + menu_intents(moved, ctx))


def choice_for(event: InboundEvent, ctx: FlowContext) -> str | None:
    """Menu entry named by the event, whether or not it is enabled.

    Numbers refer to positions in the menu as displayed.
    """
    token = event.token
    entry = ALIASES.get(token)
    if entry is not None:
        return entry
    index = ordinal(token, len(offered(ctx)))
    if index is not None:
        return offered(ctx)[index]
    return None


def is_available(entry: str, ctx: FlowContext) -> bool:
    capability = CAPABILITIES[entry]
    return capability is None or ctx.is_enabled(capability)


def unavailable(session: Session, ctx: FlowContext) -> Transition:
    return Transition(session, (SendText("service_unavailable"),) + menu_intents(session, ctx))


def invalid(session: Session, ctx: FlowContext) -> Transition:
    return Transition(session, (SendText("invalid_option"),) + menu_intents(session, ctx))


def help_text(session: Session, ctx: FlowContext) -> Transition:
    return Transition(session, (SendText("help"),) + menu_intents(session, ctx))
