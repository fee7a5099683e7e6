"""Conversation state machine.

`transition(session, event, ctx)` is a pure function: it returns the next
session and an ordered tuple of intents, and performs no I/O. The dispatcher
executes the intents and stores the returned session.

Global overrides run before flow dispatch, in this order:

1. exit words: goodbye and clear, from anywhere;
2. greeting words typed as plain text: clear and restart at language choice;
3. back / main menu: jump to the main menu;
4. help: help text, then the current menu or question again.

Overrides 3 and 4 only apply once a language has been chosen; before that
the event is handled as a language selection.
"""

from __future__ import annotations

from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows import appointment, grievance, language, menu, tracking
from civicline.domain.intents import ClearSession, Intent, SendText, Transition
from civicline.domain.parsing import is_back, is_exit, is_greeting, is_help
from civicline.domain.sessions import Flow, Session, Step, fresh_session

_FLOW_ENTRIES = {
    menu.GRIEVANCE: grievance.enter,
    menu.APPOINTMENT: appointment.enter,
    menu.TRACK: tracking.enter,
}


def transition(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    token = event.token

    if is_exit(token):
        return Transition(
            fresh_session(session.session_key, session.last_activity_at),
            (SendText("goodbye", language=session.language), ClearSession()),
        )

    if event.is_plain_text and is_greeting(token):
        restarted = fresh_session(session.session_key, session.last_activity_at)
        return language.enter(restarted, ClearSession())

    if session.language is not None:
        if is_back(token):
            return menu.enter(session, ctx)
        if is_help(token):
            return Transition(session, (SendText("help"),) + current_prompt(session, ctx))

    if event.kind == "media" and event.media_type == "audio" and not _accepts_media(session):
        return Transition(session, (SendText("voice_unsupported"),))

    return _dispatch(session, event, ctx)


def current_prompt(session: Session, ctx: FlowContext) -> tuple[Intent, ...]:
    """What to show again so the citizen knows what is expected."""
    flow = session.flow
    if flow is Flow.GRIEVANCE:
        return grievance.prompt(session, ctx)
    if flow is Flow.APPOINTMENT:
        return appointment.prompt(session, ctx)
    if flow is Flow.TRACK_STATUS:
        return (SendText("track_prompt"),)
    if flow is Flow.AWAITING_NEXT_ACTION:
        return (tracking.navigation(session.language, ctx.localizer),)
    if flow is Flow.MAIN_MENU:
        return menu.menu_intents(session, ctx)
    return (language.language_buttons(),)


def _dispatch(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    flow = session.flow
    if flow is Flow.NONE:
        return language.enter(session)
    if flow is Flow.LANGUAGE_SELECT:
        return language.handle(session, event, ctx)
    if flow is Flow.MAIN_MENU:
        return _on_main_menu(session, event, ctx)
    if flow is Flow.GRIEVANCE:
        return grievance.handle(session, event, ctx)
    if flow is Flow.APPOINTMENT:
        return appointment.handle(session, event, ctx)
    if flow is Flow.TRACK_STATUS:
        return tracking.handle(session, event, ctx)
    return tracking.handle_next_action(session, event, ctx)


def _on_main_menu(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    choice = menu.choice_for(event, ctx)
    if choice is None:
        return menu.invalid(session, ctx)
    if not menu.is_available(choice, ctx):
        return menu.unavailable(session, ctx)
    if choice == menu.HELP:
        return menu.help_text(session, ctx)
    return _FLOW_ENTRIES[choice](session, ctx)


def _accepts_media(session: Session) -> bool:
    return session.flow is Flow.GRIEVANCE and session.step == Step.GRIEVANCE_PHOTO.value
