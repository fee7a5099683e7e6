"""Language selection, the entry point of every conversation."""

from __future__ import annotations

from civicline.domain.context import FlowContext
from civicline.domain.events import InboundEvent
from civicline.domain.flows import menu
from civicline.domain.intents import Button, ClearSession, Intent, SendButtons, SendText, Transition
from civicline.domain.localization import LANGUAGE_LABELS, SUPPORTED_LANGUAGES
from civicline.domain.parsing import language_for
from civicline.domain.sessions import Flow, Session, fresh_session


def language_buttons() -> SendButtons:
    buttons = tuple(Button(id=f"lang_{code}", title=LANGUAGE_LABELS[code]) for code in SUPPORTED_LANGUAGES)
    return SendButtons(key="welcome", buttons=buttons)


def enter(session: Session, *leading: Intent) -> Transition:
    moved = session.moved_to(Flow.LANGUAGE_SELECT, reset_collected=True)
    return Transition(moved, tuple(leading) + (language_buttons(),))


def handle(session: Session, event: InboundEvent, ctx: FlowContext) -> Transition:
    language = language_for(event.token)
    if language is None:
        return Transition(session, (SendText("invalid_option"), language_buttons()))

    if not ctx.any_enabled:
        return Transition(
            fresh_session(session.session_key, session.last_activity_at),
            (SendText("service_unavailable", language=language), ClearSession()),
        )

    return menu.enter(session.with_language(language), ctx)
