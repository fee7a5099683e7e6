"""Token recognition for citizen input.

All matching is done on InboundEvent.token (tapped id, else trimmed and
lowercased text), so button ids and typed words go through the same sets.
"""

from __future__ import annotations

import re

EXIT_WORDS = frozenset({
    "exit", "stop", "bye", "quit",
    "बंद", "बंद करो", "अलविदा",
    "थांबा", "बाहेर", "बाहेर पडा",
})

GREETING_WORDS = frozenset({
    "hi", "hello", "hey", "start", "namaste", "restart", "menu",
    "नमस्ते", "नमस्कार",
})

BACK_WORDS = frozenset({
    "back", "main menu", "back_menu", "menu_back", "main_menu",
    "वापस", "मुख्य मेनू", "मागे",
})

HELP_WORDS = frozenset({"help", "मदद", "सहायता", "मदत"})

AFFIRMATIVE_WORDS = frozenset({
    "confirm_yes", "appt_confirm_yes",
    "yes", "y", "confirm", "submit", "ok",
    "हाँ", "हां", "होय",
})

NEGATIVE_WORDS = frozenset({
    "confirm_no", "appt_confirm_no",
    "no", "n", "cancel",
    "नहीं", "नाही", "रद्द",
})

SKIP_WORDS = frozenset({"photo_skip", "skip", "छोड़ें", "वगळा"})

LANGUAGE_SELECTORS: dict[str, str] = {
    "lang_en": "en", "english": "en", "1": "en",
    "lang_hi": "hi", "hindi": "hi", "हिंदी": "hi", "हिन्दी": "hi", "2": "hi",
    "lang_mr": "mr", "marathi": "mr", "मराठी": "mr", "3": "mr",
}

_WHITESPACE = re.compile(r"\s+")


def is_exit(token: str) -> bool:
    return token in EXIT_WORDS


def is_greeting(token: str) -> bool:
    return token in GREETING_WORDS


def is_back(token: str) -> bool:
    return token in BACK_WORDS


def is_help(token: str) -> bool:
    return token in HELP_WORDS


def is_affirmative(token: str) -> bool:
    return token in AFFIRMATIVE_WORDS


def is_negative(token: str) -> bool:
    return token in NEGATIVE_WORDS


def is_skip(token: str) -> bool:
    return token in SKIP_WORDS


def language_for(token: str) -> str | None:
    return LANGUAGE_SELECTORS.get(token)


def strip_prefix(token: str, prefix: str) -> str | None:
    """`grv_dept_7` with prefix `grv_dept_` -> `7`; None if absent."""
    if token.startswith(prefix) and len(token) > len(prefix):
        return token[len(prefix):]
    return None


def ordinal(token: str, count: int) -> int | None:
    """Zero-based index for a typed 1..count choice."""
    if not token.isdigit():
        return None
    index = int(token) - 1
    return index if 0 <= index < count else None


def clean_text(text: str) -> str:
    """Trim and collapse runs of whitespace in free-text answers."""
    return _WHITESPACE.sub(" ", text).strip()


def normalize_reference(text: str) -> str:
    """Reference lookups are case-insensitive: ' grv00000001 ' -> 'GRV00000001'."""
    return _WHITESPACE.sub("", text).upper()
