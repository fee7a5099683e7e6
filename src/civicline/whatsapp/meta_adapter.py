"""Meta Cloud API adapter: signature check and inbound normalization.

One webhook delivery may batch several messages (and status updates, which
carry no `messages` array). Every citizen message becomes one InboundEvent.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Iterator

from civicline.domain.events import InboundEvent, session_key_for

MEDIA_TYPES = ("image", "document", "audio", "video")


class InvalidPayloadError(Exception):
    """Raised when a Meta payload does not have the webhook shape."""

    pass


class SignatureVerificationError(Exception):
    """Raised when the X-Hub-Signature-256 check fails."""

    pass


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Verify the HMAC-SHA256 signature Meta sends as `sha256=<hex>`.

    Raises:
        SignatureVerificationError: If the header is missing, malformed or wrong.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")
    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    expected = signature_header[len("sha256="):]
    computed = hmac.new(app_secret.encode("utf-8"), payload_bytes, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(computed, expected):
        raise SignatureVerificationError("signature mismatch")


def get_phone_number_id(payload: dict[str, Any]) -> str | None:
    """Business phone number id the delivery was addressed to."""
    for value in _iter_values(payload):
        metadata = value.get("metadata") or {}
        phone_number_id = metadata.get("phone_number_id")
        if phone_number_id:
            return str(phone_number_id)
    return None


def normalize(payload: dict[str, Any], tenant_id: str) -> list[InboundEvent]:
    """All citizen messages in a delivery, as InboundEvents.

    Returns an empty list for status-only deliveries. Message types the
    engine cannot act on (stickers, locations, reactions) are skipped.

    Raises:
        InvalidPayloadError: If the payload is not a WhatsApp webhook.
    """
    if not isinstance(payload, dict) or payload.get("object") != "whatsapp_business_account":
        raise InvalidPayloadError("not a whatsapp_business_account payload")
    if not isinstance(payload.get("entry"), list):
        raise InvalidPayloadError("missing entry list")

    received_at = datetime.now(timezone.utc)
    events: list[InboundEvent] = []
    for value in _iter_values(payload):
        for message in value.get("messages") or []:
            event = _to_event(message, tenant_id, received_at)
            if event is not None:
                events.append(event)
    return events


def _iter_values(payload: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        for change in entry.get("changes") or []:
            if isinstance(change, dict) and isinstance(change.get("value"), dict):
                yield change["value"]


def _to_event(message: dict[str, Any], tenant_id: str, received_at: datetime) -> InboundEvent | None:
    if not isinstance(message, dict):
        raise InvalidPayloadError("message is not an object")

    message_id = message.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message id")
    phone = message.get("from")
    if not phone or not isinstance(phone, str):
        raise InvalidPayloadError("missing sender phone number")

    base = {
        "session_key": session_key_for(tenant_id, phone),
        "message_id": message_id,
        "phone": phone,
        "received_at": received_at,
    }
    message_type = message.get("type")

    if message_type == "text":
        body = (message.get("text") or {}).get("body") or ""
        return InboundEvent(kind="text", text=body, **base)

    if message_type == "interactive":
        interactive = message.get("interactive") or {}
        kind = interactive.get("type")
        if kind == "button_reply":
            reply = interactive.get("button_reply") or {}
            return InboundEvent(kind="button", text=reply.get("title") or "", selected_id=reply.get("id"), **base)
        if kind == "list_reply":
            reply = interactive.get("list_reply") or {}
            return InboundEvent(kind="list", text=reply.get("title") or "", selected_id=reply.get("id"), **base)
        return None

    if message_type == "button":
        # Quick-reply buttons on template messages
        button = message.get("button") or {}
        return InboundEvent(
            kind="button",
            text=button.get("text") or "",
            selected_id=button.get("payload") or button.get("text"),
            **base,
        )

    if message_type in MEDIA_TYPES:
        media = message.get(message_type) or {}
        return InboundEvent(
            kind="media",
            text=media.get("caption") or "",
            media_ref=media.get("id"),
            media_type=message_type,
            **base,
        )

    return None
