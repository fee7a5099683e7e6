"""Normalized inbound chat events.

An InboundEvent is built once per citizen message by the channel adapter and
never modified afterwards. It contains PII (phone, text): keep it in memory
only and never log its fields directly.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from civicline.infra.clock import utc_now

EventKind = Literal["text", "button", "list", "media"]
MediaType = Literal["image", "document", "audio", "video"]


def session_key_for(tenant_id: str, phone: str) -> str:
    """Session identity: citizen phone scoped to the administration."""
    return f"{tenant_id}:{phone}"


@dataclass(frozen=True)
class InboundEvent:
    """One citizen message, normalized across channels.

    Attributes:
        session_key: Tenant-scoped citizen identity (see session_key_for).
        message_id: Provider-assigned unique message id.
        kind: text | button | list | media.
        phone: Citizen phone number, used for replies and tracking by phone.
        text: Message body, button/list title, or media caption.
        selected_id: Id of the tapped button or list row.
        media_ref: Provider media id for attachments.
        media_type: image | document | audio | video for media events.
        received_at: When the adapter accepted the message.
    """

    session_key: str
    message_id: str
    kind: EventKind
    phone: str
    text: str = ""
    selected_id: str | None = None
    media_ref: str | None = None
    media_type: MediaType | None = None
    received_at: datetime = field(default_factory=utc_now)

    @property
    def is_plain_text(self) -> bool:
        return self.kind == "text"

    @property
    def token(self) -> str:
        """Lowercased selection: the tapped id if any, else the trimmed text."""
        return (self.selected_id or self.text or "").strip().lower()
