"""Internal simulate endpoint for staging checks without Meta.

Mounted only for APP_ROLE=worker and guarded by X-Internal-Secret.
"""

from __future__ import annotations

import hmac
import os
import uuid
from typing import Literal

from fastapi import APIRouter, Header, HTTPException
from pydantic import BaseModel, Field, model_validator

from civicline.domain.events import InboundEvent, session_key_for
from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import safe_log_context
from civicline.services.engine import get_dispatcher

router = APIRouter(prefix="/internal", tags=["internal"])

logger = get_logger(__name__)


class SimulatedMessage(BaseModel):
    phone: str = Field(min_length=5, max_length=20)
    kind: Literal["text", "button", "list", "media"] = "text"
    text: str = Field(default="", max_length=4096)
    selected_id: str | None = None
    media_ref: str | None = None
    media_type: Literal["image", "document", "audio", "video"] | None = None
    message_id: str | None = None

    @model_validator(mode="after")
    def _check_kind_fields(self) -> SimulatedMessage:
        if self.kind in ("button", "list") and not self.selected_id:
            raise ValueError("selected_id is required for button and list messages")
        if self.kind == "media" and (not self.media_ref or not self.media_type):
            raise ValueError("media_ref and media_type are required for media messages")
        return self


class SimulatedResult(BaseModel):
    message_id: str
    status: str
    flow: str | None = None
    step: str = ""
    reference: str | None = None
    sent: list[str] = []


def _authorized(secret_header: str | None) -> bool:
    expected = os.environ.get("INTERNAL_API_SECRET", "")
    if not expected or not secret_header:
        return False
    return hmac.compare_digest(expected, secret_header)


@router.post("/simulate", response_model=SimulatedResult)
def simulate_message(
    body: SimulatedMessage,
    x_internal_secret: str | None = Header(None, alias="X-Internal-Secret"),
) -> SimulatedResult:
    """Run one citizen message through the dispatcher as if Meta had sent it.

    Raises:
        401: Missing or wrong X-Internal-Secret (or none configured).
    """
    if not _authorized(x_internal_secret):
        logger.warning(
            "simulate auth failed",
            extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
        )
        raise HTTPException(status_code=401, detail="Unauthorized")

    dispatcher = get_dispatcher()
    message_id = body.message_id or f"sim-{uuid.uuid4()}"
    event = InboundEvent(
        session_key=session_key_for(dispatcher.settings.tenant_id, body.phone),
        message_id=message_id,
        kind=body.kind,
        phone=body.phone,
        text=body.text,
        selected_id=body.selected_id,
        media_ref=body.media_ref,
        media_type=body.media_type,
    )

    result = dispatcher.dispatch(event)

    return SimulatedResult(
        message_id=message_id,
        status=result.status,
        flow=result.flow.value if result.flow else None,
        step=result.step,
        reference=result.reference,
        sent=list(result.sent),
    )
