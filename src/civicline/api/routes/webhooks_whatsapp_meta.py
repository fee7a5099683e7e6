"""WhatsApp webhook routes - Meta Cloud API integration.

Security:
- Citizen phone numbers and message text exist only in memory while the
  delivery is dispatched
- Logs contain NO PII (hashes, prefixes and counts only)
"""

import os
from typing import Any

from fastapi import APIRouter, Header, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from civicline.observability.correlation import get_correlation_id
from civicline.observability.logging import get_logger
from civicline.observability.redaction import message_id_prefix, safe_log_context
from civicline.services.dispatcher import Dispatcher
from civicline.services.engine import get_dispatcher
from civicline.whatsapp.meta_adapter import (
    InvalidPayloadError,
    SignatureVerificationError,
    get_phone_number_id,
    normalize,
    verify_signature,
)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks"])

logger = get_logger(__name__)


def _get_dispatcher() -> Dispatcher:
    """Get dispatcher instance (allows test injection via engine.set_dispatcher)."""
    return get_dispatcher()


@router.get("/meta")
async def meta_webhook_verify(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
) -> Response:
    """Meta webhook verification handshake.

    Returns:
        200 with hub.challenge if the verify token matches META_VERIFY_TOKEN.
        403 otherwise (including when no token is configured).
    """
    expected_token = os.environ.get("META_VERIFY_TOKEN", "")

    if expected_token and hub_mode == "subscribe" and hub_verify_token == expected_token:
        logger.info(
            "meta webhook verification successful",
            extra={"extra_fields": safe_log_context(hub_mode=hub_mode)},
        )
        return Response(status_code=200, content=hub_challenge or "")

    logger.warning(
        "meta webhook verification failed",
        extra={
            "extra_fields": safe_log_context(
                hub_mode=hub_mode or "missing",
                token_configured=bool(expected_token),
            )
        },
    )
    return Response(status_code=403, content="verification failed")


@router.post("/meta")
async def meta_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> Response:
    """Receive Meta Cloud API webhook and dispatch each citizen message.

    IMPORTANT: Always return 200 to Meta, even on errors. Meta retries
    non-2xx responses; redeliveries are absorbed by the idempotency guard,
    but a failing message would be retried for days.

    Returns:
        200 "ok" always (Meta requirement).
    """
    correlation_id = get_correlation_id()

    try:
        body_bytes = await request.body()
    except Exception:
        logger.warning(
            "failed to read request body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=200, content="ok")

    app_secret = os.environ.get("META_APP_SECRET", "")
    if app_secret:
        try:
            verify_signature(body_bytes, x_hub_signature_256 or "", app_secret)
        except SignatureVerificationError as e:
            logger.warning(
                "meta signature verification failed",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id, error=str(e))},
            )
            return Response(status_code=200, content="ok")

    try:
        payload: dict[str, Any] = await request.json()
    except Exception:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=200, content="ok")

    dispatcher = _get_dispatcher()

    try:
        events = normalize(payload, dispatcher.settings.tenant_id)
    except InvalidPayloadError as e:
        logger.info(
            "non-message meta payload ignored",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id, reason=str(e))},
        )
        return Response(status_code=200, content="ok")

    if not events:
        # Delivery/read status updates carry no messages
        return Response(status_code=200, content="ok")

    logger.info(
        "meta webhook received",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                phone_number_id_present=bool(get_phone_number_id(payload)),
                messages=len(events),
                provider="meta",
            )
        },
    )

    for event in events:
        try:
            # Dispatch blocks on the session key's queue; keep it off the event loop
            result = await run_in_threadpool(dispatcher.dispatch, event)
        except Exception:
            logger.exception(
                "meta message dispatch failed",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        message_id_prefix=message_id_prefix(event.message_id),
                    )
                },
            )
            continue

        logger.info(
            "meta message handled",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    message_id_prefix=message_id_prefix(event.message_id),
                    status=result.status,
                    flow=result.flow.value if result.flow else None,
                )
            },
        )

    return Response(status_code=200, content="ok")
