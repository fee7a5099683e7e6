"""FastAPI application factory.

APP_ROLE=public serves the Meta webhook and /health. APP_ROLE=worker adds
the internal routes (dispatcher health and the simulate endpoint).
"""

import os
from typing import Literal

from fastapi import FastAPI, Request, Response

from civicline.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from civicline.observability.logging import get_logger
from civicline.observability.redaction import safe_log_context

from .routers import public, worker
from .routes import internal_simulate, webhooks_whatsapp_meta

AppRole = Literal["public", "worker"]

logger = get_logger(__name__)


def _mount_routes(app: FastAPI, role: str) -> None:
    app.include_router(public.router)
    app.include_router(webhooks_whatsapp_meta.router)
    if role == "worker":
        app.include_router(worker.router)
        app.include_router(internal_simulate.router)


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create the intake app for a role (defaults to APP_ROLE, then "public")."""
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]

    app = FastAPI(title="Civicline Intake", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    _mount_routes(app, role)

    logger.info("app created", extra={"extra_fields": safe_log_context(role=role)})
    return app
