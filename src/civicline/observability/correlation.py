"""Correlation ID management for tracing one webhook delivery end to end."""

import uuid
from contextvars import ContextVar, Token

# Visible to every log line emitted while a delivery is being dispatched
correlation_id_var: ContextVar[str] = ContextVar("civicline_correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context ("" outside a request)."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Bind a correlation ID to the current context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Restore the correlation ID that was active before `set_correlation_id`."""
    correlation_id_var.reset(token)
