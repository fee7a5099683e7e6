"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness only; dispatcher state is under /internal/health on workers."""
    return {"status": "ok", "service": "civicline"}
