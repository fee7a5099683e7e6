"""Worker/internal routes (APP_ROLE=worker)."""

from fastapi import APIRouter

from civicline.services.engine import get_dispatcher

router = APIRouter()


@router.get("/internal/health")
def internal_health() -> dict:
    """Internal health check, including the dispatcher's queue state."""
    dispatcher = get_dispatcher()
    return {
        "status": "ok",
        "subsystem": "dispatcher",
        "active_sessions_in_flight": dispatcher.serializer.active_keys(),
    }
