"""Health endpoints."""
from fastapi import APIRouter, Depends

from ...resolver.errors import DaemonError
from ..dependencies import get_app_state
from ..schemas import DaemonHealthStatus, HealthStatus
from ..state import AppState

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def get_health(app_state: AppState = Depends(get_app_state)) -> HealthStatus:
    """Return service heartbeat information."""

    daemon_status = DaemonHealthStatus(status="ok")
    try:
        client = await app_state.connection.get()
    except DaemonError as exc:
        daemon_status = DaemonHealthStatus(status="error", detail=str(exc))
    else:
        daemon_status.transfer = await client.transfer_stats()
    return HealthStatus(
        daemon=daemon_status,
        store_size=len(app_state.store),
        cache_size=len(app_state.cache),
    )
