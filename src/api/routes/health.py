"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies.hub import get_app_settings, get_hub
from core.config import Settings
from infrastructure.hub.server import HubServer

router = APIRouter(tags=["health"])

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    environment: str


class HubHealthResponse(HealthResponse):
    """Health check response with hub counters."""

    running: bool
    connections: int
    teams: int
    members_online: int
    pending_questions: int


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Basic health check for load balancers.

    Returns service status without touching hub state.
    """
    return HealthResponse(
        status="healthy",
        version=VERSION,
        timestamp=datetime.now(UTC).isoformat(),
        environment=settings.app_env,
    )


@router.get("/health/hub", response_model=HubHealthResponse, summary="Hub health check")
async def hub_health_check(
    hub: HubServer = Depends(get_hub),
    settings: Settings = Depends(get_app_settings),
) -> HubHealthResponse:
    """
    Health check including hub counters.

    Reports "degraded" when the background sweeps are not running.
    """
    stats = await hub.stats()
    return HubHealthResponse(
        status="healthy" if hub.is_running else "degraded",
        version=VERSION,
        timestamp=datetime.now(UTC).isoformat(),
        environment=settings.app_env,
        running=hub.is_running,
        **stats,
    )
