"""Health check endpoint."""

import time

from fastapi import APIRouter, Request

from agentboard import __version__
from agentboard.schemas.health import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Return service status, version and uptime in seconds."""
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime=round(time.monotonic() - started_at, 1),
    )
