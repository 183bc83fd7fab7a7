"""Schemas for data source health."""

from enum import Enum

from agentboard.schemas.base import WireModel


class HealthState(str, Enum):
    CONNECTED = "connected"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    CHECKING = "checking"


class DataSourceStatus(WireModel):
    """Health of a single registered data source."""

    name: str
    id: str
    state: HealthState = HealthState.CHECKING
    message: str = "Initializing..."
    last_checked: float = 0
    agent_count: int = 0


class HealthResponse(WireModel):
    """Response for GET /health."""

    status: str
    version: str
    uptime: float
