"""Schemas for the aggregated dashboard snapshot."""

from typing import Literal

from pydantic import Field

from agentboard.schemas.activity import ActivityItem
from agentboard.schemas.agent import AgentSession
from agentboard.schemas.base import WireModel
from agentboard.schemas.health import DataSourceStatus


class DashboardStats(WireModel):
    """Aggregate counters over the merged agent list."""

    total: int = 0
    active: int = 0
    completed: int = 0
    tokens: int = 0
    estimated_cost: float = 0.0
    avg_duration: str = "—"


class DashboardState(WireModel):
    """The complete aggregated state published once per cycle."""

    agents: list[AgentSession] = Field(default_factory=list)
    activities: list[ActivityItem] = Field(default_factory=list)
    stats: DashboardStats = Field(default_factory=DashboardStats)
    data_source_health: list[DataSourceStatus] = Field(default_factory=list)
    primary_source: str | None = None
    generated_at: float | None = None


class SourceDiagnostics(WireModel):
    """Per-source detail for GET /diagnostics."""

    health: DataSourceStatus
    group: str
    agents: list[dict]


class DiagnosticsResponse(WireModel):
    version: str
    primary_source: str
    sources: list[SourceDiagnostics]


class SourceInfo(WireModel):
    id: str
    name: str
    group: str
    enabled: bool
    active: bool


class SourcesResponse(WireModel):
    """Response for GET and PATCH /sources."""

    primary_source: str
    sources: list[SourceInfo]


class SourceSettingsUpdate(WireModel):
    """Body for PATCH /sources. Omitted fields are left unchanged.

    ``enabled_providers`` entries are merged into the current map.
    """

    primary_source: Literal["copilot", "claude-code", "both"] | None = None
    enabled_providers: dict[str, bool] | None = None
