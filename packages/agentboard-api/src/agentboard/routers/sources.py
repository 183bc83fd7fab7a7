"""Source selection and diagnostics endpoints."""

from fastapi import APIRouter, Depends

from agentboard import __version__
from agentboard.dependencies import get_aggregator
from agentboard.schemas.snapshot import (
    DiagnosticsResponse,
    SourceInfo,
    SourcesResponse,
    SourceSettingsUpdate,
)
from agentboard.services.aggregator import Aggregator

router = APIRouter(tags=["sources"])


def _sources_response(aggregator: Aggregator) -> SourcesResponse:
    active = {adapter.id for adapter in aggregator.adapters}
    enabled = aggregator.settings.enabled_providers
    return SourcesResponse(
        primary_source=aggregator.settings.primary_source,
        sources=[
            SourceInfo(
                id=adapter.id,
                name=adapter.name,
                group=adapter.group,
                enabled=enabled.get(adapter.id, True),
                active=adapter.id in active,
            )
            for adapter in aggregator.all_adapters
        ],
    )


@router.get("/sources", response_model=SourcesResponse)
async def list_sources(aggregator: Aggregator = Depends(get_aggregator)) -> SourcesResponse:
    """Every registered source with its group and whether it is polled."""
    return _sources_response(aggregator)


@router.patch("/sources", response_model=SourcesResponse)
async def update_sources(
    body: SourceSettingsUpdate,
    aggregator: Aggregator = Depends(get_aggregator),
) -> SourcesResponse:
    """Switch the primary source group or enable/disable individual sources.

    Takes effect from the next cycle.
    """
    changes = {}
    if body.primary_source is not None:
        changes["primary_source"] = body.primary_source
    if body.enabled_providers is not None:
        changes["enabled_providers"] = {
            **aggregator.settings.enabled_providers,
            **body.enabled_providers,
        }
    if changes:
        aggregator.reconfigure(**changes)
    return _sources_response(aggregator)


@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def diagnostics(aggregator: Aggregator = Depends(get_aggregator)) -> DiagnosticsResponse:
    """Per-source health with a summary of each source's raw records."""
    return DiagnosticsResponse(
        version=__version__,
        primary_source=aggregator.settings.primary_source,
        sources=aggregator.diagnostics(),
    )
