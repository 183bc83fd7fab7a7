"""Alert configuration endpoint."""

from fastapi import APIRouter, Depends

from agentboard.dependencies import get_aggregator
from agentboard.schemas.alert import AlertRulesResponse
from agentboard.services.aggregator import Aggregator

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("/rules", response_model=AlertRulesResponse)
async def get_alert_rules(
    aggregator: Aggregator = Depends(get_aggregator),
) -> AlertRulesResponse:
    """Effective alert rules and which channels have credentials configured."""
    engine = aggregator.alert_engine
    return AlertRulesResponse(
        enabled=engine.settings.alerts_enabled,
        cooldown_seconds=engine.cooldown_seconds,
        rules=engine.settings.alert_rules,
        configured_channels=[
            name for name, channel in engine.channels.items() if channel.configured
        ],
    )
