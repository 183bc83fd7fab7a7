"""Schemas for alert rules and payloads."""

from enum import Enum

from pydantic import BaseModel, Field


class AlertEvent(str, Enum):
    AGENT_COMPLETED = "agent-completed"
    AGENT_ERROR = "agent-error"
    AGENT_STARTED = "agent-started"
    PROVIDER_DEGRADED = "provider-degraded"


class AlertChannel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    WEBHOOK = "webhook"


class AlertRule(BaseModel):
    """Maps an event kind to the channels that should be notified."""

    event: AlertEvent
    enabled: bool = True
    channels: list[AlertChannel] = Field(default_factory=list)


class AlertPayload(BaseModel):
    """Channel-agnostic notification content."""

    event: AlertEvent
    title: str
    body: str
    entity_name: str


class FiredAlert(BaseModel):
    """Record of an alert that passed rule and cooldown checks."""

    event: AlertEvent
    entity_name: str
    channels: list[AlertChannel]
    fired_at: float


class AlertRulesResponse(BaseModel):
    """Response for GET /alerts/rules. Credentials are never included."""

    enabled: bool
    cooldown_seconds: int
    rules: list[AlertRule]
    configured_channels: list[AlertChannel]
