"""Alert engine: edge-triggered, cooldown-suppressed notifications.

Each cycle the engine compares agent statuses and source health against what
it saw on the previous cycle and raises an event on these transitions:

- agent status becomes ``done``      -> agent-completed
- agent status becomes ``error``     -> agent-error
- a new agent is running/thinking    -> agent-started
- a source becomes ``degraded``      -> provider-degraded

An event fires only when alerting is enabled, its rule is enabled with at
least one channel, and the same (event, name) pair has not fired within the
cooldown window. Delivery is best effort: no retries, no exactly-once.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from agentboard.config import Settings
from agentboard.schemas.agent import AgentSession
from agentboard.schemas.alert import AlertEvent, AlertPayload, FiredAlert
from agentboard.schemas.base import enum_value
from agentboard.schemas.health import DataSourceStatus
from agentboard.services.channels import NotificationChannel, build_channels

logger = logging.getLogger(__name__)


def completed_payload(agent: AgentSession) -> AlertPayload:
    return AlertPayload(
        event=AlertEvent.AGENT_COMPLETED,
        title=f"Agent completed: {agent.name}",
        body=(
            f'"{agent.task}" finished successfully.\n'
            f"Elapsed: {agent.elapsed} | Tokens: {agent.tokens}"
        ),
        entity_name=agent.name,
    )


def error_payload(agent: AgentSession, previous_status: str) -> AlertPayload:
    return AlertPayload(
        event=AlertEvent.AGENT_ERROR,
        title=f"Agent error: {agent.name}",
        body=f'"{agent.task}" encountered an error.\nLast status: {previous_status}',
        entity_name=agent.name,
    )


def started_payload(agent: AgentSession) -> AlertPayload:
    return AlertPayload(
        event=AlertEvent.AGENT_STARTED,
        title=f"Agent started: {agent.name}",
        body=(
            f'New agent session: "{agent.task}"\n'
            f"Model: {agent.model} | Source: {agent.source_provider}"
        ),
        entity_name=agent.name,
    )


def degraded_payload(health: DataSourceStatus) -> AlertPayload:
    return AlertPayload(
        event=AlertEvent.PROVIDER_DEGRADED,
        title=f"Data source degraded: {health.name}",
        body=(
            f"{health.message}\n\n"
            "Switch data sources in the dashboard or check the service log for details."
        ),
        entity_name=health.name,
    )


class AlertEngine:
    """Owns its own previous-state and cooldown maps."""

    def __init__(
        self,
        settings: Settings,
        channels: dict | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.channels: dict = channels if channels is not None else build_channels(settings)
        self._clock = clock
        self._previous_agent_states: dict[str, str] = {}
        self._previous_provider_states: dict[str, str] = {}
        self._cooldowns: dict[tuple[str, str], float] = {}

    @property
    def cooldown_seconds(self) -> int:
        return self.settings.alert_cooldown_seconds

    async def check_and_alert(
        self,
        agents: Sequence[AgentSession],
        provider_health: Sequence[DataSourceStatus],
    ) -> list[FiredAlert]:
        """Diff against the previous cycle and fire matching alerts.

        Never raises; an internal failure is logged and ends the check.
        """
        fired: list[FiredAlert] = []
        try:
            self._prune_cooldowns()
            for payload in self._agent_transitions(agents):
                result = await self.fire(payload)
                if result is not None:
                    fired.append(result)
            for payload in self._provider_transitions(provider_health):
                result = await self.fire(payload)
                if result is not None:
                    fired.append(result)
        except Exception:
            logger.exception("[alerts] Error in check cycle")
        return fired

    def _agent_transitions(self, agents: Sequence[AgentSession]) -> list[AlertPayload]:
        payloads = []
        for agent in agents:
            status = enum_value(agent.status)
            prev = self._previous_agent_states.get(agent.id)

            if prev is not None and prev != status:
                if status == "done":
                    payloads.append(completed_payload(agent))
                elif status == "error":
                    payloads.append(error_payload(agent, prev))
            elif prev is None and status in ("running", "thinking"):
                payloads.append(started_payload(agent))

            self._previous_agent_states[agent.id] = status
        return payloads

    def _provider_transitions(
        self, provider_health: Sequence[DataSourceStatus]
    ) -> list[AlertPayload]:
        payloads = []
        for health in provider_health:
            state = enum_value(health.state)
            prev = self._previous_provider_states.get(health.id)
            if prev is not None and prev != "degraded" and state == "degraded":
                payloads.append(degraded_payload(health))
            self._previous_provider_states[health.id] = state
        return payloads

    async def fire(self, payload: AlertPayload) -> FiredAlert | None:
        """Dispatch a payload if rules and cooldown allow it."""
        if not self.settings.alerts_enabled:
            return None

        rule = self.settings.rule_for(payload.event)
        if rule is None:
            return None

        key = (payload.event.value, payload.entity_name)
        now = self._clock()
        last_fired = self._cooldowns.get(key)
        if last_fired is not None and now - last_fired < self.cooldown_seconds:
            logger.debug("[alerts] %s for %s suppressed by cooldown", *key)
            return None
        self._cooldowns[key] = now

        logger.info("[alerts] Firing %s: %s", payload.event.value, payload.title)
        await self._dispatch(payload, rule.channels)
        return FiredAlert(
            event=payload.event,
            entity_name=payload.entity_name,
            channels=list(rule.channels),
            fired_at=now,
        )

    async def _dispatch(self, payload: AlertPayload, channel_names: Sequence) -> None:
        targets: list[NotificationChannel] = []
        for name in channel_names:
            channel = self.channels.get(name)
            if channel is None:
                logger.warning("[alerts] No channel registered for %s", name)
                continue
            targets.append(channel)

        results = await asyncio.gather(
            *(channel.send(payload) for channel in targets),
            return_exceptions=True,
        )
        for channel, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.error(
                    "[alerts] %s channel raised: %s", channel.channel.value, result
                )

    def _prune_cooldowns(self) -> None:
        cutoff = self._clock() - self.cooldown_seconds
        expired = [key for key, fired_at in self._cooldowns.items() if fired_at <= cutoff]
        for key in expired:
            del self._cooldowns[key]

    @property
    def cooldowns(self) -> dict[tuple[str, str], float]:
        return dict(self._cooldowns)

    def forget(self, agent_ids: Sequence[str]) -> None:
        """Drop previous-state entries for agents no longer tracked."""
        for agent_id in agent_ids:
            self._previous_agent_states.pop(agent_id, None)
