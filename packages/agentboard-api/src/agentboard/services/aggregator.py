"""Aggregation cycle: fan out to sources, reconcile, derive, publish.

One cycle:

1. refresh every active adapter concurrently (each is fault isolated);
2. merge records by id, first registered source wins;
3. fold thin records into their rich counterparts;
4. propagate on-demand conversation availability;
5. anchor start times to the first observation and recompute elapsed;
6. derive status-change and health-change activity;
7. recount per-source agents and compute stats;
8. run the alert check, publish the snapshot, push to the relay.

Steps 2-8 run under a lock so that overlapping cycles (the scheduler never
waits for a cycle to finish) cannot interleave their state updates.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from agentboard.config import Settings
from agentboard.schemas.activity import ActivityItem, ActivityType, time_label
from agentboard.schemas.agent import ACTIVE_STATUSES, AgentSession, ConversationTurn
from agentboard.schemas.base import enum_value
from agentboard.schemas.health import DataSourceStatus
from agentboard.schemas.snapshot import (
    DashboardState,
    DashboardStats,
    SourceDiagnostics,
)
from agentboard.services.alerting import AlertEngine
from agentboard.services.reconcile import (
    enrich_thin_records,
    format_elapsed,
    merge_by_identity,
    propagate_conversation_availability,
)
from agentboard.services.relay_push import RelayPublisher
from agentboard.services.snapshot_store import SnapshotStore
from agentboard.sources.adapter import ProviderAdapter
from agentboard.sources.base import DataSource

logger = logging.getLogger(__name__)


def _status_activity_type(status: str) -> ActivityType:
    if status == "error":
        return ActivityType.ERROR
    if status == "done":
        return ActivityType.COMPLETE
    return ActivityType.INFO


def compute_stats(
    agents: Sequence[AgentSession], now_ms: float, cost_per_million: float
) -> DashboardStats:
    """Counters over the merged agent list."""
    tokens = sum(a.tokens for a in agents)
    done = [a for a in agents if enum_value(a.status) == "done"]
    if done:
        avg_ms = sum(now_ms - a.start_time for a in done) / len(done)
        avg_duration = format_elapsed(avg_ms)
    else:
        avg_duration = "—"
    return DashboardStats(
        total=len(agents),
        active=sum(1 for a in agents if enum_value(a.status) in ACTIVE_STATUSES),
        completed=len(done),
        tokens=tokens,
        estimated_cost=round(tokens / 1_000_000 * cost_per_million, 4),
        avg_duration=avg_duration,
    )


class Aggregator:
    """Owns the snapshot and the first-seen / previous-state maps."""

    def __init__(
        self,
        sources: Sequence[DataSource],
        settings: Settings,
        alert_engine: AlertEngine | None = None,
        store: SnapshotStore | None = None,
        relay: RelayPublisher | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self.all_adapters = [ProviderAdapter(source, clock=clock) for source in sources]
        self.alert_engine = alert_engine or AlertEngine(settings, clock=clock)
        self.store = store or SnapshotStore()
        self.relay = relay or RelayPublisher(
            settings.relay_url,
            settings.relay_token,
            timeout=settings.http_timeout_seconds,
        )
        self._first_seen: dict[str, float] = {}
        self._last_seen: dict[str, float] = {}
        self._previous_statuses: dict[str, str] = {}
        self._previous_health: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self.cycles = 0
        self.adapters = self.select_active()

    # -- source selection -------------------------------------------------

    def select_active(self) -> list[ProviderAdapter]:
        """Adapters matching the primary source group and not disabled."""
        primary = self.settings.primary_source
        enabled = self.settings.enabled_providers
        return [
            adapter
            for adapter in self.all_adapters
            if (primary == "both" or adapter.group in ("both", primary))
            and enabled.get(adapter.id, True)
        ]

    def reconfigure(self, **changes) -> None:
        """Apply settings changes and recompute the active adapters."""
        self.settings = self.settings.model_copy(update=changes)
        self.alert_engine.settings = self.settings
        self.adapters = self.select_active()
        logger.info(
            "Active sources: %s", ", ".join(a.id for a in self.adapters) or "(none)"
        )

    # -- the cycle ----------------------------------------------------------

    async def run_cycle(self) -> DashboardState:
        adapters = list(self.adapters)
        results = await asyncio.gather(
            *(adapter.refresh() for adapter in adapters), return_exceptions=True
        )
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                logger.error("[%s] refresh escaped the adapter: %r", adapter.id, result)

        async with self._lock:
            state = self._build_snapshot(adapters)
            await self.alert_engine.check_and_alert(state.agents, state.data_source_health)
            self.store.publish(state)
            self.cycles += 1

        self.relay.publish(state)
        return state

    def _build_snapshot(self, adapters: Sequence[ProviderAdapter]) -> DashboardState:
        now = self._clock() * 1000
        agents = merge_by_identity(adapter.current_entities() for adapter in adapters)
        activities = [
            item.model_copy() for adapter in adapters for item in adapter.current_activity()
        ]

        try:
            enrich_thin_records(
                agents, self.settings.thin_source_ids, self.settings.rich_source_ids
            )
        except Exception:
            logger.exception("Enrichment pass failed; continuing with unmerged records")

        try:
            propagate_conversation_availability(
                agents, (adapter.conversation_paths for adapter in adapters)
            )
        except Exception:
            logger.exception("Conversation availability pass failed")

        for agent in agents.values():
            activities.extend(self._anchor_and_diff(agent, now))

        agent_list = list(agents.values())
        health = [adapter.current_health() for adapter in adapters]
        for status in health:
            status.agent_count = sum(1 for a in agent_list if a.source_provider == status.id)
            activity = self._health_change(status, now)
            if activity is not None:
                activities.append(activity)

        activities.sort(key=lambda item: item.timestamp, reverse=True)
        activities = activities[: self.settings.max_activities]
        for item in activities:
            item.time_label = time_label(now, item.timestamp)

        self._evict_stale(now)

        connected = sum(1 for h in health if enum_value(h.state) == "connected")
        logger.debug(
            "Found %d agents from %d connected providers", len(agent_list), connected
        )
        return DashboardState(
            agents=agent_list,
            activities=activities,
            stats=compute_stats(agent_list, now, self.settings.cost_per_million_tokens),
            data_source_health=health,
            primary_source=self.settings.primary_source,
            generated_at=now,
        )

    def _anchor_and_diff(self, agent: AgentSession, now: float) -> list[ActivityItem]:
        first_seen = self._first_seen.get(agent.id)
        if first_seen is None:
            first_seen = agent.start_time or now
            self._first_seen[agent.id] = first_seen
        agent.start_time = first_seen
        agent.elapsed = format_elapsed(now - first_seen)
        self._last_seen[agent.id] = now

        status = enum_value(agent.status)
        prev = self._previous_statuses.get(agent.id)
        self._previous_statuses[agent.id] = status

        if prev is None:
            return [
                ActivityItem(
                    agent=agent.name,
                    desc=f"Agent detected ({agent.type_label}, {enum_value(agent.location)})",
                    type=ActivityType.START,
                    timestamp=first_seen,
                )
            ]
        if prev != status:
            return [
                ActivityItem(
                    agent=agent.name,
                    desc=f"Status changed: {prev} → {status}",
                    type=_status_activity_type(status),
                    timestamp=now,
                )
            ]
        return []

    def _health_change(self, status: DataSourceStatus, now: float) -> ActivityItem | None:
        state = enum_value(status.state)
        prev = self._previous_health.get(status.id)
        self._previous_health[status.id] = state
        if prev is None or prev == state:
            return None
        return ActivityItem(
            agent=status.name,
            desc=f"Data source {state}: {status.message}",
            type=ActivityType.ERROR if state == "degraded" else ActivityType.INFO,
            timestamp=now,
        )

    def _evict_stale(self, now: float) -> None:
        cutoff = now - self.settings.state_retention_seconds * 1000
        stale = [agent_id for agent_id, seen in self._last_seen.items() if seen < cutoff]
        for agent_id in stale:
            self._first_seen.pop(agent_id, None)
            self._last_seen.pop(agent_id, None)
            self._previous_statuses.pop(agent_id, None)
        if stale:
            self.alert_engine.forget(stale)
            logger.debug("Evicted %d stale agent identities", len(stale))

    # -- on-demand lookups --------------------------------------------------

    def first_seen(self, agent_id: str) -> float | None:
        return self._first_seen.get(agent_id)

    def owner_of(self, agent_id: str) -> ProviderAdapter | None:
        """The first active adapter whose current records include ``agent_id``."""
        for adapter in self.adapters:
            if any(a.id == agent_id for a in adapter.current_entities()):
                return adapter
        return None

    async def conversation_history(self, agent_id: str) -> list[ConversationTurn]:
        """History from the owning adapter, else the first non-empty one in order."""
        owner = self.owner_of(agent_id)
        if owner is not None:
            turns = await owner.conversation_history(agent_id)
            if turns:
                return turns
        for adapter in self.adapters:
            if adapter is owner:
                continue
            turns = await adapter.conversation_history(agent_id)
            if turns:
                return turns
        logger.debug("No conversation history for %s", agent_id)
        return []

    def diagnostics(self) -> list[SourceDiagnostics]:
        return [
            SourceDiagnostics(
                health=adapter.current_health(),
                group=adapter.group,
                agents=[
                    {
                        "id": a.id,
                        "name": a.name,
                        "status": enum_value(a.status),
                        "model": a.model,
                        "tokens": a.tokens,
                        "tools": len(a.tools),
                        "files": len(a.files),
                        "recentActions": len(a.recent_actions or []),
                        "conversationPreview": len(a.conversation_preview or []),
                    }
                    for a in adapter.current_entities()
                ],
            )
            for adapter in self.adapters
        ]
