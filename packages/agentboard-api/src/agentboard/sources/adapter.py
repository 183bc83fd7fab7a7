"""Provider adapter: uniform failure capture and health reporting for a source."""

import logging
import time
from collections.abc import Callable

from agentboard.schemas.activity import ActivityItem
from agentboard.schemas.agent import AgentSession, ConversationTurn
from agentboard.schemas.health import DataSourceStatus, HealthState
from agentboard.sources.base import DataSource, FetchResult
from agentboard.sources.errors import (
    ErrorKind,
    SourceApiChangedError,
    classify_error,
    summarize_error,
)

logger = logging.getLogger(__name__)


class ProviderAdapter:
    """Wraps a DataSource so that refreshing it never raises.

    Health starts in ``checking`` and is replaced by the outcome of every
    ``refresh()`` call. Entities and activities from a failed refresh are
    cleared, never left over from the previous success.
    """

    def __init__(
        self,
        source: DataSource,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.source = source
        self._clock = clock
        self._state = HealthState.CHECKING
        self._message = "Initializing..."
        self._last_checked: float = 0
        self._agents: list[AgentSession] = []
        self._activities: list[ActivityItem] = []

    @property
    def id(self) -> str:
        return self.source.id

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def group(self) -> str:
        return self.source.group

    @property
    def conversation_paths(self) -> dict[str, str]:
        return self.source.conversation_paths

    def current_health(self) -> DataSourceStatus:
        return DataSourceStatus(
            name=self.name,
            id=self.id,
            state=self._state,
            message=self._message,
            last_checked=self._last_checked,
            agent_count=len(self._agents),
        )

    def current_entities(self) -> list[AgentSession]:
        return self._agents

    def current_activity(self) -> list[ActivityItem]:
        return self._activities

    async def refresh(self) -> None:
        """Fetch from the source, converting any failure into health state."""
        self._last_checked = self._clock() * 1000
        try:
            result = await self.source.fetch()
            agents, activities, state = self._unpack(result)
        except Exception as exc:
            self._agents = []
            self._activities = []
            self._record_failure(exc)
            return

        for agent in agents:
            if not agent.source_provider:
                agent.source_provider = self.id
        self._agents = agents
        self._activities = activities
        self._state = state
        if result.message is not None:
            self._message = result.message
        else:
            self._message = f"Found {len(self._agents)} agent(s)"

    def _unpack(
        self, result: object
    ) -> tuple[list[AgentSession], list[ActivityItem], HealthState]:
        if not isinstance(result, FetchResult):
            raise SourceApiChangedError(
                f"fetch returned {type(result).__name__}, expected FetchResult"
            )
        agents = list(result.agents)
        activities = list(result.activities)
        if not all(isinstance(a, AgentSession) for a in agents):
            raise SourceApiChangedError("fetch returned an agent that is not an AgentSession")
        if not all(isinstance(i, ActivityItem) for i in activities):
            raise SourceApiChangedError("fetch returned an activity that is not an ActivityItem")
        try:
            state = HealthState(result.state)
        except ValueError as exc:
            raise SourceApiChangedError(f"unknown health state {result.state!r}") from exc
        return agents, activities, state

    def _record_failure(self, exc: Exception) -> None:
        err_msg = str(exc) or type(exc).__name__
        kind = classify_error(exc)
        logger.warning("[%s] Error (%s): %s", self.id, kind.value, err_msg)

        if kind is ErrorKind.API_CHANGED:
            self._state = HealthState.DEGRADED
            self._message = (
                f'API has changed — "{self.name}" needs to be updated to support '
                f"the new format. Error: {summarize_error(err_msg)}"
            )
        elif kind is ErrorKind.UNAVAILABLE:
            self._state = HealthState.UNAVAILABLE
            self._message = self.source.unavailable_message()
        else:
            self._state = HealthState.DEGRADED
            self._message = f"Unexpected error: {summarize_error(err_msg)}"

    async def conversation_history(self, agent_id: str) -> list[ConversationTurn]:
        """Conversation for an agent; failures are logged and read as no history."""
        try:
            return await self.source.conversation_history(agent_id)
        except Exception as exc:
            logger.warning("[%s] Conversation lookup for %s failed: %s", self.id, agent_id, exc)
            return []
