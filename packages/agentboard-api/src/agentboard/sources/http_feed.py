"""Agent records served as JSON by a remote agent runner."""

import logging

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from agentboard.schemas.activity import ActivityItem
from agentboard.schemas.agent import AgentSession, ConversationTurn
from agentboard.sources.base import DataSource, FetchResult
from agentboard.sources.errors import SourceApiChangedError, SourceUnavailableError

logger = logging.getLogger(__name__)


class FeedPayload(BaseModel):
    """Accepted document shape: ``{"agents": [...], "activities": [...]}``."""

    agents: list[AgentSession]
    activities: list[ActivityItem] = []


_agent_list = TypeAdapter(list[AgentSession])
_turn_list = TypeAdapter(list[ConversationTurn])


def decode_feed(data: object) -> FeedPayload:
    """Decode a feed document; a bare list is read as the agent list.

    Raises SourceApiChangedError when the document does not match either shape.
    """
    try:
        if isinstance(data, list):
            return FeedPayload(agents=_agent_list.validate_python(data))
        return FeedPayload.model_validate(data)
    except ValidationError as exc:
        raise SourceApiChangedError(
            f"Feed document no longer matches the agent schema: {exc.error_count()} error(s)"
        ) from exc


class HttpFeedSource(DataSource):
    name = "HTTP Feed"
    group = "both"

    def __init__(
        self,
        url: str,
        source_id: str = "http-feed",
        timeout: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.id = source_id
        self.url = url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def unavailable_message(self) -> str:
        return f"Agent feed at {self.url} is not reachable."

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(transport=self._transport) as client:
            return await client.get(url, timeout=self.timeout)

    async def fetch(self) -> FetchResult:
        try:
            response = await self._get(self.url)
        except httpx.TransportError as exc:
            raise SourceUnavailableError(f"{self.url}: {exc}") from exc

        if response.status_code == 404:
            raise SourceUnavailableError(f"{self.url} not found")
        response.raise_for_status()

        payload = decode_feed(response.json())
        self.conversation_paths.clear()
        for agent in payload.agents:
            agent.source_provider = self.id
            if agent.has_conversation_history:
                self.conversation_paths[agent.id] = f"{self.url}/{agent.id}/conversation"

        return FetchResult(
            agents=payload.agents,
            activities=payload.activities,
            message=f"Found {len(payload.agents)} agent(s) at {self.url}",
        )

    async def conversation_history(self, agent_id: str) -> list[ConversationTurn]:
        location = self.conversation_paths.get(agent_id)
        if location is None:
            return []
        try:
            response = await self._get(location)
        except httpx.TransportError as exc:
            logger.debug("Conversation fetch from %s failed: %s", location, exc)
            return []
        if response.status_code >= 400:
            return []

        data = response.json()
        if isinstance(data, dict):
            data = data.get("turns", [])
        try:
            return _turn_list.validate_python(data)
        except ValidationError as exc:
            logger.warning("Conversation at %s has an unexpected shape: %s", location, exc)
            return []
