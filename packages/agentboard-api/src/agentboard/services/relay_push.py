"""Best-effort push of each snapshot to an external relay.

Fire-and-forget is intentional: the relay only ever needs the latest
snapshot, so a failed push is not retried and the next cycle supersedes it.
Responses and errors are both discarded after a debug log line.
"""

import asyncio
import logging

import httpx

from agentboard.schemas.snapshot import DashboardState

logger = logging.getLogger(__name__)


class RelayPublisher:
    def __init__(
        self,
        relay_url: str,
        token: str = "",
        timeout: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.relay_url = relay_url
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.relay_url)

    @property
    def endpoint(self) -> str:
        return self.relay_url.rstrip("/") + "/api/state"

    def publish(self, state: DashboardState) -> None:
        """Schedule a push without waiting for it."""
        if not self.enabled:
            return
        task = asyncio.create_task(self.push(state))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def push(self, state: DashboardState) -> None:
        """POST the snapshot to the relay; never raises."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=state.to_wire(),
                    headers=headers,
                    timeout=self.timeout,
                )
            logger.debug("Relay push to %s returned %d", self.endpoint, response.status_code)
        except httpx.HTTPError as exc:
            logger.debug("Relay push to %s failed: %s", self.endpoint, exc)

    async def drain(self) -> None:
        """Wait for pushes still in flight. Used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
