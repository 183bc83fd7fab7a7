"""Holds the last published snapshot for pull and push consumers."""

import asyncio
import logging

from agentboard.schemas.snapshot import DashboardState

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Single current snapshot, replaced atomically each cycle.

    Push consumers get a queue of size one that always holds the latest
    snapshot; a slow consumer skips intermediate snapshots rather than
    building a backlog.
    """

    def __init__(self) -> None:
        self._current = DashboardState()
        self._subscribers: set[asyncio.Queue[DashboardState]] = set()

    @property
    def current(self) -> DashboardState:
        return self._current

    def publish(self, state: DashboardState) -> None:
        self._current = state
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(state)

    def subscribe(self) -> asyncio.Queue[DashboardState]:
        queue: asyncio.Queue[DashboardState] = asyncio.Queue(maxsize=1)
        self._subscribers.add(queue)
        logger.debug("Live subscriber attached (%d total)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[DashboardState]) -> None:
        self._subscribers.discard(queue)
        logger.debug("Live subscriber detached (%d left)", len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
