"""Fixed-interval poll scheduler."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PollScheduler:
    """Runs ``callback`` every ``interval_seconds`` on the event loop.

    A tick never waits for the previous cycle: each cycle runs in its own task,
    so a slow cycle can overlap the next one. Stopping cancels the ticker only;
    cycles already in flight run to completion.

    Usage::

        scheduler = PollScheduler(aggregator.run_cycle, 3.0)
        scheduler.start()
        # ... later ...
        await scheduler.stop()
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval_seconds: float,
    ) -> None:
        self._callback = callback
        self.interval_seconds = interval_seconds
        self._ticker: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(self) -> None:
        if self.running:
            return
        logger.info("Polling every %.1fs", self.interval_seconds)
        self._ticker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._ticker is None:
            return
        self._ticker.cancel()
        try:
            await self._ticker
        except asyncio.CancelledError:
            pass
        self._ticker = None
        logger.info("Polling stopped")

    async def _run(self) -> None:
        while True:
            self._spawn_cycle()
            await asyncio.sleep(self.interval_seconds)

    def _spawn_cycle(self) -> None:
        self.ticks += 1
        task = asyncio.create_task(self._guarded_cycle())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _guarded_cycle(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.exception("Poll cycle failed")

    async def wait_idle(self) -> None:
        """Wait for all in-flight cycles to finish."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
