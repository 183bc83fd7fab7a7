"""Storage for the relay: latest pushed snapshot, in memory with a DB backup."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agentboard.models.relay_state import CURRENT_STATE_ID, RelayState

logger = logging.getLogger(__name__)


@dataclass
class RelayCache:
    """Process-local copy of the last pushed snapshot."""

    state: dict | None = None
    updated_at: str | None = None

    @property
    def has_state(self) -> bool:
        return self.state is not None


def _iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        # SQLite drops the offset; stored values are always UTC.
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


async def save_state(db: AsyncSession, cache: RelayCache, state: dict) -> str:
    """Replace the stored snapshot and return its ISO-8601 update time."""
    now = datetime.now(timezone.utc)
    row = await db.get(RelayState, CURRENT_STATE_ID)
    if row is None:
        row = RelayState(id=CURRENT_STATE_ID, data=state, updated_at=now)
        db.add(row)
    else:
        row.data = state
        row.updated_at = now
    await db.flush()

    cache.state = state
    cache.updated_at = _iso(now)
    return cache.updated_at


async def load_state(db: AsyncSession, cache: RelayCache) -> tuple[dict, str] | None:
    """Return ``(snapshot, source)`` where source is ``memory`` or ``db``.

    A snapshot read from the database is copied into the cache so later
    reads are served from memory.
    """
    if cache.has_state:
        return cache.state, "memory"

    result = await db.execute(select(RelayState).where(RelayState.id == CURRENT_STATE_ID))
    row = result.scalar_one_or_none()
    if row is None:
        return None

    cache.state = row.data
    cache.updated_at = _iso(row.updated_at)
    logger.info("Relay state restored from database (updated %s)", cache.updated_at)
    return cache.state, "db"
