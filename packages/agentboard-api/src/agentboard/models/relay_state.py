"""Relay state model: the last snapshot pushed to the relay."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from agentboard.db.types import JSONType
from agentboard.models.base import Base

CURRENT_STATE_ID = "current"


class RelayState(Base):
    """Single-row table; the row with id ``current`` is overwritten on each push."""

    __tablename__ = "relay_states"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=CURRENT_STATE_ID)
    data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
