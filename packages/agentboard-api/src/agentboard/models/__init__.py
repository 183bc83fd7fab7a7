"""SQLAlchemy ORM models."""

from agentboard.models.base import Base
from agentboard.models.relay_state import RelayState

__all__ = [
    "Base",
    "RelayState",
]
