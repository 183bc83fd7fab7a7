"""Schemas for activity feed items."""

from enum import Enum

from agentboard.schemas.base import WireModel


class ActivityType(str, Enum):
    TOOL_USE = "tool_use"
    FILE_EDIT = "file_edit"
    COMMAND = "command"
    THINKING = "thinking"
    COMPLETE = "complete"
    ERROR = "error"
    START = "start"
    INFO = "info"


class ActivityItem(WireModel):
    """A derived, time-stamped event shown in the activity feed."""

    agent: str
    desc: str
    type: ActivityType = ActivityType.INFO
    timestamp: float
    time_label: str = "just now"


def time_label(now_ms: float, timestamp_ms: float) -> str:
    """Relative label for an activity timestamp."""
    ago = now_ms - timestamp_ms
    if ago < 5000:
        return "just now"
    if ago < 60_000:
        return f"{int(ago // 1000)}s ago"
    if ago < 3_600_000:
        return f"{int(ago // 60_000)}m ago"
    return f"{int(ago // 3_600_000)}h ago"
