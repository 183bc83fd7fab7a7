"""Schemas for agent session records and conversation history."""

from enum import Enum
from typing import Literal

from pydantic import Field

from agentboard.schemas.base import WireModel


class AgentType(str, Enum):
    COPILOT = "copilot"
    CLAUDE = "claude"
    CODEX = "codex"
    CUSTOM = "custom"


class AgentStatus(str, Enum):
    RUNNING = "running"
    THINKING = "thinking"
    PAUSED = "paused"
    DONE = "done"
    ERROR = "error"
    QUEUED = "queued"


ACTIVE_STATUSES = frozenset({"running", "thinking", "paused"})


class AgentLocation(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    CLOUD = "cloud"


class AgentTask(WireModel):
    """One checklist item reported by an agent."""

    content: str
    status: Literal["pending", "in_progress", "completed"] = "pending"
    active_form: str | None = None


class AgentAction(WireModel):
    """A recent tool invocation by an agent."""

    tool: str
    detail: str = ""
    timestamp: float = 0
    status: Literal["running", "done", "error"] = "done"


class AgentSession(WireModel):
    """Normalized record of one monitored agent run."""

    id: str
    name: str
    type: AgentType = AgentType.CUSTOM
    type_label: str = ""
    model: str = "—"
    status: AgentStatus = AgentStatus.RUNNING
    task: str = ""
    tokens: int = Field(default=0, ge=0)
    start_time: float = 0
    elapsed: str = "—"
    progress: float = Field(default=0, ge=0, le=100)
    progress_label: str = ""
    tools: list[str] = Field(default_factory=list)
    active_tool: str | None = None
    files: list[str] = Field(default_factory=list)
    location: AgentLocation = AgentLocation.LOCAL
    remote_host: str | None = None
    pid: int | None = None
    source_provider: str = ""
    parent_id: str | None = None
    tasks: list[AgentTask] | None = None
    recent_actions: list[AgentAction] | None = None
    conversation_preview: list[str] | None = None
    has_conversation_history: bool | None = None
    correlation_key: str | None = None


class ToolCall(WireModel):
    name: str
    detail: str = ""
    result: str | None = None
    is_error: bool | None = None


class ConversationTurn(WireModel):
    """One message in an agent's conversation history."""

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: float | None = None
    tool_calls: list[ToolCall] | None = None


class ConversationResponse(WireModel):
    """Response for GET /agents/{agent_id}/conversation."""

    agent_id: str
    turns: list[ConversationTurn]
