"""Contract every data source implements."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Literal

from agentboard.schemas.activity import ActivityItem
from agentboard.schemas.agent import AgentSession, ConversationTurn
from agentboard.schemas.health import HealthState
from agentboard.sources.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

SourceGroup = Literal["copilot", "claude-code", "both"]


@dataclass
class FetchResult:
    """What a source observed during one fetch.

    ``state`` lets a source report that it is connected but has nothing to
    show, or that it is unavailable, without raising.
    """

    agents: list[AgentSession] = field(default_factory=list)
    activities: list[ActivityItem] = field(default_factory=list)
    message: str | None = None
    state: HealthState = HealthState.CONNECTED


class DataSource(ABC):
    """An external origin of agent records.

    Subclasses set ``id``, ``name`` and ``group`` and implement ``fetch``.
    ``fetch`` may raise; the adapter wrapping the source converts failures
    into health state.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    group: ClassVar[SourceGroup] = "both"

    def __init__(self) -> None:
        self.conversation_paths: dict[str, str] = {}

    @abstractmethod
    async def fetch(self) -> FetchResult:
        """Observe the source once and return its agents and activities."""

    async def conversation_history(self, agent_id: str) -> list[ConversationTurn]:
        """Full conversation for an agent, or an empty list when there is none."""
        return []

    def unavailable_message(self) -> str:
        return f"{self.name} is not available on this system."


async def run_command(
    cmd: str, *args: str, timeout: float = 5.0, cwd: str | None = None
) -> str | None:
    """Run a command and return its stripped stdout.

    Returns None when the command exits non-zero with no output or times out.
    Raises SourceUnavailableError when the executable does not exist.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            cmd,
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise SourceUnavailableError(f"{cmd}: command not found") from exc

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.debug("Command %s timed out after %.1fs", cmd, timeout)
        return None

    output = stdout.decode("utf-8", errors="replace").strip()
    if proc.returncode == 0 or output:
        return output or None
    return None
