"""Agent CLI processes found in the local process table."""

import re

from agentboard.schemas.agent import AgentLocation, AgentSession, AgentStatus, AgentType
from agentboard.sources.base import DataSource, FetchResult, run_command

# Only CLI invocations; desktop apps are filtered out by DESKTOP_MARKERS.
AGENT_PATTERNS: list[tuple[re.Pattern, AgentType, str]] = [
    (re.compile(r"node.*claude.*--?(chat|code|task|agent)", re.IGNORECASE), AgentType.CLAUDE, "Claude Code"),
    (re.compile(r"(^|/|\s)claude(\s|$)", re.IGNORECASE), AgentType.CLAUDE, "Claude Code"),
    (re.compile(r"aider\s", re.IGNORECASE), AgentType.CUSTOM, "Aider"),
    (re.compile(r"codex\s", re.IGNORECASE), AgentType.CODEX, "Codex"),
]

DESKTOP_MARKERS = ("Electron", ".app/", "Code Helper", "desktop")


def parse_process_table(ps_output: str, source_id: str) -> list[AgentSession]:
    """Turn ``ps aux`` output into one running record per matching PID."""
    agents: list[AgentSession] = []
    seen: set[int] = set()
    lines = ps_output.splitlines()[1:]

    for pattern, agent_type, label in AGENT_PATTERNS:
        for line in lines:
            if not pattern.search(line) or any(m in line for m in DESKTOP_MARKERS):
                continue
            parts = line.split(None, 10)
            if len(parts) < 2 or not parts[1].isdigit():
                continue
            pid = int(parts[1])
            if pid in seen:
                continue
            seen.add(pid)
            agents.append(
                AgentSession(
                    id=f"process-{pid}",
                    name=f"{label} (PID {pid})",
                    type=agent_type,
                    type_label=label,
                    status=AgentStatus.RUNNING,
                    task=f"CLI process (PID {pid})",
                    progress_label="Running",
                    location=AgentLocation.LOCAL,
                    pid=pid,
                    source_provider=source_id,
                )
            )
    return agents


class ProcessSource(DataSource):
    id = "terminal-processes"
    name = "Terminal Processes"
    group = "both"

    async def fetch(self) -> FetchResult:
        output = await run_command("ps", "aux")
        if output is None:
            return FetchResult(message="Process table unavailable; no agent processes detected.")

        agents = parse_process_table(output, self.id)
        if agents:
            message = f"Found {len(agents)} agent process(es)"
        else:
            message = "Monitoring processes — no agent processes detected."
        return FetchResult(agents=agents, message=message)
