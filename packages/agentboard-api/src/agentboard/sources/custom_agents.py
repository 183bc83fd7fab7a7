"""Custom agent definitions in ``.github/agents/*.md`` of workspace folders."""

import logging
import re
from collections.abc import Sequence
from pathlib import Path

import yaml

from agentboard.schemas.agent import AgentLocation, AgentSession, AgentStatus, AgentType
from agentboard.sources.base import DataSource, FetchResult

logger = logging.getLogger(__name__)

FRONT_MATTER = re.compile(r"^---\r?\n(.*?)\r?\n---", re.DOTALL)


def parse_agent_file(text: str) -> dict:
    """Extract description, model and tools from an agent definition.

    Falls back to the first prose line for the description when there is no
    front matter or it has no description.
    """
    meta: dict = {}
    match = FRONT_MATTER.match(text)
    if match:
        loaded = yaml.safe_load(match.group(1))
        if isinstance(loaded, dict):
            meta = loaded

    tools = meta.get("tools") or []
    if isinstance(tools, str):
        tools = [t.strip() for t in tools.split(",") if t.strip()]

    description = str(meta.get("description") or "").strip()
    if not description:
        body = text[match.end():] if match else text
        first = next(
            (
                line.strip()
                for line in body.splitlines()
                if line.strip() and not line.startswith(("#", "---"))
            ),
            "",
        )
        description = first[:100]

    return {
        "description": description,
        "model": str(meta.get("model") or "—"),
        "tools": [str(t) for t in tools],
        "can_infer": bool(meta.get("infer")) or "subagent" in text.lower(),
    }


class CustomAgentsSource(DataSource):
    id = "custom-workspace-agents"
    name = "Custom Agents"
    group = "both"

    def __init__(self, workspace_dirs: Sequence[str]) -> None:
        super().__init__()
        self.workspace_dirs = [Path(d) for d in workspace_dirs]

    async def fetch(self) -> FetchResult:
        if not self.workspace_dirs:
            return FetchResult(message="No workspace configured.")

        agents: list[AgentSession] = []
        for folder in self.workspace_dirs:
            agents_dir = folder / ".github" / "agents"
            if not agents_dir.is_dir():
                continue
            for path in sorted(agents_dir.glob("*.md")):
                try:
                    info = parse_agent_file(path.read_text(encoding="utf-8"))
                except (OSError, yaml.YAMLError) as exc:
                    logger.warning("Skipping agent file %s: %s", path, exc)
                    continue
                agent_name = path.stem.removesuffix(".agent")
                agents.append(
                    AgentSession(
                        id=f"custom-agent-{folder.name}-{agent_name}",
                        name=f"@{agent_name}",
                        type=AgentType.CUSTOM,
                        type_label="Subagent" if info["can_infer"] else "Custom",
                        model=info["model"],
                        status=AgentStatus.RUNNING,
                        task=info["description"] or f"Custom agent: {agent_name}",
                        progress_label="Subagent capable" if info["can_infer"] else "Available",
                        tools=info["tools"],
                        files=[str(path)],
                        location=AgentLocation.LOCAL,
                        source_provider=self.id,
                    )
                )

        if agents:
            message = f"Found {len(agents)} custom agent(s) in .github/agents/"
        else:
            message = "No custom agents found in .github/agents/."
        return FetchResult(agents=agents, message=message)
