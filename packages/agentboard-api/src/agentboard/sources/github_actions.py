"""Active GitHub Actions runs of agent workflows, via the ``gh`` CLI."""

import json
from collections.abc import Sequence
from datetime import datetime

from agentboard.schemas.agent import AgentLocation, AgentSession, AgentStatus, AgentType
from agentboard.schemas.health import HealthState
from agentboard.sources.base import DataSource, FetchResult, run_command
from agentboard.sources.errors import SourceApiChangedError

RUN_FIELDS = "databaseId,displayTitle,status,conclusion,createdAt,updatedAt"


def _epoch_ms(timestamp: str) -> float:
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).timestamp() * 1000


def parse_runs(raw: str, workflow: str, source_id: str) -> list[AgentSession]:
    """Records for in-progress or queued runs; finished runs are skipped."""
    try:
        runs = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SourceApiChangedError(f"gh run list returned invalid JSON: {exc}") from exc

    agents = []
    for run in runs:
        status = run["status"]
        if status not in ("in_progress", "queued"):
            continue
        title = run.get("displayTitle") or f"Workflow #{run['databaseId']}"
        agents.append(
            AgentSession(
                id=f"gh-{run['databaseId']}",
                name=title,
                type=AgentType.CLAUDE,
                type_label="Claude",
                status=AgentStatus.QUEUED if status == "queued" else AgentStatus.RUNNING,
                task=f"{workflow}: {run.get('displayTitle') or ''}",
                start_time=_epoch_ms(run["createdAt"]),
                progress=50,
                progress_label=status,
                location=AgentLocation.CLOUD,
                remote_host="GitHub Actions",
                source_provider=source_id,
            )
        )
    return agents


class GitHubActionsSource(DataSource):
    id = "github-actions"
    name = "GitHub Actions"
    group = "both"

    def __init__(self, workflows: Sequence[str], cwd: str | None = None) -> None:
        super().__init__()
        self.workflows = list(workflows)
        self.cwd = cwd

    def unavailable_message(self) -> str:
        return (
            "GitHub CLI (gh) not installed. Install it to monitor "
            "GitHub Actions agent workflows."
        )

    async def fetch(self) -> FetchResult:
        # Raises SourceUnavailableError when gh is missing.
        await run_command("gh", "--version")

        git_root = await run_command("git", "rev-parse", "--show-toplevel", cwd=self.cwd)
        if not git_root:
            return FetchResult(
                state=HealthState.UNAVAILABLE,
                message="Not in a git repository. Run from a repo to monitor GitHub Actions.",
            )

        agents: list[AgentSession] = []
        found_workflow = False
        for workflow in self.workflows:
            raw = await run_command(
                "gh", "run", "list",
                "--json", RUN_FIELDS,
                "--limit", "5",
                "--workflow", workflow,
                timeout=10.0,
                cwd=self.cwd,
            )
            if not raw:
                continue
            found_workflow = True
            agents.extend(parse_runs(raw, workflow, self.id))

        if not found_workflow:
            return FetchResult(
                message=(
                    "No agent workflows found (looked for "
                    f"{', '.join(self.workflows)})."
                )
            )
        active = sum(1 for a in agents if a.status in ("running", "queued"))
        return FetchResult(
            agents=agents,
            message=f"{len(agents)} workflow run(s), {active} active",
        )
