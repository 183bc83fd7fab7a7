"""Tests for agentboard.sources.github_actions."""

import json

import pytest

from agentboard.sources import base, github_actions
from agentboard.sources.errors import SourceApiChangedError, SourceUnavailableError
from agentboard.sources.github_actions import GitHubActionsSource, parse_runs


def _run(run_id: int, status: str = "in_progress", title: str = "Fix flaky test") -> dict:
    return {
        "databaseId": run_id,
        "displayTitle": title,
        "status": status,
        "conclusion": "",
        "createdAt": "2026-03-01T12:00:00Z",
        "updatedAt": "2026-03-01T12:05:00Z",
    }


class TestParseRuns:
    def test_active_runs_become_cloud_records(self):
        raw = json.dumps([_run(11), _run(12, status="queued")])
        agents = parse_runs(raw, "claude.yml", "github-actions")

        assert [a.id for a in agents] == ["gh-11", "gh-12"]
        assert agents[0].status == "running"
        assert agents[1].status == "queued"
        assert all(a.location == "cloud" for a in agents)
        assert agents[0].task == "claude.yml: Fix flaky test"
        assert agents[0].start_time == 1772366400000

    def test_finished_runs_skipped(self):
        raw = json.dumps([_run(1, status="completed"), _run(2)])
        assert [a.id for a in parse_runs(raw, "claude.yml", "gh")] == ["gh-2"]

    def test_invalid_json_is_api_change(self):
        with pytest.raises(SourceApiChangedError):
            parse_runs("not json", "claude.yml", "gh")

    def test_missing_field_raises_key_error(self):
        """A renamed field surfaces as KeyError, which classifies as an API change."""
        raw = json.dumps([{"id": 1, "state": "in_progress"}])
        with pytest.raises(KeyError):
            parse_runs(raw, "claude.yml", "gh")


class TestGitHubActionsSource:
    @pytest.mark.asyncio
    async def test_gh_missing_raises_unavailable(self, monkeypatch):
        async def missing(cmd, *args, **kwargs):
            raise SourceUnavailableError(f"{cmd}: command not found")

        monkeypatch.setattr(github_actions, "run_command", missing)
        with pytest.raises(SourceUnavailableError):
            await GitHubActionsSource(["claude.yml"]).fetch()

    @pytest.mark.asyncio
    async def test_outside_git_repo_is_unavailable(self, monkeypatch):
        async def fake_run(cmd, *args, **kwargs):
            if cmd == "gh":
                return "gh version 2.50.0"
            return None

        monkeypatch.setattr(github_actions, "run_command", fake_run)
        result = await GitHubActionsSource(["claude.yml"]).fetch()
        assert result.state == "unavailable"
        assert result.agents == []

    @pytest.mark.asyncio
    async def test_lists_runs_per_workflow(self, monkeypatch):
        async def fake_run(cmd, *args, **kwargs):
            if cmd == "git":
                return "/repo"
            if args[:2] == ("run", "list"):
                workflow = args[-1]
                if workflow == "claude.yml":
                    return json.dumps([_run(7)])
                return None
            return "gh version 2.50.0"

        monkeypatch.setattr(github_actions, "run_command", fake_run)
        result = await GitHubActionsSource(["claude.yml", "agent.yml"]).fetch()

        assert [a.id for a in result.agents] == ["gh-7"]
        assert result.message == "1 workflow run(s), 1 active"

    @pytest.mark.asyncio
    async def test_no_workflows_found(self, monkeypatch):
        async def fake_run(cmd, *args, **kwargs):
            if cmd == "git":
                return "/repo"
            if args[:2] == ("run", "list"):
                return None
            return "gh version 2.50.0"

        monkeypatch.setattr(github_actions, "run_command", fake_run)
        result = await GitHubActionsSource(["claude.yml"]).fetch()
        assert result.agents == []
        assert "No agent workflows found" in result.message


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_missing_executable_is_unavailable(self):
        with pytest.raises(SourceUnavailableError):
            await base.run_command("agentboard-no-such-binary-xyz")
