"""Tests for agentboard.sources.adapter."""

import pytest

from agentboard.schemas.activity import ActivityItem
from agentboard.schemas.agent import AgentSession, ConversationTurn
from agentboard.sources.adapter import ProviderAdapter
from agentboard.sources.base import FetchResult
from agentboard.sources.errors import SourceApiChangedError, SourceUnavailableError


def _agent(agent_id: str = "a-1", **kwargs) -> AgentSession:
    return AgentSession(id=agent_id, name=kwargs.pop("name", agent_id), **kwargs)


class TestInitialHealth:
    def test_starts_in_checking(self, make_source, clock):
        adapter = ProviderAdapter(make_source("alpha"), clock=clock)
        health = adapter.current_health()
        assert health.state == "checking"
        assert health.message == "Initializing..."
        assert health.last_checked == 0
        assert health.agent_count == 0

    def test_identity_comes_from_source(self, make_source, clock):
        adapter = ProviderAdapter(make_source("alpha", name="Alpha", group="copilot"), clock=clock)
        assert adapter.id == "alpha"
        assert adapter.name == "Alpha"
        assert adapter.group == "copilot"


class TestRefreshSuccess:
    @pytest.mark.asyncio
    async def test_connected_with_count_message(self, make_source, clock):
        adapter = ProviderAdapter(make_source("alpha", [_agent("a-1"), _agent("a-2")]), clock=clock)
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "connected"
        assert health.message == "Found 2 agent(s)"
        assert health.agent_count == 2
        assert [a.id for a in adapter.current_entities()] == ["a-1", "a-2"]

    @pytest.mark.asyncio
    async def test_fills_missing_source_provider(self, make_source, clock):
        adapter = ProviderAdapter(make_source("alpha", [_agent()]), clock=clock)
        await adapter.refresh()
        assert adapter.current_entities()[0].source_provider == "alpha"

    @pytest.mark.asyncio
    async def test_keeps_explicit_source_provider(self, make_source, clock):
        source = make_source("alpha", [_agent(source_provider="elsewhere")])
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()
        assert adapter.current_entities()[0].source_provider == "elsewhere"

    @pytest.mark.asyncio
    async def test_source_message_and_state_are_used(self, make_source, clock):
        source = make_source("alpha")

        async def fetch():
            return FetchResult(state="unavailable", message="Not in a git repository.")

        source.fetch = fetch
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "unavailable"
        assert health.message == "Not in a git repository."

    @pytest.mark.asyncio
    async def test_activities_are_exposed(self, make_source, clock):
        item = ActivityItem(agent="Alpha", desc="Edited main.py", type="file_edit", timestamp=1.0)
        adapter = ProviderAdapter(make_source("alpha", activities=[item]), clock=clock)
        await adapter.refresh()
        assert [a.desc for a in adapter.current_activity()] == ["Edited main.py"]


class TestRefreshFailure:
    @pytest.mark.asyncio
    async def test_missing_file_is_unavailable(self, make_source, clock):
        source = make_source("alpha", [_agent()])
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()
        assert adapter.current_entities()

        source.error = FileNotFoundError("No such file or directory: 'ps'")
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "unavailable"
        assert health.message == "Alpha is not available on this system."
        assert adapter.current_entities() == []
        assert adapter.current_activity() == []

    @pytest.mark.asyncio
    async def test_source_unavailable_error(self, make_source, clock):
        source = make_source("alpha", error=SourceUnavailableError("gh: command not found"))
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()
        assert adapter.current_health().state == "unavailable"

    @pytest.mark.asyncio
    async def test_attribute_error_is_api_change(self, make_source, clock):
        source = make_source(
            "alpha",
            name="Alpha",
            error=AttributeError("'Session' object has no attribute 'turns'"),
        )
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "degraded"
        assert health.message.startswith('API has changed — "Alpha" needs to be updated')
        assert "has no attribute 'turns'" in health.message

    @pytest.mark.asyncio
    async def test_api_change_summary_is_truncated(self, make_source, clock):
        source = make_source("alpha", error=SourceApiChangedError("x" * 300))
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()

        message = adapter.current_health().message
        summary = message.split("Error: ", 1)[1]
        assert len(summary) == 120
        assert summary.endswith("...")

    @pytest.mark.asyncio
    async def test_other_errors_are_unexpected(self, make_source, clock):
        adapter = ProviderAdapter(make_source("alpha", error=RuntimeError("boom")), clock=clock)
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "degraded"
        assert health.message == "Unexpected error: boom"

    @pytest.mark.asyncio
    async def test_refresh_never_raises(self, make_source, clock):
        adapter = ProviderAdapter(make_source("alpha", error=ValueError()), clock=clock)
        await adapter.refresh()
        assert adapter.current_health().message == "Unexpected error: ValueError"

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self, make_source, clock):
        source = make_source("alpha", [_agent()], error=RuntimeError("down"))
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()
        assert adapter.current_health().state == "degraded"

        source.error = None
        await adapter.refresh()
        assert adapter.current_health().state == "connected"
        assert len(adapter.current_entities()) == 1


class TestMalformedResult:
    @pytest.mark.asyncio
    async def test_none_result_clears_previous_entities(self, make_source, clock):
        source = make_source("alpha", [_agent("x")])
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()
        assert [a.id for a in adapter.current_entities()] == ["x"]

        async def returns_none():
            return None

        source.fetch = returns_none
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "degraded"
        assert health.message.startswith("API has changed")
        assert adapter.current_entities() == []
        assert adapter.current_activity() == []

    @pytest.mark.asyncio
    async def test_non_session_agent_is_api_change(self, make_source, clock):
        source = make_source("alpha")

        async def returns_dicts():
            return FetchResult(agents=[{"id": "x", "name": "x"}])

        source.fetch = returns_dicts
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()

        assert adapter.current_health().state == "degraded"
        assert adapter.current_entities() == []

    @pytest.mark.asyncio
    async def test_unknown_state_is_api_change(self, make_source, clock):
        source = make_source("alpha")

        async def returns_bad_state():
            return FetchResult(agents=[_agent("x")], state="sleeping")

        source.fetch = returns_bad_state
        adapter = ProviderAdapter(source, clock=clock)
        await adapter.refresh()

        health = adapter.current_health()
        assert health.state == "degraded"
        assert "sleeping" in health.message
        assert adapter.current_entities() == []


class TestLastChecked:
    @pytest.mark.asyncio
    async def test_updated_on_success_and_failure(self, make_source, clock):
        source = make_source("alpha")
        adapter = ProviderAdapter(source, clock=clock)

        await adapter.refresh()
        assert adapter.current_health().last_checked == clock.now * 1000

        clock.advance(5)
        source.error = FileNotFoundError("gone")
        await adapter.refresh()
        assert adapter.current_health().last_checked == clock.now * 1000


class TestConversationHistory:
    @pytest.mark.asyncio
    async def test_returns_source_turns(self, make_source, clock):
        turns = [ConversationTurn(role="user", content="hi")]
        adapter = ProviderAdapter(make_source("alpha", conversations={"a-1": turns}), clock=clock)
        assert await adapter.conversation_history("a-1") == turns

    @pytest.mark.asyncio
    async def test_failure_reads_as_no_history(self, make_source, clock):
        source = make_source("alpha")

        async def broken(agent_id):
            raise OSError("unreadable")

        source.conversation_history = broken
        adapter = ProviderAdapter(source, clock=clock)
        assert await adapter.conversation_history("a-1") == []
