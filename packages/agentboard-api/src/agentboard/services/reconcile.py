"""Reconciliation of agent records reported by several sources.

Some sources only report a thin record for a session (id, name, status) while
another, richer source reports the same logical session under a different id.
Matching them is a heuristic: an explicit ``correlation_key`` is used when
both sides supply one, otherwise the most recently started rich record is
assumed to be the thin record's counterpart. Two genuinely concurrent rich
sessions can therefore be misattributed when no correlation key exists.
"""

import logging
from collections.abc import Iterable, Sequence

from agentboard.schemas.agent import AgentSession

logger = logging.getLogger(__name__)

PLACEHOLDER_TASK = "Chat session"
PLACEHOLDER_PROGRESS_LABEL = "Active"
PLACEHOLDER_MODEL = "—"
CONVERSATION_CAPABLE_TYPES = frozenset({"copilot", "claude"})


def format_elapsed(ms: float) -> str:
    """Render a duration in milliseconds as ``<1s``, ``Ns``, ``Nm Ns`` or ``Nh Nm``."""
    if ms < 1000:
        return "<1s"
    seconds = int(ms // 1000)
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m {seconds % 60}s"
    return f"{minutes // 60}h {minutes % 60}m"


def merge_by_identity(groups: Iterable[Sequence[AgentSession]]) -> dict[str, AgentSession]:
    """Build an id -> record map; the first group to report an id wins.

    Records are deep-copied so later passes never mutate a source's own list.
    """
    merged: dict[str, AgentSession] = {}
    for agents in groups:
        for agent in agents:
            if agent.id not in merged:
                merged[agent.id] = agent.model_copy(deep=True)
    return merged


def is_thin(agent: AgentSession, thin_sources: Iterable[str]) -> bool:
    return agent.source_provider in thin_sources and not agent.recent_actions


def is_rich(agent: AgentSession, rich_sources: Iterable[str]) -> bool:
    return agent.source_provider in rich_sources and bool(
        agent.recent_actions or agent.conversation_preview or agent.files
    )


def copy_rich_fields(target: AgentSession, rich: AgentSession) -> None:
    """Copy populated fields of ``rich`` onto ``target``; never blank a field."""
    if rich.recent_actions:
        target.recent_actions = [a.model_copy() for a in rich.recent_actions]
    if rich.conversation_preview:
        target.conversation_preview = list(rich.conversation_preview)
    if rich.tools:
        target.tools = list(rich.tools)
    if rich.files:
        target.files = list(rich.files)
    if rich.task and rich.task != PLACEHOLDER_TASK:
        target.task = rich.task
    if rich.tokens > 0:
        target.tokens = rich.tokens
    if rich.active_tool:
        target.active_tool = rich.active_tool
    if rich.progress_label and rich.progress_label != PLACEHOLDER_PROGRESS_LABEL:
        target.progress_label = rich.progress_label
    if rich.model and rich.model != PLACEHOLDER_MODEL:
        target.model = rich.model
    if rich.type_label:
        target.type_label = rich.type_label
    if rich.has_conversation_history:
        target.has_conversation_history = True


def enrich_thin_records(
    agents: dict[str, AgentSession],
    thin_sources: Sequence[str],
    rich_sources: Sequence[str],
) -> list[tuple[str, str]]:
    """Fold rich records into matching thin records, in place.

    Returns the ``(thin_id, rich_id)`` pairs that were merged. Each merged rich
    record is removed from ``agents``.
    """
    thin = [a for a in agents.values() if is_thin(a, thin_sources)]
    rich = [a for a in agents.values() if is_rich(a, rich_sources)]
    if not thin or not rich:
        return []

    pairs: list[tuple[AgentSession, AgentSession]] = []

    rich_by_key = {r.correlation_key: r for r in rich if r.correlation_key}
    unmatched_thin = []
    for t in thin:
        match = rich_by_key.pop(t.correlation_key, None) if t.correlation_key else None
        if match is not None:
            pairs.append((t, match))
        else:
            unmatched_thin.append(t)

    paired_rich = {r.id for _, r in pairs}
    remaining_rich = [r for r in rich if r.id not in paired_rich]
    if unmatched_thin and remaining_rich:
        most_recent = max(remaining_rich, key=lambda r: r.start_time or 0)
        pairs.append((unmatched_thin[0], most_recent))

    merged = []
    for target, source in pairs:
        try:
            copy_rich_fields(target, source)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning(
                "Skipping enrichment of %s from %s: %s", target.id, source.id, exc
            )
            continue
        agents.pop(source.id, None)
        merged.append((target.id, source.id))
        logger.debug(
            "Merged rich session data (%d actions, %d convo lines) from %s into %s",
            len(source.recent_actions or []),
            len(source.conversation_preview or []),
            source.id,
            target.name,
        )
    return merged


def propagate_conversation_availability(
    agents: dict[str, AgentSession],
    lookup_tables: Iterable[dict[str, str]],
) -> int:
    """Mark chat-capable records as having loadable history.

    For every non-empty lookup table, records of a conversation-capable type
    that lack the flag get it, and a fallback entry pointing at the table's
    first location is registered for them. Returns how many records changed.
    """
    marked = 0
    for table in lookup_tables:
        if not table:
            continue
        fallback = next(iter(table.values()))
        for agent in agents.values():
            if agent.type in CONVERSATION_CAPABLE_TYPES and not agent.has_conversation_history:
                agent.has_conversation_history = True
                table.setdefault(agent.id, fallback)
                marked += 1
    return marked
