"""Built-in source registration.

Order matters: when two sources report the same agent id, the one
registered first wins the merge.
"""

from agentboard.config import Settings
from agentboard.sources.base import DataSource
from agentboard.sources.custom_agents import CustomAgentsSource
from agentboard.sources.github_actions import GitHubActionsSource
from agentboard.sources.http_feed import HttpFeedSource
from agentboard.sources.processes import ProcessSource


def default_sources(settings: Settings) -> list[DataSource]:
    sources: list[DataSource] = [
        ProcessSource(),
        CustomAgentsSource(settings.workspace_dirs),
        GitHubActionsSource(settings.github_workflows),
    ]
    for n, url in enumerate(settings.feed_urls, start=1):
        sources.append(
            HttpFeedSource(
                url,
                source_id=f"http-feed-{n}",
                timeout=settings.http_timeout_seconds,
            )
        )
    return sources
