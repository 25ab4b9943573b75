"""
GitHub-backed dashboard views.

``GitHubDashboardService`` owns one ``GitHubClient`` and one ``GitHubCache``
sharing a ``RateLimitState``, and exposes each dashboard view as a cached
coroutine. Cache keys identify the view and its parameters
(``issues-open``, ``pipeline-03-foo``).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from opsboard.core.config.models import CacheConfig, GitHubConfig, OpsboardConfig
from opsboard.core.github.cache import GitHubCache
from opsboard.core.github.client import GitHubClient
from opsboard.core.github.errors import GitHubError
from opsboard.core.github.models import (
    Board,
    CacheStats,
    GitHubIssue,
    PipelineItem,
    PullRequestSummary,
)
from opsboard.core.github.queries import (
    BOARD_QUERY,
    PULLS_QUERY,
    build_board,
    build_pipeline_item,
    flatten_pulls,
)
from opsboard.core.github.ratelimit import RateLimitState

logger = logging.getLogger(__name__)

ISSUE_STATES = ("open", "closed", "all")
PIPELINE_DIR = "pipeline"


class GitHubDashboardService:
    """
    Cached GitHub views for the dashboard.

    Example:
        >>> service = GitHubDashboardService.from_config(load_config())
        >>> board = await service.board()
        >>> service.status().rate_limit_remaining
        4999
    """

    def __init__(
        self,
        client: GitHubClient,
        cache: GitHubCache,
        github: GitHubConfig,
        cache_config: CacheConfig | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.github = github
        self.cache_config = cache_config or CacheConfig()

    @classmethod
    def from_config(
        cls,
        config: OpsboardConfig,
        *,
        clock: Callable[[], float] = time.time,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GitHubDashboardService:
        """
        Build a service whose client and cache share one rate-limit state.

        Args:
            config: Loaded configuration
            clock: Function returning the current epoch seconds
            transport: Optional httpx transport for the client

        Returns:
            GitHubDashboardService instance
        """
        rate_limit = RateLimitState()
        client = GitHubClient(
            config.github.token,
            api_url=config.github.api_url,
            timeout=config.github.timeout_seconds,
            rate_limit=rate_limit,
            clock=clock,
            transport=transport,
        )
        cache = GitHubCache(
            rate_limit,
            default_ttl=config.cache.default_ttl_seconds,
            stale_multiplier=config.cache.stale_multiplier,
            low_water_mark=config.cache.low_water_mark,
            clock=clock,
            dedupe=config.cache.dedupe,
        )
        return cls(client, cache, config.github, config.cache)

    async def aclose(self) -> None:
        await self.client.aclose()

    def status(self) -> CacheStats:
        """Current cache size, rate-limit budget and last error."""
        return self.cache.stats()

    async def board(self) -> Board:
        """Organization project board grouped by status."""

        async def fetch() -> Board:
            payload = await self.client.graphql(
                BOARD_QUERY,
                {"org": self.github.org, "number": self.github.project_number},
            )
            return build_board(payload)

        return await self.cache.cached_fetch(
            "board", fetch, ttl=self.cache_config.board_ttl_seconds
        )

    async def issues(self, state: str = "open") -> list[GitHubIssue]:
        """
        Issues of the operations repository.

        Args:
            state: "open", "closed" or "all"

        Raises:
            ValueError: If state is not a valid issue state
        """
        if state not in ISSUE_STATES:
            raise ValueError(f"state must be one of {', '.join(ISSUE_STATES)}, got {state!r}")

        async def fetch() -> list[GitHubIssue]:
            items = await self.client.rest(
                f"/repos/{self.github.org}/{self.github.repo}/issues",
                params={"state": state, "per_page": 100},
            )
            if not isinstance(items, list):
                return []
            return [GitHubIssue.from_api(item) for item in items if isinstance(item, dict)]

        return await self.cache.cached_fetch(
            f"issues-{state}", fetch, ttl=self.cache_config.issues_ttl_seconds
        )

    async def pulls(self) -> list[PullRequestSummary]:
        """Recent pull requests across the organization's repositories."""

        async def fetch() -> list[PullRequestSummary]:
            payload = await self.client.graphql(PULLS_QUERY, {"org": self.github.org})
            return flatten_pulls(payload)

        return await self.cache.cached_fetch(
            "pulls", fetch, ttl=self.cache_config.pulls_ttl_seconds
        )

    async def _contents(self, path: str) -> list[dict[str, Any]]:
        async def fetch() -> list[dict[str, Any]]:
            listing = await self.client.rest(
                f"/repos/{self.github.org}/{self.github.repo}/contents/{path}"
            )
            if not isinstance(listing, list):
                return []
            return [entry for entry in listing if isinstance(entry, dict)]

        key = PIPELINE_DIR if path == PIPELINE_DIR else f"pipeline-{path.rsplit('/', 1)[-1]}"
        return await self.cache.cached_fetch(
            key, fetch, ttl=self.cache_config.pipeline_ttl_seconds
        )

    async def _pipeline_item(self, dir_name: str) -> PipelineItem:
        try:
            files = await self._contents(f"{PIPELINE_DIR}/{dir_name}")
        except GitHubError as e:
            # Degrade to an item without reports
            logger.warning("Could not list pipeline/%s: %s", dir_name, e)
            files = []
        return build_pipeline_item(dir_name, files)

    async def pipeline(self) -> list[PipelineItem]:
        """Stage-gate pipeline items, one per ``pipeline/NN-name`` directory."""
        listing = await self._contents(PIPELINE_DIR)
        dirs = [entry["name"] for entry in listing if entry.get("type") == "dir"]
        items = await asyncio.gather(*(self._pipeline_item(name) for name in dirs))
        return sorted(items, key=lambda item: item.id)


__all__ = ["GitHubDashboardService", "ISSUE_STATES"]
