"""
GitHub integration for opsboard.

Provides the rate-limit-aware API client, the stale-while-revalidate cache
and the cached dashboard views built on top of them.
"""

from opsboard.core.github.cache import (
    CacheEntry,
    CacheResult,
    Failed,
    Fresh,
    GitHubCache,
    Stale,
    StaleReason,
)
from opsboard.core.github.client import GitHubClient
from opsboard.core.github.errors import (
    ErrorKind,
    GitHubAuthError,
    GitHubConfigError,
    GitHubError,
    GitHubRateLimitError,
    GitHubUpstreamError,
)
from opsboard.core.github.models import CacheStats
from opsboard.core.github.ratelimit import RateLimitState
from opsboard.core.github.service import GitHubDashboardService

__all__ = [
    "CacheEntry",
    "CacheResult",
    "CacheStats",
    "ErrorKind",
    "Failed",
    "Fresh",
    "GitHubAuthError",
    "GitHubCache",
    "GitHubClient",
    "GitHubConfigError",
    "GitHubDashboardService",
    "GitHubError",
    "GitHubRateLimitError",
    "GitHubUpstreamError",
    "RateLimitState",
    "Stale",
    "StaleReason",
]
