"""
Typed errors raised by the GitHub fetch client.

Each error carries the HTTP status that produced it and an ``ErrorKind`` so
callers (the cache, route handlers, the CLI) can react without parsing
messages:

- CONFIGURATION: no token configured, raised before any request is sent
- AUTHENTICATION: 401, the token is invalid or expired
- RATE_LIMITED: 403 or 429, back off and serve stale data
- UPSTREAM: any other failure (non-2xx, network error, malformed JSON)
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of GitHub failures."""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    UPSTREAM = "upstream"


class GitHubError(Exception):
    """
    Base error for GitHub API operations.

    Attributes:
        message: Human-readable error message
        status: HTTP status that produced the error (0 when no response)
        kind: Error classification
    """

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status: int = 0) -> None:
        self.message = message
        self.status = status
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Whether a later attempt with the same credential can succeed."""
        return self.kind in (ErrorKind.RATE_LIMITED, ErrorKind.UPSTREAM)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status={self.status})"


class GitHubConfigError(GitHubError):
    """No GitHub token is configured."""

    kind = ErrorKind.CONFIGURATION


class GitHubAuthError(GitHubError):
    """The GitHub token was rejected (401)."""

    kind = ErrorKind.AUTHENTICATION


class GitHubRateLimitError(GitHubError):
    """GitHub refused the request because of rate limiting (403/429)."""

    kind = ErrorKind.RATE_LIMITED


class GitHubUpstreamError(GitHubError):
    """Any other GitHub failure."""

    kind = ErrorKind.UPSTREAM


def error_for_status(status: int, message: str) -> GitHubError:
    """
    Build the error matching an HTTP status code.

    Args:
        status: HTTP status code of the failed response
        message: Error message

    Returns:
        GitHubAuthError for 401, GitHubRateLimitError for 403/429,
        GitHubUpstreamError otherwise

    Example:
        >>> type(error_for_status(429, "Rate limited")).__name__
        'GitHubRateLimitError'
    """
    if status == 401:
        return GitHubAuthError(message, status)
    if status in (403, 429):
        return GitHubRateLimitError(message, status)
    return GitHubUpstreamError(message, status)


__all__ = [
    "ErrorKind",
    "GitHubAuthError",
    "GitHubConfigError",
    "GitHubError",
    "GitHubRateLimitError",
    "GitHubUpstreamError",
    "error_for_status",
]
