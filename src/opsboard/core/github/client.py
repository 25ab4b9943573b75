"""
Rate-limit-aware GitHub API client.

Issues authenticated GraphQL and REST requests with httpx, records rate-limit
telemetry from every response (including failures) and raises typed errors.

Example:
    >>> client = GitHubClient(token=os.environ.get("GITHUB_TOKEN"))
    >>> data = await client.graphql("query { viewer { login } }")
    >>> issues = await client.rest("/repos/acme/ops/issues")
    >>> client.rate_limit.remaining
    4998
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from typing import Any

import httpx

from opsboard.core.github.errors import (
    GitHubConfigError,
    GitHubUpstreamError,
    error_for_status,
)
from opsboard.core.github.ratelimit import RateLimitState

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 10.0
USER_AGENT = "opsboard"

# Response bodies are truncated to this many characters in error messages
BODY_PREVIEW_CHARS = 200


def _preview(text: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    return text[:limit]


def _summarize_query(query: str, limit: int = 80) -> str:
    """Collapse a GraphQL document into a single short line for messages."""
    collapsed = re.sub(r"\s+", " ", query).strip()
    if len(collapsed) > limit:
        return collapsed[: limit - 3] + "..."
    return collapsed


class GitHubClient:
    """
    Async client for the GitHub GraphQL and REST APIs.

    The token is checked before every call rather than once at startup, so a
    deployment without a token gets a ``GitHubConfigError`` per request and no
    network traffic.

    Attributes:
        token: Bearer token (None or empty means not configured)
        api_url: Base URL of the API
        timeout: Per-call timeout in seconds
        rate_limit: Shared rate-limit state updated after every response
    """

    def __init__(
        self,
        token: str | None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limit: RateLimitState | None = None,
        clock: Callable[[], float] = time.time,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: GitHub token
            api_url: Base URL of the API (without trailing slash)
            timeout: Per-call timeout in seconds
            rate_limit: Rate-limit state to update (a new one if None)
            clock: Function returning the current epoch seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.rate_limit = rate_limit if rate_limit is not None else RateLimitState()
        self._clock = clock
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @property
    def is_configured(self) -> bool:
        """Whether a token is available."""
        return bool(self.token)

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.api_url,
                transport=self._transport,
                timeout=self.timeout,
            )
        return self._http

    def _require_token(self) -> str:
        if not self.token:
            raise GitHubConfigError("GITHUB_TOKEN not configured", 0)
        return self.token

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }

    def _fail(self, message: str) -> None:
        self.rate_limit.record_error(message, self._clock())

    async def _send(
        self,
        method: str,
        path: str,
        *,
        label: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token = self._require_token()
        try:
            response = await self._get_http().request(
                method,
                path,
                json=json,
                params=params,
                headers=self._headers(token),
                timeout=self.timeout,
            )
        except httpx.RequestError as e:
            message = f"{label} request failed: {e.__class__.__name__}: {e}"
            self._fail(message)
            raise GitHubUpstreamError(message, 0) from e

        self.rate_limit.update_from_headers(response.headers)
        return response

    def _decode(self, response: httpx.Response, label: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            message = f"{label} returned malformed JSON: {_preview(response.text)}"
            self._fail(message)
            raise GitHubUpstreamError(message, response.status_code) from e

    async def graphql(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Execute a GraphQL query.

        A 200 response with a top-level ``errors`` array is not a failure:
        the errors are logged, the first one is recorded as the last error,
        and the (possibly partial) body is returned.

        Args:
            query: GraphQL document
            variables: Query variables

        Returns:
            Parsed response body ({"data": ..., "errors": ...})

        Raises:
            GitHubConfigError: If no token is configured
            GitHubAuthError: On 401
            GitHubRateLimitError: On 403 or 429
            GitHubUpstreamError: On other failures
        """
        response = await self._send(
            "POST",
            "/graphql",
            label="GraphQL",
            json={"query": query, "variables": variables or {}},
        )

        if not response.is_success:
            status = response.status_code
            body = _preview(response.text)
            self._fail(f"GraphQL {status}: {body}")
            if status == 401:
                raise error_for_status(status, "Token expired or invalid")
            if status in (403, 429):
                raise error_for_status(status, "Rate limited")
            raise error_for_status(
                status,
                f"GitHub API error: {status} ({_summarize_query(query)}): {body}",
            )

        payload = self._decode(response, "GraphQL")
        if not isinstance(payload, dict):
            message = f"GraphQL returned unexpected payload: {type(payload).__name__}"
            self._fail(message)
            raise GitHubUpstreamError(message, response.status_code)

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else {}
            message = first.get("message") if isinstance(first, dict) else None
            self._fail(message or "GraphQL error")
            logger.warning("GraphQL errors for %s: %s", _summarize_query(query), errors)

        return payload

    async def rest(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        Execute a REST GET request.

        Args:
            path: API path starting with "/" (e.g. "/repos/acme/ops/issues")
            params: Optional query parameters

        Returns:
            Parsed JSON body

        Raises:
            GitHubConfigError: If no token is configured
            GitHubAuthError: On 401
            GitHubRateLimitError: On 403 or 429
            GitHubUpstreamError: On other failures
        """
        response = await self._send("GET", path, label="REST", params=params)

        if not response.is_success:
            status = response.status_code
            self._fail(f"REST {status} {path}")
            if status == 401:
                raise error_for_status(status, "Token expired or invalid")
            if status in (403, 429):
                raise error_for_status(status, "Rate limited")
            raise error_for_status(
                status,
                f"GitHub REST error: {status} {path}: {_preview(response.text)}",
            )

        return self._decode(response, f"REST {path}")

    async def rate_limit_status(self) -> dict[str, Any]:
        """
        Fetch the current rate-limit budget from ``/rate_limit``.

        This endpoint does not count against the core budget.

        Returns:
            Parsed ``/rate_limit`` response
        """
        result = await self.rest("/rate_limit")
        return result if isinstance(result, dict) else {}


__all__ = ["DEFAULT_API_URL", "DEFAULT_TIMEOUT", "GitHubClient"]
