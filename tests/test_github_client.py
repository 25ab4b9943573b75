"""
Tests for the GitHub API client.

All requests go through httpx.MockTransport; nothing touches the network.
"""

import json

import httpx
import pytest

from opsboard.core.github.client import GitHubClient
from opsboard.core.github.errors import (
    ErrorKind,
    GitHubAuthError,
    GitHubConfigError,
    GitHubRateLimitError,
    GitHubUpstreamError,
)
from opsboard.core.github.ratelimit import RateLimitState

RESET = 1_700_003_600


def make_client(handler, clock, token="test-token", rate_limit=None) -> GitHubClient:
    return GitHubClient(
        token,
        rate_limit=rate_limit,
        clock=clock,
        transport=httpx.MockTransport(handler),
    )


def headers(remaining: int, reset: int = RESET) -> dict[str, str]:
    return {"x-ratelimit-remaining": str(remaining), "x-ratelimit-reset": str(reset)}


class TestRequests:
    """Tests for what the client sends."""

    @pytest.mark.asyncio
    async def test_graphql_request_shape(self, clock) -> None:
        """Test GraphQL posts query and variables with auth headers."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"viewer": {"login": "me"}}})

        async with make_client(handler, clock) as client:
            payload = await client.graphql("query { viewer { login } }", {"a": 1})

        assert payload == {"data": {"viewer": {"login": "me"}}}
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/graphql"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert json.loads(request.content) == {
            "query": "query { viewer { login } }",
            "variables": {"a": 1},
        }

    @pytest.mark.asyncio
    async def test_rest_get_with_params(self, clock) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"number": 1}])

        async with make_client(handler, clock) as client:
            result = await client.rest("/repos/acme/ops/issues", params={"state": "open"})

        assert result == [{"number": 1}]
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/repos/acme/ops/issues"
        assert seen[0].url.params["state"] == "open"


class TestRateLimitTelemetry:
    """Tests for header capture on every response."""

    @pytest.mark.asyncio
    async def test_captured_on_success(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {}}, headers=headers(3))

        async with make_client(handler, clock) as client:
            await client.graphql("query { viewer { login } }")
            assert client.rate_limit.remaining == 3
            assert client.rate_limit.reset_at == float(RESET)

    @pytest.mark.asyncio
    async def test_captured_on_403(self, clock) -> None:
        """Test telemetry is recorded even when the request is refused."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, text="rate limited", headers=headers(3))

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubRateLimitError):
                await client.rest("/repos/acme/ops/issues")
            assert client.rate_limit.remaining == 3
            assert client.rate_limit.reset_at == float(RESET)

    @pytest.mark.asyncio
    async def test_shared_state_is_updated(self, clock) -> None:
        state = RateLimitState()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[], headers=headers(4321))

        async with make_client(handler, clock, rate_limit=state) as client:
            await client.rest("/repos/acme/ops/issues")

        assert state.remaining == 4321


class TestErrorClassification:
    """Tests for typed errors."""

    @pytest.mark.asyncio
    async def test_missing_token_never_calls_network(self, clock) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler, clock, token=None) as client:
            with pytest.raises(GitHubConfigError) as exc_info:
                await client.graphql("query { viewer { login } }")
            with pytest.raises(GitHubConfigError):
                await client.rest("/rate_limit")

        assert calls == []
        assert exc_info.value.kind is ErrorKind.CONFIGURATION
        assert exc_info.value.status == 0
        assert "GITHUB_TOKEN" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_token_is_not_configured(self, clock) -> None:
        client = make_client(lambda r: httpx.Response(200), clock, token="")
        assert client.is_configured is False
        with pytest.raises(GitHubConfigError):
            await client.rest("/rate_limit")

    @pytest.mark.asyncio
    async def test_401_is_auth_error(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Bad credentials"})

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubAuthError) as exc_info:
                await client.graphql("query { viewer { login } }")

        assert exc_info.value.status == 401
        assert str(exc_info.value) == "Token expired or invalid"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [403, 429])
    async def test_403_and_429_are_rate_limited(self, clock, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="slow down")

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubRateLimitError) as exc_info:
                await client.graphql("query { viewer { login } }")

        assert exc_info.value.status == status
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_other_status_is_upstream_with_context(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubUpstreamError) as exc_info:
                await client.rest("/repos/acme/ops/issues")

        assert exc_info.value.status == 502
        assert "/repos/acme/ops/issues" in str(exc_info.value)
        assert "bad gateway" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_graphql_upstream_message_summarizes_query(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="oops")

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubUpstreamError) as exc_info:
                await client.graphql("query {\n  viewer {\n    login\n  }\n}")

        assert "GitHub API error: 500" in str(exc_info.value)
        assert "query { viewer { login } }" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_upstream_with_status_zero(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubUpstreamError) as exc_info:
                await client.rest("/repos/acme/ops/issues")

            assert exc_info.value.status == 0
            assert client.rate_limit.last_error is not None
            assert "ReadTimeout" in client.rate_limit.last_error.message

    @pytest.mark.asyncio
    async def test_malformed_json_is_upstream(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>not json</html>")

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubUpstreamError) as exc_info:
                await client.rest("/repos/acme/ops/issues")

        assert exc_info.value.status == 200
        assert "malformed JSON" in str(exc_info.value)


class TestLastError:
    """Tests for last-error recording."""

    @pytest.mark.asyncio
    async def test_failure_recorded_with_time(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="Not Found")

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubUpstreamError):
                await client.rest("/repos/acme/missing/issues")

            last = client.rate_limit.last_error
            assert last is not None
            assert last.message == "REST 404 /repos/acme/missing/issues"
            assert last.occurred_at == clock.now

    @pytest.mark.asyncio
    async def test_graphql_errors_return_partial_data(self, clock) -> None:
        """Test a 200 with errors returns the body and records the first error."""
        body = {
            "data": {"organization": None},
            "errors": [{"message": "Could not resolve to an Organization"}, {"message": "x"}],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with make_client(handler, clock) as client:
            payload = await client.graphql("query { organization(login: \"x\") { id } }")

            assert payload == body
            assert client.rate_limit.last_error is not None
            assert (
                client.rate_limit.last_error.message
                == "Could not resolve to an Organization"
            )

    @pytest.mark.asyncio
    async def test_graphql_failure_message_includes_status(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        async with make_client(handler, clock) as client:
            with pytest.raises(GitHubUpstreamError):
                await client.graphql("query { viewer { login } }")

            assert client.rate_limit.last_error is not None
            assert client.rate_limit.last_error.message == "GraphQL 503: unavailable"


class TestRateLimitStatus:
    """Tests for the /rate_limit helper."""

    @pytest.mark.asyncio
    async def test_returns_resources(self, clock) -> None:
        body = {"resources": {"core": {"limit": 5000, "remaining": 4999, "reset": RESET}}}

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/rate_limit"
            return httpx.Response(200, json=body)

        async with make_client(handler, clock) as client:
            assert await client.rate_limit_status() == body
