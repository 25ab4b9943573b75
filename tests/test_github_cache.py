"""
Tests for the stale-while-revalidate cache.

Time is driven by the ``clock`` fixture; no test sleeps.
"""

import asyncio

import pytest

from opsboard.core.github.cache import (
    CacheEntry,
    Decision,
    EntryState,
    Failed,
    Fresh,
    GitHubCache,
    Stale,
    StaleReason,
    classify_entry,
    plan_lookup,
    resolve_fetch,
)
from opsboard.core.github.errors import GitHubRateLimitError, GitHubUpstreamError
from opsboard.core.github.ratelimit import RateLimitState


class Fetcher:
    """Async operation that counts calls and returns or raises."""

    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def make_cache(clock, rate_limit=None, **kwargs) -> GitHubCache:
    return GitHubCache(rate_limit or RateLimitState(), clock=clock, **kwargs)


# ==============================================================================
# Pure decision functions
# ==============================================================================


class TestClassifyEntry:
    """Tests for entry age classification."""

    def test_missing(self) -> None:
        assert classify_entry(None, 0.0) is EntryState.MISSING

    def test_boundaries(self) -> None:
        entry = CacheEntry.create({"v": 1}, now=0.0, ttl=60.0, stale_multiplier=5.0)
        assert entry.expires_at == 60.0
        assert entry.stale_until == 300.0

        assert classify_entry(entry, 59.9) is EntryState.FRESH
        assert classify_entry(entry, 60.0) is EntryState.STALE
        assert classify_entry(entry, 299.9) is EntryState.STALE
        assert classify_entry(entry, 300.0) is EntryState.EXPIRED


class TestPlanLookup:
    """Tests for the pre-fetch decision."""

    def test_fresh_is_served(self) -> None:
        assert plan_lookup(EntryState.FRESH, rate_limit_low=True) is Decision.SERVE_FRESH
        assert plan_lookup(EntryState.FRESH, rate_limit_low=False) is Decision.SERVE_FRESH

    def test_stale_served_only_when_budget_low(self) -> None:
        assert plan_lookup(EntryState.STALE, rate_limit_low=True) is Decision.SERVE_STALE
        assert plan_lookup(EntryState.STALE, rate_limit_low=False) is Decision.REVALIDATE

    def test_missing_and_expired_revalidate(self) -> None:
        for state in (EntryState.MISSING, EntryState.EXPIRED):
            assert plan_lookup(state, rate_limit_low=True) is Decision.REVALIDATE


class TestResolveFetch:
    """Tests for combining a fetch outcome with the current entry."""

    def test_success_replaces_entry(self) -> None:
        old = CacheEntry.create("old", now=0.0, ttl=60.0, stale_multiplier=5.0)
        entry, result = resolve_fetch(old, 100.0, 60.0, 5.0, Fresh("new"))

        assert result == Fresh("new")
        assert entry is not None
        assert entry.data == "new"
        assert entry.fetched_at == 100.0
        assert entry.expires_at == 160.0

    def test_failure_with_stale_entry_serves_stale(self) -> None:
        old = CacheEntry.create("old", now=0.0, ttl=60.0, stale_multiplier=5.0)
        error = GitHubUpstreamError("boom", 502)

        entry, result = resolve_fetch(old, 100.0, 60.0, 5.0, Failed(error))

        assert entry is old
        assert isinstance(result, Stale)
        assert result.data == "old"
        assert result.reason is StaleReason.FETCH_FAILED
        assert result.error is error

    def test_failure_without_entry_fails(self) -> None:
        error = GitHubUpstreamError("boom", 502)
        entry, result = resolve_fetch(None, 100.0, 60.0, 5.0, Failed(error))
        assert entry is None
        assert result == Failed(error)

    def test_failure_with_expired_entry_fails(self) -> None:
        old = CacheEntry.create("old", now=0.0, ttl=60.0, stale_multiplier=5.0)
        error = GitHubUpstreamError("boom", 502)

        entry, result = resolve_fetch(old, 500.0, 60.0, 5.0, Failed(error))

        assert entry is None
        assert isinstance(result, Failed)


# ==============================================================================
# GitHubCache
# ==============================================================================


class TestCacheInit:
    """Tests for constructor validation."""

    def test_rejects_non_positive_ttl(self, clock) -> None:
        with pytest.raises(ValueError, match="default_ttl"):
            make_cache(clock, default_ttl=0)

    def test_rejects_multiplier_not_above_one(self, clock) -> None:
        with pytest.raises(ValueError, match="stale_multiplier"):
            make_cache(clock, stale_multiplier=1.0)

    @pytest.mark.asyncio
    async def test_rejects_non_positive_lookup_ttl(self, clock) -> None:
        cache = make_cache(clock)
        with pytest.raises(ValueError, match="ttl"):
            await cache.cached_fetch("x", Fetcher({"v": 1}), ttl=-1)


class TestFreshness:
    """Tests for serving fresh entries."""

    @pytest.mark.asyncio
    async def test_fresh_entry_served_without_fetch(self, clock) -> None:
        cache = make_cache(clock)
        fetcher = Fetcher({"v": 1})

        assert await cache.cached_fetch("x", fetcher, ttl=60) == {"v": 1}
        clock.advance(59)
        assert await cache.cached_fetch("x", fetcher, ttl=60) == {"v": 1}

        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_lookup_reports_fresh(self, clock) -> None:
        cache = make_cache(clock)
        result = await cache.lookup("x", Fetcher("data"), ttl=60)
        assert result == Fresh("data")

    @pytest.mark.asyncio
    async def test_stale_entry_revalidates_when_budget_ok(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("x", Fetcher({"v": 1}), ttl=60)

        clock.advance(61)
        refresher = Fetcher({"v": 2})
        assert await cache.cached_fetch("x", refresher, ttl=60) == {"v": 2}
        assert refresher.calls == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("issues-open", Fetcher(["open"]), ttl=60)
        await cache.cached_fetch("issues-closed", Fetcher(["closed"]), ttl=60)

        assert len(cache) == 2
        assert cache.get("issues-open").data == ["open"]
        assert cache.get("issues-closed").data == ["closed"]

    @pytest.mark.asyncio
    async def test_default_ttl_used(self, clock) -> None:
        cache = make_cache(clock, default_ttl=30)
        await cache.cached_fetch("x", Fetcher(1))
        entry = cache.get("x")
        assert entry is not None
        assert entry.expires_at - entry.fetched_at == 30


class TestStaleOnError:
    """Tests for falling back to stale data when a fetch fails."""

    @pytest.mark.asyncio
    async def test_stale_served_after_failed_revalidation(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("x", Fetcher({"v": 1}), ttl=60)

        clock.advance(61)
        failing = Fetcher(error=GitHubUpstreamError("boom", 502))

        assert await cache.cached_fetch("x", failing, ttl=60) == {"v": 1}
        assert failing.calls == 1

    @pytest.mark.asyncio
    async def test_lookup_tags_stale_with_error(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("x", Fetcher("old"), ttl=60)
        clock.advance(120)
        error = GitHubRateLimitError("Rate limited", 429)

        result = await cache.lookup("x", Fetcher(error=error), ttl=60)

        assert isinstance(result, Stale)
        assert result.data == "old"
        assert result.reason is StaleReason.FETCH_FAILED
        assert result.error is error

    @pytest.mark.asyncio
    async def test_failed_revalidation_keeps_entry_timestamps(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("x", Fetcher("old"), ttl=60)
        original = cache.get("x")

        clock.advance(100)
        await cache.cached_fetch("x", Fetcher(error=GitHubUpstreamError("boom", 500)), ttl=60)

        assert cache.get("x") == original


class TestHardMiss:
    """Tests for failures with nothing cached."""

    @pytest.mark.asyncio
    async def test_error_propagates_unchanged(self, clock) -> None:
        cache = make_cache(clock)
        error = GitHubRateLimitError("Rate limited", 403)

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await cache.cached_fetch("x", Fetcher(error=error), ttl=60)

        assert exc_info.value is error
        assert cache.get("x") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_lookup_returns_failed(self, clock) -> None:
        cache = make_cache(clock)
        error = GitHubUpstreamError("boom", 502)
        result = await cache.lookup("x", Fetcher(error=error), ttl=60)
        assert result == Failed(error)


class TestEviction:
    """Tests for removing entries past the stale window."""

    @pytest.mark.asyncio
    async def test_expired_entry_is_evicted_and_error_raised(self, clock) -> None:
        cache = make_cache(clock, stale_multiplier=5.0)
        await cache.cached_fetch("x", Fetcher({"v": 1}), ttl=60)

        clock.advance(301)
        error = GitHubUpstreamError("boom", 502)
        with pytest.raises(GitHubUpstreamError):
            await cache.cached_fetch("x", Fetcher(error=error), ttl=60)

        assert cache.get("x") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_get_evicts_expired_entry(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("x", Fetcher(1), ttl=10)

        clock.advance(10 * 5 + 1)

        assert cache.get("x") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_stale_window_scales_with_ttl(self, clock) -> None:
        """Test each key's stale window is a multiple of its own TTL."""
        cache = make_cache(clock, stale_multiplier=2.0)
        await cache.cached_fetch("short", Fetcher("s"), ttl=60)
        await cache.cached_fetch("long", Fetcher("l"), ttl=300)

        clock.advance(200)

        assert cache.get("short") is None
        assert cache.get("long") is not None


class TestBudgetShortCircuit:
    """Tests for serving stale data when the rate-limit budget is low."""

    @pytest.mark.asyncio
    async def test_stale_served_without_calling_fetcher(self, clock) -> None:
        rate_limit = RateLimitState()
        cache = make_cache(clock, rate_limit)
        await cache.cached_fetch("x", Fetcher({"v": 1}), ttl=60)

        clock.advance(61)
        rate_limit.update_from_headers(
            {"x-ratelimit-remaining": "5", "x-ratelimit-reset": str(int(clock.now) + 600)}
        )
        fetcher = Fetcher({"v": 2})

        result = await cache.lookup("x", fetcher, ttl=60)

        assert fetcher.calls == 0
        assert isinstance(result, Stale)
        assert result.data == {"v": 1}
        assert result.reason is StaleReason.RATE_LIMIT_BUDGET
        assert result.error is None

    @pytest.mark.asyncio
    async def test_past_reset_revalidates(self, clock) -> None:
        rate_limit = RateLimitState()
        cache = make_cache(clock, rate_limit)
        await cache.cached_fetch("x", Fetcher({"v": 1}), ttl=60)

        rate_limit.update_from_headers(
            {"x-ratelimit-remaining": "0", "x-ratelimit-reset": str(int(clock.now) + 30)}
        )
        clock.advance(61)
        fetcher = Fetcher({"v": 2})

        assert await cache.cached_fetch("x", fetcher, ttl=60) == {"v": 2}
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_low_budget_does_not_block_missing_key(self, clock) -> None:
        rate_limit = RateLimitState(remaining=1, reset_at=clock.now + 600)
        cache = make_cache(clock, rate_limit)
        fetcher = Fetcher("data")

        assert await cache.cached_fetch("x", fetcher, ttl=60) == "data"
        assert fetcher.calls == 1


class TestScenario:
    """Walks through fetch at 0s, hit at 30s and failed revalidation at 61s."""

    @pytest.mark.asyncio
    async def test_fresh_hit_then_stale_fallback(self, clock) -> None:
        cache = make_cache(clock)
        fetcher_a = Fetcher({"v": 1})
        fetcher_b = Fetcher(error=GitHubUpstreamError("GitHub API error: 502", 502))

        assert await cache.cached_fetch("x", fetcher_a, ttl=60) == {"v": 1}
        assert fetcher_a.calls == 1

        clock.advance(30)
        assert await cache.cached_fetch("x", fetcher_a, ttl=60) == {"v": 1}
        assert fetcher_a.calls == 1

        clock.advance(31)
        assert await cache.cached_fetch("x", fetcher_b, ttl=60) == {"v": 1}
        assert fetcher_b.calls == 1


class TestDeduplication:
    """Tests for sharing in-flight revalidations."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self, clock) -> None:
        cache = make_cache(clock)
        release = asyncio.Event()
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return {"v": 1}

        first = asyncio.ensure_future(cache.cached_fetch("x", slow_fetch, ttl=60))
        second = asyncio.ensure_future(cache.cached_fetch("x", slow_fetch, ttl=60))
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(first, second) == [{"v": 1}, {"v": 1}]
        assert calls == 1

    @pytest.mark.asyncio
    async def test_shared_failure_reaches_every_caller(self, clock) -> None:
        cache = make_cache(clock)
        release = asyncio.Event()
        error = GitHubUpstreamError("boom", 502)

        async def failing_fetch():
            await release.wait()
            raise error

        first = asyncio.ensure_future(cache.cached_fetch("x", failing_fetch, ttl=60))
        second = asyncio.ensure_future(cache.cached_fetch("x", failing_fetch, ttl=60))
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second, return_exceptions=True)
        assert results == [error, error]

    @pytest.mark.asyncio
    async def test_inflight_released_after_completion(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("x", Fetcher(1), ttl=60)
        await asyncio.sleep(0)
        assert cache._inflight == {}

    @pytest.mark.asyncio
    async def test_dedupe_disabled_runs_each_fetch(self, clock) -> None:
        cache = make_cache(clock, dedupe=False)
        release = asyncio.Event()
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return calls

        first = asyncio.ensure_future(cache.cached_fetch("x", slow_fetch, ttl=60))
        second = asyncio.ensure_future(cache.cached_fetch("x", slow_fetch, ttl=60))
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(first, second)

        assert calls == 2


class TestCacheMaintenance:
    """Tests for invalidation and stats."""

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self, clock) -> None:
        cache = make_cache(clock)
        await cache.cached_fetch("a", Fetcher(1), ttl=60)
        await cache.cached_fetch("b", Fetcher(2), ttl=60)

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_stats(self, clock) -> None:
        rate_limit = RateLimitState()
        cache = make_cache(clock, rate_limit)
        await cache.cached_fetch("a", Fetcher(1), ttl=60)
        rate_limit.update_from_headers({"x-ratelimit-remaining": "4321"})

        stats = cache.stats()

        assert stats.entries == 1
        assert stats.rate_limit_remaining == 4321
        assert stats.rate_limit_reset is None
        assert stats.last_error is None
