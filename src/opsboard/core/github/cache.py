"""
Stale-while-revalidate cache for GitHub data.

Memoizes the result of an async operation under a string key and trades
freshness for availability:

- FRESH entries (younger than their TTL) are served without a request.
- STALE entries (past their TTL but inside the stale window) are served
  without a request when the rate-limit budget is nearly exhausted, and are
  served as a fallback whenever revalidation fails.
- EXPIRED entries (past the stale window) are evicted on lookup and treated
  as missing.

The stale window of each entry is ``ttl * stale_multiplier``, so every key
keeps a grace period proportional to its own TTL.

The decision logic lives in pure functions (``classify_entry``,
``plan_lookup``, ``resolve_fetch``) that take explicit timestamps; the
``GitHubCache`` class only owns the entry map, the clock and the in-flight
registry.

Example:
    >>> cache = GitHubCache(client.rate_limit)
    >>> issues = await cache.cached_fetch(
    ...     "issues-open", lambda: client.rest("/repos/acme/ops/issues"), ttl=60
    ... )
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from opsboard.core.github.models import CacheStats
from opsboard.core.github.ratelimit import RateLimitState

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 60.0
DEFAULT_STALE_MULTIPLIER = 5.0
DEFAULT_LOW_WATER_MARK = 10


class EntryState(str, Enum):
    """Age classification of a cache entry."""

    MISSING = "missing"
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


class Decision(str, Enum):
    """What a lookup should do before touching the network."""

    SERVE_FRESH = "serve_fresh"
    SERVE_STALE = "serve_stale"
    REVALIDATE = "revalidate"


class StaleReason(str, Enum):
    """Why stale data was returned."""

    RATE_LIMIT_BUDGET = "rate_limit_budget"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """
    A cached payload and its validity bounds.

    Attributes:
        data: Last successfully fetched payload
        fetched_at: When the payload was obtained (epoch seconds)
        expires_at: End of the fresh window (fetched_at + ttl)
        stale_until: End of the stale window (fetched_at + ttl * multiplier)
    """

    data: T
    fetched_at: float
    expires_at: float
    stale_until: float

    @classmethod
    def create(
        cls, data: T, now: float, ttl: float, stale_multiplier: float
    ) -> CacheEntry[T]:
        return cls(
            data=data,
            fetched_at=now,
            expires_at=now + ttl,
            stale_until=now + ttl * stale_multiplier,
        )


@dataclass(frozen=True)
class Fresh(Generic[T]):
    """Data fetched just now or served from a fresh entry."""

    data: T


@dataclass(frozen=True)
class Stale(Generic[T]):
    """Data served from a stale entry instead of a fresh fetch."""

    data: T
    reason: StaleReason
    error: Exception | None = None


@dataclass(frozen=True)
class Failed:
    """The fetch failed and there was nothing to fall back to."""

    error: Exception


CacheResult = Union[Fresh[Any], Stale[Any], Failed]


def classify_entry(entry: CacheEntry[Any] | None, now: float) -> EntryState:
    """
    Classify an entry by age.

    Args:
        entry: Cache entry or None
        now: Current epoch seconds

    Returns:
        MISSING, FRESH, STALE or EXPIRED
    """
    if entry is None:
        return EntryState.MISSING
    if now < entry.expires_at:
        return EntryState.FRESH
    if now < entry.stale_until:
        return EntryState.STALE
    return EntryState.EXPIRED


def plan_lookup(state: EntryState, rate_limit_low: bool) -> Decision:
    """
    Decide whether a lookup can be answered without a request.

    Args:
        state: Classification of the current entry
        rate_limit_low: Whether the remaining budget is below the low-water
            mark with the reset still in the future

    Returns:
        SERVE_FRESH for fresh entries, SERVE_STALE for stale entries under
        budget pressure, REVALIDATE otherwise (including expired entries)
    """
    if state is EntryState.FRESH:
        return Decision.SERVE_FRESH
    if state is EntryState.STALE and rate_limit_low:
        return Decision.SERVE_STALE
    return Decision.REVALIDATE


def resolve_fetch(
    entry: CacheEntry[Any] | None,
    now: float,
    ttl: float,
    stale_multiplier: float,
    outcome: Fresh[Any] | Failed,
) -> tuple[CacheEntry[Any] | None, CacheResult]:
    """
    Combine a fetch outcome with the current entry.

    Args:
        entry: Entry present when the fetch completed (may be None)
        now: Completion time (epoch seconds)
        ttl: Fresh TTL for a new entry
        stale_multiplier: Stale window as a multiple of ``ttl``
        outcome: ``Fresh(data)`` on success or ``Failed(error)`` on failure

    Returns:
        Tuple of (entry to keep or None, result for the caller)
    """
    if isinstance(outcome, Fresh):
        return CacheEntry.create(outcome.data, now, ttl, stale_multiplier), outcome

    if classify_entry(entry, now) in (EntryState.FRESH, EntryState.STALE):
        assert entry is not None
        return entry, Stale(entry.data, StaleReason.FETCH_FAILED, outcome.error)

    return None, outcome


class GitHubCache:
    """
    Keyed stale-while-revalidate cache.

    Concurrent lookups that need to revalidate the same key share one
    in-flight task, so the operation runs once and every caller receives the
    same outcome. With ``dedupe=False`` each caller runs the operation and the
    last completed write wins.

    Attributes:
        rate_limit: Rate-limit state consulted before revalidating
        default_ttl: TTL used when a lookup does not pass one
        stale_multiplier: Stale window as a multiple of each key's TTL
        low_water_mark: Remaining-call threshold for serving stale data
    """

    def __init__(
        self,
        rate_limit: RateLimitState | None = None,
        *,
        default_ttl: float = DEFAULT_TTL,
        stale_multiplier: float = DEFAULT_STALE_MULTIPLIER,
        low_water_mark: int = DEFAULT_LOW_WATER_MARK,
        clock: Callable[[], float] = time.time,
        dedupe: bool = True,
    ) -> None:
        """
        Initialize the cache.

        Args:
            rate_limit: Rate-limit state shared with the fetch client
            default_ttl: Default fresh TTL in seconds (must be > 0)
            stale_multiplier: Stale window multiple (must be > 1)
            low_water_mark: Serve stale when fewer calls than this remain
            clock: Function returning the current epoch seconds
            dedupe: Share in-flight revalidations per key

        Raises:
            ValueError: If default_ttl <= 0 or stale_multiplier <= 1
        """
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be > 0, got {default_ttl}")
        if stale_multiplier <= 1:
            raise ValueError(f"stale_multiplier must be > 1, got {stale_multiplier}")

        self.rate_limit = rate_limit if rate_limit is not None else RateLimitState()
        self.default_ttl = default_ttl
        self.stale_multiplier = stale_multiplier
        self.low_water_mark = low_water_mark
        self.dedupe = dedupe
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Future[CacheResult]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _current(self, key: str, now: float) -> tuple[CacheEntry[Any] | None, EntryState]:
        entry = self._entries.get(key)
        state = classify_entry(entry, now)
        if state is EntryState.EXPIRED:
            logger.debug("Evicting expired cache entry %s", key)
            del self._entries[key]
            return None, EntryState.MISSING
        return entry, state

    def get(self, key: str) -> CacheEntry[Any] | None:
        """Return the servable entry for a key, evicting it if expired."""
        entry, _ = self._current(key, self._clock())
        return entry

    def invalidate(self, key: str) -> bool:
        """
        Drop a single key.

        Returns:
            True if an entry was removed
        """
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    async def lookup(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> CacheResult:
        """
        Resolve a key to a tagged result without raising fetch errors.

        Args:
            key: Cache key identifying the resource and its parameters
            operation: Zero-argument coroutine function performing the fetch
            ttl: Fresh TTL in seconds (defaults to ``default_ttl``)

        Returns:
            Fresh, Stale or Failed

        Raises:
            ValueError: If ttl <= 0
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")

        now = self._clock()
        entry, state = self._current(key, now)
        decision = plan_lookup(state, self.rate_limit.is_low(now, self.low_water_mark))

        if decision is Decision.SERVE_FRESH:
            assert entry is not None
            return Fresh(entry.data)

        if decision is Decision.SERVE_STALE:
            assert entry is not None
            logger.warning(
                "Rate limit low (%d remaining), serving stale for %s",
                self.rate_limit.remaining,
                key,
            )
            return Stale(entry.data, StaleReason.RATE_LIMIT_BUDGET)

        if not self.dedupe:
            return await self._revalidate(key, operation, ttl)

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._revalidate(key, operation, ttl))
            self._inflight[key] = pending
            pending.add_done_callback(lambda done: self._release(key, done))
        else:
            logger.debug("Joining in-flight fetch for %s", key)

        # Shielded so a cancelled caller does not cancel the shared fetch
        return await asyncio.shield(pending)

    def _release(self, key: str, done: asyncio.Future[CacheResult]) -> None:
        if self._inflight.get(key) is done:
            del self._inflight[key]

    async def _revalidate(
        self,
        key: str,
        operation: Callable[[], Awaitable[Any]],
        ttl: float,
    ) -> CacheResult:
        outcome: Fresh[Any] | Failed
        try:
            outcome = Fresh(await operation())
        except Exception as e:
            outcome = Failed(e)

        now = self._clock()
        entry, _ = self._current(key, now)
        next_entry, result = resolve_fetch(entry, now, ttl, self.stale_multiplier, outcome)

        if next_entry is not None:
            self._entries[key] = next_entry

        if isinstance(result, Stale):
            logger.warning("Error fetching %s, serving stale: %s", key, result.error)
        elif isinstance(result, Failed):
            logger.info("Error fetching %s with no cached data: %s", key, result.error)

        return result

    async def cached_fetch(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """
        Return cached or freshly fetched data for a key.

        Fetch failures are absorbed whenever a fresh or stale entry exists;
        otherwise the original error is re-raised unchanged.

        Args:
            key: Cache key
            operation: Zero-argument coroutine function performing the fetch
            ttl: Fresh TTL in seconds (defaults to ``default_ttl``)

        Returns:
            The payload. It is shared with the cache and must not be mutated.

        Raises:
            Exception: Whatever ``operation`` raised, when nothing is cached
        """
        result = await self.lookup(key, operation, ttl)
        if isinstance(result, Failed):
            raise result.error
        data: T = result.data
        return data

    def stats(self) -> CacheStats:
        """Report entry count, rate-limit budget and last error."""
        return CacheStats.from_state(len(self._entries), self.rate_limit.snapshot())


__all__ = [
    "CacheEntry",
    "CacheResult",
    "Decision",
    "EntryState",
    "Failed",
    "Fresh",
    "GitHubCache",
    "Stale",
    "StaleReason",
    "classify_entry",
    "plan_lookup",
    "resolve_fetch",
]
