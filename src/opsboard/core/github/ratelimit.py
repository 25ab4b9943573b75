"""
Rate-limit bookkeeping for the GitHub API.

GitHub reports the remaining call budget and the reset time in the
``x-ratelimit-remaining`` and ``x-ratelimit-reset`` headers of every
response, including 403/429 responses. ``RateLimitState`` keeps the latest
values together with the most recent fetch failure so the cache can decide
whether to spend a request and the status endpoint can report it.

The state starts optimistic (a full budget) and is only ever corrected by new
response headers. It is not persisted.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_REMAINING = 5000
REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"


@dataclass(frozen=True)
class LastError:
    """Most recent fetch failure."""

    message: str
    occurred_at: float


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Point-in-time copy of the rate-limit state."""

    remaining: int
    reset_at: float
    last_error: LastError | None


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class RateLimitState:
    """
    Mutable rate-limit record shared by a client and its cache.

    Attributes:
        remaining: Calls believed to be left before reset
        reset_at: Epoch seconds when the budget replenishes (0 if unknown)
        last_error: Most recent failure, or None

    Example:
        >>> state = RateLimitState()
        >>> state.update_from_headers({"x-ratelimit-remaining": "3",
        ...                            "x-ratelimit-reset": "1700000000"})
        >>> state.remaining, state.reset_at
        (3, 1700000000.0)
    """

    def __init__(self, remaining: int = DEFAULT_REMAINING, reset_at: float = 0.0) -> None:
        self._lock = threading.Lock()
        self.remaining = max(0, remaining)
        self.reset_at = reset_at
        self.last_error: LastError | None = None

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """
        Apply rate-limit telemetry from response headers.

        Each header is applied independently and only when present and
        parseable. Must be called for every completed response regardless of
        its status.

        Args:
            headers: Response headers (case-insensitive mapping or lower-case keys)
        """
        remaining = _parse_int(headers.get(REMAINING_HEADER))
        reset = _parse_int(headers.get(RESET_HEADER))

        with self._lock:
            if remaining is not None:
                self.remaining = max(0, remaining)
            if reset is not None:
                self.reset_at = float(reset)

    def record_error(self, message: str, now: float) -> None:
        """Overwrite the last error with a new failure."""
        with self._lock:
            self.last_error = LastError(message=message, occurred_at=now)

    def is_low(self, now: float, low_water_mark: int) -> bool:
        """
        Check whether the budget is too low to spend on revalidation.

        Args:
            now: Current epoch seconds
            low_water_mark: Threshold below which the budget counts as low

        Returns:
            True if fewer than ``low_water_mark`` calls remain and the reset
            time is still in the future
        """
        with self._lock:
            return self.remaining < low_water_mark and self.reset_at > now

    def snapshot(self) -> RateLimitSnapshot:
        """Return an immutable copy of the current state."""
        with self._lock:
            return RateLimitSnapshot(
                remaining=self.remaining,
                reset_at=self.reset_at,
                last_error=self.last_error,
            )


__all__ = [
    "DEFAULT_REMAINING",
    "LastError",
    "RateLimitSnapshot",
    "RateLimitState",
]
