"""Tests for RateLimitState."""

import httpx

from opsboard.core.github.ratelimit import DEFAULT_REMAINING, RateLimitState


class TestRateLimitDefaults:
    """Tests for the initial state."""

    def test_starts_optimistic(self) -> None:
        """Test a new state assumes a full budget and unknown reset."""
        state = RateLimitState()
        assert state.remaining == DEFAULT_REMAINING
        assert state.reset_at == 0.0
        assert state.last_error is None

    def test_not_low_when_reset_unknown(self) -> None:
        """Test a low budget with an unknown reset does not count as low."""
        state = RateLimitState(remaining=0)
        assert state.is_low(now=100.0, low_water_mark=10) is False


class TestUpdateFromHeaders:
    """Tests for applying response headers."""

    def test_applies_both_headers(self) -> None:
        state = RateLimitState()
        state.update_from_headers(
            {"x-ratelimit-remaining": "3", "x-ratelimit-reset": "1700000000"}
        )
        assert state.remaining == 3
        assert state.reset_at == 1700000000.0

    def test_case_insensitive_httpx_headers(self) -> None:
        """Test httpx.Headers are read regardless of header casing."""
        state = RateLimitState()
        state.update_from_headers(
            httpx.Headers({"X-RateLimit-Remaining": "42", "X-RateLimit-Reset": "99"})
        )
        assert state.remaining == 42
        assert state.reset_at == 99.0

    def test_missing_headers_keep_previous_values(self) -> None:
        state = RateLimitState(remaining=10, reset_at=50.0)
        state.update_from_headers({})
        assert state.remaining == 10
        assert state.reset_at == 50.0

    def test_headers_applied_independently(self) -> None:
        state = RateLimitState(remaining=10, reset_at=50.0)
        state.update_from_headers({"x-ratelimit-reset": "75"})
        assert state.remaining == 10
        assert state.reset_at == 75.0

    def test_unparseable_values_ignored(self) -> None:
        state = RateLimitState(remaining=10, reset_at=50.0)
        state.update_from_headers(
            {"x-ratelimit-remaining": "lots", "x-ratelimit-reset": ""}
        )
        assert state.remaining == 10
        assert state.reset_at == 50.0

    def test_negative_remaining_clamped(self) -> None:
        state = RateLimitState()
        state.update_from_headers({"x-ratelimit-remaining": "-5"})
        assert state.remaining == 0


class TestIsLow:
    """Tests for the budget check."""

    def test_low_with_future_reset(self) -> None:
        state = RateLimitState(remaining=9, reset_at=200.0)
        assert state.is_low(now=100.0, low_water_mark=10) is True

    def test_at_threshold_is_not_low(self) -> None:
        state = RateLimitState(remaining=10, reset_at=200.0)
        assert state.is_low(now=100.0, low_water_mark=10) is False

    def test_past_reset_is_not_low(self) -> None:
        state = RateLimitState(remaining=0, reset_at=99.0)
        assert state.is_low(now=100.0, low_water_mark=10) is False


class TestRecordError:
    """Tests for last-error bookkeeping."""

    def test_last_error_overwritten(self) -> None:
        state = RateLimitState()
        state.record_error("first", 1.0)
        state.record_error("second", 2.0)
        assert state.last_error is not None
        assert state.last_error.message == "second"
        assert state.last_error.occurred_at == 2.0

    def test_snapshot_is_a_copy(self) -> None:
        state = RateLimitState(remaining=7, reset_at=5.0)
        state.record_error("oops", 3.0)
        snapshot = state.snapshot()

        state.update_from_headers({"x-ratelimit-remaining": "1"})

        assert snapshot.remaining == 7
        assert snapshot.reset_at == 5.0
        assert snapshot.last_error is not None
        assert snapshot.last_error.message == "oops"
