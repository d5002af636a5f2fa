"""Tests for the pure retry backoff computation."""

from __future__ import annotations

import pytest

from pincho.client.backoff import MAX_BACKOFF, compute_backoff


class TestExponentialSchedule:
    def test_default_schedule(self):
        delays = [compute_backoff(a, 500) for a in range(7)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_transport_failures_use_same_schedule(self):
        assert compute_backoff(2, 0) == 4.0

    def test_custom_initial_backoff(self):
        assert compute_backoff(0, 503, initial_backoff=0.5) == 0.5
        assert compute_backoff(3, 503, initial_backoff=0.5) == 4.0

    def test_non_positive_initial_backoff_falls_back_to_default(self):
        assert compute_backoff(0, 500, initial_backoff=0) == 1.0

    def test_monotonic_up_to_cap(self):
        delays = [compute_backoff(a, 500) for a in range(40)]
        assert delays == sorted(delays)
        assert max(delays) == MAX_BACKOFF

    def test_huge_attempt_does_not_overflow(self):
        assert compute_backoff(10_000, 500) == MAX_BACKOFF

    def test_negative_attempt_is_clamped(self):
        assert compute_backoff(-1, 500) == 1.0

    def test_retry_after_ignored_for_non_429(self):
        assert compute_backoff(0, 503, "20") == 1.0


class TestRateLimitBackoff:
    @pytest.mark.parametrize(
        ("retry_after", "expected"),
        [
            ("5", 5.0),
            ("60", 30.0),
            ("", 5.0),
            (None, 5.0),
            ("invalid", 5.0),
            ("0", 5.0),
        ],
    )
    def test_hint_precedence(self, retry_after, expected):
        assert compute_backoff(0, 429, retry_after) == expected

    def test_rate_limit_base_doubles(self):
        assert [compute_backoff(a, 429) for a in range(4)] == [5.0, 10.0, 20.0, 30.0]

    def test_hint_wins_over_attempt(self):
        assert compute_backoff(4, 429, "3") == 3.0
