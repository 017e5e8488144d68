"""Tests for the backoff policy.

Tests cover:
- fixed, linear and exponential growth
- the max_delay ceiling
- configuration errors for invalid inputs
- optional jitter with a seeded Random
"""

import random

import pytest

from evolution_gateway.core.errors import ConfigurationError
from evolution_gateway.core.resilience import BackoffStrategy, compute_delay


class TestStrategies:
    """Delay growth per strategy."""

    def test_exponential_doubles_from_base(self):
        """Exponential delays are base * 2^(attempt-1)."""
        delays = [compute_delay(n, 1000, 30000, BackoffStrategy.EXPONENTIAL) for n in (1, 2, 3)]
        assert delays == [1000, 2000, 4000]

    @pytest.mark.parametrize("attempt", [1, 2, 3, 4, 5, 6, 7])
    def test_exponential_matches_closed_form(self, attempt):
        """Every attempt equals min(base * 2^(attempt-1), max)."""
        assert compute_delay(attempt, 1000, 30000, "exponential") == min(1000 * 2 ** (attempt - 1), 30000)

    def test_linear_grows_by_base(self):
        """Linear delays are base * attempt."""
        assert [compute_delay(n, 500, 10000, BackoffStrategy.LINEAR) for n in (1, 2, 3)] == [500, 1000, 1500]

    def test_fixed_is_constant(self):
        """Fixed delays never change."""
        assert {compute_delay(n, 250, 1000, BackoffStrategy.FIXED) for n in range(1, 6)} == {250}

    def test_capped_at_max_delay(self):
        """Large attempts are clamped to max_delay."""
        assert compute_delay(10, 1000, 5000, BackoffStrategy.EXPONENTIAL) == 5000
        assert compute_delay(100, 1000, 5000, BackoffStrategy.LINEAR) == 5000

    def test_huge_attempt_does_not_overflow(self):
        """Very large attempt numbers still return the ceiling."""
        assert compute_delay(10_000, 1.0, 60.0) == 60.0


class TestValidation:
    """Invalid inputs raise ConfigurationError."""

    @pytest.mark.parametrize("base", [0, -1])
    def test_non_positive_base(self, base):
        with pytest.raises(ConfigurationError):
            compute_delay(1, base, 1000)

    def test_max_below_base(self):
        with pytest.raises(ConfigurationError):
            compute_delay(1, 1000, 999)

    def test_attempt_is_one_indexed(self):
        with pytest.raises(ConfigurationError):
            compute_delay(0, 1000, 5000)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError):
            compute_delay(1, 1000, 5000, "quadratic")


class TestJitter:
    """Jitter is opt-in and deterministic with a seeded Random."""

    def test_no_jitter_by_default(self):
        assert compute_delay(2, 1000, 30000) == 2000

    def test_seeded_jitter_is_reproducible(self):
        a = compute_delay(2, 1000, 30000, jitter=True, rng=random.Random(42))
        b = compute_delay(2, 1000, 30000, jitter=True, rng=random.Random(42))
        assert a == b
        assert 1000 <= a <= 3000

    def test_jitter_respects_ceiling(self):
        delay = compute_delay(5, 1000, 16000, jitter=True, rng=random.Random(7))
        assert delay <= 16000
