"""Backoff policy: pure mapping from attempt number to retry delay.

The result is in whatever unit ``base_delay`` and ``max_delay`` use; the
client passes milliseconds from configuration and converts for sleeping.
"""

import random
from typing import Optional, Union

from evolution_gateway.core.errors import ConfigurationError
from evolution_gateway.core.resilience.models import BackoffStrategy


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    strategy: Union[BackoffStrategy, str] = BackoffStrategy.EXPONENTIAL,
    *,
    jitter: bool = False,
    rng: Optional[random.Random] = None,
) -> float:
    """Delay before retry number ``attempt``.

    Args:
        attempt: 1-indexed retry number (first retry = 1).
        base_delay: Delay unit, must be positive.
        max_delay: Ceiling applied to every strategy, must be >= base_delay.
        strategy: fixed (base), linear (base * attempt) or
            exponential (base * 2^(attempt-1)).
        jitter: Scale the delay by a random 50-150% factor, still capped.
        rng: Injectable Random instance for deterministic testing.

    Returns:
        The delay, never above ``max_delay``.

    Raises:
        ConfigurationError: If base_delay <= 0, max_delay < base_delay,
            attempt < 1, or the strategy is unknown.
    """
    if base_delay <= 0:
        raise ConfigurationError(
            f"base_delay must be positive, got {base_delay}", field="base_delay"
        )
    if max_delay < base_delay:
        raise ConfigurationError(
            f"max_delay ({max_delay}) must be >= base_delay ({base_delay})",
            field="max_delay",
        )
    if attempt < 1:
        raise ConfigurationError(f"attempt is 1-indexed, got {attempt}", field="attempt")

    try:
        strategy = BackoffStrategy(strategy)
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown backoff strategy '{strategy}'", field="backoff_strategy"
        ) from exc

    if strategy is BackoffStrategy.FIXED:
        delay = base_delay
    elif strategy is BackoffStrategy.LINEAR:
        delay = base_delay * attempt
    else:
        # Cap the exponent so huge attempt numbers cannot overflow
        delay = base_delay * (2 ** min(attempt - 1, 62))

    delay = min(delay, max_delay)

    if jitter:
        _rng = rng or random.Random()
        delay = min(delay * (0.5 + _rng.random()), max_delay)

    return delay
