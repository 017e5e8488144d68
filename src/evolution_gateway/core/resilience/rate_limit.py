"""Fixed-window rate limiter keyed by (scope key, operation class).

Windows are created lazily on the first attempt and reset lazily on the
next access after they expire; there is no background timer. Each window
carries its own lock so that check-and-increment is atomic per window
without serializing unrelated keys.
"""

import asyncio
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from evolution_gateway.core.errors import RequestCancelledError
from evolution_gateway.core.resilience.models import (
    DEFAULT_RATE_LIMITS,
    Clock,
    OperationClass,
    RateLimitRule,
    SleepFunc,
)
from evolution_gateway.core.resilience.sleep import interruptible_sleep

logger = logging.getLogger(__name__)

WindowKey = Tuple[str, str]


@dataclass
class RateLimitWindow:
    """Counter state for one (scope key, operation class) pair."""

    limit: int
    window_seconds: float
    window_started_at: float
    count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def expired(self, now: float) -> bool:
        return now - self.window_started_at >= self.window_seconds

    def reset(self, now: float) -> None:
        self.count = 0
        self.window_started_at = now


class FixedWindowRateLimiter:
    """Per-key fixed-window request counter.

    Thread-safe: a registry lock guards window creation and removal, and
    every window has its own lock for check-and-increment.

    Example:
        >>> limiter = FixedWindowRateLimiter({"default": RateLimitRule(3, 60)})
        >>> limiter.attempt("default:main", "default")
        True
    """

    def __init__(
        self,
        limits: Optional[Mapping[str, RateLimitRule]] = None,
        *,
        enabled: bool = True,
        clock: Optional[Clock] = None,
        sleep_func: Optional[SleepFunc] = None,
    ) -> None:
        self._limits: Dict[str, RateLimitRule] = dict(DEFAULT_RATE_LIMITS)
        if limits:
            self._limits.update(limits)
        self._windows: Dict[WindowKey, RateLimitWindow] = {}
        self._registry_lock = threading.Lock()
        self._clock: Clock = clock or time.monotonic
        self._sleep = sleep_func or asyncio.sleep
        self.enabled = enabled

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def rule_for(self, operation_class: str) -> RateLimitRule:
        """Limits for ``operation_class``; unknown classes use ``default``."""
        return self._limits.get(
            str(operation_class), self._limits[OperationClass.DEFAULT.value]
        )

    def set_limits(self, operation_class: str, max_attempts: int, window_seconds: float) -> None:
        """Replace the limits for one operation class.

        Open windows of that class pick up the new values immediately.
        """
        rule = RateLimitRule(max_attempts=max_attempts, window_seconds=window_seconds)
        with self._registry_lock:
            self._limits[str(operation_class)] = rule
            windows = [w for (_, cls), w in self._windows.items() if cls == str(operation_class)]
        for window in windows:
            with window.lock:
                window.limit = rule.max_attempts
                window.window_seconds = rule.window_seconds

    @property
    def limits(self) -> Dict[str, RateLimitRule]:
        return dict(self._limits)

    # ------------------------------------------------------------------
    # Window access
    # ------------------------------------------------------------------

    def _get_window(self, scope_key: str, operation_class: str) -> Optional[RateLimitWindow]:
        return self._windows.get((scope_key, str(operation_class)))

    def _get_or_create_window(self, scope_key: str, operation_class: str) -> RateLimitWindow:
        key = (scope_key, str(operation_class))
        window = self._windows.get(key)
        if window is not None:
            return window
        with self._registry_lock:
            window = self._windows.get(key)
            if window is None:
                rule = self.rule_for(operation_class)
                window = RateLimitWindow(
                    limit=rule.max_attempts,
                    window_seconds=rule.window_seconds,
                    window_started_at=self._clock(),
                )
                self._windows[key] = window
            return window

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def attempt(self, scope_key: str, operation_class: str = OperationClass.DEFAULT.value) -> bool:
        """Consume one slot if available.

        Returns:
            True if the caller may proceed (the counter was incremented),
            False if the window is full.
        """
        if not self.enabled:
            return True

        window = self._get_or_create_window(scope_key, operation_class)
        with window.lock:
            now = self._clock()
            if window.expired(now):
                window.reset(now)
            if window.count >= window.limit:
                logger.debug(
                    "Rate limit reached for %s/%s (%d/%d)",
                    scope_key,
                    operation_class,
                    window.count,
                    window.limit,
                )
                return False
            window.count += 1
            return True

    def is_exceeded(self, scope_key: str, operation_class: str = OperationClass.DEFAULT.value) -> bool:
        if not self.enabled:
            return False
        window = self._get_window(scope_key, operation_class)
        if window is None:
            return False
        with window.lock:
            if window.expired(self._clock()):
                return False
            return window.count >= window.limit

    def available_in(self, scope_key: str, operation_class: str = OperationClass.DEFAULT.value) -> float:
        """Seconds until the window resets, or 0 if a slot is free now."""
        if not self.enabled:
            return 0.0
        window = self._get_window(scope_key, operation_class)
        if window is None:
            return 0.0
        with window.lock:
            now = self._clock()
            if window.expired(now) or window.count < window.limit:
                return 0.0
            return max(0.0, window.window_started_at + window.window_seconds - now)

    def remaining(self, scope_key: str, operation_class: str = OperationClass.DEFAULT.value) -> int:
        if not self.enabled:
            return sys.maxsize
        window = self._get_window(scope_key, operation_class)
        if window is None:
            return self.rule_for(operation_class).max_attempts
        with window.lock:
            if window.expired(self._clock()):
                return window.limit
            return max(0, window.limit - window.count)

    def clear(self, scope_key: str, operation_class: Optional[str] = None) -> None:
        """Drop one window, or every window of ``scope_key`` if no class is given."""
        with self._registry_lock:
            if operation_class is not None:
                self._windows.pop((scope_key, str(operation_class)), None)
                return
            for key in [k for k in self._windows if k[0] == scope_key]:
                del self._windows[key]

    def reset(self) -> None:
        """Drop every window."""
        with self._registry_lock:
            self._windows.clear()

    async def wait(
        self,
        scope_key: str,
        operation_class: str = OperationClass.DEFAULT.value,
        max_wait_seconds: float = 0,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> bool:
        """Suspend until a slot frees up.

        Does not consume the slot; callers follow up with ``attempt``.

        Args:
            scope_key: Rate-limit scope.
            operation_class: Operation class within the scope.
            max_wait_seconds: Upper bound on the total wait, 0 for unbounded.
            cancel_event: Cooperative cancellation signal.

        Returns:
            True once a slot is free, False if it would not free up within
            ``max_wait_seconds``.

        Raises:
            RequestCancelledError: If ``cancel_event`` fires while waiting.
        """
        if not self.enabled:
            return True

        deadline = self._clock() + max_wait_seconds if max_wait_seconds > 0 else None

        while True:
            wait_time = self.available_in(scope_key, operation_class)
            if wait_time <= 0:
                return True
            if deadline is not None and self._clock() + wait_time > deadline:
                logger.debug(
                    "Rate limit wait of %.2fs for %s/%s exceeds max wait",
                    wait_time,
                    scope_key,
                    operation_class,
                )
                return False

            completed = await interruptible_sleep(
                wait_time, sleep_func=self._sleep, cancel_event=cancel_event
            )
            if not completed:
                raise RequestCancelledError(
                    f"Cancelled while waiting for rate limit on {scope_key}/{operation_class}",
                    stage="rate_limit_wait",
                )


class NullRateLimiter(FixedWindowRateLimiter):
    """Limiter that never refuses. Used when rate limiting is turned off."""

    def __init__(self) -> None:
        super().__init__(enabled=False)

    def enable(self) -> None:
        logger.debug("NullRateLimiter ignores enable()")
