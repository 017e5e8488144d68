"""Data models for the gateway resilience layer.

Contains the strategy and policy enums, the classified-outcome variants
produced once per HTTP attempt, and the sleep/clock protocols injected into
the limiter and client for deterministic tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Union


class BackoffStrategy(str, Enum):
    """How the delay grows between retries."""

    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class LimitAction(str, Enum):
    """What the client does when the local rate limiter refuses a request."""

    WAIT = "wait"
    THROW = "throw"
    SKIP = "skip"


class OperationClass(str, Enum):
    """Coarse endpoint categories with independently configured limits."""

    DEFAULT = "default"
    MESSAGES = "messages"
    MEDIA = "media"


class FailureReason(str, Enum):
    """Why an attempt is eligible for retry."""

    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"


class ErrorKind(str, Enum):
    """Terminal failure categories, one per typed API error."""

    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    GENERIC = "generic"


@dataclass(frozen=True)
class Success:
    """A 2xx response."""

    status_code: int
    body: Any = None


@dataclass(frozen=True)
class RetryableFailure:
    """A failure worth retrying.

    ``status_code`` is None when the attempt raised a transport error
    instead of returning a response.
    """

    reason: FailureReason
    retry_after: Optional[float] = None
    status_code: Optional[int] = None
    body: Any = None
    message: str = "Unknown error"


@dataclass(frozen=True)
class TerminalFailure:
    """A failure surfaced to the caller without further retry."""

    error_kind: ErrorKind
    status_code: int
    body: Any = None
    message: str = "Unknown error"
    errors: Dict[str, List[str]] = field(default_factory=dict)


ClassifiedOutcome = Union[Success, RetryableFailure, TerminalFailure]


class SleepFunc(Protocol):
    """Async sleep callable, ``asyncio.sleep`` by default."""

    async def __call__(self, seconds: float) -> None: ...


class Clock(Protocol):
    """Monotonic clock callable, ``time.monotonic`` by default."""

    def __call__(self) -> float: ...


@dataclass(frozen=True)
class RateLimitRule:
    """Limit for one operation class: ``max_attempts`` per ``window_seconds``."""

    max_attempts: int
    window_seconds: float


DEFAULT_RATE_LIMITS: Dict[str, RateLimitRule] = {
    OperationClass.DEFAULT.value: RateLimitRule(max_attempts=60, window_seconds=60),
    OperationClass.MESSAGES.value: RateLimitRule(max_attempts=30, window_seconds=60),
    OperationClass.MEDIA.value: RateLimitRule(max_attempts=10, window_seconds=60),
}
