"""Errors raised by the retry and rate-limiting layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from evolution_gateway.core.errors.api import ApiError
from evolution_gateway.core.errors.base import GatewayError

if TYPE_CHECKING:
    from evolution_gateway.core.resilience.models import ClassifiedOutcome

DEFAULT_RETRY_AFTER = 60.0


class RateLimitExceededError(ApiError):
    """A rate limit refused the request.

    Raised both for client-side limiter refusals (``limit_type`` is the
    operation class) and for gateway 429 responses once retries are
    exhausted (``limit_type`` is ``"server"``).

    Attributes:
        retry_after: Seconds until a retry may succeed.
        limit_type: Which limit was hit.
        scope_key: Rate-limit scope the refusal applies to.
    """

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = DEFAULT_RETRY_AFTER,
        limit_type: str = "default",
        scope_key: Optional[str] = None,
        status_code: Optional[int] = 429,
        response_data: Any = None,
        instance: Optional[str] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            response_data=response_data,
            instance=instance,
        )
        self.retry_after = retry_after
        self.limit_type = limit_type
        self.scope_key = scope_key

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "retry_after": self.retry_after,
                "limit_type": self.limit_type,
                "scope_key": self.scope_key,
            }
        )
        return data


class TransientNetworkError(ApiError):
    """Retries were exhausted on a transient failure.

    Attributes:
        cause: Underlying transport exception, when the last attempt never
            produced a response.
        attempts: Number of attempts performed.
        outcome: Last classified outcome, when the last attempt got a response.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        attempts: int = 0,
        outcome: Optional["ClassifiedOutcome"] = None,
        status_code: Optional[int] = None,
        response_data: Any = None,
        instance: Optional[str] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            response_data=response_data,
            instance=instance,
        )
        self.cause = cause
        self.attempts = attempts
        self.outcome = outcome

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "cause": repr(self.cause) if self.cause is not None else None,
                "attempts": self.attempts,
            }
        )
        return data


class RequestCancelledError(GatewayError):
    """The caller's cancellation signal fired during a wait or retry sleep.

    Attributes:
        stage: Where the call was suspended (``rate_limit_wait`` or ``retry_sleep``).
        attempts: Attempts performed before cancellation.
    """

    def __init__(self, message: str, stage: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.stage = stage
        self.attempts = attempts

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"stage": self.stage, "attempts": self.attempts})
        return data
