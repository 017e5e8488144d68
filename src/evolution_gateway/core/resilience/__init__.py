"""Resilience layer for gateway requests.

Provides the backoff policy, the fixed-window rate limiter, and the
response classifier used by the gateway client's retry loop.
"""

from evolution_gateway.core.resilience.backoff import compute_delay
from evolution_gateway.core.resilience.classifier import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    UNKNOWN_ERROR_MESSAGE,
    classify,
    classify_exception,
    error_from_outcome,
    extract_error_message,
    extract_validation_errors,
    parse_retry_after,
)
from evolution_gateway.core.resilience.models import (
    DEFAULT_RATE_LIMITS,
    BackoffStrategy,
    ClassifiedOutcome,
    Clock,
    ErrorKind,
    FailureReason,
    LimitAction,
    OperationClass,
    RateLimitRule,
    RetryableFailure,
    SleepFunc,
    Success,
    TerminalFailure,
)
from evolution_gateway.core.resilience.rate_limit import (
    FixedWindowRateLimiter,
    NullRateLimiter,
    RateLimitWindow,
)
from evolution_gateway.core.resilience.sleep import interruptible_sleep

__all__ = [
    # Models
    "BackoffStrategy",
    "LimitAction",
    "OperationClass",
    "FailureReason",
    "ErrorKind",
    "Success",
    "RetryableFailure",
    "TerminalFailure",
    "ClassifiedOutcome",
    "RateLimitRule",
    "DEFAULT_RATE_LIMITS",
    "SleepFunc",
    "Clock",
    # Backoff
    "compute_delay",
    # Rate limiting
    "FixedWindowRateLimiter",
    "NullRateLimiter",
    "RateLimitWindow",
    "interruptible_sleep",
    # Classification
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "UNKNOWN_ERROR_MESSAGE",
    "classify",
    "classify_exception",
    "error_from_outcome",
    "extract_error_message",
    "extract_validation_errors",
    "parse_retry_after",
]
