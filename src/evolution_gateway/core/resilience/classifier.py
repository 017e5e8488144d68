"""Error classification for gateway responses.

Maps an HTTP status code and decoded body onto a ``ClassifiedOutcome``,
and turns terminal or exhausted outcomes into the typed error hierarchy.

The gateway reports errors in several JSON shapes, e.g.::

    {"status": 404, "error": "Not Found", "response": {"message": ["..."]}}
    {"message": "Instance not found"}
    {"error": "Unauthorized"}

Message extraction walks an explicit precedence chain: ``response.message``,
then ``message``, then ``error``, then ``"Unknown error"``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Collection, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from evolution_gateway.core.errors import (
    DEFAULT_RETRY_AFTER,
    ApiError,
    AuthenticationError,
    GenericApiError,
    NotFoundError,
    RateLimitExceededError,
    TransientNetworkError,
    ValidationError,
)
from evolution_gateway.core.resilience.models import (
    ClassifiedOutcome,
    ErrorKind,
    FailureReason,
    RetryableFailure,
    Success,
    TerminalFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_STATUS_CODES: Tuple[int, ...] = (408, 429, 500, 502, 503, 504)
UNKNOWN_ERROR_MESSAGE = "Unknown error"

_RETRY_AFTER_BODY_KEYS = ("retry_after", "retryAfter")


# ----------------------------------------------------------------------
# Body inspection
# ----------------------------------------------------------------------


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (list, tuple)):
        parts = [str(item) for item in value if item not in (None, "")]
        return "; ".join(parts) or None
    if isinstance(value, dict):
        nested = value.get("message")
        return _as_text(nested) if nested is not None else None
    return str(value)


def _nested_message(body: Mapping[str, Any]) -> Any:
    response = body.get("response")
    if isinstance(response, Mapping):
        return response.get("message")
    return None


_MESSAGE_LOOKUPS: Sequence[Callable[[Mapping[str, Any]], Any]] = (
    _nested_message,
    lambda body: body.get("message"),
    lambda body: body.get("error"),
)


def extract_error_message(body: Any) -> str:
    """Human-readable message from a gateway error body.

    Args:
        body: Decoded JSON body (non-dict bodies yield the generic message).

    Returns:
        The first non-empty value of ``response.message``, ``message``,
        ``error``; otherwise ``"Unknown error"``.
    """
    if not isinstance(body, Mapping):
        return UNKNOWN_ERROR_MESSAGE
    for lookup in _MESSAGE_LOOKUPS:
        text = _as_text(lookup(body))
        if text:
            return text
    return UNKNOWN_ERROR_MESSAGE


def extract_validation_errors(body: Any) -> Dict[str, List[str]]:
    """Field-level errors from a 422 body.

    Reads ``errors`` at the top level or under ``response``. A list of
    messages without field names is filed under ``"message"``.
    """
    if not isinstance(body, Mapping):
        return {}

    raw = body.get("errors")
    response = body.get("response")
    if raw is None and isinstance(response, Mapping):
        raw = response.get("errors")
        if raw is None and isinstance(response.get("message"), list):
            raw = response["message"]

    if isinstance(raw, Mapping):
        errors: Dict[str, List[str]] = {}
        for field_name, messages in raw.items():
            if isinstance(messages, (list, tuple)):
                errors[str(field_name)] = [str(m) for m in messages]
            else:
                errors[str(field_name)] = [str(messages)]
        return errors
    if isinstance(raw, (list, tuple)) and raw:
        return {"message": [str(m) for m in raw]}
    return {}


def parse_retry_after(
    headers: Optional[Mapping[str, str]] = None,
    body: Any = None,
) -> Optional[float]:
    """Seconds to wait before retrying, from headers or body.

    The ``Retry-After`` header is read first (seconds or HTTP date), then
    ``retry_after``/``retryAfter`` in the body or its nested ``response``.

    Returns:
        Seconds to wait, or None if no usable hint is present.
    """
    if headers is not None:
        header = headers.get("Retry-After") or headers.get("retry-after")
        if header:
            try:
                return max(0.0, float(header))
            except ValueError:
                try:
                    when = parsedate_to_datetime(header)
                    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
                except (TypeError, ValueError):
                    logger.debug("Unparseable Retry-After header: %r", header)

    if isinstance(body, Mapping):
        candidates = [body]
        if isinstance(body.get("response"), Mapping):
            candidates.append(body["response"])
        for candidate in candidates:
            for key in _RETRY_AFTER_BODY_KEYS:
                value = candidate.get(key)
                if value is None:
                    continue
                try:
                    return max(0.0, float(value))
                except (TypeError, ValueError):
                    logger.debug("Unparseable %s in body: %r", key, value)
    return None


# ----------------------------------------------------------------------
# Classification
# ----------------------------------------------------------------------


def classify(
    status_code: int,
    body: Any = None,
    *,
    headers: Optional[Mapping[str, str]] = None,
    retryable_status_codes: Collection[int] = DEFAULT_RETRYABLE_STATUS_CODES,
    instance_scoped: bool = True,
) -> ClassifiedOutcome:
    """Classify one HTTP attempt.

    Pure function: the same inputs always yield an equal outcome.

    Args:
        status_code: HTTP status of the response.
        body: Decoded response body.
        headers: Response headers, consulted for ``Retry-After`` on 429.
        retryable_status_codes: Codes treated as transient.
        instance_scoped: Whether the request targeted an instance path.
            A 404 on such a path means the instance/resource is missing;
            elsewhere it is a generic API error.

    Returns:
        Success, RetryableFailure or TerminalFailure.
    """
    if 200 <= status_code < 300:
        return Success(status_code=status_code, body=body)

    message = extract_error_message(body)

    if status_code in (401, 403):
        return TerminalFailure(ErrorKind.AUTHENTICATION, status_code, body, message)
    if status_code == 404 and instance_scoped:
        return TerminalFailure(ErrorKind.NOT_FOUND, status_code, body, message)
    if status_code == 422:
        return TerminalFailure(
            ErrorKind.VALIDATION,
            status_code,
            body,
            message,
            errors=extract_validation_errors(body),
        )
    if status_code == 429:
        return RetryableFailure(
            FailureReason.RATE_LIMITED,
            retry_after=parse_retry_after(headers, body),
            status_code=status_code,
            body=body,
            message=message,
        )
    if status_code in retryable_status_codes:
        return RetryableFailure(
            FailureReason.TRANSIENT,
            status_code=status_code,
            body=body,
            message=message,
        )
    return TerminalFailure(ErrorKind.GENERIC, status_code, body, message)


def classify_exception(exc: BaseException) -> Optional[RetryableFailure]:
    """Classify a transport exception raised instead of a response.

    Timeouts, connection failures and protocol errors are transient.

    Returns:
        A RetryableFailure, or None if the exception is not a transport error.
    """
    if isinstance(exc, httpx.TimeoutException):
        return RetryableFailure(FailureReason.TRANSIENT, message=f"Request timed out: {exc}")
    if isinstance(exc, httpx.TransportError):
        return RetryableFailure(FailureReason.TRANSIENT, message=f"Connection failed: {exc}")
    return None


# ----------------------------------------------------------------------
# Outcome -> error
# ----------------------------------------------------------------------

_TERMINAL_ERRORS: Dict[ErrorKind, type] = {
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.GENERIC: GenericApiError,
}


def error_from_outcome(
    outcome: ClassifiedOutcome,
    *,
    instance: Optional[str] = None,
    attempts: int = 1,
    cause: Optional[BaseException] = None,
    fallback_retry_after: Optional[float] = None,
) -> ApiError:
    """Build the typed error for a terminal or exhausted outcome.

    Args:
        outcome: The last classified outcome.
        instance: Instance the request targeted.
        attempts: Attempts performed.
        cause: Transport exception behind the last attempt, if any.
        fallback_retry_after: Retry hint to use for a 429 without one.

    Raises:
        ValueError: If ``outcome`` is a Success.
    """
    if isinstance(outcome, Success):
        raise ValueError("A successful outcome has no error")

    if isinstance(outcome, TerminalFailure):
        if outcome.error_kind is ErrorKind.VALIDATION:
            if outcome.errors:
                return ValidationError.with_errors(
                    outcome.errors,
                    status_code=outcome.status_code,
                    response_data=outcome.body,
                    instance=instance,
                )
            return ValidationError(
                outcome.message,
                status_code=outcome.status_code,
                response_data=outcome.body,
                instance=instance,
            )
        error_cls = _TERMINAL_ERRORS[outcome.error_kind]
        return error_cls(
            outcome.message,
            status_code=outcome.status_code,
            response_data=outcome.body,
            instance=instance,
        )

    if outcome.reason is FailureReason.RATE_LIMITED:
        retry_after = outcome.retry_after
        if retry_after is None:
            retry_after = fallback_retry_after if fallback_retry_after is not None else DEFAULT_RETRY_AFTER
        return RateLimitExceededError(
            f"Gateway rate limit exceeded: {outcome.message}",
            retry_after=retry_after,
            limit_type="server",
            status_code=outcome.status_code,
            response_data=outcome.body,
            instance=instance,
        )

    return TransientNetworkError(
        f"Request failed after {attempts} attempt(s): {outcome.message}",
        cause=cause,
        attempts=attempts,
        outcome=outcome,
        status_code=outcome.status_code,
        response_data=outcome.body,
        instance=instance,
    )
