"""Tests for response classification.

Tests cover:
- status code rules in precedence order
- message extraction fallback chain
- retry-after parsing from headers and body
- validation error extraction
- transport exception classification
- building typed errors from outcomes
"""

import httpx
import pytest

from evolution_gateway.core.errors import (
    AuthenticationError,
    GenericApiError,
    NotFoundError,
    RateLimitExceededError,
    TransientNetworkError,
    ValidationError,
)
from evolution_gateway.core.resilience import (
    ErrorKind,
    FailureReason,
    RetryableFailure,
    Success,
    TerminalFailure,
    classify,
    classify_exception,
    error_from_outcome,
    extract_error_message,
    extract_validation_errors,
    parse_retry_after,
)


class TestClassify:
    """Status code rules."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_2xx_is_success(self, status):
        assert classify(status, {"ok": True}) == Success(status, {"ok": True})

    def test_classify_is_idempotent(self):
        body = {"key": {"id": "abc"}}
        outcomes = [classify(200, body) for _ in range(5)]
        assert all(o == outcomes[0] for o in outcomes)
        assert body == {"key": {"id": "abc"}}

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures(self, status):
        outcome = classify(status, {"error": "Unauthorized"})
        assert isinstance(outcome, TerminalFailure)
        assert outcome.error_kind is ErrorKind.AUTHENTICATION
        assert outcome.message == "Unauthorized"

    def test_404_on_instance_path(self):
        outcome = classify(404, {"message": "Instance not found"}, instance_scoped=True)
        assert outcome.error_kind is ErrorKind.NOT_FOUND

    def test_404_elsewhere_is_generic(self):
        outcome = classify(404, {"message": "Cannot GET /nope"}, instance_scoped=False)
        assert outcome.error_kind is ErrorKind.GENERIC

    def test_422_carries_field_errors(self):
        outcome = classify(422, {"message": "Invalid", "errors": {"number": ["is required"]}})
        assert outcome.error_kind is ErrorKind.VALIDATION
        assert outcome.errors == {"number": ["is required"]}

    def test_429_is_rate_limited_with_hint(self):
        outcome = classify(429, {"retry_after": 45})
        assert isinstance(outcome, RetryableFailure)
        assert outcome.reason is FailureReason.RATE_LIMITED
        assert outcome.retry_after == 45

    def test_429_without_hint(self):
        outcome = classify(429, None)
        assert outcome.reason is FailureReason.RATE_LIMITED
        assert outcome.retry_after is None

    @pytest.mark.parametrize("status", [408, 500, 502, 503, 504])
    def test_default_retryable_codes(self, status):
        outcome = classify(status, None)
        assert isinstance(outcome, RetryableFailure)
        assert outcome.reason is FailureReason.TRANSIENT

    def test_custom_retryable_codes(self):
        assert isinstance(classify(503, None, retryable_status_codes=[500]), TerminalFailure)
        assert isinstance(classify(409, None, retryable_status_codes=[409]), RetryableFailure)

    @pytest.mark.parametrize("status", [400, 405, 409, 418])
    def test_other_4xx_is_generic(self, status):
        outcome = classify(status, {"error": "Bad Request"})
        assert isinstance(outcome, TerminalFailure)
        assert outcome.error_kind is ErrorKind.GENERIC

    def test_auth_wins_over_retryable_config(self):
        outcome = classify(401, None, retryable_status_codes=[401])
        assert isinstance(outcome, TerminalFailure)


class TestExtractErrorMessage:
    """Ordered fallback chain."""

    def test_nested_response_message_first(self):
        body = {"response": {"message": "nested"}, "message": "top", "error": "err"}
        assert extract_error_message(body) == "nested"

    def test_nested_message_list_is_joined(self):
        body = {"status": 400, "error": "Bad Request", "response": {"message": ["a", "b"]}}
        assert extract_error_message(body) == "a; b"

    def test_message_before_error(self):
        assert extract_error_message({"message": "top", "error": "err"}) == "top"

    def test_error_string(self):
        assert extract_error_message({"error": "err"}) == "err"

    def test_error_object_with_message(self):
        assert extract_error_message({"error": {"message": "inner"}}) == "inner"

    def test_empty_values_fall_through(self):
        assert extract_error_message({"response": {"message": ""}, "message": None, "error": "e"}) == "e"

    @pytest.mark.parametrize("body", [None, {}, "plain text", ["x"]])
    def test_unknown(self, body):
        assert extract_error_message(body) == "Unknown error"


class TestParseRetryAfter:
    """Retry hints from headers and body."""

    def test_header_seconds(self):
        assert parse_retry_after({"Retry-After": "30"}) == 30.0

    def test_httpx_headers_case_insensitive(self):
        assert parse_retry_after(httpx.Headers({"retry-after": "12"})) == 12.0

    def test_body_snake_and_camel(self):
        assert parse_retry_after(None, {"retry_after": 45}) == 45.0
        assert parse_retry_after(None, {"retryAfter": "7"}) == 7.0

    def test_nested_body(self):
        assert parse_retry_after(None, {"response": {"retry_after": 9}}) == 9.0

    def test_header_preferred_over_body(self):
        assert parse_retry_after({"Retry-After": "5"}, {"retry_after": 45}) == 5.0

    def test_garbage_is_ignored(self):
        assert parse_retry_after({"Retry-After": "soon"}, {"retry_after": "later"}) is None

    def test_http_date_in_past_clamps_to_zero(self):
        assert parse_retry_after({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}) == 0.0


class TestExtractValidationErrors:
    def test_top_level_errors(self):
        assert extract_validation_errors({"errors": {"text": "too long"}}) == {"text": ["too long"]}

    def test_nested_message_list(self):
        body = {"response": {"message": ["number is invalid"]}}
        assert extract_validation_errors(body) == {"message": ["number is invalid"]}

    def test_nothing(self):
        assert extract_validation_errors({"message": "x"}) == {}


class TestClassifyException:
    def test_timeout_is_transient(self):
        outcome = classify_exception(httpx.ReadTimeout("slow"))
        assert outcome.reason is FailureReason.TRANSIENT
        assert outcome.status_code is None

    def test_connect_error_is_transient(self):
        assert classify_exception(httpx.ConnectError("refused")) is not None

    def test_other_exceptions_are_not_classified(self):
        assert classify_exception(ValueError("boom")) is None


class TestErrorFromOutcome:
    """Outcome -> typed error mapping."""

    def test_terminal_kinds(self):
        cases = {
            ErrorKind.AUTHENTICATION: AuthenticationError,
            ErrorKind.NOT_FOUND: NotFoundError,
            ErrorKind.GENERIC: GenericApiError,
        }
        for kind, error_cls in cases.items():
            error = error_from_outcome(TerminalFailure(kind, 400, {"a": 1}, "msg"), instance="main")
            assert type(error) is error_cls
            assert error.status_code == 400
            assert error.response_data == {"a": 1}
            assert error.instance == "main"

    def test_validation_message_lists_fields(self):
        outcome = TerminalFailure(ErrorKind.VALIDATION, 422, None, "bad", errors={"number": ["required"]})
        error = error_from_outcome(outcome)
        assert isinstance(error, ValidationError)
        assert error.errors == {"number": ["required"]}
        assert "number: required" in str(error)

    def test_rate_limited_uses_hint(self):
        error = error_from_outcome(
            RetryableFailure(FailureReason.RATE_LIMITED, retry_after=45, status_code=429),
            fallback_retry_after=2.0,
        )
        assert isinstance(error, RateLimitExceededError)
        assert error.retry_after == 45
        assert error.limit_type == "server"

    def test_rate_limited_falls_back(self):
        error = error_from_outcome(
            RetryableFailure(FailureReason.RATE_LIMITED, status_code=429), fallback_retry_after=4.0
        )
        assert error.retry_after == 4.0

    def test_transient_wraps_outcome_and_cause(self):
        cause = httpx.ConnectError("refused")
        outcome = RetryableFailure(FailureReason.TRANSIENT, message="Connection failed")
        error = error_from_outcome(outcome, attempts=3, cause=cause)
        assert isinstance(error, TransientNetworkError)
        assert error.cause is cause
        assert error.attempts == 3
        assert error.outcome is outcome

    def test_success_has_no_error(self):
        with pytest.raises(ValueError):
            error_from_outcome(Success(200))
