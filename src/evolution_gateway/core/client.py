"""Resilient HTTP client for the Evolution WhatsApp gateway.

Every call goes through the same pipeline:

1. Resolve the connection profile (explicit name first, then the active one).
2. Take a slot from the rate limiter for (connection[:instance], operation class),
   applying the ``on_limit_reached`` action when the window is full.
3. Send the request with the credential header and JSON headers.
4. Classify the outcome. Success returns; terminal failures raise their typed
   error; retryable failures sleep per the backoff policy and try again until
   ``max_attempts`` is reached.

Resilience Configuration:
    - Retry: 3 attempts, exponential backoff from 1s capped at 30s
    - Retryable: 408, 429, 500, 502, 503, 504, timeouts, connection errors
    - A 429 waits for the gateway's ``Retry-After``/``retry_after`` hint when given
    - A hint above ``max_retry_after_seconds`` (120s) fails fast instead of sleeping
    - Rate limits: default 60/min, messages 30/min, media 10/min per scope

Example:
    async with GatewayClient.from_config(GatewayConfig.from_env()) as client:
        response = await client.call(
            "message.send_text",
            {"number": "5511999999999", "text": "hello"},
            options=RequestOptions(instance="main"),
        )
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Dict, Mapping, Optional

import httpx

from evolution_gateway.config import GatewayConfig, HttpConfig, RateLimitConfig, RetryConfig
from evolution_gateway.core.connections import ConnectionProfile, ConnectionRegistry
from evolution_gateway.core.endpoints import (
    INSTANCE_PLACEHOLDER,
    get_endpoint,
    infer_operation_class,
    render_path,
)
from evolution_gateway.core.errors import (
    ApiError,
    ConfigurationError,
    GatewayError,
    GenericApiError,
    RateLimitExceededError,
    RequestCancelledError,
)
from evolution_gateway.core.observability.events import EventSink, LoggingEventSink
from evolution_gateway.core.observability.metrics import MetricsCollector, MetricsSink
from evolution_gateway.core.observability.redaction import redact_headers
from evolution_gateway.core.resilience.backoff import compute_delay
from evolution_gateway.core.resilience.classifier import (
    classify,
    classify_exception,
    error_from_outcome,
)
from evolution_gateway.core.resilience.models import (
    ClassifiedOutcome,
    FailureReason,
    LimitAction,
    RetryableFailure,
    SleepFunc,
    Success,
    TerminalFailure,
)
from evolution_gateway.core.resilience.rate_limit import FixedWindowRateLimiter
from evolution_gateway.core.resilience.sleep import interruptible_sleep
from evolution_gateway.core.responses import GatewayResponse, RequestOptions

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
_DEFAULT_OPTIONS = RequestOptions()


class GatewayClient:
    """Async client that applies connection routing, rate limiting and retries.

    One instance may serve many concurrent tasks. The active connection
    pointer is a field of this instance and is shared by all of them; pass
    ``connection=`` (or ``RequestOptions.connection``) on each call when a
    request must target a specific tenant regardless of other callers.

    Args:
        registry: Connection profiles; an empty registry is created if omitted.
        http: Transport settings.
        retry: Retry settings.
        rate_limiting: Rate limit settings.
        rate_limiter: Limiter instance; built from ``rate_limiting`` if omitted.
        event_sink: Optional request/response/error notifications.
        metrics_sink: Optional ``(name, value, tags)`` metrics.
        http_client: Pre-built ``httpx.AsyncClient``; not closed by ``aclose``.
        transport: Transport for the internally created client (tests use
            ``httpx.MockTransport``).
        sleep_func: Injectable async sleep for retries.
        rng: Injectable Random for jitter.
    """

    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        *,
        http: Optional[HttpConfig] = None,
        retry: Optional[RetryConfig] = None,
        rate_limiting: Optional[RateLimitConfig] = None,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        event_sink: Optional[EventSink] = None,
        metrics_sink: Optional[MetricsSink] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep_func: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.registry = registry or ConnectionRegistry()
        self.http = http or HttpConfig()
        self.retry = retry or RetryConfig()
        self.rate_limiting = rate_limiting or RateLimitConfig()
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            self.rate_limiting.limits,
            enabled=self.rate_limiting.enabled,
            sleep_func=sleep_func,
        )
        self.event_sink = event_sink
        self.metrics_sink = metrics_sink
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._transport = transport
        self._sleep = sleep_func or asyncio.sleep
        self._rng = rng

        self.http.validate()
        self.retry.validate()
        self.rate_limiting.validate()

    @classmethod
    def from_config(cls, config: GatewayConfig, **kwargs: Any) -> "GatewayClient":
        """Build a client from ``GatewayConfig``.

        Registers every configured connection, and attaches the logging sink
        and metrics collector when enabled. Keyword arguments override the
        constructed collaborators.

        Raises:
            ConfigurationError: If a connection has an invalid URL or no key.
        """
        config.setup_logging()
        registry = ConnectionRegistry(default_name=config.default_connection)
        for conn in config.connections.values():
            registry.register(conn.name, conn.server_url, conn.api_key, instance=conn.instance)

        if config.logging.enabled and "event_sink" not in kwargs:
            kwargs["event_sink"] = LoggingEventSink(
                log_requests=config.logging.log_requests,
                log_responses=config.logging.log_responses,
                redact=config.logging.redact_sensitive,
                sensitive_fields=[*config.logging.sensitive_fields, config.http.credential_header],
            )
        if config.metrics.enabled and "metrics_sink" not in kwargs:
            kwargs["metrics_sink"] = MetricsCollector(prefix=config.metrics.prefix)

        return cls(
            registry,
            http=config.http,
            retry=config.retry,
            rate_limiting=config.rate_limiting,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    @property
    def active_connection(self) -> str:
        return self.registry.active_name

    def set_active(self, name: str) -> "GatewayClient":
        """Switch the shared active connection for later calls on this client."""
        self.registry.set_active(name)
        return self

    def register_connection(
        self,
        name: str,
        base_url: str,
        credential: str,
        *,
        instance: Optional[str] = None,
    ) -> ConnectionProfile:
        return self.registry.register(name, base_url, credential, instance=instance)

    # ------------------------------------------------------------------
    # HTTP client lifecycle
    # ------------------------------------------------------------------

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self.http.timeout_seconds, connect=self.http.connect_timeout_seconds
                ),
                verify=self.http.verify_tls,
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Observability (failures never affect the request)
    # ------------------------------------------------------------------

    def _notify(self, event: str, **fields: Any) -> None:
        if self.event_sink is None:
            return
        try:
            self.event_sink.emit(event, fields)
        except Exception:
            logger.debug("Event sink failed for %s event", event, exc_info=True)

    def _record(self, name: str, value: float, tags: Dict[str, str]) -> None:
        if self.metrics_sink is None:
            return
        try:
            self.metrics_sink.record(name, value, tags)
        except Exception:
            logger.debug("Metrics sink failed for %s", name, exc_info=True)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    @staticmethod
    def scope_key(profile: ConnectionProfile, instance: Optional[str]) -> str:
        return f"{profile.name}:{instance}" if instance else profile.name

    async def _acquire_slot(
        self,
        scope_key: str,
        operation_class: str,
        options: RequestOptions,
        instance: Optional[str],
    ) -> bool:
        """Take a rate-limit slot.

        Returns:
            True to proceed, False if the request should be skipped.

        Raises:
            RateLimitExceededError: For the ``throw`` action, or when a
                bounded wait runs out.
            RequestCancelledError: If the cancel event fires while waiting.
        """
        if not self.rate_limiting.enabled:
            return True

        limiter = self.rate_limiter
        while not limiter.attempt(scope_key, operation_class):
            retry_after = limiter.available_in(scope_key, operation_class)
            action = self.rate_limiting.on_limit_reached
            self._notify(
                "rate_limited",
                scope_key=scope_key,
                operation_class=operation_class,
                retry_after=retry_after,
                action=action.value,
            )
            self._record("rate_limited", 1, {"operation_class": operation_class, "action": action.value})

            if action is LimitAction.SKIP:
                logger.info("Skipping request: rate limit reached for %s/%s", scope_key, operation_class)
                return False
            if action is LimitAction.WAIT and await limiter.wait(
                scope_key,
                operation_class,
                self.rate_limiting.max_wait_seconds,
                cancel_event=options.cancel_event,
            ):
                continue

            raise RateLimitExceededError(
                f"Rate limit exceeded for {operation_class} requests on '{scope_key}'. "
                f"Retry after {retry_after:.0f} seconds.",
                retry_after=retry_after,
                limit_type=operation_class,
                scope_key=scope_key,
                status_code=None,
                instance=instance,
            )
        return True

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        *,
        connection: Optional[str] = None,
        options: Optional[RequestOptions] = None,
        operation_class: Optional[str] = None,
    ) -> GatewayResponse:
        """Send a request through the resilience pipeline.

        Args:
            method: GET, POST, PUT, PATCH or DELETE.
            endpoint: Path relative to the connection's base URL; may contain
                ``{instance}``.
            body: JSON body (or form fields when ``options.files`` is set).
            connection: Connection name; takes precedence over both
                ``options.connection`` and the active pointer.
            options: Per-call settings.
            operation_class: Rate-limit class; inferred from the path if omitted.

        Returns:
            The response, or a ``skipped`` response when the limiter refused
            the call under the ``skip`` action. With ``raise_on_error=False``
            API failures are returned with ``error`` set instead of raised.

        Raises:
            ConfigurationError: If ``method`` is not a supported HTTP verb.
            UnknownConnectionError: If the connection cannot be resolved.
            NotFoundError: If the path needs an instance and none is known,
                or the gateway reports the instance missing.
            AuthenticationError, ValidationError, GenericApiError: Terminal
                gateway failures.
            RateLimitExceededError: Local limit under ``throw``, or 429s
                outlasting all attempts.
            TransientNetworkError: Retryable failures outlasting all attempts.
            RequestCancelledError: If ``options.cancel_event`` fires.
        """
        options = options or _DEFAULT_OPTIONS
        verb = method.upper()
        if verb not in HTTP_METHODS:
            raise ConfigurationError(
                f"Unsupported HTTP method '{method}'", field="method", code="UNSUPPORTED_METHOD"
            )

        profile = self.registry.resolve(connection if connection is not None else options.connection)
        instance = options.instance or profile.instance
        path = render_path(endpoint.strip("/"), instance)
        instance_scoped = INSTANCE_PLACEHOLDER in endpoint or (
            instance is not None and instance in path.split("/")
        )
        op_class = operation_class or infer_operation_class(path)
        scope_key = self.scope_key(profile, instance)

        if not await self._acquire_slot(scope_key, op_class, options, instance):
            return GatewayResponse.skipped_response(connection=profile.name)

        url = f"{profile.base_url}/{path}" if path else profile.base_url
        headers = {
            self.http.credential_header: profile.credential,
            "Content-Type": "application/json",
            "Accept": "application/json",
            **options.headers,
        }
        send_kwargs: Dict[str, Any] = {"headers": headers}
        if options.query:
            send_kwargs["params"] = options.query
        if options.files:
            headers.pop("Content-Type")
            send_kwargs["files"] = options.files
            if body is not None:
                send_kwargs["data"] = body
        elif body is not None:
            send_kwargs["json"] = body
        if options.timeout is not None:
            send_kwargs["timeout"] = httpx.Timeout(
                options.timeout, connect=self.http.connect_timeout_seconds
            )

        return await self._send_with_retries(
            verb,
            url,
            send_kwargs,
            options=options,
            profile=profile,
            instance=instance,
            instance_scoped=instance_scoped,
            endpoint=endpoint,
        )

    async def _send_with_retries(
        self,
        method: str,
        url: str,
        send_kwargs: Dict[str, Any],
        *,
        options: RequestOptions,
        profile: ConnectionProfile,
        instance: Optional[str],
        instance_scoped: bool,
        endpoint: str,
    ) -> GatewayResponse:
        max_attempts = self.retry.effective_max_attempts
        tags = {"connection": profile.name, "method": method, "endpoint": endpoint}
        client = self._get_http_client()
        attempt = 0

        while True:
            if options.cancel_event is not None and options.cancel_event.is_set():
                raise RequestCancelledError(
                    f"Request {method} {url} cancelled", stage="before_attempt", attempts=attempt
                )

            attempt += 1
            self._notify(
                "request",
                method=method,
                url=url,
                attempt=attempt,
                headers=redact_headers(send_kwargs["headers"], [self.http.credential_header]),
                body=send_kwargs.get("json", send_kwargs.get("data")),
            )

            start = time.perf_counter()
            cause: Optional[BaseException] = None
            response: Optional[httpx.Response] = None
            outcome: ClassifiedOutcome
            try:
                response = await client.request(method, url, **send_kwargs)
            except httpx.HTTPError as exc:
                transport_outcome = classify_exception(exc)
                if transport_outcome is None:
                    raise GenericApiError(f"HTTP error for {method} {url}: {exc}", instance=instance) from exc
                outcome = transport_outcome
                cause = exc
            duration_ms = (time.perf_counter() - start) * 1000

            if response is not None:
                data = _decode_body(response)
                outcome = classify(
                    response.status_code,
                    data,
                    headers=response.headers,
                    retryable_status_codes=self.retry.retryable_status_codes,
                    instance_scoped=instance_scoped,
                )
                self._notify(
                    "response",
                    method=method,
                    url=url,
                    attempt=attempt,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 2),
                    body=data,
                )

            status = response.status_code if response is not None else None
            call_tags = {**tags, "status": str(status) if status is not None else "none"}
            self._record("api_calls", 1, call_tags)
            self._record("response_times", duration_ms, call_tags)

            if isinstance(outcome, Success):
                return GatewayResponse(
                    status_code=outcome.status_code,
                    data=outcome.body,
                    headers=dict(response.headers) if response is not None else {},
                    message=_success_message(outcome.body),
                    response_time_ms=round(duration_ms, 2),
                    connection=profile.name,
                    attempts=attempt,
                )

            self._record("api_errors", 1, call_tags)

            if isinstance(outcome, TerminalFailure):
                error = error_from_outcome(outcome, instance=instance, attempts=attempt)
                return self._fail(error, method, url, attempt, profile, options, duration_ms)

            delay = self._retry_delay(attempt, outcome)
            ceiling = self.retry.max_retry_after_seconds
            hint_too_long = (
                ceiling > 0 and outcome.retry_after is not None and outcome.retry_after > ceiling
            )
            if hint_too_long:
                logger.info(
                    "%s %s asked to retry after %.0fs, above the %.0fs ceiling; not retrying",
                    method,
                    url,
                    outcome.retry_after,
                    ceiling,
                )
            if attempt >= max_attempts or hint_too_long:
                error = error_from_outcome(
                    outcome,
                    instance=instance,
                    attempts=attempt,
                    cause=cause,
                    fallback_retry_after=delay,
                )
                return self._fail(error, method, url, attempt, profile, options, duration_ms)

            logger.debug(
                "%s %s attempt %d/%d failed (%s), retrying in %.2fs",
                method,
                url,
                attempt,
                max_attempts,
                outcome.message,
                delay,
            )
            self._notify(
                "retry",
                method=method,
                url=url,
                attempt=attempt,
                max_attempts=max_attempts,
                reason=outcome.reason.value,
                status=status,
                delay_seconds=delay,
                message=outcome.message,
            )
            self._record("retries", 1, {**tags, "reason": outcome.reason.value})

            completed = await interruptible_sleep(
                delay, sleep_func=self._sleep, cancel_event=options.cancel_event
            )
            if not completed:
                raise RequestCancelledError(
                    f"Request {method} {url} cancelled during retry backoff",
                    stage="retry_sleep",
                    attempts=attempt,
                )

    def _retry_delay(self, attempt: int, outcome: RetryableFailure) -> float:
        """Seconds to sleep before the next attempt.

        A 429 with a retry hint waits for the hint; everything else uses the
        backoff policy.
        """
        if outcome.reason is FailureReason.RATE_LIMITED and outcome.retry_after is not None:
            return outcome.retry_after
        delay_ms = compute_delay(
            attempt,
            self.retry.base_delay_ms,
            self.retry.max_delay_ms,
            self.retry.backoff_strategy,
            jitter=self.retry.jitter,
            rng=self._rng,
        )
        return delay_ms / 1000.0

    def _fail(
        self,
        error: ApiError,
        method: str,
        url: str,
        attempts: int,
        profile: ConnectionProfile,
        options: RequestOptions,
        duration_ms: float,
    ) -> GatewayResponse:
        self._notify(
            "error",
            method=method,
            url=url,
            attempts=attempts,
            error_type=type(error).__name__,
            status=error.status_code,
            message=error.message,
        )
        if options.raise_on_error:
            raise error
        return GatewayResponse(
            status_code=error.status_code,
            data=error.response_data,
            message=error.message,
            response_time_ms=round(duration_ms, 2),
            connection=profile.name,
            attempts=attempts,
            error=error,
        )

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    async def call(
        self,
        operation: str,
        body: Any = None,
        *,
        options: Optional[RequestOptions] = None,
    ) -> GatewayResponse:
        """Dispatch a named operation from the endpoint table.

        Raises:
            KeyError: If ``operation`` is not in the table.
        """
        endpoint = get_endpoint(operation)
        return await self.request(
            endpoint.method,
            endpoint.path,
            body,
            options=options,
            operation_class=endpoint.operation_class,
        )

    async def get(
        self,
        endpoint: str,
        query: Optional[Mapping[str, Any]] = None,
        *,
        options: Optional[RequestOptions] = None,
    ) -> GatewayResponse:
        options = options or _DEFAULT_OPTIONS
        if query:
            options = options.model_copy(update={"query": {**options.query, **query}})
        return await self.request("GET", endpoint, options=options)

    async def post(self, endpoint: str, body: Any = None, *, options: Optional[RequestOptions] = None) -> GatewayResponse:
        return await self.request("POST", endpoint, body, options=options)

    async def put(self, endpoint: str, body: Any = None, *, options: Optional[RequestOptions] = None) -> GatewayResponse:
        return await self.request("PUT", endpoint, body, options=options)

    async def patch(self, endpoint: str, body: Any = None, *, options: Optional[RequestOptions] = None) -> GatewayResponse:
        return await self.request("PATCH", endpoint, body, options=options)

    async def delete(
        self, endpoint: str, body: Any = None, *, options: Optional[RequestOptions] = None
    ) -> GatewayResponse:
        return await self.request("DELETE", endpoint, body, options=options)

    async def upload(
        self,
        endpoint: str,
        fields: Optional[Mapping[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        *,
        options: Optional[RequestOptions] = None,
    ) -> GatewayResponse:
        """POST a multipart form.

        Args:
            endpoint: Path, may contain ``{instance}``.
            fields: Plain form fields.
            files: httpx-style files mapping, e.g.
                ``{"file": ("photo.jpg", data, "image/jpeg")}``.
        """
        options = (options or _DEFAULT_OPTIONS).model_copy(update={"files": dict(files or {})})
        return await self.request("POST", endpoint, dict(fields or {}), options=options)

    async def ping(self, connection: Optional[str] = None) -> bool:
        """Return True if the gateway root answers with a 2xx."""
        try:
            response = await self.request(
                "GET", "", connection=connection, options=RequestOptions(raise_on_error=False)
            )
        except GatewayError as exc:
            logger.debug("Ping failed: %s", exc)
            return False
        return response.ok

    async def info(self, connection: Optional[str] = None) -> Any:
        """Gateway server information from the root endpoint."""
        response = await self.request("GET", "", connection=connection)
        return response.data


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _success_message(body: Any) -> Optional[str]:
    """Top-level ``message`` of a 2xx body, when it is text.

    Message sends answer with ``message`` holding the sent message object,
    which stays available through ``data``.
    """
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None
