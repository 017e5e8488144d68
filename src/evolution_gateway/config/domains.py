"""Configuration dataclasses for each concern of the gateway client.

Contains small, focused configuration classes for HTTP transport, retry,
rate limiting, logging, metrics and connection profiles.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from evolution_gateway.config.parsing import (
    _normalize_choice,
    _parse_bool,
    _parse_status_codes,
)
from evolution_gateway.core.errors import ConfigurationError
from evolution_gateway.core.observability.redaction import DEFAULT_SENSITIVE_FIELDS
from evolution_gateway.core.resilience.classifier import DEFAULT_RETRYABLE_STATUS_CODES
from evolution_gateway.core.resilience.models import (
    DEFAULT_RATE_LIMITS,
    BackoffStrategy,
    LimitAction,
    RateLimitRule,
)


@dataclass
class HttpConfig:
    """Transport settings.

    Attributes:
        timeout_seconds: Read timeout for each attempt
        connect_timeout_seconds: Connect timeout for each attempt
        verify_tls: Verify server certificates
        credential_header: Header carrying the API key
    """

    timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0
    verify_tls: bool = True
    credential_header: str = "apikey"

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "HttpConfig":
        return cls(
            timeout_seconds=float(data.get("timeout", data.get("timeout_seconds", 30.0))),
            connect_timeout_seconds=float(
                data.get("connect_timeout", data.get("connect_timeout_seconds", 10.0))
            ),
            verify_tls=_parse_bool(data.get("verify_ssl", data.get("verify_tls", True))),
            credential_header=str(data.get("credential_header", "apikey")),
        )

    def validate(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigurationError("http.timeout must be positive", field="http.timeout")
        if self.connect_timeout_seconds <= 0:
            raise ConfigurationError(
                "http.connect_timeout must be positive", field="http.connect_timeout"
            )


@dataclass
class RetryConfig:
    """Retry settings.

    Attributes:
        enabled: Retry retryable outcomes at all
        max_attempts: Total attempts per call, including the first
        backoff_strategy: fixed, linear or exponential
        base_delay_ms: Backoff base delay in milliseconds
        max_delay_ms: Backoff ceiling in milliseconds
        retryable_status_codes: Status codes classified as transient
        jitter: Randomize delays by 50-150%
        max_retry_after_seconds: Longest server retry hint to wait for, 0 = unbounded
    """

    enabled: bool = True
    max_attempts: int = 3
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    retryable_status_codes: List[int] = field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_STATUS_CODES)
    )
    jitter: bool = False
    max_retry_after_seconds: float = 120.0

    @property
    def effective_max_attempts(self) -> int:
        return self.max_attempts if self.enabled else 1

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RetryConfig":
        strategy = _normalize_choice(
            data.get("strategy", data.get("backoff_strategy", "exponential")),
            [s.value for s in BackoffStrategy],
            "retry strategy",
        )
        codes = data.get("retryable_status_codes", data.get("retry_on_status"))
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            max_attempts=int(data.get("max_attempts", 3)),
            backoff_strategy=BackoffStrategy(strategy),
            base_delay_ms=int(data.get("base_delay", data.get("base_delay_ms", 1000))),
            max_delay_ms=int(data.get("max_delay", data.get("max_delay_ms", 30000))),
            retryable_status_codes=(
                _parse_status_codes(codes)
                if codes is not None
                else list(DEFAULT_RETRYABLE_STATUS_CODES)
            ),
            jitter=_parse_bool(data.get("jitter", False)),
            max_retry_after_seconds=float(
                data.get("max_retry_after", data.get("max_retry_after_seconds", 120.0))
            ),
        )

    def validate(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError("retry.max_attempts must be >= 1", field="retry.max_attempts")
        if self.base_delay_ms <= 0:
            raise ConfigurationError("retry.base_delay must be positive", field="retry.base_delay")
        if self.max_delay_ms < self.base_delay_ms:
            raise ConfigurationError(
                "retry.max_delay must be >= retry.base_delay", field="retry.max_delay"
            )
        if self.max_retry_after_seconds < 0:
            raise ConfigurationError(
                "retry.max_retry_after must be >= 0", field="retry.max_retry_after"
            )


@dataclass
class RateLimitConfig:
    """Client-side rate limiting.

    Attributes:
        enabled: Apply the limiter at all
        limits: Operation class -> rule
        on_limit_reached: wait, throw or skip
        max_wait_seconds: Bound for the wait action, 0 = unbounded
    """

    enabled: bool = True
    limits: Dict[str, RateLimitRule] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    on_limit_reached: LimitAction = LimitAction.WAIT
    max_wait_seconds: float = 0.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RateLimitConfig":
        limits = dict(DEFAULT_RATE_LIMITS)
        for op_class, rule in (data.get("limits") or {}).items():
            limits[str(op_class)] = RateLimitRule(
                max_attempts=int(rule.get("max_attempts", rule.get("max_requests", 60))),
                window_seconds=float(rule.get("window_seconds", rule.get("decay_seconds", 60))),
            )
        action = _normalize_choice(
            data.get("on_limit_reached", "wait"),
            [a.value for a in LimitAction],
            "on_limit_reached action",
        )
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            limits=limits,
            on_limit_reached=LimitAction(action),
            max_wait_seconds=float(data.get("max_wait_seconds", 0)),
        )

    def validate(self) -> None:
        for op_class, rule in self.limits.items():
            if rule.max_attempts < 1 or rule.window_seconds <= 0:
                raise ConfigurationError(
                    f"rate_limiting.limits.{op_class} needs max_attempts >= 1 and window_seconds > 0",
                    field=f"rate_limiting.limits.{op_class}",
                )
        if self.max_wait_seconds < 0:
            raise ConfigurationError(
                "rate_limiting.max_wait_seconds must be >= 0",
                field="rate_limiting.max_wait_seconds",
            )


@dataclass
class LoggingConfig:
    """Request/response logging.

    Attributes:
        enabled: Attach the logging event sink
        log_requests: Log outgoing requests
        log_responses: Log responses
        redact_sensitive: Redact credentials before logging
        sensitive_fields: Field and header names to redact
        level: Level for the package logger, None leaves it untouched
    """

    enabled: bool = True
    log_requests: bool = True
    log_responses: bool = True
    redact_sensitive: bool = True
    sensitive_fields: List[str] = field(default_factory=lambda: list(DEFAULT_SENSITIVE_FIELDS))
    level: Optional[str] = None

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        level = data.get("level")
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            log_requests=_parse_bool(data.get("log_requests", True)),
            log_responses=_parse_bool(data.get("log_responses", True)),
            redact_sensitive=_parse_bool(data.get("redact_sensitive", True)),
            sensitive_fields=list(data.get("sensitive_fields", DEFAULT_SENSITIVE_FIELDS)),
            level=str(level).upper() if level else None,
        )


@dataclass
class MetricsConfig:
    """Metrics emission.

    Attributes:
        enabled: Attach the metrics collector
        prefix: Metric name prefix
    """

    enabled: bool = False
    prefix: str = "evolution_gateway"

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "MetricsConfig":
        return cls(
            enabled=_parse_bool(data.get("enabled", False)),
            prefix=str(data.get("prefix", "evolution_gateway")),
        )


@dataclass
class ConnectionConfig:
    """One named gateway connection as read from configuration."""

    name: str
    server_url: str
    api_key: str
    instance: Optional[str] = None

    @classmethod
    def from_toml_dict(cls, name: str, data: Dict[str, Any]) -> "ConnectionConfig":
        return cls(
            name=name,
            server_url=str(data.get("server_url", data.get("url", ""))),
            api_key=str(data.get("api_key", "")),
            instance=data.get("instance") or None,
        )
