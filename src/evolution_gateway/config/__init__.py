"""Configuration for the gateway client.

Loads settings from a TOML file and environment variables:

    [gateway]
    default_connection = "default"

    [connections.default]
    server_url = "https://gateway.example.com"
    api_key = "..."
    instance = "main"

    [http]
    timeout = 30
    connect_timeout = 10
    verify_ssl = true

    [retry]
    enabled = true
    max_attempts = 3
    strategy = "exponential"
    base_delay = 1000
    max_delay = 30000
    retryable_status_codes = [408, 429, 500, 502, 503, 504]
    max_retry_after = 120

    [rate_limiting]
    enabled = true
    on_limit_reached = "wait"

    [rate_limiting.limits.messages]
    max_attempts = 30
    window_seconds = 60

Environment variables (``EVOLUTION_API_URL``, ``EVOLUTION_API_KEY``, ...)
override file values.
"""

from evolution_gateway.config.domains import (
    ConnectionConfig,
    HttpConfig,
    LoggingConfig,
    MetricsConfig,
    RateLimitConfig,
    RetryConfig,
)
from evolution_gateway.config.gateway import GatewayConfig
from evolution_gateway.config.loader import CONFIG_FILE_ENV_VAR, PROJECT_CONFIG_FILE

__all__ = [
    "GatewayConfig",
    "ConnectionConfig",
    "HttpConfig",
    "RetryConfig",
    "RateLimitConfig",
    "LoggingConfig",
    "MetricsConfig",
    "CONFIG_FILE_ENV_VAR",
    "PROJECT_CONFIG_FILE",
]
