"""GatewayConfig loading and validation logic.

Provides ``_GatewayConfigLoader``, a mixin whose methods are inherited by
``GatewayConfig`` (defined in ``gateway.py``). Keeping the loading code here
leaves ``gateway.py`` focused on field definitions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, cast

if TYPE_CHECKING:
    from evolution_gateway.config.gateway import GatewayConfig

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from evolution_gateway.config.domains import (
    ConnectionConfig,
    HttpConfig,
    LoggingConfig,
    MetricsConfig,
    RateLimitConfig,
    RetryConfig,
)
from evolution_gateway.config.parsing import (
    _normalize_choice,
    _parse_bool,
    _parse_status_codes,
)
from evolution_gateway.core.errors import ConfigurationError
from evolution_gateway.core.resilience.models import BackoffStrategy, LimitAction

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "EVOLUTION_GATEWAY_CONFIG"
PROJECT_CONFIG_FILE = "evolution-gateway.toml"


class _GatewayConfigLoader:
    """Mixin providing config-loading methods for ``GatewayConfig``.

    At runtime ``self`` is always a ``GatewayConfig`` instance.
    """

    if TYPE_CHECKING:
        http: HttpConfig
        retry: RetryConfig
        rate_limiting: RateLimitConfig
        logging: LoggingConfig
        metrics: MetricsConfig
        default_connection: str
        connections: Dict[str, ConnectionConfig]

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "GatewayConfig":
        """
        Create configuration from environment variables and an optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML file (``config_file``, ``$EVOLUTION_GATEWAY_CONFIG``, or
           ``./evolution-gateway.toml``)
        3. Default values

        Raises:
            ConfigurationError: If the merged configuration is invalid.
        """
        config = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            project_config = Path(PROJECT_CONFIG_FILE)
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug("Loaded project config from %s", project_config)

        config._load_env()
        config.validate()

        return cast("GatewayConfig", config)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GatewayConfig":
        """Create configuration from a parsed mapping with the TOML layout."""
        config = cls()
        try:
            config._apply_dict(data)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration value: {exc}") from exc
        config.validate()
        return cast("GatewayConfig", config)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from a TOML file."""
        if not path.exists():
            logger.warning("Config file not found: %s", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

        try:
            self._apply_dict(data)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid value in {path}: {exc}") from exc

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        # Connection settings
        gateway = data.get("gateway", {})
        if "default_connection" in gateway:
            self.default_connection = str(gateway["default_connection"])

        # Legacy single-connection form registers as the default connection
        if gateway.get("server_url") or gateway.get("api_key"):
            self.connections[self.default_connection] = ConnectionConfig(
                name=self.default_connection,
                server_url=str(gateway.get("server_url", "")),
                api_key=str(gateway.get("api_key", "")),
                instance=gateway.get("instance") or None,
            )

        for name, conn in data.get("connections", {}).items():
            self.connections[name] = ConnectionConfig.from_toml_dict(name, conn)

        if "http" in data:
            self.http = HttpConfig.from_toml_dict(data["http"])
        if "retry" in data:
            self.retry = RetryConfig.from_toml_dict(data["retry"])
        if "rate_limiting" in data:
            self.rate_limiting = RateLimitConfig.from_toml_dict(data["rate_limiting"])
        if "logging" in data:
            self.logging = LoggingConfig.from_toml_dict(data["logging"])
        if "metrics" in data:
            self.metrics = MetricsConfig.from_toml_dict(data["metrics"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        url = os.environ.get("EVOLUTION_API_URL")
        api_key = os.environ.get("EVOLUTION_API_KEY")
        instance = os.environ.get("EVOLUTION_INSTANCE")
        if url or api_key or instance:
            current = self.connections.get(self.default_connection)
            self.connections[self.default_connection] = ConnectionConfig(
                name=self.default_connection,
                server_url=url or (current.server_url if current else ""),
                api_key=api_key or (current.api_key if current else ""),
                instance=instance or (current.instance if current else None),
            )

        try:
            # HTTP
            if timeout := os.environ.get("EVOLUTION_HTTP_TIMEOUT"):
                self.http.timeout_seconds = float(timeout)
            if connect_timeout := os.environ.get("EVOLUTION_CONNECT_TIMEOUT"):
                self.http.connect_timeout_seconds = float(connect_timeout)
            if verify := os.environ.get("EVOLUTION_VERIFY_SSL"):
                self.http.verify_tls = _parse_bool(verify)

            # Retry
            if retry_enabled := os.environ.get("EVOLUTION_RETRY_ENABLED"):
                self.retry.enabled = _parse_bool(retry_enabled)
            if max_attempts := os.environ.get("EVOLUTION_RETRY_MAX_ATTEMPTS"):
                self.retry.max_attempts = int(max_attempts)
            if strategy := os.environ.get("EVOLUTION_RETRY_STRATEGY"):
                self.retry.backoff_strategy = BackoffStrategy(
                    _normalize_choice(strategy, [s.value for s in BackoffStrategy], "retry strategy")
                )
            if base_delay := os.environ.get("EVOLUTION_RETRY_BASE_DELAY"):
                self.retry.base_delay_ms = int(base_delay)
            if max_delay := os.environ.get("EVOLUTION_RETRY_MAX_DELAY"):
                self.retry.max_delay_ms = int(max_delay)
            if codes := os.environ.get("EVOLUTION_RETRY_STATUS_CODES"):
                self.retry.retryable_status_codes = _parse_status_codes(codes)
            if retry_after_cap := os.environ.get("EVOLUTION_RETRY_MAX_RETRY_AFTER"):
                self.retry.max_retry_after_seconds = float(retry_after_cap)

            # Rate limiting
            if rl_enabled := os.environ.get("EVOLUTION_RATE_LIMIT_ENABLED"):
                self.rate_limiting.enabled = _parse_bool(rl_enabled)
            if action := os.environ.get("EVOLUTION_RATE_LIMIT_ACTION"):
                self.rate_limiting.on_limit_reached = LimitAction(
                    _normalize_choice(action, [a.value for a in LimitAction], "on_limit_reached action")
                )

            # Logging and metrics
            if log_requests := os.environ.get("EVOLUTION_LOG_REQUESTS"):
                self.logging.log_requests = _parse_bool(log_requests)
            if log_responses := os.environ.get("EVOLUTION_LOG_RESPONSES"):
                self.logging.log_responses = _parse_bool(log_responses)
            if level := os.environ.get("EVOLUTION_LOG_LEVEL"):
                self.logging.level = level.upper()
            if metrics_enabled := os.environ.get("EVOLUTION_METRICS_ENABLED"):
                self.metrics.enabled = _parse_bool(metrics_enabled)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid environment setting: {exc}") from exc

    def validate(self) -> None:
        """Check the merged configuration.

        Connection URLs and credentials are validated when the client
        registers them.

        Raises:
            ConfigurationError: On the first invalid setting.
        """
        self.http.validate()
        self.retry.validate()
        self.rate_limiting.validate()
        if not self.default_connection:
            raise ConfigurationError("default_connection must not be empty", field="default_connection")
