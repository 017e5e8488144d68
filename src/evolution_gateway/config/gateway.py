"""GatewayConfig: top-level configuration for the gateway client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from evolution_gateway.config.domains import (
    ConnectionConfig,
    HttpConfig,
    LoggingConfig,
    MetricsConfig,
    RateLimitConfig,
    RetryConfig,
)
from evolution_gateway.config.loader import _GatewayConfigLoader

logger = logging.getLogger(__name__)


@dataclass
class GatewayConfig(_GatewayConfigLoader):
    """Gateway client configuration.

    Attributes:
        default_connection: Name the active pointer starts at
        connections: Named connection profiles to register
        http: Transport settings
        retry: Retry settings
        rate_limiting: Client-side rate limiting
        logging: Request/response logging
        metrics: Metrics emission
    """

    default_connection: str = "default"
    connections: Dict[str, ConnectionConfig] = field(default_factory=dict)
    http: HttpConfig = field(default_factory=HttpConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limiting: RateLimitConfig = field(default_factory=RateLimitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    def setup_logging(self) -> None:
        """Apply ``logging.level`` to the package logger, if set."""
        if self.logging.level:
            logging.getLogger("evolution_gateway").setLevel(self.logging.level)
