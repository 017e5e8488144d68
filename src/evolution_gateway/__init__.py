"""Resilient async client for the Evolution WhatsApp gateway API."""

from evolution_gateway.config import GatewayConfig
from evolution_gateway.core.client import GatewayClient
from evolution_gateway.core.connections import ConnectionProfile, ConnectionRegistry
from evolution_gateway.core.endpoints import ENDPOINTS, Endpoint
from evolution_gateway.core.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    GenericApiError,
    NotFoundError,
    RateLimitExceededError,
    RequestCancelledError,
    TransientNetworkError,
    UnknownConnectionError,
    ValidationError,
)
from evolution_gateway.core.resilience import (
    BackoffStrategy,
    FixedWindowRateLimiter,
    LimitAction,
    OperationClass,
    classify,
    compute_delay,
)
from evolution_gateway.core.responses import GatewayResponse, RequestOptions

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "GatewayClient",
    "GatewayConfig",
    "GatewayResponse",
    "RequestOptions",
    # Connections and endpoints
    "ConnectionProfile",
    "ConnectionRegistry",
    "Endpoint",
    "ENDPOINTS",
    # Resilience
    "BackoffStrategy",
    "LimitAction",
    "OperationClass",
    "FixedWindowRateLimiter",
    "classify",
    "compute_delay",
    # Errors
    "GatewayError",
    "ApiError",
    "ConfigurationError",
    "UnknownConnectionError",
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
    "GenericApiError",
    "RateLimitExceededError",
    "TransientNetworkError",
    "RequestCancelledError",
]
