"""Gateway error hierarchy.

Every error raised by the client derives from ``GatewayError``:

    GatewayError
    ├── ConfigurationError
    ├── UnknownConnectionError
    ├── RequestCancelledError
    └── ApiError
        ├── AuthenticationError
        ├── NotFoundError
        ├── ValidationError
        ├── GenericApiError
        ├── RateLimitExceededError
        └── TransientNetworkError
"""

from evolution_gateway.core.errors.api import (
    ApiError,
    AuthenticationError,
    GenericApiError,
    NotFoundError,
    ValidationError,
)
from evolution_gateway.core.errors.base import GatewayError
from evolution_gateway.core.errors.config import (
    ConfigurationError,
    UnknownConnectionError,
)
from evolution_gateway.core.errors.resilience import (
    DEFAULT_RETRY_AFTER,
    RateLimitExceededError,
    RequestCancelledError,
    TransientNetworkError,
)

__all__ = [
    # Base
    "GatewayError",
    "ApiError",
    # Setup
    "ConfigurationError",
    "UnknownConnectionError",
    # Response-derived
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
    "GenericApiError",
    # Resilience
    "DEFAULT_RETRY_AFTER",
    "RateLimitExceededError",
    "TransientNetworkError",
    "RequestCancelledError",
]
