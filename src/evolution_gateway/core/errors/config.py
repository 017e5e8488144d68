"""Setup-time errors raised by configuration and the connection registry."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from evolution_gateway.core.errors.base import GatewayError


class ConfigurationError(GatewayError):
    """Invalid client setup. Raised at registration or construction time.

    Attributes:
        field: Name of the offending setting, if known.
        code: Short machine-readable reason (e.g. ``MISSING_SERVER_URL``).
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.field = field
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"field": self.field, "code": self.code})
        return data


class UnknownConnectionError(GatewayError):
    """A connection name could not be resolved.

    Attributes:
        name: The requested connection name (None when the active one was missing).
        available: Names registered at the time of the lookup.
    """

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        available: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.name = name
        self.available = list(available or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"name": self.name, "available": self.available})
        return data
