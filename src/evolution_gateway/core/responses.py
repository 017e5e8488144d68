"""Request options and response models for the gateway client."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from evolution_gateway.core.errors import ApiError


class RequestOptions(BaseModel):
    """Per-call settings passed to ``GatewayClient.request``.

    Immutable: derive variants with ``model_copy(update={...})``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    connection: Optional[str] = Field(default=None, description="Connection name overriding the active one")
    instance: Optional[str] = Field(default=None, description="Instance filling {instance} in the path")
    query: Dict[str, Any] = Field(default_factory=dict, description="Query string parameters")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    files: Optional[Dict[str, Any]] = Field(default=None, description="Multipart files, httpx format")
    raise_on_error: bool = Field(default=True, description="Raise typed errors instead of returning them")
    timeout: Optional[float] = Field(default=None, gt=0, description="Read timeout override in seconds")
    cancel_event: Optional[asyncio.Event] = Field(default=None, description="Cooperative cancellation signal")


class GatewayResponse(BaseModel):
    """Result of a gateway call.

    Three shapes:
        - a real response: ``status_code`` set, ``skipped`` False
        - a rate-limit skip: ``skipped`` True, ``status_code`` None, no network call made
        - a returned failure (``raise_on_error=False``): ``error`` set
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status_code: Optional[int] = None
    data: Any = None
    headers: Dict[str, str] = Field(default_factory=dict)
    message: Optional[str] = None
    response_time_ms: float = 0.0
    connection: Optional[str] = None
    attempts: int = 0
    skipped: bool = False
    error: Optional[ApiError] = None

    @classmethod
    def skipped_response(cls, connection: Optional[str] = None) -> "GatewayResponse":
        return cls(skipped=True, connection=connection, message="Skipped: rate limit reached")

    @property
    def ok(self) -> bool:
        return (
            not self.skipped
            and self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Read ``key`` from ``data``; dotted keys walk nested dicts and lists."""
        current = self.data
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
                current = current[int(part)]
            else:
                return default
        return current

    def raise_for_error(self) -> "GatewayResponse":
        """Raise the carried error, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self
