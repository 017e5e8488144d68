"""Request/response event logging for the gateway client.

The client reports every attempt to an ``EventSink``. The default sink
writes structured records to the standard logger with credentials redacted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Collection, Dict, Optional, Protocol

from evolution_gateway.core.observability.redaction import (
    DEFAULT_SENSITIVE_FIELDS,
    redact_fields,
    redact_headers,
    redact_text,
)

logger = logging.getLogger(__name__)


class GatewayEventType(Enum):
    """Events emitted by the client."""

    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"
    RETRY = "retry"
    RATE_LIMITED = "rate_limited"


class EventSink(Protocol):
    """Receives ``(event, fields)`` notifications. Must not affect the request."""

    def emit(self, event: str, fields: Dict[str, Any]) -> None: ...


@dataclass
class GatewayEvent:
    """Structured event record."""

    event_type: GatewayEventType
    fields: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            **self.fields,
        }


class LoggingEventSink:
    """
    Writes gateway events to a dedicated logger.

    Requests and successful responses are logged at DEBUG, retries and rate
    limiting at INFO, errors at WARNING. Headers, bodies and messages are
    redacted unless ``redact`` is False.
    """

    def __init__(
        self,
        *,
        log_requests: bool = True,
        log_responses: bool = True,
        redact: bool = True,
        sensitive_fields: Optional[Collection[str]] = None,
        logger_name: Optional[str] = None,
    ):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.redact = redact
        self.sensitive_fields = tuple(sensitive_fields or DEFAULT_SENSITIVE_FIELDS)
        self._logger = logging.getLogger(logger_name or f"{__name__}.gateway")

    def _sanitize(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        if not self.redact:
            return dict(fields)
        clean: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == "headers" and isinstance(value, dict):
                clean[key] = redact_headers(value, self.sensitive_fields)
            elif key == "message" and isinstance(value, str):
                clean[key] = redact_text(value)
            else:
                clean[key] = redact_fields(value, self.sensitive_fields)
        return redact_fields(clean, self.sensitive_fields)

    def emit(self, event: str, fields: Dict[str, Any]) -> None:
        try:
            event_type = GatewayEventType(event)
        except ValueError:
            event_type = GatewayEventType.ERROR
            fields = {**fields, "original_event": event}

        if event_type is GatewayEventType.REQUEST and not self.log_requests:
            return
        if event_type is GatewayEventType.RESPONSE and not self.log_responses:
            return

        record = GatewayEvent(event_type=event_type, fields=self._sanitize(fields))
        level = {
            GatewayEventType.REQUEST: logging.DEBUG,
            GatewayEventType.RESPONSE: logging.DEBUG,
            GatewayEventType.RETRY: logging.INFO,
            GatewayEventType.RATE_LIMITED: logging.INFO,
            GatewayEventType.ERROR: logging.WARNING,
        }[event_type]
        self._logger.log(
            level,
            "GATEWAY: %s %s %s",
            event_type.value,
            fields.get("method", ""),
            fields.get("url", ""),
            extra={"gateway_event": record.to_dict()},
        )
