"""
Observability utilities for the gateway client.

Provides request/response event logging, metrics collection, and
credential redaction. Both sinks are optional: the client runs unchanged
with either one absent, and a failing sink never fails a request.
"""

from evolution_gateway.core.observability.events import (
    EventSink,
    GatewayEvent,
    GatewayEventType,
    LoggingEventSink,
)
from evolution_gateway.core.observability.metrics import (
    Metric,
    MetricsCollector,
    MetricsSink,
    MetricType,
)
from evolution_gateway.core.observability.redaction import (
    DEFAULT_SENSITIVE_FIELDS,
    REDACTED,
    SENSITIVE_HEADERS,
    redact_fields,
    redact_headers,
    redact_text,
)

__all__ = [
    # Events
    "EventSink",
    "GatewayEvent",
    "GatewayEventType",
    "LoggingEventSink",
    # Metrics
    "MetricsSink",
    "Metric",
    "MetricType",
    "MetricsCollector",
    # Redaction
    "REDACTED",
    "DEFAULT_SENSITIVE_FIELDS",
    "SENSITIVE_HEADERS",
    "redact_fields",
    "redact_headers",
    "redact_text",
]
