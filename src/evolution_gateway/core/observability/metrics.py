"""Metrics collection for gateway calls.

Provides structured metric emission to the standard logger. The client
reports through the ``MetricsSink`` protocol so any backend with a
``record(name, value, tags)`` method can be plugged in.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class MetricsSink(Protocol):
    """Receives ``(name, value, tags)`` samples. Must not affect the request."""

    def record(self, name: str, value: float, tags: Dict[str, str]) -> None: ...


class MetricType(Enum):
    """Types of metrics that can be emitted."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    TIMER = "timer"


@dataclass
class Metric:
    """Structured metric data."""

    name: str
    value: Union[int, float]
    metric_type: MetricType
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.metric_type.value,
            "labels": self.labels,
            "timestamp": self.timestamp,
        }


class MetricsCollector:
    """
    Collects gateway metrics and emits them to the standard logger.

    Metrics are logged as structured records for log aggregation systems.
    ``record`` makes the collector usable as the client's ``MetricsSink``.
    """

    def __init__(self, prefix: str = "evolution_gateway"):
        self.prefix = prefix
        self._logger = logging.getLogger(f"{__name__}.metrics")

    def emit(self, metric: Metric) -> None:
        self._logger.info("METRIC: %s.%s", self.prefix, metric.name, extra={"metric": metric.to_dict()})

    def record(self, name: str, value: float, tags: Dict[str, str]) -> None:
        metric_type = MetricType.TIMER if name.endswith("_ms") or name == "response_times" else MetricType.COUNTER
        self.emit(Metric(name=name, value=value, metric_type=metric_type, labels=dict(tags)))

    def counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a counter metric."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.COUNTER, labels=labels or {}))

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """Emit a gauge metric."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.GAUGE, labels=labels or {}))

    def timer(self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a timer metric (duration in milliseconds)."""
        self.emit(Metric(name=name, value=duration_ms, metric_type=MetricType.TIMER, labels=labels or {}))

    def histogram(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """Emit a histogram metric for distribution tracking."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.HISTOGRAM, labels=labels or {}))

    def track_api_call(
        self,
        method: str,
        endpoint: str,
        status_code: Optional[int],
        duration_ms: float,
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """Emit ``api_calls``, ``response_times`` and, on failure, ``api_errors``."""
        tags = {
            "method": method.upper(),
            "endpoint": endpoint,
            "status": str(status_code) if status_code is not None else "none",
            **(labels or {}),
        }
        self.counter("api_calls", labels=tags)
        self.timer("response_times", duration_ms, labels=tags)
        if status_code is None or status_code >= 400:
            self.counter("api_errors", labels=tags)
