"""Observability utilities: run correlation context and per-item timing metrics."""

import time
import uuid
from typing import Any, Dict, Optional
from dataclasses import dataclass, field


@dataclass
class LogContext:
    """Context information attached to log lines of one batch run."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_metadata(self, **kwargs) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )

    def prefix(self) -> str:
        """Render the ``[operation] [correlation]`` prefix used in log lines."""
        rendered = f"[{self.correlation_id}]"
        if self.operation:
            rendered = f"[{self.operation}] {rendered}"
        return rendered

    def format(self, message: str) -> str:
        formatted = f"{self.prefix()} {message}"
        if self.metadata:
            metadata_str = ", ".join(f"{k}={v}" for k, v in self.metadata.items())
            formatted = f"{formatted} ({metadata_str})"
        return formatted


@dataclass
class PerformanceMetrics:
    """Timing of one processed item."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Calculate operation duration in seconds."""
        return self.end_time - self.start_time

    @property
    def duration_ms(self) -> float:
        """Calculate operation duration in milliseconds."""
        return self.duration * 1000


class MetricsCollector:
    """Collector for performance metrics."""

    def __init__(self):
        self._metrics: list[PerformanceMetrics] = []

    def record_metric(self, metric: PerformanceMetrics):
        """Record a performance metric."""
        self._metrics.append(metric)

    def record(
        self,
        operation: str,
        start_time: float,
        success: bool,
        error_message: Optional[str] = None,
        **metadata: Any,
    ) -> PerformanceMetrics:
        """Record a metric that ends now."""
        metric = PerformanceMetrics(
            operation=operation,
            start_time=start_time,
            end_time=time.time(),
            success=success,
            error_message=error_message,
            metadata=metadata,
        )
        self.record_metric(metric)
        return metric

    def get_metrics(self, operation: Optional[str] = None) -> list[PerformanceMetrics]:
        """Get recorded metrics, optionally filtered by operation."""
        if operation:
            return [m for m in self._metrics if m.operation == operation]
        return self._metrics.copy()

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for metrics."""
        metrics = self.get_metrics(operation)

        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        successful = [m for m in metrics if m.success]

        return {
            "total_operations": len(metrics),
            "successful_operations": len(successful),
            "failed_operations": len(metrics) - len(successful),
            "success_rate": len(successful) / len(metrics),
            "avg_duration": sum(durations) / len(durations),
            "min_duration": min(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }

    def clear_metrics(self):
        """Clear all recorded metrics."""
        self._metrics.clear()
