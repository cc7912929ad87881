"""Operational-health monitoring for Veritas runs."""

from veritas.monitoring.metrics import (
    AggregatedMetrics,
    ValidationMetricRecord,
    ValidationMonitor,
    veritas_monitoring,
)

__all__ = [
    "AggregatedMetrics",
    "ValidationMetricRecord",
    "ValidationMonitor",
    "veritas_monitoring",
]
