"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    HttpMetrics,
    get_metrics_handler,
)

__all__ = [
    "HttpMetrics",
    "get_metrics_handler",
]
