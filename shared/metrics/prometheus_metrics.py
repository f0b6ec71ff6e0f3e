"""Prometheus metrics definitions and helpers.

Provides HTTP metric definitions for the API service.
"""

from typing import Callable, Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CollectorRegistry,
)


class HttpMetrics:
    """HTTP request metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use; a private one is created
                when omitted so several applications can coexist in a process
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method", "endpoint"],
            registry=self.registry,
        )

        self.database_up = Gauge(
            "database_up",
            "Whether the last database ping succeeded (1) or failed (0)",
            registry=self.registry,
        )


def get_metrics_handler(metrics: HttpMetrics) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(metrics.registry)

    return metrics_handler
