"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    DatabaseMetrics,
    HttpMetrics,
    ServiceMetrics,
    get_database_metrics,
    get_http_metrics,
    get_service_metrics,
    get_metrics_handler,
)

__all__ = [
    "DatabaseMetrics",
    "HttpMetrics",
    "ServiceMetrics",
    "get_database_metrics",
    "get_http_metrics",
    "get_service_metrics",
    "get_metrics_handler",
]
