"""Prometheus metrics definitions and helpers.

Metrics are grouped by concern. Each group takes the registry it
registers on, so tests can use a private one.
"""

from typing import Callable, Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class HttpMetrics:
    """Request counts and latencies per route."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.requests = Counter(
            "http_requests_total",
            "Requests served, by route template and status code",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.latency = Histogram(
            "http_request_duration_seconds",
            "Time spent serving a request",
            ["method", "endpoint"],
            registry=registry,
        )

        self.in_flight = Gauge(
            "http_requests_in_progress",
            "Requests being served right now",
            ["method"],
            registry=registry,
        )


class ServiceMetrics:
    """MyHome domain metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize service metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Records created by the bootstrap seeder
        self.seeded_records = Counter(
            "myhome_seeded_records_total",
            "Number of default records created at startup",
            ["entity"],
            registry=registry,
        )

        # Login attempts
        self.login_attempts = Counter(
            "myhome_login_attempts_total",
            "Number of login attempts",
            ["outcome"],
            registry=registry,
        )

        # Records created through the API
        self.records_created = Counter(
            "myhome_records_created_total",
            "Number of records created through the API",
            ["entity"],
            registry=registry,
        )

        # Records deleted through the API
        self.records_deleted = Counter(
            "myhome_records_deleted_total",
            "Number of records deleted through the API",
            ["entity"],
            registry=registry,
        )


class DatabaseMetrics:
    """Connection pool metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize database metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.pool_size = Gauge(
            "db_connection_pool_size",
            "Database connection pool size",
            registry=registry,
        )

        self.pool_idle = Gauge(
            "db_connection_pool_idle",
            "Idle connections in the database pool",
            registry=registry,
        )

    def observe_pool(self, pool) -> None:
        """Record the current size of an asyncpg pool."""
        self.pool_size.set(pool.get_size())
        self.pool_idle.set(pool.get_idle_size())


_http_metrics: Optional[HttpMetrics] = None
_service_metrics: Optional[ServiceMetrics] = None
_database_metrics: Optional[DatabaseMetrics] = None


def get_http_metrics() -> HttpMetrics:
    """Return the process-wide HTTP metrics, registering them on first use."""
    global _http_metrics
    if _http_metrics is None:
        _http_metrics = HttpMetrics()
    return _http_metrics


def get_service_metrics() -> ServiceMetrics:
    """Return the process-wide service metrics, registering them on first use."""
    global _service_metrics
    if _service_metrics is None:
        _service_metrics = ServiceMetrics()
    return _service_metrics


def get_database_metrics() -> DatabaseMetrics:
    """Return the process-wide database metrics, registering them on first use."""
    global _database_metrics
    if _database_metrics is None:
        _database_metrics = DatabaseMetrics()
    return _database_metrics


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Args:
        registry: Prometheus registry to render

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
