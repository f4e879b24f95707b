"""
HTTP middleware for the MyHome API.

``RequestContextMiddleware`` tags each request with a correlation id,
logs it and records the HTTP metrics. ``SecurityHeadersMiddleware`` adds
the browser hardening headers.
"""

import time
import uuid
from typing import Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.logging import bind_context, clear_context
from shared.metrics import HttpMetrics, get_http_metrics

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def route_template(request: Request) -> str:
    """Path template of the matched route, so ids do not explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlation id, access log and request metrics."""

    def __init__(self, app, metrics: Optional[HttpMetrics] = None):
        super().__init__(app)
        self.metrics = metrics or get_http_metrics()

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        clear_context()
        bind_context(correlation_id=correlation_id)

        log = logger.bind(method=request.method, path=request.url.path)
        log.info(
            "request_started",
            client_ip=request.client.host if request.client else None,
        )

        in_flight = self.metrics.in_flight.labels(method=request.method)
        in_flight.inc()
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            # Unhandled error, answered here with a generic 500.
            response = JSONResponse(
                {"detail": "Internal server error"},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
            log.error(
                "request_failed",
                error=str(e),
                elapsed_ms=self._observe(request, response, started),
                exc_info=True,
            )
        else:
            log.info(
                "request_completed",
                status_code=response.status_code,
                elapsed_ms=self._observe(request, response, started),
            )
        finally:
            in_flight.dec()

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    def _observe(self, request: Request, response, started: float) -> float:
        """Record count and latency of a finished request; returns elapsed milliseconds."""
        elapsed = time.perf_counter() - started
        endpoint = route_template(request)
        self.metrics.requests.labels(
            method=request.method, endpoint=endpoint, status=response.status_code
        ).inc()
        self.metrics.latency.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        return round(elapsed * 1000, 1)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds ``SECURITY_HEADERS`` and, when configured, HSTS to every response."""

    def __init__(self, app, hsts_max_age: Optional[int] = None):
        super().__init__(app)
        self.headers = dict(SECURITY_HEADERS)
        if hsts_max_age:
            self.headers["Strict-Transport-Security"] = (
                f"max-age={hsts_max_age}; includeSubDomains"
            )

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(self.headers)
        return response
