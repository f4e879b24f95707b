"""
MyHome API application.

Wires the routers, middleware and exception handlers into one FastAPI
app. On startup the lifespan hook opens the asyncpg pool, creates any
missing tables and seeds the default community data.

Run locally with ``python -m myhome.main``.
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from prometheus_client import CONTENT_TYPE_LATEST

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from myhome.bootstrap.data_loader import DataLoader
from myhome.config import get_settings, Settings
from myhome.dependencies import close_db_pool, get_db_pool, init_db_pool
from myhome.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from myhome.repositories.community_admin_repo import CommunityAdminRepository
from myhome.repositories.community_repo import CommunityRepository
from myhome.repositories.house_repo import HouseRepository
from myhome.repositories.schema import create_schema
from myhome.routers import amenities, communities, houses, payments, users
from shared.logging import configure_logging
from shared.metrics import get_database_metrics, get_metrics_handler

settings: Settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.log_format == "json",
    service_name="myhome-service",
    environment=settings.environment,
)

logger = structlog.get_logger(__name__)

database_metrics = get_database_metrics()
render_metrics = get_metrics_handler()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)


async def seed_default_data(pool) -> None:
    """Run the default data loader against the given pool."""
    loader = DataLoader(
        CommunityRepository(pool),
        CommunityAdminRepository(pool),
        HouseRepository(pool),
    )
    await loader.load_data()


async def prepare_database():
    """Open the pool, then create tables and seed defaults as configured."""
    pool = await init_db_pool()

    async with pool.acquire() as conn:
        server_version = await conn.fetchval("SHOW server_version")
    logger.info(
        "database_connected",
        server_version=server_version,
        max_connections=settings.database_max_connections,
    )

    if settings.database_create_schema:
        await create_schema(pool)

    if settings.bootstrap_enabled:
        await seed_default_data(pool)

    database_metrics.observe_pool(pool)
    return pool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown. Any startup failure stops the app."""
    log = logger.bind(version=settings.app_version, environment=settings.environment)
    log.info("myhome_starting")

    try:
        await prepare_database()
    except Exception as e:
        log.error("application_startup_failed", error=str(e), exc_info=True)
        await close_db_pool()
        raise

    log.info("myhome_started")
    try:
        yield
    finally:
        await close_db_pool()
        log.info("myhome_stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Property management API for users, communities, community admins, "
        "houses and house members."
    ),
    lifespan=lifespan,
    debug=settings.debug,
)
app.state.limiter = limiter

# The last middleware added is the outermost one.
if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=settings.cors_expose_headers,
    )
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)
if settings.security_headers_enabled:
    app.add_middleware(SecurityHeadersMiddleware, hsts_max_age=settings.security_hsts_max_age)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning("request_invalid", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def on_http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error("http_error", path=request.url.path, status_code=exc.status_code, detail=exc.detail)
    else:
        logger.info("http_error", path=request.url.path, status_code=exc.status_code, detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def on_unhandled_error(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.get("/health", tags=["Health"])
@limiter.exempt
async def health_check(request: Request) -> Dict[str, Any]:
    """Liveness check. Never touches the database."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/ready", tags=["Health"])
@limiter.exempt
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check: 200 once PostgreSQL answers, 503 otherwise."""
    try:
        pool = get_db_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        database_metrics.observe_pool(pool)
        database = "healthy"
    except Exception as e:
        logger.warning("readiness_check_failed", error=str(e))
        database = "unhealthy"

    ready = database == "healthy"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "service": settings.app_name,
            "version": settings.app_version,
            "checks": {"database": database},
        },
    )


@app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
@limiter.exempt
async def metrics(request: Request) -> Response:
    """Prometheus scrape target."""
    return Response(content=render_metrics(), media_type=CONTENT_TYPE_LATEST)


for router in (
    users.auth_router,
    users.users_router,
    communities.router,
    houses.router,
    amenities.router,
    payments.router,
):
    app.include_router(router, prefix=settings.api_prefix)


if __name__ == "__main__":
    uvicorn.run(
        "myhome.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
