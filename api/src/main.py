"""
FastAPI application entry point for the Users API.

This module provides:
- The application factory (CORS, request logging, metrics, exception
  handlers, the mounted route module, health endpoints)
- The startup sequence: the MongoDB connection is established before the
  HTTP listener is created, so no request is accepted until it succeeds
- The console entry point
"""

import asyncio
import sys
import time
import uuid
import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from pymongo import AsyncMongoClient
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import CONTENT_TYPE_LATEST

from api.src import __version__
from api.src.config import get_settings, Settings
from api.src.database import (
    DatabaseConnectionError,
    close_database,
    connect_database,
    get_app_database,
    ping_database,
    redact_uri,
)
from api.src.routing import mount_routes
from shared.logging import bind_context, clear_context, configure_logging
from shared.metrics import HttpMetrics, get_metrics_handler

logger = structlog.get_logger(__name__)

UNMATCHED_ENDPOINT = "unmatched"


# ============================================================================
# Middleware
# ============================================================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging, correlation IDs and metrics."""

    def __init__(self, app, metrics: HttpMetrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next):
        """Process request and log details."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        bind_context(correlation_id=correlation_id)

        method = request.method
        path = request.url.path
        endpoint = self._endpoint_label(request)

        self.metrics.requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)

            duration = time.perf_counter() - start_time
            self._record(method, endpoint, response.status_code, duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s",
            )

            response.headers["X-Correlation-ID"] = correlation_id
            return response

        except Exception as e:
            duration = time.perf_counter() - start_time
            self._record(method, endpoint, status.HTTP_500_INTERNAL_SERVER_ERROR, duration)
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
            )
            raise

        finally:
            self.metrics.requests_in_progress.labels(method=method, endpoint=endpoint).dec()
            clear_context()

    def _record(self, method: str, endpoint: str, status_code: int, duration: float) -> None:
        self.metrics.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=status_code
        ).inc()
        self.metrics.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    @staticmethod
    def _endpoint_label(request: Request) -> str:
        """
        Route template for the request, so path parameters don't explode label cardinality.

        Routes are matched against the application's routing table, whose
        paths already carry the mount prefix. Requests no route matches share
        the ``unmatched`` label.
        """
        for route in request.app.router.routes:
            match, _ = route.matches(request.scope)
            if match != Match.NONE:
                return getattr(route, "path", UNMATCHED_ENDPOINT)
        return UNMATCHED_ENDPOINT


# ============================================================================
# Exception Handlers
# ============================================================================

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors, including malformed JSON bodies."""
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=len(exc.errors())
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# ============================================================================
# Application Factory
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    client: Optional[AsyncMongoClient] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Registers middleware, mounts the configured route module under its
    prefix and adds health endpoints. The MongoDB client may be attached
    later through ``app.state.mongo_client``; it must be set before the
    application starts serving.

    Args:
        settings: Application settings (cached settings when omitted)
        client: Connected MongoDB client

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    metrics = HttpMetrics()
    route_module = None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "application_starting",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment
        )

        mongo_client = app.state.mongo_client
        if mongo_client is not None and route_module.startup is not None:
            await route_module.startup(get_app_database(mongo_client, settings))

        yield

        logger.info("application_shutting_down")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Users API backed by MongoDB.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.mongo_client = client
    app.state.metrics = metrics

    # CORS Middleware
    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
        )

    app.add_middleware(RequestLoggingMiddleware, metrics=metrics)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    route_module = mount_routes(app, settings)

    # ========================================================================
    # Health and Readiness Endpoints
    # ========================================================================

    @app.get("/health", tags=["Health"], response_class=JSONResponse)
    async def health_check() -> Dict[str, Any]:
        """
        Health check endpoint.

        Returns basic health status without checking dependencies.
        """
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment
        }

    @app.get("/ready", tags=["Health"], response_class=JSONResponse)
    async def readiness_check(request: Request):
        """
        Readiness check endpoint.

        Pings the database; responds 503 when it does not answer.
        """
        healthy = await ping_database(request.app.state.mongo_client)
        metrics.database_up.set(1 if healthy else 0)

        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if healthy else "not_ready",
                "service": settings.app_name,
                "version": settings.app_version,
                "checks": {"database": "healthy" if healthy else "unhealthy"}
            }
        )

    if settings.metrics_enabled:
        metrics_handler = get_metrics_handler(metrics)

        @app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
        async def metrics_endpoint() -> Response:
            """Prometheus metrics endpoint."""
            return Response(content=metrics_handler(), media_type=CONTENT_TYPE_LATEST)

    return app


# ============================================================================
# Server Startup
# ============================================================================

class ApiServer(uvicorn.Server):
    """Uvicorn server that logs once its sockets are listening."""

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info(
                "server_started",
                host=self.config.host,
                port=self.config.port
            )


async def serve(settings: Settings) -> bool:
    """
    Build the application, connect to MongoDB, then listen.

    The listener is only created after the connection attempt succeeds.
    A failed attempt is logged and the function returns without serving.

    Args:
        settings: Application settings

    Returns:
        True if the server started, False otherwise
    """
    app = create_app(settings)

    try:
        client = await connect_database(settings)
    except DatabaseConnectionError as e:
        logger.error(
            "database_connection_failed",
            error=str(e),
            uri=redact_uri(settings.mongo_uri) if settings.mongo_uri else None
        )
        return False

    logger.info("database_connected", uri=redact_uri(settings.mongo_uri))
    app.state.mongo_client = client

    server = ApiServer(
        uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
            access_log=False,
        )
    )

    try:
        await server.serve()
    finally:
        await close_database(client)

    return server.started


def run() -> int:
    """Console entry point."""
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        service_name=settings.app_name,
        environment=settings.environment,
    )
    logger.info(
        "starting_server",
        app_name=settings.app_name,
        version=__version__,
        port=settings.port
    )

    started = asyncio.run(serve(settings))
    return 0 if started else 1


if __name__ == "__main__":
    sys.exit(run())
