"""FastAPI application factory for the recipe catalog.

Creates the application with:
- Recipe, region and lookup routers under the API prefix
- Lifecycle management for the database and the optional Redis cache
- Prometheus metrics and correlated request logging
- Consistent error envelopes
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from chop.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from chop.api.middleware import CorrelationMiddleware, RateLimitConfig, RateLimitMiddleware
from chop.api.routers import admin, health, lookups, recipes, regions
from chop.api.routers import metrics as metrics_router
from chop.cache.backend import close_backend, init_backend
from chop.config import settings
from chop.observability import configure_logging
from chop.observability.metrics import MetricsMiddleware, get_metrics
from chop.persistence.db import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize Prometheus metrics
    - Initialize database connection pool
    - Connect to Redis (caching stays disabled if this fails)

    On shutdown:
    - Close Redis connection
    - Close database connections
    """
    # JSON in production, console in dev
    configure_logging(
        json_format=settings.env != "dev",
        level=settings.log_level,
    )
    get_metrics()

    logger.info(f"Starting {settings.app_name} ({settings.env})")
    await init_db()
    await init_backend()
    logger.info("Startup complete")

    yield

    logger.info("Shutting down")
    await close_backend()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Chop",
        description="Recipe catalog API",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CorrelationMiddleware is innermost so its context covers the others
    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    if settings.enable_rate_limiting:
        app.add_middleware(
            RateLimitMiddleware,
            config=RateLimitConfig(
                requests_per_window=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window,
            ),
        )

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, validation_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)

    app.include_router(recipes.router, prefix=settings.api_prefix)
    app.include_router(regions.router, prefix=settings.api_prefix)
    app.include_router(lookups.router, prefix=settings.api_prefix)
    app.include_router(admin.router, prefix=settings.api_prefix)

    return app


app = create_app()
