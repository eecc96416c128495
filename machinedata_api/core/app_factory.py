"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) to
improve testability: tests pass their own store and rate limiter instead of
the configured ones.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from machinedata_api.adapters.rate_limit.base import AbstractRateLimiter
from machinedata_api.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from machinedata_api.adapters.store.base import AbstractMachineStore
from machinedata_api.adapters.store.factory import create_machine_store
from machinedata_api.api.routes import health_router, machine_data_router
from machinedata_api.core.config import settings
from machinedata_api.core.errors import StoreAppError
from machinedata_api.core.exception_handlers import setup_exception_handlers
from machinedata_api.core.logging import configure_logging
from machinedata_api.core.middleware import request_id_middleware
from machinedata_api.core.openapi import apply_openapi_customizations
from machinedata_api.core.rate_limit import build_rate_limit_policies, rate_limit_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare the store on startup and release it on shutdown.

    Index creation failing (store unreachable, duplicate serial numbers) is
    logged and startup continues; readiness reports the store state.
    """
    store: AbstractMachineStore = app.state.store
    try:
        await store.ensure_indexes()
    except StoreAppError as exc:
        logger.error(
            "store.indexes_failed",
            extra={"error_code": exc.code, "error_message": exc.message, "details": exc.details},
        )
    logger.info("app.started", extra={"store": type(store).__name__})
    try:
        yield
    finally:
        await store.close()
        logger.info("app.stopped")


def _parse_origins(origins: str) -> list[str]:
    return [origin.strip() for origin in origins.split(",") if origin.strip()] or ["*"]


def create_app(
    store: AbstractMachineStore | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Machine store to serve; defaults to the configured backend.
        rate_limiter: Limiter shared by the daily and burst policies; defaults
            to an in-memory limiter when rate limiting is enabled.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Machine Data API",
        description=(
            "CRUD API for machine inventory records: serial number, name, "
            "working status, specifications and maintenance history. Every "
            "client is limited to 1000 requests per 24 hours and to one "
            "create/update/delete of machine data per 5 seconds."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.state.store = store or create_machine_store(settings)
    if rate_limiter is None and settings.app.rate_limit_enabled:
        rate_limiter = InMemorySlidingWindowRateLimiter()
    app.state.rate_limiter = rate_limiter
    app.state.rate_limit_policies = build_rate_limit_policies(settings.app)

    # Middleware (last added runs first): CORS -> request id -> rate limit
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.app.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            settings.log.request_id_header,
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(machine_data_router)

    # OpenAPI customizations (tags, rate limit responses)
    apply_openapi_customizations(app)

    return app
