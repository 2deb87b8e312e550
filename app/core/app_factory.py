"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated apps around their own store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.generator.base import AbstractResponseGenerator
from app.adapters.store.base import AbstractStore
from app.adapters.store.factory import create_store
from app.api.routes import generate_router, health_router, simulate_router, stats_router
from app.core.config import settings
from app.core.container import build_services
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware

logger = logging.getLogger(__name__)


def create_app(
    *,
    store: AbstractStore | None = None,
    generator: AbstractResponseGenerator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Store adapter to use instead of the configured one.
        generator: Response generator to use instead of the simulated one.

    Returns:
        Configured FastAPI app. Components are built when the app starts and
        the store is closed when it shuts down.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log, debug=settings.app.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_store = store or create_store(settings.store)
        services = build_services(app_store, settings.app, generator=generator)
        app.state.services = services
        logger.info(
            "app.startup",
            extra={
                "store_backend": type(app_store).__name__,
                "rate_limit_requests": settings.app.rate_limit_requests,
                "rate_limit_window_ms": settings.app.rate_limit_window_ms,
            },
        )
        try:
            yield
        finally:
            await services.close()
            logger.info("app.shutdown")

    app = FastAPI(
        title="TokenFlow API",
        description=(
            "Rate-limited, cached text generation backed by Redis/Valkey: "
            "sliding-window admission per client, content-hash response cache "
            "and a capped activity stream for the dashboard."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(generate_router, prefix="/v1")
    app.include_router(stats_router, prefix="/v1")
    app.include_router(simulate_router, prefix="/v1")
    app.include_router(health_router)

    return app
