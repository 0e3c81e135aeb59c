"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build fresh instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from upfolio.api.routes import (
    accounts_router,
    credits_router,
    health_router,
    job_assistant_router,
    portfolio_router,
    resume_versions_router,
)
from upfolio.core.config import settings
from upfolio.core.exception_handlers import setup_exception_handlers
from upfolio.core.logging import configure_logging
from upfolio.core.middleware import request_id_middleware
from upfolio.core.openapi import apply_openapi_customizations
from upfolio.core.rate_limit import RateLimitSweeper, get_rate_limiter_registry
from upfolio.db.session import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()

    sweeper = RateLimitSweeper(
        get_rate_limiter_registry(),
        interval_seconds=settings.rate_limit.sweep_interval_seconds,
    )
    sweeper.start()
    logger.info(
        "app.started",
        extra={"sweep_interval_s": settings.rate_limit.sweep_interval_seconds},
    )
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Upfolio API",
        description=(
            "Policy layer of Upfolio: resume versions with a single published "
            "version per user, public portfolio visibility, credit-metered AI "
            "job application features and named rate limit policies."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(accounts_router, prefix="/v1")
    app.include_router(resume_versions_router, prefix="/v1")
    app.include_router(portfolio_router, prefix="/v1")
    app.include_router(credits_router, prefix="/v1")
    app.include_router(job_assistant_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
