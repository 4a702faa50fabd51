"""FastAPI application for the WaterWatch alert service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from waterwatch.api.v1.router import api_v1_router
from waterwatch.config import get_settings
from waterwatch.core.exceptions import AppException
from waterwatch.core.logging import setup_logging
from waterwatch.database import close_mongodb, connect_mongodb
from waterwatch.db.indexes import create_indexes
from waterwatch.redis_client import close_redis, connect_redis
from waterwatch.services.alerts.engine import AlertLifecycleEngine
from waterwatch.services.alerts.sweeper import AlertSweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Connect MongoDB and Redis, build indexes, and run the sweeper."""
    settings = get_settings()
    setup_logging(level=settings.LOG_LEVEL)

    logger.info(
        "Starting WaterWatch alerts backend",
        extra={"environment": settings.ENVIRONMENT},
    )

    db = await connect_mongodb(settings)
    redis = await connect_redis(settings)
    await create_indexes(db)

    sweeper: AlertSweeper | None = None
    if settings.ALERT_SWEEPER_ENABLED:
        sweeper = AlertSweeper(
            AlertLifecycleEngine.from_database(db, settings=settings),
            redis=redis,
            interval_seconds=settings.ALERT_SWEEP_INTERVAL_SECONDS,
            lock_timeout_seconds=settings.ALERT_SWEEP_LOCK_TIMEOUT_SECONDS,
        )
        sweeper.start()
    application.state.sweeper = sweeper

    logger.info("WaterWatch alerts backend ready")

    yield

    logger.info("Shutting down WaterWatch alerts backend")
    if sweeper is not None:
        await sweeper.stop()
    await close_redis()
    await close_mongodb()
    logger.info("WaterWatch alerts backend stopped")


def create_application() -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = get_settings()

    application = FastAPI(
        title="WaterWatch Alerts API",
        description="Alert lifecycle backend for the water-quality monitoring dashboard",
        version="0.1.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
    )

    # --- CORS ---
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    @application.exception_handler(AppException)
    async def app_exception_handler(_request: Request, exc: AppException) -> ORJSONResponse:
        logger.warning(
            "Application error: %s",
            exc.message,
            extra={"error_code": exc.error_code, "status_code": exc.status_code},
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(
        _request: Request, exc: Exception
    ) -> ORJSONResponse:
        logger.exception("Unhandled exception: %s", str(exc))
        return ORJSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            },
        )

    # --- Routers ---
    application.include_router(api_v1_router, prefix="/api/v1")

    return application


app = create_application()
