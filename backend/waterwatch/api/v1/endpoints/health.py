"""
Health and readiness endpoints.

``/health`` is the liveness probe: can the process reach MongoDB and the
sweeper's Redis. ``/ready`` adds latencies and the state of the background alert
sweeper; a registered sweeper whose loop has stopped makes it degraded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field
from redis.asyncio import Redis

from waterwatch.config import get_settings
from waterwatch.database import get_database
from waterwatch.models.base import utc_now
from waterwatch.redis_client import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = Field(..., description="'ok' or 'degraded'.")
    mongo: bool = Field(..., description="MongoDB answered a ping.")
    redis: bool = Field(..., description="The sweeper lock store answered a ping.")


class DependencyDetail(BaseModel):
    healthy: bool
    latency_ms: float = Field(..., description="Round-trip time of the ping.")
    error: Optional[str] = None


class SweeperDetail(BaseModel):
    """State of the in-process alert sweeper."""

    enabled: bool = Field(..., description="A sweeper was started by this process.")
    running: bool = Field(..., description="Its background loop is alive.")
    last_pass_at: Optional[datetime] = Field(default=None, description="End of the last pass.")
    last_report: Optional[dict[str, Any]] = Field(
        default=None, description="Counts (or skip reason) of the last pass."
    )


class ReadinessResponse(BaseModel):
    status: str = Field(..., description="'ready' or 'degraded'.")
    timestamp: datetime
    environment: str
    mongo: DependencyDetail
    redis: DependencyDetail
    sweeper: SweeperDetail


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _probe(name: str, ping: Callable[[], Awaitable[Any]]) -> DependencyDetail:
    start = time.monotonic()
    error: Optional[str] = None
    try:
        await ping()
    except Exception as exc:
        logger.warning("%s health check failed", name, exc_info=exc)
        error = str(exc) or type(exc).__name__
    latency = round((time.monotonic() - start) * 1000, 2)
    return DependencyDetail(healthy=error is None, latency_ms=latency, error=error)


def _sweeper_detail(request: Request) -> SweeperDetail:
    sweeper = getattr(request.app.state, "sweeper", None)
    if sweeper is None:
        return SweeperDetail(enabled=False, running=False)
    return SweeperDetail(
        enabled=True,
        running=sweeper.running,
        last_pass_at=sweeper.last_pass_at,
        last_report=sweeper.last_report,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check(
    db: AsyncIOMotorDatabase = Depends(get_database),  # type: ignore[type-arg]
    redis: Redis = Depends(get_redis),  # type: ignore[type-arg]
) -> HealthResponse:
    mongo = await _probe("MongoDB", lambda: db.command("ping"))
    lock_store = await _probe("Redis", redis.ping)
    overall = "ok" if mongo.healthy and lock_store.healthy else "degraded"
    return HealthResponse(status=overall, mongo=mongo.healthy, redis=lock_store.healthy)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Dependency latencies plus the state of the background alert sweeper.",
)
async def readiness_check(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_database),  # type: ignore[type-arg]
    redis: Redis = Depends(get_redis),  # type: ignore[type-arg]
) -> ReadinessResponse:
    mongo = await _probe("MongoDB", lambda: db.command("ping"))
    lock_store = await _probe("Redis", redis.ping)
    sweeper = _sweeper_detail(request)

    ready = mongo.healthy and lock_store.healthy and (sweeper.running or not sweeper.enabled)
    return ReadinessResponse(
        status="ready" if ready else "degraded",
        timestamp=utc_now(),
        environment=get_settings().ENVIRONMENT,
        mongo=mongo,
        redis=lock_store,
        sweeper=sweeper,
    )
