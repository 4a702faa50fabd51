"""
Redis connection for the alert sweeper.

Redis holds a single key: the lock that lets only one API replica sweep at
a time. The lifespan opens the client with :func:`connect_redis` and hands
it to :class:`~waterwatch.services.alerts.sweeper.AlertSweeper`; the health
endpoints reach it through :func:`get_redis`.

An unreachable Redis does not stop the service from starting. The sweeper
skips its passes until the lock can be taken again and readiness reports
the outage.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from waterwatch.config import Settings
from waterwatch.core.logging import redact_url

logger = logging.getLogger(__name__)

# One sweep holds one connection; the rest cover health probes.
MAX_CONNECTIONS = 4

_redis: Redis | None = None  # type: ignore[type-arg]


async def connect_redis(settings: Settings) -> Redis:  # type: ignore[type-arg]
    """Create the lock client and report whether Redis answers."""
    global _redis  # noqa: PLW0603

    logger.info("Connecting to Redis", extra={"redis_url": redact_url(settings.REDIS_URL)})
    _redis = Redis.from_url(
        settings.REDIS_URL,
        max_connections=MAX_CONNECTIONS,
        socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
        socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
    )
    try:
        await _redis.ping()
    except RedisError as exc:
        logger.warning("Redis unreachable at startup; sweeps wait for the lock: %s", exc)
    else:
        logger.info("Redis connection established")
    return _redis


async def close_redis() -> None:
    global _redis  # noqa: PLW0603
    if _redis is not None:
        await _redis.aclose()
        logger.info("Redis connection closed")
    _redis = None


async def get_redis() -> AsyncGenerator[Redis, None]:  # type: ignore[type-arg]
    """FastAPI dependency yielding the lock client."""
    if _redis is None:
        raise RuntimeError("Redis is not connected; the application lifespan has not run.")
    yield _redis
