"""
MongoDB connection for the alert service.

The process holds one Motor client. :func:`connect_mongodb` opens it at
startup and returns the database handle the lifespan passes to index
creation and the sweeper; request handlers get the same handle through the
:func:`get_database` dependency.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from waterwatch.config import Settings
from waterwatch.core.logging import redact_url

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None  # type: ignore[type-arg]
_database: AsyncIOMotorDatabase | None = None  # type: ignore[type-arg]


async def connect_mongodb(settings: Settings) -> AsyncIOMotorDatabase:  # type: ignore[type-arg]
    """Open the client, check the server answers, and return the database.

    Every call made through the client is bounded by ``MONGO_TIMEOUT_MS``.
    """
    global _client, _database  # noqa: PLW0603

    logger.info(
        "Connecting to MongoDB",
        extra={"mongo_url": redact_url(settings.MONGO_URL), "db": settings.MONGO_DB_NAME},
    )
    _client = AsyncIOMotorClient(
        settings.MONGO_URL,
        tz_aware=True,
        appname="waterwatch-alerts",
        connectTimeoutMS=settings.MONGO_TIMEOUT_MS,
        serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGO_TIMEOUT_MS,
        retryWrites=True,
    )
    _database = _client[settings.MONGO_DB_NAME]

    await _database.command("ping")
    logger.info("MongoDB connection established")
    return _database


async def close_mongodb() -> None:
    global _client, _database  # noqa: PLW0603
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    _database = None


async def get_database() -> AsyncGenerator[AsyncIOMotorDatabase, None]:  # type: ignore[type-arg]
    """FastAPI dependency yielding the alert database."""
    if _database is None:
        raise RuntimeError("MongoDB is not connected; the application lifespan has not run.")
    yield _database
