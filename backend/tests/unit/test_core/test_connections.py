"""
Unit tests for the MongoDB and Redis connection lifecycle.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from waterwatch import database, redis_client
from waterwatch.config import Settings


@pytest.fixture
def conn_settings() -> Settings:
    return Settings(
        _env_file=None,
        MONGO_URL="mongodb://ops:secret@db:27017",
        MONGO_DB_NAME="waterwatch_test",
        REDIS_URL="redis://cache:6379/0",
    )


class TestMongoConnection:
    async def test_connect_returns_database_and_close_resets(self, monkeypatch, conn_settings):
        db = MagicMock()
        db.command = AsyncMock(return_value={"ok": 1.0})
        client = MagicMock()
        client.__getitem__.return_value = db
        factory = MagicMock(return_value=client)
        monkeypatch.setattr(database, "AsyncIOMotorClient", factory)

        handle = await database.connect_mongodb(conn_settings)

        assert handle is db
        client.__getitem__.assert_called_once_with("waterwatch_test")
        db.command.assert_awaited_once_with("ping")
        assert factory.call_args.kwargs["serverSelectionTimeoutMS"] == 5_000
        assert [yielded async for yielded in database.get_database()] == [db]

        await database.close_mongodb()

        client.close.assert_called_once()
        with pytest.raises(RuntimeError):
            await database.get_database().__anext__()


class TestRedisConnection:
    async def test_unreachable_redis_does_not_block_startup(self, monkeypatch, conn_settings):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("Connection refused"))
        client.aclose = AsyncMock()
        from_url = MagicMock(return_value=client)
        monkeypatch.setattr(redis_client.Redis, "from_url", from_url)

        handle = await redis_client.connect_redis(conn_settings)

        assert handle is client
        assert from_url.call_args.kwargs["socket_timeout"] == 5.0
        assert [yielded async for yielded in redis_client.get_redis()] == [client]

        await redis_client.close_redis()

        client.aclose.assert_awaited_once()
        with pytest.raises(RuntimeError):
            await redis_client.get_redis().__anext__()
