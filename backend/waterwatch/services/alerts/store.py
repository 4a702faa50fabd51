"""
MongoDB access for alert documents.

Thin repository over the ``alerts`` collection. Every driver failure is
logged and re-raised as :class:`StoreUnavailableException` so the lifecycle
engine can turn it into a failure result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from pymongo.errors import PyMongoError

from waterwatch.core.exceptions import NotFoundException, StoreUnavailableException
from waterwatch.models.alert import Alert, AlertStatus

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate driver errors raised inside the block."""
    try:
        yield
    except PyMongoError as exc:
        logger.error("MongoDB %s failed: %s", operation, exc, extra={"operation": operation})
        raise StoreUnavailableException(operation, str(exc)) from exc


class AlertRepository:
    """Reads and writes ``alerts`` documents.

    Args:
        db: Motor async database handle.
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:  # type: ignore[type-arg]
        self._collection = db["alerts"]

    async def insert(self, alert: Alert) -> Alert:
        with store_errors("alert insert"):
            await self._collection.insert_one(alert.to_document())
        return alert

    async def get(self, alert_id: str) -> Optional[Alert]:
        with store_errors("alert lookup"):
            doc = await self._collection.find_one({"alert_id": alert_id}, {"_id": 0})
        return Alert.model_validate(doc) if doc else None

    async def require(self, alert_id: str) -> Alert:
        alert = await self.get(alert_id)
        if alert is None:
            raise NotFoundException(resource="Alert", identifier=alert_id)
        return alert

    async def update_fields(
        self,
        alert_id: str,
        fields: dict[str, Any],
        *,
        extra_filter: Optional[dict[str, Any]] = None,
        increment: Optional[dict[str, int]] = None,
    ) -> int:
        """Apply ``$set`` (and optionally ``$inc``) to one alert.

        Returns:
            Number of matched documents (0 or 1).
        """
        query: dict[str, Any] = {"alert_id": alert_id, **(extra_filter or {})}
        update: dict[str, Any] = {"$set": fields}
        if increment:
            update["$inc"] = increment
        with store_errors("alert update"):
            result = await self._collection.update_one(query, update)
        return result.matched_count

    async def update_many(
        self,
        alert_ids: list[str],
        fields: dict[str, Any],
        *,
        extra_filter: Optional[dict[str, Any]] = None,
    ) -> int:
        """Apply ``$set`` to every listed alert that exists.

        Returns:
            Number of matched documents, never more than ``len(alert_ids)``.
        """
        query: dict[str, Any] = {"alert_id": {"$in": alert_ids}, **(extra_filter or {})}
        with store_errors("alert bulk update"):
            result = await self._collection.update_many(query, {"$set": fields})
        return result.matched_count

    async def delete(self, alert_id: str) -> int:
        with store_errors("alert delete"):
            result = await self._collection.delete_one({"alert_id": alert_id})
        return result.deleted_count

    async def find(
        self,
        query: dict[str, Any],
        *,
        skip: int = 0,
        limit: int = 0,
        sort_field: str = "created_at",
    ) -> list[Alert]:
        """Return alerts matching *query*, newest first."""
        with store_errors("alert query"):
            cursor = self._collection.find(query, {"_id": 0}).sort(sort_field, -1)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=limit or None)
        return [Alert.model_validate(doc) for doc in docs]

    async def find_documents(
        self,
        query: dict[str, Any],
        projection: dict[str, int],
    ) -> list[dict[str, Any]]:
        """Return raw projected documents for aggregation."""
        with store_errors("alert query"):
            cursor = self._collection.find(query, {"_id": 0, **projection})
            return await cursor.to_list(length=None)

    async def count(self, query: dict[str, Any]) -> int:
        with store_errors("alert count"):
            return await self._collection.count_documents(query)

    async def find_due(self, deadline_field: str, now: datetime) -> list[Alert]:
        """Active alerts whose *deadline_field* is set and not after *now*."""
        query = {
            "status": AlertStatus.ACTIVE.value,
            deadline_field: {"$ne": None, "$lte": now},
        }
        return await self.find(query)
