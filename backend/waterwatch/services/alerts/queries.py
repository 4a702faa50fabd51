"""
Read-side alert queries for the dashboard: filtered listing, single alert
lookup, and summary statistics over a recent time window.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Literal

from waterwatch.core.exceptions import AppException, NotFoundException
from waterwatch.models.alert import AlertFilters, AlertSeverity, AlertStatus
from waterwatch.models.base import Clock, utc_now
from waterwatch.models.results import (
    AlertListResult,
    AlertResult,
    AlertStats,
    AlertStatsResult,
    LocationCount,
)
from waterwatch.services.alerts.store import AlertRepository

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

TimeRange = Literal["24h", "7d", "30d"]

TIME_RANGES: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

TOP_LOCATIONS = 10


def build_alert_query(filters: AlertFilters) -> dict[str, Any]:
    """Translate dashboard filters into a MongoDB query."""
    query: dict[str, Any] = {}
    if filters.status:
        query["status"] = {"$in": list(filters.status)}
    if filters.type:
        query["type"] = {"$in": list(filters.type)}
    if filters.severity:
        query["severity"] = {"$in": list(filters.severity)}
    if filters.device_id:
        query["device_id"] = filters.device_id

    created: dict[str, Any] = {}
    if filters.date_from:
        created["$gte"] = filters.date_from
    if filters.date_to:
        created["$lte"] = filters.date_to
    if created:
        query["created_at"] = created

    if filters.location:
        pattern = {"$regex": re.escape(filters.location), "$options": "i"}
        query["$or"] = [{"location.district": pattern}, {"location.state": pattern}]
    return query


class AlertQueryService:
    """Dashboard-facing alert reads.

    Args:
        db: Motor async database handle.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,  # type: ignore[type-arg]
        clock: Clock = utc_now,
    ) -> None:
        self._store = AlertRepository(db)
        self._clock = clock

    async def get_alerts(self, filters: AlertFilters) -> AlertListResult:
        """Return a page of alerts matching *filters*, newest first."""
        query = build_alert_query(filters)
        try:
            total = await self._store.count(query)
            alerts = await self._store.find(query, skip=filters.skip, limit=filters.limit)
        except AppException as exc:
            return AlertListResult.failed(
                exc, "Failed to fetch alerts", skip=filters.skip, limit=filters.limit
            )

        return AlertListResult.ok(
            f"{len(alerts)} alerts",
            alerts=alerts,
            total=total,
            skip=filters.skip,
            limit=filters.limit,
        )

    async def get_alert(self, alert_id: str) -> AlertResult:
        try:
            alert = await self._store.get(alert_id)
            if alert is None:
                raise NotFoundException(resource="Alert", identifier=alert_id)
        except AppException as exc:
            return AlertResult.failed(exc)
        return AlertResult.ok("Alert found", alert=alert)

    async def get_alert_stats(self, time_range: TimeRange = "24h") -> AlertStatsResult:
        """Summarise alerts created within *time_range*.

        ``resolved_today`` counts resolutions since UTC midnight regardless
        of when the alert was created.
        """
        now = self._clock()
        since = now - TIME_RANGES[time_range]
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        in_range = {"created_at": {"$gte": since}}

        try:
            active = await self._store.count({**in_range, "status": AlertStatus.ACTIVE.value})
            critical = await self._store.count(
                {**in_range, "severity": AlertSeverity.CRITICAL.value}
            )
            resolved_today = await self._store.count(
                {"status": AlertStatus.RESOLVED.value, "resolved_at": {"$gte": midnight}}
            )
            docs = await self._store.find_documents(
                in_range,
                {"type": 1, "location": 1, "status": 1, "created_at": 1, "resolved_at": 1},
            )
        except AppException as exc:
            return AlertStatsResult.failed(exc, "Failed to fetch alert statistics")

        by_type = Counter(doc["type"] for doc in docs if doc.get("type"))

        by_location: Counter[str] = Counter()
        for doc in docs:
            location = doc.get("location") or {}
            if location.get("district"):
                by_location[f"{location['district']}, {location.get('state') or ''}"] += 1

        durations = [
            (doc["resolved_at"] - doc["created_at"]).total_seconds()
            for doc in docs
            if doc.get("status") == AlertStatus.RESOLVED.value and doc.get("resolved_at")
        ]
        average_minutes = round(sum(durations) / len(durations) / 60) if durations else 0

        stats = AlertStats(
            total_alerts=len(docs),
            active_alerts=active,
            critical_alerts=critical,
            resolved_today=resolved_today,
            average_resolution_time=average_minutes,
            alerts_by_type=dict(by_type),
            alerts_by_location=[
                LocationCount(location=location, count=count)
                for location, count in by_location.most_common(TOP_LOCATIONS)
            ],
        )
        return AlertStatsResult.ok(f"Statistics for the last {time_range}", stats=stats)
