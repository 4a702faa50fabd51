"""
Unit tests for the dashboard alert queries: filtered listing, single
lookup, and summary statistics.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

from pymongo.errors import ServerSelectionTimeoutError

from waterwatch.models.alert import AlertCreate, AlertFilters
from waterwatch.services.alerts.queries import build_alert_query


def _alert(**overrides) -> AlertCreate:
    payload = {
        "type": "water_quality",
        "severity": "medium",
        "title": "Turbidity above limit",
        "location": {
            "latitude": 25.57,
            "longitude": 91.88,
            "district": "Shillong",
            "state": "Meghalaya",
        },
    }
    payload.update(overrides)
    return AlertCreate(**payload)


GUWAHATI = {"latitude": 26.14, "longitude": 91.74, "district": "Guwahati", "state": "Assam"}


class TestBuildAlertQuery:
    def test_empty_filters(self):
        assert build_alert_query(AlertFilters()) == {}

    def test_lists_become_in_clauses(self):
        query = build_alert_query(AlertFilters(status=["active"], severity=["high", "critical"]))

        assert query == {
            "status": {"$in": ["active"]},
            "severity": {"$in": ["high", "critical"]},
        }

    def test_location_is_escaped(self):
        query = build_alert_query(AlertFilters(location="East Khasi (Hills)"))

        pattern = query["$or"][0]["location.district"]
        assert pattern["$regex"] == r"East\ Khasi\ \(Hills\)"
        assert pattern["$options"] == "i"


class TestGetAlerts:
    async def test_filters_and_total(self, engine, queries):
        await engine.create_alert(_alert(severity="high"))
        await engine.create_alert(_alert(severity="low"))
        await engine.create_alert(_alert(severity="high", location=GUWAHATI))

        result = await queries.get_alerts(AlertFilters(severity=["high"]))

        assert result.success is True
        assert result.total == 2
        assert {a.severity for a in result.alerts} == {"high"}

    async def test_location_matches_district_or_state(self, engine, queries):
        await engine.create_alert(_alert())
        await engine.create_alert(_alert(location=GUWAHATI))

        by_state = await queries.get_alerts(AlertFilters(location="assam"))
        by_district = await queries.get_alerts(AlertFilters(location="shill"))

        assert [a.location.district for a in by_state.alerts] == ["Guwahati"]
        assert [a.location.district for a in by_district.alerts] == ["Shillong"]

    async def test_newest_first_with_pagination(self, engine, queries, clock):
        for index in range(5):
            await engine.create_alert(_alert(title=f"Reading {index}"))
            clock.advance(minutes=1)

        result = await queries.get_alerts(AlertFilters(skip=1, limit=2))

        assert result.total == 5
        assert [a.title for a in result.alerts] == ["Reading 3", "Reading 2"]
        assert result.skip == 1
        assert result.limit == 2

    async def test_date_range(self, engine, queries, clock):
        start = clock.now
        await engine.create_alert(_alert(title="early"))
        clock.advance(hours=2)
        await engine.create_alert(_alert(title="late"))

        result = await queries.get_alerts(
            AlertFilters(date_from=start + timedelta(hours=1))
        )

        assert [a.title for a in result.alerts] == ["late"]

    async def test_store_failure(self, queries, fake_db, monkeypatch):
        monkeypatch.setattr(
            fake_db["alerts"],
            "count_documents",
            AsyncMock(side_effect=ServerSelectionTimeoutError("No servers found")),
        )

        result = await queries.get_alerts(AlertFilters())

        assert result.success is False
        assert result.message == "Failed to fetch alerts"
        assert result.alerts == []


class TestGetAlert:
    async def test_found(self, engine, queries):
        alert = (await engine.create_alert(_alert())).alert

        result = await queries.get_alert(alert.alert_id)

        assert result.success is True
        assert result.alert.alert_id == alert.alert_id

    async def test_not_found(self, queries):
        result = await queries.get_alert("missing-id")

        assert result.success is False
        assert result.error_code == "NOT_FOUND"


class TestGetAlertStats:
    async def test_counts_and_breakdowns(self, engine, queries, clock):
        await engine.create_alert(_alert(severity="critical"))
        await engine.create_alert(_alert(type="device_offline", location=GUWAHATI))
        resolved = (await engine.create_alert(_alert())).alert
        clock.advance(minutes=30)
        await engine.update_alert_status(resolved.alert_id, "resolved", "officer-12")

        result = await queries.get_alert_stats("24h")

        assert result.success is True
        stats = result.stats
        assert stats.total_alerts == 3
        assert stats.active_alerts == 2
        assert stats.critical_alerts == 1
        assert stats.resolved_today == 1
        assert stats.average_resolution_time == 30
        assert stats.alerts_by_type == {"water_quality": 2, "device_offline": 1}
        assert stats.alerts_by_location[0].location == "Shillong, Meghalaya"
        assert stats.alerts_by_location[0].count == 2

    async def test_time_range_excludes_older_alerts(self, engine, queries, clock):
        await engine.create_alert(_alert(title="three days ago"))
        clock.advance(days=3)
        await engine.create_alert(_alert(title="today"))

        day = await queries.get_alert_stats("24h")
        week = await queries.get_alert_stats("7d")

        assert day.stats.total_alerts == 1
        assert week.stats.total_alerts == 2

    async def test_no_alerts(self, queries):
        result = await queries.get_alert_stats("30d")

        assert result.stats.total_alerts == 0
        assert result.stats.average_resolution_time == 0
        assert result.stats.alerts_by_location == []
