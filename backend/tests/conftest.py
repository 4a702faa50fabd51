"""
Shared pytest fixtures for the WaterWatch backend test suite.

Provides an in-memory stand-in for the Motor database (enough of the
collection API for the alert services), a controllable clock, wired alert
services, a FastAPI test client, and sample payloads.
"""

from __future__ import annotations

import copy
import itertools
import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from waterwatch.config import Settings
from waterwatch.models.alert import AlertCreate
from waterwatch.models.alert_rule import AlertRuleCreate
from waterwatch.services.alerts.engine import AlertLifecycleEngine
from waterwatch.services.alerts.queries import AlertQueryService

_MISSING = object()
_object_ids = itertools.count(1)


# ---------------------------------------------------------------------------
# In-memory Motor double
# ---------------------------------------------------------------------------


def _get_path(doc: dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _compare(value: Any, op: str, expected: Any) -> bool:
    if value is None:
        return False
    if op == "$lt":
        return value < expected
    if op == "$lte":
        return value <= expected
    if op == "$gt":
        return value > expected
    return value >= expected


def _match_value(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for op, expected in condition.items():
            if op == "$in" and value not in expected:
                return False
            if op == "$nin" and value in expected:
                return False
            if op == "$ne" and value == expected:
                return False
            if op in ("$lt", "$lte", "$gt", "$gte") and not _compare(value, op, expected):
                return False
            if op == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if not isinstance(value, str) or not re.search(expected, value, flags):
                    return False
        return True
    return value == condition


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in condition):
                return False
            continue
        value = _get_path(doc, key)
        if value is _MISSING:
            value = None
        if not _match_value(value, condition):
            return False
    return True


def _project(doc: dict[str, Any], projection: dict[str, int] | None) -> dict[str, Any]:
    result = copy.deepcopy(doc)
    if not projection:
        return result
    includes = [key for key, flag in projection.items() if flag and key != "_id"]
    if includes:
        result = {key: result[key] for key in includes if key in result}
    if projection.get("_id", 1) == 0:
        result.pop("_id", None)
    return result


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> FakeCursor:
        def sort_key(doc: dict[str, Any]) -> tuple[bool, Any]:
            value = _get_path(doc, key)
            present = value is not _MISSING and value is not None
            return (present, value if present else 0)

        self._docs.sort(key=sort_key, reverse=direction == -1)
        return self

    def skip(self, count: int) -> FakeCursor:
        self._docs = self._docs[count:]
        return self

    def limit(self, count: int) -> FakeCursor:
        if count:
            self._docs = self._docs[:count]
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return self._docs[:length] if length else list(self._docs)


class FakeCollection:
    """Just enough of ``AsyncIOMotorCollection`` for the alert services."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.documents: list[dict[str, Any]] = []
        self.indexes: list[Any] = []

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        document.setdefault("_id", next(_object_ids))
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(
        self, query: dict[str, Any], projection: dict[str, int] | None = None
    ) -> dict[str, Any] | None:
        for doc in self.documents:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(
        self, query: dict[str, Any] | None = None, projection: dict[str, int] | None = None
    ) -> FakeCursor:
        docs = [_project(doc, projection) for doc in self.documents if _matches(doc, query or {})]
        return FakeCursor(docs)

    async def count_documents(self, query: dict[str, Any]) -> int:
        return sum(1 for doc in self.documents if _matches(doc, query))

    def _apply(self, doc: dict[str, Any], update: dict[str, Any]) -> None:
        for path, value in update.get("$set", {}).items():
            _set_path(doc, path, copy.deepcopy(value))
        for path, amount in update.get("$inc", {}).items():
            current = _get_path(doc, path)
            _set_path(doc, path, (0 if current in (_MISSING, None) else current) + amount)

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        for doc in self.documents:
            if _matches(doc, query):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        matched = [doc for doc in self.documents if _matches(doc, query)]
        for doc in matched:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def replace_one(
        self, query: dict[str, Any], replacement: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        for index, doc in enumerate(self.documents):
            if _matches(doc, query):
                self.documents[index] = {"_id": doc["_id"], **copy.deepcopy(replacement)}
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, upserted_id=None)
        document = {"_id": next(_object_ids), **copy.deepcopy(replacement)}
        self.documents.append(document)
        return SimpleNamespace(matched_count=0, upserted_id=document["_id"])

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        for index, doc in enumerate(self.documents):
            if _matches(doc, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def create_indexes(self, indexes: list[Any]) -> list[str]:
        self.indexes.extend(indexes)
        return [index.document["name"] for index in indexes]


class FakeDatabase:
    def __init__(self) -> None:
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def command(self, name: str) -> dict[str, Any]:
        return {"ok": 1.0}


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Database, clock and service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_db() -> FakeDatabase:
    """Return an empty in-memory database."""
    return FakeDatabase()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> Settings:
    """Default settings: literal rule semantics, no strict transitions."""
    return Settings(_env_file=None)


@pytest.fixture
def make_engine(fake_db, clock):
    """Factory building an engine with overridden settings."""

    def _make(channels=None, **overrides: Any) -> AlertLifecycleEngine:
        return AlertLifecycleEngine.from_database(
            fake_db,
            settings=Settings(_env_file=None, **overrides),
            clock=clock,
            channels=channels,
        )

    return _make


@pytest.fixture
def engine(make_engine) -> AlertLifecycleEngine:
    return make_engine()


@pytest.fixture
def queries(fake_db, clock) -> AlertQueryService:
    return AlertQueryService(fake_db, clock=clock)


# ---------------------------------------------------------------------------
# FastAPI test app and async client
# ---------------------------------------------------------------------------


@pytest.fixture
async def test_app(fake_db: FakeDatabase):
    """Create the FastAPI application with overridden dependencies.

    Replaces the real database dependency with the in-memory database and
    stubs out Redis so tests do not require external services. The lifespan
    (connections, sweeper) is not run by the ASGI transport.
    """
    from waterwatch.database import get_database
    from waterwatch.main import create_application
    from waterwatch.redis_client import get_redis

    app = create_application()

    async def _override_get_database():
        yield fake_db

    mock_redis = AsyncMock()
    mock_redis.ping = AsyncMock(return_value=True)

    async def _override_get_redis():
        yield mock_redis

    app.dependency_overrides[get_database] = _override_get_database
    app.dependency_overrides[get_redis] = _override_get_redis

    yield app


@pytest.fixture
async def async_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx.AsyncClient wired to the test FastAPI app."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def water_quality_alert() -> AlertCreate:
    """A high-severity contamination alert from a field sensor."""
    return AlertCreate(
        type="water_quality",
        severity="high",
        title="High turbidity at Police Bazar intake",
        message="Turbidity 14.2 NTU exceeds the 5 NTU drinking-water limit.",
        location={
            "latitude": 25.5788,
            "longitude": 91.8933,
            "district": "Shillong",
            "state": "Meghalaya",
        },
        device_id="WQ-SHL-014",
        reading_id="rd-88213",
        triggered_by="automatic",
        metadata={"ph": 6.1, "turbidity_ntu": 14.2},
    )


@pytest.fixture
def email_rule() -> AlertRuleCreate:
    """Enabled rule emailing district officers about high water-quality alerts."""
    return AlertRuleCreate(
        name="High contamination notice",
        description="Email district officers when water quality is high severity.",
        type="water_quality",
        severity="high",
        actions=[{"type": "email", "recipients": ["x@gov.in"], "template": "wq_high"}],
        auto_resolve_after_minutes=60,
        created_by="admin@waterquality.gov.in",
    )
