"""
Shared FastAPI dependencies for the v1 API.

Services are built per request on top of the request's database handle,
so tests can swap the database through ``dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from waterwatch.core.exceptions import AppException
from waterwatch.database import get_database
from waterwatch.models.results import OperationResult
from waterwatch.services.alerts.engine import AlertLifecycleEngine
from waterwatch.services.alerts.queries import AlertQueryService
from waterwatch.services.alerts.rules import AlertRuleRegistry

# HTTP status used when a failed result is turned into an error response.
STATUS_BY_ERROR_CODE: dict[str, int] = {
    "NOT_FOUND": 404,
    "VALIDATION_ERROR": 422,
    "INVALID_TRANSITION": 409,
    "RULE_EVALUATION_FAILED": 422,
    "ACTION_DISPATCH_FAILED": 502,
    "STORE_UNAVAILABLE": 503,
    "SERVICE_UNAVAILABLE": 503,
}


def get_alert_engine(
    db: AsyncIOMotorDatabase = Depends(get_database),  # type: ignore[type-arg]
) -> AlertLifecycleEngine:
    return AlertLifecycleEngine.from_database(db)


def get_alert_queries(
    db: AsyncIOMotorDatabase = Depends(get_database),  # type: ignore[type-arg]
) -> AlertQueryService:
    return AlertQueryService(db)


def get_rule_registry(
    db: AsyncIOMotorDatabase = Depends(get_database),  # type: ignore[type-arg]
) -> AlertRuleRegistry:
    return AlertRuleRegistry(db)


def raise_for_result(result: OperationResult) -> None:
    """Raise an :class:`AppException` if *result* reports a failure."""
    if result.success:
        return
    code = result.error_code or "INTERNAL_ERROR"
    raise AppException(
        message=result.message,
        status_code=STATUS_BY_ERROR_CODE.get(code, 500),
        error_code=code,
    )
