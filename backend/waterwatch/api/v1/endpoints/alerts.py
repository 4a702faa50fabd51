"""
Alert management endpoints.

Alerts are raised by sensor anomalies, disease-risk predictions, mobile
field sync, device monitors, or manually by officers. Supports creation,
filtered listing, statistics, status changes (single and bulk), deletion,
the per-alert action audit log, and a manual sweeper trigger.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from waterwatch.api.v1.deps import get_alert_engine, get_alert_queries, raise_for_result
from waterwatch.models.action_log import ActionLog
from waterwatch.models.alert import (
    Alert,
    AlertCreate,
    AlertFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
)
from waterwatch.models.results import AlertStats
from waterwatch.services.alerts.engine import AlertLifecycleEngine
from waterwatch.services.alerts.queries import AlertQueryService
from waterwatch.services.alerts.sweeper import AlertSweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class AlertListResponse(BaseModel):
    """Paginated list of alerts."""

    alerts: list[Alert] = Field(default_factory=list, description="Alerts list.")
    total: int = Field(default=0, description="Total matching alerts.")
    skip: int = Field(default=0, description="Records skipped.")
    limit: int = Field(default=50, description="Page size.")


class StatusUpdateRequest(BaseModel):
    """Request to move one alert to a new status."""

    status: AlertStatus = Field(..., description="Target status.")
    actor: Optional[str] = Field(default=None, description="User making the change.")
    notes: Optional[str] = Field(default=None, max_length=2000, description="Free-text notes.")


class BulkStatusRequest(BaseModel):
    """Request to move many alerts to a new status."""

    alert_ids: list[str] = Field(..., max_length=1000, description="Alerts to update.")
    status: AlertStatus = Field(..., description="Target status.")
    actor: Optional[str] = Field(default=None, description="User making the change.")


class BulkStatusResponse(BaseModel):
    message: str = Field(..., description="Human-readable status message.")
    updated_count: int = Field(..., description="Alerts actually updated.")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Human-readable status message.")


class SweepResponse(BaseModel):
    skipped: bool = False
    auto_resolved: int = 0
    escalated: int = 0
    retried: int = 0


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=Alert,
    status_code=201,
    summary="Create alert",
    description="Persist a new alert and apply the matching alert rules.",
)
async def create_alert(
    body: AlertCreate,
    engine: AlertLifecycleEngine = Depends(get_alert_engine),
) -> Alert:
    result = await engine.create_alert(body)
    raise_for_result(result)
    return result.alert  # type: ignore[return-value]


@router.get(
    "/",
    response_model=AlertListResponse,
    summary="List alerts",
    description="Retrieve alerts with optional filtering, newest first.",
)
async def list_alerts(
    status: Optional[list[AlertStatus]] = Query(default=None, description="Filter by status."),
    type: Optional[list[AlertType]] = Query(default=None, description="Filter by type."),
    severity: Optional[list[AlertSeverity]] = Query(default=None, description="Filter by severity."),
    device_id: Optional[str] = Query(default=None, description="Filter by device."),
    location: Optional[str] = Query(default=None, description="District or state."),
    date_from: Optional[datetime] = Query(default=None, description="Created at or after."),
    date_to: Optional[datetime] = Query(default=None, description="Created at or before."),
    skip: int = Query(default=0, ge=0, description="Records to skip."),
    limit: int = Query(default=50, ge=1, le=200, description="Maximum records to return."),
    queries: AlertQueryService = Depends(get_alert_queries),
) -> AlertListResponse:
    filters = AlertFilters(
        status=status or [],
        type=type or [],
        severity=severity or [],
        device_id=device_id,
        location=location,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )
    result = await queries.get_alerts(filters)
    raise_for_result(result)
    return AlertListResponse(
        alerts=result.alerts, total=result.total, skip=result.skip, limit=result.limit
    )


@router.get(
    "/stats",
    response_model=AlertStats,
    summary="Alert statistics",
    description="Totals, resolution time and breakdowns for a recent time window.",
)
async def alert_stats(
    time_range: Literal["24h", "7d", "30d"] = Query(default="24h"),
    queries: AlertQueryService = Depends(get_alert_queries),
) -> AlertStats:
    result = await queries.get_alert_stats(time_range)
    raise_for_result(result)
    return result.stats


@router.post(
    "/bulk-status",
    response_model=BulkStatusResponse,
    summary="Bulk status update",
)
async def bulk_update_status(
    body: BulkStatusRequest,
    engine: AlertLifecycleEngine = Depends(get_alert_engine),
) -> BulkStatusResponse:
    result = await engine.bulk_update_alerts(body.alert_ids, body.status, body.actor)
    raise_for_result(result)
    return BulkStatusResponse(message=result.message, updated_count=result.updated_count)


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Run the alert sweeper once",
    description="Auto-resolve expired alerts, apply due escalations and retry "
    "unfinished rule processing immediately instead of waiting for the next tick.",
)
async def run_sweep(
    engine: AlertLifecycleEngine = Depends(get_alert_engine),
) -> SweepResponse:
    report = await AlertSweeper(engine).run_once()
    return SweepResponse(**report)


@router.get(
    "/{alert_id}",
    response_model=Alert,
    summary="Get alert",
)
async def get_alert(
    alert_id: str,
    queries: AlertQueryService = Depends(get_alert_queries),
) -> Alert:
    result = await queries.get_alert(alert_id)
    raise_for_result(result)
    return result.alert  # type: ignore[return-value]


@router.patch(
    "/{alert_id}/status",
    response_model=MessageResponse,
    summary="Update alert status",
    description="Acknowledge, resolve or dismiss an alert.",
)
async def update_alert_status(
    alert_id: str,
    body: StatusUpdateRequest,
    engine: AlertLifecycleEngine = Depends(get_alert_engine),
) -> MessageResponse:
    result = await engine.update_alert_status(alert_id, body.status, body.actor, body.notes)
    raise_for_result(result)
    return MessageResponse(message=result.message)


@router.delete(
    "/{alert_id}",
    response_model=MessageResponse,
    summary="Delete alert",
    description="Permanently delete an alert.",
)
async def delete_alert(
    alert_id: str,
    engine: AlertLifecycleEngine = Depends(get_alert_engine),
) -> MessageResponse:
    result = await engine.delete_alert(alert_id)
    raise_for_result(result)
    return MessageResponse(message=result.message)


@router.get(
    "/{alert_id}/actions",
    response_model=list[ActionLog],
    summary="Alert action log",
    description="Notification attempts recorded for an alert, newest first.",
)
async def list_alert_actions(
    alert_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    engine: AlertLifecycleEngine = Depends(get_alert_engine),
) -> list[ActionLog]:
    return await engine.dispatcher.list_action_logs(alert_id, limit=limit)
