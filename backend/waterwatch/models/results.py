"""
Result objects returned by the public alert service operations.

Store and dispatch failures never escape a public operation as exceptions;
callers check ``success`` and show ``message``.
"""

from typing import Optional

from pydantic import BaseModel, Field

from waterwatch.core.exceptions import AppException
from waterwatch.models.alert import Alert
from waterwatch.models.alert_rule import AlertRule


class OperationResult(BaseModel):
    success: bool
    message: str
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, message: str, **fields):
        return cls(success=True, message=message, **fields)

    @classmethod
    def failed(cls, exc: AppException, message: Optional[str] = None, **fields):
        """Build a failure result from an application exception."""
        return cls(
            success=False,
            message=message or exc.message,
            error_code=exc.error_code,
            **fields,
        )


class AlertResult(OperationResult):
    alert: Optional[Alert] = None


class RuleResult(OperationResult):
    rule: Optional[AlertRule] = None


class BulkUpdateResult(OperationResult):
    updated_count: int = Field(default=0, ge=0)


class AlertListResult(OperationResult):
    alerts: list[Alert] = Field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 50


class LocationCount(BaseModel):
    location: str
    count: int


class AlertStats(BaseModel):
    """Dashboard summary over a recent time window."""

    total_alerts: int = 0
    active_alerts: int = 0
    critical_alerts: int = 0
    resolved_today: int = 0
    average_resolution_time: int = Field(default=0, description="Minutes, rounded.")
    alerts_by_type: dict[str, int] = Field(default_factory=dict)
    alerts_by_location: list[LocationCount] = Field(default_factory=list)


class AlertStatsResult(OperationResult):
    stats: AlertStats = Field(default_factory=AlertStats)
