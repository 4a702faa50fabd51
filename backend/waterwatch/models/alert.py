"""
Alert models for the WaterWatch monitoring and notification system.

Alerts are raised by sensor anomalies, disease-risk predictions from the
ML service, mobile field sync, device monitors, or manually by an officer.
Each alert moves through a small lifecycle (active, acknowledged, resolved,
dismissed) and may carry an auto-resolve deadline and a pending escalation
computed from the alert rules that matched it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from waterwatch.models.base import MongoBaseModel, generate_uuid


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AlertType(str, Enum):
    """Category of event that raised the alert."""

    WATER_QUALITY = "water_quality"
    DEVICE_OFFLINE = "device_offline"
    DISEASE_RISK = "disease_risk"
    MAINTENANCE = "maintenance"
    SYSTEM = "system"


class AlertSeverity(str, Enum):
    """Severity level of an alert, in ascending order."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def raised(self) -> "AlertSeverity":
        """Return the next severity up, saturating at critical."""
        members = list(AlertSeverity)
        index = members.index(self)
        return members[min(index + 1, len(members) - 1)]


class AlertStatus(str, Enum):
    """Lifecycle status of an alert."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class TriggerOrigin(str, Enum):
    """What created the alert."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    ML_PREDICTION = "ml_prediction"
    MOBILE_SYNC = "mobile_sync"
    DEVICE_MONITOR = "device_monitor"


# Legal lifecycle edges, enforced only when strict transitions are enabled.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    AlertStatus.ACTIVE.value: frozenset(
        {
            AlertStatus.ACKNOWLEDGED.value,
            AlertStatus.RESOLVED.value,
            AlertStatus.DISMISSED.value,
        }
    ),
    AlertStatus.ACKNOWLEDGED.value: frozenset(
        {AlertStatus.RESOLVED.value, AlertStatus.DISMISSED.value}
    ),
    AlertStatus.RESOLVED.value: frozenset(),
    AlertStatus.DISMISSED.value: frozenset(),
}


# ---------------------------------------------------------------------------
# Embedded models
# ---------------------------------------------------------------------------


class AlertLocation(BaseModel):
    """Where the alert applies."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    district: Optional[str] = None
    state: Optional[str] = None


# ---------------------------------------------------------------------------
# Primary model: Alert
# ---------------------------------------------------------------------------


class AlertCreate(BaseModel):
    """Caller-supplied fields of a new alert.

    Identifier, creation time and escalation level are assigned by the
    lifecycle engine.
    """

    model_config = {"use_enum_values": True, "validate_default": True}

    type: AlertType
    severity: AlertSeverity
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(default="", max_length=4000)
    location: Optional[AlertLocation] = None
    device_id: Optional[str] = None
    reading_id: Optional[str] = None
    status: AlertStatus = AlertStatus.ACTIVE
    triggered_by: TriggerOrigin = TriggerOrigin.AUTOMATIC
    metadata: dict[str, Any] = Field(default_factory=dict)


class Alert(MongoBaseModel):
    """
    One notifiable event and its lifecycle state.

    MongoDB collection: ``alerts``
    """

    alert_id: str = Field(
        default_factory=generate_uuid,
        description="Unique alert identifier (UUID v4).",
    )
    type: AlertType = Field(..., description="Category of alert.")
    severity: AlertSeverity = Field(..., description="Current severity.")
    title: str = Field(..., description="Short headline.")
    message: str = Field(default="", description="Full alert text.")
    location: Optional[AlertLocation] = Field(default=None)
    device_id: Optional[str] = Field(default=None, description="Originating device.")
    reading_id: Optional[str] = Field(default=None, description="Originating sensor reading.")
    status: AlertStatus = Field(default=AlertStatus.ACTIVE)
    triggered_by: TriggerOrigin = Field(default=TriggerOrigin.AUTOMATIC)
    metadata: dict[str, Any] = Field(default_factory=dict)
    escalation_level: int = Field(
        default=0,
        ge=0,
        description="Number of escalation steps applied so far.",
    )
    auto_resolve_at: Optional[datetime] = Field(
        default=None,
        description="When the sweeper resolves this alert if still active.",
    )
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    # Pending escalation schedule (at most one per alert)
    next_escalation_at: Optional[datetime] = None
    escalation_rule_id: Optional[str] = None
    escalation_step: Optional[int] = None

    actions_pending: bool = Field(
        default=False,
        description="Rule processing has not yet completed for this alert.",
    )


class AlertFilters(BaseModel):
    """Listing filters used by the dashboard alert table."""

    model_config = {"use_enum_values": True}

    status: list[AlertStatus] = Field(default_factory=list)
    type: list[AlertType] = Field(default_factory=list)
    severity: list[AlertSeverity] = Field(default_factory=list)
    device_id: Optional[str] = None
    location: Optional[str] = Field(default=None, description="District or state, substring match.")
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1, le=200)
