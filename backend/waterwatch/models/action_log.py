"""
Audit record of one attempted notification dispatch.

MongoDB collection: ``alert_action_logs``
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from waterwatch.models.base import generate_uuid, utc_now


class ActionLogStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class ActionPurpose(str, Enum):
    NOTIFICATION = "notification"
    ESCALATION = "escalation"


class ActionLog(BaseModel):
    """Exactly one of these is written per dispatch attempt."""

    model_config = {"use_enum_values": True, "validate_default": True}

    log_id: str = Field(default_factory=generate_uuid)
    alert_id: str
    rule_id: Optional[str] = None
    action_type: str
    purpose: ActionPurpose = ActionPurpose.NOTIFICATION
    status: ActionLogStatus
    metadata: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
