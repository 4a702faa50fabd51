"""
WaterWatch data models package.

All Pydantic v2 models for MongoDB document storage and service results.
Import from this module for convenient access to every model and enum.
"""

# Action log models
from waterwatch.models.action_log import ActionLog, ActionLogStatus, ActionPurpose

# Alert models
from waterwatch.models.alert import (
    Alert,
    AlertCreate,
    AlertFilters,
    AlertLocation,
    AlertSeverity,
    AlertStatus,
    AlertType,
    TriggerOrigin,
)

# Alert rule models
from waterwatch.models.alert_rule import (
    AlertRule,
    AlertRuleCreate,
    AlertRuleUpdate,
    EmailAction,
    EscalationStep,
    ExtensionAction,
    PushAction,
    RuleAction,
    RuleCondition,
    SmsAction,
    WebhookAction,
)

# Base model and helpers
from waterwatch.models.base import Clock, MongoBaseModel, generate_uuid, utc_now

# Result models
from waterwatch.models.results import (
    AlertListResult,
    AlertResult,
    AlertStats,
    AlertStatsResult,
    BulkUpdateResult,
    LocationCount,
    OperationResult,
    RuleResult,
)

__all__ = [
    # action log
    "ActionLog",
    "ActionLogStatus",
    "ActionPurpose",
    # alert
    "Alert",
    "AlertCreate",
    "AlertFilters",
    # results
    "AlertListResult",
    "AlertLocation",
    "AlertResult",
    # alert rule
    "AlertRule",
    "AlertRuleCreate",
    "AlertRuleUpdate",
    "AlertSeverity",
    "AlertStats",
    "AlertStatsResult",
    "AlertStatus",
    "AlertType",
    "BulkUpdateResult",
    # base
    "Clock",
    "EmailAction",
    "EscalationStep",
    "ExtensionAction",
    "LocationCount",
    "MongoBaseModel",
    "OperationResult",
    "PushAction",
    "RuleAction",
    "RuleCondition",
    "RuleResult",
    "SmsAction",
    "TriggerOrigin",
    "WebhookAction",
    "generate_uuid",
    "utc_now",
]
