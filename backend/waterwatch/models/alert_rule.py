"""
Alert rule models.

A rule matches alerts by (type, severity) and describes how to respond:
which notification actions to fire, how to escalate an alert that stays
unresolved, and when to auto-resolve it. Rules are administered by state
and district officers; they are read-only while alerts are processed.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Discriminator, Field, Tag, model_validator

from waterwatch.models.alert import AlertSeverity, AlertType
from waterwatch.models.base import MongoBaseModel, generate_uuid

CONDITION_OPERATORS = (">", "<", "=", ">=", "<=", "!=", "contains", "between")

CHANNEL_TYPES = ("email", "sms", "push", "webhook")

# The only rule field a partial update may set back to null.
NULLABLE_UPDATE_FIELDS = frozenset({"auto_resolve_after_minutes"})


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


class RuleCondition(BaseModel):
    """A single predicate over an alert field or metadata key.

    ``operator`` is stored as given; unknown operators surface when the
    condition is evaluated, not when the rule is saved.
    """

    parameter: str = Field(..., min_length=1, description="Alert field or metadata key, dotted.")
    operator: str = Field(..., description=f"One of: {', '.join(CONDITION_OPERATORS)}.")
    value: Any = Field(default=None, description="Comparison value; [low, high] for 'between'.")
    threshold_duration: Optional[int] = Field(
        default=None,
        ge=0,
        description="Minutes the condition must hold (stored, not evaluated).",
    )


# ---------------------------------------------------------------------------
# Actions (tagged by channel type)
# ---------------------------------------------------------------------------


class _ActionBase(BaseModel):
    recipients: list[str] = Field(default_factory=list)
    template: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)


class EmailAction(_ActionBase):
    type: Literal["email"] = "email"


class SmsAction(_ActionBase):
    type: Literal["sms"] = "sms"


class PushAction(_ActionBase):
    type: Literal["push"] = "push"


class WebhookAction(_ActionBase):
    type: Literal["webhook"] = "webhook"


class ExtensionAction(_ActionBase):
    """Any channel type this service does not know how to dispatch."""

    type: str = Field(..., min_length=1)


def _action_tag(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if kind in CHANNEL_TYPES else "extension"


RuleAction = Annotated[
    Union[
        Annotated[EmailAction, Tag("email")],
        Annotated[SmsAction, Tag("sms")],
        Annotated[PushAction, Tag("push")],
        Annotated[WebhookAction, Tag("webhook")],
        Annotated[ExtensionAction, Tag("extension")],
    ],
    Discriminator(_action_tag),
]


# ---------------------------------------------------------------------------
# Escalation
# ---------------------------------------------------------------------------


class EscalationStep(BaseModel):
    """One timed escalation step for an unresolved alert."""

    delay_minutes: int = Field(..., ge=0)
    severity_increase: bool = False
    additional_recipients: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Primary model: AlertRule
# ---------------------------------------------------------------------------


class AlertRuleCreate(BaseModel):
    """Administrator-supplied fields of a new rule."""

    model_config = {"use_enum_values": True, "validate_default": True}

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    type: AlertType
    severity: AlertSeverity
    enabled: bool = True
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(default_factory=list)
    escalation_rules: list[EscalationStep] = Field(default_factory=list)
    auto_resolve_after_minutes: Optional[int] = Field(default=None, gt=0)
    created_by: str = Field(default="system")


class AlertRuleUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    model_config = {"use_enum_values": True}

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: Optional[AlertType] = None
    severity: Optional[AlertSeverity] = None
    enabled: Optional[bool] = None
    conditions: Optional[list[RuleCondition]] = None
    actions: Optional[list[RuleAction]] = None
    escalation_rules: Optional[list[EscalationStep]] = None
    auto_resolve_after_minutes: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _reject_nulls(self) -> "AlertRuleUpdate":
        nulls = null_update_fields(self)
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self


def null_update_fields(updates: AlertRuleUpdate) -> list[str]:
    """Fields explicitly set to null that a stored rule requires."""
    return sorted(
        name
        for name in updates.model_fields_set - NULLABLE_UPDATE_FIELDS
        if getattr(updates, name) is None
    )


class AlertRule(MongoBaseModel):
    """
    Declarative response policy for alerts of one (type, severity).

    MongoDB collection: ``alert_rules``
    """

    rule_id: str = Field(
        default_factory=generate_uuid,
        description="Unique rule identifier (UUID v4).",
    )
    name: str
    description: str = ""
    type: AlertType
    severity: AlertSeverity
    enabled: bool = True
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(default_factory=list)
    escalation_rules: list[EscalationStep] = Field(default_factory=list)
    auto_resolve_after_minutes: Optional[int] = None
    created_by: str = "system"
