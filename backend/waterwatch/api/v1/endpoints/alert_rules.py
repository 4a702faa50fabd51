"""
Alert rule administration endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from waterwatch.api.v1.deps import get_rule_registry, raise_for_result
from waterwatch.core.exceptions import NotFoundException
from waterwatch.models.alert_rule import AlertRule, AlertRuleCreate, AlertRuleUpdate
from waterwatch.services.alerts.rules import AlertRuleRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alert-rules", tags=["alert-rules"])


class DeleteRuleResponse(BaseModel):
    rule_id: str = Field(..., description="Deleted rule ID.")
    message: str = Field(..., description="Human-readable status message.")


@router.get(
    "/",
    response_model=list[AlertRule],
    summary="List alert rules",
    description="All rules, newest first.",
)
async def list_rules(
    registry: AlertRuleRegistry = Depends(get_rule_registry),
) -> list[AlertRule]:
    return await registry.list_rules()


@router.post(
    "/",
    response_model=AlertRule,
    status_code=201,
    summary="Create alert rule",
)
async def create_rule(
    body: AlertRuleCreate,
    registry: AlertRuleRegistry = Depends(get_rule_registry),
) -> AlertRule:
    result = await registry.create_rule(body)
    raise_for_result(result)
    return result.rule  # type: ignore[return-value]


@router.get(
    "/{rule_id}",
    response_model=AlertRule,
    summary="Get alert rule",
)
async def get_rule(
    rule_id: str,
    registry: AlertRuleRegistry = Depends(get_rule_registry),
) -> AlertRule:
    rule = await registry.get_rule(rule_id)
    if rule is None:
        raise NotFoundException(resource="Alert rule", identifier=rule_id)
    return rule


@router.patch(
    "/{rule_id}",
    response_model=AlertRule,
    summary="Update alert rule",
    description="Only the fields present in the body are changed.",
)
async def update_rule(
    rule_id: str,
    body: AlertRuleUpdate,
    registry: AlertRuleRegistry = Depends(get_rule_registry),
) -> AlertRule:
    result = await registry.update_rule(rule_id, body)
    raise_for_result(result)
    return result.rule  # type: ignore[return-value]


@router.delete(
    "/{rule_id}",
    response_model=DeleteRuleResponse,
    summary="Delete alert rule",
)
async def delete_rule(
    rule_id: str,
    registry: AlertRuleRegistry = Depends(get_rule_registry),
) -> DeleteRuleResponse:
    result = await registry.delete_rule(rule_id)
    raise_for_result(result)
    return DeleteRuleResponse(rule_id=rule_id, message=result.message)
