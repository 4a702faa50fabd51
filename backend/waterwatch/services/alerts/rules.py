"""
Alert rule registry.

CRUD over the ``alert_rules`` collection. The registry stores rules as
given; interpreting conditions is left to the lifecycle engine.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from waterwatch.core.exceptions import AppException, NotFoundException, ValidationException
from waterwatch.models.alert_rule import (
    AlertRule,
    AlertRuleCreate,
    AlertRuleUpdate,
    null_update_fields,
)
from waterwatch.models.base import Clock, utc_now
from waterwatch.models.results import OperationResult, RuleResult
from waterwatch.services.alerts.store import store_errors

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


def _load_rules(docs: list[dict[str, Any]]) -> list[AlertRule]:
    """Validate stored rules, skipping any document that no longer parses."""
    rules: list[AlertRule] = []
    for doc in docs:
        try:
            rules.append(AlertRule.model_validate(doc))
        except ValidationError as exc:
            logger.warning(
                "Skipping unreadable alert rule %s: %d error(s)",
                doc.get("rule_id"),
                exc.error_count(),
                extra={"rule_id": doc.get("rule_id")},
            )
    return rules


class AlertRuleRegistry:
    """Administrative store for alert rules.

    Args:
        db: Motor async database handle.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,  # type: ignore[type-arg]
        clock: Clock = utc_now,
    ) -> None:
        self._collection = db["alert_rules"]
        self._clock = clock

    # ------------------------------------------------------------------
    # Queries used by the lifecycle engine (raise on store failure)
    # ------------------------------------------------------------------

    async def list_rules(self) -> list[AlertRule]:
        """Return all rules, newest first."""
        with store_errors("rule listing"):
            cursor = self._collection.find({}, {"_id": 0}).sort("created_at", -1)
            docs = await cursor.to_list(length=None)
        return _load_rules(docs)

    async def get_rule(self, rule_id: str) -> Optional[AlertRule]:
        with store_errors("rule lookup"):
            doc = await self._collection.find_one({"rule_id": rule_id}, {"_id": 0})
        return AlertRule.model_validate(doc) if doc else None

    async def find_matching(self, alert_type: str, severity: str) -> list[AlertRule]:
        """Return enabled rules for exactly this (type, severity)."""
        query = {"enabled": True, "type": alert_type, "severity": severity}
        with store_errors("rule matching"):
            cursor = self._collection.find(query, {"_id": 0}).sort("created_at", -1)
            docs = await cursor.to_list(length=None)
        return _load_rules(docs)

    # ------------------------------------------------------------------
    # Administrative operations (return results)
    # ------------------------------------------------------------------

    async def create_rule(self, data: AlertRuleCreate) -> RuleResult:
        now = self._clock()
        rule = AlertRule(**data.model_dump(), created_at=now, updated_at=now)
        try:
            with store_errors("rule insert"):
                await self._collection.insert_one(rule.to_document())
        except AppException as exc:
            return RuleResult.failed(exc, "Failed to create alert rule")

        logger.info(
            "Created alert rule '%s'",
            rule.name,
            extra={"rule_id": rule.rule_id, "alert_type": rule.type, "severity": rule.severity},
        )
        return RuleResult.ok("Alert rule created successfully", rule=rule)

    async def update_rule(self, rule_id: str, updates: AlertRuleUpdate) -> RuleResult:
        nulls = null_update_fields(updates)
        if nulls:
            return RuleResult.failed(
                ValidationException(f"Fields cannot be null: {', '.join(nulls)}")
            )

        fields: dict[str, Any] = updates.model_dump(exclude_unset=True)
        fields["updated_at"] = self._clock()
        try:
            with store_errors("rule update"):
                result = await self._collection.update_one({"rule_id": rule_id}, {"$set": fields})
            if result.matched_count == 0:
                raise NotFoundException(resource="Alert rule", identifier=rule_id)
            rule = await self.get_rule(rule_id)
        except AppException as exc:
            return RuleResult.failed(exc, "Failed to update alert rule")

        logger.info("Updated alert rule %s", rule_id, extra={"fields": ",".join(sorted(fields))})
        return RuleResult.ok("Alert rule updated successfully", rule=rule)

    async def delete_rule(self, rule_id: str) -> OperationResult:
        try:
            with store_errors("rule delete"):
                result = await self._collection.delete_one({"rule_id": rule_id})
            if result.deleted_count == 0:
                raise NotFoundException(resource="Alert rule", identifier=rule_id)
        except AppException as exc:
            return OperationResult.failed(exc, "Failed to delete alert rule")

        logger.info("Deleted alert rule %s", rule_id)
        return OperationResult.ok("Alert rule deleted successfully")
