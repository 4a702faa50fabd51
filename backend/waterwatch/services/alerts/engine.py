"""
Alert lifecycle engine.

Creates alerts, applies the matching alert rules (notification actions,
escalation scheduling, auto-resolve deadlines), moves alerts between
statuses, and runs the time-driven passes the sweeper triggers:
auto-resolve, escalation and retry of unfinished rule processing.

The alert insert is the durable commit point. Everything after it is
best effort: an alert is written with ``actions_pending=True`` and the flag
is cleared only once rule processing completes, so an interrupted pass is
picked up again by :meth:`AlertLifecycleEngine.process_pending_actions`.
Notifications are therefore at-least-once.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional

from waterwatch.config import Settings, get_settings
from waterwatch.core.exceptions import (
    AppException,
    InvalidTransitionException,
    NotFoundException,
    RuleEvaluationException,
    ValidationException,
)
from waterwatch.models.action_log import ActionPurpose
from waterwatch.models.alert import (
    ALLOWED_TRANSITIONS,
    Alert,
    AlertCreate,
    AlertSeverity,
    AlertStatus,
)
from waterwatch.models.alert_rule import AlertRule
from waterwatch.models.base import Clock, utc_now
from waterwatch.models.results import AlertResult, BulkUpdateResult, OperationResult
from waterwatch.services.alerts.conditions import evaluate_conditions
from waterwatch.services.alerts.dispatcher import ChannelHandler, NotificationDispatcher
from waterwatch.services.alerts.rules import AlertRuleRegistry
from waterwatch.services.alerts.store import AlertRepository

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

# Upper bound on alerts re-processed by one outbox retry pass.
PENDING_BATCH_SIZE = 100


def _parse_status(status: AlertStatus | str) -> str:
    try:
        return AlertStatus(status).value
    except ValueError:
        raise ValidationException(
            f"Unknown alert status '{status}'",
            detail={"allowed": [s.value for s in AlertStatus]},
        ) from None


class AlertLifecycleEngine:
    """Alert creation, rule processing and status transitions.

    Args:
        store: Repository over the ``alerts`` collection.
        rules: Alert rule registry.
        dispatcher: Notification dispatcher writing the action log.
        settings: Feature switches; defaults to the process settings.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        store: AlertRepository,
        rules: AlertRuleRegistry,
        dispatcher: NotificationDispatcher,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._rules = rules
        self._dispatcher = dispatcher
        self._settings = settings or get_settings()
        self._clock = clock

    @classmethod
    def from_database(
        cls,
        db: AsyncIOMotorDatabase,  # type: ignore[type-arg]
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        channels: Optional[dict[str, ChannelHandler]] = None,
    ) -> AlertLifecycleEngine:
        """Wire an engine and its collaborators onto one database handle."""
        return cls(
            store=AlertRepository(db),
            rules=AlertRuleRegistry(db, clock=clock),
            dispatcher=NotificationDispatcher(db, clock=clock, channels=channels),
            settings=settings,
            clock=clock,
        )

    @property
    def rules(self) -> AlertRuleRegistry:
        return self._rules

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Creation and rule processing
    # ------------------------------------------------------------------

    async def create_alert(self, data: AlertCreate) -> AlertResult:
        """Persist a new alert, then apply the matching rules.

        Rule processing failures are logged and never fail the call.
        """
        now = self._clock()
        alert = Alert(
            **data.model_dump(),
            escalation_level=0,
            actions_pending=True,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._store.insert(alert)
        except AppException as exc:
            return AlertResult.failed(exc, "Failed to create alert")

        logger.info(
            "Created %s alert '%s'",
            alert.severity,
            alert.title,
            extra={"alert_id": alert.alert_id, "alert_type": alert.type},
        )

        alert = await self.process_alert_actions(alert)
        return AlertResult.ok("Alert created successfully", alert=alert)

    async def process_alert_actions(self, alert: Alert) -> Alert:
        """Apply every enabled rule matching the alert's (type, severity).

        Returns:
            The alert with any deadlines the rules set. If processing fails
            the alert is returned unchanged and stays ``actions_pending``.
        """
        try:
            return await self._apply_rules(alert)
        except Exception as exc:
            logger.error(
                "Error processing actions for alert %s: %s",
                alert.alert_id,
                exc,
                extra={"alert_id": alert.alert_id},
            )
            return alert

    async def _apply_rules(self, alert: Alert) -> Alert:
        rules = await self._rules.find_matching(alert.type, alert.severity)
        # Deadlines run from creation, also when a retry applies the rules late
        start = alert.created_at
        auto_resolve_at: Optional[datetime] = None
        applied = 0

        for rule in rules:
            if self._settings.ALERT_EVALUATE_RULE_CONDITIONS and not self._conditions_hold(
                alert, rule
            ):
                continue
            applied += 1

            for action in rule.actions:
                await self._dispatcher.execute_alert_action(alert, action, rule_id=rule.rule_id)

            if rule.escalation_rules:
                alert = await self._schedule_escalation(alert, rule, 0, start)

            if rule.auto_resolve_after_minutes:
                deadline = start + timedelta(minutes=rule.auto_resolve_after_minutes)
                # Earliest deadline wins
                if auto_resolve_at is None or deadline < auto_resolve_at:
                    auto_resolve_at = deadline

        fields: dict[str, Any] = {"actions_pending": False}
        if auto_resolve_at is not None:
            fields["auto_resolve_at"] = auto_resolve_at
        await self._store.update_fields(alert.alert_id, fields)

        logger.info(
            "Processed alert %s against %d matching rule(s)",
            alert.alert_id,
            applied,
            extra={"alert_id": alert.alert_id, "rules_applied": applied},
        )
        return alert.model_copy(update=fields)

    def _conditions_hold(self, alert: Alert, rule: AlertRule) -> bool:
        try:
            return evaluate_conditions(alert, rule.conditions)
        except RuleEvaluationException as exc:
            logger.warning(
                "Skipping rule %s for alert %s: %s",
                rule.rule_id,
                alert.alert_id,
                exc.message,
                extra={"rule_id": rule.rule_id, "alert_id": alert.alert_id},
            )
            return False

    async def _schedule_escalation(
        self,
        alert: Alert,
        rule: AlertRule,
        step_index: int,
        start: datetime,
    ) -> Alert:
        """Persist the escalation deadline unless one is already pending."""
        step = rule.escalation_rules[step_index]
        fields: dict[str, Any] = {
            "next_escalation_at": start + timedelta(minutes=step.delay_minutes),
            "escalation_rule_id": rule.rule_id,
            "escalation_step": step_index,
        }
        matched = await self._store.update_fields(
            alert.alert_id,
            fields,
            extra_filter={"next_escalation_at": None},
        )
        if not matched:
            logger.info(
                "Alert %s already has an escalation pending; rule %s not scheduled",
                alert.alert_id,
                rule.rule_id,
            )
            return alert

        logger.info(
            "Scheduled escalation for alert %s in %d minutes",
            alert.alert_id,
            step.delay_minutes,
            extra={"alert_id": alert.alert_id, "rule_id": rule.rule_id},
        )
        return alert.model_copy(update=fields)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _status_fields(self, status: str, actor: Optional[str], now: datetime) -> dict[str, Any]:
        fields: dict[str, Any] = {"status": status, "updated_at": now}
        if status == AlertStatus.ACKNOWLEDGED.value:
            fields["acknowledged_at"] = now
            fields["acknowledged_by"] = actor
        elif status == AlertStatus.RESOLVED.value:
            fields["resolved_at"] = now
            fields["resolved_by"] = actor
        return fields

    async def update_alert_status(
        self,
        alert_id: str,
        status: AlertStatus | str,
        actor: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Set an alert's status and the matching timestamp/actor fields.

        Any target status is accepted unless strict transitions are enabled.
        """
        try:
            target = _parse_status(status)
        except ValidationException as exc:
            return OperationResult.failed(exc)

        fields = self._status_fields(target, actor, self._clock())
        if notes:
            fields["metadata.status_notes"] = notes

        try:
            extra_filter: Optional[dict[str, Any]] = None
            if self._settings.ALERT_STRICT_STATUS_TRANSITIONS:
                current = await self._store.require(alert_id)
                if target not in ALLOWED_TRANSITIONS[current.status]:
                    raise InvalidTransitionException(current.status, target)
                extra_filter = {"status": current.status}

            matched = await self._store.update_fields(alert_id, fields, extra_filter=extra_filter)
            if matched == 0:
                raise NotFoundException(resource="Alert", identifier=alert_id)
        except AppException as exc:
            logger.warning(
                "Status update of alert %s failed: %s",
                alert_id,
                exc.message,
                extra={"alert_id": alert_id, "error_code": exc.error_code},
            )
            return OperationResult.failed(exc)

        logger.info(
            "Alert %s %s",
            alert_id,
            target,
            extra={"alert_id": alert_id, "actor": actor},
        )
        return OperationResult.ok(f"Alert {target} successfully")

    async def bulk_update_alerts(
        self,
        alert_ids: list[str],
        status: AlertStatus | str,
        actor: Optional[str] = None,
    ) -> BulkUpdateResult:
        """Apply one status to many alerts in a single store call.

        ``updated_count`` counts alerts that existed (and, with strict
        transitions, could legally move), so it never exceeds the number of
        distinct ids given.
        """
        try:
            target = _parse_status(status)
        except ValidationException as exc:
            return BulkUpdateResult.failed(exc, updated_count=0)

        extra_filter: Optional[dict[str, Any]] = None
        if self._settings.ALERT_STRICT_STATUS_TRANSITIONS:
            sources = sorted(s for s, targets in ALLOWED_TRANSITIONS.items() if target in targets)
            extra_filter = {"status": {"$in": sources}}
        return await self._bulk_update(alert_ids, target, actor, extra_filter)

    async def _bulk_update(
        self,
        alert_ids: list[str],
        target: str,
        actor: Optional[str],
        extra_filter: Optional[dict[str, Any]],
    ) -> BulkUpdateResult:
        ids = list(dict.fromkeys(alert_ids))
        if not ids:
            return BulkUpdateResult.ok(f"0 alerts {target} successfully", updated_count=0)

        fields = self._status_fields(target, actor, self._clock())
        try:
            updated = await self._store.update_many(ids, fields, extra_filter=extra_filter)
        except AppException as exc:
            return BulkUpdateResult.failed(exc, "Failed to update alerts", updated_count=0)

        logger.info(
            "Bulk %s: %d of %d alerts updated",
            target,
            updated,
            len(ids),
            extra={"actor": actor, "updated_count": updated},
        )
        return BulkUpdateResult.ok(f"{updated} alerts {target} successfully", updated_count=updated)

    async def delete_alert(self, alert_id: str) -> OperationResult:
        """Administrative hard delete."""
        try:
            deleted = await self._store.delete(alert_id)
            if deleted == 0:
                raise NotFoundException(resource="Alert", identifier=alert_id)
        except AppException as exc:
            return OperationResult.failed(exc)

        logger.info("Deleted alert %s", alert_id, extra={"alert_id": alert_id})
        return OperationResult.ok("Alert deleted successfully")

    # ------------------------------------------------------------------
    # Time-driven passes (called by the sweeper)
    # ------------------------------------------------------------------

    async def process_auto_resolve_alerts(self) -> int:
        """Resolve every active alert whose auto-resolve deadline has passed.

        Returns:
            Number of alerts resolved by this pass.
        """
        try:
            due = await self._store.find_due("auto_resolve_at", self._clock())
        except AppException as exc:
            logger.error("Error processing auto-resolve alerts: %s", exc.message)
            return 0

        if not due:
            return 0

        result = await self._bulk_update(
            [alert.alert_id for alert in due],
            AlertStatus.RESOLVED.value,
            SYSTEM_ACTOR,
            extra_filter={"status": AlertStatus.ACTIVE.value},
        )
        if result.success:
            logger.info("Auto-resolved %d alerts", result.updated_count)
        return result.updated_count

    async def process_escalations(self) -> int:
        """Apply every escalation step that has come due.

        Returns:
            Number of alerts escalated by this pass.
        """
        now = self._clock()
        try:
            due = await self._store.find_due("next_escalation_at", now)
        except AppException as exc:
            logger.error("Error loading due escalations: %s", exc.message)
            return 0

        escalated = 0
        for alert in due:
            try:
                if await self._escalate(alert, now):
                    escalated += 1
            except Exception as exc:
                logger.warning(
                    "Error escalating alert %s: %s",
                    alert.alert_id,
                    exc,
                    extra={"alert_id": alert.alert_id},
                )

        if escalated:
            logger.info("Escalated %d alerts", escalated)
        return escalated

    async def _escalate(self, alert: Alert, now: datetime) -> bool:
        rule = None
        if alert.escalation_rule_id:
            rule = await self._rules.get_rule(alert.escalation_rule_id)
        step_index = alert.escalation_step or 0

        # Claim the exact schedule that was read so a step is applied once
        claim = {
            "next_escalation_at": alert.next_escalation_at,
            "escalation_step": alert.escalation_step,
        }
        fields: dict[str, Any] = {
            "next_escalation_at": None,
            "escalation_rule_id": None,
            "escalation_step": None,
            "updated_at": now,
        }

        if rule is None or step_index >= len(rule.escalation_rules):
            await self._store.update_fields(alert.alert_id, fields, extra_filter=claim)
            logger.warning(
                "Escalation policy for alert %s no longer exists; schedule cleared",
                alert.alert_id,
                extra={"alert_id": alert.alert_id, "rule_id": alert.escalation_rule_id},
            )
            return False

        step = rule.escalation_rules[step_index]
        if step.severity_increase:
            fields["severity"] = AlertSeverity(alert.severity).raised().value

        next_index = step_index + 1
        if self._settings.ALERT_ESCALATION_CHAINS and next_index < len(rule.escalation_rules):
            fields["next_escalation_at"] = now + timedelta(
                minutes=rule.escalation_rules[next_index].delay_minutes
            )
            fields["escalation_rule_id"] = rule.rule_id
            fields["escalation_step"] = next_index

        matched = await self._store.update_fields(
            alert.alert_id,
            fields,
            extra_filter=claim,
            increment={"escalation_level": 1},
        )
        if not matched:
            return False

        escalated = alert.model_copy(
            update={**fields, "escalation_level": alert.escalation_level + 1}
        )
        for action in rule.actions:
            recipients = list(dict.fromkeys([*action.recipients, *step.additional_recipients]))
            await self._dispatcher.execute_alert_action(
                escalated,
                action.model_copy(update={"recipients": recipients}),
                rule_id=rule.rule_id,
                purpose=ActionPurpose.ESCALATION,
            )

        logger.info(
            "Alert %s escalated to level %d",
            alert.alert_id,
            escalated.escalation_level,
            extra={"alert_id": alert.alert_id, "rule_id": rule.rule_id},
        )
        return True

    async def process_pending_actions(self) -> int:
        """Retry rule processing for alerts whose earlier pass never finished.

        Returns:
            Number of alerts whose processing completed on this pass.
        """
        cutoff = self._clock() - timedelta(
            seconds=self._settings.ALERT_PENDING_ACTIONS_GRACE_SECONDS
        )
        try:
            pending = await self._store.find(
                {"actions_pending": True, "created_at": {"$lte": cutoff}},
                limit=PENDING_BATCH_SIZE,
            )
        except AppException as exc:
            logger.error("Error loading alerts with pending actions: %s", exc.message)
            return 0

        completed = 0
        for alert in pending:
            processed = await self.process_alert_actions(alert)
            if not processed.actions_pending:
                completed += 1

        if pending:
            logger.info("Retried rule processing for %d/%d alerts", completed, len(pending))
        return completed
