"""
Notification dispatch for alert rule actions.

The four channels (email, SMS, push, webhook) are stubs that only log the
attempt; real gateways plug in through the ``channels`` mapping. Every
attempt writes exactly one row to ``alert_action_logs``: ``sent`` when the
channel returned, ``failed`` with the error text otherwise. Both outcomes
share the attempt's ``log_id``, and the ``failed`` row is an upsert on it:
a ``sent`` insert that committed before its error surfaced is overwritten,
not duplicated.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Optional

from waterwatch.core.exceptions import ActionDispatchException
from waterwatch.models.action_log import ActionLog, ActionLogStatus, ActionPurpose
from waterwatch.models.alert import Alert
from waterwatch.models.alert_rule import RuleAction
from waterwatch.models.base import Clock, generate_uuid, utc_now
from waterwatch.services.alerts.store import store_errors

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

ChannelHandler = Callable[[Alert, RuleAction], Awaitable[None]]


async def _send_email(alert: Alert, action: RuleAction) -> None:
    logger.info(
        "Sending email notification for alert %s to %d recipient(s)",
        alert.alert_id,
        len(action.recipients),
        extra={"alert_id": alert.alert_id, "template": action.template},
    )


async def _send_sms(alert: Alert, action: RuleAction) -> None:
    logger.info(
        "Sending SMS notification for alert %s to %d recipient(s)",
        alert.alert_id,
        len(action.recipients),
        extra={"alert_id": alert.alert_id},
    )


async def _send_push(alert: Alert, action: RuleAction) -> None:
    logger.info(
        "Sending push notification for alert %s",
        alert.alert_id,
        extra={"alert_id": alert.alert_id},
    )


async def _send_webhook(alert: Alert, action: RuleAction) -> None:
    logger.info(
        "Sending webhook for alert %s",
        alert.alert_id,
        extra={"alert_id": alert.alert_id, "url": action.config.get("url")},
    )


DEFAULT_CHANNELS: dict[str, ChannelHandler] = {
    "email": _send_email,
    "sms": _send_sms,
    "push": _send_push,
    "webhook": _send_webhook,
}


class NotificationDispatcher:
    """Execute rule actions and keep the action audit log.

    Args:
        db: Motor async database handle.
        clock: Source of the current UTC time.
        channels: Handlers keyed by action type; defaults to the logging stubs.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,  # type: ignore[type-arg]
        clock: Clock = utc_now,
        channels: Optional[dict[str, ChannelHandler]] = None,
    ) -> None:
        self._collection = db["alert_action_logs"]
        self._clock = clock
        self._channels = dict(DEFAULT_CHANNELS if channels is None else channels)

    async def execute_alert_action(
        self,
        alert: Alert,
        action: RuleAction,
        *,
        rule_id: Optional[str] = None,
        purpose: ActionPurpose = ActionPurpose.NOTIFICATION,
    ) -> ActionLog:
        """Dispatch one action and record the outcome.

        Channel errors are recorded, not raised. Only a failure to write the
        ``failed`` audit row itself propagates, as
        :class:`StoreUnavailableException`.

        Returns:
            The action-log row that was written.
        """
        log_id = generate_uuid()
        metadata: dict[str, Any] = {
            "recipients": list(action.recipients),
            "template": action.template,
            "config": dict(action.config),
        }
        try:
            handler = self._channels.get(action.type)
            if handler is None:
                raise ActionDispatchException(action.type, "no channel registered")
            await handler(alert, action)

            entry = ActionLog(
                log_id=log_id,
                alert_id=alert.alert_id,
                rule_id=rule_id,
                action_type=action.type,
                purpose=purpose,
                status=ActionLogStatus.SENT,
                metadata=metadata,
                timestamp=self._clock(),
            )
            with store_errors("action log insert"):
                await self._collection.insert_one(entry.model_dump(mode="python"))
            return entry
        except Exception as exc:
            logger.error(
                "Error executing %s action for alert %s: %s",
                action.type,
                alert.alert_id,
                exc,
                extra={"alert_id": alert.alert_id, "action_type": action.type},
            )
            error_message = str(exc) or type(exc).__name__

        entry = ActionLog(
            log_id=log_id,
            alert_id=alert.alert_id,
            rule_id=rule_id,
            action_type=action.type,
            purpose=purpose,
            status=ActionLogStatus.FAILED,
            metadata=metadata,
            error_message=error_message,
            timestamp=self._clock(),
        )
        with store_errors("action log upsert"):
            await self._collection.replace_one(
                {"log_id": log_id}, entry.model_dump(mode="python"), upsert=True
            )
        return entry

    async def list_action_logs(self, alert_id: str, limit: int = 100) -> list[ActionLog]:
        """Audit rows for one alert, newest first."""
        with store_errors("action log query"):
            cursor = (
                self._collection.find({"alert_id": alert_id}, {"_id": 0})
                .sort("timestamp", -1)
                .limit(limit)
            )
            docs = await cursor.to_list(length=limit)
        return [ActionLog.model_validate(doc) for doc in docs]
