from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pymongo import ASCENDING, DESCENDING, IndexModel

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


async def create_indexes(db: AsyncIOMotorDatabase) -> None:  # type: ignore[type-arg]
    """Create all MongoDB indexes required by the application.

    This function is idempotent -- calling it multiple times is safe because
    ``create_indexes`` is a no-op when the index already exists.
    """
    logger.info("Creating MongoDB indexes")

    # ---- alerts ----
    await db.alerts.create_indexes(
        [
            IndexModel([("alert_id", ASCENDING)], unique=True, name="uq_alert_id"),
            IndexModel([("created_at", DESCENDING)], name="idx_alert_created"),
            IndexModel(
                [("status", ASCENDING), ("severity", ASCENDING)],
                name="idx_alert_status_severity",
            ),
            IndexModel([("type", ASCENDING)], name="idx_alert_type"),
            IndexModel([("device_id", ASCENDING)], sparse=True, name="idx_alert_device"),
            IndexModel(
                [("status", ASCENDING), ("auto_resolve_at", ASCENDING)],
                name="idx_alert_auto_resolve",
            ),
            IndexModel(
                [("status", ASCENDING), ("next_escalation_at", ASCENDING)],
                name="idx_alert_escalation",
            ),
            IndexModel(
                [("actions_pending", ASCENDING), ("created_at", ASCENDING)],
                name="idx_alert_actions_pending",
            ),
            IndexModel([("resolved_at", DESCENDING)], sparse=True, name="idx_alert_resolved"),
        ]
    )

    # ---- alert_rules ----
    await db.alert_rules.create_indexes(
        [
            IndexModel([("rule_id", ASCENDING)], unique=True, name="uq_rule_id"),
            IndexModel(
                [("enabled", ASCENDING), ("type", ASCENDING), ("severity", ASCENDING)],
                name="idx_rule_match",
            ),
            IndexModel([("created_at", DESCENDING)], name="idx_rule_created"),
        ]
    )

    # ---- alert_action_logs ----
    await db.alert_action_logs.create_indexes(
        [
            IndexModel([("log_id", ASCENDING)], unique=True, name="uq_action_log_id"),
            IndexModel(
                [("alert_id", ASCENDING), ("timestamp", DESCENDING)],
                name="idx_action_log_alert",
            ),
            IndexModel([("status", ASCENDING)], name="idx_action_log_status"),
        ]
    )

    logger.info("MongoDB indexes created successfully")
