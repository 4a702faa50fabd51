#!/usr/bin/env python3
"""
Sample data seeder for WaterWatch.

Creates realistic alert rules and alerts across a few districts for demo
and development environments. Safe to run multiple times -- existing
alerts, rules and action logs are cleared before seeding.

Usage:
    python scripts/seed_data.py
    python scripts/seed_data.py --mongo-url mongodb://localhost:27017 --db waterwatch
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from waterwatch.models.alert import Alert
from waterwatch.models.alert_rule import AlertRule

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("seed_data")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _hours_ago(n: float) -> datetime:
    return _now() - timedelta(hours=n)


LOCATIONS = {
    "shillong": {"latitude": 25.5788, "longitude": 91.8933, "district": "Shillong", "state": "Meghalaya"},
    "guwahati": {"latitude": 26.1445, "longitude": 91.7362, "district": "Guwahati", "state": "Assam"},
    "aizawl": {"latitude": 23.7271, "longitude": 92.7176, "district": "Aizawl", "state": "Mizoram"},
    "imphal": {"latitude": 24.8170, "longitude": 93.9368, "district": "Imphal West", "state": "Manipur"},
}


# ---------------------------------------------------------------------------
# Sample data generators
# ---------------------------------------------------------------------------


def _generate_rules() -> list[AlertRule]:
    """Generate sample alert rules."""
    return [
        AlertRule(
            rule_id="rule-001",
            name="Critical contamination escalation",
            description="SMS and email district officers, escalate to the DM after 30 minutes.",
            type="water_quality",
            severity="critical",
            conditions=[{"parameter": "turbidity_ntu", "operator": ">", "value": 10}],
            actions=[
                {"type": "sms", "recipients": ["+919800000001", "+919800000002"]},
                {"type": "email", "recipients": ["dwo.shillong@gov.in"], "template": "wq_critical"},
            ],
            escalation_rules=[
                {
                    "delay_minutes": 30,
                    "severity_increase": False,
                    "additional_recipients": ["dm.shillong@gov.in"],
                },
                {
                    "delay_minutes": 120,
                    "severity_increase": False,
                    "additional_recipients": ["phed.secretary@gov.in"],
                },
            ],
            created_by="admin@waterquality.gov.in",
            created_at=_hours_ago(720),
            updated_at=_hours_ago(720),
        ),
        AlertRule(
            rule_id="rule-002",
            name="High water-quality notice",
            description="Email the district water officer; auto-resolve after 6 hours.",
            type="water_quality",
            severity="high",
            actions=[{"type": "email", "recipients": ["dwo@gov.in"], "template": "wq_high"}],
            escalation_rules=[{"delay_minutes": 60, "severity_increase": True}],
            auto_resolve_after_minutes=360,
            created_by="admin@waterquality.gov.in",
            created_at=_hours_ago(700),
            updated_at=_hours_ago(700),
        ),
        AlertRule(
            rule_id="rule-003",
            name="Sensor offline",
            description="Push a notification to field technicians.",
            type="device_offline",
            severity="medium",
            actions=[{"type": "push", "recipients": ["field-technicians"]}],
            auto_resolve_after_minutes=1440,
            created_by="ops@waterquality.gov.in",
            created_at=_hours_ago(650),
            updated_at=_hours_ago(650),
        ),
        AlertRule(
            rule_id="rule-004",
            name="Disease outbreak risk",
            description="Notify the health department webhook and the state surveillance cell.",
            type="disease_risk",
            severity="critical",
            actions=[
                {"type": "webhook", "config": {"url": "https://idsp.example.gov.in/hooks/alerts"}},
                {"type": "email", "recipients": ["ssu@gov.in"], "template": "outbreak_risk"},
            ],
            created_by="admin@waterquality.gov.in",
            created_at=_hours_ago(600),
            updated_at=_hours_ago(600),
        ),
        AlertRule(
            rule_id="rule-005",
            name="Maintenance reminders (paused)",
            type="maintenance",
            severity="low",
            enabled=False,
            actions=[{"type": "email", "recipients": ["maintenance@gov.in"]}],
            created_at=_hours_ago(500),
            updated_at=_hours_ago(500),
        ),
    ]


def _generate_alerts() -> list[Alert]:
    """Generate sample alerts in every lifecycle status."""
    return [
        Alert(
            type="water_quality",
            severity="critical",
            title="E. coli detected at Umiam treatment plant",
            message="Coliform count 38 CFU/100 mL in treated water outlet.",
            location=LOCATIONS["shillong"],
            device_id="WQ-SHL-002",
            reading_id="rd-90411",
            metadata={"coliform_cfu": 38, "turbidity_ntu": 12.4},
            created_at=_hours_ago(0.5),
            updated_at=_hours_ago(0.5),
        ),
        Alert(
            type="water_quality",
            severity="high",
            title="Low pH at Mawlai reservoir",
            message="pH 5.9 below the 6.5 drinking-water minimum.",
            location=LOCATIONS["shillong"],
            device_id="WQ-SHL-014",
            metadata={"ph": 5.9},
            status="acknowledged",
            acknowledged_at=_hours_ago(2),
            acknowledged_by="officer-12",
            auto_resolve_at=_now() + timedelta(hours=3),
            created_at=_hours_ago(3),
            updated_at=_hours_ago(2),
        ),
        Alert(
            type="device_offline",
            severity="medium",
            title="Sensor WQ-GHY-031 offline",
            message="No readings received for 45 minutes.",
            location=LOCATIONS["guwahati"],
            device_id="WQ-GHY-031",
            triggered_by="device_monitor",
            status="resolved",
            resolved_at=_hours_ago(4),
            resolved_by="system",
            created_at=_hours_ago(28),
            updated_at=_hours_ago(4),
        ),
        Alert(
            type="disease_risk",
            severity="critical",
            title="Cholera risk elevated in Aizawl",
            message="Predicted outbreak probability 0.82 over the next 7 days.",
            location=LOCATIONS["aizawl"],
            triggered_by="ml_prediction",
            metadata={"risk_score": 0.82, "model_version": "risk-v3"},
            escalation_level=1,
            created_at=_hours_ago(6),
            updated_at=_hours_ago(5),
        ),
        Alert(
            type="maintenance",
            severity="low",
            title="Filter replacement due at Imphal West station",
            location=LOCATIONS["imphal"],
            triggered_by="manual",
            status="dismissed",
            created_at=_hours_ago(50),
            updated_at=_hours_ago(48),
        ),
        Alert(
            type="water_quality",
            severity="medium",
            title="Field kit: high turbidity reported",
            message="Turbidity 7.8 NTU recorded by field officer during sync.",
            location=LOCATIONS["imphal"],
            triggered_by="mobile_sync",
            metadata={"turbidity_ntu": 7.8},
            created_at=_hours_ago(10),
            updated_at=_hours_ago(10),
        ),
    ]


# ---------------------------------------------------------------------------
# Main seeder
# ---------------------------------------------------------------------------


async def seed(mongo_url: str, db_name: str) -> None:
    """Seed the database with sample data."""
    client: AsyncIOMotorClient = AsyncIOMotorClient(mongo_url, tz_aware=True)  # type: ignore[type-arg]
    db = client[db_name]

    logger.info("Seeding database: %s", db_name)

    # Clear existing data
    collections = ["alerts", "alert_rules", "alert_action_logs"]
    for coll_name in collections:
        count = await db[coll_name].count_documents({})
        if count > 0:
            await db[coll_name].delete_many({})
            logger.info("  Cleared %d documents from %s", count, coll_name)

    # Seed rules
    rules = _generate_rules()
    await db["alert_rules"].insert_many([rule.to_document() for rule in rules])
    logger.info("  Inserted %d alert rules", len(rules))

    # Seed alerts
    alerts = _generate_alerts()
    await db["alerts"].insert_many([alert.to_document() for alert in alerts])
    logger.info("  Inserted %d alerts", len(alerts))

    logger.info("Seeding complete.")
    client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed WaterWatch database with sample data.")
    parser.add_argument(
        "--mongo-url",
        default="mongodb://localhost:27017",
        help="MongoDB connection URI (default: mongodb://localhost:27017)",
    )
    parser.add_argument(
        "--db",
        default="waterwatch",
        help="Database name (default: waterwatch)",
    )
    args = parser.parse_args()

    asyncio.run(seed(args.mongo_url, args.db))


if __name__ == "__main__":
    main()
