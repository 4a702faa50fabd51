#!/usr/bin/env python3
"""
Database reset script for WaterWatch.

Drops the alert collections (alerts, rules, action logs) and recreates
their indexes, leaving any other collection in the database untouched.
Intended for development and testing environments; prompts for
confirmation unless --force is given.

Usage:
    python scripts/reset_db.py
    python scripts/reset_db.py --mongo-url mongodb://localhost:27017 --db waterwatch
    python scripts/reset_db.py --force --skip-indexes
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from motor.motor_asyncio import AsyncIOMotorClient

from waterwatch.db.indexes import create_indexes

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("reset_db")

# Collections owned by the alert service
MANAGED_COLLECTIONS = ("alerts", "alert_rules", "alert_action_logs")


async def reset(
    mongo_url: str,
    db_name: str,
    force: bool = False,
    recreate_indexes: bool = True,
) -> None:
    """Drop the managed collections and optionally rebuild their indexes.

    Args:
        mongo_url: MongoDB connection URI.
        db_name: Database name to reset.
        force: If True, skip confirmation prompt.
        recreate_indexes: Rebuild indexes on the now empty collections.
    """
    if not force:
        print(f"\nThis will DROP {', '.join(MANAGED_COLLECTIONS)} in '{db_name}' at {mongo_url}")
        print("Alert history and rules cannot be recovered.\n")
        confirmation = input("Type the database name to confirm: ").strip()
        if confirmation != db_name:
            print("Confirmation failed. Aborting.")
            sys.exit(1)

    client: AsyncIOMotorClient = AsyncIOMotorClient(mongo_url, tz_aware=True)  # type: ignore[type-arg]
    try:
        db = client[db_name]
        existing = set(await db.list_collection_names())

        for name in MANAGED_COLLECTIONS:
            if name not in existing:
                logger.info("  Skipped %s (not present)", name)
                continue
            doc_count = await db[name].count_documents({})
            await db[name].drop()
            logger.info("  Dropped %s (%d documents)", name, doc_count)

        if recreate_indexes:
            await create_indexes(db)
            logger.info("  Recreated indexes")

        logger.info("Reset of '%s' complete.", db_name)
    finally:
        client.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Reset the WaterWatch alert collections."
    )
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
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompt.",
    )
    parser.add_argument(
        "--skip-indexes",
        action="store_true",
        help="Do not recreate indexes after dropping.",
    )
    args = parser.parse_args()

    asyncio.run(reset(args.mongo_url, args.db, args.force, not args.skip_indexes))


if __name__ == "__main__":
    main()
