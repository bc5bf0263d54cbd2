"""Versioned schema migrations for the MongoDB collections.

Each migration runs once per database; applied versions are recorded in the
``migrations`` collection so restarts only apply what is new.
"""

from datetime import datetime, timezone
import logging

from pymongo import ASCENDING

logger = logging.getLogger(__name__)


async def create_unique_indexes(db):
    await db.users.create_index([("username", ASCENDING)], unique=True)
    await db.rentals.create_index([("user_id", ASCENDING)], unique=True)
    await db.rentals.create_index([("book_id", ASCENDING)], unique=True)


MIGRATIONS = [
    (1, "create_unique_indexes", create_unique_indexes),
]


async def applied_versions(db) -> set[int]:
    cursor = db.migrations.find({}, {"version": 1})
    return {doc["version"] async for doc in cursor}


async def run_migrations(db) -> list[int]:
    done = await applied_versions(db)
    applied = []
    for version, name, migrate in MIGRATIONS:
        if version in done:
            continue
        logger.info(f"Applying migration {version}: {name}")
        await migrate(db)
        await db.migrations.insert_one(
            {
                "version": version,
                "name": name,
                "applied_at": datetime.now(timezone.utc),
            }
        )
        applied.append(version)
    if not applied:
        logger.info("Database schema is up to date")
    return applied
