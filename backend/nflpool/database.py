"""
backend/nflpool/database.py

Purpose:
    MongoDB connection bootstrap and index management for all pool
    collections. The compound keys below stand in for the hierarchical
    pools/{pool_id}/weeks/{n}/... namespace.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - nflpool.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from nflpool.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("nflpool.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=2,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Users ----
    await db.users.create_index("email", unique=True)
    await db.users.create_index("is_deleted")
    await db.access_blocklist.create_index("jti", unique=True)
    await db.access_blocklist.create_index("expires_at", expireAfterSeconds=0)

    # ---- Pools ----
    await db.pool_members.create_index([("pool_id", 1), ("user_id", 1)], unique=True)
    await db.pool_members.create_index([("pool_id", 1), ("participation.survivor.enabled", 1)])
    await db.pool_members.create_index([("pool_id", 1), ("participation.confidence.enabled", 1)])
    await db.pools.create_index("season")

    # ---- Games (internal schedule, updated by the score poller) ----
    await db.games.create_index([("season", 1), ("week", 1), ("game_id", 1)], unique=True)
    await db.games.create_index([("season", 1), ("week", 1), ("status", 1)])
    await db.games.create_index("espn_id", sparse=True)

    # ---- Confidence ----
    await db.confidence_picks.create_index(
        [("pool_id", 1), ("season", 1), ("week", 1), ("user_id", 1)], unique=True,
    )
    await db.confidence_scores.create_index(
        [("pool_id", 1), ("season", 1), ("week", 1), ("user_id", 1)], unique=True,
    )
    await db.confidence_scores.create_index(
        [("pool_id", 1), ("season", 1), ("user_id", 1)],
    )
    await db.season_totals.create_index(
        [("pool_id", 1), ("season", 1), ("user_id", 1)], unique=True,
    )

    # ---- Survivor ----
    await db.survivor_entries.create_index(
        [("pool_id", 1), ("season", 1), ("user_id", 1)], unique=True,
    )
    await db.survivor_entries.create_index([("pool_id", 1), ("season", 1), ("status", 1)])

    # ---- Audit (insert-only) ----
    await db.audit_logs.create_index([("timestamp", -1)])
    await db.audit_logs.create_index([("action", 1), ("timestamp", -1)])
    await db.scoring_audit_runs.create_index(
        [("pool_id", 1), ("season", 1), ("week", 1), ("started_at", -1)],
    )
