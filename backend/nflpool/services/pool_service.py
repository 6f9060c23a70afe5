"""Pool and membership management.

Each member carries independent participation flags for the confidence and
survivor games. Disabling a flag records the week it ended, so weeks before
the removal keep counting for that member.
"""

import logging
from typing import Literal, Optional

from fastapi import HTTPException, status
from pymongo.errors import DuplicateKeyError

import nflpool.database as _db
from nflpool.models.pool import ParticipationUpdate, PoolCreate, PoolMemberAdd
from nflpool.services.audit_service import log_audit
from nflpool.services.week_service import get_current_week
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.pool_service")

Mode = Literal["confidence", "survivor"]


def _flag(enabled: bool) -> dict:
    return {"enabled": enabled, "status": "active" if enabled else "removed", "end_week": None}


def participates_in(member: dict, mode: Mode, week: Optional[int] = None) -> bool:
    """Whether a member takes part in `mode`, optionally as of a given week."""
    flag = ((member.get("participation") or {}).get(mode)) or {"enabled": True}
    if flag.get("enabled", True):
        return True
    end_week = flag.get("end_week")
    return week is not None and end_week is not None and week < end_week


async def get_pool(pool_id: str) -> dict:
    pool = await _db.db.pools.find_one({"_id": pool_id})
    if not pool:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Pool not found.")
    return pool


async def create_pool(data: PoolCreate, admin_id: str) -> dict:
    doc = {
        "_id": data.pool_id,
        "name": data.name,
        "season": data.season,
        "created_at": utcnow(),
    }
    try:
        await _db.db.pools.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(status.HTTP_409_CONFLICT, "Pool already exists.")
    await log_audit(
        actor_id=admin_id, target_id=data.pool_id, action="POOL_CREATE",
        metadata={"name": data.name, "season": data.season},
    )
    logger.info("Pool created: %s (%s) season %d", data.pool_id, data.name, data.season)
    return doc


async def add_member(pool_id: str, data: PoolMemberAdd, admin_id: str) -> dict:
    await get_pool(pool_id)
    now = utcnow()
    doc = {
        "pool_id": pool_id,
        "user_id": data.user_id,
        "display_name": data.display_name,
        "email": data.email,
        "participation": {
            "confidence": _flag(data.confidence),
            "survivor": _flag(data.survivor),
        },
        "joined_at": now,
        "last_modified": now,
        "last_modified_by": admin_id,
    }
    try:
        await _db.db.pool_members.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(status.HTTP_409_CONFLICT, "User is already a member of this pool.")
    logger.info("Member %s added to pool %s", data.user_id, pool_id)
    return doc


async def get_member(pool_id: str, user_id: str) -> dict:
    member = await _db.db.pool_members.find_one({"pool_id": pool_id, "user_id": user_id})
    if not member:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "You are not a member of this pool.")
    return member


async def require_participation(pool_id: str, user_id: str, mode: Mode) -> dict:
    member = await get_member(pool_id, user_id)
    if not participates_in(member, mode):
        raise HTTPException(
            status.HTTP_403_FORBIDDEN, f"You are not participating in the {mode} pool.",
        )
    return member


async def list_members(
    pool_id: str,
    *,
    mode: Optional[Mode] = None,
    week: Optional[int] = None,
) -> list[dict]:
    """Pool members, optionally only those taking part in `mode` (as of `week`)."""
    members = await _db.db.pool_members.find({"pool_id": pool_id}).to_list(length=1000)
    if mode is not None:
        members = [m for m in members if participates_in(m, mode, week)]
    return sorted(members, key=lambda m: (m.get("display_name") or "").lower())


async def update_participation(
    pool_id: str, user_id: str, data: ParticipationUpdate, admin_id: str,
) -> dict:
    """Enable/disable confidence or survivor participation for one member."""
    member = await get_member(pool_id, user_id)
    now = utcnow()
    updates: dict = {"last_modified": now, "last_modified_by": admin_id}
    current_week: Optional[int] = None

    for mode in ("confidence", "survivor"):
        enabled = getattr(data, mode)
        if enabled is None:
            continue
        flag = _flag(enabled)
        if not enabled:
            if current_week is None:
                current_week = await get_current_week()
            flag["end_week"] = current_week
            updates[f"participation.metadata.{mode}_removed_at"] = now
            updates[f"participation.metadata.{mode}_removed_by"] = admin_id
        updates[f"participation.{mode}"] = flag

    await _db.db.pool_members.update_one({"_id": member["_id"]}, {"$set": updates})
    await log_audit(
        actor_id=admin_id,
        target_id=user_id,
        action="PARTICIPATION_UPDATE",
        metadata={
            "pool_id": pool_id,
            "before": member.get("participation"),
            "changes": data.model_dump(exclude_none=True),
        },
    )
    logger.info("Participation for %s in %s updated: %s", user_id, pool_id, data.model_dump(exclude_none=True))
    return await get_member(pool_id, user_id)
