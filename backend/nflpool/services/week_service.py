"""Current NFL week: computed from the season start, overridable by admins."""

import logging
from datetime import date, datetime
from typing import Optional

import nflpool.database as _db
from nflpool.config import settings
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.week_service")

_META_ID = "current_week"


def compute_week(now: Optional[datetime] = None) -> int:
    """Week number from NFL_SEASON_START, 7-day weeks, clamped to the regular season."""
    today = (now or utcnow()).date()
    start = date.fromisoformat(settings.NFL_SEASON_START)
    weeks_since_start = (today - start).days // 7
    return max(1, min(settings.NFL_REGULAR_SEASON_WEEKS, weeks_since_start + 1))


async def get_current_week(now: Optional[datetime] = None) -> int:
    """Admin override from `meta` when present, else the calendar week."""
    doc = await _db.db.meta.find_one({"_id": _META_ID})
    if doc and doc.get("week"):
        return int(doc["week"])
    return compute_week(now)


async def set_current_week(week: Optional[int], actor_id: str) -> int:
    """Pin the current week; None clears the override."""
    if week is None:
        await _db.db.meta.delete_one({"_id": _META_ID})
        logger.info("Current week override cleared by %s", actor_id)
        return compute_week()
    if not 1 <= week <= settings.NFL_REGULAR_SEASON_WEEKS:
        raise ValueError(f"week must be between 1 and {settings.NFL_REGULAR_SEASON_WEEKS}")
    await _db.db.meta.update_one(
        {"_id": _META_ID},
        {"$set": {"week": week, "set_by": actor_id, "updated_at": utcnow()}},
        upsert=True,
    )
    logger.info("Current week pinned to %d by %s", week, actor_id)
    return week
