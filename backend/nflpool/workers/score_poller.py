import logging
from datetime import datetime
from typing import Optional

from nflpool.config import settings
from nflpool.providers.espn import ScoreFetchError
from nflpool.services.score_ingest_service import sync_week_scores
from nflpool.services.week_service import get_current_week
from nflpool.utils import utcnow
from nflpool.workers._state import set_synced

logger = logging.getLogger("nflpool.score_poller")

# The regular season plus playoffs run September through January.
_OFF_SEASON_MONTHS = {2, 3, 4, 5, 6, 7, 8}
# Tuesday and Wednesday carry no games.
_NON_GAME_WEEKDAYS = {1, 2}


def should_poll(now: datetime) -> bool:
    if now.month in _OFF_SEASON_MONTHS:
        return False
    return now.weekday() not in _NON_GAME_WEEKDAYS


async def poll_scores(force: bool = False, now: Optional[datetime] = None) -> dict | None:
    """Scheduled job: pull the current week's scores from ESPN.

    Fetch failures are logged and the run aborts; the next tick retries.
    """
    now = now or utcnow()
    if not force and not should_poll(now):
        logger.debug("Score poll skipped (off-season or non-game day)")
        return None

    week = await get_current_week(now)
    try:
        result = await sync_week_scores(settings.NFL_SEASON, week)
    except ScoreFetchError as exc:
        logger.error("Score poll failed for week %d: %s", week, exc)
        return None

    await set_synced("score_poller", metrics={
        "week": week,
        "updated": result["updated"],
        "finalized": result["finalized"],
        "unmatched": result["unmatched"],
    })
    return dict(result)
