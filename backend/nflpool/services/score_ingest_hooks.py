"""
backend/nflpool/services/score_ingest_hooks.py

Purpose:
    Hook protocol for side effects after score ingest. The default
    implementation recomputes confidence scores and survivor eliminations
    for every pool of the season once games turn final.

Dependencies:
    - typing
    - nflpool.services.scoring_service
    - nflpool.services.survivor_service
"""

from __future__ import annotations

import logging
from typing import Protocol

import nflpool.database as _db

logger = logging.getLogger("nflpool.score_ingest_hooks")


class ScoreIngestHooks(Protocol):
    async def on_games_finalized(self, season: int, week: int, game_ids: list[str]) -> None:
        ...


class PoolRecalculationHooks:
    """Re-score every pool of the season for the week that produced new or corrected finals."""

    async def on_games_finalized(self, season: int, week: int, game_ids: list[str]) -> None:
        from nflpool.services import scoring_service, survivor_service

        pools = await _db.db.pools.find({"season": season}, {"_id": 1}).to_list(length=500)
        for pool in pools:
            pool_id = pool["_id"]
            try:
                await scoring_service.recompute_week(pool_id, season, week, actor_id="SYSTEM")
                await survivor_service.process_week(pool_id, season, week, actor_id="SYSTEM")
            except Exception:
                logger.exception(
                    "Recalculation failed for pool=%s season=%d week=%d", pool_id, season, week,
                )
        logger.info(
            "Recalculated %d pool(s) after %d final game(s) in week %d",
            len(pools), len(game_ids), week,
        )
