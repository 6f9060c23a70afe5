"""Confidence pick submission.

Winners must be one of the game's two teams and game ids must belong to
the week. Confidence values are stored as submitted; problems with the
1..N distribution are flagged, not rejected. Locked games keep the pick
that was stored before kickoff.
"""

import logging

from fastapi import HTTPException, status

import nflpool.database as _db
from nflpool.models.confidence import ConfidencePicksSubmit
from nflpool.services.confidence_engine import validate_confidence_values
from nflpool.services.game_service import get_week_games, is_game_locked
from nflpool.services.pool_service import get_pool, require_participation
from nflpool.services.team_normalizer import normalize_team_name, teams_match
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.pick_service")


async def get_confidence_picks(pool_id: str, user_id: str, season: int, week: int) -> dict | None:
    return await _db.db.confidence_picks.find_one({
        "pool_id": pool_id, "user_id": user_id, "season": season, "week": week,
    })


async def submit_confidence_picks(
    pool_id: str, user_id: str, week: int, data: ConfidencePicksSubmit,
) -> dict:
    pool = await get_pool(pool_id)
    season = pool["season"]
    await require_participation(pool_id, user_id, "confidence")

    games = await get_week_games(season, week)
    if not games:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"No games scheduled for week {week}.")
    games_by_id = {str(g["game_id"]): g for g in games}

    existing = await get_confidence_picks(pool_id, user_id, season, week)
    stored = dict((existing or {}).get("picks") or {})
    merged = dict(stored)
    kept_locked: list[str] = []

    for game_id, pick in data.picks.items():
        game = games_by_id.get(str(game_id))
        if game is None:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST, f"Game {game_id} is not part of week {week}.",
            )
        if is_game_locked(game):
            if stored.get(game_id) != pick.model_dump():
                kept_locked.append(game_id)
            continue
        if not pick.winner:
            merged.pop(game_id, None)
            continue
        if not (teams_match(pick.winner, game["home_team"]) or teams_match(pick.winner, game["away_team"])):
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"'{pick.winner}' does not play in game {game_id}.",
            )
        merged[game_id] = {
            "winner": normalize_team_name(pick.winner),
            "confidence": pick.confidence,
        }

    flags = validate_confidence_values(merged, len(games))
    if flags:
        logger.warning(
            "Confidence flags for user=%s pool=%s week=%d: %s",
            user_id, pool_id, week, [f["code"] for f in flags],
        )
    if kept_locked:
        logger.info(
            "Ignored changes to locked games %s for user=%s week=%d", kept_locked, user_id, week,
        )

    now = utcnow()
    await _db.db.confidence_picks.update_one(
        {"pool_id": pool_id, "user_id": user_id, "season": season, "week": week},
        {
            "$set": {"picks": merged, "flags": flags, "updated_at": now},
            "$setOnInsert": {"submitted_at": now},
        },
        upsert=True,
    )
    return {
        "pool_id": pool_id,
        "season": season,
        "week": week,
        "picks": merged,
        "flags": flags,
        "locked_games_ignored": kept_locked,
    }
