"""Game schedule service: the internal game records every pool reads.

Schedule import is the only writer that creates games; the score poller
only updates existing records.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status

import nflpool.database as _db
from nflpool.models.game import ScheduleGame
from nflpool.services.team_normalizer import is_known_team, normalize_team_name
from nflpool.utils import ensure_utc, utcnow

logger = logging.getLogger("nflpool.game_service")


async def import_schedule(season: int, games: list[ScheduleGame]) -> dict:
    """Upsert schedule rows. Existing results (status, scores) are left untouched."""
    now = utcnow()
    inserted = updated = 0
    unknown_teams: set[str] = set()

    for game in games:
        for raw in (game.home_team, game.away_team):
            if not is_known_team(raw):
                unknown_teams.add(raw)
        result = await _db.db.games.update_one(
            {"season": season, "week": game.week, "game_id": str(game.game_id)},
            {
                "$set": {
                    "home_team": normalize_team_name(game.home_team),
                    "away_team": normalize_team_name(game.away_team),
                    "kickoff": game.kickoff,
                    "venue": game.venue,
                    "updated_at": now,
                },
                "$setOnInsert": {
                    "status": "scheduled",
                    "home_score": None,
                    "away_score": None,
                    "winner": None,
                    "is_tie": False,
                    "espn_id": None,
                    "created_at": now,
                },
            },
            upsert=True,
        )
        if result.upserted_id is not None:
            inserted += 1
        else:
            updated += 1

    if unknown_teams:
        logger.warning("Schedule import: unmapped team names %s", sorted(unknown_teams))
    logger.info(
        "Schedule import season=%d: %d inserted, %d updated", season, inserted, updated,
    )
    return {"inserted": inserted, "updated": updated, "unknown_teams": sorted(unknown_teams)}


async def get_week_games(season: int, week: int) -> list[dict]:
    """All games of one week, ordered by game_id."""
    games = await _db.db.games.find(
        {"season": season, "week": week},
    ).sort("game_id", 1).to_list(length=64)
    return games


async def get_games_through_week(season: int, through_week: int) -> dict[int, list[dict]]:
    """Games for weeks 1..through_week, grouped by week."""
    docs = await _db.db.games.find(
        {"season": season, "week": {"$lte": through_week}},
    ).to_list(length=64 * max(through_week, 1))
    by_week: dict[int, list[dict]] = {}
    for doc in docs:
        by_week.setdefault(doc["week"], []).append(doc)
    return by_week


async def get_game(season: int, week: int, game_id: str) -> dict:
    game = await _db.db.games.find_one({"season": season, "week": week, "game_id": str(game_id)})
    if not game:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Game not found.")
    return game


def is_game_locked(game: dict, now: Optional[datetime] = None) -> bool:
    """A game locks at kickoff, or as soon as it is no longer scheduled."""
    if game.get("status", "scheduled") != "scheduled":
        return True
    kickoff = game.get("kickoff")
    if kickoff is None:
        return False
    return ensure_utc(kickoff) <= (now or utcnow())
