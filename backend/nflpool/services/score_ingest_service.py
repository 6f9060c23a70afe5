"""
backend/nflpool/services/score_ingest_service.py

Purpose:
    Apply one week of upstream scores onto the internal game records.
    Fetched games are matched to existing records by normalized team pair;
    ingest never creates games, never downgrades a final game, and writes
    only fields whose value changed. Games that turn final, and final games
    whose result is corrected upstream, trigger the post-ingest hook.

Dependencies:
    - nflpool.database
    - nflpool.providers.espn
    - nflpool.services.team_normalizer
    - nflpool.services.score_ingest_types
    - nflpool.services.score_ingest_hooks
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import nflpool.database as _db
from nflpool.providers.espn import ESPNProvider, espn_provider
from nflpool.services.score_ingest_hooks import PoolRecalculationHooks, ScoreIngestHooks
from nflpool.services.score_ingest_types import FetchedGame, IngestResult
from nflpool.services.team_normalizer import alias_key, normalize_team_name
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.score_ingest_service")

_RESULT_FIELDS = ("home_score", "away_score", "winner", "is_tie")

_TRACKED_FIELDS = (
    "status", "home_score", "away_score", "winner", "is_tie",
    "period", "clock", "detail", "espn_id",
)


def _team_key(name: Any) -> str:
    return alias_key(normalize_team_name(name))


def match_game(
    fetched: FetchedGame, games_by_pair: dict[tuple[str, str], dict],
) -> tuple[Optional[dict], bool]:
    """Return (internal game, swapped). swapped means home/away are reversed internally."""
    home = _team_key(fetched["home_team"])
    away = _team_key(fetched["away_team"])
    game = games_by_pair.get((home, away))
    if game is not None:
        return game, False
    game = games_by_pair.get((away, home))
    if game is not None:
        return game, True
    return None, False


def build_updates(game: dict, fetched: FetchedGame, swapped: bool) -> dict[str, Any]:
    """Fields of `game` that differ from the fetched payload, in internal orientation."""
    home_score, away_score = fetched["home_score"], fetched["away_score"]
    if swapped:
        home_score, away_score = away_score, home_score

    incoming: dict[str, Any] = {
        "status": fetched["status"],
        "home_score": home_score,
        "away_score": away_score,
        "winner": normalize_team_name(fetched["winner"]) if fetched["winner"] else None,
        "is_tie": bool(fetched["is_tie"]),
        "period": fetched.get("period"),
        "clock": fetched.get("clock") or "",
        "detail": fetched.get("detail") or "",
        "espn_id": fetched["espn_id"],
    }
    return {
        field: incoming[field]
        for field in _TRACKED_FIELDS
        if game.get(field) != incoming[field]
    }


async def sync_week_scores(
    season: int,
    week: int,
    *,
    provider: ESPNProvider | None = None,
    hooks: ScoreIngestHooks | None = None,
) -> IngestResult:
    """Fetch one week from ESPN and apply it to the stored games.

    Raises ScoreFetchError when the upstream fetch fails; nothing is written
    in that case.
    """
    provider = provider or espn_provider
    hooks = hooks if hooks is not None else PoolRecalculationHooks()

    fetched_games = await provider.fetch_week_games(season, week)
    internal = await _db.db.games.find({"season": season, "week": week}).to_list(length=64)
    games_by_pair = {
        (_team_key(g["home_team"]), _team_key(g["away_team"])): g for g in internal
    }

    result: IngestResult = {
        "season": season,
        "week": week,
        "processed": 0,
        "updated": 0,
        "unchanged": 0,
        "unmatched": 0,
        "finalized": 0,
        "corrected": 0,
        "regressions_skipped": 0,
        "finalized_game_ids": [],
        "corrected_game_ids": [],
    }
    now = utcnow()

    for fetched in fetched_games:
        result["processed"] += 1
        game, swapped = match_game(fetched, games_by_pair)
        if game is None:
            result["unmatched"] += 1
            logger.warning(
                "No internal game for %s @ %s (week %d, espn_id=%s)",
                fetched["away_team"], fetched["home_team"], week, fetched["espn_id"],
            )
            continue

        current = game.get("status", "scheduled")
        if current == "final" and fetched["status"] != "final":
            result["regressions_skipped"] += 1
            logger.warning(
                "Ignoring %s payload for final game %s (week %d)",
                fetched["status"], game["game_id"], week,
            )
            continue

        updates = build_updates(game, fetched, swapped)
        if not updates:
            result["unchanged"] += 1
            continue

        updates["updated_at"] = now
        # Guard the write so a concurrent finalize is never overwritten.
        query: dict[str, Any] = {"_id": game["_id"]}
        if fetched["status"] != "final":
            query["status"] = {"$ne": "final"}
        write = await _db.db.games.update_one(query, {"$set": updates})
        if write.matched_count == 0:
            result["regressions_skipped"] += 1
            continue

        result["updated"] += 1
        game.update(updates)
        if current != "final" and fetched["status"] == "final":
            result["finalized"] += 1
            result["finalized_game_ids"].append(str(game["game_id"]))
            logger.info(
                "Game %s final: %s %s - %s %s",
                game["game_id"], game["away_team"], game.get("away_score"),
                game["home_team"], game.get("home_score"),
            )
        elif current == "final" and any(field in updates for field in _RESULT_FIELDS):
            result["corrected"] += 1
            result["corrected_game_ids"].append(str(game["game_id"]))
            logger.info(
                "Final game %s corrected: %s %s - %s %s",
                game["game_id"], game["away_team"], game.get("away_score"),
                game["home_team"], game.get("home_score"),
            )

    logger.info(
        "Score sync season=%d week=%d: %d processed, %d updated, %d unchanged, "
        "%d unmatched, %d finalized, %d corrected, %d regressions skipped",
        season, week, result["processed"], result["updated"], result["unchanged"],
        result["unmatched"], result["finalized"], result["corrected"], result["regressions_skipped"],
    )

    changed_ids = result["finalized_game_ids"] + result["corrected_game_ids"]
    if changed_ids:
        try:
            await hooks.on_games_finalized(season, week, changed_ids)
        except Exception:
            logger.exception("Post-ingest hook failed for season=%d week=%d", season, week)

    return result
