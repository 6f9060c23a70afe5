"""
backend/nflpool/services/scoring_service.py

Purpose:
    Persist confidence scores. Every run rescores the whole week from the
    stored picks and game results, upserts one confidence_scores document
    per member and refreshes the member's season total. Re-running with
    unchanged inputs rewrites identical documents.

Dependencies:
    - nflpool.database
    - nflpool.services.confidence_engine
    - nflpool.services.audit_service
"""

import logging

import nflpool.database as _db
from nflpool.services.audit_service import ScoringAuditTrail
from nflpool.services.confidence_engine import score_week
from nflpool.services.game_service import get_week_games
from nflpool.services.pool_service import get_pool, list_members
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.scoring_service")


async def _refresh_season_total(pool_id: str, season: int, user_id: str, display_name: str) -> dict:
    weeks = await _db.db.confidence_scores.find(
        {"pool_id": pool_id, "season": season, "user_id": user_id},
    ).to_list(length=32)
    total = {
        "points": sum(w.get("total_points", 0) for w in weeks),
        "correct_picks": sum(w.get("correct_picks", 0) for w in weeks),
        "weeks_scored": len(weeks),
        "by_week": {str(w["week"]): w.get("total_points", 0) for w in weeks},
    }
    await _db.db.season_totals.update_one(
        {"pool_id": pool_id, "season": season, "user_id": user_id},
        {"$set": {**total, "display_name": display_name, "updated_at": utcnow()}},
        upsert=True,
    )
    return total


async def recompute_week(pool_id: str, season: int, week: int, actor_id: str = "SYSTEM") -> dict:
    """Rescore one week for every confidence participant of a pool."""
    pool = await get_pool(pool_id)
    season = season or pool["season"]
    games = await get_week_games(season, week)
    members = await list_members(pool_id, mode="confidence", week=week)
    picks_docs = await _db.db.confidence_picks.find(
        {"pool_id": pool_id, "season": season, "week": week},
    ).to_list(length=1000)
    picks_by_user = {doc["user_id"]: doc.get("picks") or {} for doc in picks_docs}

    trail = ScoringAuditTrail("confidence", pool_id, season, week, actor_id)
    trail.step("load", games=len(games), members=len(members), submissions=len(picks_docs))

    now = utcnow()
    rows = []
    for member in members:
        user_id = member["user_id"]
        result = score_week(picks_by_user.get(user_id), games, week=week)
        doc = result.to_dict()
        await _db.db.confidence_scores.update_one(
            {"pool_id": pool_id, "season": season, "week": week, "user_id": user_id},
            {"$set": {**doc, "display_name": member.get("display_name", ""), "computed_at": now}},
            upsert=True,
        )
        await _refresh_season_total(pool_id, season, user_id, member.get("display_name", ""))
        trail.step(
            "score_user",
            user_id=user_id,
            total_points=result.total_points,
            correct_picks=result.correct_picks,
            flags=[f["code"] for f in result.flags],
        )
        rows.append({
            "user_id": user_id,
            "display_name": member.get("display_name", ""),
            "points": result.total_points,
            "correct_picks": result.correct_picks,
        })

    final_games = sum(1 for g in games if g.get("status") == "final")
    run_id = await trail.flush(users=len(rows), games=len(games), final_games=final_games)
    logger.info(
        "Confidence scoring pool=%s season=%d week=%d: %d users, %d/%d games final",
        pool_id, season, week, len(rows), final_games, len(games),
    )
    return {
        "pool_id": pool_id,
        "season": season,
        "week": week,
        "run_id": run_id,
        "standings": _rank(rows),
    }


def _rank(rows: list[dict]) -> list[dict]:
    """Standard competition ranking (1, 2, 2, 4) by points, then correct picks."""
    ordered = sorted(rows, key=lambda r: (-r["points"], -r.get("correct_picks", 0), r["display_name"].lower()))
    previous = None
    for index, row in enumerate(ordered, start=1):
        key = (row["points"], row.get("correct_picks", 0))
        if key != previous:
            rank = index
            previous = key
        row["rank"] = rank
    return ordered


async def get_week_standings(pool_id: str, season: int, week: int) -> list[dict]:
    docs = await _db.db.confidence_scores.find(
        {"pool_id": pool_id, "season": season, "week": week},
    ).to_list(length=1000)
    return _rank([
        {
            "user_id": d["user_id"],
            "display_name": d.get("display_name", ""),
            "points": d.get("total_points", 0),
            "correct_picks": d.get("correct_picks", 0),
            "weeks_scored": 1,
        }
        for d in docs
    ])


async def get_season_standings(pool_id: str, season: int) -> list[dict]:
    docs = await _db.db.season_totals.find({"pool_id": pool_id, "season": season}).to_list(length=1000)
    return _rank([
        {
            "user_id": d["user_id"],
            "display_name": d.get("display_name", ""),
            "points": d.get("points", 0),
            "correct_picks": d.get("correct_picks", 0),
            "weeks_scored": d.get("weeks_scored", 0),
        }
        for d in docs
    ])
