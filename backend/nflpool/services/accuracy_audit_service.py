"""
backend/nflpool/services/accuracy_audit_service.py

Purpose:
    Cross-check stored confidence scores. Each member's week is scored twice
    from the raw picks and results; the two runs must agree with each other
    (idempotence) and with the stored confidence_scores document. Any
    difference is reported per user and per game.

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

logger = logging.getLogger("nflpool.accuracy_audit")


def _game_points(score_doc: dict) -> dict[str, int]:
    return {str(g.get("game_id")): int(g.get("points", 0)) for g in score_doc.get("games") or []}


async def audit_week(pool_id: str, season: int, week: int, actor_id: str = "SYSTEM") -> dict:
    pool = await get_pool(pool_id)
    season = season or pool["season"]
    games = await get_week_games(season, week)
    members = await list_members(pool_id, mode="confidence", week=week)
    picks_docs = await _db.db.confidence_picks.find(
        {"pool_id": pool_id, "season": season, "week": week},
    ).to_list(length=1000)
    picks_by_user = {d["user_id"]: d.get("picks") or {} for d in picks_docs}
    stored_docs = await _db.db.confidence_scores.find(
        {"pool_id": pool_id, "season": season, "week": week},
    ).to_list(length=1000)
    stored_by_user = {d["user_id"]: d for d in stored_docs}

    trail = ScoringAuditTrail("accuracy_audit", pool_id, season, week, actor_id)
    discrepancies: list[dict] = []
    non_idempotent: list[str] = []

    for member in members:
        user_id = member["user_id"]
        first = score_week(picks_by_user.get(user_id), games, week=week).to_dict()
        second = score_week(picks_by_user.get(user_id), games, week=week).to_dict()
        if first != second:
            non_idempotent.append(user_id)

        stored = stored_by_user.get(user_id)
        if stored is None:
            if first["total_points"] or picks_by_user.get(user_id):
                discrepancies.append({
                    "user_id": user_id,
                    "code": "missing_score",
                    "expected_points": first["total_points"],
                })
            continue

        if stored.get("total_points", 0) != first["total_points"]:
            expected_by_game = _game_points(first)
            stored_by_game = _game_points(stored)
            differing = sorted(
                game_id for game_id in set(expected_by_game) | set(stored_by_game)
                if expected_by_game.get(game_id, 0) != stored_by_game.get(game_id, 0)
            )
            discrepancies.append({
                "user_id": user_id,
                "code": "points_mismatch",
                "stored_points": stored.get("total_points", 0),
                "expected_points": first["total_points"],
                "games": differing,
            })

    for item in discrepancies:
        trail.step("discrepancy", **item)
    for user_id in non_idempotent:
        trail.step("non_idempotent", user_id=user_id)

    accurate = not discrepancies and not non_idempotent
    run_id = await trail.flush(
        users=len(members), discrepancies=len(discrepancies), accurate=accurate,
    )
    if accurate:
        logger.info("Accuracy audit pool=%s week=%d: %d users verified", pool_id, week, len(members))
    else:
        logger.warning(
            "Accuracy audit pool=%s week=%d: %d discrepancies, %d non-idempotent",
            pool_id, week, len(discrepancies), len(non_idempotent),
        )
    return {
        "pool_id": pool_id,
        "season": season,
        "week": week,
        "run_id": run_id,
        "users_checked": len(members),
        "accurate": accurate,
        "discrepancies": discrepancies,
        "non_idempotent": non_idempotent,
    }
