"""Survivor mode: pick one winning team per week, eliminated on loss, no repeats.

Entries are written with optimistic concurrency: every change is
conditional on the `version` the caller read, and eliminations are also
conditional on `status == "alive"`, so an eliminated entry only comes back
through an explicit admin override.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from pymongo.errors import DuplicateKeyError

import nflpool.database as _db
from nflpool.config import settings
from nflpool.models.outcome import Correct, outcome_from_dict, outcome_to_dict
from nflpool.models.survivor import SurvivorOverrideCreate, SurvivorPickCreate
from nflpool.services.audit_service import ScoringAuditTrail, log_audit
from nflpool.services.game_service import get_games_through_week, get_week_games, is_game_locked
from nflpool.services.pool_service import get_pool, list_members, participates_in, require_participation
from nflpool.services.survivor_engine import evaluate_survivor, find_team_game
from nflpool.services.team_normalizer import is_known_team, normalize_team_name, teams_match
from nflpool.services.week_service import get_current_week
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.survivor_service")


def _entry_filter(pool_id: str, season: int, user_id: str) -> dict:
    return {"pool_id": pool_id, "season": season, "user_id": user_id}


def _used_teams(picks: list[dict]) -> list[str]:
    used: list[str] = []
    for pick in sorted(picks, key=lambda p: p["week"]):
        if pick.get("team") and pick["team"] not in used:
            used.append(pick["team"])
    return used


async def get_entry(pool_id: str, season: int, user_id: str) -> dict | None:
    return await _db.db.survivor_entries.find_one(_entry_filter(pool_id, season, user_id))


async def make_pick(pool_id: str, user_id: str, data: SurvivorPickCreate) -> dict:
    """Make or replace the survivor pick for one week.

    Validates:
    - Member takes part in the survivor pool and is still alive
    - Team is a known NFL team scheduled that week
    - Game has not kicked off (nor has the game of the pick being replaced)
    - Team was not used in another week
    """
    pool = await get_pool(pool_id)
    season = pool["season"]
    await require_participation(pool_id, user_id, "survivor")

    if not is_known_team(data.team):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Unknown team '{data.team}'.")
    team = normalize_team_name(data.team)

    games = await get_week_games(season, data.week)
    game = find_team_game(team, games, data.game_id)
    if game is None:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, f"{team} does not play in week {data.week}.",
        )
    if is_game_locked(game):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Game is locked.")

    entry = await get_entry(pool_id, season, user_id)
    picks: list[dict] = list((entry or {}).get("picks") or [])

    if entry and entry.get("status") == "eliminated":
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "You have been eliminated.")

    previous = next((p for p in picks if p["week"] == data.week), None)
    if previous is not None:
        previous_game = next(
            (g for g in games if str(g["game_id"]) == str(previous.get("game_id"))), None,
        )
        if previous_game is not None and is_game_locked(previous_game):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Your pick for this week is locked.")

    for pick in picks:
        if pick["week"] != data.week and teams_match(pick.get("team"), team):
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"'{team}' was already used in week {pick['week']}. Choose a different team.",
            )

    now = utcnow()
    new_pick = {
        "week": data.week,
        "team": team,
        "game_id": str(game["game_id"]),
        "picked_at": now,
        "outcome": None,
    }
    picks = sorted([p for p in picks if p["week"] != data.week] + [new_pick], key=lambda p: p["week"])

    if entry is None:
        entry = {
            **_entry_filter(pool_id, season, user_id),
            "status": "alive",
            "picks": picks,
            "used_teams": _used_teams(picks),
            "eliminated_week": None,
            "elimination_reason": None,
            "elimination_team": None,
            "eliminated_at": None,
            "exempt_through_week": 0,
            "overrides": [],
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await _db.db.survivor_entries.insert_one(entry)
        except DuplicateKeyError:
            raise HTTPException(status.HTTP_409_CONFLICT, "Survivor entry changed concurrently, retry.")
        entry["_id"] = result.inserted_id
    else:
        result = await _db.db.survivor_entries.update_one(
            {"_id": entry["_id"], "version": entry.get("version", 0), "status": "alive"},
            {
                "$set": {"picks": picks, "used_teams": _used_teams(picks), "updated_at": now},
                "$inc": {"version": 1},
            },
        )
        if result.matched_count == 0:
            raise HTTPException(status.HTTP_409_CONFLICT, "Survivor entry changed concurrently, retry.")
        entry.update({
            "picks": picks,
            "used_teams": _used_teams(picks),
            "version": entry.get("version", 0) + 1,
            "updated_at": now,
        })

    logger.info(
        "Survivor pick: user=%s pool=%s week=%d team=%s", user_id, pool_id, data.week, team,
    )
    return entry


async def process_week(pool_id: str, season: int, week: int, actor_id: str = "SYSTEM") -> list[dict]:
    """Evaluate every survivor participant through `week` and persist eliminations."""
    pool = await get_pool(pool_id)
    season = season or pool["season"]
    members = await list_members(pool_id, mode="survivor", week=week)
    results = await get_games_through_week(season, week)
    entries = {
        e["user_id"]: e
        for e in await _db.db.survivor_entries.find({"pool_id": pool_id, "season": season}).to_list(length=1000)
    }

    trail = ScoringAuditTrail("survivor", pool_id, season, week, actor_id)
    trail.step("load", members=len(members), entries=len(entries), weeks_with_games=len(results))
    now = utcnow()
    newly_eliminated = 0

    for member in members:
        user_id = member["user_id"]
        entry = entries.get(user_id)
        if entry and entry.get("status") == "eliminated":
            continue

        picks = list((entry or {}).get("picks") or [])
        evaluation = evaluate_survivor(
            {p["week"]: p for p in picks},
            results,
            through_week=week,
            exempt_through_week=(entry or {}).get("exempt_through_week", 0),
            tie_eliminates=settings.SURVIVOR_TIE_ELIMINATES,
        )
        for pick in picks:
            outcome = evaluation.weeks.get(pick["week"])
            if outcome is not None:
                pick["outcome"] = outcome_to_dict(outcome)

        update: dict = {"picks": picks, "updated_at": now}
        if evaluation.is_eliminated:
            update.update({
                "status": "eliminated",
                "eliminated_week": evaluation.eliminated_week,
                "elimination_reason": evaluation.reason,
                "elimination_team": evaluation.team,
                "eliminated_at": now,
            })

        if entry is None:
            if not evaluation.is_eliminated:
                continue
            try:
                await _db.db.survivor_entries.update_one(
                    {**_entry_filter(pool_id, season, user_id), "status": "alive"},
                    {
                        "$set": update,
                        "$setOnInsert": {
                            "used_teams": [],
                            "exempt_through_week": 0,
                            "overrides": [],
                            "version": 1,
                            "created_at": now,
                        },
                    },
                    upsert=True,
                )
            except DuplicateKeyError:
                logger.info("Survivor entry for %s created concurrently, skipping", user_id)
                continue
        else:
            write = await _db.db.survivor_entries.update_one(
                {"_id": entry["_id"], "status": "alive", "version": entry.get("version", 0)},
                {"$set": update, "$inc": {"version": 1}},
            )
            if write.matched_count == 0:
                logger.warning(
                    "Survivor entry %s changed during evaluation, left for next run", user_id,
                )
                trail.step("skip_conflict", user_id=user_id)
                continue

        if evaluation.is_eliminated:
            newly_eliminated += 1
            trail.step(
                "eliminate",
                user_id=user_id,
                week=evaluation.eliminated_week,
                reason=evaluation.reason,
                team=evaluation.team,
            )
            logger.info(
                "Survivor elimination: user=%s pool=%s week=%d reason=%s team=%s",
                user_id, pool_id, evaluation.eliminated_week, evaluation.reason, evaluation.team,
            )

    await trail.flush(members=len(members), newly_eliminated=newly_eliminated)
    return await get_survivor_table(pool_id, season)


async def override_status(
    pool_id: str,
    user_id: str,
    data: SurvivorOverrideCreate,
    admin_id: str,
    request: Optional[Request] = None,
) -> dict:
    """Manually set an entry's status.

    Reviving exempts the week the entry fell in and every week before the
    current one. The current week stays open and is judged normally.
    """
    pool = await get_pool(pool_id)
    season = pool["season"]
    entry = await get_entry(pool_id, season, user_id)
    if entry is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Survivor entry not found.")

    current_week = await get_current_week()
    now = utcnow()
    override = {
        "status": data.status,
        "reason": data.reason,
        "admin_id": admin_id,
        "week": current_week,
        "created_at": now,
    }
    if data.status == "alive":
        update = {
            "status": "alive",
            "eliminated_week": None,
            "elimination_reason": None,
            "elimination_team": None,
            "eliminated_at": None,
            "exempt_through_week": max(
                entry.get("exempt_through_week", 0),
                entry.get("eliminated_week") or 0,
                current_week - 1,
            ),
        }
    else:
        update = {
            "status": "eliminated",
            "eliminated_week": current_week,
            "elimination_reason": "admin_override",
            "elimination_team": None,
            "eliminated_at": now,
        }
    update["updated_at"] = now

    result = await _db.db.survivor_entries.update_one(
        {"_id": entry["_id"], "version": entry.get("version", 0)},
        {"$set": update, "$push": {"overrides": override}, "$inc": {"version": 1}},
    )
    if result.matched_count == 0:
        raise HTTPException(status.HTTP_409_CONFLICT, "Survivor entry changed concurrently, retry.")

    await log_audit(
        actor_id=admin_id,
        target_id=user_id,
        action="SURVIVOR_OVERRIDE",
        metadata={
            "pool_id": pool_id,
            "season": season,
            "before": {
                "status": entry.get("status"),
                "eliminated_week": entry.get("eliminated_week"),
                "elimination_reason": entry.get("elimination_reason"),
            },
            "after": data.status,
            "reason": data.reason,
        },
        request=request,
    )
    logger.warning(
        "Survivor override by %s: user=%s pool=%s %s -> %s (%s)",
        admin_id, user_id, pool_id, entry.get("status"), data.status, data.reason,
    )
    return await get_entry(pool_id, season, user_id)


def _weeks_survived(entry: dict) -> int:
    return sum(
        1 for p in entry.get("picks") or []
        if p.get("outcome") and isinstance(outcome_from_dict(p["outcome"]), Correct)
    )


async def get_survivor_table(pool_id: str, season: int) -> list[dict]:
    """Survivor participants plus removed members who still hold an entry.

    Alive first, then by weeks survived.
    """
    members = await list_members(pool_id)
    entries = {
        e["user_id"]: e
        for e in await _db.db.survivor_entries.find({"pool_id": pool_id, "season": season}).to_list(length=1000)
    }
    rows = []
    for member in members:
        participating = participates_in(member, "survivor")
        if not participating and member["user_id"] not in entries:
            continue
        entry = entries.get(member["user_id"]) or {}
        picks = entry.get("picks") or []
        rows.append({
            "user_id": member["user_id"],
            "display_name": member.get("display_name", ""),
            "status": entry.get("status", "alive"),
            "current_pick": picks[-1]["team"] if picks else None,
            "eliminated_week": entry.get("eliminated_week"),
            "reason": entry.get("elimination_reason"),
            "weeks_survived": _weeks_survived(entry),
            "participating": participating,
        })
    rows.sort(key=lambda r: (r["status"] != "alive", -r["weeks_survived"], r["display_name"].lower()))
    return rows
