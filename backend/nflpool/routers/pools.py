"""Pool endpoints: confidence picks and standings, survivor picks and table."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from nflpool.models.confidence import ConfidencePicksSubmit, StandingRow
from nflpool.models.survivor import SurvivorPickCreate, SurvivorTableRow
from nflpool.services import pick_service, scoring_service, survivor_service
from nflpool.services.auth_service import get_current_user
from nflpool.services.pool_service import get_member, get_pool

router = APIRouter(prefix="/api/pools", tags=["pools"])


# --- Confidence ---

@router.get("/{pool_id}/confidence/standings", response_model=list[StandingRow])
async def confidence_standings(
    pool_id: str,
    week: Optional[int] = Query(None, ge=1),
    user=Depends(get_current_user),
):
    """Season standings, or one week's when `week` is given."""
    pool = await get_pool(pool_id)
    await get_member(pool_id, str(user["_id"]))
    if week is not None:
        return await scoring_service.get_week_standings(pool_id, pool["season"], week)
    return await scoring_service.get_season_standings(pool_id, pool["season"])


@router.get("/{pool_id}/confidence/{week}")
async def get_confidence_picks(pool_id: str, week: int, user=Depends(get_current_user)):
    """Own picks for one week."""
    pool = await get_pool(pool_id)
    user_id = str(user["_id"])
    await get_member(pool_id, user_id)
    doc = await pick_service.get_confidence_picks(pool_id, user_id, pool["season"], week)
    if not doc:
        return {"week": week, "picks": {}, "flags": []}
    return {"week": week, "picks": doc.get("picks", {}), "flags": doc.get("flags", [])}


@router.put("/{pool_id}/confidence/{week}")
async def submit_confidence_picks(
    pool_id: str,
    week: int,
    body: ConfidencePicksSubmit,
    user=Depends(get_current_user),
):
    return await pick_service.submit_confidence_picks(pool_id, str(user["_id"]), week, body)


# --- Survivor ---

@router.post("/{pool_id}/survivor/pick", status_code=status.HTTP_201_CREATED)
async def make_survivor_pick(
    pool_id: str,
    body: SurvivorPickCreate,
    user=Depends(get_current_user),
):
    entry = await survivor_service.make_pick(pool_id, str(user["_id"]), body)
    return _entry_response(entry)


@router.get("/{pool_id}/survivor/status")
async def survivor_status(pool_id: str, user=Depends(get_current_user)):
    """Own survivor status and picks."""
    pool = await get_pool(pool_id)
    user_id = str(user["_id"])
    await get_member(pool_id, user_id)
    entry = await survivor_service.get_entry(pool_id, pool["season"], user_id)
    if not entry:
        return {"status": "not_started", "picks": [], "used_teams": []}
    return _entry_response(entry)


@router.get("/{pool_id}/survivor/table", response_model=list[SurvivorTableRow])
async def survivor_table(pool_id: str, user=Depends(get_current_user)):
    pool = await get_pool(pool_id)
    await get_member(pool_id, str(user["_id"]))
    return await survivor_service.get_survivor_table(pool_id, pool["season"])


def _entry_response(entry: dict) -> dict:
    return {
        "id": str(entry["_id"]),
        "status": entry["status"],
        "picks": [dict(p) for p in entry.get("picks", [])],
        "used_teams": entry.get("used_teams", []),
        "eliminated_week": entry.get("eliminated_week"),
        "elimination_reason": entry.get("elimination_reason"),
        "exempt_through_week": entry.get("exempt_through_week", 0),
    }
