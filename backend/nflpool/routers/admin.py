"""
backend/nflpool/routers/admin.py

Purpose:
    Admin HTTP router: score refresh, pool and membership management,
    scoring and elimination runs, survivor overrides, accuracy audits,
    schedule import and CSV export.

Dependencies:
    - nflpool.services.auth_service
    - nflpool.services.audit_service
    - nflpool.services.score_ingest_service
    - nflpool.services.scoring_service
    - nflpool.services.survivor_service
"""

import logging
import time as _time
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from nflpool.config import settings
from nflpool.models.game import ScheduleImport
from nflpool.models.pool import ParticipationUpdate, PoolCreate, PoolMemberAdd
from nflpool.models.survivor import SurvivorOverrideCreate
from nflpool.providers.espn import ScoreFetchError
from nflpool.services import (
    accuracy_audit_service,
    export_service,
    game_service,
    pool_service,
    scoring_service,
    survivor_service,
    week_service,
)
from nflpool.services.audit_service import log_audit
from nflpool.services.auth_service import get_admin_user
from nflpool.services.score_ingest_service import sync_week_scores

logger = logging.getLogger("nflpool.admin")
router = APIRouter(prefix="/api/admin", tags=["admin"])


# --- Request models ---

class ScoreRefreshRequest(BaseModel):
    week: Optional[int] = Field(None, ge=1, le=23)
    season: Optional[int] = None


class CurrentWeekUpdate(BaseModel):
    week: Optional[int] = None  # None clears the override


# --- Scores ---

@router.post("/scores/refresh")
async def refresh_scores(
    body: ScoreRefreshRequest, request: Request, admin=Depends(get_admin_user),
):
    """Pull ESPN scores for a week now. Failures are reported, not raised."""
    admin_id = str(admin["_id"])
    season = body.season or settings.NFL_SEASON
    week = body.week or await week_service.get_current_week()

    t0 = _time.monotonic()
    try:
        result = await sync_week_scores(season, week)
    except ScoreFetchError as exc:
        logger.error("Manual score refresh for week %d failed: %s", week, exc)
        return {"success": False, "error": str(exc)}
    duration_ms = int((_time.monotonic() - t0) * 1000)

    await log_audit(
        actor_id=admin_id, target_id=f"{season}-W{week}", action="SCORES_REFRESH",
        metadata={"duration_ms": duration_ms, "updated": result["updated"], "finalized": result["finalized"]},
        request=request,
    )
    return {"success": True, "result": result}


@router.post("/schedule")
async def import_schedule(body: ScheduleImport, request: Request, admin=Depends(get_admin_user)):
    result = await game_service.import_schedule(body.season, body.games)
    await log_audit(
        actor_id=str(admin["_id"]), target_id=str(body.season), action="SCHEDULE_IMPORT",
        metadata={"inserted": result["inserted"], "updated": result["updated"]}, request=request,
    )
    return result


@router.put("/current-week")
async def set_current_week(body: CurrentWeekUpdate, request: Request, admin=Depends(get_admin_user)):
    admin_id = str(admin["_id"])
    week = await week_service.set_current_week(body.week, admin_id)
    await log_audit(
        actor_id=admin_id, target_id="current_week", action="CURRENT_WEEK_SET",
        metadata={"week": body.week}, request=request,
    )
    return {"week": week, "override": body.week is not None}


# --- Pools & members ---

@router.post("/pools", status_code=status.HTTP_201_CREATED)
async def create_pool(body: PoolCreate, admin=Depends(get_admin_user)):
    pool = await pool_service.create_pool(body, str(admin["_id"]))
    return {"id": pool["_id"], "name": pool["name"], "season": pool["season"]}


@router.post("/pools/{pool_id}/members", status_code=status.HTTP_201_CREATED)
async def add_member(pool_id: str, body: PoolMemberAdd, admin=Depends(get_admin_user)):
    member = await pool_service.add_member(pool_id, body, str(admin["_id"]))
    return _member_response(member)


@router.get("/pools/{pool_id}/members")
async def list_members(
    pool_id: str,
    mode: Optional[Literal["confidence", "survivor"]] = Query(None),
    admin=Depends(get_admin_user),
):
    await pool_service.get_pool(pool_id)
    members = await pool_service.list_members(pool_id, mode=mode)
    return [_member_response(m) for m in members]


@router.patch("/pools/{pool_id}/members/{user_id}/participation")
async def update_participation(
    pool_id: str, user_id: str, body: ParticipationUpdate, admin=Depends(get_admin_user),
):
    member = await pool_service.update_participation(pool_id, user_id, body, str(admin["_id"]))
    return _member_response(member)


# --- Scoring & elimination runs ---

@router.post("/pools/{pool_id}/weeks/{week}/score")
async def score_week(pool_id: str, week: int, admin=Depends(get_admin_user)):
    pool = await pool_service.get_pool(pool_id)
    return await scoring_service.recompute_week(pool_id, pool["season"], week, actor_id=str(admin["_id"]))


@router.post("/pools/{pool_id}/weeks/{week}/survivor")
async def process_survivor_week(pool_id: str, week: int, admin=Depends(get_admin_user)):
    pool = await pool_service.get_pool(pool_id)
    table = await survivor_service.process_week(pool_id, pool["season"], week, actor_id=str(admin["_id"]))
    return {"week": week, "table": table}


@router.post("/pools/{pool_id}/survivor/{user_id}/override")
async def override_survivor(
    pool_id: str,
    user_id: str,
    body: SurvivorOverrideCreate,
    request: Request,
    admin=Depends(get_admin_user),
):
    """Manually revive or eliminate a survivor entry (audited)."""
    entry = await survivor_service.override_status(
        pool_id, user_id, body, str(admin["_id"]), request=request,
    )
    return {
        "user_id": user_id,
        "status": entry["status"],
        "exempt_through_week": entry.get("exempt_through_week", 0),
        "overrides": len(entry.get("overrides", [])),
    }


@router.get("/pools/{pool_id}/weeks/{week}/accuracy-audit")
async def accuracy_audit(pool_id: str, week: int, admin=Depends(get_admin_user)):
    pool = await pool_service.get_pool(pool_id)
    return await accuracy_audit_service.audit_week(pool_id, pool["season"], week, actor_id=str(admin["_id"]))


@router.get("/pools/{pool_id}/export.csv")
async def export_csv(
    pool_id: str,
    request: Request,
    kind: Literal["confidence", "survivor"] = Query("confidence"),
    admin=Depends(get_admin_user),
):
    """Export picks and results as CSV (admin only)."""
    pool = await pool_service.get_pool(pool_id)
    rows = await export_service.build_rows(pool_id, pool["season"], kind)
    await log_audit(
        actor_id=str(admin["_id"]), target_id=pool_id, action="POOL_EXPORT",
        metadata={"kind": kind, "rows": len(rows)}, request=request,
    )
    return StreamingResponse(
        iter([export_service.rows_to_csv(rows)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={pool_id}-{kind}-{pool['season']}.csv"},
    )


def _member_response(member: dict) -> dict:
    return {
        "user_id": member["user_id"],
        "display_name": member.get("display_name", ""),
        "email": member.get("email"),
        "participation": member.get("participation", {}),
    }
