"""
backend/tests/test_admin_router.py

Purpose:
    Router-level tests for the admin score refresh, survivor override and
    CSV export endpoints, including their audit records.

Dependencies:
    - pytest
    - nflpool.routers.admin
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from bson import ObjectId

from nflpool.models.survivor import SurvivorOverrideCreate
from nflpool.providers.espn import ScoreFetchError
from nflpool.routers import admin as admin_router

ADMIN = {"_id": ObjectId(), "email": "admin@example.com", "is_admin": True}


def _request():
    return SimpleNamespace(headers={"x-forwarded-for": "203.0.113.7"}, client=None)


def _seed_pool(fake_db):
    fake_db.pools.docs.append({"_id": "office", "name": "Office", "season": 2025})
    fake_db.pool_members.docs.append({
        "pool_id": "office",
        "user_id": "u1",
        "display_name": "Ann",
        "participation": {
            "confidence": {"enabled": True, "status": "active", "end_week": None},
            "survivor": {"enabled": True, "status": "active", "end_week": None},
        },
    })


@pytest.mark.asyncio
async def test_refresh_scores_returns_result_and_audits(fake_db, monkeypatch):
    async def _sync(season, week):
        return {"season": season, "week": week, "updated": 3, "finalized": 1}

    monkeypatch.setattr(admin_router, "sync_week_scores", _sync)

    body = admin_router.ScoreRefreshRequest(week=4, season=2025)
    response = await admin_router.refresh_scores(body, _request(), admin=ADMIN)

    assert response["success"] is True
    assert response["result"]["week"] == 4
    audit = fake_db.audit_logs.docs[0]
    assert audit["action"] == "SCORES_REFRESH"
    assert audit["target_id"] == "2025-W4"
    assert audit["ip_truncated"] == "203.0.113.xxx"


@pytest.mark.asyncio
async def test_refresh_scores_reports_fetch_failure(fake_db, monkeypatch):
    async def _sync(season, week):
        raise ScoreFetchError("ESPN returned HTTP 500")

    monkeypatch.setattr(admin_router, "sync_week_scores", _sync)

    response = await admin_router.refresh_scores(
        admin_router.ScoreRefreshRequest(week=2), _request(), admin=ADMIN,
    )

    assert response == {"success": False, "error": "ESPN returned HTTP 500"}
    assert fake_db.audit_logs.docs == []


@pytest.mark.asyncio
async def test_override_endpoint_shapes_response(fake_db):
    _seed_pool(fake_db)
    fake_db.meta.docs.append({"_id": "current_week", "week": 3})
    fake_db.survivor_entries.docs.append({
        "_id": ObjectId(), "pool_id": "office", "season": 2025, "user_id": "u1",
        "status": "eliminated", "eliminated_week": 2, "elimination_reason": "lost",
        "picks": [], "overrides": [], "exempt_through_week": 0, "version": 4,
    })

    response = await admin_router.override_survivor(
        "office", "u1", SurvivorOverrideCreate(status="alive", reason="appeal upheld"),
        _request(), admin=ADMIN,
    )

    assert response == {"user_id": "u1", "status": "alive", "exempt_through_week": 2, "overrides": 1}
    assert fake_db.survivor_entries.docs[0]["version"] == 5
    assert fake_db.audit_logs.docs[-1]["metadata"]["before"]["status"] == "eliminated"


@pytest.mark.asyncio
async def test_export_csv_streams_header_and_rows(fake_db):
    _seed_pool(fake_db)
    fake_db.confidence_scores.docs.append({
        "pool_id": "office", "season": 2025, "week": 1, "user_id": "u1",
        "games": [
            {"game_id": "g1", "pick": "Kansas City Chiefs", "confidence": 16,
             "outcome": {"kind": "correct"}, "points": 16},
            {"game_id": "g2", "pick": None, "confidence": 0, "outcome": {"kind": "invalid"}, "points": 0},
        ],
    })

    response = await admin_router.export_csv("office", _request(), kind="confidence", admin=ADMIN)

    assert response.media_type == "text/csv"
    assert "office-confidence-2025.csv" in response.headers["content-disposition"]
    chunks = [chunk async for chunk in response.body_iterator]
    body = "".join(c if isinstance(c, str) else c.decode() for c in chunks)
    assert body.splitlines() == [
        "user,week,pick,result,points_or_status",
        "Ann,1,Kansas City Chiefs (16),correct,16",
    ]
    assert fake_db.audit_logs.docs[-1]["action"] == "POOL_EXPORT"
