"""
backend/tests/test_espn_provider.py

Purpose:
    ESPN scoreboard parsing and fetch error handling, driven through an
    httpx.MockTransport so no network is touched.

Dependencies:
    - pytest
    - httpx
    - nflpool.providers.espn
"""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from nflpool.providers.espn import ESPNProvider, ScoreFetchError, map_status, parse_event
from nflpool.providers.http_client import ResilientClient


def _event(event_id="401", home=("Kansas City Chiefs", "27"), away=("Buffalo Bills", "24"),
           state="post", completed=True, name="STATUS_FINAL"):
    return {
        "id": event_id,
        "date": "2025-09-07T17:00Z",
        "competitions": [{
            "venue": {"fullName": "Arrowhead Stadium"},
            "status": {
                "period": 4,
                "displayClock": "0:00",
                "type": {"state": state, "completed": completed, "name": name, "detail": "Final"},
            },
            "competitors": [
                {"homeAway": "home", "score": home[1], "team": {"displayName": home[0]}},
                {"homeAway": "away", "score": away[1], "team": {"displayName": away[0]}},
            ],
        }],
    }


def _provider(handler) -> ESPNProvider:
    client = ResilientClient("espn-test", transport=httpx.MockTransport(handler))
    return ESPNProvider(client=client, base_url="https://espn.test/nfl/")


@pytest.mark.parametrize(
    "status, expected",
    [
        ({"type": {"completed": True, "state": "post"}}, "final"),
        ({"type": {"state": "post", "name": "STATUS_FINAL"}}, "final"),
        ({"type": {"state": "post", "name": "STATUS_POSTPONED"}}, "scheduled"),
        ({"type": {"state": "in", "name": "STATUS_IN_PROGRESS"}}, "in_progress"),
        ({"type": {"state": "pre", "name": "STATUS_HALFTIME"}}, "in_progress"),
        ({"type": {"state": "pre", "name": "STATUS_SCHEDULED"}}, "scheduled"),
        ({}, "scheduled"),
        (None, "scheduled"),
    ],
)
def test_map_status(status, expected):
    assert map_status(status) == expected


def test_parse_final_event():
    parsed = parse_event(_event())

    assert parsed["espn_id"] == "401"
    assert parsed["home_score"] == 27
    assert parsed["away_score"] == 24
    assert parsed["status"] == "final"
    assert parsed["winner"] == "Kansas City Chiefs"
    assert parsed["is_tie"] is False
    assert parsed["kickoff"] == datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc)
    assert parsed["venue"] == "Arrowhead Stadium"


def test_parse_tied_and_scheduled_events():
    tied = parse_event(_event(home=("Dallas Cowboys", "20"), away=("New York Giants", {"value": 20.0})))
    assert tied["is_tie"] is True
    assert tied["winner"] is None

    scheduled = parse_event(_event(state="pre", completed=False, name="STATUS_SCHEDULED",
                                   home=("Dallas Cowboys", "0"), away=("New York Giants", "0")))
    assert scheduled["status"] == "scheduled"
    assert scheduled["home_score"] is None
    assert scheduled["winner"] is None


def test_final_event_without_scores_is_not_final():
    parsed = parse_event(_event(home=("Dallas Cowboys", ""), away=("New York Giants", "")))

    assert parsed["status"] == "in_progress"
    assert parsed["winner"] is None
    assert parsed["is_tie"] is False


def test_non_finite_score_parses_as_missing():
    parsed = parse_event(_event(home=("Dallas Cowboys", "inf"), away=("New York Giants", "17")))

    assert parsed["home_score"] is None
    assert parsed["away_score"] == 17
    assert parsed["status"] == "in_progress"
    assert parsed["winner"] is None


def test_parse_event_rejects_missing_competitor():
    event = _event()
    event["competitions"][0]["competitors"].pop()
    with pytest.raises(ValueError):
        parse_event(event)


@pytest.mark.asyncio
async def test_fetch_week_games_sends_params_and_skips_malformed_events():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"events": [_event(), {"id": "bad"}]})

    provider = _provider(handler)
    games = await provider.fetch_week_games(2025, 1, season_type=2)
    await provider.aclose()

    assert seen["url"].startswith("https://espn.test/nfl/scoreboard")
    assert seen["params"] == {"week": "1", "year": "2025", "seasontype": "2"}
    assert [g["espn_id"] for g in games] == ["401"]


@pytest.mark.asyncio
async def test_fetch_week_games_raises_on_http_error_status():
    provider = _provider(lambda request: httpx.Response(503, text="down"))
    with pytest.raises(ScoreFetchError):
        await provider.fetch_week_games(2025, 1)
    await provider.aclose()


@pytest.mark.asyncio
async def test_fetch_week_games_raises_on_bad_json():
    provider = _provider(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ScoreFetchError):
        await provider.fetch_week_games(2025, 1)
    await provider.aclose()


@pytest.mark.asyncio
async def test_fetch_week_games_wraps_network_errors():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    provider = _provider(handler)
    with pytest.raises(ScoreFetchError):
        await provider.fetch_week_games(2025, 1)
    await provider.aclose()


@pytest.mark.asyncio
async def test_resilient_client_retries_transient_status(monkeypatch):
    calls = {"n": 0}

    async def _no_sleep(_seconds):
        return None

    monkeypatch.setattr("nflpool.providers.http_client.asyncio.sleep", _no_sleep)

    def handler(request):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(502)
        return httpx.Response(200, json={"events": []})

    client = ResilientClient("retry-test", max_retries=1, transport=httpx.MockTransport(handler))
    resp = await client.get("https://espn.test/nfl/scoreboard")
    await client.aclose()

    assert resp.status_code == 200
    assert calls["n"] == 2
