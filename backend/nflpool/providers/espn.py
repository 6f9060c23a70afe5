"""
backend/nflpool/providers/espn.py

Purpose:
    ESPN public NFL scoreboard client. Fetches one week of games and parses
    each event into the flat dict shape the score ingest service consumes.

Dependencies:
    - httpx (via nflpool.providers.http_client)
    - nflpool.services.team_normalizer
"""

import logging
from typing import Any, Optional

import httpx

from nflpool.config import settings
from nflpool.providers.http_client import ResilientClient, _safe_url
from nflpool.services.team_normalizer import normalize_team_name
from nflpool.utils import parse_utc

logger = logging.getLogger("nflpool.espn")


class ScoreFetchError(Exception):
    """The upstream scoreboard could not be fetched or decoded."""


def _parse_score(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):  # some ESPN payloads nest {"value": 24.0, "displayValue": "24"}
        raw = raw.get("value", raw.get("displayValue"))
    try:
        return int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None


def map_status(status: dict) -> str:
    """Map an ESPN competition status block to scheduled | in_progress | final."""
    status_type = (status or {}).get("type") or {}
    state = str(status_type.get("state") or "").lower()
    name = str(status_type.get("name") or "").upper()
    if status_type.get("completed"):
        return "final"
    if state == "post":
        # Postponed/cancelled games report state "post" without completing.
        if "POSTPONED" in name or "CANCELED" in name or "CANCELLED" in name:
            return "scheduled"
        return "final"
    if state == "in" or "IN_PROGRESS" in name or "HALFTIME" in name:
        return "in_progress"
    return "scheduled"


def parse_event(event: dict) -> dict[str, Any]:
    """Parse one ESPN scoreboard event. Raises KeyError/ValueError on malformed input."""
    competition = event["competitions"][0]
    competitors = competition["competitors"]
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if home is None or away is None:
        raise ValueError("event is missing a home or away competitor")

    home_team = home["team"]["displayName"]
    away_team = away["team"]["displayName"]
    status_block = competition.get("status") or event.get("status") or {}
    status = map_status(status_block)
    home_score = _parse_score(home.get("score"))
    away_score = _parse_score(away.get("score"))
    if status == "scheduled":
        home_score = away_score = None
    elif status == "final" and (home_score is None or away_score is None):
        # A result without both scores cannot be judged yet.
        logger.warning(
            "ESPN event %s is final without both scores, holding as in_progress", event.get("id"),
        )
        status = "in_progress"

    winner = None
    is_tie = False
    if status == "final" and home_score is not None and away_score is not None:
        if home_score > away_score:
            winner = normalize_team_name(home_team)
        elif away_score > home_score:
            winner = normalize_team_name(away_team)
        else:
            is_tie = True

    kickoff = None
    if event.get("date"):
        kickoff = parse_utc(event["date"])

    return {
        "espn_id": str(event["id"]),
        "home_team": home_team,
        "away_team": away_team,
        "home_score": home_score,
        "away_score": away_score,
        "status": status,
        "winner": winner,
        "is_tie": is_tie,
        "period": status_block.get("period"),
        "clock": status_block.get("displayClock"),
        "detail": (status_block.get("type") or {}).get("detail") or "",
        "kickoff": kickoff,
        "venue": (competition.get("venue") or {}).get("fullName") or "",
    }


class ESPNProvider:
    """ESPN public scoreboard API. No key needed."""

    def __init__(self, client: ResilientClient | None = None, base_url: str | None = None):
        self._client = client or ResilientClient(
            "espn",
            timeout=settings.ESPN_TIMEOUT_SECONDS,
            max_retries=settings.ESPN_MAX_RETRIES,
        )
        self._base_url = (base_url or settings.ESPN_BASE_URL).rstrip("/")

    async def fetch_week_games(
        self, season: int, week: int, season_type: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch and parse every game of one week."""
        url = f"{self._base_url}/scoreboard"
        params = {
            "week": week,
            "year": season,
            "seasontype": season_type or settings.NFL_SEASON_TYPE,
        }
        try:
            resp = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise ScoreFetchError(f"ESPN request failed for week {week}: {exc}") from exc
        if resp.status_code != 200:
            raise ScoreFetchError(
                f"ESPN returned HTTP {resp.status_code} for {_safe_url(url)} week {week}"
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ScoreFetchError(f"ESPN returned invalid JSON for week {week}") from exc

        games: list[dict[str, Any]] = []
        for event in payload.get("events") or []:
            try:
                games.append(parse_event(event))
            except (KeyError, IndexError, TypeError, ValueError, OverflowError) as exc:
                logger.warning("Skipping malformed ESPN event %s: %s", event.get("id"), exc)
        logger.info("ESPN: %d games for season %d week %d", len(games), season, week)
        return games

    async def aclose(self) -> None:
        await self._client.aclose()


espn_provider = ESPNProvider()
