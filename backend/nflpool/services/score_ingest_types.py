"""
backend/nflpool/services/score_ingest_types.py

Purpose:
    Shared type contracts for score ingest: the parsed upstream game payload
    and the structured ingest result counters.

Dependencies:
    - typing
    - datetime
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, TypedDict


class FetchedGame(TypedDict):
    espn_id: str
    home_team: str
    away_team: str
    home_score: Optional[int]
    away_score: Optional[int]
    status: Literal["scheduled", "in_progress", "final"]
    winner: Optional[str]
    is_tie: bool
    period: Optional[int]
    clock: Optional[str]
    detail: str
    kickoff: Optional[datetime]
    venue: str


class IngestResult(TypedDict):
    season: int
    week: int
    processed: int
    updated: int
    unchanged: int
    unmatched: int
    finalized: int
    corrected: int
    regressions_skipped: int
    finalized_game_ids: list[str]
    corrected_game_ids: list[str]
