"""Confidence pool models: weighted winner picks and per-week scores."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ConfidencePick(BaseModel):
    winner: Optional[str] = None
    # Kept loose on input: strings and blanks are coerced by the scoring engine.
    confidence: Any = None


class ConfidencePicksInDB(BaseModel):
    pool_id: str
    user_id: str
    season: int
    week: int
    picks: dict[str, ConfidencePick] = Field(default_factory=dict)  # keyed by game_id
    flags: list[dict] = Field(default_factory=list)
    submitted_at: datetime
    updated_at: datetime


class ConfidencePicksSubmit(BaseModel):
    """Request body: {game_id: {winner, confidence}}."""
    picks: dict[str, ConfidencePick]


class ConfidenceScoreInDB(BaseModel):
    """Materialized result of one full recomputation for a user/week."""
    pool_id: str
    user_id: str
    season: int
    week: int
    total_points: int = 0
    possible_points: int = 0
    max_possible_points: int = 0
    correct_picks: int = 0
    scored_picks: int = 0
    final_games: int = 0
    games: list[dict] = Field(default_factory=list)
    flags: list[dict] = Field(default_factory=list)
    computed_at: datetime


class StandingRow(BaseModel):
    user_id: str
    display_name: str
    points: int
    correct_picks: int = 0
    weeks_scored: int = 0
    rank: int = 0
