"""Game records: the internal schedule, updated in place by the score poller."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

GameStatus = Literal["scheduled", "in_progress", "final"]


class GameInDB(BaseModel):
    """One game of one week. Created only by schedule import, never by ingest."""
    season: int
    week: int
    game_id: str  # internal id, stable across the season (e.g. "401")
    home_team: str  # canonical team name
    away_team: str
    kickoff: Optional[datetime] = None
    status: GameStatus = "scheduled"
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    winner: Optional[str] = None  # canonical team; None while open or on a tie
    is_tie: bool = False
    espn_id: Optional[str] = None
    period: Optional[int] = None
    clock: str = ""
    detail: str = ""
    venue: str = ""
    updated_at: Optional[datetime] = None


class ScheduleGame(BaseModel):
    """Schedule import row."""
    week: int = Field(ge=1, le=23)
    game_id: str
    home_team: str
    away_team: str
    kickoff: Optional[datetime] = None
    venue: str = ""


class ScheduleImport(BaseModel):
    season: int
    games: list[ScheduleGame]
