"""Survivor mode models: one team per week, eliminated on loss, no repeats."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

SurvivorStatus = Literal["alive", "eliminated"]


class SurvivorPick(BaseModel):
    week: int
    team: str  # canonical team name
    game_id: Optional[str] = None
    picked_at: Optional[datetime] = None
    outcome: Optional[dict] = None  # serialized PickOutcome


class SurvivorOverride(BaseModel):
    """Manual admin status change; the only way out of 'eliminated'."""
    status: SurvivorStatus
    reason: str
    admin_id: str
    week: int
    created_at: datetime


class SurvivorEntryInDB(BaseModel):
    """One entry per user per pool per season."""
    pool_id: str
    user_id: str
    season: int
    status: SurvivorStatus = "alive"
    picks: list[SurvivorPick] = []
    used_teams: list[str] = []
    eliminated_week: Optional[int] = None
    elimination_reason: Optional[str] = None
    elimination_team: Optional[str] = None
    eliminated_at: Optional[datetime] = None
    exempt_through_week: int = 0
    overrides: list[SurvivorOverride] = []
    version: int = 0
    created_at: datetime
    updated_at: datetime


class SurvivorPickCreate(BaseModel):
    """Request body for making a survivor pick."""
    week: int
    team: str
    game_id: Optional[str] = None


class SurvivorOverrideCreate(BaseModel):
    status: SurvivorStatus
    reason: str


class SurvivorTableRow(BaseModel):
    user_id: str
    display_name: str
    status: str
    current_pick: Optional[str] = None
    eliminated_week: Optional[int] = None
    reason: Optional[str] = None
    weeks_survived: int = 0
    participating: bool = True
