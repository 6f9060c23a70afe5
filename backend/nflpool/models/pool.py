"""Pool and membership models: per-member confidence/survivor participation."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ParticipationFlag(BaseModel):
    enabled: bool = True
    status: Literal["active", "removed"] = "active"
    end_week: Optional[int] = None


class Participation(BaseModel):
    confidence: ParticipationFlag = Field(default_factory=ParticipationFlag)
    survivor: ParticipationFlag = Field(default_factory=ParticipationFlag)


class PoolInDB(BaseModel):
    """Created once per season; membership lives in pool_members."""
    name: str
    season: int
    created_at: datetime


class PoolMemberInDB(BaseModel):
    pool_id: str
    user_id: str
    display_name: str
    email: Optional[str] = None
    participation: Participation = Field(default_factory=Participation)
    joined_at: datetime
    last_modified: Optional[datetime] = None
    last_modified_by: Optional[str] = None


class PoolCreate(BaseModel):
    pool_id: str = Field(min_length=3, max_length=64, pattern=r"^[a-z0-9][a-z0-9-]*$")
    name: str
    season: int


class PoolMemberAdd(BaseModel):
    user_id: str
    display_name: str
    email: Optional[str] = None
    confidence: bool = True
    survivor: bool = True


class ParticipationUpdate(BaseModel):
    """Admin request body; omitted flags stay untouched."""
    confidence: Optional[bool] = None
    survivor: Optional[bool] = None
