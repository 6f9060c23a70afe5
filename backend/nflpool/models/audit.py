from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AuditLog(BaseModel):
    """Immutable audit log entry for admin actions.

    Insert-only. No updates or deletes permitted on this collection.
    """

    timestamp: datetime
    actor_id: str  # Who did it? (User-ID or "SYSTEM")
    target_id: str  # Who/what was affected? (User-ID, Pool-ID, Game-ID)
    action: str  # e.g. "SURVIVOR_OVERRIDE", "SCORES_REFRESH"
    metadata: dict = Field(default_factory=dict)
    ip_truncated: str = ""


class ScoringAuditRun(BaseModel):
    """Append-only record of one scoring/elimination run, step by step.

    Used to explain discrepancies between a stored score and a fresh
    recomputation.
    """

    run_id: str
    kind: str  # "confidence" | "survivor" | "accuracy_audit"
    pool_id: str
    season: int
    week: int
    actor_id: str
    steps: list[dict] = Field(default_factory=list)
    summary: dict = Field(default_factory=dict)
    started_at: datetime
    finished_at: Optional[datetime] = None
