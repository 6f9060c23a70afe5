"""Append-only audit trails: admin actions and scoring runs.

Both collections are insert-only. This module exposes no update or delete
operations on audit_logs or scoring_audit_runs.
"""

import logging
import uuid
from typing import Optional

from fastapi import Request

import nflpool.database as _db
from nflpool.models.audit import AuditLog, ScoringAuditRun
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.audit")


def _truncate_ip(ip: str) -> str:
    """Anonymize an IP address by replacing the last segment.

    IPv4: 192.168.1.42  -> 192.168.1.xxx
    IPv6: 2001:db8::1   -> 2001:db8::xxx
    """
    if not ip:
        return ""
    if "." in ip:
        parts = ip.split(".")
        if len(parts) == 4:
            parts[-1] = "xxx"
            return ".".join(parts)
        return ip
    if ":" in ip:
        head, _ = ip.rsplit(":", 1)
        return f"{head}:xxx"
    return ip


def _get_client_ip(request: Optional[Request]) -> str:
    """Extract client IP from request, preferring X-Forwarded-For."""
    if request is None:
        return ""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return ""


async def log_audit(
    *,
    actor_id: str,
    target_id: str,
    action: str,
    metadata: Optional[dict] = None,
    request: Optional[Request] = None,
) -> None:
    """Write an immutable audit record to the audit_logs collection.

    Args:
        actor_id: Who performed the action (User-ID or "SYSTEM").
        target_id: Who/what was affected (User-ID, Pool-ID, Game-ID).
        action: Action identifier, e.g. "SURVIVOR_OVERRIDE".
        metadata: Optional dict with before/after values or extra context.
        request: Optional FastAPI request for IP extraction.
    """
    doc = AuditLog(
        timestamp=utcnow(),
        actor_id=actor_id,
        target_id=target_id,
        action=action,
        metadata=metadata or {},
        ip_truncated=_truncate_ip(_get_client_ip(request)),
    ).model_dump()
    try:
        await _db.db.audit_logs.insert_one(doc)
    except Exception:
        # Audit logging must never crash the request
        logger.exception("Failed to write audit log: action=%s actor=%s", action, actor_id)


class ScoringAuditTrail:
    """Collects the steps of one scoring run and writes them as a single document."""

    def __init__(self, kind: str, pool_id: str, season: int, week: int, actor_id: str):
        self.run_id = uuid.uuid4().hex
        self.doc = {
            "run_id": self.run_id,
            "kind": kind,
            "pool_id": pool_id,
            "season": season,
            "week": week,
            "actor_id": actor_id,
            "steps": [],
            "summary": {},
            "started_at": utcnow(),
            "finished_at": None,
        }

    def step(self, action: str, **detail) -> None:
        self.doc["steps"].append({"action": action, "at": utcnow(), **detail})

    async def flush(self, **summary) -> str:
        self.doc["summary"] = summary
        self.doc["finished_at"] = utcnow()
        try:
            await _db.db.scoring_audit_runs.insert_one(ScoringAuditRun(**self.doc).model_dump())
        except Exception:
            logger.exception(
                "Failed to write scoring audit run %s (%s pool=%s week=%s)",
                self.run_id, self.doc["kind"], self.doc["pool_id"], self.doc["week"],
            )
        return self.run_id
