"""
backend/nflpool/checks/pool_check.py

Purpose:
    Self-check for a running deployment. Validates DB connectivity, the
    season schedule, team-name resolution of every stored game, and the
    survivor invariant that eliminated entries only revive through an
    override record.

Dependencies:
    - nflpool.database
    - nflpool.services.team_normalizer
"""

import logging
import traceback

import nflpool.database as _db
from nflpool.config import settings
from nflpool.services.team_normalizer import is_known_team, normalize_team_name

logger = logging.getLogger("nflpool.pool_check")


class PoolHealthCheck:
    """Central health check for DB, schedule and pool state."""

    @staticmethod
    async def run(season: int | None = None) -> dict:
        season = season or settings.NFL_SEASON
        report: dict = {
            "status": "UNKNOWN",
            "steps": {
                "database": "PENDING",
                "schedule": "PENDING",
                "team_names": "PENDING",
                "survivor_integrity": "PENDING",
            },
            "details": {"season": season},
            "error": None,
        }

        try:
            if _db.db is None:
                raise RuntimeError("Database is not initialized. Call connect_db() first.")

            collections = await _db.db.list_collection_names()
            report["steps"]["database"] = "OK"
            report["details"]["collections_count"] = len(collections)

            games = await _db.db.games.find(
                {"season": season}, {"week": 1, "home_team": 1, "away_team": 1},
            ).to_list(length=None)
            weeks = sorted({g["week"] for g in games})
            report["details"]["games"] = len(games)
            report["details"]["weeks"] = weeks
            report["steps"]["schedule"] = "OK" if games else "EMPTY"

            unmapped = sorted({
                name
                for g in games
                for name in (g.get("home_team"), g.get("away_team"))
                if not is_known_team(name) or normalize_team_name(name) != name
            })
            report["details"]["unmapped_team_names"] = unmapped
            report["steps"]["team_names"] = "OK" if not unmapped else "FAILED"

            # Alive entries never keep elimination details; revival clears them.
            suspicious = await _db.db.survivor_entries.count_documents({
                "season": season,
                "status": "alive",
                "elimination_reason": {"$ne": None},
            })
            report["details"]["inconsistent_survivor_entries"] = suspicious
            report["steps"]["survivor_integrity"] = "OK" if suspicious == 0 else "FAILED"

            failed = [step for step, state in report["steps"].items() if state == "FAILED"]
            if failed:
                report["status"] = "DEGRADED"
                report["error"] = f"Failed checks: {', '.join(failed)}"
            else:
                report["status"] = "HEALTHY"

        except Exception as e:
            report["status"] = "CRITICAL"
            report["error"] = str(e)
            report["traceback"] = traceback.format_exc()
            logger.error("Pool check failed: %s", e, exc_info=True)

        return report
