"""Flat per-user, per-week rows for the admin CSV export."""

import csv
import io
from typing import Literal

import nflpool.database as _db
from nflpool.services.pool_service import list_members

ExportKind = Literal["confidence", "survivor"]

CSV_HEADER = ["user", "week", "pick", "result", "points_or_status"]


async def build_rows(pool_id: str, season: int, kind: ExportKind) -> list[list]:
    """One row per (user, week, pick), ordered by user then week.

    Members removed from a mode keep their history in the export.
    """
    members = await list_members(pool_id)
    names = {m["user_id"]: m.get("display_name") or m["user_id"] for m in members}
    rows: list[list] = []

    if kind == "confidence":
        scores = await _db.db.confidence_scores.find(
            {"pool_id": pool_id, "season": season},
        ).to_list(length=20000)
        for score in sorted(scores, key=lambda s: (names.get(s["user_id"], s["user_id"]).lower(), s["week"])):
            if score["user_id"] not in names:
                continue
            for game in score.get("games") or []:
                if not game.get("pick"):
                    continue
                outcome = game.get("outcome") or {}
                rows.append([
                    names[score["user_id"]],
                    score["week"],
                    f"{game['pick']} ({game.get('confidence', 0)})",
                    outcome.get("kind", "pending"),
                    game.get("points", 0),
                ])
        return rows

    entries = await _db.db.survivor_entries.find(
        {"pool_id": pool_id, "season": season},
    ).to_list(length=1000)
    for entry in sorted(entries, key=lambda e: names.get(e["user_id"], e["user_id"]).lower()):
        if entry["user_id"] not in names:
            continue
        for pick in sorted(entry.get("picks") or [], key=lambda p: p["week"]):
            outcome = pick.get("outcome") or {}
            eliminated_here = entry.get("eliminated_week") == pick["week"]
            rows.append([
                names[entry["user_id"]],
                pick["week"],
                pick.get("team", ""),
                outcome.get("kind", "pending"),
                "eliminated" if eliminated_here else entry.get("status", "alive"),
            ])
    return rows


def rows_to_csv(rows: list[list]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    writer.writerows(rows)
    return output.getvalue()
