"""
backend/nflpool/services/confidence_engine.py

Purpose:
    Pure confidence-pool scoring. A pick earns its declared confidence
    weight when its game is final and the picked team is the winner;
    everything else earns zero. Results are always recomputed in full from
    the current picks and game results, so scoring the same inputs twice
    yields identical output.

Dependencies:
    - nflpool.models.outcome
    - nflpool.services.team_normalizer
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping

from nflpool.models.outcome import (
    Correct,
    Incorrect,
    Invalid,
    Pending,
    PickOutcome,
    outcome_to_dict,
)
from nflpool.services.team_normalizer import normalize_team_name, teams_match

logger = logging.getLogger("nflpool.confidence_engine")


def parse_confidence(value: Any) -> int:
    """Coerce a stored confidence value to an int weight.

    Missing values count as zero. Non-numeric strings, bools and negative
    numbers are logged and also count as zero.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        logger.warning("Boolean confidence value %r treated as 0", value)
        return 0
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if value != value or not value.is_integer():  # NaN or fractional
            logger.warning("Non-integer confidence value %r treated as 0", value)
            return 0
        parsed = int(value)
    else:
        text = str(value).strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            logger.warning("Non-numeric confidence value %r treated as 0", value)
            return 0
        if number != number or not number.is_integer():
            logger.warning("Non-integer confidence value %r treated as 0", value)
            return 0
        parsed = int(number)
    if parsed < 0:
        logger.warning("Negative confidence value %r treated as 0", value)
        return 0
    return parsed


def _pick_field(pick: Any, name: str) -> Any:
    if pick is None:
        return None
    if isinstance(pick, Mapping):
        return pick.get(name)
    return getattr(pick, name, None)


def is_final(game: Mapping[str, Any]) -> bool:
    return str(game.get("status") or "").lower() == "final"


def score_pick(pick: Any, game: Mapping[str, Any]) -> PickOutcome:
    """Score one pick against one game result."""
    winner_pick = _pick_field(pick, "winner")
    if not winner_pick:
        return Invalid(reason="no_pick")
    if not is_final(game):
        return Pending()
    if game.get("is_tie"):
        return Incorrect(reason="tie")
    winner = game.get("winner")
    if not winner:
        return Pending(reason="result_missing")
    if teams_match(winner_pick, winner):
        return Correct(points=parse_confidence(_pick_field(pick, "confidence")))
    return Incorrect()


def validate_confidence_values(
    picks: Mapping[str, Any], game_count: int,
) -> list[dict]:
    """Flag (never reject) confidence values that break the 1..N permutation."""
    flags: list[dict] = []
    weights = [
        parse_confidence(_pick_field(pick, "confidence"))
        for pick in picks.values()
        if _pick_field(pick, "winner")
    ]

    duplicates = sorted(w for w, count in Counter(weights).items() if count > 1 and w > 0)
    if duplicates:
        flags.append({"code": "duplicate_confidence", "values": duplicates})

    if game_count > 0:
        out_of_range = sorted({w for w in weights if w < 1 or w > game_count})
        if out_of_range:
            flags.append({
                "code": "confidence_out_of_range",
                "values": out_of_range,
                "max": game_count,
            })
        if len(weights) < game_count:
            flags.append({
                "code": "incomplete_picks",
                "picked": len(weights),
                "games": game_count,
            })
    return flags


@dataclass
class GameScore:
    game_id: str
    home_team: str
    away_team: str
    pick: str | None
    confidence: int
    winner: str | None
    outcome: PickOutcome

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "pick": self.pick,
            "confidence": self.confidence,
            "winner": self.winner,
            "outcome": outcome_to_dict(self.outcome),
            "points": self.outcome.awarded,
        }


@dataclass
class WeekScore:
    week: int
    games: list[GameScore] = field(default_factory=list)
    flags: list[dict] = field(default_factory=list)
    total_points: int = 0
    possible_points: int = 0
    max_possible_points: int = 0
    correct_picks: int = 0
    scored_picks: int = 0
    final_games: int = 0

    def to_dict(self) -> dict:
        return {
            "week": self.week,
            "total_points": self.total_points,
            "possible_points": self.possible_points,
            "max_possible_points": self.max_possible_points,
            "correct_picks": self.correct_picks,
            "scored_picks": self.scored_picks,
            "final_games": self.final_games,
            "games": [g.to_dict() for g in self.games],
            "flags": list(self.flags),
        }


def score_week(
    picks: Mapping[str, Any] | None,
    games: list[Mapping[str, Any]],
    week: int = 0,
) -> WeekScore:
    """Score a user's week from scratch.

    Args:
        picks: {game_id: {"winner": str, "confidence": int|str}}; None when
            the user never submitted.
        games: game documents for the week (any order).
        week: week number, echoed into the result.
    """
    picks = picks or {}
    ordered = sorted(games, key=lambda g: str(g.get("game_id")))
    result = WeekScore(
        week=week,
        max_possible_points=len(ordered) * (len(ordered) + 1) // 2,
    )

    for game in ordered:
        game_id = str(game.get("game_id"))
        pick = picks.get(game_id)
        outcome = score_pick(pick, game)
        confidence = parse_confidence(_pick_field(pick, "confidence"))
        picked_team = _pick_field(pick, "winner")

        if is_final(game):
            result.final_games += 1
            if picked_team:
                result.scored_picks += 1
                result.possible_points += confidence
        if isinstance(outcome, Correct):
            result.correct_picks += 1
        result.total_points += outcome.awarded

        result.games.append(GameScore(
            game_id=game_id,
            home_team=game.get("home_team", ""),
            away_team=game.get("away_team", ""),
            pick=normalize_team_name(picked_team) if picked_team else None,
            confidence=confidence,
            winner=game.get("winner"),
            outcome=outcome,
        ))

    result.flags = validate_confidence_values(picks, len(ordered))
    return result
