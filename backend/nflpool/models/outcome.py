"""
backend/nflpool/models/outcome.py

Purpose:
    Single outcome type shared by confidence scoring and survivor
    elimination:

        PickOutcome = Correct(points) | Incorrect | Pending | Invalid(reason)

    Persisted as {"kind": ..., "points": ..., "reason": ...}.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

OutcomeKind = Literal["correct", "incorrect", "pending", "invalid"]


@dataclass(frozen=True)
class Correct:
    points: int = 0
    kind: OutcomeKind = "correct"

    @property
    def awarded(self) -> int:
        return self.points


@dataclass(frozen=True)
class Incorrect:
    reason: str = "lost"
    kind: OutcomeKind = "incorrect"

    @property
    def awarded(self) -> int:
        return 0


@dataclass(frozen=True)
class Pending:
    reason: str = "game_not_final"
    kind: OutcomeKind = "pending"

    @property
    def awarded(self) -> int:
        return 0


@dataclass(frozen=True)
class Invalid:
    reason: str
    kind: OutcomeKind = "invalid"

    @property
    def awarded(self) -> int:
        return 0


PickOutcome = Union[Correct, Incorrect, Pending, Invalid]


def outcome_to_dict(outcome: PickOutcome) -> dict:
    return {
        "kind": outcome.kind,
        "points": outcome.awarded,
        "reason": getattr(outcome, "reason", None),
    }


def outcome_from_dict(data: dict) -> PickOutcome:
    kind = data.get("kind")
    if kind == "correct":
        return Correct(points=int(data.get("points") or 0))
    if kind == "incorrect":
        return Incorrect(reason=data.get("reason") or "lost")
    if kind == "invalid":
        return Invalid(reason=data.get("reason") or "unknown")
    return Pending(reason=data.get("reason") or "game_not_final")
