"""
backend/nflpool/services/survivor_engine.py

Purpose:
    Pure survivor-pool state machine. Each entry is either alive or
    eliminated; elimination is terminal. Weeks are judged in order and the
    first eliminating week ends the walk, so picks made after it are ignored.

    A week eliminates when:
        - the picked team's game is final and the team did not win
          (ties eliminate unless disabled),
        - the user made no pick and the week is complete,
        - the pick repeats a team used in an earlier week,
        - the picked team has no game in a complete week.

    A week is complete when it lies before the evaluated week, or when it
    is the evaluated week and every one of its games is final.

Dependencies:
    - nflpool.models.outcome
    - nflpool.services.team_normalizer
"""

from __future__ import annotations

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
from nflpool.services.team_normalizer import alias_key, normalize_team_name


@dataclass
class SurvivorEvaluation:
    status: str = "alive"
    eliminated_week: int | None = None
    reason: str | None = None
    team: str | None = None
    used_teams: list[str] = field(default_factory=list)
    weeks: dict[int, PickOutcome] = field(default_factory=dict)

    @property
    def is_eliminated(self) -> bool:
        return self.status == "eliminated"

    @property
    def weeks_survived(self) -> int:
        return sum(1 for outcome in self.weeks.values() if isinstance(outcome, Correct))

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "eliminated_week": self.eliminated_week,
            "reason": self.reason,
            "team": self.team,
            "used_teams": list(self.used_teams),
            "weeks": {str(w): outcome_to_dict(o) for w, o in sorted(self.weeks.items())},
        }


def _field(pick: Any, name: str) -> Any:
    if pick is None:
        return None
    if isinstance(pick, Mapping):
        return pick.get(name)
    return getattr(pick, name, None)


def find_team_game(
    team: str, games: list[Mapping[str, Any]], game_id: str | None = None,
) -> Mapping[str, Any] | None:
    """Locate the game a team plays in, preferring the pick's own game_id."""
    key = alias_key(normalize_team_name(team))
    if not key:
        return None
    candidates = [
        g for g in games
        if key in (
            alias_key(normalize_team_name(g.get("home_team"))),
            alias_key(normalize_team_name(g.get("away_team"))),
        )
    ]
    if game_id is not None:
        for game in candidates:
            if str(game.get("game_id")) == str(game_id):
                return game
    return candidates[0] if candidates else None


def _week_complete(week: int, through_week: int, games: list[Mapping[str, Any]]) -> bool:
    if week < through_week:
        return True
    return bool(games) and all(str(g.get("status")).lower() == "final" for g in games)


def judge_pick(
    team: str, game: Mapping[str, Any] | None, *, week_complete: bool, tie_eliminates: bool = True,
) -> PickOutcome:
    """Outcome of a single (non-repeat) survivor pick."""
    if game is None:
        return Invalid(reason="team_not_scheduled") if week_complete else Pending(reason="game_not_found")
    if str(game.get("status")).lower() != "final":
        return Pending()
    if game.get("is_tie"):
        return Incorrect(reason="tie") if tie_eliminates else Correct()
    winner = game.get("winner")
    if not winner:
        return Pending(reason="result_missing")
    if alias_key(normalize_team_name(winner)) == alias_key(normalize_team_name(team)):
        return Correct()
    return Incorrect(reason="lost")


def evaluate_survivor(
    picks: Mapping[int, Any],
    results: Mapping[int, list[Mapping[str, Any]]],
    *,
    through_week: int,
    exempt_through_week: int = 0,
    tie_eliminates: bool = True,
) -> SurvivorEvaluation:
    """Walk weeks 1..through_week and return the entry's survivor state.

    Args:
        picks: {week: {"team": str, "game_id": str | None}}.
        results: {week: [game documents]}.
        through_week: last week to judge (normally the current week).
        exempt_through_week: weeks up to this one were settled by a manual
            override; their picks still count as used teams.
        tie_eliminates: whether a tied game knocks the pick out.
    """
    evaluation = SurvivorEvaluation()
    used_keys: set[str] = set()

    for week in range(1, through_week + 1):
        pick = picks.get(week)
        raw_team = _field(pick, "team")
        team = normalize_team_name(raw_team) if raw_team else ""
        games = list(results.get(week, []))

        if week <= exempt_through_week:
            if team and alias_key(team) not in used_keys:
                used_keys.add(alias_key(team))
                evaluation.used_teams.append(team)
            continue

        if not team:
            if _week_complete(week, through_week, games):
                outcome: PickOutcome = Invalid(reason="no_pick")
            else:
                evaluation.weeks[week] = Pending(reason="no_pick_yet")
                continue
        elif alias_key(team) in used_keys:
            outcome = Invalid(reason="repeat_pick")
        else:
            used_keys.add(alias_key(team))
            evaluation.used_teams.append(team)
            game = find_team_game(team, games, _field(pick, "game_id"))
            outcome = judge_pick(
                team,
                game,
                week_complete=_week_complete(week, through_week, games),
                tie_eliminates=tie_eliminates,
            )

        evaluation.weeks[week] = outcome
        if isinstance(outcome, (Incorrect, Invalid)):
            evaluation.status = "eliminated"
            evaluation.eliminated_week = week
            evaluation.reason = outcome.reason
            evaluation.team = team or None
            break

    return evaluation
