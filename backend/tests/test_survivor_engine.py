"""
backend/tests/test_survivor_engine.py

Purpose:
    Survivor state-machine tests: loss/tie/no-pick elimination, repeat
    picks, manual-override exemptions, and pending weeks.
"""

from __future__ import annotations

from nflpool.models.outcome import Correct, Incorrect, Invalid, Pending
from nflpool.services.survivor_engine import (
    evaluate_survivor,
    find_team_game,
    judge_pick,
)


def _game(game_id, home, away, status="final", winner=None, is_tie=False):
    return {
        "game_id": game_id,
        "home_team": home,
        "away_team": away,
        "status": status,
        "winner": winner,
        "is_tie": is_tie,
    }


RESULTS = {
    1: [_game("w1", "Kansas City Chiefs", "Buffalo Bills", winner="Kansas City Chiefs")],
    2: [_game("w2", "Dallas Cowboys", "New York Giants", winner="New York Giants")],
    3: [_game("w3", "Kansas City Chiefs", "Denver Broncos", winner="Kansas City Chiefs")],
}


def test_loss_eliminates_and_stops_the_walk():
    picks = {1: {"team": "KC"}, 2: {"team": "Cowboys"}, 3: {"team": "Broncos"}}
    result = evaluate_survivor(picks, RESULTS, through_week=3)

    assert result.is_eliminated
    assert result.eliminated_week == 2
    assert result.reason == "lost"
    assert result.team == "Dallas Cowboys"
    assert 3 not in result.weeks
    assert result.weeks_survived == 1


def test_winning_every_week_stays_alive():
    picks = {1: {"team": "Chiefs"}, 2: {"team": "NYG"}}
    result = evaluate_survivor(picks, RESULTS, through_week=2)

    assert result.status == "alive"
    assert result.used_teams == ["Kansas City Chiefs", "New York Giants"]
    assert result.weeks == {1: Correct(), 2: Correct()}


def test_repeat_pick_is_invalid():
    picks = {1: {"team": "Chiefs"}, 2: {"team": "Giants"}, 3: {"team": "KC"}}
    result = evaluate_survivor(picks, RESULTS, through_week=3)

    assert result.eliminated_week == 3
    assert result.weeks[3] == Invalid(reason="repeat_pick")


def test_missing_pick_eliminates_only_after_the_week_completes():
    pending_results = {1: [_game("g1", "Kansas City Chiefs", "Buffalo Bills", status="scheduled")]}
    open_week = evaluate_survivor({}, pending_results, through_week=1)
    assert open_week.status == "alive"
    assert open_week.weeks[1] == Pending(reason="no_pick_yet")

    closed = evaluate_survivor({}, RESULTS, through_week=1)
    assert closed.is_eliminated
    assert closed.reason == "no_pick"


def test_tie_eliminates_unless_disabled():
    results = {1: [_game("t1", "Dallas Cowboys", "Washington Commanders", winner=None, is_tie=True)]}
    picks = {1: {"team": "DAL"}}

    assert evaluate_survivor(picks, results, through_week=1).reason == "tie"
    assert evaluate_survivor(picks, results, through_week=1, tie_eliminates=False).status == "alive"


def test_exempt_weeks_are_skipped_but_consume_their_team():
    picks = {1: {"team": "Bills"}, 2: {"team": "Buffalo Bills"}}
    results = {
        1: RESULTS[1],
        2: [_game("b2", "Buffalo Bills", "Miami Dolphins", winner="Buffalo Bills")],
    }
    result = evaluate_survivor(picks, results, through_week=2, exempt_through_week=1)

    assert 1 not in result.weeks
    assert result.weeks[2] == Invalid(reason="repeat_pick")


def test_unfinished_game_is_pending():
    results = {1: [_game("p1", "Kansas City Chiefs", "Buffalo Bills", status="in_progress")]}
    result = evaluate_survivor({1: {"team": "KC"}}, results, through_week=1)

    assert result.status == "alive"
    assert isinstance(result.weeks[1], Pending)


def test_judge_pick_without_a_game():
    assert judge_pick("KC", None, week_complete=True) == Invalid(reason="team_not_scheduled")
    assert judge_pick("KC", None, week_complete=False) == Pending(reason="game_not_found")
    lost = _game("x", "Kansas City Chiefs", "Buffalo Bills", winner="Buffalo Bills")
    assert judge_pick("Chiefs", lost, week_complete=True) == Incorrect(reason="lost")


def test_find_team_game_prefers_the_pick_game_id():
    games = [
        _game("a", "Kansas City Chiefs", "Buffalo Bills"),
        _game("b", "Denver Broncos", "Kansas City Chiefs"),
    ]
    assert find_team_game("KC", games)["game_id"] == "a"
    assert find_team_game("KC", games, "b")["game_id"] == "b"
    assert find_team_game("Jets", games) is None
    assert find_team_game("", games) is None


def test_evaluation_serializes_outcomes():
    result = evaluate_survivor({1: {"team": "KC"}}, RESULTS, through_week=1)
    payload = result.to_dict()
    assert payload["weeks"]["1"] == {"kind": "correct", "points": 0, "reason": None}
    assert payload["status"] == "alive"


def test_final_game_without_result_is_not_a_tie():
    results = {1: [_game("m1", "Dallas Cowboys", "Washington Commanders", winner=None, is_tie=False)]}
    result = evaluate_survivor({1: {"team": "DAL"}}, results, through_week=1)

    assert result.status == "alive"
    assert result.weeks[1] == Pending(reason="result_missing")
