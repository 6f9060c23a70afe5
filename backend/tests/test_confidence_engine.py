from __future__ import annotations

import pytest

from nflpool.models.outcome import Correct, Incorrect, Invalid, Pending, outcome_from_dict, outcome_to_dict
from nflpool.services.confidence_engine import (
    parse_confidence,
    score_pick,
    score_week,
    validate_confidence_values,
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


@pytest.mark.parametrize(
    "value, expected",
    [(16, 16), ("16", 16), (" 7 ", 7), ("3.0", 3), (4.0, 4), (None, 0), ("", 0),
     ("abc", 0), (True, 0), (-3, 0), ("2.5", 0)],
)
def test_parse_confidence(value, expected):
    assert parse_confidence(value) == expected


def test_correct_pick_earns_its_confidence_through_aliases():
    game = _game("401", "Kansas City Chiefs", "Buffalo Bills", winner="Kansas City Chiefs")
    assert score_pick({"winner": "Chiefs", "confidence": 16}, game) == Correct(points=16)
    assert score_pick({"winner": "KC", "confidence": "16"}, game) == Correct(points=16)


def test_pick_outcomes_for_open_lost_tied_and_missing():
    open_game = _game("1", "Dallas Cowboys", "New York Giants", status="in_progress")
    lost = _game("2", "Dallas Cowboys", "New York Giants", winner="New York Giants")
    tied = _game("3", "Dallas Cowboys", "New York Giants", winner=None, is_tie=True)

    assert isinstance(score_pick({"winner": "DAL", "confidence": 5}, open_game), Pending)
    assert score_pick({"winner": "DAL", "confidence": 5}, lost) == Incorrect()
    assert score_pick({"winner": "DAL", "confidence": 5}, tied) == Incorrect(reason="tie")
    assert score_pick(None, lost) == Invalid(reason="no_pick")
    assert score_pick({"winner": "", "confidence": 5}, lost).awarded == 0


def test_validate_confidence_values_flags_problems():
    picks = {
        "1": {"winner": "A", "confidence": 3},
        "2": {"winner": "B", "confidence": 3},
        "3": {"winner": "C", "confidence": 9},
    }
    codes = {f["code"] for f in validate_confidence_values(picks, 4)}
    assert codes == {"duplicate_confidence", "confidence_out_of_range", "incomplete_picks"}

    clean = {"1": {"winner": "A", "confidence": 1}, "2": {"winner": "B", "confidence": 2}}
    assert validate_confidence_values(clean, 2) == []


def test_score_week_totals_and_max_points():
    games = [
        _game("2", "Buffalo Bills", "Miami Dolphins", winner="Miami Dolphins"),
        _game("1", "Kansas City Chiefs", "Denver Broncos", winner="Kansas City Chiefs"),
        _game("3", "Green Bay Packers", "Chicago Bears", status="scheduled"),
    ]
    picks = {
        "1": {"winner": "Chiefs", "confidence": 3},
        "2": {"winner": "Bills", "confidence": 2},
        "3": {"winner": "Packers", "confidence": 1},
    }
    result = score_week(picks, games, week=4)

    assert result.total_points == 3
    assert result.correct_picks == 1
    assert result.possible_points == 5
    assert result.final_games == 2
    assert result.scored_picks == 2
    assert result.max_possible_points == 6
    assert [g.game_id for g in result.games] == ["1", "2", "3"]
    assert result.flags == []
    as_dict = result.to_dict()
    assert as_dict["games"][2]["outcome"]["kind"] == "pending"


def test_score_week_is_idempotent():
    games = [_game("1", "Kansas City Chiefs", "Denver Broncos", winner="Kansas City Chiefs")]
    picks = {"1": {"winner": "KC", "confidence": "1"}}
    assert score_week(picks, games).to_dict() == score_week(picks, games).to_dict()


def test_points_per_game_sum_to_correct_pickers_weights():
    game = _game("1", "Kansas City Chiefs", "Buffalo Bills", winner="Kansas City Chiefs")
    users = [
        {"1": {"winner": "Chiefs", "confidence": 16}},
        {"1": {"winner": "KC", "confidence": 4}},
        {"1": {"winner": "Bills", "confidence": 10}},
        None,
    ]
    awarded = sum(score_week(p, [game]).total_points for p in users)
    assert awarded == 20


def test_no_submission_scores_zero():
    games = [_game("1", "Kansas City Chiefs", "Buffalo Bills", winner="Kansas City Chiefs")]
    result = score_week(None, games)
    assert result.total_points == 0
    assert result.games[0].outcome == Invalid(reason="no_pick")


def test_final_game_without_result_stays_pending():
    unscored = _game("4", "Dallas Cowboys", "New York Giants", winner=None, is_tie=False)

    outcome = score_pick({"winner": "DAL", "confidence": 5}, unscored)

    assert outcome == Pending(reason="result_missing")
    assert outcome.awarded == 0


def test_stored_outcomes_read_back_as_the_same_variant():
    for outcome in (Correct(points=7), Incorrect(reason="tie"), Invalid(reason="no_pick"), Pending()):
        assert outcome_from_dict(outcome_to_dict(outcome)) == outcome
    assert outcome_from_dict({"kind": "correct"}) == Correct(points=0)
