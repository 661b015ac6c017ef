"""Stall detection and the intervention ladder."""

from datetime import timedelta

import pytest

from ironplan.config import StallConfig
from ironplan.judgment_day.stalls import (
    detect_stalls,
    estimate_one_rep_max,
    sessions_since_last_pr,
    suggest_intervention,
)
from ironplan.types import ExerciseSession, LoggedSet, StallState

from conftest import NOW


def _history(exercise_id, name, loads, reps=5):
    return [
        ExerciseSession(
            exercise_id=exercise_id,
            exercise_name=name,
            performed_at=NOW - timedelta(days=2 * (len(loads) - i)),
            sets=(LoggedSet(reps=reps, load=load),),
        )
        for i, load in enumerate(loads)
    ]


def test_epley_estimate():
    assert estimate_one_rep_max(300, 1) == pytest.approx(310)
    assert estimate_one_rep_max(200, 15) == estimate_one_rep_max(200, 10)


def test_sessions_since_pr_ignores_order():
    history = _history("squat", "Back Squat", [300, 310, 305, 305])
    assert sessions_since_last_pr(list(reversed(history))) == 2


def test_progressing_lift_is_not_stalled():
    history = _history("squat", "Back Squat", [300, 305, 310, 315, 320, 325, 330])
    assert detect_stalls(history) == []


def test_too_few_sessions_are_skipped():
    assert detect_stalls(_history("bench", "Bench Press", [225, 225])) == []


def test_plateau_maps_to_ladder():
    history = (
        _history("bench", "Bench Press", [225] * 10)
        + _history("row", "Barbell Row", [185] * 7)
    )
    stalls = detect_stalls(history)

    assert [(s.exercise_id, s.weeks_without_progress, s.level) for s in stalls] == [
        ("bench", 3.0, "deload"),
        ("row", 2.0, "microload"),
    ]


@pytest.mark.parametrize("weeks,level", [
    (1.9, None),
    (2, "microload"),
    (3, "deload"),
    (5, "variation"),
    (8, "volume_reset"),
    (12, "goal_reassess"),
])
def test_ladder_thresholds(weeks, level):
    sessions = int(weeks * 3) + 1
    stalls = detect_stalls(_history("ohp", "Overhead Press", [135] * sessions))
    assert (stalls[0].level if stalls else None) == level


def test_custom_thresholds():
    config = StallConfig(weeks_until_microload=1, sessions_per_week=2)
    stalls = detect_stalls(_history("curl", "Biceps Curl", [40] * 3), config)
    assert stalls[0].level == "microload"
    assert stalls[0].weeks_without_progress == 1.0


class TestSuggestions:

    def test_deload_suggestion(self):
        suggestion = suggest_intervention(StallState("bench", "Bench Press", 3.0, "deload"))
        assert suggestion.level == "deload"
        assert "10%" in suggestion.action
        assert suggestion.rationale.startswith("3 weeks without progress")

    def test_unknown_level_means_keep_going(self):
        suggestion = suggest_intervention(StallState("bench", "Bench Press", 0.5, "none"))
        assert suggestion.level == "none"
        assert suggestion.action == "Continue current progression"
