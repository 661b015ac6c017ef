"""Selection quality scoring."""

import pytest

from ironplan.judgment_day.analysis import analyze_selection, resolve_scope, score_to_label
from ironplan.types import SessionIntent


def _pick(by_id, *ids):
    return [by_id[i] for i in ids]


def test_push_day_breakdown(by_id):
    analysis = analyze_selection(_pick(by_id, "dips", "bench", "pushdown", "fly"), SessionIntent.PUSH)

    assert analysis.muscle_coverage.score == 61
    assert analysis.muscle_coverage.details['missed_critical'] == ["Side Delts"]
    assert analysis.compound_isolation.score == 100
    assert analysis.movement_diversity.score == 100
    assert analysis.push_pull_balance.details['applicable'] is False
    assert analysis.overall_label == "Good"
    assert analysis.suggestions[0] == "Add exercises targeting Side Delts for better muscle coverage."


def test_full_body_balance(by_id):
    analysis = analyze_selection(_pick(by_id, "bench", "row", "squat"), SessionIntent.FULL_BODY)
    assert analysis.push_pull_balance.score == 100
    assert analysis.push_pull_balance.details['applicable'] is True


def test_push_heavy_upper_day(by_id):
    analysis = analyze_selection(_pick(by_id, "bench", "ohp", "dips"), SessionIntent.UPPER)
    assert analysis.push_pull_balance.score == 0
    assert "Add more pulling exercises to balance your push/pull ratio." in analysis.suggestions
    assert len(analysis.suggestions) <= 3


def test_all_isolation_leg_day(by_id):
    analysis = analyze_selection(_pick(by_id, "leg_curl", "calf_raise"), SessionIntent.LEGS)
    assert analysis.compound_isolation.score == 0
    assert analysis.compound_isolation.details['compound_percent'] == 0


def test_empty_selection():
    analysis = analyze_selection([])
    assert analysis.overall_score == 0
    assert analysis.exercise_count == 0
    assert analysis.suggestions == ("Add exercises to see an analysis.",)


def test_scope_without_intent_uses_buckets_present(by_id):
    assert resolve_scope(None, _pick(by_id, "curl", "row")) == ("pull",)
    assert resolve_scope(SessionIntent.LOWER, _pick(by_id, "bench")) == ("legs",)


@pytest.mark.parametrize("score,label", [
    (100, "Excellent"), (85, "Excellent"), (70, "Good"), (55, "Fair"), (40, "Needs Work"), (39, "Poor"),
])
def test_labels(score, label):
    assert score_to_label(score) == label
