"""Composite fatigue score."""

from dataclasses import replace

import pytest

from ironplan.config import FatigueConfig
from ironplan.judgment_day.readiness import (
    compute_fatigue_score,
    fatigue_rationale,
    soreness_factor,
)
from ironplan.types import WearableSnapshot

from conftest import make_signal


class TestFatigueScore:

    def test_fresh_check_in(self, fresh_signal):
        score = compute_fatigue_score(fresh_signal)
        assert score.overall == pytest.approx(0.9)
        assert score.weights.wearable == 0.0
        assert score.weights.subjective == pytest.approx(0.6)
        assert score.weights.performance == pytest.approx(0.4)
        assert score.per_muscle == {}

    def test_exhausted_check_in(self, exhausted_signal):
        assert compute_fatigue_score(exhausted_signal).overall == pytest.approx(0.252)

    @pytest.mark.parametrize("readiness,motivation,rpe,stalls,compliance", [
        (1, 1, 10.0, 20, 0.0),
        (5, 5, -10.0, 0, 1.0),
        (3, 2, 1.5, 1, 0.5),
    ])
    def test_overall_is_bounded(self, readiness, motivation, rpe, stalls, compliance):
        signal = make_signal(
            readiness=readiness,
            motivation=motivation,
            rpe_deviation=rpe,
            stall_count=stalls,
            volume_compliance_rate=compliance,
        )
        overall = compute_fatigue_score(signal).overall
        assert 0.0 <= overall <= 1.0

    def test_soreness_only_lowers(self):
        baseline = compute_fatigue_score(make_signal()).overall
        sore = compute_fatigue_score(make_signal(soreness={"chest": 3, "quads": 2}))

        assert sore.overall < baseline
        assert sore.per_muscle["Chest"] == pytest.approx(0.0)
        assert sore.per_muscle["Quads"] == pytest.approx(sore.overall * 0.5)

    def test_unsore_report_matches_overall(self):
        score = compute_fatigue_score(make_signal(soreness={"lats": 1}))
        assert score.per_muscle == {"Lats": pytest.approx(score.overall)}

    def test_wearable_weighting(self):
        signal = replace(
            make_signal(readiness=3, motivation=3),
            wearable=WearableSnapshot(recovery=100, strain=10, hrv=60, sleep_quality=100),
        )
        score = compute_fatigue_score(signal)
        assert score.weights.wearable == pytest.approx(0.5)
        assert score.components.wearable_contribution == pytest.approx(0.5)
        assert 0.0 <= score.overall <= 1.0

    def test_strain_overreach_penalized(self):
        easy = replace(make_signal(), wearable=WearableSnapshot(80, 10, 50, 80))
        hard = replace(make_signal(), wearable=WearableSnapshot(80, 19, 50, 80))
        assert compute_fatigue_score(hard).overall < compute_fatigue_score(easy).overall

    def test_configurable_weights(self, fresh_signal):
        config = FatigueConfig(subjective_weight=1.0, performance_weight=0.0)
        assert compute_fatigue_score(fresh_signal, config).overall == pytest.approx(1.0)


def test_soreness_factor_scale():
    assert [soreness_factor(level) for level in (1, 2, 3)] == [1.0, 0.5, 0.0]


def test_rationale_mentions_components(fresh_signal):
    text = fatigue_rationale(compute_fatigue_score(fresh_signal))
    assert text.startswith("Fatigue score: 90% (very fresh)")
    assert "Subjective 60%" in text
    assert "Wearable" not in text
