"""Weekly volume ramp."""

import logging

import pytest

from ironplan.anatomy import VOLUME_LANDMARKS
from ironplan.config import RampConfig
from ironplan.judgment_day.volume import (
    VolumeLandmarkRamp,
    ramp_values,
    round_half_up,
    weekly_volume_target,
)
from ironplan.types import MuscleVolumeLandmark, RampSchedule


def test_chest_ramp_for_default_five_week_cycle():
    chest = VOLUME_LANDMARKS["Chest"]
    assert [weekly_volume_target(chest, w) for w in range(1, 5)] == [10, 12, 14, 16]


def test_deload_week_is_fraction_of_last_accumulation_week():
    chest = VOLUME_LANDMARKS["Chest"]
    assert weekly_volume_target(chest, 5) == 7      # round(16 * 0.45)
    biceps = VOLUME_LANDMARKS["Biceps"]
    assert weekly_volume_target(biceps, 5) == 8     # round(17 * 0.45) = round(7.65)


@pytest.mark.parametrize("duration", [4, 5, 6, 8])
def test_ramp_is_monotonic_and_steps_are_bounded(duration):
    for muscle, landmark in VOLUME_LANDMARKS.items():
        weeks = [weekly_volume_target(landmark, w, duration) for w in range(1, duration)]
        total_range = weeks[-1] - weeks[0]
        for earlier, later in zip(weeks, weeks[1:]):
            assert later >= earlier, muscle
            assert later - earlier <= total_range / 2, muscle

        deload = weekly_volume_target(landmark, duration, duration)
        assert deload == round_half_up(weeks[-1] * 0.45), muscle


def test_odd_range_over_three_weeks_lowers_peak():
    side_delts = VOLUME_LANDMARKS["Side Delts"]
    assert [weekly_volume_target(side_delts, w, 4) for w in range(1, 5)] == [8, 13, 18, 8]


def test_zero_mev_muscle_still_has_defined_targets():
    front_delts = VOLUME_LANDMARKS["Front Delts"]
    assert [weekly_volume_target(front_delts, w) for w in range(1, 6)] == [0, 2, 4, 7, 3]


def test_single_accumulation_week():
    assert list(ramp_values(RampSchedule(8, 14), duration_weeks=2)) == [8]


def test_inverted_schedule_holds_flat(caplog):
    with caplog.at_level(logging.WARNING):
        values = list(ramp_values(RampSchedule(start_sets=10, peak_sets=6), 5))
    assert values == [10, 10, 10, 10]
    assert "below start" in caplog.text


class TestVolumeLandmarkRamp:

    def test_resolves_aliases(self):
        ramp = VolumeLandmarkRamp()
        assert ramp.target("pecs", 1) == ramp.target("Chest", 1) == 10

    def test_missing_landmark_falls_back_to_static_mev(self, caplog):
        ramp = VolumeLandmarkRamp(landmarks={"Lats": MuscleVolumeLandmark(6, 8, 16, 24)})
        with caplog.at_level(logging.WARNING):
            assert ramp.target("Chest", 3) == 10
        assert "No landmark configured" in caplog.text

    def test_unknown_muscle_does_not_raise(self):
        assert VolumeLandmarkRamp().target("Neck", 2) == 0

    def test_schedule_override_wins(self):
        ramp = VolumeLandmarkRamp()
        overrides = {"chest": RampSchedule(start_sets=12, peak_sets=18)}
        targets = [ramp.target("Chest", w, 5, overrides) for w in range(1, 6)]
        assert targets == [12, 14, 16, 18, 8]

    def test_configured_deload_fraction(self):
        ramp = VolumeLandmarkRamp(RampConfig(deload_fraction=0.5))
        assert ramp.target("Chest", 5) == 8

    def test_targetable_excludes_zero_mev(self):
        ramp = VolumeLandmarkRamp()
        assert ramp.is_targetable("Chest")
        assert not ramp.is_targetable("Front Delts")
        assert not ramp.is_targetable("Neck")

    def test_weekly_targets_keyed_by_canonical_name(self):
        targets = VolumeLandmarkRamp().weekly_targets(["quadriceps", "lats"], week=2)
        assert targets == {"Quads": 11, "Lats": 10}
