"""
Volume Landmark Ramp

Internal Codename: JUDGMENT-DAY
Produces this week's working-set target for a muscle.

Accumulation weeks (1..N-1) ramp linearly from a week-1 value to a
week-(N-1) value. The final week of the mesocycle is a deload reset to a
fixed fraction of the last accumulation week.
"""

import logging
import math
from typing import Dict, Iterable, Mapping, Optional, Union

import numpy as np

from ..anatomy import DEFAULT_FALLBACK_LANDMARK, VOLUME_LANDMARKS, normalize_muscle
from ..config import RampConfig
from ..types import MuscleVolumeLandmark, RampSchedule

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


def schedule_from_landmark(landmark: MuscleVolumeLandmark) -> RampSchedule:
    """Week 1 starts at MEV; the last accumulation week reaches MAV, capped at MRV."""
    peak = min(landmark.mav, landmark.mrv)
    return RampSchedule(start_sets=landmark.mev, peak_sets=max(landmark.mev, peak))


def ramp_values(schedule: RampSchedule, duration_weeks: int) -> np.ndarray:
    """
    Targets for accumulation weeks 1..N-1.

    Integer floor interpolation keeps the sequence non-decreasing and spreads
    the range as evenly as integers allow. No single step may exceed half of
    the total range, so a peak that cannot be split that way (an odd range
    over three accumulation weeks, say) is lowered until it can.

    Args:
        schedule: Week-1 and last-accumulation-week set counts
        duration_weeks: Mesocycle length including the deload week

    Returns:
        Integer array of length max(1, duration_weeks - 1)
    """
    accumulation_weeks = max(1, duration_weeks - 1)
    start = schedule.start_sets
    peak = schedule.peak_sets

    if peak < start:
        logger.warning(
            f"Ramp peak {peak} below start {start}; holding volume flat at {start}"
        )
        peak = start

    if accumulation_weeks == 1:
        return np.array([start], dtype=np.int64)

    steps = np.arange(accumulation_weeks, dtype=np.int64)
    ramp = start + (steps * (peak - start)) // (accumulation_weeks - 1)

    while peak > start and 2 * int(np.diff(ramp).max()) > peak - start:
        peak -= 1
        ramp = start + (steps * (peak - start)) // (accumulation_weeks - 1)

    if peak != schedule.peak_sets and schedule.peak_sets >= start:
        logger.debug(
            f"Ramp peak lowered {schedule.peak_sets} -> {peak} to keep weekly steps within half the range"
        )
    return ramp


def weekly_volume_target(
    muscle_landmarks: Union[MuscleVolumeLandmark, RampSchedule],
    week: int,
    duration_weeks: int = 5,
    deload_fraction: float = 0.45
) -> int:
    """
    Target working sets for one muscle in one week.

    Args:
        muscle_landmarks: Static landmarks or an explicit ramp schedule
        week: 1-indexed week within the mesocycle
        duration_weeks: Mesocycle length including the deload week
        deload_fraction: Deload target as a fraction of the last accumulation week

    Returns:
        Working sets for the week (>= 0)
    """
    if isinstance(muscle_landmarks, MuscleVolumeLandmark):
        schedule = schedule_from_landmark(muscle_landmarks)
    else:
        schedule = muscle_landmarks

    ramp = ramp_values(schedule, duration_weeks)

    if week >= duration_weeks:
        return round_half_up(int(ramp[-1]) * deload_fraction)

    index = min(max(week, 1), len(ramp)) - 1
    return int(ramp[index])


class VolumeLandmarkRamp:
    """
    Resolves landmarks and ramp schedules for muscles by name.

    Mesocycle-level ramp overrides take precedence, then the configured
    landmark table. A muscle missing from the configured table falls back to
    its static MEV instead of raising.
    """

    def __init__(
        self,
        config: Optional[RampConfig] = None,
        landmarks: Optional[Mapping[str, MuscleVolumeLandmark]] = None
    ):
        self.config = config or RampConfig()
        self.landmarks = {
            normalize_muscle(name): landmark
            for name, landmark in (landmarks if landmarks is not None else VOLUME_LANDMARKS).items()
        }

    def landmark_for(self, muscle: str) -> Optional[MuscleVolumeLandmark]:
        return self.landmarks.get(normalize_muscle(muscle))

    def is_targetable(self, muscle: str) -> bool:
        """Muscles with MEV 0 get no dedicated volume and are skipped by deficit logic."""
        landmark = self.landmark_for(muscle)
        return landmark is not None and landmark.mev > 0

    def target(
        self,
        muscle: str,
        week: int,
        duration_weeks: Optional[int] = None,
        schedule_overrides: Optional[Mapping[str, RampSchedule]] = None
    ) -> int:
        """Weekly set target for a muscle, never raising on missing config."""
        canonical = normalize_muscle(muscle)
        duration = duration_weeks or self.config.default_duration_weeks

        overrides = {
            normalize_muscle(name): schedule
            for name, schedule in (schedule_overrides or {}).items()
        }

        if canonical in overrides:
            schedule = overrides[canonical]
        else:
            landmark = self.landmarks.get(canonical)
            if landmark is None:
                static = VOLUME_LANDMARKS.get(canonical, DEFAULT_FALLBACK_LANDMARK)
                logger.warning(
                    f"No landmark configured for {muscle}; using static MEV={static.mev}"
                )
                return static.mev
            schedule = schedule_from_landmark(landmark)

        return weekly_volume_target(
            schedule,
            week,
            duration_weeks=duration,
            deload_fraction=self.config.deload_fraction
        )

    def weekly_targets(
        self,
        muscles: Iterable[str],
        week: int,
        duration_weeks: Optional[int] = None,
        schedule_overrides: Optional[Mapping[str, RampSchedule]] = None
    ) -> Dict[str, int]:
        """Targets for several muscles, keyed by canonical name."""
        return {
            normalize_muscle(m): self.target(m, week, duration_weeks, schedule_overrides)
            for m in muscles
        }
