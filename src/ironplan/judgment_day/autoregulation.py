"""
Autoregulation

Internal Codename: JUDGMENT-DAY
Bounded, staleness-gated rescaling of a drafted session from the latest
readiness signal.

Actions by fatigue score (0 = exhausted, 1 = fresh):
- < deload_threshold      -> trigger_deload
- < scale_down_threshold  -> scale_down (reduce_volume under an aggressive policy)
- otherwise               -> maintain

Prescriptions are only ever lowered. Load never drops more than
max_load_reduction in a session and never rises above the draft.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..config import AutoregulationConfig, FatigueConfig
from ..repository import ReadinessRepository
from ..types import (
    AutoregulationModification,
    AutoregulationResult,
    FatigueScore,
    PlannedExercise,
    SessionPlan,
)
from .readiness import compute_fatigue_score, fatigue_level_label, fatigue_rationale

logger = logging.getLogger(__name__)

NO_RECENT_SIGNAL = "No recent readiness signal"
DELOAD_NOTE = "[AUTO-DELOAD TRIGGERED]"

TRIGGER_DELOAD = 'trigger_deload'
SCALE_DOWN = 'scale_down'
REDUCE_VOLUME = 'reduce_volume'
MAINTAIN = 'maintain'


def bounded_load(original: float, factor: float, config: AutoregulationConfig) -> float:
    """
    Scale a load down, never below (1 - max_load_reduction) x original and
    never above the original.

    Rounds up to the configured plate increment so rounding cannot break the
    lower bound.
    """
    floor_factor = 1.0 - config.max_load_reduction
    target = original * max(factor, floor_factor)
    increment = config.load_increment
    if increment > 0:
        target = math.ceil(round(target / increment, 6)) * increment
    return min(original, target)


def select_action(overall: float, config: AutoregulationConfig) -> str:
    if overall < config.deload_threshold:
        return TRIGGER_DELOAD if config.allow_down_regulation else MAINTAIN

    if overall < config.scale_down_threshold:
        if not config.allow_down_regulation:
            return MAINTAIN
        if config.aggressiveness == 'aggressive':
            return REDUCE_VOLUME
        return SCALE_DOWN

    return MAINTAIN


def _scale_down(
    exercise: PlannedExercise,
    config: AutoregulationConfig
) -> Tuple[PlannedExercise, Optional[AutoregulationModification]]:
    """Cut load by the scale-down factor and add one rep in reserve."""
    if not exercise.sets:
        return exercise, None

    first = exercise.sets[0]
    sets = []
    for s in exercise.sets:
        load = s.target_load
        if load is not None and load > 0:
            load = bounded_load(load, config.scale_down_factor, config)
        rir = None if s.target_rir is None else s.target_rir + 1
        sets.append(replace(s, target_load=load, target_rir=rir))

    adjusted = replace(exercise, sets=tuple(sets))
    if adjusted == exercise:
        return exercise, None

    new_first = adjusted.sets[0]
    if first.target_load:
        reason = (
            f"Scaled down {exercise.name} from {first.target_load:g} lbs to "
            f"{new_first.target_load:g} lbs"
        )
    else:
        reason = f"Scaled down {exercise.name} effort"
    if first.target_rir is not None:
        reason += f" (RIR {first.target_rir:g} -> {new_first.target_rir:g})"

    return adjusted, AutoregulationModification(
        kind='intensity_scale',
        exercise_id=exercise.exercise_id,
        exercise_name=exercise.name,
        reason=reason,
        original_load=first.target_load,
        adjusted_load=new_first.target_load,
        original_rir=first.target_rir,
        adjusted_rir=new_first.target_rir,
        original_set_count=len(exercise.sets),
        adjusted_set_count=len(adjusted.sets),
    )


def _reduce_volume(
    exercise: PlannedExercise,
    config: AutoregulationConfig
) -> Tuple[PlannedExercise, Optional[AutoregulationModification]]:
    """Drop accessory sets down to a preserved minimum; main lifts are untouched."""
    if exercise.is_main_lift:
        return exercise, None

    original_count = len(exercise.sets)
    to_drop = min(config.max_sets_to_drop, max(0, original_count - config.min_sets_preserved))
    if to_drop == 0:
        return exercise, None

    adjusted = replace(exercise, sets=exercise.sets[:original_count - to_drop])
    return adjusted, AutoregulationModification(
        kind='volume_reduction',
        exercise_id=exercise.exercise_id,
        exercise_name=exercise.name,
        reason=(
            f"Reduced {exercise.name} from {original_count} sets to "
            f"{len(adjusted.sets)} sets (-{to_drop} sets)"
        ),
        original_set_count=original_count,
        adjusted_set_count=len(adjusted.sets),
    )


def _deload(
    exercise: PlannedExercise,
    config: AutoregulationConfig
) -> Tuple[PlannedExercise, Optional[AutoregulationModification]]:
    """Halve sets, cut load to the cap and raise RIR to the deload floor."""
    original_count = len(exercise.sets)
    if original_count == 0:
        return exercise, None

    keep = max(1, int(math.floor(original_count * config.deload_volume_factor + 0.5)))
    keep = min(keep, original_count)

    sets = []
    for s in exercise.sets[:keep]:
        load = s.target_load
        if load is not None and load > 0:
            load = bounded_load(load, 0.0, config)
        rir = config.deload_rir if s.target_rir is None else max(s.target_rir, config.deload_rir)
        sets.append(replace(s, target_load=load, target_rir=rir))

    adjusted = replace(exercise, sets=tuple(sets))
    if adjusted == exercise:
        return exercise, None

    first, new_first = exercise.sets[0], adjusted.sets[0]
    return adjusted, AutoregulationModification(
        kind='deload_trigger',
        exercise_id=exercise.exercise_id,
        exercise_name=exercise.name,
        reason=(
            f"Deload: {exercise.name} reduced to {keep} sets, "
            f"RPE {10 - new_first.target_rir:g}"
            + (f", {new_first.target_load:g} lbs" if new_first.target_load else "")
        ),
        original_load=first.target_load,
        adjusted_load=new_first.target_load,
        original_rir=first.target_rir,
        adjusted_rir=new_first.target_rir,
        original_set_count=original_count,
        adjusted_set_count=keep,
    )


_ACTIONS = {
    SCALE_DOWN: _scale_down,
    REDUCE_VOLUME: _reduce_volume,
    TRIGGER_DELOAD: _deload,
}


def _action_rationale(action: str, score: FatigueScore, count: int) -> str:
    pct = round(score.overall * 100)
    level = fatigue_level_label(score.overall)
    if action == SCALE_DOWN:
        return f"Fatigue score {pct}% ({level}). Action: scale down intensity. {count} exercises adjusted."
    if action == REDUCE_VOLUME:
        return (
            f"Fatigue score {pct}% ({level}). Action: reduce volume. "
            f"{count} accessories trimmed (main lifts preserved)."
        )
    if action == TRIGGER_DELOAD:
        return f"Fatigue score {pct}% ({level}). Action: deload triggered. {count} exercises reduced."
    return f"Fatigue score {pct}% ({level}). No adjustments needed."


def autoregulate_session(
    session: SessionPlan,
    score: FatigueScore,
    config: Optional[AutoregulationConfig] = None
) -> AutoregulationResult:
    """
    Rescale a session for a fatigue score. Pure; the input is not modified.

    Returns:
        AutoregulationResult; applied is True only when something changed
    """
    config = config or AutoregulationConfig()
    action = select_action(score.overall, config)

    if action == MAINTAIN:
        return AutoregulationResult(
            adjusted=session,
            applied=False,
            reason=_action_rationale(action, score, 0),
            fatigue_score=score,
        )

    apply = _ACTIONS[action]
    exercises = []
    modifications: List[AutoregulationModification] = []
    for exercise in session.exercises:
        adjusted, modification = apply(exercise, config)
        exercises.append(adjusted)
        if modification is not None:
            modifications.append(modification)

    if not modifications:
        return AutoregulationResult(
            adjusted=session,
            applied=False,
            reason=_action_rationale(action, score, 0),
            fatigue_score=score,
        )

    notes = session.notes
    if action == TRIGGER_DELOAD:
        notes = f"{DELOAD_NOTE} {notes}" if notes else DELOAD_NOTE

    adjusted_session = replace(
        session,
        exercises=tuple(exercises),
        notes=notes,
        rationale=session.rationale + (fatigue_rationale(score),),
    )
    return AutoregulationResult(
        adjusted=adjusted_session,
        applied=True,
        reason=_action_rationale(action, score, len(modifications)),
        fatigue_score=score,
        modifications=tuple(modifications),
    )


class Autoregulator:
    """
    Reads the latest readiness signal and applies bounded adjustments.

    Usage:
        autoregulator = Autoregulator(repository)
        result = autoregulator.apply_autoregulation(user_id, draft, now=datetime.now())
    """

    def __init__(
        self,
        readiness_repository: ReadinessRepository,
        config: Optional[AutoregulationConfig] = None,
        fatigue_config: Optional[FatigueConfig] = None
    ):
        self.readiness_repository = readiness_repository
        self.config = config or AutoregulationConfig()
        self.fatigue_config = fatigue_config or FatigueConfig()

    def is_stale(self, timestamp: datetime, now: datetime) -> bool:
        return now - timestamp > timedelta(hours=self.config.staleness_hours)

    def apply_autoregulation(
        self,
        user_id: str,
        draft_session: SessionPlan,
        now: datetime
    ) -> AutoregulationResult:
        """
        Adjust a drafted session using the user's latest readiness signal.

        Args:
            user_id: Trainee
            draft_session: Session as planned before readiness is considered
            now: Current time (stale signals are ignored)

        Returns:
            AutoregulationResult. Without a fresh signal, adjusted is the
            draft itself and applied is False.
        """
        signal = self.readiness_repository.latest_readiness_signal(user_id)

        if signal is None or self.is_stale(signal.timestamp, now):
            logger.info(f"No fresh readiness signal for {user_id}; session left unchanged")
            return AutoregulationResult(
                adjusted=draft_session,
                applied=False,
                reason=NO_RECENT_SIGNAL,
            )

        score = compute_fatigue_score(signal, self.fatigue_config)
        result = autoregulate_session(draft_session, score, self.config)
        if result.applied:
            logger.info(
                f"Autoregulated session for {user_id}: {len(result.modifications)} modification(s), "
                f"fatigue {score.overall:.2f}"
            )
        return result
