"""
Stall Detection

Internal Codename: JUDGMENT-DAY
Flags exercises whose estimated 1RM has not improved recently and maps the
length of the plateau onto an escalating intervention ladder:

microload -> deload -> variation -> volume_reset -> goal_reassess
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..config import StallConfig
from ..types import ExerciseSession, InterventionSuggestion, LoggedSet, StallState

logger = logging.getLogger(__name__)


def estimate_one_rep_max(load: float, reps: int, max_reps: int = 10) -> float:
    """Epley e1RM: load x (1 + reps/30), reps capped for accuracy."""
    return load * (1 + min(max_reps, reps) / 30)


def best_e1rm(sets: Iterable[LoggedSet], max_reps: int = 10) -> Optional[float]:
    values = [estimate_one_rep_max(s.load, s.reps, max_reps) for s in sets]
    return max(values) if values else None


def sessions_since_last_pr(sessions: List[ExerciseSession], max_reps: int = 10) -> int:
    """
    Sessions performed after the most recent best-ever e1RM.

    The first session sets the baseline. Sessions with no sets are ignored.
    """
    ordered = sorted(sessions, key=lambda s: s.performed_at)
    best = None
    since = 0
    for session in ordered:
        value = best_e1rm(session.sets, max_reps)
        if value is None:
            continue
        if best is None or value > best:
            best = value
            since = 0
        else:
            since += 1
    return since


def intervention_level(weeks: float, config: StallConfig) -> str:
    if weeks >= config.weeks_until_goal_reassess:
        return 'goal_reassess'
    if weeks >= config.weeks_until_volume_reset:
        return 'volume_reset'
    if weeks >= config.weeks_until_variation:
        return 'variation'
    if weeks >= config.weeks_until_deload:
        return 'deload'
    if weeks >= config.weeks_until_microload:
        return 'microload'
    return 'none'


def detect_stalls(
    history: Iterable[ExerciseSession],
    config: Optional[StallConfig] = None
) -> List[StallState]:
    """
    Find stalled exercises in a training history.

    Args:
        history: Logged exercise sessions, any order
        config: Ladder thresholds

    Returns:
        StallState per stalled exercise, longest plateau first
    """
    config = config or StallConfig()

    by_exercise: Dict[str, List[ExerciseSession]] = defaultdict(list)
    for session in history:
        by_exercise[session.exercise_id].append(session)

    stalls = []
    for exercise_id, sessions in by_exercise.items():
        if len(sessions) < config.min_sessions:
            continue

        since = sessions_since_last_pr(sessions, config.max_reps_for_e1rm)
        weeks = round(since / max(1, config.sessions_per_week), 1)
        level = intervention_level(weeks, config)
        if level == 'none':
            continue

        latest = max(sessions, key=lambda s: s.performed_at)
        stalls.append(StallState(
            exercise_id=exercise_id,
            exercise_name=latest.exercise_name,
            weeks_without_progress=weeks,
            level=level,
        ))

    stalls.sort(key=lambda s: (-s.weeks_without_progress, s.exercise_id))
    if stalls:
        logger.info(f"Detected {len(stalls)} stalled exercise(s)")
    return stalls


_LADDER = {
    'microload': (
        "Use microloading: increase by 1-2 lbs instead of 5 lbs",
        "{weeks} weeks without progress. Smaller increments may break through the plateau."
    ),
    'deload': (
        "Deload: reduce load by 10%, rebuild over 2-3 weeks",
        "{weeks} weeks without progress. A deload dissipates accumulated fatigue."
    ),
    'variation': (
        "Swap exercise variation: try a different grip, stance or equipment",
        "{weeks} weeks without progress. A variation may provide a novel stimulus."
    ),
    'volume_reset': (
        "Volume reset: drop to MEV and rebuild over 4 weeks",
        "{weeks} weeks without progress. A longer volume reset resensitizes the muscle."
    ),
    'goal_reassess': (
        "Reassess the training goal: consider coaching or a different movement pattern",
        "{weeks}+ weeks without progress. The goal itself may need revisiting."
    ),
}


def suggest_intervention(stall: StallState) -> InterventionSuggestion:
    """Action and rationale for a stall's ladder level."""
    if stall.level not in _LADDER:
        return InterventionSuggestion(
            exercise_id=stall.exercise_id,
            exercise_name=stall.exercise_name,
            level='none',
            action="Continue current progression",
            rationale="No intervention needed (normal variation).",
        )

    action, rationale = _LADDER[stall.level]
    return InterventionSuggestion(
        exercise_id=stall.exercise_id,
        exercise_name=stall.exercise_name,
        level=stall.level,
        action=action,
        rationale=rationale.format(weeks=f"{stall.weeks_without_progress:g}"),
    )
