"""
Exercise Selection

Internal Codename: JUDGMENT-DAY
Chooses exercises that cover target muscles from a candidate pool.

Selection runs in two greedy phases:
1. Compounds, scored on raw muscle coverage
2. Isolations, which additionally earn a bonus for movement patterns the
   session does not have yet

Ties are broken with a seeded random.Random so identical input and seed
always produce the same session.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..anatomy import normalize_muscle, resolve_target_muscles
from ..config import SelectionConfig
from ..types import (
    Exercise,
    ExerciseExposure,
    ExerciseRationale,
    PrimaryGoal,
    SelectionOutput,
    SessionIntent,
)
from .analysis import SelectionAnalysis, analyze_selection
from .intent import is_tag_incompatible

logger = logging.getLogger(__name__)

BLOCKED_TAGS = frozenset({"core", "mobility", "prehab", "conditioning"})

MAIN_PICK = 'main_pick'
ACCESSORY_PICK = 'accessory_pick'

# Per-exercise time estimate when trimming to a time budget
DEFAULT_SECONDS_PER_SET = 120
COMPOUND_REST_SECONDS = 120
ISOLATION_REST_SECONDS = 75


@dataclass
class SmartBuildInput:
    target_muscle_groups: List[str]
    exercise_pool: List[Exercise]
    exercise_count: int = 7
    seed: int = 0
    available_equipment: Optional[List[str]] = None
    intent: Optional[SessionIntent] = None
    training_goal: Optional[PrimaryGoal] = None
    time_budget_minutes: Optional[int] = None


@dataclass
class SmartBuildResult:
    exercises: List[Exercise]
    analysis: SelectionAnalysis
    rationale: Dict[str, ExerciseRationale] = field(default_factory=dict)
    target_muscles: List[str] = field(default_factory=list)


def _primary(exercise: Exercise) -> List[str]:
    return [normalize_muscle(m) for m in exercise.primary_muscles]


def _secondary(exercise: Exercise) -> List[str]:
    return [normalize_muscle(m) for m in exercise.secondary_muscles]


def filter_pool(
    pool: Sequence[Exercise],
    target_muscles: Iterable[str],
    available_equipment: Optional[Iterable[str]] = None,
    intent: Optional[SessionIntent] = None
) -> List[Exercise]:
    """
    Remove candidates that must not appear in this session.

    - Avoided exercises are always removed.
    - Blocked categories (core/mobility/prehab/conditioning) and split tags
      that contradict the intent are removed unless a primary muscle is a
      target.
    - With an equipment list, an exercise needs at least one of its
      equipment items available. Exercises listing no equipment need none.
    """
    targets = {normalize_muscle(m) for m in target_muscles}
    equipment = {e.lower() for e in available_equipment} if available_equipment else None

    kept = []
    for ex in pool:
        if ex.is_avoided:
            continue

        blocked = bool(set(ex.split_tags) & BLOCKED_TAGS) or is_tag_incompatible(ex, intent)
        if blocked and not any(m in targets for m in _primary(ex)):
            continue

        if equipment is not None and ex.equipment:
            if not any(item.lower() in equipment for item in ex.equipment):
                continue

        kept.append(ex)
    return kept


def score_components(
    exercise: Exercise,
    target_muscles: Set[str],
    covered_muscles: Set[str],
    covered_patterns: Set[str],
    compound_phase: bool,
    config: Optional[SelectionConfig] = None,
    training_goal: Optional[PrimaryGoal] = None
) -> Dict[str, float]:
    """Score broken down by component; see score_exercise_for_build."""
    config = config or SelectionConfig()
    primary = _primary(exercise)

    components = {
        'primary': config.primary_hit_points * sum(1 for m in primary if m in target_muscles),
        'secondary': config.secondary_hit_points * sum(
            1 for m in _secondary(exercise) if m in target_muscles
        ),
        'uncovered': config.uncovered_bonus * sum(
            1 for m in primary if m in target_muscles and m not in covered_muscles
        ),
        'favorite': config.favorite_bonus if exercise.is_favorite else 0.0,
    }

    if not compound_phase:
        components['novel_pattern'] = config.novel_pattern_bonus * sum(
            1 for p in exercise.movement_patterns if p not in covered_patterns
        )

    if training_goal == PrimaryGoal.STRENGTH and exercise.is_compound:
        components['goal'] = 4.0
    elif training_goal == PrimaryGoal.HYPERTROPHY and not exercise.is_compound:
        components['goal'] = 2.0
    elif training_goal == PrimaryGoal.FAT_LOSS and exercise.is_compound:
        components['goal'] = 2.0

    return components


def score_exercise_for_build(
    exercise: Exercise,
    target_muscles: Set[str],
    covered_muscles: Set[str],
    covered_patterns: Set[str],
    compound_phase: bool,
    config: Optional[SelectionConfig] = None,
    training_goal: Optional[PrimaryGoal] = None
) -> float:
    """
    Additive build score.

    6 per primary target hit, 2 per secondary target hit, 0.5 per target hit
    not yet covered, 3 for a favorite. In the isolation phase only, a bonus
    per movement pattern not yet covered.
    """
    return sum(score_components(
        exercise, target_muscles, covered_muscles, covered_patterns,
        compound_phase, config, training_goal
    ).values())


def determine_compound_count(total: int, training_goal: Optional[PrimaryGoal] = None) -> int:
    if total <= 5:
        count = 2
    elif total <= 7:
        count = 3
    else:
        count = int(math.floor(total * 0.4 + 0.5))
    if training_goal == PrimaryGoal.STRENGTH:
        count += 1
    return min(count, total)


def _pick_best(scores: List[float], rng: random.Random) -> int:
    """Index of the highest score; ties go to the seeded generator."""
    best = max(scores)
    tied = [i for i, s in enumerate(scores) if math.isclose(s, best)]
    if len(tied) == 1:
        return tied[0]
    return rng.choice(tied)


def _cover(exercise: Exercise, covered_muscles: Set[str], covered_patterns: Set[str]) -> None:
    covered_muscles.update(_primary(exercise))
    covered_muscles.update(_secondary(exercise))
    covered_patterns.update(exercise.movement_patterns)


def _target_hits(exercise: Exercise, targets: Set[str]) -> int:
    return sum(1 for m in _primary(exercise) if m in targets)


def _estimated_seconds(exercise: Exercise) -> int:
    sets = 4 if exercise.is_compound else 3
    rest = COMPOUND_REST_SECONDS if exercise.is_compound else ISOLATION_REST_SECONDS
    return sets * ((exercise.time_per_set_sec or DEFAULT_SECONDS_PER_SET) + rest)


def _trim_to_budget(ordered: List[Exercise], minutes: int) -> List[Exercise]:
    budget = minutes * 60
    used = 0
    kept = []
    for ex in ordered:
        seconds = _estimated_seconds(ex)
        if used + seconds > budget and kept:
            break
        used += seconds
        kept.append(ex)
    return kept


def _unique_contributions(index: int, ordered: List[Exercise]) -> int:
    others = {m for j, ex in enumerate(ordered) if j != index for m in _primary(ex)}
    return sum(1 for m in _primary(ordered[index]) if m not in others)


def smart_build(
    build_input: SmartBuildInput,
    config: Optional[SelectionConfig] = None
) -> SmartBuildResult:
    """
    Select exercises for a session.

    Args:
        build_input: Target groups, pool, count, seed and optional filters
        config: Scoring weights

    Returns:
        SmartBuildResult: exercises (compounds first), analysis and per-exercise
        rationale. A pool smaller than the requested count yields the whole
        filtered pool.
    """
    config = config or SelectionConfig()
    rng = random.Random(build_input.seed)
    goal = build_input.training_goal
    intent = build_input.intent

    target_muscles = resolve_target_muscles(build_input.target_muscle_groups)
    if not target_muscles:
        logger.warning(f"No known muscles in {build_input.target_muscle_groups}; nothing to build")
        return SmartBuildResult([], analyze_selection([], intent))

    pool = filter_pool(
        build_input.exercise_pool,
        target_muscles,
        build_input.available_equipment,
        intent,
    )
    if not pool:
        return SmartBuildResult([], analyze_selection([], intent), target_muscles=target_muscles)

    target_count = max(0, min(build_input.exercise_count, len(pool)))
    targets = set(target_muscles)
    covered_muscles: Set[str] = set()
    covered_patterns: Set[str] = set()
    selected: List[Exercise] = []
    rationale: Dict[str, ExerciseRationale] = {}

    def run_phase(candidates: List[Exercise], slots: int, compound_phase: bool) -> None:
        for _ in range(slots):
            if not candidates:
                return
            breakdowns = [
                score_components(ex, targets, covered_muscles, covered_patterns,
                                 compound_phase, config, goal)
                for ex in candidates
            ]
            scores = [sum(b.values()) for b in breakdowns]
            index = _pick_best(scores, rng)
            pick = candidates.pop(index)
            selected.append(pick)
            _cover(pick, covered_muscles, covered_patterns)
            rationale[pick.id] = ExerciseRationale(
                score=scores[index],
                components=breakdowns[index],
                selected_step=MAIN_PICK if compound_phase else ACCESSORY_PICK,
                reason=(
                    f"Hits {_target_hits(pick, targets)} target muscle(s)"
                    + (" (favorite)" if pick.is_favorite else "")
                ),
            )

    compound_slots = determine_compound_count(target_count, goal)
    run_phase([ex for ex in pool if ex.is_compound], compound_slots, compound_phase=True)

    chosen = {ex.id for ex in selected}
    remaining = [ex for ex in pool if ex.id not in chosen]
    run_phase(remaining, target_count - len(selected), compound_phase=False)

    # Compounds first, each group by target hits (stable for equal hits)
    ordered = (
        sorted((ex for ex in selected if ex.is_compound), key=lambda ex: -_target_hits(ex, targets))
        + sorted((ex for ex in selected if not ex.is_compound), key=lambda ex: -_target_hits(ex, targets))
    )

    if build_input.time_budget_minutes:
        ordered = _trim_to_budget(ordered, build_input.time_budget_minutes)

    analysis = analyze_selection(ordered, intent)

    chosen = {ex.id for ex in ordered}
    leftover = [ex for ex in pool if ex.id not in chosen]
    if ordered and leftover and analysis.overall_score < config.improvement_threshold:
        for _ in range(config.improvement_iterations):
            weakest = min(range(len(ordered)), key=lambda i: _unique_contributions(i, ordered))

            kept = [ex for i, ex in enumerate(ordered) if i != weakest]
            muscles: Set[str] = set()
            patterns: Set[str] = set()
            for ex in kept:
                _cover(ex, muscles, patterns)

            swap_scores = [
                score_exercise_for_build(ex, targets, muscles, patterns, False, config, goal)
                for ex in leftover
            ]
            best = _pick_best(swap_scores, rng)
            replacement = leftover[best]
            removed = ordered[weakest]

            trial = list(ordered)
            trial[weakest] = replacement
            trial_analysis = analyze_selection(trial, intent)
            if trial_analysis.overall_score <= analysis.overall_score:
                break

            logger.debug(f"Swapped {removed.id} for {replacement.id} to improve analysis")
            ordered = trial
            analysis = trial_analysis
            leftover[best] = removed
            rationale.pop(removed.id, None)
            rationale[replacement.id] = ExerciseRationale(
                score=swap_scores[best],
                components={},
                selected_step=ACCESSORY_PICK,
                reason=f"Swapped in to improve coverage (replaced {removed.id})",
            )

    return SmartBuildResult(
        exercises=ordered,
        analysis=analysis,
        rationale={ex.id: rationale[ex.id] for ex in ordered},
        target_muscles=target_muscles,
    )


def build_selection_output(
    build: SmartBuildResult,
    weekly_targets: Mapping[str, int],
    sessions_per_week: int,
    config: Optional[SelectionConfig] = None,
    max_main_lifts: int = 2
) -> SelectionOutput:
    """
    Partition a build into main lifts and accessories and assign set targets.

    Each muscle's weekly target is spread over the week's sessions, then shared
    among the exercises that hit it as a primary mover. An exercise gets the
    largest share among its muscles, clamped to the configured range; one with
    no targeted muscle gets the default.
    """
    config = config or SelectionConfig()
    targets = {normalize_muscle(m): sets for m, sets in weekly_targets.items() if sets > 0}
    sessions = max(1, sessions_per_week)

    hitters: Dict[str, int] = {}
    for ex in build.exercises:
        for m in set(_primary(ex)):
            if m in targets:
                hitters[m] = hitters.get(m, 0) + 1

    set_targets: Dict[str, int] = {}
    for ex in build.exercises:
        shares = [
            math.ceil(math.ceil(targets[m] / sessions) / hitters[m])
            for m in set(_primary(ex)) if m in targets
        ]
        sets = max(shares) if shares else config.default_set_target
        set_targets[ex.id] = max(config.min_sets_per_exercise, min(config.max_sets_per_exercise, sets))

    main_lifts: List[str] = []
    for ex in build.exercises:
        if len(main_lifts) >= max_main_lifts:
            break
        if ex.is_compound and ex.is_main_lift_eligible:
            main_lifts.append(ex.id)

    ids = tuple(ex.id for ex in build.exercises)
    return SelectionOutput(
        selected_exercise_ids=ids,
        main_lift_ids=tuple(main_lifts),
        accessory_ids=tuple(i for i in ids if i not in main_lifts),
        per_exercise_set_targets=set_targets,
        rationale=dict(build.rationale),
    )


def novelty_score(
    exposure: Optional[ExerciseExposure],
    as_of: datetime,
    window_days: int = 30
) -> float:
    """
    Novelty from 0 (used today) to 10 (unused for window_days or never).
    """
    if exposure is None:
        return 10.0
    days_since = (as_of - exposure.last_used_at).days
    return max(0.0, min(10.0, days_since / window_days * 10))


def exclude_recently_used(
    pool: Sequence[Exercise],
    exposures: Mapping[str, ExerciseExposure],
    as_of: datetime,
    days: int = 7
) -> List[Exercise]:
    """Drop exercises used within the last `days` days."""
    kept = []
    for ex in pool:
        exposure = exposures.get(ex.id)
        if exposure is not None and (as_of - exposure.last_used_at).days < days:
            continue
        kept.append(ex)
    return kept


def selection_summary(build: SmartBuildResult) -> List[Tuple[str, str]]:
    """(name, step) pairs in session order, for display."""
    return [(ex.name, build.rationale[ex.id].selected_step) for ex in build.exercises]
