"""
Intent Alignment

Internal Codename: JUDGMENT-DAY
Post-selection repair: makes a selection match the requested session intent
(push/pull/legs/upper/lower/full_body/body_part).

A selection that cannot be repaired comes back as an AlignmentFailure value.
Callers branch on it; it is never raised.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from ..anatomy import LOWER_MUSCLES, MUSCLE_SPLIT_MAP, UPPER_MUSCLES, normalize_muscle
from ..errors import AlignmentFailure
from ..types import (
    Exercise,
    ExerciseRationale,
    IntentDiagnostics,
    SelectionOutput,
    SessionIntent,
)

logger = logging.getLogger(__name__)

SPLIT_TAGS = frozenset({"push", "pull", "legs"})
REPAIR_NOTE = "repaired for intent alignment"


def _primary(exercise: Exercise) -> List[str]:
    return [normalize_muscle(m) for m in exercise.primary_muscles]


def is_upper(exercise: Exercise) -> bool:
    tags = set(exercise.split_tags)
    return bool(tags & {"push", "pull"}) or any(m in UPPER_MUSCLES for m in _primary(exercise))


def is_lower(exercise: Exercise) -> bool:
    return "legs" in exercise.split_tags or any(m in LOWER_MUSCLES for m in _primary(exercise))


def is_intent_aligned(
    exercise: Exercise,
    intent: SessionIntent,
    target_muscles: Optional[Iterable[str]] = None
) -> bool:
    """Whether an exercise's split tags and muscles fit a session intent."""
    if intent in (SessionIntent.PUSH, SessionIntent.PULL, SessionIntent.LEGS):
        return intent.value in exercise.split_tags
    if intent == SessionIntent.UPPER:
        return is_upper(exercise) and not is_lower(exercise)
    if intent == SessionIntent.LOWER:
        return is_lower(exercise)
    if intent == SessionIntent.FULL_BODY:
        return is_upper(exercise) or is_lower(exercise)

    # BODY_PART: primary muscles must hit the requested muscles
    targets = {normalize_muscle(m) for m in (target_muscles or ())}
    if not targets:
        return False
    return any(m in targets for m in _primary(exercise))


def is_tag_incompatible(exercise: Exercise, intent: Optional[SessionIntent]) -> bool:
    """
    Split tags that contradict the intent, e.g. a legs-only exercise in a push
    session. Untagged exercises never conflict.
    """
    tags = set(exercise.split_tags) & SPLIT_TAGS
    if not tags or intent is None:
        return False
    if intent in (SessionIntent.PUSH, SessionIntent.PULL, SessionIntent.LEGS):
        return intent.value not in tags
    if intent == SessionIntent.UPPER:
        return tags == {"legs"}
    if intent == SessionIntent.LOWER:
        return "legs" not in tags
    return False


def filter_pool_for_intent(
    pool: Sequence[Exercise],
    intent: SessionIntent,
    target_muscles: Optional[Iterable[str]] = None
) -> List[Exercise]:
    targets = list(target_muscles) if target_muscles is not None else None
    return [
        ex for ex in pool
        if not ex.is_avoided and is_intent_aligned(ex, intent, targets)
    ]


def _affinity(exercise: Optional[Exercise], intent: SessionIntent) -> float:
    """Share of primary muscles in the intent's buckets (lower = worse fit)."""
    if exercise is None:
        return -1.0
    muscles = _primary(exercise)
    if not muscles:
        return 0.0
    if intent in (SessionIntent.PUSH, SessionIntent.PULL, SessionIntent.LEGS):
        buckets = {intent.value}
    elif intent == SessionIntent.UPPER:
        buckets = {"push", "pull"}
    elif intent == SessionIntent.LOWER:
        buckets = {"legs"}
    else:
        buckets = {"push", "pull", "legs"}
    return sum(1 for m in muscles if MUSCLE_SPLIT_MAP.get(m) in buckets) / len(muscles)


def _target_hits(exercise: Exercise, targets: Set[str]) -> int:
    return sum(1 for m in _primary(exercise) if m in targets)


def _best_replacement(
    candidates: List[Exercise],
    removed: Optional[Exercise],
    targets: Set[str]
) -> Exercise:
    """Prefer same compound status, then most target hits, then pool order."""
    compound = removed.is_compound if removed is not None else None

    def key(indexed):
        index, ex = indexed
        return (
            0 if ex.is_compound == compound else 1,
            -_target_hits(ex, targets),
            index,
        )

    return min(enumerate(candidates), key=key)[1]


class _Repair:
    """Mutable working copy of a selection; the caller's selection is never touched."""

    def __init__(self, selection: SelectionOutput):
        self.ids: List[str] = list(selection.selected_exercise_ids)
        self.main: List[str] = list(selection.main_lift_ids)
        self.accessory: List[str] = list(selection.accessory_ids)
        self.sets: Dict[str, int] = dict(selection.per_exercise_set_targets)
        self.rationale: Dict[str, ExerciseRationale] = dict(selection.rationale)

    def swap(self, old_id: str, new_id: str) -> None:
        self.ids[self.ids.index(old_id)] = new_id
        for partition in (self.main, self.accessory):
            if old_id in partition:
                partition[partition.index(old_id)] = new_id

        if old_id in self.sets:
            self.sets[new_id] = self.sets.pop(old_id)

        previous = self.rationale.pop(old_id, None)
        if previous is not None:
            reason = f"{previous.reason}; {REPAIR_NOTE}" if previous.reason else REPAIR_NOTE
            self.rationale[new_id] = replace(previous, reason=f"{reason} (replaced {old_id})")

    def build(self, diagnostics: IntentDiagnostics) -> SelectionOutput:
        return SelectionOutput(
            selected_exercise_ids=tuple(self.ids),
            main_lift_ids=tuple(self.main),
            accessory_ids=tuple(self.accessory),
            per_exercise_set_targets=self.sets,
            rationale=self.rationale,
            diagnostics=diagnostics,
        )


def aligned_ratio(
    exercise_ids: Sequence[str],
    by_id: Dict[str, Exercise],
    intent: SessionIntent,
    target_muscles: Optional[Sequence[str]] = None
) -> float:
    if not exercise_ids:
        return 0.0
    aligned = sum(
        1 for ex_id in exercise_ids
        if ex_id in by_id and is_intent_aligned(by_id[ex_id], intent, target_muscles)
    )
    return aligned / len(exercise_ids)


def enforce_intent_alignment(
    selection: SelectionOutput,
    exercise_pool: Sequence[Exercise],
    intent: SessionIntent,
    min_aligned_ratio: float = 0.7,
    target_muscles: Optional[Sequence[str]] = None
) -> Union[SelectionOutput, AlignmentFailure]:
    """
    Swap misaligned exercises for unused aligned ones until the aligned ratio
    reaches min_aligned_ratio.

    Each swap keeps the replaced exercise's set target and rationale under the
    new id. Full-body sessions must also contain an upper-body and a
    lower-body exercise.

    Args:
        selection: Output of selection
        exercise_pool: Candidates, including the selected exercises
        intent: Requested session intent
        min_aligned_ratio: Required share of aligned exercises
        target_muscles: Muscles a body_part session must hit

    Returns:
        A new SelectionOutput with diagnostics, or AlignmentFailure
    """
    by_id = {ex.id: ex for ex in exercise_pool}
    targets = [normalize_muscle(m) for m in target_muscles] if target_muscles else None
    target_set = set(targets or [])

    def aligned(ex_id: str) -> bool:
        return ex_id in by_id and is_intent_aligned(by_id[ex_id], intent, targets)

    aligned_pool = [ex for ex in exercise_pool if not ex.is_avoided and is_intent_aligned(ex, intent, targets)]
    if not aligned_pool:
        return AlignmentFailure(
            error=f"No exercises in the pool align with {intent.value} intent",
            intent=intent.value,
            aligned_ratio=aligned_ratio(selection.selected_exercise_ids, by_id, intent, targets),
        )

    if not selection.selected_exercise_ids:
        return AlignmentFailure(error="Selection is empty", intent=intent.value, aligned_ratio=0.0)

    work = _Repair(selection)

    def unused_candidates(predicate=None) -> List[Exercise]:
        used = set(work.ids)
        return [
            ex for ex in aligned_pool
            if ex.id not in used and (predicate is None or predicate(ex))
        ]

    ratio = aligned_ratio(work.ids, by_id, intent, targets)
    while ratio < min_aligned_ratio:
        misaligned = [ex_id for ex_id in work.ids if not aligned(ex_id)]
        candidates = unused_candidates()
        if not misaligned or not candidates:
            logger.warning(
                f"Intent alignment for {intent.value} stuck at {ratio:.2f} "
                f"(needs {min_aligned_ratio:.2f})"
            )
            return AlignmentFailure(
                error=(
                    f"Could not reach {min_aligned_ratio:.0%} {intent.value} alignment; "
                    f"best was {ratio:.0%}"
                ),
                intent=intent.value,
                aligned_ratio=ratio,
            )

        # Worst fit first; among equals, the latest (least important) slot
        worst = min(
            reversed(misaligned),
            key=lambda ex_id: _affinity(by_id.get(ex_id), intent)
        )
        replacement = _best_replacement(candidates, by_id.get(worst), target_set)
        work.swap(worst, replacement.id)
        ratio = aligned_ratio(work.ids, by_id, intent, targets)

    if intent == SessionIntent.FULL_BODY:
        for needed, other in ((is_upper, is_lower), (is_lower, is_upper)):
            if any(needed(by_id[ex_id]) for ex_id in work.ids if ex_id in by_id):
                continue

            candidates = unused_candidates(needed)
            # Only drop an exercise whose side is still covered without it
            removable = [
                ex_id for ex_id in reversed(work.ids)
                if ex_id not in by_id
                or any(other(by_id[o]) for o in work.ids if o != ex_id and o in by_id)
            ]
            if not candidates or not removable:
                side = "upper" if needed is is_upper else "lower"
                return AlignmentFailure(
                    error=f"Full-body selection is missing {side}-body coverage",
                    intent=intent.value,
                    aligned_ratio=ratio,
                )
            removed = removable[0]
            replacement = _best_replacement(candidates, by_id.get(removed), target_set)
            work.swap(removed, replacement.id)
            ratio = aligned_ratio(work.ids, by_id, intent, targets)

    return work.build(IntentDiagnostics(
        intent=intent,
        target_muscles=tuple(targets or ()),
        aligned_ratio=ratio,
        min_aligned_ratio=min_aligned_ratio,
        selected_count=len(work.ids),
    ))
