"""
Selection Analysis

Internal Codename: JUDGMENT-DAY
Scores a set of exercises for display and for smart-build's improvement pass.

Sub-scores (0-100):
- Muscle coverage (critical muscles weighted 80%, others 20%)
- Push/pull balance (only when both are in scope)
- Compound/isolation ratio against an intent-specific range
- Movement-pattern diversity
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..anatomy import (
    BONUS_PATTERNS,
    CORE_PATTERNS,
    MUSCLE_SPLIT_MAP,
    PATTERNS_BY_BUCKET,
    VOLUME_LANDMARKS,
    normalize_muscle,
)
from ..types import Exercise, SessionIntent

ALL_BUCKETS = ("push", "pull", "legs")

CRITICAL_MUSCLES = [m for m, lm in VOLUME_LANDMARKS.items() if lm.mev > 0]
NON_CRITICAL_MUSCLES = [m for m, lm in VOLUME_LANDMARKS.items() if lm.mev == 0]

WEIGHTS = {
    'muscle_coverage': 0.4,
    'push_pull_balance': 0.2,
    'compound_isolation': 0.2,
    'movement_diversity': 0.2,
}

# Target compound percentage range by intent
COMPOUND_RANGES = {
    SessionIntent.FULL_BODY: (35, 70),
    SessionIntent.UPPER: (35, 75),
    SessionIntent.LOWER: (45, 85),
    SessionIntent.PUSH: (25, 75),
    SessionIntent.PULL: (25, 75),
    SessionIntent.LEGS: (45, 85),
    SessionIntent.BODY_PART: (15, 80),
}
DEFAULT_COMPOUND_RANGE = (25, 80)


@dataclass(frozen=True)
class SubScore:
    score: int
    label: str
    details: Dict = field(default_factory=dict)


@dataclass(frozen=True)
class SelectionAnalysis:
    overall_score: int
    overall_label: str
    muscle_coverage: SubScore
    push_pull_balance: SubScore
    compound_isolation: SubScore
    movement_diversity: SubScore
    exercise_count: int
    suggestions: Tuple[str, ...] = ()


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def score_to_label(score: float) -> str:
    if score >= 85:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 55:
        return "Fair"
    if score >= 40:
        return "Needs Work"
    return "Poor"


def _primary(exercise: Exercise) -> List[str]:
    return [normalize_muscle(m) for m in exercise.primary_muscles]


def _secondary(exercise: Exercise) -> List[str]:
    return [normalize_muscle(m) for m in exercise.secondary_muscles]


def bucket_counts(exercises: Sequence[Exercise]) -> Dict[str, int]:
    """Exercises per split bucket, by primary muscles (one exercise can count twice)."""
    counts = {bucket: 0 for bucket in ALL_BUCKETS}
    for ex in exercises:
        buckets = {MUSCLE_SPLIT_MAP.get(m) for m in _primary(ex)}
        for bucket in ALL_BUCKETS:
            if bucket in buckets:
                counts[bucket] += 1
    return counts


def resolve_scope(intent: Optional[SessionIntent], exercises: Sequence[Exercise]) -> Tuple[str, ...]:
    """Split buckets a selection should be judged against."""
    counts = bucket_counts(exercises)
    present = tuple(b for b in ALL_BUCKETS if counts[b] > 0)

    if intent == SessionIntent.FULL_BODY or not present:
        return ALL_BUCKETS
    if intent == SessionIntent.UPPER:
        return ("push", "pull")
    if intent == SessionIntent.LOWER:
        return ("legs",)
    if intent in (SessionIntent.PUSH, SessionIntent.PULL, SessionIntent.LEGS):
        return (intent.value,)
    if intent == SessionIntent.BODY_PART:
        top = max(counts.values())
        return tuple(b for b in ALL_BUCKETS if counts[b] == top)
    return present


def score_muscle_coverage(exercises: Sequence[Exercise], scope: Sequence[str]) -> SubScore:
    hit_primary = {m for ex in exercises for m in _primary(ex)}
    hit_secondary = {m for ex in exercises for m in _secondary(ex)}

    def in_scope(muscle):
        return MUSCLE_SPLIT_MAP.get(muscle) in scope

    def coverage(muscles):
        missed = []
        points = 0.0
        for muscle in muscles:
            if muscle in hit_primary:
                points += 1
            elif muscle in hit_secondary:
                points += 0.4
            else:
                missed.append(muscle)
        pct = points / len(muscles) * 100 if muscles else 100
        return pct, missed

    critical_pct, missed_critical = coverage([m for m in CRITICAL_MUSCLES if in_scope(m)])
    other_pct, missed_other = coverage([m for m in NON_CRITICAL_MUSCLES if in_scope(m)])

    score = _round(_clamp(critical_pct * 0.8 + other_pct * 0.2))
    return SubScore(score, score_to_label(score), {
        'missed_critical': missed_critical,
        'missed_non_critical': missed_other,
    })


def score_push_pull_balance(exercises: Sequence[Exercise], scope: Sequence[str]) -> SubScore:
    counts = bucket_counts(exercises)
    push, pull = counts['push'], counts['pull']
    details = {'push': push, 'pull': pull, 'applicable': 'push' in scope and 'pull' in scope}

    if not details['applicable']:
        return SubScore(75, score_to_label(75), details)

    if push + pull == 0:
        score = 75 if counts['legs'] > 0 else 0
        return SubScore(score, score_to_label(score), details)

    ideal = (push + pull) / 2
    score = _round(_clamp(100 * (1 - abs(push - ideal) / ideal)))
    return SubScore(score, score_to_label(score), details)


def score_compound_isolation(
    exercises: Sequence[Exercise],
    intent: Optional[SessionIntent]
) -> SubScore:
    if not exercises:
        return SubScore(0, score_to_label(0), {})

    low, high = COMPOUND_RANGES.get(intent, DEFAULT_COMPOUND_RANGE)
    compounds = sum(1 for ex in exercises if ex.is_compound)
    pct = _round(compounds / len(exercises) * 100)

    if low <= pct <= high:
        score = 100
    elif pct < low:
        score = _round(pct / low * 100)
    else:
        score = _round((100 - pct) / (100 - high) * 100)

    score = int(_clamp(score))
    return SubScore(score, score_to_label(score), {
        'compound_percent': pct,
        'target_range': (low, high),
    })


def score_movement_diversity(
    exercises: Sequence[Exercise],
    intent: Optional[SessionIntent],
    scope: Sequence[str]
) -> SubScore:
    covered = {p for ex in exercises for p in ex.movement_patterns}

    if intent == SessionIntent.FULL_BODY:
        expected = list(CORE_PATTERNS)
        target = 5
    else:
        expected = [p for bucket in scope for p in PATTERNS_BY_BUCKET[bucket]]
        target = max(2, math.ceil(len(expected) * 0.75))

    hit = [p for p in expected if p in covered]
    missing = [p for p in expected if p not in covered]
    bonus = [p for p in BONUS_PATTERNS if p in covered]

    score = _round(_clamp(len(hit) / target * 100 + len(bonus) * 5))
    return SubScore(score, score_to_label(score), {
        'covered': hit + bonus,
        'missing': missing,
    })


def _suggestions(coverage, balance, compound, diversity, count) -> List[str]:
    if count == 0:
        return ["Add exercises to see an analysis."]

    suggestions = []
    if coverage.details['missed_critical']:
        missed = ", ".join(coverage.details['missed_critical'][:3])
        suggestions.append(f"Add exercises targeting {missed} for better muscle coverage.")

    if balance.details['applicable']:
        push, pull = balance.details['push'], balance.details['pull']
        if push > pull * 1.5:
            suggestions.append("Add more pulling exercises to balance your push/pull ratio.")
        elif pull > push * 1.5:
            suggestions.append("Add more pushing exercises to balance your push/pull ratio.")

    low, high = compound.details['target_range']
    pct = compound.details['compound_percent']
    if pct > high + 10:
        suggestions.append("Consider adding isolation exercises to improve local muscle targeting.")
    elif pct < low - 10 and count >= 3:
        suggestions.append("Add compound movements to improve loading efficiency.")

    if diversity.details['missing']:
        missing = ", ".join(p.replace('_', ' ') for p in diversity.details['missing'][:2])
        suggestions.append(f"Add {missing} patterns for more complete movement coverage.")

    return suggestions[:3]


def analyze_selection(
    exercises: Sequence[Exercise],
    intent: Optional[SessionIntent] = None
) -> SelectionAnalysis:
    """
    Score a selection 0-100 with a qualitative label and up to three suggestions.

    Args:
        exercises: Selected exercises in session order
        intent: Session intent; None judges against the buckets present

    Returns:
        SelectionAnalysis
    """
    scope = resolve_scope(intent, exercises)

    coverage = score_muscle_coverage(exercises, scope)
    balance = score_push_pull_balance(exercises, scope)
    compound = score_compound_isolation(exercises, intent)
    diversity = score_movement_diversity(exercises, intent, scope)

    parts = [
        (coverage.score, WEIGHTS['muscle_coverage']),
        (compound.score, WEIGHTS['compound_isolation']),
        (diversity.score, WEIGHTS['movement_diversity']),
    ]
    if balance.details['applicable']:
        parts.append((balance.score, WEIGHTS['push_pull_balance']))

    if exercises:
        total_weight = sum(w for _, w in parts)
        overall = _round(_clamp(sum(s * w for s, w in parts) / total_weight))
    else:
        overall = 0

    return SelectionAnalysis(
        overall_score=overall,
        overall_label=score_to_label(overall),
        muscle_coverage=coverage,
        push_pull_balance=balance,
        compound_isolation=compound,
        movement_diversity=diversity,
        exercise_count=len(exercises),
        suggestions=tuple(_suggestions(coverage, balance, compound, diversity, len(exercises))),
    )
