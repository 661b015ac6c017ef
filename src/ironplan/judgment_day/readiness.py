"""
Fatigue Scoring

Internal Codename: JUDGMENT-DAY
Composite readiness score from a check-in: subjective report, recent
performance and optional wearable recovery data.

0 = exhausted, 1 = fresh. Relative weights live in FatigueConfig; the only
fixed contract is the [0, 1] bound and that soreness only ever lowers a score.
"""

from typing import Dict, Optional

from ..anatomy import normalize_muscle
from ..config import FatigueConfig
from ..types import (
    FatigueComponents,
    FatigueScore,
    FatigueWeights,
    PerformanceSignals,
    ReadinessSignal,
    SubjectiveReadiness,
    WearableSnapshot,
)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _scale_1_to_5(value: int) -> float:
    """1 -> 0.0, 5 -> 1.0"""
    return (value - 1) / 4


def soreness_factor(level: int) -> float:
    """Soreness 1 (none) -> 1.0, 2 (moderate) -> 0.5, 3 (very sore) -> 0.0"""
    return _clamp(1 - (level - 1) / 2)


def wearable_score(wearable: WearableSnapshot, config: FatigueConfig) -> float:
    """recovery x 0.4 + (1 - strain penalty) x 0.2 + HRV x 0.2 + sleep x 0.2"""
    recovery = wearable.recovery / 100
    strain_penalty = config.strain_penalty if wearable.strain > config.strain_overreach_threshold else 0.0
    hrv = min(1.0, wearable.hrv / config.hrv_baseline) if config.hrv_baseline > 0 else 0.0
    sleep = wearable.sleep_quality / 100

    return _clamp(
        recovery * 0.4
        + (1 - strain_penalty) * 0.2
        + hrv * 0.2
        + sleep * 0.2
    )


def subjective_score(subjective: SubjectiveReadiness, config: FatigueConfig) -> float:
    """
    Readiness, motivation and overall soreness.

    With no soreness reported the soreness term is 1.0, so any report of
    soreness lowers the score.
    """
    readiness = _scale_1_to_5(subjective.readiness)
    motivation = _scale_1_to_5(subjective.motivation)

    if subjective.soreness:
        levels = list(subjective.soreness.values())
        soreness = sum(soreness_factor(level) for level in levels) / len(levels)
    else:
        soreness = 1.0

    return _clamp(
        readiness * config.readiness_weight
        + motivation * config.motivation_weight
        + soreness * config.soreness_weight
    )


def performance_score(performance: PerformanceSignals, config: FatigueConfig) -> float:
    # Positive RPE deviation = sessions felt harder than planned
    rpe = _clamp(0.5 - performance.rpe_deviation / config.rpe_deviation_span)
    stall_penalty = min(
        config.max_stall_penalty,
        performance.stall_count * config.stall_penalty_per_exercise
    )
    compliance = performance.volume_compliance_rate

    return _clamp(
        rpe * config.rpe_weight
        + (1 - stall_penalty) * config.stall_weight
        + compliance * config.compliance_weight
    )


def determine_weights(has_wearable: bool, config: FatigueConfig) -> FatigueWeights:
    """Trust wearable data most when present; otherwise lean on the self-report."""
    if has_wearable:
        return FatigueWeights(
            wearable=config.wearable_weight_with_wearable,
            subjective=config.subjective_weight_with_wearable,
            performance=config.performance_weight_with_wearable,
        )
    return FatigueWeights(
        wearable=0.0,
        subjective=config.subjective_weight,
        performance=config.performance_weight,
    )


def per_muscle_scores(overall: float, soreness: Dict[str, int]) -> Dict[str, float]:
    """Only reported muscles appear; a level-1 report equals the overall score."""
    return {
        normalize_muscle(muscle): _clamp(overall * soreness_factor(level))
        for muscle, level in soreness.items()
    }


def compute_fatigue_score(
    signal: ReadinessSignal,
    config: Optional[FatigueConfig] = None
) -> FatigueScore:
    """
    Combine a readiness check-in into a FatigueScore.

    Args:
        signal: Latest readiness signal
        config: Weighting configuration (defaults if omitted)

    Returns:
        FatigueScore with overall in [0, 1], per-muscle breakdown for
        muscles reported sore, and the weights/contributions used
    """
    config = config or FatigueConfig()
    has_wearable = signal.wearable is not None
    weights = determine_weights(has_wearable, config)

    wearable = wearable_score(signal.wearable, config) if has_wearable else 0.0
    subjective = subjective_score(signal.subjective, config)
    performance = performance_score(signal.performance, config)

    components = FatigueComponents(
        wearable_contribution=wearable * weights.wearable,
        subjective_contribution=subjective * weights.subjective,
        performance_contribution=performance * weights.performance,
    )

    total_weight = weights.wearable + weights.subjective + weights.performance
    raw = (
        components.wearable_contribution
        + components.subjective_contribution
        + components.performance_contribution
    )
    overall = _clamp(raw / total_weight) if total_weight > 0 else 0.0

    return FatigueScore(
        overall=overall,
        per_muscle=per_muscle_scores(overall, signal.subjective.soreness),
        weights=weights,
        components=components,
    )


def fatigue_level_label(overall: float) -> str:
    if overall > 0.8:
        return 'very fresh'
    if overall > 0.6:
        return 'recovered'
    if overall > 0.4:
        return 'moderately fatigued'
    return 'significantly fatigued'


def fatigue_rationale(score: FatigueScore) -> str:
    """e.g. 'Fatigue score: 72% (recovered). Based on: Subjective 45%, Performance 27%.'"""
    parts = []
    if score.weights.wearable > 0:
        parts.append(f"Wearable {round(score.components.wearable_contribution * 100)}%")
    parts.append(f"Subjective {round(score.components.subjective_contribution * 100)}%")
    parts.append(f"Performance {round(score.components.performance_contribution * 100)}%")

    return (
        f"Fatigue score: {round(score.overall * 100)}% "
        f"({fatigue_level_label(score.overall)}). Based on: {', '.join(parts)}."
    )
