"""
Planning Engine - Type Definitions

Dataclasses and enums for macro/meso/block cycles, readiness signals,
exercise candidates and session prescriptions.

Every engine function takes and returns these plain values. Records are
frozen; updates go through dataclasses.replace so arguments are never
mutated in place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import ValidationError


# =============================================================================
# Enums (lower-case domain values; storage casing is mapped in mappers.py)
# =============================================================================

class MesocycleState(Enum):
    """Lifecycle states of a mesocycle."""
    ACTIVE_ACCUMULATION = "active_accumulation"
    ACTIVE_DELOAD = "active_deload"
    COMPLETED = "completed"  # Terminal


class BlockType(Enum):
    """Training block types within a mesocycle."""
    ACCUMULATION = "accumulation"        # Higher volume, moderate intensity
    INTENSIFICATION = "intensification"  # Lower volume, higher intensity
    REALIZATION = "realization"          # Peak performance
    DELOAD = "deload"                    # Recovery and adaptation


class VolumeTier(Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    PEAK = "peak"


class IntensityBias(Enum):
    STRENGTH = "strength"
    HYPERTROPHY = "hypertrophy"
    ENDURANCE = "endurance"


class AdaptationType(Enum):
    NEURAL_ADAPTATION = "neural_adaptation"
    MYOFIBRILLAR_HYPERTROPHY = "myofibrillar_hypertrophy"
    SARCOPLASMIC_HYPERTROPHY = "sarcoplasmic_hypertrophy"
    WORK_CAPACITY = "work_capacity"
    RECOVERY = "recovery"


class TrainingAge(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PrimaryGoal(Enum):
    STRENGTH = "strength"
    HYPERTROPHY = "hypertrophy"
    FAT_LOSS = "fat_loss"
    GENERAL_FITNESS = "general_fitness"


class ExerciseRole(Enum):
    """Role an exercise plays within a mesocycle."""
    CORE_COMPOUND = "core_compound"  # Persists across mesocycles
    ACCESSORY = "accessory"          # Rotates every mesocycle


class SessionIntent(Enum):
    """Requested session focus."""
    PUSH = "push"
    PULL = "pull"
    LEGS = "legs"
    UPPER = "upper"
    LOWER = "lower"
    FULL_BODY = "full_body"
    BODY_PART = "body_part"


# =============================================================================
# Volume and effort landmarks
# =============================================================================

@dataclass(frozen=True)
class MuscleVolumeLandmark:
    """Weekly working-set landmarks for one muscle (ascending)."""
    mv: int   # Maintenance volume
    mev: int  # Minimum effective volume
    mav: int  # Maximum adaptive volume
    mrv: int  # Maximum recoverable volume

    def __post_init__(self):
        if not (0 <= self.mv <= self.mev <= self.mav <= self.mrv):
            raise ValidationError(
                f"Landmarks must be ascending: mv={self.mv} mev={self.mev} "
                f"mav={self.mav} mrv={self.mrv}"
            )


@dataclass(frozen=True)
class RampSchedule:
    """Per-muscle accumulation ramp: week-1 sets up to last-accumulation-week sets."""
    start_sets: int
    peak_sets: int

    def __post_init__(self):
        if self.start_sets < 0 or self.peak_sets < 0:
            raise ValidationError("Ramp set counts must be non-negative")


@dataclass(frozen=True)
class RirBand:
    """Target reps-in-reserve range for a week."""
    min: int
    max: int

    def __post_init__(self):
        if self.min < 0 or self.min > self.max:
            raise ValidationError(f"Invalid RIR band {self.min}-{self.max}")


# =============================================================================
# Cycle structure
# =============================================================================

@dataclass(frozen=True)
class TrainingBlock:
    """Contiguous sub-range of weeks within a mesocycle. Immutable."""
    id: Optional[str]
    mesocycle_id: Optional[str]
    block_number: int
    block_type: BlockType
    start_week: int       # Week offset from macro start (0-indexed)
    duration_weeks: int
    volume_target: VolumeTier
    intensity_bias: IntensityBias
    adaptation_type: AdaptationType

    @property
    def end_week(self) -> int:
        return self.start_week + self.duration_weeks


@dataclass(frozen=True)
class Mesocycle:
    """One planning cycle: accumulation weeks followed by a deload week."""
    id: Optional[str]
    macro_cycle_id: Optional[str]
    meso_number: int
    start_week: int
    duration_weeks: int
    sessions_per_week: int
    state: MesocycleState = MesocycleState.ACTIVE_ACCUMULATION
    accumulation_sessions_completed: int = 0
    deload_sessions_completed: int = 0
    days_per_week: Optional[int] = None
    split_type: Optional[str] = None
    focus: str = ""
    volume_target: VolumeTier = VolumeTier.MODERATE
    intensity_bias: IntensityBias = IntensityBias.HYPERTROPHY
    is_active: bool = True
    volume_ramp_config: Dict[str, RampSchedule] = field(default_factory=dict)
    rir_band_config: Dict[int, RirBand] = field(default_factory=dict)
    blocks: Tuple[TrainingBlock, ...] = ()

    def __post_init__(self):
        if self.meso_number < 1:
            raise ValidationError(f"meso_number must be >= 1, got {self.meso_number}")
        if self.duration_weeks < 2:
            raise ValidationError(
                f"Mesocycle needs at least one accumulation week and a deload week, "
                f"got duration_weeks={self.duration_weeks}"
            )
        if self.sessions_per_week < 1:
            raise ValidationError(f"sessions_per_week must be >= 1, got {self.sessions_per_week}")
        if self.accumulation_sessions_completed < 0 or self.deload_sessions_completed < 0:
            raise ValidationError("Session counters must be non-negative")

    @property
    def accumulation_weeks(self) -> int:
        return self.duration_weeks - 1

    @property
    def deload_week(self) -> int:
        return self.duration_weeks


@dataclass(frozen=True)
class MacroCycle:
    """Ordered sequence of mesocycles. Only ever extended by appending."""
    id: Optional[str]
    user_id: str
    start_date: date
    duration_weeks: int
    training_age: TrainingAge
    primary_goal: PrimaryGoal
    mesocycles: Tuple[Mesocycle, ...] = ()

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(weeks=self.duration_weeks)

    def with_mesocycle(self, mesocycle: Mesocycle) -> 'MacroCycle':
        """Return a copy with one more mesocycle appended."""
        return MacroCycle(
            id=self.id,
            user_id=self.user_id,
            start_date=self.start_date,
            duration_weeks=self.duration_weeks,
            training_age=self.training_age,
            primary_goal=self.primary_goal,
            mesocycles=self.mesocycles + (mesocycle,),
        )


@dataclass(frozen=True)
class BlockContext:
    """Where a given date sits inside the macro → meso → block hierarchy."""
    block: TrainingBlock
    week_in_block: int  # 1-indexed
    week_in_meso: int   # 1-indexed
    week_in_macro: int  # 1-indexed
    mesocycle: Mesocycle
    macro_cycle: MacroCycle


@dataclass(frozen=True)
class PrescriptionModifiers:
    volume_multiplier: float
    intensity_multiplier: float
    rir_adjustment: int
    rest_multiplier: float


@dataclass(frozen=True)
class MesocycleExerciseRole:
    """Role assignment of an exercise within a mesocycle."""
    mesocycle_id: Optional[str]
    exercise_id: str
    session_intent: SessionIntent
    role: ExerciseRole
    added_in_week: int = 1


@dataclass(frozen=True)
class MesocycleRollover:
    """
    Deactivate-completed + create-next as one unit of work.

    Storage must apply all of it or none of it.
    """
    completed: Mesocycle
    next_mesocycle: Mesocycle
    carried_roles: Tuple[MesocycleExerciseRole, ...]


# =============================================================================
# Readiness
# =============================================================================

@dataclass(frozen=True)
class WearableSnapshot:
    """Optional wearable recovery data."""
    recovery: float       # 0-100 recovery percentage
    strain: float         # 0-21 daily strain
    hrv: float            # ms (RMSSD)
    sleep_quality: float  # 0-100 sleep performance percentage
    sleep_hours: float = 0.0

    def __post_init__(self):
        if not 0 <= self.recovery <= 100:
            raise ValidationError(f"recovery must be 0-100, got {self.recovery}")
        if not 0 <= self.sleep_quality <= 100:
            raise ValidationError(f"sleep_quality must be 0-100, got {self.sleep_quality}")
        if self.strain < 0 or self.hrv < 0 or self.sleep_hours < 0:
            raise ValidationError("strain, hrv and sleep_hours must be non-negative")


@dataclass(frozen=True)
class SubjectiveReadiness:
    """Self-reported readiness, collected before a session."""
    readiness: int   # 1=exhausted, 5=great
    motivation: int  # 1=none, 5=eager
    soreness: Dict[str, int] = field(default_factory=dict)  # muscle -> 1 none, 2 moderate, 3 very sore
    stress: Optional[int] = None  # 1=low, 5=high; informational

    def __post_init__(self):
        for name in ('readiness', 'motivation'):
            value = getattr(self, name)
            if not 1 <= value <= 5:
                raise ValidationError(f"{name} must be 1-5, got {value}")
        for muscle, level in self.soreness.items():
            if level not in (1, 2, 3):
                raise ValidationError(f"soreness for {muscle} must be 1-3, got {level}")
        if self.stress is not None and not 1 <= self.stress <= 5:
            raise ValidationError(f"stress must be 1-5, got {self.stress}")


@dataclass(frozen=True)
class PerformanceSignals:
    """Readiness derived from recent sessions."""
    rpe_deviation: float = 0.0          # avg(actual RPE - target RPE); positive = harder than planned
    stall_count: int = 0
    volume_compliance_rate: float = 1.0  # 0-1 share of prescribed sets completed

    def __post_init__(self):
        if self.stall_count < 0:
            raise ValidationError("stall_count must be non-negative")
        if not 0.0 <= self.volume_compliance_rate <= 1.0:
            raise ValidationError(
                f"volume_compliance_rate must be 0-1, got {self.volume_compliance_rate}"
            )


@dataclass(frozen=True)
class ReadinessSignal:
    """One check-in. Written once, read-only afterwards."""
    user_id: str
    timestamp: datetime
    subjective: SubjectiveReadiness
    performance: PerformanceSignals = field(default_factory=PerformanceSignals)
    wearable: Optional[WearableSnapshot] = None


@dataclass(frozen=True)
class FatigueWeights:
    wearable: float
    subjective: float
    performance: float


@dataclass(frozen=True)
class FatigueComponents:
    wearable_contribution: float
    subjective_contribution: float
    performance_contribution: float


@dataclass(frozen=True)
class FatigueScore:
    """0 = exhausted, 1 = fresh. Recomputed on demand, never stored."""
    overall: float
    per_muscle: Dict[str, float]
    weights: FatigueWeights
    components: FatigueComponents


# =============================================================================
# Exercise selection
# =============================================================================

@dataclass(frozen=True)
class Exercise:
    """Selection candidate with per-user favorite/avoid overlays applied."""
    id: str
    name: str
    primary_muscles: Tuple[str, ...] = ()
    secondary_muscles: Tuple[str, ...] = ()
    movement_patterns: Tuple[str, ...] = ()
    equipment: Tuple[str, ...] = ()
    split_tags: Tuple[str, ...] = ()
    is_compound: bool = False
    is_main_lift_eligible: bool = False
    is_favorite: bool = False
    is_avoided: bool = False
    time_per_set_sec: Optional[int] = None


@dataclass(frozen=True)
class ExerciseExposure:
    """Usage history for one exercise."""
    exercise_id: str
    last_used_at: datetime
    times_used_l4w: int = 0
    times_used_l8w: int = 0
    times_used_l12w: int = 0


@dataclass(frozen=True)
class ExerciseRationale:
    score: float
    components: Dict[str, float]
    selected_step: str  # main_pick / accessory_pick
    reason: str = ""


@dataclass(frozen=True)
class IntentDiagnostics:
    intent: SessionIntent
    target_muscles: Tuple[str, ...]
    aligned_ratio: float
    min_aligned_ratio: float
    selected_count: int


@dataclass(frozen=True)
class SelectionOutput:
    selected_exercise_ids: Tuple[str, ...]
    main_lift_ids: Tuple[str, ...]
    accessory_ids: Tuple[str, ...]
    per_exercise_set_targets: Dict[str, int]
    rationale: Dict[str, ExerciseRationale]
    diagnostics: Optional[IntentDiagnostics] = None


# =============================================================================
# Session prescription
# =============================================================================

@dataclass(frozen=True)
class PlannedSet:
    set_index: int
    target_reps: int
    target_load: Optional[float] = None  # lbs
    target_rir: Optional[float] = None

    @property
    def target_rpe(self) -> Optional[float]:
        return None if self.target_rir is None else 10 - self.target_rir


@dataclass(frozen=True)
class PlannedExercise:
    exercise_id: str
    name: str
    is_main_lift: bool
    sets: Tuple[PlannedSet, ...]
    rest_seconds: Optional[int] = None
    notes: str = ""


@dataclass(frozen=True)
class SessionPlan:
    """The final prescription. Built fresh on every planning call."""
    exercises: Tuple[PlannedExercise, ...]
    intent: Optional[SessionIntent] = None
    week_in_meso: Optional[int] = None
    rir_band: Optional[RirBand] = None
    warnings: Tuple[str, ...] = ()
    substitution_notes: Tuple[str, ...] = ()
    rationale: Tuple[str, ...] = ()
    notes: Optional[str] = None


@dataclass(frozen=True)
class AutoregulationModification:
    """One change made by autoregulation, with a human-readable reason."""
    kind: str  # intensity_scale / volume_reduction / deload_trigger
    exercise_id: str
    exercise_name: str
    reason: str
    original_load: Optional[float] = None
    adjusted_load: Optional[float] = None
    original_rir: Optional[float] = None
    adjusted_rir: Optional[float] = None
    original_set_count: Optional[int] = None
    adjusted_set_count: Optional[int] = None


@dataclass(frozen=True)
class AutoregulationResult:
    adjusted: SessionPlan
    applied: bool
    reason: str
    fatigue_score: Optional[FatigueScore] = None
    modifications: Tuple[AutoregulationModification, ...] = ()


# =============================================================================
# Stall tracking
# =============================================================================

@dataclass(frozen=True)
class LoggedSet:
    reps: int
    load: float


@dataclass(frozen=True)
class ExerciseSession:
    """One performance of one exercise."""
    exercise_id: str
    exercise_name: str
    performed_at: datetime
    sets: Tuple[LoggedSet, ...]


@dataclass(frozen=True)
class StallState:
    exercise_id: str
    exercise_name: str
    weeks_without_progress: float
    level: str


@dataclass(frozen=True)
class InterventionSuggestion:
    exercise_id: str
    exercise_name: str
    level: str
    action: str
    rationale: str
