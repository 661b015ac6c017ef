"""
Session Plan Generator

Internal Codename: JUDGMENT-DAY
"Judgment Day: The day the workout is decided."

Runs one planning call end to end:
1. Derive the current week from the active mesocycle
2. Resolve this week's volume and RIR targets
3. Select exercises and set counts
4. Repair the selection for the requested intent
5. Assemble the draft prescription
6. Autoregulate it against the latest readiness signal
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..config import EngineConfig
from ..errors import AlignmentFailure, NotFoundError, ValidationError
from ..types import (
    AutoregulationResult,
    Exercise,
    Mesocycle,
    PlannedExercise,
    PlannedSet,
    PrimaryGoal,
    RirBand,
    SelectionOutput,
    SessionIntent,
    SessionPlan,
)
from .analysis import SelectionAnalysis
from .autoregulation import Autoregulator
from .intent import REPAIR_NOTE, enforce_intent_alignment
from .lifecycle import MesocycleLifecycle, get_current_meso_week
from .periodization import (
    attach_blocks,
    block_for_meso_week,
    characteristics_for_week,
    get_prescription_modifiers,
)
from .selection import (
    SmartBuildInput,
    build_selection_output,
    exclude_recently_used,
    smart_build,
)
from .volume import VolumeLandmarkRamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanningResult:
    """A finished plan plus the intermediate values that explain it."""
    plan: SessionPlan
    draft: SessionPlan
    autoregulation: AutoregulationResult
    analysis: SelectionAnalysis
    selection: SelectionOutput
    mesocycle: Mesocycle
    week: int
    weekly_targets: Dict[str, int]


class SessionPlanner:
    """
    Generates complete session plans.

    Integrates:
    - Mesocycle week derivation (lifecycle)
    - Weekly volume and RIR targets
    - Exercise selection and intent repair
    - Readiness-based autoregulation

    Usage:
        planner = SessionPlanner(repository, EngineConfig.from_yaml())
        result = planner.plan_session("user-1", SessionIntent.PUSH, ["chest"], now=datetime.now())
    """

    def __init__(self, repository, config: Optional[EngineConfig] = None):
        """
        Initialize session planner.

        Args:
            repository: Storage implementing the mesocycle, readiness and
                exercise repository protocols
            config: Engine configuration (defaults when omitted)
        """
        self.repository = repository
        self.config = config or EngineConfig()
        self.ramp = VolumeLandmarkRamp(self.config.ramp)
        self.lifecycle = MesocycleLifecycle(repository, self.config.lifecycle, self.ramp)
        self.autoregulator = Autoregulator(
            repository, self.config.autoregulation, self.config.fatigue
        )

    def active_mesocycle(self, user_id: str) -> Mesocycle:
        meso = self.repository.get_active_mesocycle(user_id)
        if meso is None:
            raise NotFoundError(f"No active mesocycle for user {user_id}")
        if not meso.blocks and meso.id is not None:
            meso = attach_blocks(meso, self.repository.get_blocks(meso.id))
        return meso

    def weekly_targets(self, meso: Mesocycle, muscles: Sequence[str], week: int) -> Dict[str, int]:
        """Per-muscle set targets for the week, skipping muscles with no MEV."""
        return {
            m: self.lifecycle.get_weekly_volume_target(meso, m, week)
            for m in muscles
            if self.ramp.is_targetable(m) or m in meso.volume_ramp_config
        }

    def plan_session(
        self,
        user_id: str,
        intent: Optional[SessionIntent],
        target_muscle_groups: List[str],
        now: datetime,
        seed: int = 0,
        exercise_count: Optional[int] = None,
        available_equipment: Optional[List[str]] = None,
        training_goal: Optional[PrimaryGoal] = None,
        time_budget_minutes: Optional[int] = None,
        exclude_recent_days: Optional[int] = None,
        target_loads: Optional[Mapping[str, float]] = None
    ) -> Union['PlanningResult', AlignmentFailure]:
        """
        Generate a session plan for a trainee.

        Args:
            user_id: Trainee
            intent: Session focus; None skips intent repair
            target_muscle_groups: Coarse groups or muscle names
            now: Current time, used for readiness staleness and exposure windows
            seed: Tie-break seed for selection
            exercise_count: Exercises to select (config default when omitted)
            available_equipment: Equipment filter
            training_goal: Biases selection toward compounds or isolations
            time_budget_minutes: Trim the session to fit
            exclude_recent_days: Drop exercises used within this many days
            target_loads: Working load per exercise id, where known

        Returns:
            PlanningResult, or AlignmentFailure when the intent cannot be met
        """
        if not target_muscle_groups:
            raise ValidationError("At least one target muscle group is required")

        meso = self.active_mesocycle(user_id)
        week = get_current_meso_week(meso)
        rir_band = self.lifecycle.get_rir_target(meso, week)

        pool = self.repository.get_exercise_pool(user_id)
        if exclude_recent_days:
            exposures = self.repository.get_exposures(user_id)
            pool = exclude_recently_used(pool, exposures, now, exclude_recent_days)

        count = exercise_count or self.config.selection.default_exercise_count
        build = smart_build(
            SmartBuildInput(
                target_muscle_groups=list(target_muscle_groups),
                exercise_pool=pool,
                exercise_count=count,
                seed=seed,
                available_equipment=available_equipment,
                intent=intent,
                training_goal=training_goal,
                time_budget_minutes=time_budget_minutes,
            ),
            self.config.selection,
        )

        weekly_targets = self.weekly_targets(meso, build.target_muscles, week)
        selection = build_selection_output(
            build, weekly_targets, meso.sessions_per_week, self.config.selection
        )

        if intent is not None:
            aligned = enforce_intent_alignment(
                selection,
                pool,
                intent,
                self.config.selection.min_aligned_ratio,
                build.target_muscles,
            )
            if isinstance(aligned, AlignmentFailure):
                logger.warning(f"Planning for {user_id} failed: {aligned.error}")
                return aligned
            selection = aligned

        by_id = {ex.id: ex for ex in pool}
        draft = self._assemble(meso, week, rir_band, selection, by_id, intent, target_loads or {})

        warnings = list(draft.warnings)
        if len(selection.selected_exercise_ids) < count:
            warnings.append(
                f"Only {len(selection.selected_exercise_ids)} of {count} requested exercises available"
            )
        warnings.extend(build.analysis.suggestions)
        draft = SessionPlan(
            exercises=draft.exercises,
            intent=draft.intent,
            week_in_meso=draft.week_in_meso,
            rir_band=draft.rir_band,
            warnings=tuple(warnings),
            substitution_notes=draft.substitution_notes,
            rationale=draft.rationale + (
                f"Selection quality: {build.analysis.overall_score} ({build.analysis.overall_label})",
            ),
            notes=draft.notes,
        )

        autoregulation = self.autoregulator.apply_autoregulation(user_id, draft, now)

        logger.info(
            f"Planned {len(draft.exercises)} exercise(s) for {user_id}, "
            f"mesocycle {meso.id} week {week}"
        )
        return PlanningResult(
            plan=autoregulation.adjusted,
            draft=draft,
            autoregulation=autoregulation,
            analysis=build.analysis,
            selection=selection,
            mesocycle=meso,
            week=week,
            weekly_targets=weekly_targets,
        )

    def _assemble(
        self,
        meso: Mesocycle,
        week: int,
        rir_band: RirBand,
        selection: SelectionOutput,
        by_id: Dict[str, Exercise],
        intent: Optional[SessionIntent],
        target_loads: Mapping[str, float]
    ) -> SessionPlan:
        """Turn a selection into per-set prescriptions."""
        chars = characteristics_for_week(meso, week)
        reps_low, reps_high = chars['reps_per_set']
        rest = chars['rest_seconds']

        block = block_for_meso_week(meso, week)
        if block is not None:
            week_in_block = meso.start_week + week - block.start_week
            modifiers = get_prescription_modifiers(block.block_type, week_in_block, block.duration_weeks)
            rest = int(math.floor(rest * modifiers.rest_multiplier + 0.5))

        exercises = []
        substitution_notes = []
        for ex_id in selection.selected_exercise_ids:
            exercise = by_id[ex_id]
            is_main = ex_id in selection.main_lift_ids
            set_count = selection.per_exercise_set_targets.get(
                ex_id, self.config.selection.default_set_target
            )
            # Main lifts work heavier at the bottom of the rep range
            reps = reps_low if is_main else reps_high
            rir_target = rir_band.max if is_main else rir_band.min
            load = target_loads.get(ex_id)

            exercises.append(PlannedExercise(
                exercise_id=ex_id,
                name=exercise.name,
                is_main_lift=is_main,
                sets=tuple(
                    PlannedSet(set_index=i, target_reps=reps, target_load=load, target_rir=rir_target)
                    for i in range(1, set_count + 1)
                ),
                rest_seconds=rest,
                notes="Main lift - prioritize form and progression" if is_main else "",
            ))

            rationale = selection.rationale.get(ex_id)
            if rationale is not None and REPAIR_NOTE in rationale.reason:
                substitution_notes.append(f"{exercise.name}: {rationale.reason}")

        phase = "deload" if week >= meso.duration_weeks else "accumulation"
        return SessionPlan(
            exercises=tuple(exercises),
            intent=intent,
            week_in_meso=week,
            rir_band=rir_band,
            substitution_notes=tuple(substitution_notes),
            rationale=(
                f"Mesocycle {meso.meso_number} week {week} of {meso.duration_weeks} ({phase}); "
                f"target RIR {rir_band.min}-{rir_band.max}",
            ),
            notes=chars['focus'],
        )


def format_plan_text(plan: SessionPlan, result: Optional[PlanningResult] = None) -> str:
    """
    Format a session plan as readable text.

    Args:
        plan: Session plan
        result: Planning result, for the autoregulation summary

    Returns:
        Formatted text string
    """
    lines = []

    lines.append("=" * 60)
    lines.append("JUDGMENT-DAY: Session Plan")
    lines.append("=" * 60)
    if plan.intent is not None:
        lines.append(f"\nIntent: {plan.intent.value.replace('_', ' ').title()}")
    if plan.week_in_meso is not None:
        lines.append(f"Week: {plan.week_in_meso}")
    if plan.rir_band is not None:
        lines.append(f"Target RIR: {plan.rir_band.min}-{plan.rir_band.max}")
    if plan.notes:
        lines.append(f"Focus: {plan.notes}")

    lines.append(f"\n{'─' * 60}")
    lines.append("MAIN WORKOUT")
    lines.append('─' * 60)
    for i, ex in enumerate(plan.exercises, 1):
        marker = " [main]" if ex.is_main_lift else ""
        lines.append(f"\n{i}. {ex.name}{marker}")
        if ex.sets:
            first = ex.sets[0]
            lines.append(f"   Sets: {len(ex.sets)} x {first.target_reps} reps")
            if first.target_rir is not None:
                lines.append(f"   RIR: {first.target_rir:g} (RPE {first.target_rpe:g})")
            if first.target_load is not None:
                lines.append(f"   Load: {first.target_load:g} lbs")
        if ex.rest_seconds:
            lines.append(f"   Rest: {ex.rest_seconds}s")
        if ex.notes:
            lines.append(f"   Notes: {ex.notes}")

    if plan.substitution_notes:
        lines.append(f"\n{'─' * 60}")
        lines.append("SUBSTITUTIONS")
        lines.append('─' * 60)
        for note in plan.substitution_notes:
            lines.append(f"  • {note}")

    if result is not None:
        lines.append(f"\n{'─' * 60}")
        lines.append("READINESS")
        lines.append('─' * 60)
        lines.append(f"  {result.autoregulation.reason}")
        for mod in result.autoregulation.modifications:
            lines.append(f"  • {mod.exercise_name}: {mod.reason}")

    notes = list(plan.rationale) + list(plan.warnings)
    if notes:
        lines.append(f"\n{'─' * 60}")
        lines.append("NOTES")
        lines.append('─' * 60)
        for note in notes:
            lines.append(f"  • {note}")

    lines.append(f"\n{'=' * 60}")
    lines.append('"Your workout has been decided."')
    lines.append('=' * 60)

    return '\n'.join(lines)
