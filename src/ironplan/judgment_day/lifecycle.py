"""
Mesocycle Lifecycle

Internal Codename: JUDGMENT-DAY
State machine over ACTIVE_ACCUMULATION -> ACTIVE_DELOAD -> COMPLETED.

Session counters are incremented by whoever saves a session; this module only
reads them. The week within a mesocycle is always derived from the counters,
never stored.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from ..config import LifecycleConfig
from ..repository import MesocycleRepository
from ..types import (
    ExerciseRole,
    Mesocycle,
    MesocycleExerciseRole,
    MesocycleRollover,
    MesocycleState,
    RirBand,
)
from . import rir
from .volume import VolumeLandmarkRamp

logger = logging.getLogger(__name__)


def get_current_meso_week(meso: Mesocycle) -> int:
    """
    1-indexed week derived from session counters.

    Accumulation: floor(sessions / sessions_per_week) + 1, capped at the last
    accumulation week. Deload and completed: the deload week.
    """
    if meso.state == MesocycleState.ACTIVE_ACCUMULATION:
        sessions_per_week = max(1, meso.sessions_per_week)
        week = meso.accumulation_sessions_completed // sessions_per_week + 1
        return min(week, meso.accumulation_weeks)
    return meso.duration_weeks


def build_next_mesocycle(completed: Mesocycle) -> Mesocycle:
    """Successor with counters reset; identifiers are assigned by storage."""
    start_week = completed.start_week + completed.duration_weeks
    blocks = tuple(
        replace(
            block,
            id=None,
            mesocycle_id=None,
            start_week=block.start_week + completed.duration_weeks,
        )
        for block in completed.blocks
    )
    return replace(
        completed,
        id=None,
        meso_number=completed.meso_number + 1,
        start_week=start_week,
        state=MesocycleState.ACTIVE_ACCUMULATION,
        accumulation_sessions_completed=0,
        deload_sessions_completed=0,
        is_active=True,
        blocks=blocks,
    )


def carry_forward_roles(roles: Iterable[MesocycleExerciseRole]) -> List[MesocycleExerciseRole]:
    """Core compounds persist across mesocycles; accessories rotate out."""
    return [
        replace(role, mesocycle_id=None, added_in_week=1)
        for role in roles
        if role.role == ExerciseRole.CORE_COMPOUND
    ]


def activate_planned(planned: Mesocycle) -> Mesocycle:
    """A pre-generated successor, switched on with fresh counters."""
    return replace(
        planned,
        state=MesocycleState.ACTIVE_ACCUMULATION,
        accumulation_sessions_completed=0,
        deload_sessions_completed=0,
        is_active=True,
    )


def build_rollover(
    completed: Mesocycle,
    roles: Iterable[MesocycleExerciseRole],
    planned: Optional[Mesocycle] = None
) -> MesocycleRollover:
    """
    Package deactivate-completed and activate-next as one unit of work.

    When the macro cycle already holds the successor (`planned`), that record
    is activated instead of creating a second mesocycle with the same number.
    """
    next_meso = activate_planned(planned) if planned is not None else build_next_mesocycle(completed)
    return MesocycleRollover(
        completed=replace(completed, state=MesocycleState.COMPLETED, is_active=False),
        next_mesocycle=next_meso,
        carried_roles=tuple(carry_forward_roles(roles)),
    )


class MesocycleLifecycle:
    """
    Owns mesocycle state transitions.

    Usage:
        lifecycle = MesocycleLifecycle(repository)
        current = lifecycle.transition(mesocycle_id)
    """

    def __init__(
        self,
        repository: MesocycleRepository,
        config: Optional[LifecycleConfig] = None,
        ramp: Optional[VolumeLandmarkRamp] = None
    ):
        self.repository = repository
        self.config = config or LifecycleConfig()
        self.ramp = ramp or VolumeLandmarkRamp()

    def transition(self, mesocycle_id: str) -> Mesocycle:
        """
        Apply threshold rules to a mesocycle's already-incremented counters.

        Returns:
            The mesocycle that is current after the call: the same record when
            nothing changed, the flipped record on accumulation -> deload, or
            the newly created mesocycle after a rollover.
        """
        meso = self.repository.get_mesocycle(mesocycle_id)

        if meso.state == MesocycleState.COMPLETED:
            logger.warning(
                f"Transition requested on COMPLETED mesocycle {mesocycle_id}; no-op"
            )
            return meso

        if meso.state == MesocycleState.ACTIVE_ACCUMULATION:
            if meso.accumulation_sessions_completed >= self.config.accumulation_session_threshold:
                logger.info(
                    f"Mesocycle {meso.id} accumulation complete "
                    f"({meso.accumulation_sessions_completed} sessions); entering deload"
                )
                return self.repository.update_mesocycle(
                    replace(meso, state=MesocycleState.ACTIVE_DELOAD)
                )
            return meso

        if meso.deload_sessions_completed >= self.config.deload_session_threshold:
            logger.info(
                f"Mesocycle {meso.id} deload complete "
                f"({meso.deload_sessions_completed} sessions); rolling over"
            )
            return self.initialize_next_mesocycle(meso)

        return meso

    def initialize_next_mesocycle(self, completed: Mesocycle) -> Mesocycle:
        """
        Complete `completed`, deactivate it and create its successor.

        Only CORE_COMPOUND role assignments carry forward, re-seeded at week 1.
        A successor already planned in the macro cycle is activated rather
        than duplicated. Storage applies the whole rollover in one transaction.
        """
        roles = self.repository.get_exercise_roles(completed.id)
        planned = self._planned_successor(completed)
        rollover = build_rollover(completed, roles, planned)
        next_meso = self.repository.commit_rollover(rollover)
        logger.info(
            f"{'Activated' if planned is not None else 'Created'} mesocycle {next_meso.id} "
            f"(#{next_meso.meso_number}) carrying "
            f"{len(rollover.carried_roles)} core compound role(s)"
        )
        return next_meso

    def _planned_successor(self, completed: Mesocycle) -> Optional[Mesocycle]:
        if completed.macro_cycle_id is None:
            return None
        macro = self.repository.get_macro_cycle(completed.macro_cycle_id)
        for meso in macro.mesocycles:
            if meso.meso_number == completed.meso_number + 1 and meso.id != completed.id:
                return meso
        return None

    def get_weekly_volume_target(self, meso: Mesocycle, muscle: str, week: int) -> int:
        return self.ramp.target(
            muscle,
            week,
            duration_weeks=meso.duration_weeks,
            schedule_overrides=meso.volume_ramp_config,
        )

    def get_rir_target(self, meso: Mesocycle, week: int) -> RirBand:
        return rir.get_rir_target(meso, week)
