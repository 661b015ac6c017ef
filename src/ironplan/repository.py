"""
Collaborator Interfaces

The engine reads and writes through these protocols instead of a process-wide
client. InMemoryRepository backs tests and the CLI state file;
postgres_client.PostgresPlanningRepository backs a real database.
"""

import copy
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from . import mappers
from .errors import NotFoundError, ValidationError
from .types import (
    Exercise,
    ExerciseExposure,
    MacroCycle,
    Mesocycle,
    MesocycleExerciseRole,
    MesocycleRollover,
    MesocycleState,
    ReadinessSignal,
    TrainingBlock,
)

logger = logging.getLogger(__name__)


class MesocycleRepository(Protocol):
    """Mesocycle, block and exercise-role storage."""

    def get_mesocycle(self, mesocycle_id: str) -> Mesocycle: ...

    def get_active_mesocycle(self, user_id: str) -> Optional[Mesocycle]: ...

    def update_mesocycle(self, mesocycle: Mesocycle) -> Mesocycle: ...

    def increment_session_counter(self, mesocycle_id: str) -> Mesocycle: ...

    def get_blocks(self, mesocycle_id: str) -> Tuple[TrainingBlock, ...]: ...

    def get_exercise_roles(self, mesocycle_id: str) -> List[MesocycleExerciseRole]: ...

    def commit_rollover(self, rollover: MesocycleRollover) -> Mesocycle:
        """
        Deactivate the completed mesocycle and activate the next, all or nothing.

        A next mesocycle without an id is created; one with an id is a planned
        successor that already exists and is activated in place.
        """
        ...

    def save_macro_cycle(self, macro: MacroCycle) -> MacroCycle: ...

    def get_macro_cycle(self, macro_cycle_id: str) -> MacroCycle: ...


class ReadinessRepository(Protocol):

    def latest_readiness_signal(self, user_id: str) -> Optional[ReadinessSignal]: ...

    def save_readiness_signal(self, signal: ReadinessSignal) -> None: ...


class ExerciseRepository(Protocol):

    def get_exercise_pool(self, user_id: str) -> List[Exercise]: ...

    def get_exposures(self, user_id: str) -> Dict[str, ExerciseExposure]: ...


class InMemoryRepository:
    """
    Dict-backed implementation of every collaborator protocol.

    Tracks writes in `writes` so callers can assert that a no-op really
    wrote nothing. Identifiers are assigned as "<kind>-<n>".
    """

    def __init__(self):
        self.macro_cycles: Dict[str, MacroCycle] = {}
        self.mesocycles: Dict[str, Mesocycle] = {}
        self.roles: List[MesocycleExerciseRole] = []
        self.signals: List[ReadinessSignal] = []
        self.exercises: Dict[str, List[Exercise]] = {}
        self.exposures: Dict[str, Dict[str, ExerciseExposure]] = {}
        self.writes: List[Tuple[str, str]] = []
        self._counters: Dict[str, int] = {}

    def _next_id(self, kind: str) -> str:
        taken = set(self.mesocycles) | set(self.macro_cycles)
        while True:
            self._counters[kind] = self._counters.get(kind, 0) + 1
            candidate = f"{kind}-{self._counters[kind]}"
            if candidate not in taken:
                return candidate

    # =========================================================================
    # Mesocycles
    # =========================================================================

    def add_mesocycle(self, mesocycle: Mesocycle) -> Mesocycle:
        """Seed a mesocycle (assigning an id if it has none)."""
        if mesocycle.id is None:
            mesocycle = replace(mesocycle, id=self._next_id('meso'))
        mesocycle = self._with_block_ids(mesocycle)
        _check_meso_number(self.mesocycles, mesocycle)
        self.mesocycles[mesocycle.id] = mesocycle
        return mesocycle

    def _with_block_ids(self, mesocycle: Mesocycle) -> Mesocycle:
        blocks = tuple(
            replace(b, id=b.id or self._next_id('block'), mesocycle_id=mesocycle.id)
            for b in mesocycle.blocks
        )
        return replace(mesocycle, blocks=blocks)

    def get_mesocycle(self, mesocycle_id: str) -> Mesocycle:
        try:
            return self.mesocycles[mesocycle_id]
        except KeyError:
            raise NotFoundError(f"Mesocycle not found: {mesocycle_id}") from None

    def get_active_mesocycle(self, user_id: str) -> Optional[Mesocycle]:
        """Active mesocycle under one of the user's macro cycles."""
        user_macros = {m_id for m_id, m in self.macro_cycles.items() if m.user_id == user_id}
        for meso in self.mesocycles.values():
            if meso.is_active and meso.macro_cycle_id in user_macros:
                return meso
        return None

    def update_mesocycle(self, mesocycle: Mesocycle) -> Mesocycle:
        self.get_mesocycle(mesocycle.id)
        self.mesocycles[mesocycle.id] = mesocycle
        self.writes.append(('update_mesocycle', mesocycle.id))
        return mesocycle

    def increment_session_counter(self, mesocycle_id: str) -> Mesocycle:
        """Count one completed session against the mesocycle's current phase."""
        meso = self.get_mesocycle(mesocycle_id)
        if meso.state == MesocycleState.ACTIVE_ACCUMULATION:
            meso = replace(meso, accumulation_sessions_completed=meso.accumulation_sessions_completed + 1)
        elif meso.state == MesocycleState.ACTIVE_DELOAD:
            meso = replace(meso, deload_sessions_completed=meso.deload_sessions_completed + 1)
        else:
            return meso
        return self.update_mesocycle(meso)

    def get_blocks(self, mesocycle_id: str) -> Tuple[TrainingBlock, ...]:
        return tuple(sorted(self.get_mesocycle(mesocycle_id).blocks, key=lambda b: b.start_week))

    def get_exercise_roles(self, mesocycle_id: str) -> List[MesocycleExerciseRole]:
        return [r for r in self.roles if r.mesocycle_id == mesocycle_id]

    def add_exercise_roles(self, roles: List[MesocycleExerciseRole]) -> None:
        self.roles.extend(roles)

    def commit_rollover(self, rollover: MesocycleRollover) -> Mesocycle:
        """Apply a rollover atomically: state is only swapped in once everything succeeded."""
        mesocycles = dict(self.mesocycles)
        roles = list(self.roles)
        counters = dict(self._counters)

        try:
            completed = rollover.completed
            if completed.id not in mesocycles:
                raise NotFoundError(f"Mesocycle not found: {completed.id}")
            mesocycles[completed.id] = completed

            next_meso = rollover.next_mesocycle
            if next_meso.id is None:
                next_meso = replace(next_meso, id=self._next_id('meso'))
            elif next_meso.id not in mesocycles:
                raise NotFoundError(f"Mesocycle not found: {next_meso.id}")
            next_meso = self._with_block_ids(next_meso)
            _check_meso_number(mesocycles, next_meso)
            mesocycles[next_meso.id] = next_meso

            existing = {(r.exercise_id, r.session_intent) for r in roles if r.mesocycle_id == next_meso.id}
            for role in rollover.carried_roles:
                if (role.exercise_id, role.session_intent) in existing:
                    continue
                roles.append(replace(role, mesocycle_id=next_meso.id))
        except Exception:
            self._counters = counters
            raise

        self.mesocycles = mesocycles
        self.roles = roles
        self.writes.append(('commit_rollover', completed.id))
        return next_meso

    # =========================================================================
    # Macro cycles
    # =========================================================================

    def save_macro_cycle(self, macro: MacroCycle) -> MacroCycle:
        macro_id = macro.id or self._next_id('macro')
        saved = []
        for meso in macro.mesocycles:
            saved.append(self.add_mesocycle(replace(meso, macro_cycle_id=macro_id)))
        stored = replace(macro, id=macro_id, mesocycles=tuple(saved))
        self.macro_cycles[macro_id] = replace(stored, mesocycles=())
        self.writes.append(('save_macro_cycle', macro_id))
        return stored

    def get_macro_cycle(self, macro_cycle_id: str) -> MacroCycle:
        try:
            macro = self.macro_cycles[macro_cycle_id]
        except KeyError:
            raise NotFoundError(f"Macro cycle not found: {macro_cycle_id}") from None
        mesos = sorted(
            (m for m in self.mesocycles.values() if m.macro_cycle_id == macro_cycle_id),
            key=lambda m: m.meso_number
        )
        return replace(macro, mesocycles=tuple(mesos))

    # =========================================================================
    # Readiness
    # =========================================================================

    def latest_readiness_signal(self, user_id: str) -> Optional[ReadinessSignal]:
        candidates = [s for s in self.signals if s.user_id == user_id]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.timestamp)

    def save_readiness_signal(self, signal: ReadinessSignal) -> None:
        self.signals.append(signal)
        self.writes.append(('save_readiness_signal', signal.user_id))

    # =========================================================================
    # Exercises
    # =========================================================================

    def get_exercise_pool(self, user_id: str) -> List[Exercise]:
        return list(self.exercises.get(user_id, []))

    def get_exposures(self, user_id: str) -> Dict[str, ExerciseExposure]:
        return dict(self.exposures.get(user_id, {}))

    # =========================================================================
    # State file
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            'counters': dict(self._counters),
            'macro_cycles': [mappers.macro_cycle_to_row(m) for m in self.macro_cycles.values()],
            'mesocycles': [
                dict(mappers.mesocycle_to_row(m), blocks=[mappers.block_to_row(b) for b in m.blocks])
                for m in self.mesocycles.values()
            ],
            'roles': [mappers.role_to_row(r) for r in self.roles],
            'readiness_signals': [mappers.readiness_signal_to_row(s) for s in self.signals],
            'exercises': {
                user: [_exercise_to_row(e) for e in pool] for user, pool in self.exercises.items()
            },
            'exposures': {
                user: [
                    {
                        'exercise_id': e.exercise_id,
                        'last_used_at': e.last_used_at.isoformat(),
                        'times_used_l4w': e.times_used_l4w,
                        'times_used_l8w': e.times_used_l8w,
                        'times_used_l12w': e.times_used_l12w,
                    }
                    for e in by_id.values()
                ]
                for user, by_id in self.exposures.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InMemoryRepository':
        repo = cls()
        repo._counters = dict(data.get('counters', {}))
        for row in data.get('macro_cycles', []):
            macro = mappers.macro_cycle_from_row(row)
            repo.macro_cycles[macro.id] = macro
        for row in data.get('mesocycles', []):
            blocks = [mappers.block_from_row(b) for b in row.get('blocks', [])]
            meso = mappers.mesocycle_from_row(row, blocks)
            repo.mesocycles[meso.id] = meso
        repo.roles = [mappers.role_from_row(r) for r in data.get('roles', [])]
        repo.signals = [mappers.readiness_signal_from_row(r) for r in data.get('readiness_signals', [])]
        repo.exercises = {
            user: [mappers.exercise_from_row(r) for r in rows]
            for user, rows in data.get('exercises', {}).items()
        }
        repo.exposures = {
            user: {e.exercise_id: e for e in (mappers.exposure_from_row(r) for r in rows)}
            for user, rows in data.get('exposures', {}).items()
        }
        return repo

    @classmethod
    def load(cls, path: Path) -> 'InMemoryRepository':
        path = Path(path)
        if not path.exists():
            logger.info(f"No state file at {path}; starting empty")
            return cls()
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def save(self, path: Path) -> None:
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def _exercise_to_row(exercise: Exercise) -> Dict[str, Any]:
    row = copy.copy(exercise.__dict__)
    for key in ('primary_muscles', 'secondary_muscles', 'movement_patterns', 'equipment', 'split_tags'):
        row[key] = list(row[key])
    return row


def _check_meso_number(mesocycles: Dict[str, Mesocycle], meso: Mesocycle) -> None:
    """Mirror of the (macro_cycle_id, meso_number) unique index."""
    if meso.macro_cycle_id is None:
        return
    for other in mesocycles.values():
        if (other.id != meso.id and other.macro_cycle_id == meso.macro_cycle_id
                and other.meso_number == meso.meso_number):
            raise ValidationError(
                f"Macro cycle {meso.macro_cycle_id} already has mesocycle #{meso.meso_number} ({other.id})"
            )
