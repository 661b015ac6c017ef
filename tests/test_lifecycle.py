"""Mesocycle state machine."""

import logging
from dataclasses import replace
from datetime import date

import pytest

from ironplan.errors import NotFoundError
from ironplan.judgment_day.lifecycle import (
    MesocycleLifecycle,
    build_rollover,
    carry_forward_roles,
    get_current_meso_week,
)
from ironplan.judgment_day.periodization import generate_macro_cycle
from ironplan.repository import InMemoryRepository
from ironplan.types import (
    ExerciseRole,
    MesocycleExerciseRole,
    MesocycleState,
    PrimaryGoal,
    RampSchedule,
    RirBand,
    SessionIntent,
    TrainingAge,
)


def _roles(meso_id):
    return [
        MesocycleExerciseRole(meso_id, "squat", SessionIntent.LEGS, ExerciseRole.CORE_COMPOUND, 1),
        MesocycleExerciseRole(meso_id, "bench", SessionIntent.PUSH, ExerciseRole.CORE_COMPOUND, 2),
        MesocycleExerciseRole(meso_id, "fly", SessionIntent.PUSH, ExerciseRole.ACCESSORY, 1),
        MesocycleExerciseRole(meso_id, "curl", SessionIntent.PULL, ExerciseRole.ACCESSORY, 3),
    ]


class TestCurrentWeek:

    @pytest.mark.parametrize("sessions,week", [(0, 1), (2, 1), (3, 2), (8, 3), (11, 4), (12, 4), (20, 4)])
    def test_accumulation_week_from_counter(self, mesocycle, sessions, week):
        meso = replace(mesocycle, accumulation_sessions_completed=sessions)
        assert get_current_meso_week(meso) == week

    def test_deload_week_is_fixed(self, mesocycle):
        meso = replace(mesocycle, state=MesocycleState.ACTIVE_DELOAD, accumulation_sessions_completed=3)
        assert get_current_meso_week(meso) == 5


class TestTransition:

    def test_accumulation_threshold_flips_to_deload(self, repo):
        repo.update_mesocycle(replace(repo.get_mesocycle("meso-1"), accumulation_sessions_completed=12))
        repo.writes.clear()

        current = MesocycleLifecycle(repo).transition("meso-1")

        assert current.state == MesocycleState.ACTIVE_DELOAD
        assert current.accumulation_sessions_completed == 12
        assert current.deload_sessions_completed == 0
        assert repo.writes == [('update_mesocycle', 'meso-1')]

    def test_below_threshold_writes_nothing(self, repo):
        repo.update_mesocycle(replace(repo.get_mesocycle("meso-1"), accumulation_sessions_completed=11))
        repo.writes.clear()

        current = MesocycleLifecycle(repo).transition("meso-1")

        assert current.state == MesocycleState.ACTIVE_ACCUMULATION
        assert repo.writes == []

    def test_deload_threshold_rolls_over(self, repo):
        repo.update_mesocycle(replace(
            repo.get_mesocycle("meso-1"),
            state=MesocycleState.ACTIVE_DELOAD,
            accumulation_sessions_completed=12,
            deload_sessions_completed=3,
        ))
        repo.add_exercise_roles(_roles("meso-1"))

        current = MesocycleLifecycle(repo).transition("meso-1")

        completed = repo.get_mesocycle("meso-1")
        assert completed.state == MesocycleState.COMPLETED
        assert not completed.is_active

        assert current.id != "meso-1"
        assert current.state == MesocycleState.ACTIVE_ACCUMULATION
        assert current.accumulation_sessions_completed == 0
        assert current.deload_sessions_completed == 0
        assert current.meso_number == 2
        assert current.start_week == 5
        assert current.is_active

        carried = repo.get_exercise_roles(current.id)
        assert {r.exercise_id for r in carried} == {"squat", "bench"}
        assert all(r.role == ExerciseRole.CORE_COMPOUND for r in carried)
        assert all(r.added_in_week == 1 for r in carried)

    def test_rollover_activates_planned_successor(self):
        repository = InMemoryRepository()
        macro = repository.save_macro_cycle(generate_macro_cycle(
            "u", date(2026, 1, 5), 15, TrainingAge.INTERMEDIATE, PrimaryGoal.HYPERTROPHY
        ))
        first, planned = macro.mesocycles[0], macro.mesocycles[1]
        repository.update_mesocycle(replace(first, state=MesocycleState.ACTIVE_DELOAD, deload_sessions_completed=3))
        repository.add_exercise_roles(_roles(first.id))

        current = MesocycleLifecycle(repository).transition(first.id)

        assert current.id == planned.id
        assert current.is_active
        assert current.state == MesocycleState.ACTIVE_ACCUMULATION
        assert current.start_week == planned.start_week
        stored = repository.get_macro_cycle(macro.id).mesocycles
        assert [m.meso_number for m in stored] == [1, 2, 3]
        assert [m.id for m in stored if m.is_active] == [planned.id]
        assert {r.exercise_id for r in repository.get_exercise_roles(planned.id)} == {"squat", "bench"}

    def test_only_one_active_mesocycle_after_rollover(self, repo):
        repo.update_mesocycle(replace(
            repo.get_mesocycle("meso-1"),
            state=MesocycleState.ACTIVE_DELOAD,
            deload_sessions_completed=3,
        ))
        MesocycleLifecycle(repo).transition("meso-1")
        assert sum(1 for m in repo.mesocycles.values() if m.is_active) == 1

    def test_completed_is_a_logged_no_op(self, repo, caplog):
        repo.update_mesocycle(replace(
            repo.get_mesocycle("meso-1"), state=MesocycleState.COMPLETED, is_active=False
        ))
        repo.writes.clear()

        with caplog.at_level(logging.WARNING):
            current = MesocycleLifecycle(repo).transition("meso-1")
            again = MesocycleLifecycle(repo).transition("meso-1")

        assert current.state == again.state == MesocycleState.COMPLETED
        assert repo.writes == []
        assert "COMPLETED" in caplog.text
        assert len(repo.mesocycles) == 1

    def test_missing_mesocycle_raises(self, repo):
        with pytest.raises(NotFoundError):
            MesocycleLifecycle(repo).transition("meso-99")


class TestRollover:

    def test_carry_forward_keeps_core_compounds_only(self):
        carried = carry_forward_roles(_roles("meso-1"))
        assert [r.exercise_id for r in carried] == ["squat", "bench"]
        assert all(r.mesocycle_id is None and r.added_in_week == 1 for r in carried)

    def test_rollover_shifts_blocks(self):
        macro = generate_macro_cycle("u", date(2026, 1, 5), 10, TrainingAge.INTERMEDIATE, PrimaryGoal.STRENGTH)
        first = macro.mesocycles[0]
        rollover = build_rollover(first, [])

        assert rollover.completed.state == MesocycleState.COMPLETED
        next_meso = rollover.next_mesocycle
        assert next_meso.id is None
        assert [b.start_week for b in next_meso.blocks] == [5, 7, 9]
        assert all(b.id is None for b in next_meso.blocks)

    def test_rollover_is_atomic_in_memory(self, mesocycle):
        repo = InMemoryRepository()
        rollover = build_rollover(replace(mesocycle, id="meso-404"), [])
        with pytest.raises(NotFoundError):
            repo.commit_rollover(rollover)
        assert repo.mesocycles == {}
        assert repo.writes == []


class TestWrappers:

    def test_volume_target_uses_mesocycle_overrides(self, mesocycle):
        meso = replace(mesocycle, volume_ramp_config={"Chest": RampSchedule(12, 18)})
        lifecycle = MesocycleLifecycle(InMemoryRepository())
        assert lifecycle.get_weekly_volume_target(meso, "chest", 1) == 12
        assert lifecycle.get_weekly_volume_target(meso, "lats", 1) == 8

    def test_rir_target(self, mesocycle):
        meso = replace(mesocycle, rir_band_config={2: RirBand(3, 3)})
        lifecycle = MesocycleLifecycle(InMemoryRepository())
        assert lifecycle.get_rir_target(meso, 2) == RirBand(3, 3)
