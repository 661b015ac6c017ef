"""Storage mapping and the in-memory repository."""

import logging
from dataclasses import replace
from datetime import date

import pytest

from ironplan import mappers
from ironplan.errors import NotFoundError, ValidationError
from ironplan.judgment_day.periodization import generate_macro_cycle
from ironplan.repository import InMemoryRepository
from ironplan.types import (
    ExerciseExposure,
    ExerciseRole,
    MesocycleExerciseRole,
    MesocycleState,
    PrimaryGoal,
    RampSchedule,
    RirBand,
    SessionIntent,
    TrainingAge,
)

from conftest import NOW, USER, make_signal


class TestMappers:

    def test_enums_stored_upper_case(self, mesocycle):
        row = mappers.mesocycle_to_row(replace(mesocycle, state=MesocycleState.ACTIVE_DELOAD))
        assert row['state'] == "ACTIVE_DELOAD"
        assert row['volume_target'] == "MODERATE"
        assert mappers.mesocycle_from_row(row).state == MesocycleState.ACTIVE_DELOAD

    def test_role_casing(self):
        role = MesocycleExerciseRole("meso-1", "squat", SessionIntent.FULL_BODY, ExerciseRole.CORE_COMPOUND)
        row = mappers.role_to_row(role)
        assert (row['session_intent'], row['role']) == ("FULL_BODY", "CORE_COMPOUND")
        assert mappers.role_from_row(row) == role

    def test_unknown_stored_value_rejected(self):
        with pytest.raises(ValidationError):
            mappers.enum_from_storage(MesocycleState, "active_deload")

    def test_rir_band_payload(self, caplog):
        raw = '{"weekBands": {"week1": {"min": 3, "max": 4}, "week5Deload": {"min": 5, "max": 6}, "bogus": 1}}'
        with caplog.at_level(logging.WARNING):
            bands = mappers.parse_rir_band_config(raw, duration_weeks=5)
        assert bands == {1: RirBand(3, 4), 5: RirBand(5, 6)}
        assert "bogus" in caplog.text

    def test_volume_ramp_payload(self):
        schedules = mappers.parse_volume_ramp_config({"Chest": {"start_sets": 10, "peak_sets": 16}, "Lats": {}})
        assert schedules == {"Chest": RampSchedule(10, 16)}

    def test_readiness_row_with_wearable(self):
        row = {
            'user_id': USER,
            'timestamp': NOW.isoformat(),
            'subjective_readiness': 4,
            'subjective_motivation': 3,
            'soreness': '{"chest": 2}',
            'performance_stalls': 1,
            'whoop_recovery': 65,
            'whoop_strain': 12.5,
            'whoop_hrv': 48,
            'whoop_sleep_quality': 80,
        }
        signal = mappers.readiness_signal_from_row(row)
        assert signal.timestamp == NOW
        assert signal.subjective.soreness == {"chest": 2}
        assert signal.performance.stall_count == 1
        assert signal.performance.volume_compliance_rate == 1.0
        assert signal.wearable.recovery == 65.0

    def test_exercise_row_normalizes_tags(self):
        exercise = mappers.exercise_from_row({
            'id': 42,
            'name': "Goblet Squat",
            'primary_muscles': ["Quads"],
            'split_tags': ["LEGS"],
            'equipment': ["Dumbbell"],
            'is_compound': True,
        })
        assert exercise.id == "42"
        assert exercise.split_tags == ("legs",)
        assert exercise.equipment == ("dumbbell",)


class TestInMemoryRepository:

    def test_increment_follows_state(self, repo):
        assert repo.increment_session_counter("meso-1").accumulation_sessions_completed == 1
        repo.update_mesocycle(replace(repo.get_mesocycle("meso-1"), state=MesocycleState.ACTIVE_DELOAD))
        meso = repo.increment_session_counter("meso-1")
        assert (meso.accumulation_sessions_completed, meso.deload_sessions_completed) == (1, 1)

    def test_completed_counter_untouched(self, repo):
        repo.update_mesocycle(replace(repo.get_mesocycle("meso-1"), state=MesocycleState.COMPLETED))
        repo.writes.clear()
        repo.increment_session_counter("meso-1")
        assert repo.writes == []

    def test_missing_records_raise(self, repo):
        with pytest.raises(NotFoundError):
            repo.get_mesocycle("meso-9")
        with pytest.raises(NotFoundError):
            repo.get_macro_cycle("macro-9")

    def test_active_mesocycle_scoped_to_user(self):
        repository = InMemoryRepository()
        macro = generate_macro_cycle("someone-else", date(2026, 1, 5), 5, TrainingAge.BEGINNER, PrimaryGoal.HYPERTROPHY)
        repository.save_macro_cycle(macro)
        assert repository.get_active_mesocycle(USER) is None
        assert repository.get_active_mesocycle("someone-else").meso_number == 1

    def test_unattached_mesocycle_belongs_to_nobody(self, mesocycle):
        repository = InMemoryRepository()
        repository.add_mesocycle(mesocycle)
        assert mesocycle.is_active
        assert repository.get_active_mesocycle(USER) is None

    def test_duplicate_meso_number_in_macro_rejected(self):
        repository = InMemoryRepository()
        macro = repository.save_macro_cycle(
            generate_macro_cycle(USER, date(2026, 1, 5), 10, TrainingAge.INTERMEDIATE, PrimaryGoal.STRENGTH)
        )
        second = macro.mesocycles[1]
        with pytest.raises(ValidationError):
            repository.add_mesocycle(replace(second, id=None, blocks=()))
        assert len(repository.mesocycles) == 2

    def test_saved_macro_gets_ids(self):
        repository = InMemoryRepository()
        macro = generate_macro_cycle(USER, date(2026, 1, 5), 12, TrainingAge.INTERMEDIATE, PrimaryGoal.STRENGTH)
        stored = repository.save_macro_cycle(macro)

        assert stored.id == "macro-1"
        assert [m.id for m in stored.mesocycles] == ["meso-1", "meso-2"]
        assert all(b.mesocycle_id == "meso-1" for b in stored.mesocycles[0].blocks)
        assert repository.get_macro_cycle("macro-1").mesocycles == stored.mesocycles

    def test_latest_signal(self, repo, tired_signal):
        repo.save_readiness_signal(make_signal())
        repo.save_readiness_signal(tired_signal)
        assert repo.latest_readiness_signal(USER).timestamp == NOW
        assert repo.latest_readiness_signal("nobody") is None

    def test_state_file_round_trip(self, tmp_path, repo, fresh_signal):
        repo.add_exercise_roles([
            MesocycleExerciseRole("meso-1", "bench", SessionIntent.PUSH, ExerciseRole.CORE_COMPOUND)
        ])
        repo.save_readiness_signal(fresh_signal)
        repo.exposures[USER] = {"bench": ExerciseExposure("bench", NOW, times_used_l4w=2)}
        path = tmp_path / "state.json"

        repo.save(path)
        loaded = InMemoryRepository.load(path)

        assert loaded.get_mesocycle("meso-1") == repo.get_mesocycle("meso-1")
        assert loaded.get_exercise_roles("meso-1") == repo.get_exercise_roles("meso-1")
        assert loaded.latest_readiness_signal(USER) == fresh_signal
        assert loaded.get_exercise_pool(USER) == repo.get_exercise_pool(USER)
        assert loaded.get_exposures(USER)["bench"].times_used_l4w == 2

    def test_missing_state_file_starts_empty(self, tmp_path):
        assert InMemoryRepository.load(tmp_path / "none.json").mesocycles == {}
