"""End-to-end planning through the in-memory repository."""

from dataclasses import replace
from datetime import date, timedelta

import pytest

from ironplan.errors import AlignmentFailure, NotFoundError, ValidationError
from ironplan.judgment_day.periodization import generate_macro_cycle
from ironplan.judgment_day.planner import PlanningResult, SessionPlanner, format_plan_text
from ironplan.repository import InMemoryRepository
from ironplan.types import (
    ExerciseExposure,
    MesocycleState,
    PrimaryGoal,
    RirBand,
    SessionIntent,
    TrainingAge,
)

from conftest import NOW, USER


@pytest.fixture
def small_repo(repo, by_id):
    repo.exercises[USER] = [by_id["bench"], by_id["fly"], by_id["pushdown"]]
    return repo


def _plan_push(repository, **kwargs):
    kwargs.setdefault("exercise_count", 3)
    return SessionPlanner(repository).plan_session(
        USER, SessionIntent.PUSH, ["chest", "triceps"], NOW, **kwargs
    )


class TestPrescription:

    def test_week_one_push_day(self, repo):
        result = SessionPlanner(repo).plan_session(
            USER, SessionIntent.PUSH, ["chest", "triceps"], NOW, exercise_count=4
        )

        assert isinstance(result, PlanningResult)
        plan = result.plan
        assert plan.week_in_meso == 1
        assert plan.rir_band == RirBand(3, 4)
        assert len(plan.exercises) == 4
        assert result.weekly_targets == {"Chest": 10, "Triceps": 6}
        for exercise in plan.exercises:
            assert 2 <= len(exercise.sets) <= 5
            assert exercise.rest_seconds == 90
            first = exercise.sets[0]
            if exercise.is_main_lift:
                assert (first.target_reps, first.target_rir) == (8, 4)
            else:
                assert (first.target_reps, first.target_rir) == (12, 3)
        assert plan.rationale[0] == "Mesocycle 1 week 1 of 5 (accumulation); target RIR 3-4"
        assert plan.rationale[-1].startswith("Selection quality: ")

    def test_no_signal_leaves_draft(self, small_repo):
        result = _plan_push(small_repo)
        assert result.autoregulation.applied is False
        assert result.plan == result.draft

    def test_main_lift_partition(self, small_repo):
        result = _plan_push(small_repo)
        assert [ex.exercise_id for ex in result.plan.exercises][0] == "bench"
        assert result.selection.main_lift_ids == ("bench",)
        assert result.plan.exercises[0].is_main_lift

    def test_short_pool_warns(self, small_repo):
        result = _plan_push(small_repo, exercise_count=7)
        assert "Only 3 of 7 requested exercises available" in result.plan.warnings

    def test_deload_week(self, small_repo):
        small_repo.update_mesocycle(replace(
            small_repo.get_mesocycle("meso-1"),
            state=MesocycleState.ACTIVE_DELOAD,
            accumulation_sessions_completed=12,
        ))
        result = _plan_push(small_repo)

        assert result.week == 5
        assert result.plan.rir_band == RirBand(4, 6)
        assert result.weekly_targets["Chest"] == 7
        assert "(deload)" in result.plan.rationale[0]
        assert {s.target_reps for ex in result.plan.exercises for s in ex.sets} <= {6, 10}

    def test_block_modifies_rest(self, pool):
        repository = InMemoryRepository()
        macro = generate_macro_cycle(USER, date(2026, 3, 2), 10, TrainingAge.INTERMEDIATE, PrimaryGoal.STRENGTH)
        repository.save_macro_cycle(macro)
        repository.exercises[USER] = pool

        result = SessionPlanner(repository).plan_session(USER, SessionIntent.PUSH, ["chest"], NOW)

        # Accumulation block rest (90s) scaled by 0.9
        assert {ex.rest_seconds for ex in result.plan.exercises} == {81}


class TestAutoregulationWiring:

    def test_tired_signal_scales_loads(self, small_repo, tired_signal):
        small_repo.save_readiness_signal(tired_signal)
        result = _plan_push(small_repo, target_loads={"bench": 225.0, "fly": 40.0})

        bench = result.plan.exercises[0]
        assert result.autoregulation.applied is True
        assert bench.sets[0].target_load == pytest.approx(202.5)
        assert bench.sets[0].target_rir == 5
        assert result.draft.exercises[0].sets[0].target_load == 225.0

    def test_exhausted_signal_deloads(self, small_repo, exhausted_signal):
        small_repo.save_readiness_signal(exhausted_signal)
        result = _plan_push(small_repo, target_loads={"bench": 225.0})
        assert result.plan.notes.startswith("[AUTO-DELOAD TRIGGERED]")
        assert all(s.target_rir >= 4 for ex in result.plan.exercises for s in ex.sets)

    def test_stale_signal_ignored(self, small_repo, tired_signal):
        small_repo.save_readiness_signal(replace(tired_signal, timestamp=NOW - timedelta(days=3)))
        result = _plan_push(small_repo, target_loads={"bench": 225.0})
        assert result.plan == result.draft


class TestFailures:

    def test_requires_target_groups(self, repo):
        with pytest.raises(ValidationError):
            SessionPlanner(repo).plan_session(USER, SessionIntent.PUSH, [], NOW)

    def test_requires_active_mesocycle(self, pool):
        repository = InMemoryRepository()
        repository.exercises[USER] = pool
        with pytest.raises(NotFoundError):
            SessionPlanner(repository).plan_session(USER, SessionIntent.PUSH, ["chest"], NOW)

    def test_unreachable_intent_returns_failure(self, repo, by_id):
        repo.exercises[USER] = [by_id["squat"], by_id["rdl"], by_id["leg_curl"]]
        result = SessionPlanner(repo).plan_session(USER, SessionIntent.PUSH, ["chest"], NOW)
        assert isinstance(result, AlignmentFailure)


def test_recent_exercises_excluded(small_repo):
    small_repo.exposures[USER] = {"bench": ExerciseExposure("bench", NOW - timedelta(days=2))}
    result = _plan_push(small_repo, exclude_recent_days=7)
    assert "bench" not in result.selection.selected_exercise_ids


def test_format_plan_text(small_repo, tired_signal):
    small_repo.save_readiness_signal(tired_signal)
    result = _plan_push(small_repo, target_loads={"bench": 225.0})

    text = format_plan_text(result.plan, result)

    assert "JUDGMENT-DAY: Session Plan" in text
    assert "1. Bench Press [main]" in text
    assert "Load: 202.5 lbs" in text
    assert "READINESS" in text
    assert text.splitlines()[-2] == '"Your workout has been decided."'
