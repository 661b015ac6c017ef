"""Shared fixtures: a small exercise library, mesocycles and readiness signals."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from ironplan.repository import InMemoryRepository
from ironplan.types import (
    Exercise,
    MacroCycle,
    Mesocycle,
    PerformanceSignals,
    PlannedExercise,
    PlannedSet,
    PrimaryGoal,
    ReadinessSignal,
    SessionPlan,
    SubjectiveReadiness,
    TrainingAge,
)

USER = "user-1"
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def make_exercise(ex_id, name, primary, secondary=(), patterns=(), equipment=(),
                  tags=(), compound=False, main=False, **flags):
    return Exercise(
        id=ex_id,
        name=name,
        primary_muscles=tuple(primary),
        secondary_muscles=tuple(secondary),
        movement_patterns=tuple(patterns),
        equipment=tuple(equipment),
        split_tags=tuple(tags),
        is_compound=compound,
        is_main_lift_eligible=main,
        **flags
    )


EXERCISE_LIBRARY = [
    make_exercise("bench", "Bench Press", ["Chest"], ["Triceps", "Front Delts"],
                  ["horizontal_push"], ["barbell", "bench"], ["push"], compound=True, main=True),
    make_exercise("ohp", "Overhead Press", ["Front Delts", "Side Delts"], ["Triceps"],
                  ["vertical_push"], ["barbell"], ["push"], compound=True, main=True),
    make_exercise("incline_db", "Incline Dumbbell Press", ["Chest"], ["Front Delts", "Triceps"],
                  ["horizontal_push"], ["dumbbell", "bench"], ["push"], compound=True),
    make_exercise("dips", "Dips", ["Chest", "Triceps"], ["Front Delts"],
                  ["vertical_push"], ["dip station"], ["push"], compound=True),
    make_exercise("pushdown", "Triceps Pushdown", ["Triceps"], (),
                  ["extension"], ["cable"], ["push"]),
    make_exercise("lateral_raise", "Lateral Raise", ["Side Delts"], (),
                  ["abduction"], ["dumbbell"], ["push"]),
    make_exercise("fly", "Cable Fly", ["Chest"], ["Front Delts"],
                  ["flexion"], ["cable"], ["push"]),
    make_exercise("row", "Barbell Row", ["Lats", "Upper Back"], ["Biceps", "Rear Delts"],
                  ["horizontal_pull"], ["barbell"], ["pull"], compound=True, main=True),
    make_exercise("pullup", "Pull-Up", ["Lats"], ["Biceps"],
                  ["vertical_pull"], ["pullup bar"], ["pull"], compound=True, main=True),
    make_exercise("curl", "Biceps Curl", ["Biceps"], (),
                  ["flexion"], ["dumbbell"], ["pull"]),
    make_exercise("face_pull", "Face Pull", ["Rear Delts"], ["Upper Back"],
                  ["horizontal_pull"], ["cable"], ["pull"]),
    make_exercise("squat", "Back Squat", ["Quads", "Glutes"], ["Hamstrings", "Lower Back"],
                  ["squat"], ["barbell", "rack"], ["legs"], compound=True, main=True),
    make_exercise("rdl", "Romanian Deadlift", ["Hamstrings", "Glutes"], ["Lower Back"],
                  ["hinge"], ["barbell"], ["legs"], compound=True, main=True),
    make_exercise("lunge", "Walking Lunge", ["Quads", "Glutes"], ["Hamstrings"],
                  ["lunge"], ["dumbbell"], ["legs"], compound=True),
    make_exercise("leg_curl", "Leg Curl", ["Hamstrings"], (),
                  ["flexion"], ["machine"], ["legs"]),
    make_exercise("calf_raise", "Calf Raise", ["Calves"], (),
                  ["calf_raise"], ["machine"], ["legs"]),
    make_exercise("plank", "Plank", ["Core"], (),
                  ["anti_rotation"], (), ["core"]),
    make_exercise("btn_press", "Behind-the-Neck Press", ["Side Delts", "Front Delts"], ["Triceps"],
                  ["vertical_push"], ["barbell"], ["push"], compound=True, is_avoided=True),
]


@pytest.fixture
def pool():
    return list(EXERCISE_LIBRARY)


@pytest.fixture
def by_id(pool):
    return {ex.id: ex for ex in pool}


@pytest.fixture
def mesocycle():
    return Mesocycle(
        id="meso-1",
        macro_cycle_id=None,
        meso_number=1,
        start_week=0,
        duration_weeks=5,
        sessions_per_week=3,
    )


@pytest.fixture
def repo(pool, mesocycle):
    repository = InMemoryRepository()
    repository.macro_cycles["macro-1"] = MacroCycle(
        id="macro-1",
        user_id=USER,
        start_date=date(2026, 3, 2),
        duration_weeks=5,
        training_age=TrainingAge.INTERMEDIATE,
        primary_goal=PrimaryGoal.HYPERTROPHY,
    )
    repository.add_mesocycle(replace(mesocycle, macro_cycle_id="macro-1"))
    repository.exercises[USER] = pool
    return repository


def make_signal(timestamp=NOW, readiness=5, motivation=5, soreness=None, **performance):
    return ReadinessSignal(
        user_id=USER,
        timestamp=timestamp,
        subjective=SubjectiveReadiness(
            readiness=readiness,
            motivation=motivation,
            soreness=soreness or {},
        ),
        performance=PerformanceSignals(**performance),
    )


@pytest.fixture
def fresh_signal():
    return make_signal()


@pytest.fixture
def exhausted_signal():
    """Recent check-in that scores below the deload threshold."""
    return make_signal(
        timestamp=NOW - timedelta(hours=2),
        readiness=1,
        motivation=1,
        rpe_deviation=2.0,
        stall_count=3,
        volume_compliance_rate=0.6,
    )


@pytest.fixture
def tired_signal():
    """Recent check-in that scores in the scale-down band."""
    return make_signal(timestamp=NOW - timedelta(hours=2), readiness=1, motivation=2)


@pytest.fixture
def draft_session():
    return SessionPlan(
        exercises=(
            PlannedExercise(
                exercise_id="bench",
                name="Bench Press",
                is_main_lift=True,
                sets=tuple(PlannedSet(i, 5, 225.0, 2) for i in range(1, 5)),
                rest_seconds=180,
            ),
            PlannedExercise(
                exercise_id="fly",
                name="Cable Fly",
                is_main_lift=False,
                sets=tuple(PlannedSet(i, 12, 40.0, 1) for i in range(1, 5)),
                rest_seconds=75,
            ),
        ),
        notes="Volume accumulation and hypertrophy",
    )
