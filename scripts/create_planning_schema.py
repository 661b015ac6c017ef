#!/usr/bin/env python3
"""Create the ironplan planning tables in Postgres.

Usage:
    python scripts/create_planning_schema.py [--dsn postgresql://...]

DSN defaults to $IRONPLAN_POSTGRES_DSN. Safe to re-run (IF NOT EXISTS).
Enum columns store upper-case names (ACTIVE_ACCUMULATION, CORE_COMPOUND, ...).
"""
import argparse
import sys

import psycopg2

from ironplan.config import postgres_dsn

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS macro_cycles (
    id SERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    start_date DATE NOT NULL,
    duration_weeks INTEGER NOT NULL CHECK (duration_weeks > 0),
    training_age TEXT NOT NULL,
    primary_goal TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS mesocycles (
    id SERIAL PRIMARY KEY,
    macro_cycle_id INTEGER REFERENCES macro_cycles(id),
    meso_number INTEGER NOT NULL CHECK (meso_number >= 1),
    start_week INTEGER NOT NULL,
    duration_weeks INTEGER NOT NULL CHECK (duration_weeks >= 2),
    sessions_per_week INTEGER NOT NULL DEFAULT 3,
    state TEXT NOT NULL DEFAULT 'ACTIVE_ACCUMULATION',
    accumulation_sessions_completed INTEGER NOT NULL DEFAULT 0,
    deload_sessions_completed INTEGER NOT NULL DEFAULT 0,
    days_per_week INTEGER,
    split_type TEXT,
    focus TEXT,
    volume_target TEXT NOT NULL DEFAULT 'MODERATE',
    intensity_bias TEXT NOT NULL DEFAULT 'HYPERTROPHY',
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    volume_ramp_config JSONB,
    rir_band_config JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_mesocycles_macro_number
    ON mesocycles (macro_cycle_id, meso_number);

CREATE INDEX IF NOT EXISTS idx_mesocycles_active
    ON mesocycles (macro_cycle_id) WHERE is_active;

CREATE TABLE IF NOT EXISTS training_blocks (
    id SERIAL PRIMARY KEY,
    mesocycle_id INTEGER NOT NULL REFERENCES mesocycles(id) ON DELETE CASCADE,
    block_number INTEGER NOT NULL,
    block_type TEXT NOT NULL,
    start_week INTEGER NOT NULL,
    duration_weeks INTEGER NOT NULL CHECK (duration_weeks > 0),
    volume_target TEXT NOT NULL,
    intensity_bias TEXT NOT NULL,
    adaptation_type TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mesocycle_exercise_roles (
    mesocycle_id INTEGER NOT NULL REFERENCES mesocycles(id) ON DELETE CASCADE,
    exercise_id TEXT NOT NULL,
    session_intent TEXT NOT NULL,
    role TEXT NOT NULL,
    added_in_week INTEGER NOT NULL DEFAULT 1,
    PRIMARY KEY (mesocycle_id, exercise_id, session_intent)
);

CREATE TABLE IF NOT EXISTS readiness_signals (
    id SERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    timestamp TIMESTAMPTZ NOT NULL,
    subjective_readiness INTEGER NOT NULL CHECK (subjective_readiness BETWEEN 1 AND 5),
    subjective_motivation INTEGER NOT NULL CHECK (subjective_motivation BETWEEN 1 AND 5),
    subjective_stress INTEGER CHECK (subjective_stress BETWEEN 1 AND 5),
    soreness JSONB,
    performance_rpe_deviation REAL,
    performance_stalls INTEGER,
    performance_compliance REAL,
    whoop_recovery REAL,
    whoop_strain REAL,
    whoop_hrv REAL,
    whoop_sleep_quality REAL,
    whoop_sleep_hours REAL
);

CREATE INDEX IF NOT EXISTS idx_readiness_user_time
    ON readiness_signals (user_id, timestamp DESC);

CREATE TABLE IF NOT EXISTS exercises (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    primary_muscles TEXT[] NOT NULL DEFAULT '{}',
    secondary_muscles TEXT[] NOT NULL DEFAULT '{}',
    movement_patterns TEXT[] NOT NULL DEFAULT '{}',
    equipment TEXT[] NOT NULL DEFAULT '{}',
    split_tags TEXT[] NOT NULL DEFAULT '{}',
    is_compound BOOLEAN NOT NULL DEFAULT FALSE,
    is_main_lift_eligible BOOLEAN NOT NULL DEFAULT FALSE,
    time_per_set_sec INTEGER
);

CREATE TABLE IF NOT EXISTS user_exercise_preferences (
    user_id TEXT NOT NULL,
    exercise_id TEXT NOT NULL REFERENCES exercises(id),
    is_favorite BOOLEAN NOT NULL DEFAULT FALSE,
    is_avoided BOOLEAN NOT NULL DEFAULT FALSE,
    PRIMARY KEY (user_id, exercise_id)
);

CREATE TABLE IF NOT EXISTS exercise_exposures (
    user_id TEXT NOT NULL,
    exercise_id TEXT NOT NULL REFERENCES exercises(id),
    last_used_at TIMESTAMPTZ NOT NULL,
    times_used_l4w INTEGER NOT NULL DEFAULT 0,
    times_used_l8w INTEGER NOT NULL DEFAULT 0,
    times_used_l12w INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, exercise_id)
);
"""


def create_schema(dsn: str):
    conn = psycopg2.connect(dsn)
    cur = conn.cursor()
    try:
        cur.execute(SCHEMA_SQL)
        conn.commit()
        print("Planning schema created")
    except Exception as e:
        conn.rollback()
        print(f"Schema creation failed: {e}")
        sys.exit(1)
    finally:
        cur.close()
        conn.close()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Create ironplan planning tables")
    parser.add_argument("--dsn", default=None, help="Postgres DSN (default: $IRONPLAN_POSTGRES_DSN)")
    args = parser.parse_args()
    create_schema(args.dsn or postgres_dsn())
