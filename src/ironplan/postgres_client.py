"""Postgres client for ironplan planning state.

Implements the mesocycle, readiness and exercise repository protocols over
psycopg2. Tables are created by scripts/create_planning_schema.py:
- macro_cycles → mesocycles → training_blocks
- mesocycle_exercise_roles
- readiness_signals
- exercises, user_exercise_preferences, exercise_exposures

Enum columns hold upper-case names; mappers.py converts at this boundary.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

import psycopg2
import psycopg2.extras
from psycopg2.extras import RealDictCursor, execute_values

from . import mappers
from .config import postgres_dsn
from .errors import NotFoundError
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

_MESOCYCLE_COLUMNS = (
    'macro_cycle_id', 'meso_number', 'start_week', 'duration_weeks',
    'sessions_per_week', 'state', 'accumulation_sessions_completed',
    'deload_sessions_completed', 'days_per_week', 'split_type', 'focus',
    'volume_target', 'intensity_bias', 'is_active', 'volume_ramp_config',
    'rir_band_config',
)
_JSON_COLUMNS = {'volume_ramp_config', 'rir_band_config', 'soreness'}


def _params(row: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap JSONB columns for psycopg2."""
    return {
        key: psycopg2.extras.Json(value) if key in _JSON_COLUMNS and value is not None else value
        for key, value in row.items()
    }


class PostgresPlanningRepository:
    """Postgres-backed planning repository."""

    def __init__(self, dsn: Optional[str] = None):
        """Initialize Postgres connection settings."""
        self.dsn = dsn or postgres_dsn()
        self._conn = None

    @property
    def conn(self):
        """Lazy connection."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.dsn)
        return self._conn

    def close(self):
        """Close connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def _fetch_all(self, query: str, params: Any = None) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            cursor.execute(query, params)
            rows = cursor.fetchall()
            self.conn.commit()
            return rows
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Query failed: {e}")
            raise
        finally:
            cursor.close()

    def _fetch_one(self, query: str, params: Any = None) -> Optional[Dict[str, Any]]:
        rows = self._fetch_all(query, params)
        return rows[0] if rows else None

    # =========================================================================
    # MESOCYCLES
    # =========================================================================

    def _load_mesocycle(self, row: Dict[str, Any]) -> Mesocycle:
        blocks = self.get_blocks(str(row['id']))
        return mappers.mesocycle_from_row(row, blocks)

    def get_mesocycle(self, mesocycle_id: str) -> Mesocycle:
        row = self._fetch_one("SELECT * FROM mesocycles WHERE id = %s", (mesocycle_id,))
        if row is None:
            raise NotFoundError(f"Mesocycle not found: {mesocycle_id}")
        return self._load_mesocycle(row)

    def get_active_mesocycle(self, user_id: str) -> Optional[Mesocycle]:
        row = self._fetch_one("""
            SELECT m.*
            FROM mesocycles m
            JOIN macro_cycles mc ON mc.id = m.macro_cycle_id
            WHERE mc.user_id = %s AND m.is_active
            ORDER BY m.meso_number DESC
            LIMIT 1
        """, (user_id,))
        return self._load_mesocycle(row) if row else None

    def update_mesocycle(self, mesocycle: Mesocycle) -> Mesocycle:
        """Write state, counters and active flag."""
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        row = mappers.mesocycle_to_row(mesocycle)
        try:
            cursor.execute("""
                UPDATE mesocycles
                SET state = %(state)s,
                    accumulation_sessions_completed = %(accumulation_sessions_completed)s,
                    deload_sessions_completed = %(deload_sessions_completed)s,
                    is_active = %(is_active)s,
                    updated_at = NOW()
                WHERE id = %(id)s
            """, _params(row))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Mesocycle not found: {mesocycle.id}")
            self.conn.commit()
            return mesocycle
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Error updating mesocycle {mesocycle.id}: {e}")
            raise
        finally:
            cursor.close()

    def increment_session_counter(self, mesocycle_id: str) -> Mesocycle:
        """Count one completed session against the mesocycle's current phase."""
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            cursor.execute("""
                UPDATE mesocycles
                SET accumulation_sessions_completed = accumulation_sessions_completed
                        + CASE WHEN state = %(accumulation)s THEN 1 ELSE 0 END,
                    deload_sessions_completed = deload_sessions_completed
                        + CASE WHEN state = %(deload)s THEN 1 ELSE 0 END,
                    updated_at = NOW()
                WHERE id = %(id)s
                RETURNING id
            """, {
                'id': mesocycle_id,
                'accumulation': mappers.enum_to_storage(MesocycleState.ACTIVE_ACCUMULATION),
                'deload': mappers.enum_to_storage(MesocycleState.ACTIVE_DELOAD),
            })
            if cursor.fetchone() is None:
                raise NotFoundError(f"Mesocycle not found: {mesocycle_id}")
            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Error incrementing session counter for {mesocycle_id}: {e}")
            raise
        finally:
            cursor.close()
        return self.get_mesocycle(mesocycle_id)

    def get_blocks(self, mesocycle_id: str) -> Tuple[TrainingBlock, ...]:
        rows = self._fetch_all("""
            SELECT * FROM training_blocks
            WHERE mesocycle_id = %s
            ORDER BY start_week
        """, (mesocycle_id,))
        return tuple(mappers.block_from_row(r) for r in rows)

    def get_exercise_roles(self, mesocycle_id: str) -> List[MesocycleExerciseRole]:
        rows = self._fetch_all("""
            SELECT * FROM mesocycle_exercise_roles
            WHERE mesocycle_id = %s
            ORDER BY added_in_week, exercise_id
        """, (mesocycle_id,))
        return [mappers.role_from_row(r) for r in rows]

    def _insert_mesocycle(self, cursor, meso: Mesocycle) -> str:
        row = mappers.mesocycle_to_row(meso)
        columns = ", ".join(_MESOCYCLE_COLUMNS)
        values = ", ".join(f"%({c})s" for c in _MESOCYCLE_COLUMNS)
        cursor.execute(
            f"INSERT INTO mesocycles ({columns}) VALUES ({values}) RETURNING id",
            _params(row)
        )
        meso_id = str(cursor.fetchone()['id'])

        if meso.blocks:
            execute_values(cursor, """
                INSERT INTO training_blocks (
                    mesocycle_id, block_number, block_type, start_week,
                    duration_weeks, volume_target, intensity_bias, adaptation_type
                ) VALUES %s
            """, [
                (
                    meso_id, r['block_number'], r['block_type'], r['start_week'],
                    r['duration_weeks'], r['volume_target'], r['intensity_bias'],
                    r['adaptation_type'],
                )
                for r in (mappers.block_to_row(b) for b in meso.blocks)
            ])
        return meso_id

    def commit_rollover(self, rollover: MesocycleRollover) -> Mesocycle:
        """
        Complete, deactivate and create-next in a single transaction.

        Returns:
            The successor as stored, newly created or activated from the plan
        """
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        completed = mappers.mesocycle_to_row(rollover.completed)
        try:
            cursor.execute("""
                UPDATE mesocycles
                SET state = %(state)s, is_active = %(is_active)s, updated_at = NOW()
                WHERE id = %(id)s
            """, _params(completed))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Mesocycle not found: {rollover.completed.id}")

            next_meso = rollover.next_mesocycle
            if next_meso.id is None:
                next_id = self._insert_mesocycle(cursor, next_meso)
            else:
                # Planned successor from macro generation: activate it in place
                cursor.execute("""
                    UPDATE mesocycles
                    SET state = %(state)s,
                        accumulation_sessions_completed = 0,
                        deload_sessions_completed = 0,
                        is_active = TRUE,
                        updated_at = NOW()
                    WHERE id = %(id)s
                """, _params(mappers.mesocycle_to_row(next_meso)))
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Mesocycle not found: {next_meso.id}")
                next_id = next_meso.id

            if rollover.carried_roles:
                execute_values(cursor, """
                    INSERT INTO mesocycle_exercise_roles (
                        mesocycle_id, exercise_id, session_intent, role, added_in_week
                    ) VALUES %s
                    ON CONFLICT (mesocycle_id, exercise_id, session_intent) DO NOTHING
                """, [
                    (next_id, r['exercise_id'], r['session_intent'], r['role'], r['added_in_week'])
                    for r in (mappers.role_to_row(role) for role in rollover.carried_roles)
                ])

            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Error rolling over mesocycle {rollover.completed.id}: {e}")
            raise
        finally:
            cursor.close()

        logger.info(f"Rolled mesocycle {rollover.completed.id} over into {next_id}")
        return self.get_mesocycle(next_id)

    # =========================================================================
    # MACRO CYCLES
    # =========================================================================

    def save_macro_cycle(self, macro: MacroCycle) -> MacroCycle:
        """Insert a macro cycle with its mesocycles and blocks."""
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        row = mappers.macro_cycle_to_row(macro)
        try:
            cursor.execute("""
                INSERT INTO macro_cycles (
                    user_id, start_date, duration_weeks, training_age, primary_goal
                ) VALUES (
                    %(user_id)s, %(start_date)s, %(duration_weeks)s,
                    %(training_age)s, %(primary_goal)s
                )
                RETURNING id
            """, _params(row))
            macro_id = str(cursor.fetchone()['id'])

            for meso in macro.mesocycles:
                self._insert_mesocycle(cursor, replace(meso, macro_cycle_id=macro_id))

            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Error saving macro cycle for {macro.user_id}: {e}")
            raise
        finally:
            cursor.close()

        return self.get_macro_cycle(macro_id)

    def get_macro_cycle(self, macro_cycle_id: str) -> MacroCycle:
        row = self._fetch_one("SELECT * FROM macro_cycles WHERE id = %s", (macro_cycle_id,))
        if row is None:
            raise NotFoundError(f"Macro cycle not found: {macro_cycle_id}")
        meso_rows = self._fetch_all("""
            SELECT * FROM mesocycles
            WHERE macro_cycle_id = %s
            ORDER BY meso_number
        """, (macro_cycle_id,))
        return mappers.macro_cycle_from_row(row, [self._load_mesocycle(r) for r in meso_rows])

    # =========================================================================
    # READINESS
    # =========================================================================

    def latest_readiness_signal(self, user_id: str) -> Optional[ReadinessSignal]:
        row = self._fetch_one("""
            SELECT * FROM readiness_signals
            WHERE user_id = %s
            ORDER BY timestamp DESC
            LIMIT 1
        """, (user_id,))
        return mappers.readiness_signal_from_row(row) if row else None

    def save_readiness_signal(self, signal: ReadinessSignal) -> None:
        row = mappers.readiness_signal_to_row(signal)
        columns = list(row.keys())
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO readiness_signals ({', '.join(columns)}) "
                f"VALUES ({', '.join(f'%({c})s' for c in columns)})",
                _params(row)
            )
            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Error saving readiness signal for {signal.user_id}: {e}")
            raise
        finally:
            cursor.close()

    # =========================================================================
    # EXERCISES
    # =========================================================================

    def get_exercise_pool(self, user_id: str) -> List[Exercise]:
        """Exercises with the user's favorite/avoid overlay applied."""
        rows = self._fetch_all("""
            SELECT e.*,
                   COALESCE(p.is_favorite, FALSE) AS is_favorite,
                   COALESCE(p.is_avoided, FALSE) AS is_avoided
            FROM exercises e
            LEFT JOIN user_exercise_preferences p
                ON p.exercise_id = e.id AND p.user_id = %s
            ORDER BY e.name
        """, (user_id,))
        return [mappers.exercise_from_row(r) for r in rows]

    def get_exposures(self, user_id: str) -> Dict[str, ExerciseExposure]:
        rows = self._fetch_all("""
            SELECT exercise_id, last_used_at, times_used_l4w, times_used_l8w, times_used_l12w
            FROM exercise_exposures
            WHERE user_id = %s
        """, (user_id,))
        exposures = (mappers.exposure_from_row(r) for r in rows)
        return {e.exercise_id: e for e in exposures}
