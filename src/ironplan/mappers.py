"""
Storage <-> Domain Mapping

Storage keeps enums upper-cased ("ACTIVE_DELOAD", "CORE_COMPOUND"); the
engine uses lower-case Enum values. All conversion happens here, at the
collaborator boundary, so engine code never compares raw strings.

Rows are plain dicts keyed by column name (psycopg2 RealDictCursor rows and
the CLI state file share this shape).
"""

import json
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Optional, Type, TypeVar

from .errors import ValidationError
from .types import (
    AdaptationType,
    BlockType,
    Exercise,
    ExerciseExposure,
    ExerciseRole,
    IntensityBias,
    MacroCycle,
    Mesocycle,
    MesocycleExerciseRole,
    MesocycleState,
    PerformanceSignals,
    PrimaryGoal,
    RampSchedule,
    ReadinessSignal,
    RirBand,
    SessionIntent,
    SubjectiveReadiness,
    TrainingAge,
    TrainingBlock,
    VolumeTier,
    WearableSnapshot,
)

logger = logging.getLogger(__name__)

E = TypeVar('E')


def _storage_table(enum_cls) -> Dict[str, Any]:
    return {member.name: member for member in enum_cls}


# Explicit mapping tables: stored value -> domain enum
MESOCYCLE_STATE_FROM_STORAGE = _storage_table(MesocycleState)
BLOCK_TYPE_FROM_STORAGE = _storage_table(BlockType)
VOLUME_TIER_FROM_STORAGE = _storage_table(VolumeTier)
INTENSITY_BIAS_FROM_STORAGE = _storage_table(IntensityBias)
ADAPTATION_TYPE_FROM_STORAGE = _storage_table(AdaptationType)
TRAINING_AGE_FROM_STORAGE = _storage_table(TrainingAge)
PRIMARY_GOAL_FROM_STORAGE = _storage_table(PrimaryGoal)
EXERCISE_ROLE_FROM_STORAGE = _storage_table(ExerciseRole)
SESSION_INTENT_FROM_STORAGE = _storage_table(SessionIntent)

_TABLES = {
    MesocycleState: MESOCYCLE_STATE_FROM_STORAGE,
    BlockType: BLOCK_TYPE_FROM_STORAGE,
    VolumeTier: VOLUME_TIER_FROM_STORAGE,
    IntensityBias: INTENSITY_BIAS_FROM_STORAGE,
    AdaptationType: ADAPTATION_TYPE_FROM_STORAGE,
    TrainingAge: TRAINING_AGE_FROM_STORAGE,
    PrimaryGoal: PRIMARY_GOAL_FROM_STORAGE,
    ExerciseRole: EXERCISE_ROLE_FROM_STORAGE,
    SessionIntent: SESSION_INTENT_FROM_STORAGE,
}


def enum_from_storage(enum_cls: Type[E], value: Any) -> E:
    """Map a stored enum string ("ACTIVE_DELOAD") to its domain member."""
    if isinstance(value, enum_cls):
        return value
    table = _TABLES[enum_cls]
    member = table.get(str(value))
    if member is None:
        raise ValidationError(f"Unknown {enum_cls.__name__} value in storage: {value!r}")
    return member


def enum_to_storage(member) -> str:
    return member.name


def _json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


# =============================================================================
# Config payloads
# =============================================================================

_WEEK_KEY = re.compile(r'^week(\d+)(deload)?$', re.IGNORECASE)


def parse_rir_band_config(raw: Any, duration_weeks: int) -> Dict[int, RirBand]:
    """
    Parse a stored RIR band table into week -> RirBand.

    Accepts {"weekBands": {...}} or a bare mapping. Keys may be ints,
    "week1".."weekN", "week5Deload" or "deload" (mapped to the final week).
    Malformed entries are skipped with a warning.
    """
    raw = _json(raw)
    if not raw or not isinstance(raw, dict):
        return {}
    bands_raw = raw.get('weekBands', raw)
    if not isinstance(bands_raw, dict):
        return {}

    bands: Dict[int, RirBand] = {}
    for key, value in bands_raw.items():
        week = _parse_week_key(key, duration_weeks)
        if week is None or not isinstance(value, dict):
            logger.warning(f"Skipping unrecognized RIR band entry {key!r}")
            continue
        try:
            bands[week] = RirBand(min=int(value['min']), max=int(value['max']))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed RIR band {key!r}: {e}")
    return bands


def _parse_week_key(key: Any, duration_weeks: int) -> Optional[int]:
    if isinstance(key, int):
        return key
    text = str(key).strip()
    if text.isdigit():
        return int(text)
    if text.lower() == 'deload':
        return duration_weeks
    match = _WEEK_KEY.match(text)
    if match is None:
        return None
    if match.group(2):
        return duration_weeks
    return int(match.group(1))


def rir_band_config_to_storage(bands: Dict[int, RirBand]) -> Dict[str, Any]:
    return {'weekBands': {f"week{w}": {'min': b.min, 'max': b.max} for w, b in sorted(bands.items())}}


def parse_volume_ramp_config(raw: Any) -> Dict[str, RampSchedule]:
    """Parse {muscle: {"start_sets": n, "peak_sets": m}} into ramp schedules."""
    raw = _json(raw)
    if not raw or not isinstance(raw, dict):
        return {}
    schedules = {}
    for muscle, value in raw.items():
        try:
            schedules[muscle] = RampSchedule(
                start_sets=int(value['start_sets']),
                peak_sets=int(value['peak_sets'])
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed volume ramp for {muscle}: {e}")
    return schedules


def volume_ramp_config_to_storage(schedules: Dict[str, RampSchedule]) -> Dict[str, Any]:
    return {
        muscle: {'start_sets': s.start_sets, 'peak_sets': s.peak_sets}
        for muscle, s in schedules.items()
    }


# =============================================================================
# Rows -> domain
# =============================================================================

def _str_id(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def block_from_row(row: Dict[str, Any]) -> TrainingBlock:
    return TrainingBlock(
        id=_str_id(row.get('id')),
        mesocycle_id=_str_id(row.get('mesocycle_id')),
        block_number=int(row['block_number']),
        block_type=enum_from_storage(BlockType, row['block_type']),
        start_week=int(row['start_week']),
        duration_weeks=int(row['duration_weeks']),
        volume_target=enum_from_storage(VolumeTier, row['volume_target']),
        intensity_bias=enum_from_storage(IntensityBias, row['intensity_bias']),
        adaptation_type=enum_from_storage(AdaptationType, row['adaptation_type']),
    )


def mesocycle_from_row(row: Dict[str, Any], blocks=()) -> Mesocycle:
    duration = int(row['duration_weeks'])
    return Mesocycle(
        id=_str_id(row.get('id')),
        macro_cycle_id=_str_id(row.get('macro_cycle_id')),
        meso_number=int(row['meso_number']),
        start_week=int(row['start_week']),
        duration_weeks=duration,
        sessions_per_week=int(row.get('sessions_per_week') or 3),
        state=enum_from_storage(MesocycleState, row.get('state') or 'ACTIVE_ACCUMULATION'),
        accumulation_sessions_completed=int(row.get('accumulation_sessions_completed') or 0),
        deload_sessions_completed=int(row.get('deload_sessions_completed') or 0),
        days_per_week=row.get('days_per_week'),
        split_type=row.get('split_type'),
        focus=row.get('focus') or "",
        volume_target=enum_from_storage(VolumeTier, row.get('volume_target') or 'MODERATE'),
        intensity_bias=enum_from_storage(IntensityBias, row.get('intensity_bias') or 'HYPERTROPHY'),
        is_active=bool(row.get('is_active', True)),
        volume_ramp_config=parse_volume_ramp_config(row.get('volume_ramp_config')),
        rir_band_config=parse_rir_band_config(row.get('rir_band_config'), duration),
        blocks=tuple(sorted(blocks, key=lambda b: b.start_week)),
    )


def macro_cycle_from_row(row: Dict[str, Any], mesocycles=()) -> MacroCycle:
    return MacroCycle(
        id=_str_id(row.get('id')),
        user_id=str(row['user_id']),
        start_date=_as_date(row['start_date']),
        duration_weeks=int(row['duration_weeks']),
        training_age=enum_from_storage(TrainingAge, row['training_age']),
        primary_goal=enum_from_storage(PrimaryGoal, row['primary_goal']),
        mesocycles=tuple(sorted(mesocycles, key=lambda m: m.meso_number)),
    )


def role_from_row(row: Dict[str, Any]) -> MesocycleExerciseRole:
    return MesocycleExerciseRole(
        mesocycle_id=_str_id(row.get('mesocycle_id')),
        exercise_id=str(row['exercise_id']),
        session_intent=enum_from_storage(SessionIntent, row['session_intent']),
        role=enum_from_storage(ExerciseRole, row['role']),
        added_in_week=int(row.get('added_in_week') or 1),
    )


def exercise_from_row(row: Dict[str, Any]) -> Exercise:
    def _tuple(key):
        return tuple(row.get(key) or ())

    return Exercise(
        id=str(row['id']),
        name=row['name'],
        primary_muscles=_tuple('primary_muscles'),
        secondary_muscles=_tuple('secondary_muscles'),
        movement_patterns=tuple(p.lower() for p in _tuple('movement_patterns')),
        equipment=tuple(e.lower() for e in _tuple('equipment')),
        split_tags=tuple(t.lower() for t in _tuple('split_tags')),
        is_compound=bool(row.get('is_compound', False)),
        is_main_lift_eligible=bool(row.get('is_main_lift_eligible', False)),
        is_favorite=bool(row.get('is_favorite', False)),
        is_avoided=bool(row.get('is_avoided', False)),
        time_per_set_sec=row.get('time_per_set_sec'),
    )


def exposure_from_row(row: Dict[str, Any]) -> ExerciseExposure:
    return ExerciseExposure(
        exercise_id=str(row['exercise_id']),
        last_used_at=_as_datetime(row['last_used_at']),
        times_used_l4w=int(row.get('times_used_l4w') or 0),
        times_used_l8w=int(row.get('times_used_l8w') or 0),
        times_used_l12w=int(row.get('times_used_l12w') or 0),
    )


def readiness_signal_from_row(row: Dict[str, Any]) -> ReadinessSignal:
    """Build a signal from a flat check-in row; wearable columns are optional."""
    soreness = _json(row.get('soreness')) or {}
    wearable = None
    if row.get('whoop_recovery') is not None:
        wearable = WearableSnapshot(
            recovery=float(row['whoop_recovery']),
            strain=float(row.get('whoop_strain') or 0.0),
            hrv=float(row.get('whoop_hrv') or 0.0),
            sleep_quality=float(row.get('whoop_sleep_quality') or 0.0),
            sleep_hours=float(row.get('whoop_sleep_hours') or 0.0),
        )
    return ReadinessSignal(
        user_id=str(row['user_id']),
        timestamp=_as_datetime(row['timestamp']),
        subjective=SubjectiveReadiness(
            readiness=int(row['subjective_readiness']),
            motivation=int(row['subjective_motivation']),
            soreness={m: int(level) for m, level in soreness.items()},
            stress=row.get('subjective_stress'),
        ),
        performance=PerformanceSignals(
            rpe_deviation=float(row.get('performance_rpe_deviation') or 0.0),
            stall_count=int(row.get('performance_stalls') or 0),
            volume_compliance_rate=float(
                1.0 if row.get('performance_compliance') is None else row['performance_compliance']
            ),
        ),
        wearable=wearable,
    )


# =============================================================================
# Domain -> rows
# =============================================================================

def mesocycle_to_row(meso: Mesocycle) -> Dict[str, Any]:
    return {
        'id': meso.id,
        'macro_cycle_id': meso.macro_cycle_id,
        'meso_number': meso.meso_number,
        'start_week': meso.start_week,
        'duration_weeks': meso.duration_weeks,
        'sessions_per_week': meso.sessions_per_week,
        'state': enum_to_storage(meso.state),
        'accumulation_sessions_completed': meso.accumulation_sessions_completed,
        'deload_sessions_completed': meso.deload_sessions_completed,
        'days_per_week': meso.days_per_week,
        'split_type': meso.split_type,
        'focus': meso.focus,
        'volume_target': enum_to_storage(meso.volume_target),
        'intensity_bias': enum_to_storage(meso.intensity_bias),
        'is_active': meso.is_active,
        'volume_ramp_config': volume_ramp_config_to_storage(meso.volume_ramp_config) or None,
        'rir_band_config': rir_band_config_to_storage(meso.rir_band_config) if meso.rir_band_config else None,
    }


def block_to_row(block: TrainingBlock) -> Dict[str, Any]:
    return {
        'id': block.id,
        'mesocycle_id': block.mesocycle_id,
        'block_number': block.block_number,
        'block_type': enum_to_storage(block.block_type),
        'start_week': block.start_week,
        'duration_weeks': block.duration_weeks,
        'volume_target': enum_to_storage(block.volume_target),
        'intensity_bias': enum_to_storage(block.intensity_bias),
        'adaptation_type': enum_to_storage(block.adaptation_type),
    }


def macro_cycle_to_row(macro: MacroCycle) -> Dict[str, Any]:
    return {
        'id': macro.id,
        'user_id': macro.user_id,
        'start_date': macro.start_date.isoformat(),
        'duration_weeks': macro.duration_weeks,
        'training_age': enum_to_storage(macro.training_age),
        'primary_goal': enum_to_storage(macro.primary_goal),
    }


def role_to_row(role: MesocycleExerciseRole) -> Dict[str, Any]:
    return {
        'mesocycle_id': role.mesocycle_id,
        'exercise_id': role.exercise_id,
        'session_intent': enum_to_storage(role.session_intent),
        'role': enum_to_storage(role.role),
        'added_in_week': role.added_in_week,
    }


def readiness_signal_to_row(signal: ReadinessSignal) -> Dict[str, Any]:
    row = {
        'user_id': signal.user_id,
        'timestamp': signal.timestamp.isoformat(),
        'subjective_readiness': signal.subjective.readiness,
        'subjective_motivation': signal.subjective.motivation,
        'subjective_stress': signal.subjective.stress,
        'soreness': dict(signal.subjective.soreness),
        'performance_rpe_deviation': signal.performance.rpe_deviation,
        'performance_stalls': signal.performance.stall_count,
        'performance_compliance': signal.performance.volume_compliance_rate,
    }
    if signal.wearable is not None:
        row.update({
            'whoop_recovery': signal.wearable.recovery,
            'whoop_strain': signal.wearable.strain,
            'whoop_hrv': signal.wearable.hrv,
            'whoop_sleep_quality': signal.wearable.sleep_quality,
            'whoop_sleep_hours': signal.wearable.sleep_hours,
        })
    return row
