"""
Engine Configuration

Tunable constants for every engine component. Loads from
the packaged data/ironplan.yaml (or $IRONPLAN_CONFIG) if available, else
uses defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'data' / 'ironplan.yaml'


def load_config_yaml(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from YAML file, return empty dict if not found."""
    load_dotenv()

    if config_path is None:
        env_path = os.getenv('IRONPLAN_CONFIG')
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    config_path = Path(config_path)
    if not config_path.exists():
        return {}

    try:
        with open(config_path) as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at top level")
    return loaded


def _section(cls, values: Optional[Dict[str, Any]]):
    """Build a config dataclass from a YAML section, ignoring unknown keys."""
    if not values:
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in values.items() if k in known})


@dataclass
class RampConfig:
    """Weekly volume ramp."""
    deload_fraction: float = 0.45  # Deload target = round(last accumulation week * fraction)
    default_duration_weeks: int = 5


@dataclass
class LifecycleConfig:
    """Mesocycle state-machine thresholds."""
    accumulation_session_threshold: int = 12
    deload_session_threshold: int = 3


@dataclass
class FatigueConfig:
    """Weights and thresholds for the composite fatigue score.

    The relative weights are tunable; only the [0, 1] bound is fixed.
    """

    # Component weights with wearable data present
    wearable_weight_with_wearable: float = 0.5
    subjective_weight_with_wearable: float = 0.3
    performance_weight_with_wearable: float = 0.2

    # Component weights without wearable data
    subjective_weight: float = 0.6
    performance_weight: float = 0.4

    # Subjective sub-weights
    readiness_weight: float = 0.5
    motivation_weight: float = 0.3
    soreness_weight: float = 0.2

    # Performance sub-weights
    rpe_weight: float = 0.5
    stall_weight: float = 0.3
    compliance_weight: float = 0.2
    stall_penalty_per_exercise: float = 0.1
    max_stall_penalty: float = 0.3
    rpe_deviation_span: float = 4.0  # +/- this many RPE maps to 0/1

    # Wearable sub-scoring
    hrv_baseline: float = 50.0              # ms
    strain_overreach_threshold: float = 18.0
    strain_penalty: float = 0.2


@dataclass
class AutoregulationConfig:
    """Bounded rescaling of a drafted session."""
    staleness_hours: float = 24.0
    deload_threshold: float = 0.3      # fatigue < this -> deload
    scale_down_threshold: float = 0.5  # fatigue < this -> scale down
    max_load_reduction: float = 0.10   # never cut load by more than this per session
    scale_down_factor: float = 0.9
    load_increment: float = 0.5        # lbs rounding step
    max_sets_to_drop: int = 2
    min_sets_preserved: int = 2
    deload_volume_factor: float = 0.5
    deload_rir: int = 4
    aggressiveness: str = 'moderate'   # conservative / moderate / aggressive
    allow_down_regulation: bool = True


@dataclass
class StallConfig:
    """Stall-intervention ladder, in weeks without a new best estimated 1RM."""
    min_sessions: int = 3
    sessions_per_week: int = 3
    weeks_until_microload: float = 2
    weeks_until_deload: float = 3
    weeks_until_variation: float = 5
    weeks_until_volume_reset: float = 8
    weeks_until_goal_reassess: float = 12
    max_reps_for_e1rm: int = 10


@dataclass
class SelectionConfig:
    """Exercise scoring weights and selection limits."""
    primary_hit_points: float = 6.0
    secondary_hit_points: float = 2.0
    uncovered_bonus: float = 0.5
    favorite_bonus: float = 3.0
    novel_pattern_bonus: float = 2.0
    min_aligned_ratio: float = 0.7
    default_exercise_count: int = 7
    default_set_target: int = 3
    min_sets_per_exercise: int = 2
    max_sets_per_exercise: int = 5
    improvement_threshold: float = 50.0
    improvement_iterations: int = 2


@dataclass
class EngineConfig:
    """Aggregate configuration for all engine components."""
    ramp: RampConfig = field(default_factory=RampConfig)
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    fatigue: FatigueConfig = field(default_factory=FatigueConfig)
    autoregulation: AutoregulationConfig = field(default_factory=AutoregulationConfig)
    stalls: StallConfig = field(default_factory=StallConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> 'EngineConfig':
        """Load config from YAML file."""
        yaml_config = load_config_yaml(config_path)

        return cls(
            ramp=_section(RampConfig, yaml_config.get('volume_ramp')),
            lifecycle=_section(LifecycleConfig, yaml_config.get('lifecycle')),
            fatigue=_section(FatigueConfig, yaml_config.get('fatigue')),
            autoregulation=_section(AutoregulationConfig, yaml_config.get('autoregulation')),
            stalls=_section(StallConfig, yaml_config.get('stalls')),
            selection=_section(SelectionConfig, yaml_config.get('selection')),
        )


def postgres_dsn() -> str:
    """DSN for the Postgres repository."""
    load_dotenv()
    return os.environ.get(
        "IRONPLAN_POSTGRES_DSN",
        "postgresql://localhost:5432/ironplan"
    )
