"""
JUDGMENT-DAY: Planning Engine

Internal Codename: JUDGMENT-DAY
"Judgment Day: The day the workout is decided."

This package contains the decision logic that turns trainee state into a
session prescription:
- Weekly volume ramps from MV/MEV/MAV/MRV landmarks
- Per-week RIR bands
- Mesocycle lifecycle transitions
- Readiness scoring and autoregulation
- Exercise selection and intent repair
- Stall detection
"""

from .volume import VolumeLandmarkRamp, weekly_volume_target
from .rir import get_rir_target
from .periodization import (
    BlockCharacteristics,
    characteristics_for_week,
    derive_block_context,
    generate_macro_cycle,
)
from .lifecycle import MesocycleLifecycle, get_current_meso_week
from .readiness import compute_fatigue_score, fatigue_rationale
from .autoregulation import Autoregulator, autoregulate_session
from .stalls import detect_stalls, suggest_intervention
from .analysis import analyze_selection
from .selection import SmartBuildInput, filter_pool, score_exercise_for_build, smart_build
from .intent import enforce_intent_alignment
from .planner import PlanningResult, SessionPlanner, format_plan_text

__all__ = [
    'VolumeLandmarkRamp',
    'weekly_volume_target',
    'get_rir_target',
    'BlockCharacteristics',
    'characteristics_for_week',
    'derive_block_context',
    'generate_macro_cycle',
    'MesocycleLifecycle',
    'get_current_meso_week',
    'compute_fatigue_score',
    'fatigue_rationale',
    'Autoregulator',
    'autoregulate_session',
    'detect_stalls',
    'suggest_intervention',
    'analyze_selection',
    'SmartBuildInput',
    'filter_pool',
    'score_exercise_for_build',
    'smart_build',
    'enforce_intent_alignment',
    'PlanningResult',
    'SessionPlanner',
    'format_plan_text',
]
