"""
RIR Band Scheduler

Internal Codename: JUDGMENT-DAY
Discrete per-week effort targets (reps in reserve). No interpolation
between weeks; the table is sized from the mesocycle's duration.
"""

import logging
from typing import Dict

from ..types import Mesocycle, MesocycleState, RirBand

logger = logging.getLogger(__name__)

DELOAD_BAND = RirBand(min=4, max=6)

# RIR minimum walks from 3 down to 1 across accumulation weeks
_FIRST_WEEK_RIR = 3
_LAST_WEEK_RIR = 1


def default_rir_bands(duration_weeks: int) -> Dict[int, RirBand]:
    """
    Default week -> band table for a mesocycle of the given length.

    For a 5-week cycle this yields 3-4, 2-3, 2-3, 1-2, then 4-6 for deload.
    """
    accumulation_weeks = max(1, duration_weeks - 1)
    drop = _FIRST_WEEK_RIR - _LAST_WEEK_RIR
    bands = {}
    for week in range(1, accumulation_weeks + 1):
        if accumulation_weeks == 1:
            low = _FIRST_WEEK_RIR
        else:
            # Half-up rounding of the linear drop
            low = _FIRST_WEEK_RIR - int(drop * (week - 1) / (accumulation_weeks - 1) + 0.5)
        bands[week] = RirBand(min=low, max=low + 1)
    bands[duration_weeks] = DELOAD_BAND
    return bands


def get_rir_target(meso: Mesocycle, week: int) -> RirBand:
    """
    Effort band for a week of a mesocycle.

    Uses the mesocycle's configured table, falling back to the default table
    for weeks it does not cover. Deload weeks and deload/completed states
    always use the deload band.

    Args:
        meso: Mesocycle carrying an optional rir_band_config
        week: 1-indexed week within the mesocycle

    Returns:
        RirBand with min/max reps in reserve
    """
    defaults = default_rir_bands(meso.duration_weeks)
    in_deload = (
        week >= meso.duration_weeks
        or meso.state in (MesocycleState.ACTIVE_DELOAD, MesocycleState.COMPLETED)
    )
    if in_deload:
        return meso.rir_band_config.get(meso.duration_weeks, defaults[meso.duration_weeks])

    week = max(1, week)
    band = meso.rir_band_config.get(week)
    if band is None:
        if meso.rir_band_config:
            logger.warning(
                f"Mesocycle {meso.id} has no RIR band for week {week}; using default"
            )
        band = defaults[week]
    return band
