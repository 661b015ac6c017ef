"""Per-week RIR bands."""

from dataclasses import replace

from ironplan.judgment_day.rir import DELOAD_BAND, default_rir_bands, get_rir_target
from ironplan.types import MesocycleState, RirBand


def test_default_five_week_table():
    bands = default_rir_bands(5)
    assert bands == {
        1: RirBand(3, 4),
        2: RirBand(2, 3),
        3: RirBand(2, 3),
        4: RirBand(1, 2),
        5: RirBand(4, 6),
    }


def test_table_size_follows_duration():
    assert sorted(default_rir_bands(7)) == list(range(1, 8))
    assert default_rir_bands(7)[1] == RirBand(3, 4)
    assert default_rir_bands(7)[6] == RirBand(1, 2)
    assert default_rir_bands(2) == {1: RirBand(3, 4), 2: DELOAD_BAND}


def test_lookup_uses_configured_table(mesocycle):
    meso = replace(mesocycle, rir_band_config={1: RirBand(4, 5), 5: RirBand(5, 6)})
    assert get_rir_target(meso, 1) == RirBand(4, 5)
    assert get_rir_target(meso, 5) == RirBand(5, 6)


def test_missing_week_falls_back_to_default(mesocycle, caplog):
    meso = replace(mesocycle, rir_band_config={1: RirBand(4, 5)})
    assert get_rir_target(meso, 4) == RirBand(1, 2)
    assert "no RIR band for week 4" in caplog.text


def test_deload_state_always_uses_deload_band(mesocycle):
    meso = replace(mesocycle, state=MesocycleState.ACTIVE_DELOAD)
    assert get_rir_target(meso, 2) == DELOAD_BAND


def test_no_interpolation_between_weeks(mesocycle):
    bands = [get_rir_target(mesocycle, w) for w in range(1, 5)]
    assert all(isinstance(b.min, int) and isinstance(b.max, int) for b in bands)
