"""Macro -> meso -> block hierarchy."""

from datetime import date, timedelta

import pytest

from ironplan.errors import ValidationError
from ironplan.judgment_day.periodization import (
    BlockCharacteristics,
    characteristics_for_week,
    derive_block_context,
    generate_macro_cycle,
    get_prescription_modifiers,
)
from ironplan.types import BlockType, IntensityBias, PrimaryGoal, TrainingAge

START = date(2026, 1, 5)


@pytest.fixture
def macro():
    return generate_macro_cycle("u", START, 12, TrainingAge.INTERMEDIATE, PrimaryGoal.STRENGTH)


class TestGenerateMacroCycle:

    def test_intermediate_uses_five_week_mesocycles(self, macro):
        assert [m.duration_weeks for m in macro.mesocycles] == [5, 5]
        assert [m.start_week for m in macro.mesocycles] == [0, 5]
        assert [m.is_active for m in macro.mesocycles] == [True, False]
        assert macro.end_date == START + timedelta(weeks=12)

    def test_block_layout(self, macro):
        blocks = macro.mesocycles[1].blocks
        assert [b.block_type for b in blocks] == [
            BlockType.ACCUMULATION, BlockType.INTENSIFICATION, BlockType.DELOAD
        ]
        assert [(b.start_week, b.end_week) for b in blocks] == [(5, 7), (7, 9), (9, 10)]
        assert blocks[0].intensity_bias == IntensityBias.STRENGTH

    @pytest.mark.parametrize("age,weeks", [
        (TrainingAge.BEGINNER, 4),
        (TrainingAge.INTERMEDIATE, 5),
        (TrainingAge.ADVANCED, 6),
    ])
    def test_template_length_by_age(self, age, weeks):
        macro = generate_macro_cycle("u", START, 24, age, PrimaryGoal.HYPERTROPHY)
        assert {m.duration_weeks for m in macro.mesocycles} == {weeks}
        assert len(macro.mesocycles) == 24 // weeks

    def test_focus_alternates(self, macro):
        assert [m.focus for m in macro.mesocycles] == ["Strength Foundation", "Power Development"]

    def test_rejects_empty_macro(self):
        with pytest.raises(ValidationError):
            generate_macro_cycle("u", START, 0, TrainingAge.BEGINNER, PrimaryGoal.STRENGTH)


class TestBlockContext:

    def test_first_day(self, macro):
        context = derive_block_context(macro, START)
        assert (context.week_in_macro, context.week_in_meso, context.week_in_block) == (1, 1, 1)
        assert context.block.block_type == BlockType.ACCUMULATION

    def test_second_mesocycle_intensification(self, macro):
        context = derive_block_context(macro, START + timedelta(weeks=7, days=3))
        assert context.mesocycle.meso_number == 2
        assert context.week_in_meso == 3
        assert context.block.block_type == BlockType.INTENSIFICATION
        assert context.week_in_block == 1

    @pytest.mark.parametrize("offset", [timedelta(days=-1), timedelta(weeks=10), timedelta(weeks=12)])
    def test_outside_planned_weeks(self, macro, offset):
        assert derive_block_context(macro, START + offset) is None


def test_modifiers_progress_through_block():
    first = get_prescription_modifiers(BlockType.ACCUMULATION, 1, 3)
    last = get_prescription_modifiers(BlockType.ACCUMULATION, 3, 3)
    assert first.volume_multiplier == pytest.approx(1.0)
    assert last.volume_multiplier == pytest.approx(1.2)
    assert get_prescription_modifiers(BlockType.DELOAD, 1, 1).volume_multiplier == 0.5


def test_characteristics_without_blocks(mesocycle):
    assert characteristics_for_week(mesocycle, 2) == BlockCharacteristics.get(BlockType.ACCUMULATION)
    assert characteristics_for_week(mesocycle, 5) == BlockCharacteristics.get(BlockType.DELOAD)


def test_characteristics_follow_blocks(macro):
    meso = macro.mesocycles[0]
    assert characteristics_for_week(meso, 3)['reps_per_set'] == (5, 8)
    assert characteristics_for_week(meso, 5)['reps_per_set'] == (6, 10)
