"""
Periodization Logic Engine

Internal Codename: JUDGMENT-DAY
Builds the macro -> meso -> block hierarchy and resolves where a date sits
inside it. Block characteristics drive rep ranges and rest periods.
"""

from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional, Tuple

from ..types import (
    AdaptationType,
    BlockContext,
    BlockType,
    IntensityBias,
    MacroCycle,
    Mesocycle,
    PrescriptionModifiers,
    PrimaryGoal,
    TrainingAge,
    TrainingBlock,
    VolumeTier,
)
from ..errors import ValidationError


class BlockCharacteristics:
    """Training characteristics for each block type."""

    BLOCKS = {
        BlockType.ACCUMULATION: {
            "intensity_range": (0.65, 0.75),  # % of max
            "reps_per_set": (8, 12),
            "rest_seconds": 90,
            "focus": "Volume accumulation and hypertrophy"
        },
        BlockType.INTENSIFICATION: {
            "intensity_range": (0.75, 0.85),
            "reps_per_set": (5, 8),
            "rest_seconds": 120,
            "focus": "Strength building and neural adaptation"
        },
        BlockType.REALIZATION: {
            "intensity_range": (0.85, 0.95),
            "reps_per_set": (3, 5),
            "rest_seconds": 180,
            "focus": "Peak performance and strength expression"
        },
        BlockType.DELOAD: {
            "intensity_range": (0.50, 0.65),
            "reps_per_set": (6, 10),
            "rest_seconds": 90,
            "focus": "Recovery and technique refinement"
        }
    }

    @classmethod
    def get(cls, block_type: BlockType) -> dict:
        """Get characteristics for a block type."""
        return cls.BLOCKS[block_type]


# (block_type, weeks, volume, bias, adaptation); bias None = follows goal
_BlockTemplate = Tuple[BlockType, int, VolumeTier, Optional[IntensityBias], AdaptationType]

_BEGINNER_TEMPLATE: List[_BlockTemplate] = [
    (BlockType.ACCUMULATION, 3, VolumeTier.MODERATE, IntensityBias.HYPERTROPHY,
     AdaptationType.MYOFIBRILLAR_HYPERTROPHY),
    (BlockType.DELOAD, 1, VolumeTier.LOW, IntensityBias.HYPERTROPHY, AdaptationType.RECOVERY),
]


def get_meso_template(training_age: TrainingAge, goal: PrimaryGoal) -> List[_BlockTemplate]:
    """
    Block templates by training age.

    - Beginners: accumulation + deload (4 weeks)
    - Intermediate: accumulation -> intensification -> deload (5 weeks)
    - Advanced: accumulation -> intensification -> realization -> deload (6 weeks)
    """
    strength = goal == PrimaryGoal.STRENGTH
    goal_bias = IntensityBias.STRENGTH if strength else IntensityBias.HYPERTROPHY

    if training_age == TrainingAge.BEGINNER:
        return list(_BEGINNER_TEMPLATE)

    if training_age == TrainingAge.INTERMEDIATE:
        return [
            (BlockType.ACCUMULATION, 2, VolumeTier.HIGH, goal_bias,
             AdaptationType.MYOFIBRILLAR_HYPERTROPHY),
            (BlockType.INTENSIFICATION, 2, VolumeTier.MODERATE, goal_bias,
             AdaptationType.NEURAL_ADAPTATION if strength else AdaptationType.MYOFIBRILLAR_HYPERTROPHY),
            (BlockType.DELOAD, 1, VolumeTier.LOW, IntensityBias.HYPERTROPHY, AdaptationType.RECOVERY),
        ]

    return [
        (BlockType.ACCUMULATION, 2, VolumeTier.HIGH, IntensityBias.HYPERTROPHY,
         AdaptationType.SARCOPLASMIC_HYPERTROPHY),
        (BlockType.INTENSIFICATION, 2, VolumeTier.MODERATE, goal_bias,
         AdaptationType.MYOFIBRILLAR_HYPERTROPHY),
        (BlockType.REALIZATION, 1, VolumeTier.LOW, IntensityBias.STRENGTH,
         AdaptationType.NEURAL_ADAPTATION),
        (BlockType.DELOAD, 1, VolumeTier.LOW, IntensityBias.HYPERTROPHY, AdaptationType.RECOVERY),
    ]


def get_meso_focus(meso_number: int, goal: PrimaryGoal) -> str:
    """Descriptive focus label; alternates between mesocycles for variety."""
    if goal == PrimaryGoal.STRENGTH:
        return "Power Development" if meso_number % 2 == 0 else "Strength Foundation"
    if goal == PrimaryGoal.HYPERTROPHY:
        return "Upper Body Focus" if meso_number % 2 == 0 else "Lower Body Focus"
    if goal == PrimaryGoal.FAT_LOSS:
        return "Metabolic Conditioning"
    return "General Conditioning"


def get_prescription_modifiers(
    block_type: BlockType,
    week_in_block: int,
    duration_weeks: int
) -> PrescriptionModifiers:
    """
    Volume, intensity, RIR and rest modifiers for a week inside a block.

    Args:
        block_type: Type of block
        week_in_block: Current week (1-indexed)
        duration_weeks: Total weeks in block
    """
    progress = (week_in_block - 1) / max(1, duration_weeks - 1)

    if block_type == BlockType.ACCUMULATION:
        return PrescriptionModifiers(
            volume_multiplier=1.0 + progress * 0.2,
            intensity_multiplier=0.7 + progress * 0.1,
            rir_adjustment=2,
            rest_multiplier=0.9,
        )
    if block_type == BlockType.INTENSIFICATION:
        return PrescriptionModifiers(
            volume_multiplier=1.0 - progress * 0.2,
            intensity_multiplier=0.8 + progress * 0.15,
            rir_adjustment=1,
            rest_multiplier=1.0,
        )
    if block_type == BlockType.REALIZATION:
        return PrescriptionModifiers(
            volume_multiplier=0.6 + progress * 0.1,
            intensity_multiplier=0.95 + progress * 0.05,
            rir_adjustment=0,
            rest_multiplier=1.2,
        )
    return PrescriptionModifiers(
        volume_multiplier=0.5,
        intensity_multiplier=0.7,
        rir_adjustment=3,
        rest_multiplier=0.8,
    )


def build_blocks(
    templates: List[_BlockTemplate],
    meso_start_week: int,
    mesocycle_id: Optional[str] = None
) -> Tuple[TrainingBlock, ...]:
    """Lay templates end to end starting at the mesocycle's first week."""
    blocks = []
    week_offset = meso_start_week
    for number, (block_type, weeks, volume, bias, adaptation) in enumerate(templates, start=1):
        blocks.append(TrainingBlock(
            id=None,
            mesocycle_id=mesocycle_id,
            block_number=number,
            block_type=block_type,
            start_week=week_offset,
            duration_weeks=weeks,
            volume_target=volume,
            intensity_bias=bias,
            adaptation_type=adaptation,
        ))
        week_offset += weeks
    return tuple(blocks)


def generate_macro_cycle(
    user_id: str,
    start_date: date,
    duration_weeks: int,
    training_age: TrainingAge,
    primary_goal: PrimaryGoal,
    sessions_per_week: int = 3,
    split_type: Optional[str] = None
) -> MacroCycle:
    """
    Build a macro cycle filled with whole mesocycles.

    Identifiers are left unset; storage assigns them when the macro is saved.
    Only the first mesocycle is active.

    Args:
        user_id: Trainee the macro belongs to
        start_date: First day of week 1
        duration_weeks: Macro length; trailing weeks that cannot hold a whole
            mesocycle are left unplanned
        training_age: Selects the block template
        primary_goal: Shapes intensity bias and focus labels
        sessions_per_week: Planned sessions per week
        split_type: Optional split label carried on each mesocycle

    Returns:
        MacroCycle with nested mesocycles and blocks
    """
    if duration_weeks < 1:
        raise ValidationError(f"duration_weeks must be >= 1, got {duration_weeks}")

    templates = get_meso_template(training_age, primary_goal)
    meso_weeks = sum(t[1] for t in templates)
    meso_count = duration_weeks // meso_weeks

    mesocycles = []
    week_offset = 0
    for index in range(meso_count):
        blocks = build_blocks(templates, week_offset)
        mesocycles.append(Mesocycle(
            id=None,
            macro_cycle_id=None,
            meso_number=index + 1,
            start_week=week_offset,
            duration_weeks=meso_weeks,
            sessions_per_week=sessions_per_week,
            days_per_week=sessions_per_week,
            split_type=split_type,
            focus=get_meso_focus(index + 1, primary_goal),
            volume_target=blocks[0].volume_target,
            intensity_bias=blocks[0].intensity_bias,
            is_active=index == 0,
            blocks=blocks,
        ))
        week_offset += meso_weeks

    return MacroCycle(
        id=None,
        user_id=user_id,
        start_date=start_date,
        duration_weeks=duration_weeks,
        training_age=training_age,
        primary_goal=primary_goal,
        mesocycles=tuple(mesocycles),
    )


def derive_block_context(macro: MacroCycle, on_date: date) -> Optional[BlockContext]:
    """
    Locate a date inside the macro hierarchy.

    Returns:
        BlockContext, or None if the date falls outside the macro or in
        weeks no mesocycle covers
    """
    days_since_start = (on_date - macro.start_date).days
    if days_since_start < 0:
        return None
    week_in_macro = days_since_start // 7 + 1

    if week_in_macro > macro.duration_weeks:
        return None

    meso = next(
        (m for m in macro.mesocycles
         if m.start_week < week_in_macro <= m.start_week + m.duration_weeks),
        None
    )
    if meso is None:
        return None

    block = next(
        (b for b in meso.blocks if b.start_week < week_in_macro <= b.end_week),
        None
    )
    if block is None:
        return None

    return BlockContext(
        block=block,
        week_in_block=week_in_macro - block.start_week,
        week_in_meso=week_in_macro - meso.start_week,
        week_in_macro=week_in_macro,
        mesocycle=meso,
        macro_cycle=macro,
    )


def block_for_meso_week(meso: Mesocycle, week_in_meso: int) -> Optional[TrainingBlock]:
    """Block covering a 1-indexed week of a mesocycle, if blocks are present."""
    week_in_macro = meso.start_week + week_in_meso
    for block in meso.blocks:
        if block.start_week < week_in_macro <= block.end_week:
            return block
    return None


def characteristics_for_week(meso: Mesocycle, week_in_meso: int) -> Dict:
    """
    Block characteristics for a mesocycle week.

    Without stored blocks, the deload week maps to DELOAD and every other
    week to ACCUMULATION.
    """
    block = block_for_meso_week(meso, week_in_meso)
    if block is not None:
        return BlockCharacteristics.get(block.block_type)
    if week_in_meso >= meso.duration_weeks:
        return BlockCharacteristics.get(BlockType.DELOAD)
    return BlockCharacteristics.get(BlockType.ACCUMULATION)


def attach_blocks(meso: Mesocycle, blocks: Tuple[TrainingBlock, ...]) -> Mesocycle:
    """Return the mesocycle with its blocks ordered by start week."""
    return replace(meso, blocks=tuple(sorted(blocks, key=lambda b: b.start_week)))
