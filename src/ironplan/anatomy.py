"""
Anatomical Reference Data

Static tables the engine reads but never mutates: volume landmarks per
muscle, muscle-name normalization, coarse group resolution, split buckets
and movement patterns.
"""

import re
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .types import MuscleVolumeLandmark


class MovementPattern(Enum):
    """Fundamental movement patterns."""
    HORIZONTAL_PUSH = "horizontal_push"
    VERTICAL_PUSH = "vertical_push"
    HORIZONTAL_PULL = "horizontal_pull"
    VERTICAL_PULL = "vertical_pull"
    SQUAT = "squat"
    HINGE = "hinge"
    LUNGE = "lunge"
    CARRY = "carry"
    ROTATION = "rotation"
    ANTI_ROTATION = "anti_rotation"
    FLEXION = "flexion"
    EXTENSION = "extension"
    ABDUCTION = "abduction"
    CALF_RAISE = "calf_raise"


CORE_PATTERNS = [
    MovementPattern.HORIZONTAL_PUSH.value,
    MovementPattern.VERTICAL_PUSH.value,
    MovementPattern.HORIZONTAL_PULL.value,
    MovementPattern.VERTICAL_PULL.value,
    MovementPattern.SQUAT.value,
    MovementPattern.HINGE.value,
    MovementPattern.LUNGE.value,
    MovementPattern.CARRY.value,
]

BONUS_PATTERNS = [MovementPattern.ROTATION.value, MovementPattern.ANTI_ROTATION.value]

PATTERNS_BY_BUCKET: Dict[str, List[str]] = {
    "push": [MovementPattern.HORIZONTAL_PUSH.value, MovementPattern.VERTICAL_PUSH.value],
    "pull": [MovementPattern.HORIZONTAL_PULL.value, MovementPattern.VERTICAL_PULL.value],
    "legs": [MovementPattern.SQUAT.value, MovementPattern.HINGE.value, MovementPattern.LUNGE.value],
}


# Weekly working sets per muscle (intermediate trainee)
VOLUME_LANDMARKS: Dict[str, MuscleVolumeLandmark] = {
    "Chest":       MuscleVolumeLandmark(mv=6, mev=10, mav=16, mrv=22),
    "Lats":        MuscleVolumeLandmark(mv=6, mev=8,  mav=16, mrv=24),
    "Upper Back":  MuscleVolumeLandmark(mv=6, mev=6,  mav=14, mrv=22),
    "Front Delts": MuscleVolumeLandmark(mv=0, mev=0,  mav=7,  mrv=14),
    "Side Delts":  MuscleVolumeLandmark(mv=6, mev=8,  mav=19, mrv=26),
    "Rear Delts":  MuscleVolumeLandmark(mv=4, mev=4,  mav=12, mrv=20),
    "Quads":       MuscleVolumeLandmark(mv=6, mev=8,  mav=18, mrv=26),
    "Hamstrings":  MuscleVolumeLandmark(mv=6, mev=6,  mav=16, mrv=24),
    "Glutes":      MuscleVolumeLandmark(mv=0, mev=0,  mav=8,  mrv=16),
    "Biceps":      MuscleVolumeLandmark(mv=6, mev=8,  mav=17, mrv=26),
    "Triceps":     MuscleVolumeLandmark(mv=4, mev=6,  mav=12, mrv=20),
    "Calves":      MuscleVolumeLandmark(mv=6, mev=8,  mav=14, mrv=20),
    "Core":        MuscleVolumeLandmark(mv=0, mev=0,  mav=12, mrv=20),
    "Lower Back":  MuscleVolumeLandmark(mv=0, mev=0,  mav=4,  mrv=10),
    "Forearms":    MuscleVolumeLandmark(mv=0, mev=0,  mav=6,  mrv=12),
    "Adductors":   MuscleVolumeLandmark(mv=0, mev=0,  mav=8,  mrv=16),
    "Abductors":   MuscleVolumeLandmark(mv=0, mev=0,  mav=6,  mrv=12),
    "Abs":         MuscleVolumeLandmark(mv=0, mev=0,  mav=10, mrv=16),
}

# Used for muscles absent from every table
DEFAULT_FALLBACK_LANDMARK = MuscleVolumeLandmark(mv=0, mev=0, mav=10, mrv=15)

MUSCLE_SPLIT_MAP: Dict[str, str] = {
    "Chest": "push",
    "Front Delts": "push",
    "Side Delts": "push",
    "Triceps": "push",
    "Lats": "pull",
    "Upper Back": "pull",
    "Rear Delts": "pull",
    "Biceps": "pull",
    "Forearms": "pull",
    "Quads": "legs",
    "Hamstrings": "legs",
    "Glutes": "legs",
    "Calves": "legs",
    "Adductors": "legs",
    "Abductors": "legs",
    "Core": "legs",
    "Abs": "legs",
    "Lower Back": "legs",
}

UPPER_MUSCLES = frozenset(m for m, bucket in MUSCLE_SPLIT_MAP.items() if bucket in ("push", "pull"))
LOWER_MUSCLES = frozenset(m for m, bucket in MUSCLE_SPLIT_MAP.items() if bucket == "legs")

# Coarse groups callers ask for -> fine-grained muscles
MUSCLE_GROUP_MAP: Dict[str, List[str]] = {
    "chest": ["Chest"],
    "back": ["Lats", "Upper Back", "Lower Back"],
    "shoulders": ["Front Delts", "Side Delts", "Rear Delts"],
    "arms": ["Biceps", "Triceps", "Forearms"],
    "legs": ["Quads", "Hamstrings", "Glutes", "Adductors", "Calves"],
    "core": ["Core", "Abs"],
}

# Alternative spellings seen in storage and client input
MUSCLE_ALIASES: Dict[str, str] = {
    "lat": "Lats",
    "latissimus dorsi": "Lats",
    "traps": "Upper Back",
    "rhomboids": "Upper Back",
    "pecs": "Chest",
    "pectorals": "Chest",
    "front deltoids": "Front Delts",
    "anterior delts": "Front Delts",
    "side deltoids": "Side Delts",
    "lateral delts": "Side Delts",
    "rear deltoids": "Rear Delts",
    "posterior delts": "Rear Delts",
    "quadriceps": "Quads",
    "hams": "Hamstrings",
    "glute": "Glutes",
    "abdominals": "Abs",
    "erectors": "Lower Back",
}

_CANONICAL_BY_KEY: Dict[str, str] = {name.lower(): name for name in VOLUME_LANDMARKS}
_CANONICAL_BY_KEY.update(MUSCLE_ALIASES)


def _muscle_key(name: str) -> str:
    return re.sub(r"[\s_\-]+", " ", name.strip().lower())


def normalize_muscle(name: str) -> str:
    """
    Map any spelling of a muscle to its canonical table name.

    Unknown muscles come back title-cased so they still compare consistently.
    """
    key = _muscle_key(name)
    canonical = _CANONICAL_BY_KEY.get(key)
    if canonical is not None:
        return canonical
    return key.title()


def lookup_landmark(muscle: str) -> Optional[MuscleVolumeLandmark]:
    """Static landmark for a muscle, or None if the muscle is not tabled."""
    return VOLUME_LANDMARKS.get(normalize_muscle(muscle))


def split_bucket(muscle: str) -> Optional[str]:
    return MUSCLE_SPLIT_MAP.get(normalize_muscle(muscle))


def resolve_target_muscles(groups: Iterable[str]) -> List[str]:
    """
    Resolve coarse groups ("chest", "arms", "legs") to fine muscle names.

    Fine-grained names are accepted as-is. Output is deduplicated and keeps
    first-seen order.
    """
    muscles: List[str] = []
    seen = set()
    for group in groups:
        mapped = MUSCLE_GROUP_MAP.get(_muscle_key(group))
        if mapped is None:
            canonical = normalize_muscle(group)
            mapped = [canonical] if canonical in VOLUME_LANDMARKS else []
        for muscle in mapped:
            if muscle not in seen:
                seen.add(muscle)
                muscles.append(muscle)
    return muscles
