"""
Deterministic sets/reps progression curve for periodization cycles.

Part of PT-114: Adaptive periodization cycle

The curve is a pure function of (block type, week). It never reads the
clinician's baseline prescription.
"""
from dataclasses import dataclass

from domain.models import BlockType


@dataclass(frozen=True)
class SetsReps:
    sets: int
    reps: int


# Low-volume reset applied when a cycle rolls into a new block
DELOAD = SetsReps(sets=2, reps=8)

INTRODUCTORY_CURVE = {
    1: SetsReps(1, 8),
    2: SetsReps(2, 8),
    3: SetsReps(2, 10),
    4: SetsReps(2, 12),
}
INTRODUCTORY_DEFAULT = SetsReps(1, 8)


def calculate_sets_reps(block_type: BlockType, week: int) -> SetsReps:
    """
    Calculate sets and reps for a week of a cycle.

    Introductory: 1x8, 2x8, 2x10, 2x12 (other weeks 1x8).
    Standard: week 1 2x8, week 2 3x8, then reps climb by one per week
    from week 3 onward (3 x (8 + week - 2)).

    Args:
        block_type: Cycle block type
        week: Week number within the cycle (1-indexed)

    Returns:
        SetsReps for that week
    """
    if BlockType(block_type) == BlockType.INTRODUCTORY:
        return INTRODUCTORY_CURVE.get(week, INTRODUCTORY_DEFAULT)

    if week <= 1:
        return SetsReps(2, 8)
    if week == 2:
        return SetsReps(3, 8)
    return SetsReps(3, 8 + (week - 2))
