"""
Unit tests for the deterministic progression curve.

Part of PT-114: Adaptive periodization cycle
"""

import pytest

from backend.core.progression_curve import DELOAD, SetsReps, calculate_sets_reps
from domain.models import BlockType


@pytest.mark.unit
class TestIntroductoryCurve:

    @pytest.mark.parametrize("week,expected", [
        (1, SetsReps(1, 8)),
        (2, SetsReps(2, 8)),
        (3, SetsReps(2, 10)),
        (4, SetsReps(2, 12)),
    ])
    def test_table(self, week, expected):
        assert calculate_sets_reps(BlockType.INTRODUCTORY, week) == expected

    def test_other_weeks_default(self):
        assert calculate_sets_reps(BlockType.INTRODUCTORY, 7) == SetsReps(1, 8)


@pytest.mark.unit
class TestStandardCurve:

    def test_first_two_weeks(self):
        assert calculate_sets_reps(BlockType.STANDARD, 1) == SetsReps(2, 8)
        assert calculate_sets_reps(BlockType.STANDARD, 2) == SetsReps(3, 8)

    def test_reps_climb_from_week_three(self):
        assert calculate_sets_reps(BlockType.STANDARD, 3) == SetsReps(3, 9)
        assert calculate_sets_reps(BlockType.STANDARD, 5) == SetsReps(3, 11)
        assert calculate_sets_reps(BlockType.STANDARD, 6) == SetsReps(3, 12)


@pytest.mark.unit
def test_deload_is_two_by_eight():
    assert DELOAD == SetsReps(2, 8)
