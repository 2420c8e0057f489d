"""
Domain models for the progression engine.

This package contains pure domain models that are independent of
infrastructure concerns (database, API, external services).

These models represent the core business concepts:
- BlockSchedule / ExerciseWeekCell: clinician-configured block grid
- PeriodizationCycle: adaptive introductory/standard cycle
- ExerciseProgressionLogEntry: auto-adjustment audit trail
- ClinicianFlag: alerts raised for the clinician

Usage:
    >>> from datetime import date
    >>> from domain.models import BlockSchedule, BlockStatus

    >>> block = BlockSchedule(
    ...     id="b1",
    ...     program_id="p1",
    ...     block_duration=6,
    ...     start_date=date(2025, 1, 6),
    ... )
    >>> block.status
    <BlockStatus.ACTIVE: 'active'>
"""

from domain.models.progression import (
    INTENSITY_STEP,
    INTRODUCTORY_TOTAL_WEEKS,
    STANDARD_TOTAL_WEEKS,
    VALID_BLOCK_DURATIONS,
    BlockSchedule,
    BlockStatus,
    BlockType,
    CellEditMode,
    CellUpdate,
    ClinicianFlag,
    EvaluationOutcome,
    ExerciseProgressionLogEntry,
    ExerciseWeekCell,
    FlagType,
    OverrideAction,
    PeriodizationCycle,
)

__all__ = [
    # Entities
    "BlockSchedule",
    "ExerciseWeekCell",
    "CellUpdate",
    "PeriodizationCycle",
    "ExerciseProgressionLogEntry",
    "ClinicianFlag",
    # Enums
    "BlockStatus",
    "BlockType",
    "CellEditMode",
    "EvaluationOutcome",
    "FlagType",
    "OverrideAction",
    # Constants
    "VALID_BLOCK_DURATIONS",
    "INTRODUCTORY_TOTAL_WEEKS",
    "STANDARD_TOTAL_WEEKS",
    "INTENSITY_STEP",
]
