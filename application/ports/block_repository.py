"""
Block Repository Interface (Port).

Part of PT-113: Block schedule progression

Persistence for block schedules, their per-week prescription grid and the
atomic state transitions of the block progression controller.

Every mutating method is all-or-nothing: the block row, the live
prescription projection and any flag row commit together or not at all.
"""
from dataclasses import dataclass
from typing import Protocol, Optional, List
from datetime import date, datetime

from domain.models import (
    BlockSchedule,
    BlockStatus,
    CellUpdate,
    ClinicianFlag,
    ExerciseWeekCell,
)


@dataclass
class CellEdit:
    """An edited cell and whether it reached the live prescription."""
    cell: ExerciseWeekCell
    pushed_live: bool = False


class BlockRepository(Protocol):
    """
    Abstract interface for block schedule persistence.
    """

    def create_block_atomic(
        self,
        program_id: str,
        block_duration: int,
        start_date: date,
        cells: List[ExerciseWeekCell],
    ) -> BlockSchedule:
        """
        Create a new active block in a single transaction.

        Pauses any active block of the program, inserts the new block at
        week 1, upserts the grid cells on (block, exercise, week) and copies
        the week-1 cells onto the live prescriptions.

        Raises:
            PersistenceError: If the transaction fails (nothing is written)
        """
        ...

    def get_active_block(self, program_id: str) -> Optional[BlockSchedule]:
        """Get the program's active block, or None."""
        ...

    def get_block(self, block_id: str) -> Optional[BlockSchedule]:
        """Get a block by ID regardless of status, or None."""
        ...

    def get_cells(
        self,
        block_id: str,
        *,
        week_number: Optional[int] = None,
    ) -> List[ExerciseWeekCell]:
        """
        Get the grid cells of a block, joined with exercise names.

        Args:
            block_id: Block schedule ID
            week_number: Restrict to a single week, or None for the full grid

        Returns:
            Cells ordered by exercise then week
        """
        ...

    def commit_evaluation(
        self,
        block_id: str,
        *,
        expected_last_evaluated_at: Optional[datetime],
        expected_week: int,
        evaluated_at: datetime,
        new_week: Optional[int] = None,
        new_status: Optional[BlockStatus] = None,
        flag: Optional[ClinicianFlag] = None,
    ) -> Optional[BlockSchedule]:
        """
        Stamp an evaluation and apply its transition in one transaction.

        The update is conditional: it only applies while the block is still
        active and its last_evaluated_at and current_week equal the expected
        values read before the decision. When new_week is given, that week's
        cells are copied onto the live prescriptions. The flag, if any, is
        inserted in the same transaction.

        Returns:
            The updated BlockSchedule, or None if the concurrency token was
            stale (another trigger already evaluated the block)

        Raises:
            PersistenceError: If the transaction fails (nothing is written)
        """
        ...

    def set_week_atomic(
        self,
        block_id: str,
        *,
        expected_week: int,
        new_week: int,
        evaluated_at: datetime,
        apply_prescriptions: bool,
    ) -> Optional[BlockSchedule]:
        """
        Set the current week of an active block (clinician override).

        Stamps last_evaluated_at. When apply_prescriptions is True the new
        week's cells are copied onto the live prescriptions.

        Returns:
            The updated BlockSchedule, or None if current_week changed since
            it was read

        Raises:
            PersistenceError: If the transaction fails (nothing is written)
        """
        ...

    def update_cell(
        self,
        block_id: str,
        exercise_id: str,
        week_number: int,
        update: CellUpdate,
        *,
        overridden_by: Optional[str],
        overridden_at: datetime,
        push_live: bool = False,
    ) -> Optional[CellEdit]:
        """
        Edit one grid cell and record override attribution.

        When push_live is True the cell's sets/reps are also written to the
        exercise's live prescription in the same transaction, but only if
        the block is still active at that week when the transaction runs.

        Returns:
            CellEdit with pushed_live set to whether the push happened, or
            None if the cell does not exist
        """
        ...
