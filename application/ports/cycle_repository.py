"""
Cycle Repository Interface (Port).

Part of PT-114: Adaptive periodization cycle

Persistence for periodization cycles and the exercise progression log.
Cycle rows are never deleted: each block instance is a new row and the
newest row is the current cycle. Log entries are append-only.
"""
from typing import Protocol, Optional, List
from dataclasses import dataclass
from datetime import date

from application.ports.prescription_repository import PrescriptionUpdate, WeightUpdate
from domain.models import (
    BlockType,
    ExerciseProgressionLogEntry,
    PeriodizationCycle,
)


@dataclass
class NewCycle:
    """Attributes of a cycle row to insert."""
    block_type: BlockType
    block_number: int
    block_start_date: date
    total_weeks: int
    current_week: int = 1
    intensity_multiplier: float = 1.0


@dataclass
class CycleAdvance:
    """
    How the cycle moves after a weekly run.

    Exactly one of next_week (stay in the current cycle row) or new_cycle
    (supersede it with a new row) is set.
    """
    next_week: Optional[int] = None
    new_cycle: Optional[NewCycle] = None


class CycleRepository(Protocol):
    """
    Abstract interface for periodization cycle persistence.
    """

    def create_cycle(self, program_id: str, cycle: NewCycle) -> PeriodizationCycle:
        """
        Insert a cycle row for a program.

        Raises:
            PersistenceError: If the insert fails
        """
        ...

    def get_current_cycle(self, program_id: str) -> Optional[PeriodizationCycle]:
        """Get the newest cycle row for a program, or None."""
        ...

    def commit_progression(
        self,
        cycle_id: str,
        *,
        expected_week: int,
        updates: List[PrescriptionUpdate],
        log_entries: List[ExerciseProgressionLogEntry],
        advance: CycleAdvance,
    ) -> Optional[PeriodizationCycle]:
        """
        Apply a weekly cycle run in one transaction.

        Writes the prescription updates, appends the log entries and
        advances the cycle (next week or new cycle row). Conditional on the
        cycle still being the program's newest row at expected_week.

        Returns:
            The cycle that is current after the commit, or None if the
            concurrency token was stale (nothing is written)

        Raises:
            PersistenceError: If the transaction fails (nothing is written)
        """
        ...

    def apply_weight_updates(self, updates: List[WeightUpdate]) -> None:
        """
        Write prescribed-weight changes for several exercises atomically.

        Raises:
            PersistenceError: If the transaction fails (nothing is written)
        """
        ...

    def get_progression_history(
        self,
        program_id: str,
        *,
        limit: int = 50,
    ) -> List[ExerciseProgressionLogEntry]:
        """Get a program's log entries, newest first, joined with exercise names."""
        ...

    def get_progression_history_for_programs(
        self,
        program_ids: List[str],
        *,
        limit: int = 100,
    ) -> List[ExerciseProgressionLogEntry]:
        """Get log entries across several programs, newest first."""
        ...
