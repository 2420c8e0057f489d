"""
Prescription Repository Interface (Port).

Part of PT-111: Prescription store access

Read access to programs and their prescribed exercises (the live
sets/reps/weight values). Writes to live prescriptions happen only inside
the atomic commits of the block and cycle repositories so that a week
change and its prescription projection succeed or fail together.
"""
from typing import Protocol, Optional, List
from dataclasses import dataclass, field


# Program frequency used when a program has no schedule configured
DEFAULT_FREQUENCY = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass
class ProgramRecord:
    """A rehabilitation program assigned to a patient."""
    id: str
    patient_id: str
    clinician_id: Optional[str] = None
    name: Optional[str] = None
    frequency: List[str] = field(default_factory=list)  # Weekday tokens
    track_rpe: bool = False

    @property
    def expected_days_per_week(self) -> int:
        """Number of scheduled days per week; 7 when no schedule is set."""
        days = [d for d in self.frequency if d and d.strip()]
        return len(days) or len(DEFAULT_FREQUENCY)


@dataclass
class PrescribedExercise:
    """An exercise in a program with its live prescription."""
    id: str
    program_id: str
    exercise_name: str
    sets: int
    reps: int
    exercise_category: Optional[str] = None
    prescribed_weight: Optional[float] = None
    baseline_sets: Optional[int] = None
    baseline_reps: Optional[int] = None
    auto_adjust_enabled: bool = True
    exercise_order: int = 0


@dataclass
class PrescriptionUpdate:
    """A live sets/reps change to apply to one exercise."""
    exercise_id: str
    sets: int
    reps: int


@dataclass
class WeightUpdate:
    """A live prescribed-weight change to apply to one exercise."""
    exercise_id: str
    prescribed_weight: float


class PrescriptionRepository(Protocol):
    """
    Abstract interface for program and prescription reads.
    """

    def get_program(self, program_id: str) -> Optional[ProgramRecord]:
        """
        Get a program by ID.

        Returns:
            ProgramRecord or None if the program does not exist
        """
        ...

    def list_programs_for_patient(self, patient_id: str) -> List[ProgramRecord]:
        """Get all programs assigned to a patient."""
        ...

    def list_exercises(
        self,
        program_id: str,
        *,
        auto_adjust_only: bool = False,
    ) -> List[PrescribedExercise]:
        """
        Get a program's exercises ordered by exercise_order.

        Args:
            program_id: Program ID
            auto_adjust_only: Only return exercises with auto-adjust enabled

        Returns:
            List of PrescribedExercise
        """
        ...

    def get_exercise(self, exercise_id: str) -> Optional[PrescribedExercise]:
        """Get a single prescribed exercise, or None if missing."""
        ...
