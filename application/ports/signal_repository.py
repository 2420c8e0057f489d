"""
Signal Repository Interface (Port).

Part of PT-112: Weekly metrics aggregation

Read-only access to the patient signals the progression engine consumes:
daily wellbeing check-ins and exercise completions. Both are written by
external producers; the engine never mutates them.
"""
from typing import Protocol, Optional, List
from dataclasses import dataclass
from datetime import date


@dataclass
class CheckInRecord:
    """A daily wellbeing check-in."""
    patient_id: str
    check_in_date: date
    overall_feeling: Optional[int] = None  # 1-5
    general_pain_level: Optional[int] = None  # 0-10
    energy_level: Optional[int] = None  # 1-5
    sleep_quality: Optional[int] = None  # 1-5


@dataclass
class CompletionRecord:
    """A logged completion of a prescribed exercise on one day."""
    exercise_id: str
    patient_id: str
    completion_date: date
    sets_performed: Optional[int] = None
    reps_performed: Optional[int] = None
    weight_performed: Optional[float] = None
    rpe_rating: Optional[int] = None  # 1-10
    pain_level: Optional[int] = None  # 0-10


class SignalRepository(Protocol):
    """
    Abstract interface for patient signal data access.

    Implementations tolerate eventual consistency; no locking is required
    for reads.
    """

    def get_check_ins(
        self,
        patient_id: str,
        *,
        start_date: date,
        end_date: date,
    ) -> List[CheckInRecord]:
        """
        Get check-ins for a patient within an inclusive date range.

        Args:
            patient_id: Patient user ID
            start_date: First day of the window (inclusive)
            end_date: Last day of the window (inclusive)

        Returns:
            List of CheckInRecord, at most one per day
        """
        ...

    def get_completions(
        self,
        patient_id: str,
        exercise_ids: List[str],
        *,
        start_date: date,
        end_date: date,
    ) -> List[CompletionRecord]:
        """
        Get exercise completions for a patient within an inclusive date range.

        Args:
            patient_id: Patient user ID
            exercise_ids: Prescribed exercise IDs to include
            start_date: First day of the window (inclusive)
            end_date: Last day of the window (inclusive)

        Returns:
            List of CompletionRecord
        """
        ...
