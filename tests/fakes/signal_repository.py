"""
Fake Signal Repository for Testing.

Part of PT-112: Weekly metrics aggregation

In-memory implementation of SignalRepository.
"""
from datetime import date
from typing import List

from application.ports.signal_repository import CheckInRecord, CompletionRecord


class FakeSignalRepository:
    """
    In-memory fake implementation of SignalRepository.

    Filters by patient and inclusive date range like the real adapter.
    """

    def __init__(self):
        self._check_ins: List[CheckInRecord] = []
        self._completions: List[CompletionRecord] = []

    def reset(self) -> None:
        """Clear all stored data."""
        self._check_ins.clear()
        self._completions.clear()

    def seed_check_ins(self, check_ins: List[CheckInRecord]) -> None:
        self._check_ins.extend(check_ins)

    def seed_completions(self, completions: List[CompletionRecord]) -> None:
        self._completions.extend(completions)

    def get_check_ins(
        self,
        patient_id: str,
        *,
        start_date: date,
        end_date: date,
    ) -> List[CheckInRecord]:
        return [
            c for c in self._check_ins
            if c.patient_id == patient_id and start_date <= c.check_in_date <= end_date
        ]

    def get_completions(
        self,
        patient_id: str,
        exercise_ids: List[str],
        *,
        start_date: date,
        end_date: date,
    ) -> List[CompletionRecord]:
        wanted = set(exercise_ids)
        return [
            c for c in self._completions
            if c.patient_id == patient_id
            and c.exercise_id in wanted
            and start_date <= c.completion_date <= end_date
        ]
