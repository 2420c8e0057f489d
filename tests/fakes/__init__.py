"""
Fake Repository Implementations for Testing.

Part of PT-118: In-memory fakes for the progression engine

This package provides in-memory fake implementations of repository interfaces
for fast, isolated testing. No database or external dependencies required.

Features:
- All fakes implement the same Protocol interfaces as real implementations
- Block and cycle fakes share one prescription store, like the database
- simulate_failure() and interleave() exercise rollback and races
- Factory functions for common test scenarios

Usage:
    from tests.fakes import create_fake_store

    store = create_fake_store(num_exercises=2)
    store.signals.seed_completions([...])
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from application.ports.prescription_repository import PrescribedExercise, ProgramRecord
from application.ports.signal_repository import CheckInRecord, CompletionRecord

# Import all fake implementations
from tests.fakes.signal_repository import FakeSignalRepository
from tests.fakes.prescription_repository import FakePrescriptionRepository
from tests.fakes.flag_repository import FakeFlagRepository
from tests.fakes.block_repository import FakeBlockRepository
from tests.fakes.cycle_repository import FakeCycleRepository


PROGRAM_ID = "program-1"
PATIENT_ID = "patient-1"
CLINICIAN_ID = "clinician-1"


# =============================================================================
# Factory Functions
# =============================================================================


@dataclass
class FakeStore:
    """All engine fakes wired to shared state."""
    signals: FakeSignalRepository
    prescriptions: FakePrescriptionRepository
    flags: FakeFlagRepository
    blocks: FakeBlockRepository
    cycles: FakeCycleRepository

    def reset(self) -> None:
        for repo in (self.signals, self.prescriptions, self.flags, self.blocks, self.cycles):
            repo.reset()


def create_prescription_repo(
    *,
    program_id: str = PROGRAM_ID,
    patient_id: str = PATIENT_ID,
    clinician_id: Optional[str] = CLINICIAN_ID,
    num_exercises: int = 2,
    sets: int = 2,
    reps: int = 8,
    frequency: Optional[List[str]] = None,
    track_rpe: bool = False,
    prescribed_weight: Optional[float] = None,
) -> FakePrescriptionRepository:
    """
    Create a FakePrescriptionRepository with one program and its exercises.

    Exercise IDs are "ex-1", "ex-2", ...
    """
    repo = FakePrescriptionRepository()
    repo.seed_program(ProgramRecord(
        id=program_id,
        patient_id=patient_id,
        clinician_id=clinician_id,
        name="Knee Rehab",
        frequency=list(frequency) if frequency is not None else [],
        track_rpe=track_rpe,
    ))
    repo.seed_exercises([
        PrescribedExercise(
            id=f"ex-{i + 1}",
            program_id=program_id,
            exercise_name=f"Exercise {i + 1}",
            sets=sets,
            reps=reps,
            exercise_category="strength",
            prescribed_weight=prescribed_weight,
            baseline_sets=sets,
            baseline_reps=reps,
            exercise_order=i,
        )
        for i in range(num_exercises)
    ])
    return repo


def create_fake_store(**kwargs) -> FakeStore:
    """Create all fakes around a seeded prescription repository."""
    prescriptions = create_prescription_repo(**kwargs)
    flags = FakeFlagRepository(prescriptions)
    return FakeStore(
        signals=FakeSignalRepository(),
        prescriptions=prescriptions,
        flags=flags,
        blocks=FakeBlockRepository(prescriptions, flags),
        cycles=FakeCycleRepository(prescriptions),
    )


def daily_check_ins(
    end: date,
    *,
    days: int = 7,
    patient_id: str = PATIENT_ID,
    overall_feeling: Optional[int] = 4,
    general_pain_level: Optional[int] = 1,
    energy_level: Optional[int] = 4,
    sleep_quality: Optional[int] = 4,
) -> List[CheckInRecord]:
    """One check-in per day for the days ending at end."""
    return [
        CheckInRecord(
            patient_id=patient_id,
            check_in_date=end - timedelta(days=offset),
            overall_feeling=overall_feeling,
            general_pain_level=general_pain_level,
            energy_level=energy_level,
            sleep_quality=sleep_quality,
        )
        for offset in range(days)
    ]


def daily_completions(
    exercise_id: str,
    end: date,
    *,
    days: int = 7,
    patient_id: str = PATIENT_ID,
    sets_performed: Optional[int] = 2,
    reps_performed: Optional[int] = 8,
    rpe_rating: Optional[int] = 5,
    pain_level: Optional[int] = 0,
) -> List[CompletionRecord]:
    """One completion per day of an exercise for the days ending at end."""
    return [
        CompletionRecord(
            exercise_id=exercise_id,
            patient_id=patient_id,
            completion_date=end - timedelta(days=offset),
            sets_performed=sets_performed,
            reps_performed=reps_performed,
            rpe_rating=rpe_rating,
            pain_level=pain_level,
        )
        for offset in range(days)
    ]


__all__ = [
    # Fake implementations
    "FakeSignalRepository",
    "FakePrescriptionRepository",
    "FakeFlagRepository",
    "FakeBlockRepository",
    "FakeCycleRepository",
    "FakeStore",
    # Factory functions
    "create_prescription_repo",
    "create_fake_store",
    "daily_check_ins",
    "daily_completions",
    # Constants
    "PROGRAM_ID",
    "PATIENT_ID",
    "CLINICIAN_ID",
]
