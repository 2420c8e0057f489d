"""
Progression domain entities.

Part of PT-110: Periodization engine domain model

Entities owned by the progression engine:
- BlockSchedule: a clinician-configured block of 4, 6 or 8 weeks
- ExerciseWeekCell: one cell of a block's per-week prescription grid
- PeriodizationCycle: one block instance of the adaptive cycle
- ExerciseProgressionLogEntry: append-only record of an auto-adjustment
- ClinicianFlag: alert raised for the program's clinician
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


VALID_BLOCK_DURATIONS = (4, 6, 8)


class BlockStatus(str, Enum):
    """Lifecycle states of a block schedule."""

    ACTIVE = "active"
    PAUSED = "paused"  # Superseded by a newer block
    COMPLETED = "completed"  # Duration exhausted


class BlockType(str, Enum):
    """Periodization cycle block types."""

    INTRODUCTORY = "introductory"
    STANDARD = "standard"


class FlagType(str, Enum):
    """Clinician-facing alert types."""

    PAIN_FLARE = "pain_flare"
    PERFORMANCE_HOLD = "performance_hold"
    BLOCK_COMPLETE = "block_complete"


class OverrideAction(str, Enum):
    """Manual week override actions available to the clinician."""

    ADVANCE = "advance"
    HOLD = "hold"
    REGRESS = "regress"


class CellEditMode(str, Enum):
    """
    How a clinician cell edit interacts with the live prescription.

    - EDIT_PLAN_ONLY: only the planned grid changes; live values are untouched
    - EDIT_PLAN_AND_PUSH: when the edited cell is the active block's current
      week, its sets/reps are also written to the live prescription
    """

    EDIT_PLAN_ONLY = "edit_plan_only"
    EDIT_PLAN_AND_PUSH = "edit_plan_and_push"


class EvaluationOutcome(str, Enum):
    """Outcomes of a block progression evaluation."""

    NO_BLOCK = "no_block"
    NO_PROGRAM = "no_program"
    TOO_SOON = "too_soon"
    TOO_EARLY = "too_early"
    HOLD_PAIN = "hold_pain"
    HOLD_PERFORMANCE = "hold_performance"
    ADVANCED = "advanced"
    BLOCK_COMPLETE = "block_complete"


# =============================================================================
# Block schedule
# =============================================================================


class BlockSchedule(BaseModel):
    """A fixed-duration training block for a program."""

    model_config = ConfigDict(frozen=True)

    id: str
    program_id: str
    block_duration: int = Field(..., description="Block length in weeks (4, 6 or 8)")
    start_date: date
    current_week: int = Field(default=1, ge=1)
    status: BlockStatus = BlockStatus.ACTIVE
    last_evaluated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("block_duration")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        if v not in VALID_BLOCK_DURATIONS:
            raise ValueError(f"block_duration must be one of {VALID_BLOCK_DURATIONS}, got {v}")
        return v

    @model_validator(mode="after")
    def validate_week(self) -> "BlockSchedule":
        if self.current_week > self.block_duration:
            raise ValueError(
                f"current_week {self.current_week} exceeds block_duration {self.block_duration}"
            )
        return self


class ExerciseWeekCell(BaseModel):
    """
    One cell of the block grid: the prescription for an exercise in a week.

    Unique per (block_schedule_id, program_exercise_id, week_number).
    """

    model_config = ConfigDict(frozen=True)

    block_schedule_id: Optional[str] = None
    program_exercise_id: str
    week_number: int = Field(..., ge=1, le=max(VALID_BLOCK_DURATIONS))
    sets: int = Field(..., ge=0)
    reps: int = Field(..., ge=0)
    rpe_target: Optional[float] = Field(default=None, ge=1, le=10)
    weight: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    overridden_by: Optional[str] = None
    overridden_at: Optional[datetime] = None
    exercise_name: Optional[str] = None  # Joined for display only

    @property
    def key(self) -> tuple:
        return (self.block_schedule_id, self.program_exercise_id, self.week_number)


class CellUpdate(BaseModel):
    """Fields a clinician may edit on a single grid cell."""

    sets: int = Field(..., ge=0)
    reps: int = Field(..., ge=0)
    rpe_target: Optional[float] = Field(default=None, ge=1, le=10)
    weight: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


# =============================================================================
# Periodization cycle
# =============================================================================


INTRODUCTORY_TOTAL_WEEKS = 4
STANDARD_TOTAL_WEEKS = 6
INTENSITY_STEP = 1.1


class PeriodizationCycle(BaseModel):
    """One block instance of the adaptive cycle. Newest row is current."""

    model_config = ConfigDict(frozen=True)

    id: str
    program_id: str
    block_type: BlockType
    block_number: int = Field(..., ge=0)
    block_start_date: date
    current_week: int = Field(default=1, ge=1)
    total_weeks: int = Field(..., ge=1)
    intensity_multiplier: float = Field(default=1.0, gt=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_last_week(self) -> bool:
        return self.current_week + 1 > self.total_weeks


class ExerciseProgressionLogEntry(BaseModel):
    """Append-only audit entry for an automatic sets/reps adjustment."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    exercise_id: str
    program_id: str
    previous_sets: Optional[int] = None
    previous_reps: Optional[int] = None
    new_sets: int
    new_reps: int
    adjustment_reason: str
    avg_rpe: Optional[float] = None
    avg_pain: Optional[float] = None
    completion_rate: Optional[float] = None
    week_in_cycle: Optional[int] = None
    adjusted_at: Optional[datetime] = None
    exercise_name: Optional[str] = None
    exercise_category: Optional[str] = None


# =============================================================================
# Clinician flags
# =============================================================================


class ClinicianFlag(BaseModel):
    """An alert surfaced to the program's clinician."""

    id: Optional[str] = None
    program_id: str
    patient_id: str
    clinician_id: Optional[str] = None
    flag_type: FlagType
    flag_reason: str
    flag_date: date
    resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
