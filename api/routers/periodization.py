"""
Periodization cycle router.

Part of PT-114: Adaptive periodization cycle

This router provides endpoints for:
- Initializing and reading a program's periodization cycle
- Running the weekly gate-driven progression
- RPE-responsive weight adjustment
- Weekly metrics for one exercise
- Progression log history per program and per patient
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_cycle_service
from backend.core.cycle_progression_service import (
    CycleProgressionService,
    ExerciseAdjustment,
)
from backend.core.gate_evaluator import resolve_metric
from domain.models import BlockType, ExerciseProgressionLogEntry, PeriodizationCycle

router = APIRouter(
    prefix="/programs",
    tags=["Periodization"],
)


# =============================================================================
# Request / Response Models
# =============================================================================


class InitializeCycleRequest(BaseModel):
    block_type: BlockType = BlockType.INTRODUCTORY


class AdjustmentItem(BaseModel):
    """A single exercise outcome of a weekly run."""
    exercise_id: str
    exercise_name: str
    action: str
    previous_sets: int
    previous_reps: int
    new_sets: int
    new_reps: int
    reason: str
    failed_gates: List[str] = Field(default_factory=list)
    avg_rpe: Optional[float] = None
    avg_pain: Optional[float] = None
    completion_rate: Optional[float] = None
    adherence: Optional[float] = None


class ProgressionRunResponse(BaseModel):
    adjustments: List[AdjustmentItem]
    holds: List[AdjustmentItem]
    current_week: int
    next_week: int
    block_type: BlockType
    block_number: int
    new_cycle_started: bool
    new_cycle: Optional[PeriodizationCycle] = None
    overlap_warning: Optional[str] = None


class WeightAdjustmentItem(BaseModel):
    exercise_id: str
    exercise_name: str
    previous_weight: float
    new_weight: float
    avg_rpe: float
    reason: str


class WeightAdjustmentResponse(BaseModel):
    adjustments: List[WeightAdjustmentItem]
    total: int


class WeeklyMetricsResponse(BaseModel):
    """Trailing 7-day metrics with neutral defaults for missing data."""
    exercise_id: str
    patient_id: str
    adherence: float
    avg_rpe: float
    avg_pain: float
    completion_rate: float
    avg_overall_feeling: float
    avg_general_pain: float
    avg_energy: float
    avg_sleep: float
    completion_count: int
    window_start: Optional[date] = None
    window_end: Optional[date] = None


class ProgressionHistoryResponse(BaseModel):
    entries: List[ExerciseProgressionLogEntry]
    total: int


def _adjustment_item(adjustment: ExerciseAdjustment) -> AdjustmentItem:
    metrics = adjustment.metrics
    return AdjustmentItem(
        exercise_id=adjustment.exercise_id,
        exercise_name=adjustment.exercise_name,
        action=adjustment.action.value,
        previous_sets=adjustment.previous_sets,
        previous_reps=adjustment.previous_reps,
        new_sets=adjustment.new_sets,
        new_reps=adjustment.new_reps,
        reason=adjustment.reason,
        failed_gates=adjustment.failed_gates,
        avg_rpe=metrics.avg_rpe if metrics else None,
        avg_pain=metrics.avg_exercise_pain if metrics else None,
        completion_rate=metrics.completion_rate if metrics else None,
        adherence=metrics.adherence if metrics else None,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/{program_id}/cycle", response_model=PeriodizationCycle, status_code=201)
def initialize_cycle(
    request: InitializeCycleRequest,
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> PeriodizationCycle:
    """Create the program's first periodization cycle."""
    return service.initialize_cycle(program_id, request.block_type)


@router.get("/{program_id}/cycle", response_model=Optional[PeriodizationCycle])
def get_current_cycle(
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> Optional[PeriodizationCycle]:
    return service.get_current_cycle(program_id)


@router.post("/{program_id}/progress", response_model=ProgressionRunResponse)
def progress_program(
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> ProgressionRunResponse:
    """
    Run the weekly cycle progression for every auto-adjust exercise.

    Returns 409 when another run already advanced the cycle.
    """
    run = service.progress_program(program_id)
    return ProgressionRunResponse(
        adjustments=[_adjustment_item(a) for a in run.adjustments],
        holds=[_adjustment_item(h) for h in run.holds],
        current_week=run.current_week,
        next_week=run.next_week,
        block_type=run.block_type,
        block_number=run.block_number,
        new_cycle_started=run.new_cycle_started,
        new_cycle=run.new_cycle,
        overlap_warning=run.overlap_warning,
    )


@router.post("/{program_id}/adjust-weight", response_model=WeightAdjustmentResponse)
def adjust_weight(
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> WeightAdjustmentResponse:
    """Adjust prescribed weights from the week's average RPE."""
    changes = service.adjust_weight_based_on_rpe(program_id)
    return WeightAdjustmentResponse(
        adjustments=[WeightAdjustmentItem(**vars(c)) for c in changes],
        total=len(changes),
    )


@router.get("/{program_id}/progression-history", response_model=ProgressionHistoryResponse)
def get_progression_history(
    program_id: str = Path(..., description="Program ID"),
    limit: int = Query(50, ge=1, le=500, description="Maximum entries to return"),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> ProgressionHistoryResponse:
    entries = service.get_progression_history(program_id, limit=limit)
    return ProgressionHistoryResponse(entries=entries, total=len(entries))


@router.get("/exercises/{exercise_id}/weekly-metrics", response_model=WeeklyMetricsResponse)
def get_weekly_metrics(
    exercise_id: str = Path(..., description="Program exercise ID"),
    patient_id: str = Query(..., description="Patient user ID"),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> WeeklyMetricsResponse:
    metrics = service.get_weekly_metrics(exercise_id, patient_id)
    return WeeklyMetricsResponse(
        exercise_id=exercise_id,
        patient_id=patient_id,
        adherence=resolve_metric(metrics, "adherence"),
        avg_rpe=resolve_metric(metrics, "avg_rpe"),
        avg_pain=resolve_metric(metrics, "avg_exercise_pain"),
        completion_rate=resolve_metric(metrics, "completion_rate"),
        avg_overall_feeling=resolve_metric(metrics, "avg_overall_feeling"),
        avg_general_pain=resolve_metric(metrics, "avg_general_pain"),
        avg_energy=resolve_metric(metrics, "avg_energy"),
        avg_sleep=resolve_metric(metrics, "avg_sleep"),
        completion_count=metrics.completion_count,
        window_start=metrics.window_start,
        window_end=metrics.window_end,
    )


@router.get("/progression-logs/patient/{patient_id}", response_model=ProgressionHistoryResponse)
def get_patient_progression_history(
    patient_id: str = Path(..., description="Patient user ID"),
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_current_user),
    service: CycleProgressionService = Depends(get_cycle_service),
) -> ProgressionHistoryResponse:
    """Progression log entries across all of a patient's programs."""
    entries = service.get_patient_progression_history(patient_id, limit=limit)
    return ProgressionHistoryResponse(entries=entries, total=len(entries))
