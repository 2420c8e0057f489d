"""
Block schedule router.

Part of PT-113: Block schedule progression

This router provides endpoints for:
- Creating a block with its per-week prescription grid
- Reading the active block and the current week's prescription
- Weekly progression evaluation (idempotent; safe to call repeatedly)
- Clinician manual override and single-cell edits

Engine exceptions are mapped to HTTP status codes by the handlers
registered in backend.main.
"""
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from api.deps import get_block_service, get_current_user
from backend.core.block_progression_service import BlockProgressionService
from domain.models import (
    BlockSchedule,
    BlockStatus,
    CellEditMode,
    CellUpdate,
    EvaluationOutcome,
    ExerciseWeekCell,
    OverrideAction,
)

router = APIRouter(
    prefix="/blocks",
    tags=["Blocks"],
)


# =============================================================================
# Request Models
# =============================================================================


class CellInput(BaseModel):
    """One planned cell of the grid."""
    program_exercise_id: str
    week_number: int = Field(..., ge=1, le=8)
    sets: int = Field(..., ge=0)
    reps: int = Field(..., ge=0)
    rpe_target: Optional[float] = Field(default=None, ge=1, le=10)
    weight: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class CreateBlockRequest(BaseModel):
    """Request body for creating a block."""
    block_duration: int = Field(..., description="4, 6 or 8 weeks")
    start_date: Optional[date] = None
    cells: List[CellInput] = Field(default_factory=list)


class OverrideRequest(BaseModel):
    # Plain string so unknown actions reach the engine and return 400
    action: str = Field(..., description="advance, hold or regress")


class CellOverrideRequest(BaseModel):
    """Request body for editing one cell."""
    exercise_id: str
    week_number: int = Field(..., ge=1, le=8)
    sets: int = Field(..., ge=0)
    reps: int = Field(..., ge=0)
    rpe_target: Optional[float] = Field(default=None, ge=1, le=10)
    weight: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    mode: Optional[CellEditMode] = None


# =============================================================================
# Response Models
# =============================================================================


class BlockStatusResponse(BaseModel):
    """Active block with its full grid; block is null when none exists."""
    block: Optional[BlockSchedule] = None
    weeks: List[ExerciseWeekCell] = Field(default_factory=list)
    overlap_warning: Optional[str] = None


class PrescriptionItem(BaseModel):
    exercise_id: str
    exercise_name: str
    exercise_order: int
    exercise_category: Optional[str] = None
    sets: int
    reps: int
    prescribed_weight: Optional[float] = None
    rpe_target: Optional[float] = None
    block_weight: Optional[float] = None
    block_notes: Optional[str] = None


class PrescriptionResponse(BaseModel):
    has_block: bool
    current_week: Optional[int] = None
    block_duration: Optional[int] = None
    status: Optional[BlockStatus] = None
    exercises: List[PrescriptionItem]


class EvaluationResponse(BaseModel):
    """Outcome of an evaluation; metrics are present only when computed."""
    action: EvaluationOutcome
    block_id: Optional[str] = None
    current_week: Optional[int] = None
    new_week: Optional[int] = None
    final_week: Optional[int] = None
    hours_ago: Optional[int] = None
    days_since_start: Optional[int] = None
    reason: Optional[str] = None
    metrics: Optional[Dict] = None
    overlap_warning: Optional[str] = None


class OverrideResponse(BaseModel):
    action: OverrideAction
    previous_week: int
    new_week: int
    week_changed: bool


class CellOverrideResponse(BaseModel):
    cell: ExerciseWeekCell
    mode: CellEditMode
    pushed_live: bool


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/{program_id}", response_model=BlockSchedule, status_code=201)
def create_block(
    request: CreateBlockRequest,
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: BlockProgressionService = Depends(get_block_service),
) -> BlockSchedule:
    """
    Create a new active block for a program.

    Any currently active block is paused. Week-1 cells become the live
    prescription immediately.
    """
    cells = [ExerciseWeekCell(**cell.model_dump()) for cell in request.cells]
    return service.create_block(
        program_id,
        request.block_duration,
        request.start_date,
        cells,
    )


@router.get("/{program_id}", response_model=BlockStatusResponse)
def get_block_status(
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: BlockProgressionService = Depends(get_block_service),
) -> BlockStatusResponse:
    """Get the program's active block and its full week grid."""
    view = service.get_block_status(program_id)
    if view is None:
        return BlockStatusResponse()
    return BlockStatusResponse(
        block=view.block,
        weeks=view.weeks,
        overlap_warning=view.overlap_warning,
    )


@router.get("/{program_id}/prescription", response_model=PrescriptionResponse)
def get_current_prescription(
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: BlockProgressionService = Depends(get_block_service),
) -> PrescriptionResponse:
    """Get live sets/reps for the current week of every exercise."""
    result = service.get_current_prescription(program_id)
    return PrescriptionResponse(
        has_block=result.has_block,
        current_week=result.current_week,
        block_duration=result.block_duration,
        status=result.status,
        exercises=[PrescriptionItem(**vars(line)) for line in result.exercises],
    )


@router.patch("/{program_id}/evaluate", response_model=EvaluationResponse)
def evaluate_progression(
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: BlockProgressionService = Depends(get_block_service),
) -> EvaluationResponse:
    """
    Evaluate weekly progression for the program's active block.

    Guard outcomes (no_block, no_program, too_soon, too_early) are returned
    with 200 and leave all state untouched.
    """
    result = service.evaluate_progression(program_id)
    return EvaluationResponse(
        action=result.action,
        block_id=result.block_id,
        current_week=result.current_week,
        new_week=result.new_week,
        final_week=result.final_week,
        hours_ago=result.hours_ago,
        days_since_start=result.days_since_start,
        reason=result.reason,
        metrics=result.metrics.to_dict() if result.metrics else None,
        overlap_warning=result.overlap_warning,
    )


@router.patch("/{program_id}/override", response_model=OverrideResponse)
def manual_override(
    request: OverrideRequest,
    program_id: str = Path(..., description="Program ID"),
    user_id: str = Depends(get_current_user),
    service: BlockProgressionService = Depends(get_block_service),
) -> OverrideResponse:
    """Advance, hold or regress the active block's current week."""
    result = service.manual_override(program_id, request.action)
    return OverrideResponse(
        action=result.action,
        previous_week=result.previous_week,
        new_week=result.new_week,
        week_changed=result.week_changed,
    )


@router.patch("/{block_id}/cell", response_model=CellOverrideResponse)
def override_cell(
    request: CellOverrideRequest,
    block_id: str = Path(..., description="Block schedule ID"),
    user_id: str = Depends(get_current_user),
    service: BlockProgressionService = Depends(get_block_service),
) -> CellOverrideResponse:
    """
    Edit one cell of a block's grid.

    The caller is recorded as overridden_by. With mode edit_plan_and_push
    an edit to the active block's current week also updates the live
    prescription.
    """
    update = CellUpdate(
        sets=request.sets,
        reps=request.reps,
        rpe_target=request.rpe_target,
        weight=request.weight,
        notes=request.notes,
    )
    result = service.override_cell(
        block_id,
        request.exercise_id,
        request.week_number,
        update,
        user_id,
        mode=request.mode,
    )
    return CellOverrideResponse(
        cell=result.cell,
        mode=result.mode,
        pushed_live=result.pushed_live,
    )
