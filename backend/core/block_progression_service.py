"""
Block Progression Service.

Part of PT-113: Block schedule progression

Owns the block schedule state machine (active -> paused | completed):
- Block creation with a per-week prescription grid
- Weekly evaluation with idempotency and tenure guards
- Pain / performance holds and block completion flags
- Clinician manual override and single-cell edits
- Live prescription projection of the current week

Evaluation is pull-triggered (session start, external job, clinician) and
must be safe under overlapping triggers for the same program. The decision
is committed with the block's last_evaluated_at and current_week as an
optimistic-concurrency token, in one transaction with the week change,
prescription projection and flag insert.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional
import logging

from application.exceptions import (
    BlockNotFoundError,
    CellNotFoundError,
    InvalidBlockDurationError,
    InvalidOverrideActionError,
    InvalidWeekError,
    PersistenceError,
    ProgramNotFoundError,
    ProgressionConflictError,
    ValidationError,
)
from application.ports.block_repository import BlockRepository
from application.ports.cycle_repository import CycleRepository
from application.ports.prescription_repository import PrescriptionRepository
from backend.core.metrics_aggregator import MetricsAggregator, WindowMetrics
from backend.core.progression_policy import BlockSchedulePolicy, describe_overlap
from domain.models import (
    VALID_BLOCK_DURATIONS,
    BlockSchedule,
    BlockStatus,
    CellEditMode,
    CellUpdate,
    ClinicianFlag,
    EvaluationOutcome,
    ExerciseWeekCell,
    OverrideAction,
)

logger = logging.getLogger(__name__)

# Idempotency window between two automatic evaluations
EVALUATION_COOLDOWN = timedelta(hours=24)
# Minimum days a block must run before its first evaluation
MINIMUM_TENURE_DAYS = 7


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# Response DTOs
# =============================================================================


@dataclass
class EvaluationResult:
    """Outcome of evaluate_progression."""
    action: EvaluationOutcome
    block_id: Optional[str] = None
    current_week: Optional[int] = None
    new_week: Optional[int] = None
    final_week: Optional[int] = None
    hours_ago: Optional[int] = None
    days_since_start: Optional[int] = None
    reason: Optional[str] = None
    metrics: Optional[WindowMetrics] = None
    overlap_warning: Optional[str] = None


@dataclass
class BlockStatusView:
    """An active block with its full week grid."""
    block: BlockSchedule
    weeks: List[ExerciseWeekCell] = field(default_factory=list)
    overlap_warning: Optional[str] = None


@dataclass
class PrescriptionLine:
    """Live values of one exercise for the current week."""
    exercise_id: str
    exercise_name: str
    exercise_order: int
    sets: int
    reps: int
    exercise_category: Optional[str] = None
    prescribed_weight: Optional[float] = None
    rpe_target: Optional[float] = None
    block_weight: Optional[float] = None
    block_notes: Optional[str] = None


@dataclass
class CurrentPrescription:
    """Current week's prescription for every exercise of a program."""
    has_block: bool
    exercises: List[PrescriptionLine]
    current_week: Optional[int] = None
    block_duration: Optional[int] = None
    status: Optional[BlockStatus] = None


@dataclass
class OverrideResult:
    """Outcome of a clinician manual override."""
    action: OverrideAction
    previous_week: int
    new_week: int

    @property
    def week_changed(self) -> bool:
        return self.previous_week != self.new_week


@dataclass
class CellOverrideResult:
    """Outcome of a single-cell edit."""
    cell: ExerciseWeekCell
    mode: CellEditMode
    pushed_live: bool = False


# =============================================================================
# Block Progression Service
# =============================================================================


class BlockProgressionService:
    """
    Service for block schedule creation, evaluation and overrides.
    """

    def __init__(
        self,
        block_repo: BlockRepository,
        prescription_repo: PrescriptionRepository,
        aggregator: MetricsAggregator,
        *,
        cycle_repo: Optional[CycleRepository] = None,
        cell_edit_mode: CellEditMode = CellEditMode.EDIT_PLAN_ONLY,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the block progression service.

        Args:
            block_repo: Block schedule persistence
            prescription_repo: Program and exercise reads
            aggregator: Weekly metrics source
            cycle_repo: Used only to detect a concurrently active cycle
            cell_edit_mode: Default behaviour of override_cell
            clock: Returns the current aware datetime (injected in tests)
        """
        self._block_repo = block_repo
        self._prescription_repo = prescription_repo
        self._aggregator = aggregator
        self._cycle_repo = cycle_repo
        self._cell_edit_mode = CellEditMode(cell_edit_mode)
        self._clock = clock or utc_now
        self._policy = BlockSchedulePolicy()

    # -------------------------------------------------------------------------
    # Creation and reads
    # -------------------------------------------------------------------------

    def create_block(
        self,
        program_id: str,
        block_duration: int,
        start_date: Optional[date],
        cells: List[ExerciseWeekCell],
    ) -> BlockSchedule:
        """
        Create a new active block, superseding any active one.

        Cells with the same (exercise, week) are upserted: the last one wins.
        Week-1 cells become the live prescription.

        Raises:
            InvalidBlockDurationError: Duration not in 4/6/8
            ValidationError: Missing start date or cell outside the program
            InvalidWeekError: Cell week outside [1, duration]
            ProgramNotFoundError: Program does not exist
        """
        if block_duration not in VALID_BLOCK_DURATIONS:
            raise InvalidBlockDurationError(block_duration)
        if start_date is None:
            raise ValidationError("startDate is required")

        program = self._prescription_repo.get_program(program_id)
        if program is None:
            raise ProgramNotFoundError(program_id)

        exercise_ids = {ex.id for ex in self._prescription_repo.list_exercises(program_id)}
        grid: Dict[tuple, ExerciseWeekCell] = {}
        for cell in cells:
            if not 1 <= cell.week_number <= block_duration:
                raise InvalidWeekError(cell.week_number, block_duration)
            if cell.program_exercise_id not in exercise_ids:
                raise ValidationError(
                    f"Exercise {cell.program_exercise_id} is not part of program {program_id}"
                )
            grid[(cell.program_exercise_id, cell.week_number)] = cell

        block = self._block_repo.create_block_atomic(
            program_id,
            block_duration,
            start_date,
            list(grid.values()),
        )
        logger.info(
            f"Created {block_duration}-week block {block.id} for program {program_id} "
            f"with {len(grid)} cells"
        )
        return block

    def get_block_status(self, program_id: str) -> Optional[BlockStatusView]:
        """
        Get the active block and its full grid.

        Returns:
            BlockStatusView, or None when the program has no active block
        """
        block = self._block_repo.get_active_block(program_id)
        if block is None:
            return None
        return BlockStatusView(
            block=block,
            weeks=self._block_repo.get_cells(block.id),
            overlap_warning=self._overlap_warning(block),
        )

    def get_current_prescription(self, program_id: str) -> CurrentPrescription:
        """
        Get the live per-exercise values for the current week.

        Falls back to the exercises' own values when no block exists or a
        cell is missing for an exercise.
        """
        if self._prescription_repo.get_program(program_id) is None:
            raise ProgramNotFoundError(program_id)

        exercises = self._prescription_repo.list_exercises(program_id)
        block = self._block_repo.get_active_block(program_id)

        if block is None:
            return CurrentPrescription(
                has_block=False,
                exercises=[self._line(ex, None) for ex in exercises],
            )

        cells = self._block_repo.get_cells(block.id, week_number=block.current_week)
        by_exercise = {c.program_exercise_id: c for c in cells}
        return CurrentPrescription(
            has_block=True,
            current_week=block.current_week,
            block_duration=block.block_duration,
            status=block.status,
            exercises=[self._line(ex, by_exercise.get(ex.id)) for ex in exercises],
        )

    @staticmethod
    def _line(exercise, cell: Optional[ExerciseWeekCell]) -> PrescriptionLine:
        return PrescriptionLine(
            exercise_id=exercise.id,
            exercise_name=exercise.exercise_name,
            exercise_order=exercise.exercise_order,
            exercise_category=exercise.exercise_category,
            prescribed_weight=exercise.prescribed_weight,
            sets=cell.sets if cell else exercise.sets,
            reps=cell.reps if cell else exercise.reps,
            rpe_target=cell.rpe_target if cell else None,
            block_weight=cell.weight if cell else None,
            block_notes=cell.notes if cell else None,
        )

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_progression(self, program_id: str) -> EvaluationResult:
        """
        Evaluate weekly progression for a program's active block.

        Guards (no state change): no_block, too_soon (evaluated within the
        last 24h), too_early (block younger than 7 days), no_program.
        Otherwise the decision is, in priority order: hold_pain,
        hold_performance, advanced, block_complete.

        Raises:
            PersistenceError: The commit failed and was rolled back
        """
        block = self._block_repo.get_active_block(program_id)
        if block is None:
            logger.debug(f"No active block for program {program_id}")
            return EvaluationResult(action=EvaluationOutcome.NO_BLOCK)

        now = self._clock()
        if block.last_evaluated_at is not None:
            elapsed = now - _as_utc(block.last_evaluated_at)
            if elapsed < EVALUATION_COOLDOWN:
                return EvaluationResult(
                    action=EvaluationOutcome.TOO_SOON,
                    block_id=block.id,
                    current_week=block.current_week,
                    hours_ago=round(elapsed.total_seconds() / 3600),
                )

        today = now.date()
        days_since_start = (today - block.start_date).days
        if days_since_start < MINIMUM_TENURE_DAYS:
            return EvaluationResult(
                action=EvaluationOutcome.TOO_EARLY,
                block_id=block.id,
                current_week=block.current_week,
                days_since_start=days_since_start,
            )

        program = self._prescription_repo.get_program(program_id)
        if program is None:
            logger.warning(f"Active block {block.id} references missing program {program_id}")
            return EvaluationResult(action=EvaluationOutcome.NO_PROGRAM, block_id=block.id)

        metrics = self._aggregator.program_metrics(program, today)
        transition = self._policy.decide(metrics, block)

        flag = None
        if transition.flag_type is not None:
            flag = ClinicianFlag(
                program_id=program_id,
                patient_id=program.patient_id,
                clinician_id=program.clinician_id,
                flag_type=transition.flag_type,
                flag_reason=transition.reason,
                flag_date=today,
                resolved=transition.flag_resolved,
                resolved_at=now if transition.flag_resolved else None,
            )

        try:
            committed = self._block_repo.commit_evaluation(
                block.id,
                expected_last_evaluated_at=block.last_evaluated_at,
                expected_week=block.current_week,
                evaluated_at=now,
                new_week=transition.next_week,
                new_status=transition.status,
                flag=flag,
            )
        except PersistenceError:
            logger.exception(f"Evaluation commit failed for block {block.id}")
            raise

        if committed is None:
            # A concurrent trigger stamped the block first
            logger.warning(f"Concurrent evaluation detected for block {block.id}; skipping")
            return EvaluationResult(
                action=EvaluationOutcome.TOO_SOON,
                block_id=block.id,
                current_week=block.current_week,
                hours_ago=0,
            )

        action = EvaluationOutcome(transition.action)
        logger.info(f"Block {block.id} (program {program_id}): {action.value} - {transition.reason}")

        return EvaluationResult(
            action=action,
            block_id=block.id,
            current_week=committed.current_week,
            new_week=transition.next_week,
            final_week=block.current_week if action == EvaluationOutcome.BLOCK_COMPLETE else None,
            reason=transition.reason,
            metrics=metrics,
            overlap_warning=self._overlap_warning(block),
        )

    # -------------------------------------------------------------------------
    # Clinician overrides
    # -------------------------------------------------------------------------

    def manual_override(self, program_id: str, action) -> OverrideResult:
        """
        Advance, hold or regress the active block's week.

        The new week is clamped to [1, duration]. The week's cells are
        re-applied to the live prescription only if the week changed.

        Raises:
            InvalidOverrideActionError: Unknown action
            BlockNotFoundError: No active block
            ProgressionConflictError: The week changed concurrently
        """
        try:
            override = OverrideAction(action)
        except ValueError:
            raise InvalidOverrideActionError(action)

        block = self._block_repo.get_active_block(program_id)
        if block is None:
            raise BlockNotFoundError(program_id=program_id)

        new_week = block.current_week
        if override == OverrideAction.ADVANCE:
            new_week = min(block.current_week + 1, block.block_duration)
        elif override == OverrideAction.REGRESS:
            new_week = max(block.current_week - 1, 1)

        updated = self._block_repo.set_week_atomic(
            block.id,
            expected_week=block.current_week,
            new_week=new_week,
            evaluated_at=self._clock(),
            apply_prescriptions=new_week != block.current_week,
        )
        if updated is None:
            raise ProgressionConflictError(
                f"Block {block.id} week changed during override; reload and retry"
            )

        logger.info(
            f"Manual override '{override.value}' on block {block.id}: "
            f"week {block.current_week} -> {new_week}"
        )
        return OverrideResult(action=override, previous_week=block.current_week, new_week=new_week)

    def override_cell(
        self,
        block_id: str,
        exercise_id: str,
        week_number: int,
        update: CellUpdate,
        actor: Optional[str],
        *,
        mode: Optional[CellEditMode] = None,
    ) -> CellOverrideResult:
        """
        Edit one grid cell with override attribution.

        With EDIT_PLAN_ONLY only the plan changes. With EDIT_PLAN_AND_PUSH
        the cell is also pushed live when it is the active block's current
        week. That check runs inside the repository transaction, so a week
        advanced concurrently is never overwritten by the old week's cell.

        Raises:
            BlockNotFoundError: Block does not exist
            InvalidWeekError: Week outside the block
            CellNotFoundError: No such cell in the grid
        """
        edit_mode = CellEditMode(mode) if mode is not None else self._cell_edit_mode

        block = self._block_repo.get_block(block_id)
        if block is None:
            raise BlockNotFoundError(block_id=block_id)
        if not 1 <= week_number <= block.block_duration:
            raise InvalidWeekError(week_number, block.block_duration)

        edit = self._block_repo.update_cell(
            block_id,
            exercise_id,
            week_number,
            update,
            overridden_by=actor,
            overridden_at=self._clock(),
            push_live=edit_mode == CellEditMode.EDIT_PLAN_AND_PUSH,
        )
        if edit is None:
            raise CellNotFoundError(block_id, exercise_id, week_number)

        logger.info(
            f"Cell override on block {block_id} exercise {exercise_id} week {week_number} "
            f"by {actor or 'unknown'} (mode={edit_mode.value}, pushed_live={edit.pushed_live})"
        )
        return CellOverrideResult(cell=edit.cell, mode=edit_mode, pushed_live=edit.pushed_live)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _overlap_warning(self, block: BlockSchedule) -> Optional[str]:
        if self._cycle_repo is None:
            return None
        warning = describe_overlap(block, self._cycle_repo.get_current_cycle(block.program_id))
        if warning:
            logger.warning(warning)
        return warning
