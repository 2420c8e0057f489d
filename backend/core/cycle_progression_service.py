"""
Cycle Progression Service.

Part of PT-114: Adaptive periodization cycle

Gate-driven weekly progression of auto-adjust exercises:
- Introductory cycle (4 weeks) rolls into standard cycles (6 weeks)
- Each new standard cycle compounds intensity by 1.1
- Sets/reps follow the deterministic progression curve
- Unchanged prescriptions are neither written nor logged
- Optional RPE-responsive weight adjustment on standard cycles

One weekly run (prescription updates, log entries and the cycle advance)
is committed as a single transaction guarded by the cycle id and week.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Callable, List, Optional
import logging
import math

from application.exceptions import (
    CycleNotFoundError,
    ExerciseNotFoundError,
    PersistenceError,
    ProgramNotFoundError,
    ProgressionConflictError,
)
from application.ports.block_repository import BlockRepository
from application.ports.cycle_repository import CycleAdvance, CycleRepository, NewCycle
from application.ports.prescription_repository import (
    PrescriptionRepository,
    PrescriptionUpdate,
    WeightUpdate,
)
from backend.core.metrics_aggregator import MetricsAggregator, WindowMetrics
from backend.core.progression_policy import (
    AdjustmentAction,
    CycleExerciseState,
    CyclePolicy,
    describe_overlap,
)
from domain.models import (
    INTENSITY_STEP,
    INTRODUCTORY_TOTAL_WEEKS,
    STANDARD_TOTAL_WEEKS,
    BlockType,
    ExerciseProgressionLogEntry,
    PeriodizationCycle,
)

logger = logging.getLogger(__name__)

# RPE-responsive weight adjustment (standard cycles only)
RPE_LOW_CEILING = 6  # 0 < avg RPE <= this: increase
RPE_HIGH_FLOOR = 9  # avg RPE >= this: decrease
WEIGHT_INCREASE = 0.05
WEIGHT_DECREASE = 0.05


def round_to_half(value: float) -> float:
    """Round to the nearest 0.5, halves rounding up."""
    return math.floor(value * 2 + 0.5) / 2


@dataclass
class ExerciseAdjustment:
    """Per-exercise result of a weekly cycle run."""
    exercise_id: str
    exercise_name: str
    action: AdjustmentAction
    previous_sets: int
    previous_reps: int
    new_sets: int
    new_reps: int
    reason: str
    failed_gates: List[str] = field(default_factory=list)
    metrics: Optional[WindowMetrics] = None

    @property
    def changed(self) -> bool:
        return (self.previous_sets, self.previous_reps) != (self.new_sets, self.new_reps)


@dataclass
class ProgressionRun:
    """
    Result of progress_program.

    block_type and block_number describe the cycle that was evaluated.
    new_cycle is the cycle that replaced it on rollover.
    """
    adjustments: List[ExerciseAdjustment]
    holds: List[ExerciseAdjustment]
    current_week: int
    next_week: int
    block_type: BlockType
    block_number: int
    new_cycle_started: bool = False
    new_cycle: Optional[PeriodizationCycle] = None
    overlap_warning: Optional[str] = None


@dataclass
class WeightAdjustment:
    """A prescribed-weight change driven by average RPE."""
    exercise_id: str
    exercise_name: str
    previous_weight: float
    new_weight: float
    avg_rpe: float
    reason: str


class CycleProgressionService:
    """
    Service for the adaptive periodization cycle.
    """

    def __init__(
        self,
        cycle_repo: CycleRepository,
        prescription_repo: PrescriptionRepository,
        aggregator: MetricsAggregator,
        *,
        block_repo: Optional[BlockRepository] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the cycle progression service.

        Args:
            cycle_repo: Cycle and progression log persistence
            prescription_repo: Program and exercise reads
            aggregator: Weekly metrics source
            block_repo: Used only to detect a concurrently active block
            clock: Returns the current aware datetime (injected in tests)
        """
        self._cycle_repo = cycle_repo
        self._prescription_repo = prescription_repo
        self._aggregator = aggregator
        self._block_repo = block_repo
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._policy = CyclePolicy()

    def _today(self) -> date:
        return self._clock().date()

    def _require_program(self, program_id: str):
        program = self._prescription_repo.get_program(program_id)
        if program is None:
            raise ProgramNotFoundError(program_id)
        return program

    # -------------------------------------------------------------------------
    # Cycle lifecycle
    # -------------------------------------------------------------------------

    def initialize_cycle(
        self,
        program_id: str,
        block_type: BlockType = BlockType.INTRODUCTORY,
    ) -> PeriodizationCycle:
        """
        Create the first cycle row for a program.

        Introductory: 4 weeks, block 0. Standard: 6 weeks, block 1.
        Both start at week 1 with intensity 1.0.
        """
        block_type = BlockType(block_type)
        self._require_program(program_id)

        if block_type == BlockType.INTRODUCTORY:
            new_cycle = NewCycle(
                block_type=block_type,
                block_number=0,
                block_start_date=self._today(),
                total_weeks=INTRODUCTORY_TOTAL_WEEKS,
            )
        else:
            new_cycle = NewCycle(
                block_type=block_type,
                block_number=1,
                block_start_date=self._today(),
                total_weeks=STANDARD_TOTAL_WEEKS,
            )

        cycle = self._cycle_repo.create_cycle(program_id, new_cycle)
        logger.info(
            f"Initialized {block_type.value} cycle {cycle.id} for program {program_id}"
        )
        return cycle

    def get_current_cycle(self, program_id: str) -> Optional[PeriodizationCycle]:
        return self._cycle_repo.get_current_cycle(program_id)

    def _next_cycle(self, cycle: PeriodizationCycle) -> NewCycle:
        if cycle.block_type == BlockType.INTRODUCTORY:
            return NewCycle(
                block_type=BlockType.STANDARD,
                block_number=1,
                block_start_date=self._today(),
                total_weeks=STANDARD_TOTAL_WEEKS,
                intensity_multiplier=1.0,
            )
        return NewCycle(
            block_type=BlockType.STANDARD,
            block_number=cycle.block_number + 1,
            block_start_date=self._today(),
            total_weeks=STANDARD_TOTAL_WEEKS,
            intensity_multiplier=cycle.intensity_multiplier * INTENSITY_STEP,
        )

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def get_weekly_metrics(self, exercise_id: str, patient_id: str) -> WindowMetrics:
        """
        Get the trailing 7-day metrics for one exercise of a patient.

        Raises:
            ExerciseNotFoundError: Exercise does not exist
            ProgramNotFoundError: Exercise's program does not exist
        """
        exercise = self._prescription_repo.get_exercise(exercise_id)
        if exercise is None:
            raise ExerciseNotFoundError(exercise_id)
        program = self._require_program(exercise.program_id)
        program = replace(program, patient_id=patient_id)
        return self._aggregator.exercise_metrics(exercise, program, self._today())

    # -------------------------------------------------------------------------
    # Weekly progression
    # -------------------------------------------------------------------------

    def progress_program(self, program_id: str) -> ProgressionRun:
        """
        Run the weekly progression for every auto-adjust exercise.

        Exercises whose gates fail keep their sets/reps and are reported in
        holds. Changed prescriptions are written and logged; unchanged ones
        are not. The cycle then advances a week or rolls into a new cycle.

        Raises:
            ProgramNotFoundError: Program does not exist
            CycleNotFoundError: Program has no cycle
            ProgressionConflictError: Another run advanced the cycle first
            PersistenceError: The commit failed and was rolled back
        """
        program = self._require_program(program_id)
        cycle = self._cycle_repo.get_current_cycle(program_id)
        if cycle is None:
            raise CycleNotFoundError(program_id)

        today = self._today()
        now = self._clock()
        exercises = self._prescription_repo.list_exercises(program_id, auto_adjust_only=True)

        adjustments: List[ExerciseAdjustment] = []
        holds: List[ExerciseAdjustment] = []
        updates: List[PrescriptionUpdate] = []
        log_entries: List[ExerciseProgressionLogEntry] = []

        for exercise in exercises:
            metrics = self._aggregator.exercise_metrics(exercise, program, today)
            transition = self._policy.decide(metrics, CycleExerciseState(cycle, exercise))

            adjustment = ExerciseAdjustment(
                exercise_id=exercise.id,
                exercise_name=exercise.exercise_name,
                action=AdjustmentAction(transition.action),
                previous_sets=exercise.sets,
                previous_reps=exercise.reps,
                new_sets=transition.sets,
                new_reps=transition.reps,
                reason=transition.reason,
                failed_gates=list(transition.failed_gates),
                metrics=metrics,
            )

            if adjustment.action == AdjustmentAction.HOLD:
                logger.debug(f"Holding exercise {exercise.id}: {transition.reason}")
                holds.append(adjustment)
                continue

            if not adjustment.changed:
                continue

            updates.append(
                PrescriptionUpdate(
                    exercise_id=exercise.id,
                    sets=adjustment.new_sets,
                    reps=adjustment.new_reps,
                )
            )
            log_entries.append(
                ExerciseProgressionLogEntry(
                    exercise_id=exercise.id,
                    program_id=program_id,
                    previous_sets=exercise.sets,
                    previous_reps=exercise.reps,
                    new_sets=adjustment.new_sets,
                    new_reps=adjustment.new_reps,
                    adjustment_reason=adjustment.reason,
                    avg_rpe=metrics.avg_rpe,
                    avg_pain=metrics.avg_exercise_pain,
                    completion_rate=metrics.completion_rate,
                    week_in_cycle=cycle.current_week,
                    adjusted_at=now,
                )
            )
            adjustments.append(adjustment)

        rolls_over = cycle.is_last_week
        if rolls_over:
            advance = CycleAdvance(new_cycle=self._next_cycle(cycle))
        else:
            advance = CycleAdvance(next_week=cycle.current_week + 1)

        try:
            committed = self._cycle_repo.commit_progression(
                cycle.id,
                expected_week=cycle.current_week,
                updates=updates,
                log_entries=log_entries,
                advance=advance,
            )
        except PersistenceError:
            logger.exception(f"Progression commit failed for program {program_id}")
            raise

        if committed is None:
            logger.warning(f"Concurrent progression detected for cycle {cycle.id}")
            raise ProgressionConflictError(
                f"Cycle {cycle.id} already advanced past week {cycle.current_week}"
            )

        logger.info(
            f"Program {program_id} cycle {cycle.id}: {len(adjustments)} adjusted, "
            f"{len(holds)} held, week {cycle.current_week} -> "
            f"{'new cycle' if rolls_over else cycle.current_week + 1}"
        )

        return ProgressionRun(
            adjustments=adjustments,
            holds=holds,
            current_week=cycle.current_week,
            next_week=1 if rolls_over else cycle.current_week + 1,
            block_type=cycle.block_type,
            block_number=cycle.block_number,
            new_cycle_started=rolls_over,
            new_cycle=committed if rolls_over else None,
            overlap_warning=self._overlap_warning(program_id, cycle),
        )

    def adjust_weight_based_on_rpe(self, program_id: str) -> List[WeightAdjustment]:
        """
        Nudge prescribed weights from the week's average RPE.

        Applies only on standard cycles of programs that track RPE, and only
        to auto-adjust exercises with a positive prescribed weight:
        avg RPE in (0, 6] raises weight 5%, avg RPE >= 9 lowers it 5%.
        New weights are rounded to the nearest 0.5.
        """
        program = self._require_program(program_id)
        if not program.track_rpe:
            return []

        cycle = self._cycle_repo.get_current_cycle(program_id)
        if cycle is None or cycle.block_type != BlockType.STANDARD:
            return []

        today = self._today()
        changes: List[WeightAdjustment] = []
        for exercise in self._prescription_repo.list_exercises(program_id, auto_adjust_only=True):
            weight = exercise.prescribed_weight
            if not weight or weight <= 0:
                continue

            avg_rpe = self._aggregator.exercise_metrics(exercise, program, today).avg_rpe
            if avg_rpe is None:
                continue

            if 0 < avg_rpe <= RPE_LOW_CEILING:
                new_weight = round_to_half(weight * (1 + WEIGHT_INCREASE))
                reason = f"Low RPE ({avg_rpe:.1f}): increasing weight"
            elif avg_rpe >= RPE_HIGH_FLOOR:
                new_weight = round_to_half(weight * (1 - WEIGHT_DECREASE))
                reason = f"High RPE ({avg_rpe:.1f}): decreasing weight"
            else:
                continue

            if new_weight == weight:
                continue
            changes.append(
                WeightAdjustment(
                    exercise_id=exercise.id,
                    exercise_name=exercise.exercise_name,
                    previous_weight=weight,
                    new_weight=new_weight,
                    avg_rpe=avg_rpe,
                    reason=reason,
                )
            )

        if changes:
            self._cycle_repo.apply_weight_updates(
                [WeightUpdate(exercise_id=c.exercise_id, prescribed_weight=c.new_weight) for c in changes]
            )
            logger.info(f"Adjusted weight for {len(changes)} exercises in program {program_id}")
        return changes

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_progression_history(
        self,
        program_id: str,
        limit: int = 50,
    ) -> List[ExerciseProgressionLogEntry]:
        return self._cycle_repo.get_progression_history(program_id, limit=limit)

    def get_patient_progression_history(
        self,
        patient_id: str,
        limit: int = 100,
    ) -> List[ExerciseProgressionLogEntry]:
        """Progression log entries across all of a patient's programs."""
        programs = self._prescription_repo.list_programs_for_patient(patient_id)
        if not programs:
            return []
        return self._cycle_repo.get_progression_history_for_programs(
            [p.id for p in programs], limit=limit
        )

    def _overlap_warning(self, program_id: str, cycle: PeriodizationCycle) -> Optional[str]:
        if self._block_repo is None:
            return None
        warning = describe_overlap(self._block_repo.get_active_block(program_id), cycle)
        if warning:
            logger.warning(warning)
        return warning
