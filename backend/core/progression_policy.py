"""
Progression policies.

Part of PT-117: Shared progression policy interface

Both periodization systems answer the same question: given a week of
metrics and the current state, what transition should happen? Each system
is a concrete ProgressionPolicy so callers and tests can treat them the
same way. The two systems are structurally independent (different tables,
triggers and thresholds) and are not merged here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Tuple

from application.ports.prescription_repository import PrescribedExercise
from backend.core.gate_evaluator import (
    GateVerdict,
    PERFORMANCE_HOLD_COMPLETION,
    evaluate_gates,
    is_pain_flare,
    is_performance_hold,
    resolve_metric,
)
from backend.core.metrics_aggregator import WindowMetrics
from backend.core.progression_curve import DELOAD, calculate_sets_reps
from domain.models import (
    BlockSchedule,
    BlockStatus,
    BlockType,
    EvaluationOutcome,
    FlagType,
    PeriodizationCycle,
)


class AdjustmentAction(str, Enum):
    """Per-exercise outcome of a cycle run."""

    PROGRESS = "progress"
    DELOAD = "deload"
    HOLD = "hold"


@dataclass(frozen=True)
class Transition:
    """
    A decided state change.

    Block transitions use next_week/status/flag_*; cycle transitions use
    sets/reps. Fields that do not apply stay None.
    """
    action: str
    reason: str
    next_week: Optional[int] = None
    status: Optional[BlockStatus] = None
    flag_type: Optional[FlagType] = None
    flag_resolved: bool = False
    sets: Optional[int] = None
    reps: Optional[int] = None
    failed_gates: Tuple[str, ...] = ()
    verdict: Optional[GateVerdict] = field(default=None, compare=False)


class ProgressionPolicy(Protocol):
    """Maps metrics + state to a transition. Implementations are pure."""

    def decide(self, metrics: WindowMetrics, state) -> Transition:
        ...


# =============================================================================
# Block schedule policy
# =============================================================================


class BlockSchedulePolicy:
    """
    Weekly decision for a clinician-configured block.

    Priority order: pain flare, performance hold, then advance or complete.
    """

    def decide(self, metrics: WindowMetrics, state: BlockSchedule) -> Transition:
        general_pain = resolve_metric(metrics, "avg_general_pain")
        exercise_pain = resolve_metric(metrics, "avg_exercise_pain")
        completion_rate = resolve_metric(metrics, "completion_rate")

        if is_pain_flare(metrics):
            return Transition(
                action=EvaluationOutcome.HOLD_PAIN.value,
                reason=(
                    f"Pain flare detected: avg general pain {general_pain:.1f}/10, "
                    f"avg exercise pain {exercise_pain:.1f}/10. Week held."
                ),
                flag_type=FlagType.PAIN_FLARE,
            )

        if is_performance_hold(metrics):
            return Transition(
                action=EvaluationOutcome.HOLD_PERFORMANCE.value,
                reason=(
                    f"Performance hold: completion rate {round(completion_rate * 100)}% "
                    f"(threshold {round(PERFORMANCE_HOLD_COMPLETION * 100)}%). Week held."
                ),
                flag_type=FlagType.PERFORMANCE_HOLD,
                flag_resolved=True,  # Informational; clinician need not act
            )

        if state.current_week < state.block_duration:
            next_week = state.current_week + 1
            return Transition(
                action=EvaluationOutcome.ADVANCED.value,
                reason=f"Week {state.current_week} → Week {next_week}",
                next_week=next_week,
            )

        return Transition(
            action=EvaluationOutcome.BLOCK_COMPLETE.value,
            reason=(
                f"Block complete: patient has finished all {state.block_duration} weeks. "
                "Please review and assign new block."
            ),
            status=BlockStatus.COMPLETED,
            flag_type=FlagType.BLOCK_COMPLETE,
        )


# =============================================================================
# Cycle policy
# =============================================================================


@dataclass(frozen=True)
class CycleExerciseState:
    """The cycle position and live prescription of one exercise."""
    cycle: PeriodizationCycle
    exercise: PrescribedExercise


class CyclePolicy:
    """
    Weekly decision for one exercise in an adaptive cycle.

    Gates pass: move to next week's curve value, or deload when the cycle
    rolls into a new block. Gates fail: keep current sets/reps.
    """

    def decide(self, metrics: WindowMetrics, state: CycleExerciseState) -> Transition:
        cycle = state.cycle
        exercise = state.exercise
        verdict = evaluate_gates(metrics, cycle.block_type)

        if not verdict.passed:
            failed = tuple(verdict.failed_gates)
            return Transition(
                action=AdjustmentAction.HOLD.value,
                reason=f"Maintaining current level - Failed gates: {', '.join(failed)}",
                sets=exercise.sets,
                reps=exercise.reps,
                failed_gates=failed,
                verdict=verdict,
            )

        next_week = cycle.current_week + 1
        if next_week <= cycle.total_weeks:
            target = calculate_sets_reps(cycle.block_type, next_week)
            return Transition(
                action=AdjustmentAction.PROGRESS.value,
                reason=f"Week {cycle.current_week} → Week {next_week}: All gates passed",
                sets=target.sets,
                reps=target.reps,
                verdict=verdict,
            )

        if cycle.block_type == BlockType.INTRODUCTORY:
            reason = "Introductory block complete → Standard Block 1, Week 1 (deload)"
        else:
            reason = (
                f"Block {cycle.block_number} complete → Block {cycle.block_number + 1}, "
                "Week 1 (deload +10% intensity)"
            )
        return Transition(
            action=AdjustmentAction.DELOAD.value,
            reason=reason,
            sets=DELOAD.sets,
            reps=DELOAD.reps,
            verdict=verdict,
        )


# =============================================================================
# Dual-system overlap
# =============================================================================


def describe_overlap(
    block: Optional[BlockSchedule],
    cycle: Optional[PeriodizationCycle],
) -> Optional[str]:
    """
    Describe a program driven by both periodization systems at once.

    No merge rule exists; callers surface the returned message to the
    clinician instead of choosing a winner.
    """
    if block is None or cycle is None or block.status != BlockStatus.ACTIVE:
        return None
    return (
        f"Program {block.program_id} has an active block schedule "
        f"(week {block.current_week}/{block.block_duration}) and a periodization cycle "
        f"({cycle.block_type.value} block {cycle.block_number}, "
        f"week {cycle.current_week}/{cycle.total_weeks}); both adjust the same prescriptions"
    )
