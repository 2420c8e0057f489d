"""
Metrics Aggregator for progression decisions.

Part of PT-112: Weekly metrics aggregation

Computes a trailing 7-day window of adherence, RPE, pain and completion
metrics from the signal store. Pure read + arithmetic; no side effects.

Two completion-rate flavours exist and are intentionally different:
- Program level (block controller): per completion instance
  min(sets/prescribed_sets, 1) * min(reps/prescribed_reps, 1), averaged.
- Exercise level (cycle controller): ratio of the *average* performed
  sets and reps to the prescription, capped at 1.

Empty windows and zero prescriptions yield 0, never an error.
"""
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from application.ports.prescription_repository import (
    PrescribedExercise,
    PrescriptionRepository,
    ProgramRecord,
)
from application.ports.signal_repository import (
    CheckInRecord,
    CompletionRecord,
    SignalRepository,
)

logger = logging.getLogger(__name__)

# Trailing window used by both controllers
WINDOW_DAYS = 7


# =============================================================================
# Metrics bundle
# =============================================================================


@dataclass
class WindowMetrics:
    """
    Metrics for a 7-day window.

    Signal-derived averages are Optional: None means "no data in the
    window". The gate evaluator substitutes explicit neutral defaults.
    """
    completion_rate: float = 0.0
    adherence: Optional[float] = None
    avg_rpe: Optional[float] = None
    avg_exercise_pain: Optional[float] = None
    avg_general_pain: Optional[float] = None
    avg_overall_feeling: Optional[float] = None
    avg_energy: Optional[float] = None
    avg_sleep: Optional[float] = None
    completion_count: int = 0
    check_in_count: int = 0
    window_start: Optional[date] = None
    window_end: Optional[date] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        for key in ("window_start", "window_end"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


# =============================================================================
# Pure helpers
# =============================================================================


def evaluation_window(today: date, days: int = WINDOW_DAYS) -> Tuple[date, date]:
    """Return the inclusive (start, end) dates of the trailing window."""
    return today - timedelta(days=days), today


def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-null values, or None if there are none."""
    present = [float(v) for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def _capped_ratio(performed: Optional[float], prescribed: Optional[float]) -> float:
    # A zero prescription cannot be under-performed
    if not prescribed or prescribed <= 0:
        return 1.0
    return min((performed or 0) / prescribed, 1.0)


def program_completion_rate(
    completions: List[CompletionRecord],
    exercises_by_id: Dict[str, PrescribedExercise],
) -> float:
    """
    Average per-instance completion across all completions in the window.

    Each completion contributes min(sets ratio, 1) * min(reps ratio, 1)
    against the exercise's live prescription.
    """
    rates = []
    for completion in completions:
        exercise = exercises_by_id.get(completion.exercise_id)
        if exercise is None:
            continue
        sets_rate = _capped_ratio(completion.sets_performed, exercise.sets)
        reps_rate = _capped_ratio(completion.reps_performed, exercise.reps)
        rates.append(sets_rate * reps_rate)

    if not rates:
        return 0.0
    return sum(rates) / len(rates)


def exercise_completion_rate(
    completions: List[CompletionRecord],
    exercise: PrescribedExercise,
) -> float:
    """
    Volume completion from averaged sets and reps, capped at 1.

    Returns 0 when there are no completions or the prescription is empty.
    """
    avg_sets = average(c.sets_performed for c in completions)
    avg_reps = average(c.reps_performed for c in completions)
    if not avg_sets or not avg_reps or not exercise.sets or not exercise.reps:
        return 0.0
    return min((avg_sets / exercise.sets) * (avg_reps / exercise.reps), 1.0)


def adherence_rate(completion_count: int, expected_days: int) -> float:
    """Completions divided by expected days per week, capped at 1."""
    if expected_days <= 0:
        return 0.0
    return min(completion_count / expected_days, 1.0)


def summarize_check_ins(check_ins: List[CheckInRecord]) -> Dict[str, Optional[float]]:
    """Average the wellbeing fields of a list of check-ins."""
    return {
        "avg_overall_feeling": average(c.overall_feeling for c in check_ins),
        "avg_general_pain": average(c.general_pain_level for c in check_ins),
        "avg_energy": average(c.energy_level for c in check_ins),
        "avg_sleep": average(c.sleep_quality for c in check_ins),
    }


# =============================================================================
# Aggregator
# =============================================================================


class MetricsAggregator:
    """
    Builds WindowMetrics for a program or a single exercise.
    """

    def __init__(
        self,
        signal_repo: SignalRepository,
        prescription_repo: PrescriptionRepository,
    ):
        """
        Initialize the aggregator.

        Args:
            signal_repo: Read-only check-in and completion data
            prescription_repo: Program and exercise metadata
        """
        self._signal_repo = signal_repo
        self._prescription_repo = prescription_repo

    def program_metrics(
        self,
        program: ProgramRecord,
        today: date,
        *,
        exercises: Optional[List[PrescribedExercise]] = None,
    ) -> WindowMetrics:
        """
        Metrics across every exercise of a program (block controller).

        Args:
            program: Program whose patient signals are read
            today: Last day of the window
            exercises: Program exercises, fetched if not provided

        Returns:
            WindowMetrics with a per-instance completion rate
        """
        start, end = evaluation_window(today)
        if exercises is None:
            exercises = self._prescription_repo.list_exercises(program.id)
        exercises_by_id = {ex.id: ex for ex in exercises}

        check_ins = self._signal_repo.get_check_ins(
            program.patient_id, start_date=start, end_date=end
        )
        completions = []
        if exercises_by_id:
            completions = self._signal_repo.get_completions(
                program.patient_id,
                list(exercises_by_id),
                start_date=start,
                end_date=end,
            )

        metrics = WindowMetrics(
            completion_rate=program_completion_rate(completions, exercises_by_id),
            avg_rpe=average(c.rpe_rating for c in completions),
            avg_exercise_pain=average(c.pain_level for c in completions),
            completion_count=len(completions),
            check_in_count=len(check_ins),
            window_start=start,
            window_end=end,
            **summarize_check_ins(check_ins),
        )
        logger.debug(
            f"Program {program.id} window {start}..{end}: "
            f"{len(completions)} completions, {len(check_ins)} check-ins"
        )
        return metrics

    def exercise_metrics(
        self,
        exercise: PrescribedExercise,
        program: ProgramRecord,
        today: date,
    ) -> WindowMetrics:
        """
        Metrics for a single exercise (cycle controller).

        Adherence is completions / expected days per week derived from the
        program frequency.
        """
        start, end = evaluation_window(today)
        completions = self._signal_repo.get_completions(
            program.patient_id,
            [exercise.id],
            start_date=start,
            end_date=end,
        )
        check_ins = self._signal_repo.get_check_ins(
            program.patient_id, start_date=start, end_date=end
        )

        return WindowMetrics(
            completion_rate=exercise_completion_rate(completions, exercise),
            adherence=adherence_rate(len(completions), program.expected_days_per_week),
            avg_rpe=average(c.rpe_rating for c in completions),
            avg_exercise_pain=average(c.pain_level for c in completions),
            completion_count=len(completions),
            check_in_count=len(check_ins),
            window_start=start,
            window_end=end,
            **summarize_check_ins(check_ins),
        )
