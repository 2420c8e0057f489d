"""
Gate Evaluator for progression decisions.

Part of PT-116: Progression gates

Pure functions mapping a metrics bundle and a block type to a pass/fail
verdict per named gate. The threshold table is closed and not configurable
at runtime.

Missing metrics resolve to explicit neutral defaults (feeling 3, everything
else 0) so that absent data does not block progression on its own.
"""
from dataclasses import dataclass, field
from typing import Dict, List

from backend.core.metrics_aggregator import WindowMetrics
from domain.models import BlockType


# =============================================================================
# Thresholds
# =============================================================================


@dataclass(frozen=True)
class GateThresholds:
    """Thresholds for one block type."""
    adherence: float  # >=
    avg_rpe: float  # <=
    avg_exercise_pain: float  # <=
    completion_rate: float  # >=
    avg_overall_feeling: float  # >=
    avg_general_pain: float  # <=


GATE_THRESHOLDS: Dict[BlockType, GateThresholds] = {
    BlockType.INTRODUCTORY: GateThresholds(
        adherence=0.70,
        avg_rpe=7,
        avg_exercise_pain=2,
        completion_rate=0.85,
        avg_overall_feeling=3,
        avg_general_pain=3,
    ),
    BlockType.STANDARD: GateThresholds(
        adherence=0.80,
        avg_rpe=8,
        avg_exercise_pain=3,
        completion_rate=0.90,
        avg_overall_feeling=3,
        avg_general_pain=4,
    ),
}

# Values used in place of absent metrics
NEUTRAL_DEFAULTS: Dict[str, float] = {
    "adherence": 0.0,
    "avg_rpe": 0.0,
    "avg_exercise_pain": 0.0,
    "completion_rate": 0.0,
    "avg_overall_feeling": 3.0,
    "avg_general_pain": 0.0,
    "avg_energy": 3.0,
    "avg_sleep": 3.0,
}

# Block schedule checks (block controller only)
PAIN_FLARE_GENERAL = 6  # avg general pain >= this holds the week
PAIN_FLARE_EXERCISE = 5  # avg exercise pain >= this holds the week
PERFORMANCE_HOLD_COMPLETION = 0.70  # completion rate < this holds the week


def resolve_metric(metrics: WindowMetrics, name: str) -> float:
    """Return a metric value, falling back to its neutral default."""
    value = getattr(metrics, name)
    if value is None:
        return NEUTRAL_DEFAULTS[name]
    return float(value)


# =============================================================================
# Verdict
# =============================================================================


@dataclass(frozen=True)
class GateResult:
    """Outcome of one named gate."""
    name: str
    metric: str
    value: float
    threshold: float
    comparator: str  # ">=" or "<="
    passed: bool
    defaulted: bool = False  # Value came from NEUTRAL_DEFAULTS


@dataclass(frozen=True)
class GateVerdict:
    """Combined verdict of all gates."""
    block_type: BlockType
    gates: Dict[str, GateResult] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(g.passed for g in self.gates.values())

    @property
    def failed_gates(self) -> List[str]:
        return [name for name, g in self.gates.items() if not g.passed]


# (gate name, metric attribute, comparator)
_GATES = (
    ("adherence", "adherence", ">="),
    ("rpe", "avg_rpe", "<="),
    ("exercise_pain", "avg_exercise_pain", "<="),
    ("completion_rate", "completion_rate", ">="),
    ("overall_feeling", "avg_overall_feeling", ">="),
    ("general_pain", "avg_general_pain", "<="),
)


def evaluate_gates(metrics: WindowMetrics, block_type: BlockType) -> GateVerdict:
    """
    Evaluate all six progression gates.

    Args:
        metrics: Window metrics for an exercise
        block_type: Introductory or standard thresholds

    Returns:
        GateVerdict; passed only when every gate passes
    """
    thresholds = GATE_THRESHOLDS[BlockType(block_type)]
    results = {}
    for name, metric, comparator in _GATES:
        threshold = getattr(thresholds, metric)
        value = resolve_metric(metrics, metric)
        if comparator == ">=":
            passed = value >= threshold
        else:
            passed = value <= threshold
        results[name] = GateResult(
            name=name,
            metric=metric,
            value=value,
            threshold=threshold,
            comparator=comparator,
            passed=passed,
            defaulted=getattr(metrics, metric) is None,
        )
    return GateVerdict(block_type=BlockType(block_type), gates=results)


# =============================================================================
# Block schedule checks
# =============================================================================


def is_pain_flare(metrics: WindowMetrics) -> bool:
    """True when general or exercise pain reaches the flare threshold."""
    return (
        resolve_metric(metrics, "avg_general_pain") >= PAIN_FLARE_GENERAL
        or resolve_metric(metrics, "avg_exercise_pain") >= PAIN_FLARE_EXERCISE
    )


def is_performance_hold(metrics: WindowMetrics) -> bool:
    """True when the completion rate is below the hold threshold."""
    return resolve_metric(metrics, "completion_rate") < PERFORMANCE_HOLD_COMPLETION
