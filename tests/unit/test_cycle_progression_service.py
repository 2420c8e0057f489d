"""
Unit tests for CycleProgressionService.

Part of PT-114: Adaptive periodization cycle

Tests cover:
- Cycle initialization per block type
- Curve progression, gate holds and no-op suppression
- Introductory and standard rollover with intensity compounding
- Conflict and rollback behaviour of the weekly commit
- RPE-responsive weight adjustment
- Weekly metrics and progression history reads
"""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from application.exceptions import (
    CycleNotFoundError,
    ExerciseNotFoundError,
    PersistenceError,
    ProgramNotFoundError,
    ProgressionConflictError,
)
from application.ports.cycle_repository import CycleAdvance, NewCycle
from backend.core.cycle_progression_service import (
    CycleProgressionService,
    round_to_half,
)
from backend.core.metrics_aggregator import MetricsAggregator
from backend.core.progression_policy import AdjustmentAction
from domain.models import BlockSchedule, BlockType
from tests.fakes import (
    PATIENT_ID,
    PROGRAM_ID,
    create_fake_store,
    daily_check_ins,
    daily_completions,
)

NOW = datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


def make_service(store, *, with_blocks=False):
    return CycleProgressionService(
        store.cycles,
        store.prescriptions,
        MetricsAggregator(store.signals, store.prescriptions),
        block_repo=store.blocks if with_blocks else None,
        clock=lambda: NOW,
    )


def seed_cycle(store, block_type=BlockType.INTRODUCTORY, *, week=1, block_number=None, intensity=1.0):
    intro = BlockType(block_type) == BlockType.INTRODUCTORY
    return store.cycles.create_cycle(
        PROGRAM_ID,
        NewCycle(
            block_type=block_type,
            block_number=(0 if intro else 1) if block_number is None else block_number,
            block_start_date=TODAY,
            total_weeks=4 if intro else 6,
            current_week=week,
            intensity_multiplier=intensity,
        ),
    )


def seed_passing_week(store, *, sets=2, reps=8, rpe=5, exercise_ids=("ex-1", "ex-2")):
    store.signals.seed_check_ins(daily_check_ins(TODAY))
    for exercise_id in exercise_ids:
        store.signals.seed_completions(
            daily_completions(exercise_id, TODAY, sets_performed=sets, reps_performed=reps, rpe_rating=rpe)
        )


def live(store, exercise_id="ex-1"):
    exercise = store.prescriptions.get_exercise(exercise_id)
    return exercise.sets, exercise.reps


# =============================================================================
# Initialization
# =============================================================================


@pytest.mark.unit
class TestInitializeCycle:

    def test_introductory_defaults(self):
        store = create_fake_store()
        cycle = make_service(store).initialize_cycle(PROGRAM_ID)

        assert cycle.block_type == BlockType.INTRODUCTORY
        assert cycle.block_number == 0
        assert cycle.total_weeks == 4
        assert cycle.current_week == 1
        assert cycle.intensity_multiplier == 1.0
        assert cycle.block_start_date == TODAY

    def test_standard(self):
        store = create_fake_store()
        cycle = make_service(store).initialize_cycle(PROGRAM_ID, "standard")

        assert cycle.block_type == BlockType.STANDARD
        assert cycle.block_number == 1
        assert cycle.total_weeks == 6

    def test_unknown_program(self):
        with pytest.raises(ProgramNotFoundError):
            make_service(create_fake_store()).initialize_cycle("missing")

    def test_current_cycle_is_newest_row(self):
        store = create_fake_store()
        service = make_service(store)
        assert service.get_current_cycle(PROGRAM_ID) is None

        service.initialize_cycle(PROGRAM_ID)
        newest = service.initialize_cycle(PROGRAM_ID, BlockType.STANDARD)

        assert service.get_current_cycle(PROGRAM_ID).id == newest.id


# =============================================================================
# Weekly progression
# =============================================================================


@pytest.mark.unit
class TestProgressProgram:

    def test_requires_program(self):
        with pytest.raises(ProgramNotFoundError):
            make_service(create_fake_store()).progress_program("missing")

    def test_requires_cycle(self):
        with pytest.raises(CycleNotFoundError):
            make_service(create_fake_store()).progress_program(PROGRAM_ID)

    def test_passing_gates_follow_curve(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store, week=2)
        seed_passing_week(store, sets=2, reps=8)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert [a.action for a in run.adjustments] == [AdjustmentAction.PROGRESS] * 2
        assert (run.current_week, run.next_week) == (2, 3)
        assert run.new_cycle_started is False
        assert (run.block_type, run.block_number) == (BlockType.INTRODUCTORY, 0)
        assert run.new_cycle is None
        assert live(store) == (2, 10)
        assert store.cycles.get_current_cycle(PROGRAM_ID).current_week == 3

    def test_changes_are_logged(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store, week=2)
        seed_passing_week(store)

        make_service(store).progress_program(PROGRAM_ID)

        entries = store.cycles.log
        assert len(entries) == 2
        entry = entries[0]
        assert (entry.previous_sets, entry.previous_reps) == (1, 8)
        assert (entry.new_sets, entry.new_reps) == (2, 10)
        assert entry.week_in_cycle == 2
        assert entry.avg_rpe == 5.0
        assert entry.adjusted_at == NOW
        assert entry.adjustment_reason == "Week 2 → Week 3: All gates passed"

    def test_unchanged_prescription_is_not_written_or_logged(self):
        # Live values already equal week 2 of the introductory curve
        store = create_fake_store(sets=2, reps=8)
        seed_cycle(store, week=1)
        seed_passing_week(store)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert run.adjustments == []
        assert run.holds == []
        assert store.cycles.log == []
        assert store.cycles.get_current_cycle(PROGRAM_ID).current_week == 2

    def test_failed_gates_hold(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert run.adjustments == []
        assert len(run.holds) == 2
        hold = run.holds[0]
        assert hold.action == AdjustmentAction.HOLD
        assert "adherence" in hold.failed_gates
        assert "completion_rate" in hold.failed_gates
        assert (hold.new_sets, hold.new_reps) == (1, 8)
        assert live(store) == (1, 8)
        assert store.cycles.log == []

    def test_only_auto_adjust_exercises(self):
        store = create_fake_store(sets=1, reps=8)
        frozen = replace(store.prescriptions.get_exercise("ex-2"), auto_adjust_enabled=False)
        store.prescriptions.seed_exercises([frozen])
        seed_cycle(store, week=2)
        seed_passing_week(store)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert [a.exercise_id for a in run.adjustments] == ["ex-1"]
        assert live(store, "ex-2") == (1, 8)

    def test_standard_week_four_to_five(self):
        store = create_fake_store(sets=3, reps=10)
        seed_cycle(store, BlockType.STANDARD, week=4)
        seed_passing_week(store, sets=3, reps=10)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert run.next_week == 5
        assert live(store) == (3, 11)


@pytest.mark.unit
class TestCycleRollover:

    def test_introductory_rolls_into_standard_block_one(self):
        store = create_fake_store(sets=2, reps=12)
        seed_cycle(store, week=4)
        seed_passing_week(store, sets=2, reps=12)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert run.new_cycle_started is True
        assert (run.current_week, run.next_week) == (4, 1)
        assert run.block_type == BlockType.INTRODUCTORY
        assert run.block_number == 0
        assert run.new_cycle.block_type == BlockType.STANDARD
        assert run.new_cycle.block_number == 1
        assert run.new_cycle.current_week == 1
        assert [a.action for a in run.adjustments] == [AdjustmentAction.DELOAD] * 2
        assert live(store) == (2, 8)

        current = store.cycles.get_current_cycle(PROGRAM_ID)
        assert current.block_type == BlockType.STANDARD
        assert current.current_week == 1
        assert current.total_weeks == 6
        assert current.intensity_multiplier == 1.0
        assert len(store.cycles.history(PROGRAM_ID)) == 2

    def test_standard_rollover_compounds_intensity(self):
        store = create_fake_store(sets=3, reps=12)
        seed_cycle(store, BlockType.STANDARD, week=6, block_number=2, intensity=1.1)
        seed_passing_week(store, sets=3, reps=12)

        run = make_service(store).progress_program(PROGRAM_ID)

        current = store.cycles.get_current_cycle(PROGRAM_ID)
        assert (run.block_type, run.block_number) == (BlockType.STANDARD, 2)
        assert run.new_cycle.id == current.id
        assert current.block_number == 3
        assert current.intensity_multiplier == pytest.approx(1.21)

    def test_rollover_happens_even_when_all_hold(self):
        store = create_fake_store(sets=2, reps=12)
        seed_cycle(store, week=4)

        run = make_service(store).progress_program(PROGRAM_ID)

        assert run.new_cycle_started is True
        assert len(run.holds) == 2
        assert live(store) == (2, 12)


@pytest.mark.unit
class TestProgressionCommit:

    def test_concurrent_run_conflicts(self):
        store = create_fake_store(sets=1, reps=8)
        cycle = seed_cycle(store, week=2)
        seed_passing_week(store)
        store.cycles.interleave(lambda: store.cycles.commit_progression(
            cycle.id,
            expected_week=2,
            updates=[],
            log_entries=[],
            advance=CycleAdvance(next_week=3),
        ))

        with pytest.raises(ProgressionConflictError):
            make_service(store).progress_program(PROGRAM_ID)

        assert live(store) == (1, 8)
        assert store.cycles.log == []
        assert store.cycles.get_current_cycle(PROGRAM_ID).current_week == 3

    def test_failed_commit_rolls_back(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store, week=2)
        seed_passing_week(store)
        store.cycles.simulate_failure()

        with pytest.raises(PersistenceError):
            make_service(store).progress_program(PROGRAM_ID)

        assert live(store) == (1, 8)
        assert store.cycles.log == []
        assert store.cycles.get_current_cycle(PROGRAM_ID).current_week == 2

    def test_overlap_warning_with_active_block(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store, week=2)
        store.blocks.seed_block(BlockSchedule(
            id="block-x", program_id=PROGRAM_ID, block_duration=4, start_date=TODAY,
        ))

        run = make_service(store, with_blocks=True).progress_program(PROGRAM_ID)

        assert run.overlap_warning is not None
        assert "block schedule" in run.overlap_warning


# =============================================================================
# Weight adjustment
# =============================================================================


@pytest.mark.unit
class TestAdjustWeight:

    def test_round_to_half(self):
        assert round_to_half(21.0) == 21.0
        assert round_to_half(12.915) == 13.0
        assert round_to_half(10.25) == 10.5
        assert round_to_half(10.2) == 10.0

    def test_low_and_high_rpe(self):
        store = create_fake_store(track_rpe=True, prescribed_weight=20.0)
        seed_cycle(store, BlockType.STANDARD)
        store.signals.seed_completions(daily_completions("ex-1", TODAY, rpe_rating=5))
        store.signals.seed_completions(daily_completions("ex-2", TODAY, rpe_rating=9))

        changes = make_service(store).adjust_weight_based_on_rpe(PROGRAM_ID)

        by_id = {c.exercise_id: c for c in changes}
        assert by_id["ex-1"].new_weight == 21.0
        assert by_id["ex-2"].new_weight == 19.0
        assert store.prescriptions.get_exercise("ex-1").prescribed_weight == 21.0
        assert store.prescriptions.get_exercise("ex-2").prescribed_weight == 19.0

    def test_moderate_rpe_unchanged(self):
        store = create_fake_store(track_rpe=True, prescribed_weight=20.0)
        seed_cycle(store, BlockType.STANDARD)
        seed_passing_week(store, rpe=7)

        assert make_service(store).adjust_weight_based_on_rpe(PROGRAM_ID) == []

    def test_requires_rpe_tracking(self):
        store = create_fake_store(track_rpe=False, prescribed_weight=20.0)
        seed_cycle(store, BlockType.STANDARD)
        seed_passing_week(store, rpe=3)

        assert make_service(store).adjust_weight_based_on_rpe(PROGRAM_ID) == []

    def test_skipped_on_introductory_cycle(self):
        store = create_fake_store(track_rpe=True, prescribed_weight=20.0)
        seed_cycle(store)
        seed_passing_week(store, rpe=3)

        assert make_service(store).adjust_weight_based_on_rpe(PROGRAM_ID) == []

    def test_skips_exercises_without_weight(self):
        store = create_fake_store(track_rpe=True, prescribed_weight=None)
        seed_cycle(store, BlockType.STANDARD)
        seed_passing_week(store, rpe=3)

        assert make_service(store).adjust_weight_based_on_rpe(PROGRAM_ID) == []

    def test_failed_write_keeps_weights(self):
        store = create_fake_store(track_rpe=True, prescribed_weight=20.0)
        seed_cycle(store, BlockType.STANDARD)
        seed_passing_week(store, rpe=3)
        store.cycles.simulate_failure()

        with pytest.raises(PersistenceError):
            make_service(store).adjust_weight_based_on_rpe(PROGRAM_ID)

        assert store.prescriptions.get_exercise("ex-1").prescribed_weight == 20.0


# =============================================================================
# Reads
# =============================================================================


@pytest.mark.unit
class TestReads:

    def test_weekly_metrics_for_requested_patient(self):
        store = create_fake_store()
        store.signals.seed_completions(
            daily_completions("ex-1", TODAY, days=3, patient_id="patient-2", rpe_rating=8)
        )

        metrics = make_service(store).get_weekly_metrics("ex-1", "patient-2")

        assert metrics.completion_count == 3
        assert metrics.avg_rpe == 8.0

    def test_weekly_metrics_unknown_exercise(self):
        with pytest.raises(ExerciseNotFoundError):
            make_service(create_fake_store()).get_weekly_metrics("ex-404", PATIENT_ID)

    def test_history_newest_first_with_names(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store, week=2)
        seed_passing_week(store)
        service = make_service(store)
        service.progress_program(PROGRAM_ID)

        history = service.get_progression_history(PROGRAM_ID)

        assert [e.exercise_id for e in history] == ["ex-2", "ex-1"]
        assert history[0].exercise_name == "Exercise 2"
        assert history[0].exercise_category == "strength"
        assert len(service.get_progression_history(PROGRAM_ID, limit=1)) == 1

    def test_patient_history(self):
        store = create_fake_store(sets=1, reps=8)
        seed_cycle(store, week=2)
        seed_passing_week(store)
        service = make_service(store)
        service.progress_program(PROGRAM_ID)

        assert len(service.get_patient_progression_history(PATIENT_ID)) == 2
        assert service.get_patient_progression_history("nobody") == []
