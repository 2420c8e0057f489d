"""
Supabase Cycle Repository Implementation.

Part of PT-114: Adaptive periodization cycle

Tables: periodization_cycles (one row per block instance, newest is
current), exercise_progression_log (append-only).
RPCs: commit_cycle_progression, apply_weight_updates.
"""
from typing import Any, Dict, List, Optional
import logging

from supabase import Client

from application.exceptions import PersistenceError
from application.ports.cycle_repository import CycleAdvance, NewCycle
from application.ports.prescription_repository import PrescriptionUpdate, WeightUpdate
from domain.models import (
    BlockType,
    ExerciseProgressionLogEntry,
    PeriodizationCycle,
)
from infrastructure.db._rows import iso, parse_date, parse_datetime

logger = logging.getLogger(__name__)

LOG_SELECT = "*, program_exercises(exercise_name, exercise_category)"


def row_to_cycle(row: Dict[str, Any]) -> PeriodizationCycle:
    return PeriodizationCycle(
        id=row["id"],
        program_id=row["program_id"],
        block_type=BlockType(row["block_type"]),
        block_number=row.get("block_number") or 0,
        block_start_date=parse_date(row["block_start_date"]),
        current_week=row.get("current_week") or 1,
        total_weeks=row["total_weeks"],
        intensity_multiplier=float(row.get("intensity_multiplier") or 1.0),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def row_to_log_entry(row: Dict[str, Any]) -> ExerciseProgressionLogEntry:
    exercise = row.get("program_exercises") or {}
    return ExerciseProgressionLogEntry(
        id=row.get("id"),
        exercise_id=row["exercise_id"],
        program_id=row["program_id"],
        previous_sets=row.get("previous_sets"),
        previous_reps=row.get("previous_reps"),
        new_sets=row["new_sets"],
        new_reps=row["new_reps"],
        adjustment_reason=row.get("adjustment_reason") or "",
        avg_rpe=row.get("avg_rpe"),
        avg_pain=row.get("avg_pain"),
        completion_rate=row.get("completion_rate"),
        week_in_cycle=row.get("week_in_cycle"),
        adjusted_at=parse_datetime(row.get("adjusted_at")),
        exercise_name=exercise.get("exercise_name"),
        exercise_category=exercise.get("exercise_category"),
    )


def new_cycle_to_payload(cycle: NewCycle) -> Dict[str, Any]:
    return {
        "block_type": BlockType(cycle.block_type).value,
        "block_number": cycle.block_number,
        "block_start_date": iso(cycle.block_start_date),
        "current_week": cycle.current_week,
        "total_weeks": cycle.total_weeks,
        "intensity_multiplier": cycle.intensity_multiplier,
    }


def log_entry_to_payload(entry: ExerciseProgressionLogEntry) -> Dict[str, Any]:
    return entry.model_dump(
        mode="json",
        exclude={"id", "exercise_name", "exercise_category"},
        exclude_none=True,
    )


class SupabaseCycleRepository:
    """
    Supabase implementation of CycleRepository.
    """

    def __init__(self, client: Client):
        self._client = client

    def create_cycle(self, program_id: str, cycle: NewCycle) -> PeriodizationCycle:
        data = {"program_id": program_id, **new_cycle_to_payload(cycle)}
        try:
            result = self._client.table("periodization_cycles").insert(data).execute()
        except Exception as e:
            logger.exception(f"Error creating cycle for program {program_id}: {e}")
            raise PersistenceError(f"Failed to create cycle: {e}") from e

        if not result.data:
            raise PersistenceError("Cycle insert returned no data")
        return row_to_cycle(result.data[0])

    def get_current_cycle(self, program_id: str) -> Optional[PeriodizationCycle]:
        try:
            result = self._client.table("periodization_cycles") \
                .select("*") \
                .eq("program_id", program_id) \
                .order("created_at", desc=True) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching cycle for program {program_id}: {e}")
            raise PersistenceError(f"Failed to read cycle: {e}") from e

        if not result.data:
            return None
        return row_to_cycle(result.data[0])

    def commit_progression(
        self,
        cycle_id: str,
        *,
        expected_week: int,
        updates: List[PrescriptionUpdate],
        log_entries: List[ExerciseProgressionLogEntry],
        advance: CycleAdvance,
    ) -> Optional[PeriodizationCycle]:
        params = {
            "p_cycle_id": cycle_id,
            "p_expected_week": expected_week,
            "p_updates": [
                {"exercise_id": u.exercise_id, "sets": u.sets, "reps": u.reps}
                for u in updates
            ],
            "p_log_entries": [log_entry_to_payload(e) for e in log_entries],
            "p_next_week": advance.next_week,
            "p_new_cycle": new_cycle_to_payload(advance.new_cycle) if advance.new_cycle else None,
        }
        try:
            data = self._client.rpc("commit_cycle_progression", params).execute().data
        except Exception as e:
            logger.exception(f"Cycle progression commit failed for {cycle_id}: {e}")
            raise PersistenceError(f"commit_cycle_progression failed: {e}") from e

        if not data:
            return None
        return row_to_cycle(data)

    def apply_weight_updates(self, updates: List[WeightUpdate]) -> None:
        if not updates:
            return
        params = {
            "p_updates": [
                {"exercise_id": u.exercise_id, "prescribed_weight": u.prescribed_weight}
                for u in updates
            ],
        }
        try:
            self._client.rpc("apply_weight_updates", params).execute()
        except Exception as e:
            logger.exception(f"Weight update failed: {e}")
            raise PersistenceError(f"apply_weight_updates failed: {e}") from e

    def get_progression_history(
        self,
        program_id: str,
        *,
        limit: int = 50,
    ) -> List[ExerciseProgressionLogEntry]:
        try:
            result = self._client.table("exercise_progression_log") \
                .select(LOG_SELECT) \
                .eq("program_id", program_id) \
                .order("adjusted_at", desc=True) \
                .limit(limit) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching progression history for {program_id}: {e}")
            raise PersistenceError(f"Failed to read progression history: {e}") from e

        return [row_to_log_entry(row) for row in result.data or []]

    def get_progression_history_for_programs(
        self,
        program_ids: List[str],
        *,
        limit: int = 100,
    ) -> List[ExerciseProgressionLogEntry]:
        if not program_ids:
            return []
        try:
            result = self._client.table("exercise_progression_log") \
                .select(LOG_SELECT) \
                .in_("program_id", program_ids) \
                .order("adjusted_at", desc=True) \
                .limit(limit) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching progression history: {e}")
            raise PersistenceError(f"Failed to read progression history: {e}") from e

        return [row_to_log_entry(row) for row in result.data or []]
