"""
Supabase Block Repository Implementation.

Part of PT-113: Block schedule progression

Reads go through the table API. Every mutation is a PostgreSQL function
(see supabase/migrations) called through rpc() so that the block row,
the live prescription projection and any flag insert commit together.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
import logging

from supabase import Client

from application.exceptions import PersistenceError
from application.ports.block_repository import CellEdit
from domain.models import (
    BlockSchedule,
    BlockStatus,
    CellUpdate,
    ClinicianFlag,
    ExerciseWeekCell,
)
from infrastructure.db._rows import iso, parse_date, parse_datetime

logger = logging.getLogger(__name__)

BLOCK_COLUMNS = (
    "id, program_id, block_duration, start_date, current_week, status, "
    "last_evaluated_at, created_at, updated_at"
)


def row_to_block(row: Dict[str, Any]) -> BlockSchedule:
    return BlockSchedule(
        id=row["id"],
        program_id=row["program_id"],
        block_duration=row["block_duration"],
        start_date=parse_date(row["start_date"]),
        current_week=row.get("current_week") or 1,
        status=BlockStatus(row.get("status", "active")),
        last_evaluated_at=parse_datetime(row.get("last_evaluated_at")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def row_to_cell(row: Dict[str, Any]) -> ExerciseWeekCell:
    exercise = row.get("program_exercises") or {}
    return ExerciseWeekCell(
        block_schedule_id=row.get("block_schedule_id"),
        program_exercise_id=row["program_exercise_id"],
        week_number=row["week_number"],
        sets=row["sets"],
        reps=row["reps"],
        rpe_target=row.get("rpe_target"),
        weight=row.get("weight"),
        notes=row.get("notes"),
        overridden_by=row.get("overridden_by"),
        overridden_at=parse_datetime(row.get("overridden_at")),
        exercise_name=exercise.get("exercise_name") or row.get("exercise_name"),
    )


def cell_to_payload(cell: ExerciseWeekCell) -> Dict[str, Any]:
    return {
        "program_exercise_id": cell.program_exercise_id,
        "week_number": cell.week_number,
        "sets": cell.sets,
        "reps": cell.reps,
        "rpe_target": cell.rpe_target,
        "weight": cell.weight,
        "notes": cell.notes,
    }


def flag_to_payload(flag: ClinicianFlag) -> Dict[str, Any]:
    return {
        "program_id": flag.program_id,
        "patient_id": flag.patient_id,
        "clinician_id": flag.clinician_id,
        "flag_type": flag.flag_type.value,
        "flag_reason": flag.flag_reason,
        "flag_date": iso(flag.flag_date),
        "resolved": flag.resolved,
        "resolved_at": iso(flag.resolved_at),
    }


class SupabaseBlockRepository:
    """
    Supabase implementation of BlockRepository.

    Tables: block_schedules, exercise_week_prescriptions.
    RPCs: create_block_with_cells, commit_block_evaluation, set_block_week,
    override_block_cell.
    """

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
        """
        self._client = client

    def _rpc(self, function: str, params: Dict[str, Any]) -> Any:
        try:
            return self._client.rpc(function, params).execute().data
        except Exception as e:
            logger.exception(f"RPC {function} failed: {e}")
            raise PersistenceError(f"{function} failed: {e}") from e

    # -------------------------------------------------------------------------
    # Mutations (single transaction each)
    # -------------------------------------------------------------------------

    def create_block_atomic(
        self,
        program_id: str,
        block_duration: int,
        start_date: date,
        cells: List[ExerciseWeekCell],
    ) -> BlockSchedule:
        data = self._rpc(
            "create_block_with_cells",
            {
                "p_program_id": program_id,
                "p_block_duration": block_duration,
                "p_start_date": iso(start_date),
                "p_cells": [cell_to_payload(c) for c in cells],
            },
        )
        if not data:
            raise PersistenceError("create_block_with_cells returned no data")
        return row_to_block(data)

    def commit_evaluation(
        self,
        block_id: str,
        *,
        expected_last_evaluated_at: Optional[datetime],
        expected_week: int,
        evaluated_at: datetime,
        new_week: Optional[int] = None,
        new_status: Optional[BlockStatus] = None,
        flag: Optional[ClinicianFlag] = None,
    ) -> Optional[BlockSchedule]:
        data = self._rpc(
            "commit_block_evaluation",
            {
                "p_block_id": block_id,
                "p_expected_last_evaluated_at": iso(expected_last_evaluated_at),
                "p_expected_week": expected_week,
                "p_evaluated_at": iso(evaluated_at),
                "p_new_week": new_week,
                "p_new_status": new_status.value if new_status else None,
                "p_flag": flag_to_payload(flag) if flag else None,
            },
        )
        if not data:
            return None
        return row_to_block(data)

    def set_week_atomic(
        self,
        block_id: str,
        *,
        expected_week: int,
        new_week: int,
        evaluated_at: datetime,
        apply_prescriptions: bool,
    ) -> Optional[BlockSchedule]:
        data = self._rpc(
            "set_block_week",
            {
                "p_block_id": block_id,
                "p_expected_week": expected_week,
                "p_new_week": new_week,
                "p_evaluated_at": iso(evaluated_at),
                "p_apply_prescriptions": apply_prescriptions,
            },
        )
        if not data:
            return None
        return row_to_block(data)

    def update_cell(
        self,
        block_id: str,
        exercise_id: str,
        week_number: int,
        update: CellUpdate,
        *,
        overridden_by: Optional[str],
        overridden_at: datetime,
        push_live: bool = False,
    ) -> Optional[CellEdit]:
        data = self._rpc(
            "override_block_cell",
            {
                "p_block_id": block_id,
                "p_exercise_id": exercise_id,
                "p_week_number": week_number,
                "p_update": update.model_dump(),
                "p_overridden_by": overridden_by,
                "p_overridden_at": iso(overridden_at),
                "p_push_live": push_live,
            },
        )
        if not data:
            return None
        return CellEdit(
            cell=row_to_cell(data["cell"]),
            pushed_live=bool(data.get("pushed_live")),
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_active_block(self, program_id: str) -> Optional[BlockSchedule]:
        try:
            result = self._client.table("block_schedules") \
                .select(BLOCK_COLUMNS) \
                .eq("program_id", program_id) \
                .eq("status", BlockStatus.ACTIVE.value) \
                .order("created_at", desc=True) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching active block for program {program_id}: {e}")
            raise PersistenceError(f"Failed to read block: {e}") from e

        if not result.data:
            return None
        return row_to_block(result.data[0])

    def get_block(self, block_id: str) -> Optional[BlockSchedule]:
        try:
            result = self._client.table("block_schedules") \
                .select(BLOCK_COLUMNS) \
                .eq("id", block_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching block {block_id}: {e}")
            raise PersistenceError(f"Failed to read block: {e}") from e

        if not result.data:
            return None
        return row_to_block(result.data[0])

    def get_cells(
        self,
        block_id: str,
        *,
        week_number: Optional[int] = None,
    ) -> List[ExerciseWeekCell]:
        try:
            query = self._client.table("exercise_week_prescriptions") \
                .select("*, program_exercises(exercise_name)") \
                .eq("block_schedule_id", block_id)
            if week_number is not None:
                query = query.eq("week_number", week_number)
            result = query \
                .order("program_exercise_id") \
                .order("week_number") \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching cells for block {block_id}: {e}")
            raise PersistenceError(f"Failed to read block cells: {e}") from e

        return [row_to_cell(row) for row in result.data or []]
