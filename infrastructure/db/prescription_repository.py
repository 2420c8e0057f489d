"""
Supabase Prescription Repository Implementation.

Part of PT-111: Prescription store access

Reads programs and their prescribed exercises. Live prescription writes
are performed by the block and cycle RPCs, never from here.
"""
from typing import Any, Dict, List, Optional
import json
import logging

from supabase import Client

from application.exceptions import PersistenceError
from application.ports.prescription_repository import PrescribedExercise, ProgramRecord

logger = logging.getLogger(__name__)

PROGRAM_COLUMNS = "id, patient_id, clinician_id, name, frequency, track_rpe"
EXERCISE_COLUMNS = (
    "id, program_id, exercise_name, sets, reps, exercise_category, prescribed_weight, "
    "baseline_sets, baseline_reps, auto_adjust_enabled, exercise_order"
)


def _parse_frequency(value: Any) -> List[str]:
    # Stored as a JSON array of weekday tokens; older rows hold a JSON string
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"Unparseable program frequency: {value!r}")
            return []
    if not isinstance(value, list):
        return []
    return [str(day) for day in value if day]


def row_to_program(row: Dict[str, Any]) -> ProgramRecord:
    return ProgramRecord(
        id=row["id"],
        patient_id=row["patient_id"],
        clinician_id=row.get("clinician_id"),
        name=row.get("name"),
        frequency=_parse_frequency(row.get("frequency")),
        track_rpe=bool(row.get("track_rpe")),
    )


def row_to_exercise(row: Dict[str, Any]) -> PrescribedExercise:
    return PrescribedExercise(
        id=row["id"],
        program_id=row["program_id"],
        exercise_name=row.get("exercise_name") or "",
        sets=row.get("sets") or 0,
        reps=row.get("reps") or 0,
        exercise_category=row.get("exercise_category"),
        prescribed_weight=row.get("prescribed_weight"),
        baseline_sets=row.get("baseline_sets"),
        baseline_reps=row.get("baseline_reps"),
        auto_adjust_enabled=row.get("auto_adjust_enabled", True) is not False,
        exercise_order=row.get("exercise_order") or 0,
    )


class SupabasePrescriptionRepository:
    """
    Supabase implementation of PrescriptionRepository.

    Tables: programs, program_exercises.
    """

    def __init__(self, client: Client):
        self._client = client

    def get_program(self, program_id: str) -> Optional[ProgramRecord]:
        try:
            result = self._client.table("programs") \
                .select(PROGRAM_COLUMNS) \
                .eq("id", program_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching program {program_id}: {e}")
            raise PersistenceError(f"Failed to read program: {e}") from e

        if not result.data:
            return None
        return row_to_program(result.data[0])

    def list_programs_for_patient(self, patient_id: str) -> List[ProgramRecord]:
        try:
            result = self._client.table("programs") \
                .select(PROGRAM_COLUMNS) \
                .eq("patient_id", patient_id) \
                .execute()
        except Exception as e:
            logger.exception(f"Error listing programs for patient {patient_id}: {e}")
            raise PersistenceError(f"Failed to list programs: {e}") from e

        return [row_to_program(row) for row in result.data or []]

    def list_exercises(
        self,
        program_id: str,
        *,
        auto_adjust_only: bool = False,
    ) -> List[PrescribedExercise]:
        try:
            query = self._client.table("program_exercises") \
                .select(EXERCISE_COLUMNS) \
                .eq("program_id", program_id)
            if auto_adjust_only:
                query = query.eq("auto_adjust_enabled", True)
            result = query.order("exercise_order").execute()
        except Exception as e:
            logger.exception(f"Error listing exercises for program {program_id}: {e}")
            raise PersistenceError(f"Failed to list exercises: {e}") from e

        return [row_to_exercise(row) for row in result.data or []]

    def get_exercise(self, exercise_id: str) -> Optional[PrescribedExercise]:
        try:
            result = self._client.table("program_exercises") \
                .select(EXERCISE_COLUMNS) \
                .eq("id", exercise_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching exercise {exercise_id}: {e}")
            raise PersistenceError(f"Failed to read exercise: {e}") from e

        if not result.data:
            return None
        return row_to_exercise(result.data[0])
