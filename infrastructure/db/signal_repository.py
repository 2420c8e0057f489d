"""
Supabase Signal Repository Implementation.

Part of PT-112: Weekly metrics aggregation

Reads daily check-ins and exercise completions. Both tables are owned by
other producers; this adapter never writes to them.
"""
from datetime import date
from typing import List
import logging

from supabase import Client

from application.exceptions import PersistenceError
from application.ports.signal_repository import CheckInRecord, CompletionRecord
from infrastructure.db._rows import iso, parse_date

logger = logging.getLogger(__name__)


class SupabaseSignalRepository:
    """
    Supabase implementation of SignalRepository.

    Tables: daily_check_ins, exercise_completions.
    """

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
        """
        self._client = client

    def get_check_ins(
        self,
        patient_id: str,
        *,
        start_date: date,
        end_date: date,
    ) -> List[CheckInRecord]:
        try:
            result = self._client.table("daily_check_ins") \
                .select(
                    "patient_id, check_in_date, overall_feeling, "
                    "general_pain_level, energy_level, sleep_quality"
                ) \
                .eq("patient_id", patient_id) \
                .gte("check_in_date", iso(start_date)) \
                .lte("check_in_date", iso(end_date)) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching check-ins for patient {patient_id}: {e}")
            raise PersistenceError(f"Failed to read check-ins: {e}") from e

        return [
            CheckInRecord(
                patient_id=row["patient_id"],
                check_in_date=parse_date(row["check_in_date"]),
                overall_feeling=row.get("overall_feeling"),
                general_pain_level=row.get("general_pain_level"),
                energy_level=row.get("energy_level"),
                sleep_quality=row.get("sleep_quality"),
            )
            for row in result.data or []
        ]

    def get_completions(
        self,
        patient_id: str,
        exercise_ids: List[str],
        *,
        start_date: date,
        end_date: date,
    ) -> List[CompletionRecord]:
        if not exercise_ids:
            return []
        try:
            result = self._client.table("exercise_completions") \
                .select(
                    "exercise_id, patient_id, completion_date, sets_performed, "
                    "reps_performed, weight_performed, rpe_rating, pain_level"
                ) \
                .eq("patient_id", patient_id) \
                .in_("exercise_id", exercise_ids) \
                .gte("completion_date", iso(start_date)) \
                .lte("completion_date", iso(end_date)) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching completions for patient {patient_id}: {e}")
            raise PersistenceError(f"Failed to read completions: {e}") from e

        return [
            CompletionRecord(
                exercise_id=row["exercise_id"],
                patient_id=row["patient_id"],
                completion_date=parse_date(row["completion_date"]),
                sets_performed=row.get("sets_performed"),
                reps_performed=row.get("reps_performed"),
                weight_performed=row.get("weight_performed"),
                rpe_rating=row.get("rpe_rating"),
                pain_level=row.get("pain_level"),
            )
            for row in result.data or []
        ]
