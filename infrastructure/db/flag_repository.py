"""
Supabase Flag Repository Implementation.

Part of PT-115: Clinician flags

Table: clinician_flags. A flag's clinician_id records who owned the program
when it was raised; the inbox resolves ownership through programs at read
time. Flags of a reassigned program, or raised while the program had no
clinician, reach the program's current clinician.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from supabase import Client

from application.exceptions import PersistenceError
from domain.models import ClinicianFlag, FlagType
from infrastructure.db._rows import iso, parse_date, parse_datetime

logger = logging.getLogger(__name__)


def row_to_flag(row: Dict[str, Any]) -> ClinicianFlag:
    # Inbox rows carry the program's current clinician
    program = row.get("programs") or {}
    return ClinicianFlag(
        id=row.get("id"),
        program_id=row["program_id"],
        patient_id=row["patient_id"],
        clinician_id=program.get("clinician_id") or row.get("clinician_id"),
        flag_type=FlagType(row["flag_type"]),
        flag_reason=row.get("flag_reason") or "",
        flag_date=parse_date(row["flag_date"]),
        resolved=bool(row.get("resolved")),
        resolved_by=row.get("resolved_by"),
        resolved_at=parse_datetime(row.get("resolved_at")),
        created_at=parse_datetime(row.get("created_at")),
    )


class SupabaseFlagRepository:
    """
    Supabase implementation of FlagRepository.
    """

    def __init__(self, client: Client):
        self._client = client

    def get_flag(self, flag_id: str) -> Optional[ClinicianFlag]:
        try:
            result = self._client.table("clinician_flags") \
                .select("*") \
                .eq("id", flag_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching flag {flag_id}: {e}")
            raise PersistenceError(f"Failed to read flag: {e}") from e

        if not result.data:
            return None
        return row_to_flag(result.data[0])

    def get_unresolved_for_clinician(self, clinician_id: str) -> List[ClinicianFlag]:
        try:
            result = self._client.table("clinician_flags") \
                .select("*, programs!inner(clinician_id)") \
                .eq("programs.clinician_id", clinician_id) \
                .eq("resolved", False) \
                .order("created_at", desc=True) \
                .execute()
        except Exception as e:
            logger.exception(f"Error fetching flags for clinician {clinician_id}: {e}")
            raise PersistenceError(f"Failed to read flags: {e}") from e

        return [row_to_flag(row) for row in result.data or []]

    def get_for_program(
        self,
        program_id: str,
        *,
        include_resolved: bool = True,
    ) -> List[ClinicianFlag]:
        try:
            query = self._client.table("clinician_flags") \
                .select("*") \
                .eq("program_id", program_id)
            if not include_resolved:
                query = query.eq("resolved", False)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.exception(f"Error fetching flags for program {program_id}: {e}")
            raise PersistenceError(f"Failed to read flags: {e}") from e

        return [row_to_flag(row) for row in result.data or []]

    def resolve_flag(
        self,
        flag_id: str,
        *,
        resolved_by: Optional[str],
        resolved_at: datetime,
    ) -> Optional[ClinicianFlag]:
        try:
            result = self._client.table("clinician_flags") \
                .update({
                    "resolved": True,
                    "resolved_by": resolved_by,
                    "resolved_at": iso(resolved_at),
                }) \
                .eq("id", flag_id) \
                .execute()
        except Exception as e:
            logger.exception(f"Error resolving flag {flag_id}: {e}")
            raise PersistenceError(f"Failed to resolve flag: {e}") from e

        if not result.data:
            return None
        return row_to_flag(result.data[0])
