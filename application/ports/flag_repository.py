"""
Flag Repository Interface (Port).

Part of PT-115: Clinician flags

Flags raised by the block progression controller are inserted inside
BlockRepository commits. This port covers reading and resolving them.
"""
from typing import Protocol, Optional, List
from datetime import datetime

from domain.models import ClinicianFlag


class FlagRepository(Protocol):
    """
    Abstract interface for clinician flag access.
    """

    def get_flag(self, flag_id: str) -> Optional[ClinicianFlag]:
        """Get a flag by ID, or None."""
        ...

    def get_unresolved_for_clinician(self, clinician_id: str) -> List[ClinicianFlag]:
        """
        Get unresolved flags for all of a clinician's programs.

        Ownership is the program's clinician at query time, not the
        clinician_id stored on the flag when it was raised.

        Returns:
            Flags ordered newest first
        """
        ...

    def get_for_program(
        self,
        program_id: str,
        *,
        include_resolved: bool = True,
    ) -> List[ClinicianFlag]:
        """Get flags raised for a program, newest first."""
        ...

    def resolve_flag(
        self,
        flag_id: str,
        *,
        resolved_by: Optional[str],
        resolved_at: datetime,
    ) -> Optional[ClinicianFlag]:
        """
        Mark a flag resolved.

        Returns:
            The resolved flag, or None if it does not exist
        """
        ...
