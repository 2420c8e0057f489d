"""
Clinician flag service.

Part of PT-115: Clinician flags
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging

from application.exceptions import FlagNotFoundError
from application.ports.flag_repository import FlagRepository
from domain.models import ClinicianFlag

logger = logging.getLogger(__name__)


class FlagService:
    """Lists and resolves flags raised by block evaluations."""

    def __init__(
        self,
        flag_repo: FlagRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._flag_repo = flag_repo
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_unresolved_flags(self, clinician_id: str) -> List[ClinicianFlag]:
        return self._flag_repo.get_unresolved_for_clinician(clinician_id)

    def get_program_flags(self, program_id: str, *, include_resolved: bool = True) -> List[ClinicianFlag]:
        return self._flag_repo.get_for_program(program_id, include_resolved=include_resolved)

    def resolve_flag(self, flag_id: str, resolver: Optional[str]) -> ClinicianFlag:
        """
        Mark a flag resolved by a clinician.

        An already-resolved flag is returned unchanged, including
        informational flags raised resolved with no resolver.

        Raises:
            FlagNotFoundError: Flag does not exist
        """
        existing = self._flag_repo.get_flag(flag_id)
        if existing is None:
            raise FlagNotFoundError(flag_id)
        if existing.resolved:
            return existing

        flag = self._flag_repo.resolve_flag(
            flag_id,
            resolved_by=resolver,
            resolved_at=self._clock(),
        )
        if flag is None:
            raise FlagNotFoundError(flag_id)
        logger.info(f"Flag {flag_id} ({flag.flag_type.value}) resolved by {resolver}")
        return flag
