"""
Clinician flags router.

Part of PT-115: Clinician flags
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from api.deps import get_current_user, get_flag_service
from backend.core.flag_service import FlagService
from domain.models import ClinicianFlag

router = APIRouter(
    prefix="/flags",
    tags=["Flags"],
)


class FlagListResponse(BaseModel):
    flags: List[ClinicianFlag]
    total: int


@router.get("", response_model=FlagListResponse)
def get_unresolved_flags(
    clinician_id: Optional[str] = Query(None, description="Defaults to the caller"),
    user_id: str = Depends(get_current_user),
    service: FlagService = Depends(get_flag_service),
) -> FlagListResponse:
    """List unresolved flags across a clinician's programs, newest first."""
    flags = service.get_unresolved_flags(clinician_id or user_id)
    return FlagListResponse(flags=flags, total=len(flags))


@router.get("/program/{program_id}", response_model=FlagListResponse)
def get_program_flags(
    program_id: str = Path(..., description="Program ID"),
    include_resolved: bool = Query(True),
    user_id: str = Depends(get_current_user),
    service: FlagService = Depends(get_flag_service),
) -> FlagListResponse:
    flags = service.get_program_flags(program_id, include_resolved=include_resolved)
    return FlagListResponse(flags=flags, total=len(flags))


@router.patch("/{flag_id}/resolve", response_model=ClinicianFlag)
def resolve_flag(
    flag_id: str = Path(..., description="Flag ID"),
    user_id: str = Depends(get_current_user),
    service: FlagService = Depends(get_flag_service),
) -> ClinicianFlag:
    """Mark a flag resolved by the caller."""
    return service.resolve_flag(flag_id, user_id)
