"""
FastAPI Dependency Providers for the Rehab Progression API.

Part of PT-102: Dependency providers

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations. This
enables clean separation of concerns and easy testing with fakes.

Architecture:
- Settings and Supabase client are cached per-process (lru_cache)
- Repository providers create new instances per-request
- Service providers compose repositories into engine services
- Auth provider wraps backend.auth

Usage in routers:
    from api.deps import get_block_service, get_current_user
    from backend.core.block_progression_service import BlockProgressionService

    @router.patch("/{program_id}/evaluate")
    def evaluate(
        program_id: str,
        service: BlockProgressionService = Depends(get_block_service),
    ):
        return service.evaluate_progression(program_id)

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_block_repo] = lambda: FakeBlockRepository()
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException
from supabase import Client, create_client

# Protocol types (interfaces)
from application.ports import (
    BlockRepository,
    CycleRepository,
    FlagRepository,
    PrescriptionRepository,
    SignalRepository,
)

# Concrete implementations
from infrastructure import (
    SupabaseBlockRepository,
    SupabaseCycleRepository,
    SupabaseFlagRepository,
    SupabasePrescriptionRepository,
    SupabaseSignalRepository,
)

from backend.core.block_progression_service import BlockProgressionService
from backend.core.cycle_progression_service import CycleProgressionService
from backend.core.flag_service import FlagService
from backend.core.metrics_aggregator import MetricsAggregator
from backend.settings import Settings, get_settings as _get_settings
from backend.auth import get_current_user as _get_current_user


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.
    """
    return _get_settings()


# =============================================================================
# Supabase Client Provider
# =============================================================================


@lru_cache
def get_supabase_client() -> Optional[Client]:
    """
    Get Supabase client instance (cached).

    Returns:
        Client: Supabase client instance, or None if not configured
    """
    settings = _get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


def get_supabase_client_required() -> Client:
    """
    Get Supabase client instance, raising if not configured.

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = get_supabase_client()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Supabase credentials not configured.",
        )
    return client


# =============================================================================
# Repository Providers
# =============================================================================


def get_signal_repo(
    client: Client = Depends(get_supabase_client_required),
) -> SignalRepository:
    """Get SignalRepository implementation (check-ins and completions)."""
    return SupabaseSignalRepository(client)


def get_prescription_repo(
    client: Client = Depends(get_supabase_client_required),
) -> PrescriptionRepository:
    """Get PrescriptionRepository implementation (programs and exercises)."""
    return SupabasePrescriptionRepository(client)


def get_block_repo(
    client: Client = Depends(get_supabase_client_required),
) -> BlockRepository:
    """
    Get BlockRepository implementation.

    Returns a SupabaseBlockRepository instance with injected client.
    The return type is the Protocol to enable easy mocking.
    """
    return SupabaseBlockRepository(client)


def get_cycle_repo(
    client: Client = Depends(get_supabase_client_required),
) -> CycleRepository:
    """Get CycleRepository implementation."""
    return SupabaseCycleRepository(client)


def get_flag_repo(
    client: Client = Depends(get_supabase_client_required),
) -> FlagRepository:
    """Get FlagRepository implementation."""
    return SupabaseFlagRepository(client)


# =============================================================================
# Service Providers
# =============================================================================


def get_metrics_aggregator(
    signal_repo: SignalRepository = Depends(get_signal_repo),
    prescription_repo: PrescriptionRepository = Depends(get_prescription_repo),
) -> MetricsAggregator:
    return MetricsAggregator(signal_repo, prescription_repo)


def get_block_service(
    block_repo: BlockRepository = Depends(get_block_repo),
    prescription_repo: PrescriptionRepository = Depends(get_prescription_repo),
    cycle_repo: CycleRepository = Depends(get_cycle_repo),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
    settings: Settings = Depends(get_settings),
) -> BlockProgressionService:
    """Get the block schedule progression service."""
    return BlockProgressionService(
        block_repo,
        prescription_repo,
        aggregator,
        cycle_repo=cycle_repo,
        cell_edit_mode=settings.cell_edit_mode,
    )


def get_cycle_service(
    cycle_repo: CycleRepository = Depends(get_cycle_repo),
    prescription_repo: PrescriptionRepository = Depends(get_prescription_repo),
    block_repo: BlockRepository = Depends(get_block_repo),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
) -> CycleProgressionService:
    """Get the adaptive periodization cycle service."""
    return CycleProgressionService(
        cycle_repo,
        prescription_repo,
        aggregator,
        block_repo=block_repo,
    )


def get_flag_service(
    flag_repo: FlagRepository = Depends(get_flag_repo),
) -> FlagService:
    return FlagService(flag_repo)


# =============================================================================
# Authentication Providers
# =============================================================================


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """
    Get the authenticated user ID.

    Raises:
        HTTPException: 401 if authentication fails
    """
    return await _get_current_user(
        authorization=authorization,
        x_api_key=x_api_key,
    )
