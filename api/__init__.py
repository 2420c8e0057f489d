"""
API package for the Rehab Progression API.

This package contains:
- deps.py: FastAPI dependency providers for DI
- routers/: API route handlers
"""

# Re-export dependency providers for convenient access
from api.deps import (
    get_settings,
    get_supabase_client,
    get_supabase_client_required,
    get_signal_repo,
    get_prescription_repo,
    get_block_repo,
    get_cycle_repo,
    get_flag_repo,
    get_metrics_aggregator,
    get_block_service,
    get_cycle_service,
    get_flag_service,
    get_current_user,
)

__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    "get_supabase_client_required",
    # Repositories
    "get_signal_repo",
    "get_prescription_repo",
    "get_block_repo",
    "get_cycle_repo",
    "get_flag_repo",
    # Services
    "get_metrics_aggregator",
    "get_block_service",
    "get_cycle_service",
    "get_flag_service",
    # Authentication
    "get_current_user",
]
