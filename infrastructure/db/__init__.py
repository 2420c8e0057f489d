"""
Infrastructure Database Layer.

Part of PT-111: Supabase repositories for the progression engine

Supabase-backed implementations of the repository interfaces defined in
application.ports. Multi-entity mutations are PostgreSQL functions from
supabase/migrations, invoked through client.rpc().

Usage:
    from supabase import create_client
    from infrastructure.db import (
        SupabaseBlockRepository,
        SupabaseCycleRepository,
        SupabaseFlagRepository,
        SupabasePrescriptionRepository,
        SupabaseSignalRepository,
    )

    client = create_client(SUPABASE_URL, SUPABASE_KEY)
    block_repo = SupabaseBlockRepository(client)
"""

from infrastructure.db.signal_repository import SupabaseSignalRepository
from infrastructure.db.prescription_repository import SupabasePrescriptionRepository
from infrastructure.db.block_repository import SupabaseBlockRepository
from infrastructure.db.cycle_repository import SupabaseCycleRepository
from infrastructure.db.flag_repository import SupabaseFlagRepository

__all__ = [
    # Patient signals (read-only)
    "SupabaseSignalRepository",

    # Programs and live prescriptions
    "SupabasePrescriptionRepository",

    # Block schedules (PT-113)
    "SupabaseBlockRepository",

    # Periodization cycles (PT-114)
    "SupabaseCycleRepository",

    # Clinician flags (PT-115)
    "SupabaseFlagRepository",
]
