"""
Infrastructure Layer for the Rehab Progression API.

Concrete implementations of repository interfaces:
- db/: Supabase database implementations
"""

from infrastructure.db import (
    SupabaseBlockRepository,
    SupabaseCycleRepository,
    SupabaseFlagRepository,
    SupabasePrescriptionRepository,
    SupabaseSignalRepository,
)

__all__ = [
    "SupabaseBlockRepository",
    "SupabaseCycleRepository",
    "SupabaseFlagRepository",
    "SupabasePrescriptionRepository",
    "SupabaseSignalRepository",
]
