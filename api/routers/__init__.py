"""
Router package for the Rehab Progression API.

This package contains all API routers organized by domain:
- health: Liveness and readiness checks
- blocks: Block schedules, evaluation and clinician overrides (PT-113)
- periodization: Adaptive periodization cycles and progression logs (PT-114)
- flags: Clinician flag inbox (PT-115)
"""

from api.routers.health import router as health_router
from api.routers.blocks import router as blocks_router
from api.routers.periodization import router as periodization_router
from api.routers.flags import router as flags_router

__all__ = [
    "health_router",
    "blocks_router",
    "periodization_router",
    "flags_router",
]
