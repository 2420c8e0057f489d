"""
Health check router.

Part of PT-102: Service wiring

Liveness and readiness endpoints for monitoring and load balancers.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_supabase_client
from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Health"],
)


@router.get("/health")
def health():
    """
    Simple liveness endpoint.

    Returns:
        dict: Status indicator for health checks
    """
    return {"status": "ok"}


@router.get("/health/ready")
def readiness(settings: Settings = Depends(get_settings)):
    """
    Readiness endpoint: the database client must be configured.

    Raises:
        HTTPException: 503 if Supabase credentials are missing
    """
    if get_supabase_client() is None:
        logger.warning("Readiness check failed: Supabase not configured")
        raise HTTPException(status_code=503, detail="Database not configured")
    return {"status": "ready", "environment": settings.environment}
