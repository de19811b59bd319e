"""
Health check router.

This router provides health check endpoints for monitoring and load balancers.
"""

import logging

from fastapi import APIRouter, Depends

from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Health"],
)


@router.get("/health")
def health():
    """
    Simple liveness endpoint for progression-api.

    Returns:
        dict: Status indicator for health checks
    """
    return {"status": "ok"}


@router.get("/health/ready")
def ready(settings: Settings = Depends(get_settings)):
    """
    Readiness endpoint reporting which progression store is active.

    Returns:
        dict: Status, environment and store backend
    """
    return {
        "status": "ok",
        "environment": settings.environment,
        "store": "supabase" if settings.supabase_configured else "memory",
    }
