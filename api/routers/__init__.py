"""
Router package for the Progression Analytics API.

This package contains all API routers organized by domain:
- health: Liveness and readiness endpoints
- progression: Sample ingest, series, summaries, pruning and power records
"""

from api.routers.health import router as health_router
from api.routers.progression import router as progression_router

__all__ = [
    "health_router",
    "progression_router",
]
