"""
API package for the Progression Analytics API.

This package contains:
- deps.py: FastAPI dependency providers for DI
- routers/: API route handlers
"""

# Re-export dependency providers for convenient access
from api.deps import (
    get_settings,
    get_supabase_client,
    get_progression_store,
    get_progression_service,
    get_current_user,
)

__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    # Progression
    "get_progression_store",
    "get_progression_service",
    # Authentication
    "get_current_user",
]
