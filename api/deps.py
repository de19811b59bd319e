"""
FastAPI Dependency Providers for the Progression Analytics API.

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations. This
enables clean separation of concerns and easy testing with fake implementations.

Architecture:
- Settings and Supabase client are cached per-process (lru_cache)
- The progression store and service are cached per-process, so the
  in-memory store and per-series achievement state survive across requests
- Auth providers wrap backend.auth

Usage in routers:
    from api.deps import get_progression_service, get_current_user

    @router.get("/progression/...")
    def summary(
        user_id: str = Depends(get_current_user),
        service: ProgressionService = Depends(get_progression_service),
    ):
        return service.get_summary(user_id, ...)

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_progression_service] = lambda: ProgressionService(FakeProgressionStore())
"""

from functools import lru_cache
import logging
from typing import Optional

from fastapi import Header
from supabase import Client, create_client

# Protocol types (interfaces)
from application.ports import ProgressionStore

# Concrete implementations
from infrastructure import InMemoryProgressionStore, SupabaseProgressionStore

from backend.core.progression_service import ProgressionService
from backend.settings import Settings, get_settings as _get_settings

# Auth from existing module (wrap to maintain single source of truth)
from backend.auth import get_current_user as _get_current_user

logger = logging.getLogger(__name__)


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.
    Use this as a FastAPI dependency for settings access.

    Returns:
        Settings: Application settings instance
    """
    return _get_settings()


# =============================================================================
# Supabase Client Provider
# =============================================================================


@lru_cache
def get_supabase_client() -> Optional[Client]:
    """
    Get Supabase client instance (cached).

    Creates a Supabase client using credentials from settings.
    Returns None if credentials are not configured.

    Returns:
        Client: Supabase client instance, or None if not configured
    """
    settings = _get_settings()

    if not settings.supabase_configured:
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


# =============================================================================
# Store and Service Providers
# =============================================================================


@lru_cache
def get_progression_store() -> ProgressionStore:
    """
    Get ProgressionStore implementation (cached).

    Returns a SupabaseProgressionStore when Supabase is configured, otherwise
    a process-local InMemoryProgressionStore.

    Returns:
        ProgressionStore: Store for progression series
    """
    settings = _get_settings()
    client = get_supabase_client()

    if client is None:
        logger.warning("Supabase not configured; progression series are kept in memory")
        return InMemoryProgressionStore()

    return SupabaseProgressionStore(client, table=settings.progression_table)


@lru_cache
def get_progression_service() -> ProgressionService:
    """
    Get the ProgressionService (cached).

    Returns:
        ProgressionService: Facade for ingest and analytics
    """
    return ProgressionService(get_progression_store(), settings=_get_settings())


# =============================================================================
# Authentication Providers
# =============================================================================


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """
    Get the current authenticated user ID.

    Wraps backend.auth.get_current_user for dependency injection.
    Supports:
    - HS256 JWT
    - API key authentication

    Args:
        authorization: Bearer token header
        x_api_key: API key header

    Returns:
        str: User ID from authentication

    Raises:
        HTTPException: 401 if authentication fails
    """
    return await _get_current_user(
        authorization=authorization,
        x_api_key=x_api_key,
    )


# =============================================================================
# Exports
# =============================================================================

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
