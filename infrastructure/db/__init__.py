"""
Infrastructure Database Layer.

This package provides implementations of the ProgressionStore interface
defined in application.ports.

Usage:
    from supabase import create_client
    from infrastructure.db import SupabaseProgressionStore

    # Create Supabase client
    client = create_client(SUPABASE_URL, SUPABASE_KEY)

    # Instantiate the store with injected client
    store = SupabaseProgressionStore(client)
"""

from infrastructure.db.progression_store import (
    SupabaseProgressionStore,
    InMemoryProgressionStore,
)

__all__ = [
    "SupabaseProgressionStore",
    "InMemoryProgressionStore",
]
