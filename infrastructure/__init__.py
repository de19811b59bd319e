"""
Infrastructure Layer for the Progression Analytics API.

This package contains concrete implementations of the store interfaces:
- db/: Supabase and in-memory progression stores
"""

# Re-export stores for convenient access
from infrastructure.db import (
    SupabaseProgressionStore,
    InMemoryProgressionStore,
)

__all__ = [
    "SupabaseProgressionStore",
    "InMemoryProgressionStore",
]
