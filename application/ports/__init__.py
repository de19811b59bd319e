"""
Store Interfaces (Ports) for the Progression Analytics API.

This package defines abstract interfaces that decouple the analytics core
from infrastructure (database). Implementations are provided in the
infrastructure layer.

Architecture follows the Ports & Adapters (Hexagonal) pattern:
- Ports: Abstract interfaces defined here (what the core needs)
- Adapters: Concrete implementations in infrastructure/ (how it's provided)

Usage:
    from application.ports import ProgressionStore

    class ProgressionService:
        def __init__(self, store: ProgressionStore):
            self._store = store
"""

# Progression series persistence
from application.ports.progression_store import ProgressionStore

__all__ = [
    "ProgressionStore",
]
