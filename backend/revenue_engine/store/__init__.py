"""
Store Module - EntityStore interface and its in-memory / SQLAlchemy backends
"""

from revenue_engine.store.base import (
    ActivityFilter,
    CommissionFilter,
    EntityStore,
    LeadFilter,
    PolicyFilter,
)
from revenue_engine.store.memory import InMemoryStore

__all__ = [
    "ActivityFilter",
    "CommissionFilter",
    "EntityStore",
    "InMemoryStore",
    "LeadFilter",
    "PolicyFilter",
]
