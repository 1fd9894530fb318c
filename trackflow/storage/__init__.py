"""
Storage module - activity store contract and reference implementation
"""
from .interface import (
    ActivityStore,
    ExistingActivitySummary,
    PersistenceError,
    persistence_error,
    normalize_activity_type_key,
)
from .memory import InMemoryActivityStore, StoredActivity

__all__ = [
    'ActivityStore',
    'ExistingActivitySummary',
    'PersistenceError',
    'persistence_error',
    'normalize_activity_type_key',
    'InMemoryActivityStore',
    'StoredActivity',
]
