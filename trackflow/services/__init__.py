"""
Services module - duplicate detection and the per-file import chain
"""
from .duplicates import DuplicateCandidate, find_duplicate, is_duplicate
from .import_service import (
    ActivityImportService,
    ImportOutcome,
    OutcomeStatus,
    DUPLICATE_REASON,
)

__all__ = [
    'DuplicateCandidate',
    'find_duplicate',
    'is_duplicate',
    'ActivityImportService',
    'ImportOutcome',
    'OutcomeStatus',
    'DUPLICATE_REASON',
]
