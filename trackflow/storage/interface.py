#!/usr/bin/env python3
"""
Storage Layer Abstract Interface - Separates the import pipeline from the
activity store implementation
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional


class PersistenceError(Exception):
    """
    Raised by activity stores when a write cannot be completed.

    Examples:
    - Constraint violations (missing title or date)
    - Backend connection or transaction failures
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def persistence_error(message: str, **details) -> PersistenceError:
    """Create a persistence error with details."""
    return PersistenceError(message, details)


def normalize_activity_type_key(label: Optional[str]) -> Optional[str]:
    """
    Normalize a free-form activity type label into a comparison key

    "Trail Run" -> "trail_run", "E-Biking!" -> "e_biking", "  " -> None
    """
    if label is None:
        return None
    key = label.strip().lower()
    key = re.sub(r'[\s-]+', '_', key)
    key = re.sub(r'[^a-z0-9_]', '', key)
    key = re.sub(r'_+', '_', key)
    key = key.strip('_')
    return key or None


@dataclass(frozen=True)
class ExistingActivitySummary:
    """Minimum view of a stored activity needed for duplicate detection"""
    activity_id: str
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    activity_type_key: Optional[str]
    sample_count: int


class ActivityStore(ABC):
    """Activity store abstract base class"""

    @abstractmethod
    def create_activity(self, user_id: str, activity) -> str:
        """
        Persist an activity together with its ordered sample batch

        The write is atomic: either the activity and all samples are stored
        or nothing is.

        Args:
            user_id: Owner of the activity
            activity: ParsedActivity to persist

        Returns:
            Identifier of the stored activity

        Raises:
            PersistenceError: If the activity cannot be stored
        """
        pass

    @abstractmethod
    def existing_same_day_activities(self, user_id: str,
                                     activity_date: date) -> List[ExistingActivitySummary]:
        """Summaries of the user's activities recorded on a calendar date"""
        pass

    def close(self):
        """Release backend resources"""
        pass
