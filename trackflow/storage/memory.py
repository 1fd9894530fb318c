#!/usr/bin/env python3
"""
In-memory activity store - reference implementation of ActivityStore
"""
import threading
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from ..processors.interface import ParsedActivity
from ..utils import get_logger
from .interface import (
    ActivityStore,
    ExistingActivitySummary,
    normalize_activity_type_key,
    persistence_error,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredActivity:
    """Activity as held by the in-memory store"""
    activity_id: str
    user_id: str
    activity: ParsedActivity

    def to_summary(self) -> ExistingActivitySummary:
        return ExistingActivitySummary(
            activity_id=self.activity_id,
            start_time=self.activity.start_time,
            end_time=self.activity.end_time,
            activity_type_key=normalize_activity_type_key(self.activity.activity_type),
            sample_count=self.activity.sample_count,
        )


class InMemoryActivityStore(ActivityStore):
    """Thread-safe process-local activity store"""

    def __init__(self):
        self._lock = threading.Lock()
        self._activities: Dict[str, StoredActivity] = {}

    def create_activity(self, user_id: str, activity: ParsedActivity) -> str:
        if not activity.title:
            raise persistence_error("Activity title is required", user_id=user_id)
        if activity.date is None:
            raise persistence_error("Activity date is required", user_id=user_id)

        activity_id = str(uuid.uuid4())
        with self._lock:
            self._activities[activity_id] = StoredActivity(activity_id, user_id, activity)

        logger.debug(f"Stored activity {activity_id} for user {user_id} "
                     f"with {activity.sample_count} samples")
        return activity_id

    def existing_same_day_activities(self, user_id: str,
                                     activity_date: date) -> List[ExistingActivitySummary]:
        with self._lock:
            return [
                stored.to_summary()
                for stored in self._activities.values()
                if stored.user_id == user_id and stored.activity.date == activity_date
            ]

    def get_activity(self, activity_id: str) -> Optional[ParsedActivity]:
        with self._lock:
            stored = self._activities.get(activity_id)
        return stored.activity if stored else None

    def list_activities(self, user_id: str) -> List[StoredActivity]:
        with self._lock:
            return [s for s in self._activities.values() if s.user_id == user_id]

    def close(self):
        with self._lock:
            self._activities.clear()
