#!/usr/bin/env python3
"""
Activity Import Service - runs one file through parse, duplicate check and
persistence, returning an ImportOutcome instead of raising
"""
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

from ..processors.interface import ParsedActivity
from ..processors.parser import ActivityFileParser
from ..storage.interface import ActivityStore, ExistingActivitySummary, normalize_activity_type_key
from ..utils import get_logger
from .duplicates import DuplicateCandidate, find_duplicate

logger = get_logger(__name__)

DUPLICATE_REASON = "Duplicate activity already exists for this date and time"


class OutcomeStatus(Enum):
    """Per-file import outcome"""
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ImportOutcome:
    """Result of importing one file"""
    status: OutcomeStatus
    filename: str
    reason: Optional[str] = None
    activity_id: Optional[str] = None
    activity: Optional[ParsedActivity] = None

    @classmethod
    def created(cls, filename: str, activity_id: str, activity: ParsedActivity) -> "ImportOutcome":
        return cls(OutcomeStatus.CREATED, filename, activity_id=activity_id, activity=activity)

    @classmethod
    def skipped(cls, filename: str, reason: str, activity: Optional[ParsedActivity] = None) -> "ImportOutcome":
        return cls(OutcomeStatus.SKIPPED, filename, reason=reason, activity=activity)

    @classmethod
    def failed(cls, filename: str, reason: str, activity: Optional[ParsedActivity] = None) -> "ImportOutcome":
        return cls(OutcomeStatus.FAILED, filename, reason=reason, activity=activity)

    @property
    def message(self) -> Optional[str]:
        """Human-readable "<basename>: <reason>" line, None for created files"""
        if self.reason is None:
            return None
        return f"{os.path.basename(self.filename)}: {self.reason}"

    def existing_summary(self) -> Optional[ExistingActivitySummary]:
        """Summary that makes a created activity visible to later duplicate checks"""
        if self.status is not OutcomeStatus.CREATED or self.activity is None:
            return None
        return ExistingActivitySummary(
            activity_id=self.activity_id,
            start_time=self.activity.start_time,
            end_time=self.activity.end_time,
            activity_type_key=normalize_activity_type_key(self.activity.activity_type),
            sample_count=self.activity.sample_count,
        )

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'filename': self.filename,
            'reason': self.reason,
            'activity_id': self.activity_id,
            'activity': self.activity.to_summary_dict() if self.activity else None,
        }


class ActivityImportService:
    """Parse -> duplicate check -> create chain for a single user file"""

    def __init__(self, store: ActivityStore, parser: Optional[ActivityFileParser] = None):
        self.store = store
        self.parser = parser or ActivityFileParser()

    def import_file(self, user_id: str,
                    path: Union[str, Path],
                    filename: Optional[str] = None,
                    also_check: Iterable[ExistingActivitySummary] = ()) -> ImportOutcome:
        """
        Import one activity file for a user

        Args:
            user_id: Owner of the activity
            path: Location of the file on disk
            filename: Original name used for format detection and messages
            also_check: Extra summaries to treat as existing (activities
                        created earlier in the same job)

        Returns:
            ImportOutcome: SKIPPED for parse errors and duplicates, FAILED
            when the store raises, CREATED otherwise
        """
        filename = filename or Path(path).name
        result = self.parser.parse_file(path, filename)
        if not result.success:
            reason = "; ".join(result.errors) or "Unable to parse file"
            return ImportOutcome.skipped(filename, reason)

        activity = result.activity
        candidate = DuplicateCandidate.from_activity(user_id, activity)
        try:
            existing = list(self.store.existing_same_day_activities(user_id, activity.date))
        except Exception as e:
            logger.error(f"❌ Duplicate lookup failed for {filename}: {e}")
            return ImportOutcome.failed(filename, str(e), activity)
        existing.extend(also_check)

        duplicate = find_duplicate(existing, candidate)
        if duplicate is not None:
            logger.info(f"⏭️ {filename} duplicates activity {duplicate.activity_id}")
            return ImportOutcome.skipped(filename, DUPLICATE_REASON, activity)

        try:
            activity_id = self.store.create_activity(user_id, activity)
        except Exception as e:
            logger.error(f"❌ Failed to store activity from {filename}: {e}")
            return ImportOutcome.failed(filename, str(e), activity)

        logger.info(f"✅ Created activity {activity_id} from {filename}")
        return ImportOutcome.created(filename, activity_id, activity)
