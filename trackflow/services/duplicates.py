#!/usr/bin/env python3
"""
Duplicate Detector - decides whether a parsed activity re-imports one the user
already has on the same calendar date
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, TypeVar

from ..analytics.metrics import ensure_utc
from ..processors.interface import ParsedActivity
from ..storage.interface import normalize_activity_type_key

T = TypeVar('T')


@dataclass(frozen=True)
class DuplicateCandidate:
    """Fields of an incoming activity compared during duplicate detection"""
    user_id: str
    activity_date: date
    activity_type_key: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    sample_count: int

    @classmethod
    def from_activity(cls, user_id: str, activity: ParsedActivity) -> "DuplicateCandidate":
        return cls(
            user_id=user_id,
            activity_date=activity.date,
            activity_type_key=normalize_activity_type_key(activity.activity_type),
            start_time=activity.start_time,
            end_time=activity.end_time,
            sample_count=activity.sample_count,
        )


def _epoch_seconds(value: datetime) -> int:
    return int(ensure_utc(value).timestamp())


def _same_second(a: datetime, b: datetime) -> bool:
    return _epoch_seconds(a) == _epoch_seconds(b)


def is_duplicate(existing, candidate: DuplicateCandidate) -> bool:
    """
    Strict equality chain between one existing summary and a candidate

    start time -> type key -> end time -> sample count, stopping at the first
    mismatch. An end time present on only one side is a mismatch.
    """
    if candidate.start_time is None or existing.start_time is None:
        return False
    if not _same_second(existing.start_time, candidate.start_time):
        return False
    if existing.activity_type_key != candidate.activity_type_key:
        return False

    if existing.end_time is not None and candidate.end_time is not None:
        if not _same_second(existing.end_time, candidate.end_time):
            return False
    elif existing.end_time is not None or candidate.end_time is not None:
        return False

    return existing.sample_count == candidate.sample_count


def find_duplicate(existing_same_day: Iterable[T], candidate: DuplicateCandidate) -> Optional[T]:
    """
    First existing same-day activity matching the candidate

    Args:
        existing_same_day: Summaries exposing start_time, end_time,
                           activity_type_key and sample_count
        candidate: Incoming activity

    Returns:
        The matching existing summary, or None
    """
    if candidate.start_time is None:
        return None
    for existing in existing_same_day:
        if is_duplicate(existing, candidate):
            return existing
    return None
