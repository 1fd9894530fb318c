#!/usr/bin/env python3
"""
Derived Metrics - Fills in distance, duration, elevation gain and title from a
sample sequence plus whatever summary values the source format supplied
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..const import (
    DEFAULT_ACTIVITY_TYPE,
    KM_TO_MILES,
    METERS_TO_FEET,
    MIN_PER_KM_TO_MIN_PER_MILE,
)
from ..processors.interface import ParsedActivity, Sample, SourceSummary
from ..storage.interface import normalize_activity_type_key
from .geometry import elevation_gain_m, segment_distance_km, track_distance_km


@dataclass(frozen=True)
class SegmentMetrics:
    """Speed and pace between two consecutive samples"""
    distance_km: float
    elapsed_s: Optional[float]
    speed_kmh: Optional[float]
    pace_min_per_km: Optional[float]


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, leave aware ones untouched"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def first_timestamp(samples: Sequence[Sample]) -> Optional[datetime]:
    """Timestamp of the first sample that carries one"""
    for sample in samples:
        if sample.timestamp is not None:
            return sample.timestamp
    return None


def last_timestamp(samples: Sequence[Sample]) -> Optional[datetime]:
    """Timestamp of the last sample that carries one"""
    for sample in reversed(samples):
        if sample.timestamp is not None:
            return sample.timestamp
    return None


def elapsed_seconds(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole seconds between two instants, None unless both are known"""
    if start is None or end is None:
        return None
    return int((ensure_utc(end) - ensure_utc(start)).total_seconds())


def compute_speed_pace(distance_km: float, elapsed_s: Optional[float]):
    """
    Speed (km/h) and pace (min/km) for one segment

    Returns (None, None) for a non-positive elapsed time or zero distance.
    """
    if elapsed_s is None or elapsed_s <= 0 or distance_km <= 0:
        return None, None
    speed_kmh = (distance_km / elapsed_s) * 3600.0
    pace_min_per_km = (elapsed_s / 60.0) / distance_km
    return speed_kmh, pace_min_per_km


def segment_metrics(first: Sample, second: Sample) -> SegmentMetrics:
    """Distance, elapsed time, speed and pace between two consecutive samples"""
    distance_km = segment_distance_km(first, second)
    elapsed_s = None
    if first.timestamp is not None and second.timestamp is not None:
        elapsed_s = (ensure_utc(second.timestamp) - ensure_utc(first.timestamp)).total_seconds()
    speed_kmh, pace = compute_speed_pace(distance_km, elapsed_s)
    return SegmentMetrics(
        distance_km=distance_km,
        elapsed_s=elapsed_s,
        speed_kmh=speed_kmh,
        pace_min_per_km=pace,
    )


def is_known_type(activity_type: Optional[str]) -> bool:
    key = normalize_activity_type_key(activity_type)
    return key is not None and key != 'unknown'


def synthesize_title(activity_type: Optional[str],
                     duration_s: Optional[int],
                     start_time: Optional[datetime],
                     today: Optional[date] = None) -> str:
    """
    Build a title when the source did not provide one

    Args:
        activity_type: Activity type label, if known
        duration_s: Total duration in seconds, if known
        start_time: Start of the activity, if known
        today: Date used for the last-resort title (defaults to today, UTC)

    Returns:
        "{Type} - {N}min", "{Type} Activity", "Activity on {Month DD, YYYY}" or
        "Activity {YYYY-MM-DD}", first applicable
    """
    if is_known_type(activity_type):
        label = activity_type.strip().capitalize()
        if duration_s is not None:
            return f"{label} - {int(duration_s) // 60}min"
        return f"{label} Activity"
    if start_time is not None:
        return f"Activity on {start_time.strftime('%B %d, %Y')}"
    today = today or datetime.now(timezone.utc).date()
    return f"Activity {today.strftime('%Y-%m-%d')}"


def build_activity(summary: SourceSummary,
                   samples: Sequence[Sample],
                   today: Optional[date] = None) -> ParsedActivity:
    """
    Reconcile source summary values with values computed from samples

    Every field follows the same precedence: summary value, then the value
    computed from the samples, then a default.

    Args:
        summary: Values supplied directly by the source format
        samples: Ordered sample sequence (not re-sorted)
        today: Date used when no start time can be established

    Returns:
        Immutable ParsedActivity
    """
    samples = tuple(samples)

    start_time = summary.start_time
    if start_time is None:
        start_time = first_timestamp(samples)
    if start_time is None:
        start_time = summary.fallback_time
    start_time = ensure_utc(start_time)
    end_time = ensure_utc(last_timestamp(samples))

    duration_s = summary.duration_s
    if duration_s is None:
        duration_s = elapsed_seconds(start_time, end_time)

    distance_km = summary.distance_km
    if distance_km is None:
        distance_km = track_distance_km(samples)

    elevation_gain = summary.elevation_gain_m
    if elevation_gain is None:
        elevation_gain = elevation_gain_m(s.elevation for s in samples)

    activity_type = summary.activity_type or DEFAULT_ACTIVITY_TYPE

    title = summary.title.strip() if summary.title else ''
    if not title:
        title = synthesize_title(summary.activity_type, duration_s, start_time, today)

    # Calendar date is the UTC date of the start, not the local date at the source offset
    if start_time is not None:
        activity_date = start_time.astimezone(timezone.utc).date()
    else:
        activity_date = today or datetime.now(timezone.utc).date()

    description = summary.description.strip() if summary.description else None

    return ParsedActivity(
        activity_type=activity_type,
        title=title,
        date=activity_date,
        distance_km=distance_km,
        duration_s=duration_s,
        elevation_gain_m=elevation_gain,
        start_time=start_time,
        end_time=end_time,
        description=description or None,
        average_power=summary.average_power,
        average_hr=summary.average_hr,
        samples=samples,
    )


def chart_series(samples: Sequence[Sample], units: str = "metric") -> Dict[str, List]:
    """
    Per-sample series for charting

    Args:
        samples: Ordered sample sequence
        units: "metric" or "imperial"

    Returns:
        Dict with distance, time_seconds, elevation, heart_rate, power,
        cadence, speed and pace lists, one entry per sample
    """
    series = {
        'distance': [],
        'time_seconds': [],
        'elevation': [],
        'heart_rate': [],
        'power': [],
        'cadence': [],
        'speed': [],
        'pace': [],
    }
    if not samples:
        return series

    start = samples[0].timestamp
    total_km = 0.0
    previous_time = None
    for index, sample in enumerate(samples):
        segment_km = 0.0
        if index > 0:
            segment_km = segment_distance_km(samples[index - 1], sample)
            total_km += segment_km

        if sample.timestamp is not None and start is not None:
            elapsed = (ensure_utc(sample.timestamp) - ensure_utc(start)).total_seconds()
        else:
            # Missing timestamps fall back to one-second spacing
            elapsed = float(index)

        speed, pace = None, None
        if index > 0:
            speed, pace = compute_speed_pace(segment_km, elapsed - previous_time)
        previous_time = elapsed

        series['distance'].append(total_km)
        series['time_seconds'].append(elapsed)
        series['elevation'].append(sample.elevation if sample.elevation is not None else 0)
        series['heart_rate'].append(sample.heart_rate)
        series['power'].append(sample.power)
        series['cadence'].append(sample.cadence)
        series['speed'].append(speed)
        series['pace'].append(pace)

    if units == "imperial":
        series['distance'] = [km * KM_TO_MILES for km in series['distance']]
        series['elevation'] = [m * METERS_TO_FEET for m in series['elevation']]
        series['speed'] = [v * KM_TO_MILES if v is not None else None for v in series['speed']]
        series['pace'] = [p * MIN_PER_KM_TO_MIN_PER_MILE if p is not None else None for p in series['pace']]

    return series
