"""
Analytics module - geometry and derived activity metrics
"""
from .geometry import haversine_km, segment_distance_km, track_distance_km, elevation_gain_m
from .metrics import (
    SegmentMetrics,
    build_activity,
    chart_series,
    compute_speed_pace,
    ensure_utc,
    segment_metrics,
    synthesize_title,
)

__all__ = [
    # Geometry
    'haversine_km',
    'segment_distance_km',
    'track_distance_km',
    'elevation_gain_m',
    # Derived metrics
    'SegmentMetrics',
    'build_activity',
    'chart_series',
    'compute_speed_pace',
    'ensure_utc',
    'segment_metrics',
    'synthesize_title',
]
