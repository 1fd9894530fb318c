#!/usr/bin/env python3
"""
Haversine geometry helpers - great-circle distance and elevation accumulation
"""
import math
from typing import Iterable, Optional, Sequence

from ..const import EARTH_RADIUS_KM


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two coordinates in kilometers

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        Distance in kilometers on a sphere of radius EARTH_RADIUS_KM
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a a hair above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def segment_distance_km(first, second) -> float:
    """Distance between two samples, zero when either lacks a coordinate"""
    if not (first.has_position and second.has_position):
        return 0.0
    return haversine_km(first.latitude, first.longitude, second.latitude, second.longitude)


def track_distance_km(samples: Sequence) -> Optional[float]:
    """
    Sum of consecutive segment distances in source order

    Returns None when fewer than two samples are available.
    """
    if len(samples) < 2:
        return None
    return sum(segment_distance_km(a, b) for a, b in zip(samples, samples[1:]))


def elevation_gain_m(elevations: Iterable[Optional[float]]) -> Optional[float]:
    """
    Sum of positive consecutive elevation deltas

    Missing values are skipped before pairing. Returns None when no value
    is present at all.
    """
    previous = None
    gain = 0.0
    seen = False
    for elevation in elevations:
        if elevation is None:
            continue
        if previous is not None and elevation > previous:
            gain += elevation - previous
        previous = elevation
        seen = True
    return gain if seen else None
