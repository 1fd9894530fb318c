#!/usr/bin/env python3
"""
GPX Decoder - Turns GPX track XML into a ParsedActivity using gpxpy

Track points are read leniently: a point with a missing or unparseable
coordinate becomes an un-geolocated sample and a bad <ele> becomes a missing
elevation, instead of failing the whole document.
"""
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple
from xml.etree import ElementTree

import gpxpy
import gpxpy.gpx

from ..analytics.metrics import build_activity
from ..utils import get_logger
from .interface import ActivityDecoder, FileFormat, ParsedActivity, Sample, SourceSummary, decode_error

logger = get_logger(__name__)

# Elements gpxpy requires lat/lon on
_POSITIONED_ELEMENTS = ('trkpt', 'rtept', 'wpt')
_PLACEHOLDER_COORDINATE = '0'


@dataclass(frozen=True)
class _PointPosition:
    """Coordinates and elevation of one track point as read leniently"""
    latitude: Optional[float]
    longitude: Optional[float]
    elevation: Optional[float]


def _local_name(tag) -> str:
    # Comments and processing instructions have non-string tags
    if not isinstance(tag, str):
        return ''
    return tag.rsplit('}', 1)[-1]


def _lenient_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _children(element, name: str) -> List:
    return [child for child in element if _local_name(child.tag) == name]


def _repair_point(point) -> _PointPosition:
    """Read a positioned element leniently and make it acceptable to gpxpy"""
    position = _PointPosition(
        latitude=_lenient_float(point.get('lat')),
        longitude=_lenient_float(point.get('lon')),
        elevation=None,
    )
    if position.latitude is None:
        point.set('lat', _PLACEHOLDER_COORDINATE)
    if position.longitude is None:
        point.set('lon', _PLACEHOLDER_COORDINATE)

    elevation = None
    for ele in _children(point, 'ele'):
        value = _lenient_float(ele.text)
        if value is None:
            point.remove(ele)
        elif elevation is None:
            elevation = value
    return _PointPosition(position.latitude, position.longitude, elevation)


def normalize_gpx(text: str) -> Tuple[str, List[_PointPosition]]:
    """
    Prepare a GPX document for gpxpy

    Namespaces are dropped (gpxpy falls back to unqualified lookups), points
    with bad coordinates get placeholder values and bad elevations are
    removed.

    Returns:
        The repaired document and the leniently read positions of the first
        track's points, in document order

    Raises:
        ElementTree.ParseError: If the document is not well-formed XML
    """
    root = ElementTree.fromstring(text)
    for element in root.iter():
        if isinstance(element.tag, str):
            element.tag = _local_name(element.tag)

    repaired = {}
    for element in root.iter():
        if element.tag in _POSITIONED_ELEMENTS:
            repaired[id(element)] = _repair_point(element)

    positions = []
    tracks = _children(root, 'trk')
    if tracks:
        for segment in _children(tracks[0], 'trkseg'):
            for point in _children(segment, 'trkpt'):
                positions.append(repaired[id(point)])

    return ElementTree.tostring(root, encoding='unicode'), positions


class GpxDecoder(ActivityDecoder):
    """Decoder for the first track of a GPX document"""

    format = FileFormat.GPX

    def decode(self, data: bytes) -> ParsedActivity:
        try:
            text = data.decode('utf-8-sig') if isinstance(data, bytes) else data
            document, positions = normalize_gpx(text)
            gpx = gpxpy.parse(document)
        except UnicodeDecodeError as e:
            raise decode_error(f"Error parsing GPX file: invalid encoding ({e.reason})") from e
        except (ElementTree.ParseError, gpxpy.gpx.GPXException, ValueError) as e:
            raise decode_error(f"Error parsing GPX file: {e}") from e

        if not gpx.tracks:
            raise decode_error("Error parsing GPX file: no tracks found")

        track = gpx.tracks[0]
        samples = self._track_samples(track, positions)
        unpositioned = sum(1 for sample in samples if not sample.has_position)
        logger.debug(f"GPX track {track.name!r}: {len(track.segments)} segments, "
                     f"{len(samples)} points ({unpositioned} without position)")

        # Segments are concatenated into one sequence; gaps between them count
        # toward distance and duration.
        summary = SourceSummary(
            activity_type=track.type.strip().lower() if track.type and track.type.strip() else None,
            title=track.name,
            description=track.description,
        )
        activity = build_activity(summary, samples)
        logger.info(f"✅ Parsed GPX activity '{activity.title}': "
                    f"{activity.sample_count} samples, {activity.distance_km} km")
        return activity

    @staticmethod
    def _track_samples(track: gpxpy.gpx.GPXTrack,
                       positions: List[_PointPosition]) -> List[Sample]:
        points = [point for segment in track.segments for point in segment.points]
        if len(points) != len(positions):
            raise decode_error("Error parsing GPX file: inconsistent track points",
                               parsed=len(points), read=len(positions))

        return [
            Sample(
                timestamp=point.time,
                latitude=position.latitude,
                longitude=position.longitude,
                elevation=position.elevation,
            )
            for point, position in zip(points, positions)
        ]
