"""
Pytest configuration and fixtures for TrackFlow tests.

This module provides shared fixtures for building GPX documents, binary FIT
files and ZIP archives, plus in-memory collaborators for the import pipeline.
"""

import gzip
import struct
import tempfile
import zipfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from trackflow.storage import InMemoryActivityStore
from trackflow_tasks.admission import InMemoryAdmissionGate


T0 = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)

# Seconds between the Unix epoch and the FIT epoch (1989-12-31T00:00:00Z)
FIT_EPOCH_OFFSET = 631065600

_FIT_CRC_TABLE = [
    0x0000, 0xCC01, 0xD801, 0x1400, 0xF001, 0x3C00, 0x2800, 0xE401,
    0xA001, 0x6C00, 0x7800, 0xB401, 0x5000, 0x9C01, 0x8801, 0x4400,
]

# kind -> (struct format, size, FIT base type)
_FIT_TYPES = {
    'enum': ('B', 1, 0x00),
    'uint8': ('B', 1, 0x02),
    'uint16': ('H', 2, 0x84),
    'sint32': ('i', 4, 0x85),
    'uint32': ('I', 4, 0x86),
}

FIT_INVALID_SINT32 = 0x7FFFFFFF


def fit_crc(data: bytes) -> int:
    crc = 0
    for byte in data:
        tmp = _FIT_CRC_TABLE[crc & 0xF]
        crc = (crc >> 4) & 0x0FFF
        crc = crc ^ tmp ^ _FIT_CRC_TABLE[byte & 0xF]
        tmp = _FIT_CRC_TABLE[crc & 0xF]
        crc = (crc >> 4) & 0x0FFF
        crc = crc ^ tmp ^ _FIT_CRC_TABLE[(byte >> 4) & 0xF]
    return crc


def to_fit_time(value: datetime) -> int:
    return int(value.timestamp()) - FIT_EPOCH_OFFSET


def to_semicircles(degrees: float) -> int:
    return int(round(degrees * (2 ** 31) / 180.0))


class FitBuilder:
    """Writes minimal little-endian FIT files, one definition per message"""

    def __init__(self):
        self._records = bytearray()

    def message(self, global_num: int, fields, local: int = 0) -> "FitBuilder":
        """
        Append a definition record and one data record

        Args:
            global_num: FIT global message number
            fields: List of (field number, kind, value)
            local: Local message type
        """
        self._records += struct.pack('<BBBHB', 0x40 | local, 0, 0, global_num, len(fields))
        for number, kind, _ in fields:
            _, size, base_type = _FIT_TYPES[kind]
            self._records += struct.pack('<BBB', number, size, base_type)

        self._records += struct.pack('<B', local)
        for _, kind, value in fields:
            fmt = _FIT_TYPES[kind][0]
            self._records += struct.pack('<' + fmt, value)
        return self

    def file_id(self, time_created: datetime) -> "FitBuilder":
        return self.message(0, [(0, 'enum', 4), (4, 'uint32', to_fit_time(time_created))])

    def record(self, timestamp: datetime, lat=None, lon=None, altitude_m=None,
               heart_rate=None, cadence=None, speed_mps=None, power=None) -> "FitBuilder":
        fields = [(253, 'uint32', to_fit_time(timestamp))]
        fields.append((0, 'sint32', to_semicircles(lat) if lat is not None else FIT_INVALID_SINT32))
        fields.append((1, 'sint32', to_semicircles(lon) if lon is not None else FIT_INVALID_SINT32))
        if altitude_m is not None:
            fields.append((2, 'uint16', int(round((altitude_m + 500) * 5))))
        if heart_rate is not None:
            fields.append((3, 'uint8', heart_rate))
        if cadence is not None:
            fields.append((4, 'uint8', cadence))
        if speed_mps is not None:
            fields.append((6, 'uint16', int(round(speed_mps * 1000))))
        if power is not None:
            fields.append((7, 'uint16', power))
        return self.message(20, fields, local=1)

    def session(self, start_time: datetime, sport: int = 1, elapsed_s=None,
                distance_m=None, avg_hr=None, avg_power=None, total_ascent=None) -> "FitBuilder":
        fields = [
            (253, 'uint32', to_fit_time(start_time)),
            (2, 'uint32', to_fit_time(start_time)),
            (5, 'enum', sport),
        ]
        if elapsed_s is not None:
            fields.append((7, 'uint32', int(round(elapsed_s * 1000))))
        if distance_m is not None:
            fields.append((9, 'uint32', int(round(distance_m * 100))))
        if avg_hr is not None:
            fields.append((16, 'uint8', avg_hr))
        if avg_power is not None:
            fields.append((20, 'uint16', avg_power))
        if total_ascent is not None:
            fields.append((22, 'uint16', total_ascent))
        return self.message(18, fields, local=2)

    def activity(self, timestamp: datetime) -> "FitBuilder":
        return self.message(34, [(253, 'uint32', to_fit_time(timestamp))], local=3)

    def build(self) -> bytes:
        data = bytes(self._records)
        header = struct.pack('<BBHI4s', 12, 0x10, 2093, len(data), b'.FIT')
        body = header + data
        return body + struct.pack('<H', fit_crc(body))


def build_gpx(points, name=None, activity_type=None, description=None,
              namespaced=True, segments=None) -> bytes:
    """
    GPX document with one track

    points: list of (lat, lon, elevation or None, datetime or None); ignored
    when segments (a list of such lists) is given.
    """
    segments = segments if segments is not None else [points]
    xmlns = ' xmlns="http://www.topografix.com/GPX/1/1"' if namespaced else ''
    parts = [f'<?xml version="1.0" encoding="UTF-8"?>\n<gpx version="1.1" creator="tests"{xmlns}>',
             '<trk>']
    if name is not None:
        parts.append(f'<name>{name}</name>')
    if description is not None:
        parts.append(f'<desc>{description}</desc>')
    if activity_type is not None:
        parts.append(f'<type>{activity_type}</type>')
    for segment in segments:
        parts.append('<trkseg>')
        for lat, lon, ele, when in segment:
            parts.append(f'<trkpt lat="{lat}" lon="{lon}">')
            if ele is not None:
                parts.append(f'<ele>{ele}</ele>')
            if when is not None:
                parts.append(f'<time>{when.strftime("%Y-%m-%dT%H:%M:%SZ")}</time>')
            parts.append('</trkpt>')
        parts.append('</trkseg>')
    parts.append('</trk></gpx>')
    return '\n'.join(parts).encode('utf-8')


def equator_points(start: datetime = T0, count: int = 3, step_deg: float = 1.0, step_s: int = 60):
    return [(0.0, i * step_deg, 0.0, start + timedelta(seconds=i * step_s)) for i in range(count)]


def build_zip(path: Path, entries) -> Path:
    """Write a ZIP archive from a list of (name, bytes) pairs"""
    with zipfile.ZipFile(path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries:
            archive.writestr(name, data)
    return path


@pytest.fixture
def temp_dir():
    """Create temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def fit_builder():
    """Factory for FIT file builders."""
    return FitBuilder


@pytest.fixture
def sample_fit_bytes():
    """Running FIT activity with a session summary and three positioned records."""
    builder = FitBuilder().file_id(T0)
    for i in range(3):
        builder.record(T0 + timedelta(seconds=i * 60), lat=45.0, lon=7.0 + i * 0.01,
                       altitude_m=100.0 + i * 10, heart_rate=140 + i, cadence=80,
                       speed_mps=3.0, power=200 + i)
    builder.record(T0 + timedelta(seconds=200))  # no position
    builder.session(T0, sport=1, elapsed_s=1800, distance_m=5000, avg_hr=150,
                    avg_power=210, total_ascent=42)
    builder.activity(T0 + timedelta(seconds=1800))
    return builder.build()


@pytest.fixture
def sample_gpx_bytes():
    """GPX track of three points one degree of longitude apart on the equator."""
    return build_gpx(equator_points(), name="Morning Run", activity_type=" Running ",
                     description="Easy loop")


@pytest.fixture
def gzip_bytes():
    """gzip compressor for payloads."""
    return gzip.compress


@pytest.fixture
def zip_builder():
    """ZIP archive writer."""
    return build_zip


@pytest.fixture
def gpx_builder():
    """GPX document writer."""
    return build_gpx


@pytest.fixture
def activity_store():
    """In-memory activity store."""
    store = InMemoryActivityStore()
    yield store
    store.close()


@pytest.fixture
def admission_gate():
    """In-memory admission gate."""
    return InMemoryAdmissionGate(ttl_seconds=3600)


@pytest.fixture
def t0():
    """Reference start time (UTC)."""
    return T0


@pytest.fixture
def track_points():
    """Factory for equator track points."""
    return equator_points
