#!/usr/bin/env python3
"""
Processors Interface - Data model, file formats and decoder contract shared by
every activity decoder
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FileFormat(Enum):
    """Activity file format enumeration"""
    GPX = "gpx"
    FIT = "fit"
    FIT_GZIP = "fit_gzip"
    UNSUPPORTED = "unsupported"

    @property
    def is_supported(self) -> bool:
        return self is not FileFormat.UNSUPPORTED


class ProcessingError(Exception):
    """Base exception for activity processing errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class UnsupportedFormatError(ProcessingError):
    """Raised when a file cannot be classified as a supported format"""
    pass


class DecodeError(ProcessingError):
    """
    Raised when a payload cannot be decoded.

    Examples:
    - Malformed GPX XML or a GPX document without a track
    - FIT header or checksum failure
    - Corrupt gzip stream or an oversized decompressed payload
    """
    pass


def decode_error(message: str, **details) -> DecodeError:
    """Create a decode error with details."""
    return DecodeError(message, details)


def unsupported_format_error(message: str, **details) -> UnsupportedFormatError:
    """Create an unsupported format error with details."""
    return UnsupportedFormatError(message, details)


@dataclass(frozen=True)
class Sample:
    """One recorded instant of an activity"""
    timestamp: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None
    heart_rate: Optional[int] = None
    cadence: Optional[int] = None
    power: Optional[int] = None
    speed: Optional[float] = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class SourceSummary:
    """Values a source format supplies directly, before fallbacks are applied"""
    activity_type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    distance_km: Optional[float] = None
    duration_s: Optional[int] = None
    elevation_gain_m: Optional[float] = None
    average_power: Optional[float] = None
    average_hr: Optional[float] = None
    # Used only when neither the summary nor the samples give a start time
    fallback_time: Optional[datetime] = None


@dataclass(frozen=True)
class ParsedActivity:
    """Normalized activity produced by every decoder"""
    activity_type: str
    title: str
    date: date
    distance_km: Optional[float] = None
    duration_s: Optional[int] = None
    elevation_gain_m: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    average_power: Optional[float] = None
    average_hr: Optional[float] = None
    samples: Tuple[Sample, ...] = ()

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    def to_summary_dict(self) -> Dict[str, Any]:
        """JSON-friendly summary without the sample sequence"""
        data = asdict(self)
        data.pop('samples')
        data['date'] = self.date.isoformat()
        data['start_time'] = self.start_time.isoformat() if self.start_time else None
        data['end_time'] = self.end_time.isoformat() if self.end_time else None
        data['sample_count'] = self.sample_count
        return data


@dataclass
class ParseResult:
    """Single-file parse result: an activity or the errors that prevented it"""
    activity: Optional[ParsedActivity] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.activity is not None and not self.errors

    def add_error(self, error: str):
        """Add error"""
        self.errors.append(error)


class ActivityDecoder(ABC):
    """Activity decoder abstract base class"""

    format: FileFormat = FileFormat.UNSUPPORTED

    @abstractmethod
    def decode(self, data: bytes) -> ParsedActivity:
        """
        Decode a raw payload into a ParsedActivity

        Raises:
            DecodeError: If the payload is malformed
        """
        pass
