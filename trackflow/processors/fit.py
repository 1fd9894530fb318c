#!/usr/bin/env python3
"""
FIT Decoder - Turns a binary FIT message stream into a ParsedActivity using fitparse
"""
import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from fitparse import FitFile
from fitparse.utils import FitParseError

from ..analytics.metrics import build_activity
from ..const import FIT_SPORT_CODES, SEMICIRCLES_TO_DEGREES, UNKNOWN_SPORT
from ..utils import get_logger
from .interface import ActivityDecoder, FileFormat, ParsedActivity, Sample, SourceSummary, decode_error

logger = get_logger(__name__)


class FitMessageKind(Enum):
    """FIT message kinds the decoder acts on"""
    FILE_ID = "file_id"
    SESSION = "session"
    RECORD = "record"
    ACTIVITY = "activity"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "FitMessageKind":
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER


def sport_label(code: Optional[int]) -> str:
    """Map a FIT sport code to its label, unknown codes map to "unknown" """
    if code is None:
        return UNKNOWN_SPORT
    return FIT_SPORT_CODES.get(int(code), UNKNOWN_SPORT)


def _as_utc(value: Any) -> Optional[datetime]:
    # fitparse leaves small (device-relative) timestamps as plain integers
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def message_values(message) -> Dict[str, Any]:
    """
    Field name -> value for one fitparse DataMessage

    Semicircle positions are converted to degrees. Sport keeps its raw code.
    """
    values = {}
    for field_data in message.fields:
        value = field_data.value
        if field_data.name == 'sport':
            value = field_data.raw_value
        elif value is not None and field_data.units == 'semicircles':
            value = value * SEMICIRCLES_TO_DEGREES
        values[field_data.name] = value
    return values


def _first_present(values: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if values.get(name) is not None:
            return values[name]
    return None


@dataclass
class _FitDecodeState:
    """Accumulator threaded through the message loop, consumed once"""
    sport_code: Optional[int] = None
    session_found: bool = False
    session_start: Optional[datetime] = None
    elapsed_s: Optional[float] = None
    distance_m: Optional[float] = None
    average_power: Optional[float] = None
    average_hr: Optional[float] = None
    total_ascent_m: Optional[float] = None
    activity_time: Optional[datetime] = None
    file_created: Optional[datetime] = None
    samples: List[Sample] = field(default_factory=list)
    discarded_records: int = 0

    def apply_file_id(self, values: Dict[str, Any]):
        if self.file_created is None:
            self.file_created = _as_utc(values.get('time_created'))

    def apply_activity(self, values: Dict[str, Any]):
        if self.activity_time is None:
            self.activity_time = _as_utc(values.get('timestamp'))

    def apply_session(self, values: Dict[str, Any]):
        # Multi-session files keep the first value seen for each field
        self.session_found = True
        if self.sport_code is None and values.get('sport') is not None:
            self.sport_code = values['sport']
        if self.session_start is None:
            self.session_start = _as_utc(values.get('start_time'))
        if self.elapsed_s is None:
            self.elapsed_s = values.get('total_elapsed_time')
        if self.distance_m is None:
            self.distance_m = values.get('total_distance')
        if self.average_power is None:
            self.average_power = values.get('avg_power')
        if self.average_hr is None:
            self.average_hr = values.get('avg_heart_rate')
        if self.total_ascent_m is None:
            self.total_ascent_m = values.get('total_ascent')

    def apply_record(self, values: Dict[str, Any]):
        latitude = values.get('position_lat')
        longitude = values.get('position_long')
        if latitude is None or longitude is None:
            self.discarded_records += 1
            return

        self.samples.append(Sample(
            timestamp=_as_utc(values.get('timestamp')),
            latitude=latitude,
            longitude=longitude,
            elevation=_first_present(values, 'enhanced_altitude', 'altitude'),
            heart_rate=values.get('heart_rate'),
            cadence=values.get('cadence'),
            power=values.get('power'),
            speed=_first_present(values, 'enhanced_speed', 'speed'),
        ))

    def to_summary(self) -> SourceSummary:
        activity_type = None
        if self.session_found:
            activity_type = sport_label(self.sport_code).capitalize()

        return SourceSummary(
            activity_type=activity_type,
            start_time=self.session_start,
            distance_km=self.distance_m / 1000.0 if self.distance_m is not None else None,
            duration_s=int(round(self.elapsed_s)) if self.elapsed_s is not None else None,
            elevation_gain_m=float(self.total_ascent_m) if self.total_ascent_m is not None else None,
            average_power=self.average_power,
            average_hr=self.average_hr,
            fallback_time=self.activity_time or self.file_created,
        )


class FitDecoder(ActivityDecoder):
    """Decoder for FIT activity files"""

    format = FileFormat.FIT

    def __init__(self, check_crc: bool = True):
        self.check_crc = check_crc

    def decode(self, data: bytes) -> ParsedActivity:
        state = _FitDecodeState()
        try:
            fit_file = FitFile(io.BytesIO(data), check_crc=self.check_crc)
            for message in fit_file.get_messages():
                self._dispatch(state, message)
        except FitParseError as e:
            raise decode_error(f"Error parsing FIT file: {e}", size=len(data)) from e
        except Exception as e:
            logger.error(f"❌ Unexpected FIT decode failure: {e}")
            raise decode_error(f"Error parsing FIT file: {e}", size=len(data)) from e

        activity = build_activity(state.to_summary(), state.samples)
        logger.info(f"✅ Parsed FIT activity '{activity.title}': {activity.sample_count} samples "
                    f"({state.discarded_records} records without position discarded)")
        return activity

    @staticmethod
    def _dispatch(state: _FitDecodeState, message):
        kind = FitMessageKind.from_name(getattr(message, 'name', None))
        if kind is FitMessageKind.OTHER:
            return

        values = message_values(message)
        if kind is FitMessageKind.RECORD:
            state.apply_record(values)
        elif kind is FitMessageKind.SESSION:
            logger.debug(f"FIT session: {values}")
            state.apply_session(values)
        elif kind is FitMessageKind.ACTIVITY:
            state.apply_activity(values)
        elif kind is FitMessageKind.FILE_ID:
            state.apply_file_id(values)
