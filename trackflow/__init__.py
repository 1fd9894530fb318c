#!/usr/bin/env python3
"""
TrackFlow - Activity file import pipeline
Detects, decodes and normalizes GPX, FIT and gzipped FIT recordings into
activities with derived metrics, and filters out re-imports.
"""

# Processors load first: the decoders pull in analytics and storage
from .processors import (
    FileFormat, Sample, ParsedActivity, ParseResult,
    ProcessingError, UnsupportedFormatError, DecodeError,
    detect_format, ActivityFileParser, parse_activity_file,
)
from .analytics import build_activity, chart_series, haversine_km, elevation_gain_m
from .storage import ActivityStore, InMemoryActivityStore, PersistenceError, ExistingActivitySummary
from .services import ActivityImportService, ImportOutcome, OutcomeStatus, find_duplicate

__version__ = "0.1.0"

__all__ = [
    # Data model
    'FileFormat', 'Sample', 'ParsedActivity', 'ParseResult',

    # Errors
    'ProcessingError', 'UnsupportedFormatError', 'DecodeError', 'PersistenceError',

    # Parsing
    'detect_format', 'ActivityFileParser', 'parse_activity_file',

    # Analytics
    'build_activity', 'chart_series', 'haversine_km', 'elevation_gain_m',

    # Storage
    'ActivityStore', 'InMemoryActivityStore', 'ExistingActivitySummary',

    # Services
    'ActivityImportService', 'ImportOutcome', 'OutcomeStatus', 'find_duplicate',
]
