#!/usr/bin/env python3
"""
Processors module - Activity file detection and decoding
"""

from .interface import (
    FileFormat, Sample, SourceSummary, ParsedActivity, ParseResult, ActivityDecoder,
    ProcessingError, UnsupportedFormatError, DecodeError,
    decode_error, unsupported_format_error
)
from .detector import detect_format
from .gpx import GpxDecoder
from .fit import FitDecoder, FitMessageKind, sport_label
from .gzip_fit import GzipFitDecoder, gunzip_bounded
from .parser import ActivityFileParser, parse_activity_file, UNSUPPORTED_MESSAGE

__all__ = [
    # Data model
    'FileFormat', 'Sample', 'SourceSummary', 'ParsedActivity', 'ParseResult',
    'ActivityDecoder',

    # Errors
    'ProcessingError', 'UnsupportedFormatError', 'DecodeError',
    'decode_error', 'unsupported_format_error',

    # Detection and decoding
    'detect_format',
    'GpxDecoder',
    'FitDecoder', 'FitMessageKind', 'sport_label',
    'GzipFitDecoder', 'gunzip_bounded',
    'ActivityFileParser', 'parse_activity_file', 'UNSUPPORTED_MESSAGE',
]
