#!/usr/bin/env python3
"""
Activity file parser - single-file entry point: detect, decode, derive
"""
from pathlib import Path
from typing import Dict, Optional, Union

from ..const import MAX_DECOMPRESSED_BYTES
from ..utils import get_logger
from .detector import detect_format
from .fit import FitDecoder
from .gpx import GpxDecoder
from .gzip_fit import GzipFitDecoder
from .interface import (
    ActivityDecoder,
    FileFormat,
    ParseResult,
    ProcessingError,
    unsupported_format_error,
)

logger = get_logger(__name__)

UNSUPPORTED_MESSAGE = "Unsupported file type. Please upload a GPX, FIT, or gzipped FIT file."


class ActivityFileParser:
    """Routes a payload to the decoder for its detected format"""

    def __init__(self, max_decompressed_bytes: int = MAX_DECOMPRESSED_BYTES):
        fit_decoder = FitDecoder()
        self.decoders: Dict[FileFormat, ActivityDecoder] = {
            FileFormat.GPX: GpxDecoder(),
            FileFormat.FIT: fit_decoder,
            FileFormat.FIT_GZIP: GzipFitDecoder(fit_decoder, max_decompressed_bytes),
        }

    def get_decoder(self, file_format: FileFormat) -> ActivityDecoder:
        """
        Decoder for a detected format

        Raises:
            UnsupportedFormatError: For FileFormat.UNSUPPORTED
        """
        decoder = self.decoders.get(file_format)
        if decoder is None:
            raise unsupported_format_error(UNSUPPORTED_MESSAGE, format=file_format.value)
        return decoder

    def parse_bytes(self, data: bytes, filename: str) -> ParseResult:
        """Parse an in-memory payload; filename is only used for detection"""
        result = ParseResult()
        try:
            decoder = self.get_decoder(detect_format(filename))
            result.activity = decoder.decode(data)
        except ProcessingError as e:
            logger.warning(f"⚠️ Could not parse {filename}: {e.message}")
            result.add_error(e.message)
        return result

    def parse_file(self, path: Union[str, Path], filename: Optional[str] = None) -> ParseResult:
        """
        Parse an activity file from disk

        Args:
            path: Location of the file
            filename: Original upload name used for format detection
                      (defaults to the path's name)

        Returns:
            ParseResult holding the activity or the errors that prevented it
        """
        path = Path(path)
        filename = filename or path.name
        if not detect_format(filename).is_supported:
            return ParseResult(errors=[UNSUPPORTED_MESSAGE])

        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning(f"⚠️ Could not read {path}: {e}")
            return ParseResult(errors=[f"Invalid file: {e.strerror or e}"])
        return self.parse_bytes(data, filename)


def parse_activity_file(path: Union[str, Path], filename: Optional[str] = None) -> ParseResult:
    """Parse one activity file with a default parser"""
    return ActivityFileParser().parse_file(path, filename)
