#!/usr/bin/env python3
"""
Gzip Adapter - Decompresses a gzip-wrapped FIT payload and delegates to FitDecoder
"""
import gzip
import io
import zlib
from typing import Optional

from ..const import MAX_DECOMPRESSED_BYTES
from ..utils import get_logger
from .fit import FitDecoder
from .interface import ActivityDecoder, FileFormat, ParsedActivity, decode_error

logger = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024


def gunzip_bounded(data: bytes, max_bytes: int = MAX_DECOMPRESSED_BYTES) -> bytes:
    """
    Decompress a gzip payload, refusing output larger than max_bytes

    Raises:
        DecodeError: If the stream is corrupt or decompresses past max_bytes
    """
    output = io.BytesIO()
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data)) as stream:
            while True:
                chunk = stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                output.write(chunk)
                if output.tell() > max_bytes:
                    raise decode_error("Decompressed FIT payload exceeds size limit",
                                       limit_bytes=max_bytes)
    except (OSError, EOFError, zlib.error) as e:
        raise decode_error(f"Error decompressing gzipped FIT file: {e}") from e
    return output.getvalue()


class GzipFitDecoder(ActivityDecoder):
    """Decoder for gzip-compressed FIT files"""

    format = FileFormat.FIT_GZIP

    def __init__(self, fit_decoder: Optional[FitDecoder] = None,
                 max_decompressed_bytes: int = MAX_DECOMPRESSED_BYTES):
        self.fit_decoder = fit_decoder or FitDecoder()
        self.max_decompressed_bytes = max_decompressed_bytes

    def decode(self, data: bytes) -> ParsedActivity:
        payload = gunzip_bounded(data, self.max_decompressed_bytes)
        logger.debug(f"Decompressed FIT payload: {len(data)} -> {len(payload)} bytes")
        return self.fit_decoder.decode(payload)
