#!/usr/bin/env python3
"""
Format Detector - Maps a filename to a supported activity file format
"""
import posixpath
from typing import Union
from pathlib import PurePath

from .interface import FileFormat


_EXTENSION_FORMATS = {
    '.gpx': FileFormat.GPX,
    '.fit': FileFormat.FIT,
}


def detect_format(filename: Union[str, PurePath]) -> FileFormat:
    """
    Classify a file by its extension (case-insensitive)

    ".gz" is FIT_GZIP only when the name without ".gz" ends in ".fit".

    Args:
        filename: File name or path

    Returns:
        Detected FileFormat, UNSUPPORTED when nothing matches
    """
    name = str(filename).replace('\\', '/').lower()
    base, extension = posixpath.splitext(name)

    if extension == '.gz':
        if base.endswith('.fit'):
            return FileFormat.FIT_GZIP
        return FileFormat.UNSUPPORTED

    return _EXTENSION_FORMATS.get(extension, FileFormat.UNSUPPORTED)
