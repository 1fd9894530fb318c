"""
Custom exception classes for TrackFlow Tasks.

This module defines the exception hierarchy used by the import job layer.
"""

from typing import Optional, Any, Dict


class TrackflowTasksError(Exception):
    """
    Base exception for all TrackFlow Tasks errors.

    All custom exceptions in this package should inherit from this class.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(TrackflowTasksError):
    """
    Raised when there are configuration-related errors.

    Examples:
    - Activity store path that cannot be imported
    - Unknown admission backend
    """
    pass


class ExtractionError(TrackflowTasksError):
    """
    Raised when an archive entry cannot be copied to scratch storage.

    Examples:
    - Corrupt compressed entry data
    - Disk full or permission errors on the scratch directory
    - Entry larger than the configured size cap
    """
    pass


class ImportInProgressError(TrackflowTasksError):
    """
    Raised when a bulk import is requested while another one is still
    running for the same user.
    """
    pass


class ArchiveError(TrackflowTasksError):
    """
    Raised when an archive as a whole cannot be opened.

    Examples:
    - Missing archive file
    - File is not a ZIP archive
    """
    pass


# Convenience functions for creating common exceptions

def configuration_error(message: str, **details) -> ConfigurationError:
    """Create a configuration error with details."""
    return ConfigurationError(message, details)


def extraction_error(message: str, **details) -> ExtractionError:
    """Create an extraction error with details."""
    return ExtractionError(message, details)


def import_in_progress_error(message: str, **details) -> ImportInProgressError:
    """Create an import-in-progress error with details."""
    return ImportInProgressError(message, details)


def archive_error(message: str, **details) -> ArchiveError:
    """Create an archive error with details."""
    return ArchiveError(message, details)
