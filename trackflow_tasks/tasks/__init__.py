"""
Task modules for TrackFlow Tasks.

This package contains the Celery task implementations:
- imports: single-file and bulk archive activity imports
- bulk_import: the archive processor behind bulk imports
"""

from . import imports  # noqa: F401  registers tasks on autodiscovery
