"""
TrackFlow Tasks - Distributed job layer for the activity import pipeline.

This package provides Celery-based task processing for activity imports:
- Single-file GPX / FIT / gzipped FIT imports
- Bulk ZIP archive imports with per-entry accounting
- Per-user admission control for bulk jobs
"""

__version__ = "0.1.0"

from trackflow_tasks.celery_app import celery_app

__all__ = ["celery_app"]
