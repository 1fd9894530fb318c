"""
TrackFlow Utils Package
"""
from .core import (
    LoggingConfig,
    setup_trackflow_logging,
    get_logger,
)

__all__ = [
    'LoggingConfig',
    'setup_trackflow_logging',
    'get_logger',
]
