"""
Utility modules for TrackFlow Tasks.

This package contains utility functions and classes used throughout the application:
- logging: Logging configuration and utilities
"""
