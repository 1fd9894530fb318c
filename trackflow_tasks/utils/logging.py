"""
Logging configuration and utilities for TrackFlow Tasks.

This module provides structured logging configuration with support for different
output formats, log levels, and integration with Celery task logging.
"""

import logging
import logging.config
import sys
from typing import Optional
from datetime import datetime
import json

import structlog
from structlog.typing import FilteringBoundLogger


_RESERVED_RECORD_FIELDS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message',
}


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Extra fields (task_id, user_id, archive, ...)
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored formatter for console output.
    """

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        original = record.levelname
        color = self.COLORS.get(original, '')
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    level: str = "INFO",
    format_type: str = "console",
    enable_structlog: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Setup logging configuration for TrackFlow Tasks.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ('console', 'json')
        enable_structlog: Enable structured logging with structlog
        log_file: Optional log file path
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'console': {
                'class': 'trackflow_tasks.utils.logging.ColoredFormatter',
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
            'json': {
                'class': 'trackflow_tasks.utils.logging.JSONFormatter',
            },
            'file': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': format_type,
                'stream': sys.stdout,
            },
        },
        'loggers': {
            'trackflow_tasks': {
                'level': log_level,
                'handlers': ['console'],
                'propagate': False,
            },
            'trackflow': {
                'level': log_level,
                'handlers': ['console'],
                'propagate': False,
            },
            'celery': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False,
            },
            'celery.app.trace': {
                'level': 'INFO',
                'handlers': ['console'],
                'propagate': False,
            },
        },
        'root': {
            'level': 'WARNING',
            'handlers': ['console'],
        },
    }

    if log_file:
        config['handlers']['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': log_level,
            'formatter': 'file',
            'filename': log_file,
            'maxBytes': 10_000_000,  # 10MB
            'backupCount': 5,
        }
        for logger_config in config['loggers'].values():
            logger_config['handlers'].append('file')
        config['root']['handlers'].append('file')

    logging.config.dictConfig(config)

    if enable_structlog:
        setup_structlog(level, json_output=format_type == "json")


def setup_structlog(level: str = "INFO", json_output: bool = False) -> None:
    """
    Setup structured logging with structlog.

    Args:
        level: Logging level
        json_output: Render events as JSON instead of the console renderer
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)


def get_task_logger(task_name: str, task_id: Optional[str] = None, **context) -> FilteringBoundLogger:
    """
    Get a structured logger for a specific task.

    Args:
        task_name: Name of the task
        task_id: Task ID (optional)
        **context: Additional context to include in logs

    Returns:
        Structured logger with task context
    """
    logger = structlog.get_logger(task_name)

    if task_id:
        logger = logger.bind(task_id=task_id)

    if context:
        logger = logger.bind(**context)

    return logger


def log_task_progress(logger: FilteringBoundLogger, current: int, total: int, message: str = "") -> None:
    """
    Log task progress.

    Args:
        logger: Bound task logger
        current: Current progress
        total: Total items
        message: Progress message
    """
    percentage = int((current / total) * 100) if total > 0 else 0
    logger.info(
        "Task progress",
        current=current,
        total=total,
        percentage=percentage,
        message=message
    )
