"""
Celery application setup for TrackFlow Tasks.

This module creates and configures the Celery application instance that runs
activity imports, including configuration loading, task autodiscovery and
signal handlers for monitoring.
"""

import logging
from celery import Celery
from celery.signals import (
    task_prerun,
    task_postrun,
    task_failure,
    worker_ready,
    worker_shutdown,
)

from trackflow_tasks.config import get_celery_config, get_settings
from trackflow_tasks.utils.logging import setup_logging


logger = logging.getLogger(__name__)


def create_celery_app() -> Celery:
    """
    Create and configure Celery application.

    Returns:
        Configured Celery application instance
    """
    config = get_celery_config()
    settings = get_settings()

    app = Celery("trackflow_tasks")
    app.config_from_object(config)
    app.autodiscover_tasks(["trackflow_tasks"])

    log_level = "DEBUG" if settings.debug else settings.logging.level
    setup_logging(
        level=log_level,
        format_type=settings.logging.format,
        log_file=settings.logging.file,
    )

    _register_signal_handlers()

    logger.info("✅ Celery application initialized successfully")
    return app


def _register_signal_handlers() -> None:
    """Register Celery signal handlers for monitoring and logging."""

    @task_prerun.connect(weak=False)
    def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
        """Log task start."""
        logger.info(f"🚀 Task {task.name} [{task_id}] started")
        logger.debug(f"Task args: {args}, kwargs: {kwargs}")

    @task_postrun.connect(weak=False)
    def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None,
                             retval=None, state=None, **kwds):
        """Log task completion."""
        logger.info(f"✅ Task {task.name} [{task_id}] completed with state: {state}")

    @task_failure.connect(weak=False)
    def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
        """Log task failure."""
        logger.error(f"❌ Task {sender.name} [{task_id}] failed: {exception}")
        logger.debug(f"Traceback: {traceback}")

    @worker_ready.connect(weak=False)
    def worker_ready_handler(sender=None, **kwds):
        """Log worker ready."""
        logger.info(f"🔄 Worker {sender.hostname} is ready")

    @worker_shutdown.connect(weak=False)
    def worker_shutdown_handler(sender=None, **kwds):
        """Log worker shutdown."""
        logger.info(f"🛑 Worker {sender.hostname} is shutting down")


# Create the Celery app instance
celery_app = create_celery_app()
