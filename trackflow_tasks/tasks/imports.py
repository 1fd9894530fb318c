"""
Activity import tasks for TrackFlow Tasks.

This module contains the Celery tasks that import a single activity file or a
ZIP archive of activity files for one user, plus the factories that wire the
configured activity store and admission gate into them.
"""

import importlib
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from trackflow.processors import ActivityFileParser
from trackflow.services import ActivityImportService, OutcomeStatus
from trackflow.storage import ActivityStore

from ..admission import AdmissionGate, FileAdmissionGate, InMemoryAdmissionGate
from ..celery_app import celery_app
from ..config import ImportConfig, get_import_config
from ..exceptions import ImportInProgressError, configuration_error
from ..utils.logging import get_task_logger, log_task_progress
from .bulk_import import BulkArchiveProcessor

_factory_lock = threading.Lock()
_activity_store: Optional[ActivityStore] = None
_admission_gate: Optional[AdmissionGate] = None


def load_activity_store(path: str) -> ActivityStore:
    """
    Instantiate an activity store from a "module:ClassName" path.

    Raises:
        ConfigurationError: If the path cannot be imported or does not name
                            an ActivityStore
    """
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise configuration_error("Activity store must be given as 'module:ClassName'", path=path)
    try:
        store_class = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as e:
        raise configuration_error(f"Cannot load activity store: {e}", path=path) from e

    store = store_class()
    if not isinstance(store, ActivityStore):
        raise configuration_error("Configured class is not an ActivityStore", path=path)
    return store


def build_admission_gate(config: ImportConfig) -> AdmissionGate:
    """Create the admission gate selected by configuration."""
    if config.admission_backend == "memory":
        return InMemoryAdmissionGate(config.admission_ttl_seconds)
    return FileAdmissionGate(config.admission_lock_dir, config.admission_ttl_seconds)


def get_activity_store() -> ActivityStore:
    """Process-wide activity store, created on first use."""
    global _activity_store
    with _factory_lock:
        if _activity_store is None:
            _activity_store = load_activity_store(get_import_config().activity_store)
        return _activity_store


def get_admission_gate() -> AdmissionGate:
    """Process-wide admission gate, created on first use."""
    global _admission_gate
    with _factory_lock:
        if _admission_gate is None:
            _admission_gate = build_admission_gate(get_import_config())
        return _admission_gate


def run_file_import(file_path: str, user_id: str, filename: Optional[str] = None,
                    store: Optional[ActivityStore] = None) -> Dict[str, Any]:
    """
    Import one activity file and describe the outcome as a JSON-friendly dict.

    Args:
        file_path: Location of the uploaded file
        user_id: Owner of the activity
        filename: Original upload name (defaults to the file's name)
        store: Activity store (defaults to the configured one)

    Returns:
        Dict with status, errors, activity_id and the activity summary
    """
    config = get_import_config()
    service = ActivityImportService(store or get_activity_store(),
                                    ActivityFileParser(config.max_decompressed_bytes))
    outcome = service.import_file(user_id, file_path, filename=filename)
    return {
        'status': outcome.status.value,
        'filename': outcome.filename,
        'errors': [outcome.reason] if outcome.reason else [],
        'activity_id': outcome.activity_id,
        'activity': outcome.activity.to_summary_dict() if outcome.activity else None,
    }


def run_archive_import(archive_path: str, user_id: str,
                       store: Optional[ActivityStore] = None,
                       gate: Optional[AdmissionGate] = None,
                       delete_archive: bool = True,
                       progress_callback=None,
                       task_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Import every activity in a ZIP archive.

    Raises:
        ImportInProgressError: If a bulk import is already running for the user
    """
    config = get_import_config()
    store = store or get_activity_store()
    processor = BulkArchiveProcessor(
        store=store,
        gate=gate or get_admission_gate(),
        scratch_root=config.scratch_dir,
        max_entry_bytes=config.max_entry_size_bytes,
        max_reported_errors=config.max_reported_errors,
        delete_archive=delete_archive,
        import_service=ActivityImportService(store, ActivityFileParser(config.max_decompressed_bytes)),
        progress_callback=progress_callback,
    )
    tally = processor.run(archive_path, user_id, task_id=task_id)
    result = tally.to_dict(config.max_reported_errors)
    result['status'] = 'completed'
    return result


# Task configuration
TASK_CONFIG = {
    "import_activity_file": {
        "time_limit": 300,   # 5 minutes
        "soft_time_limit": 240,
    },
    "bulk_import_archive": {
        "time_limit": 3600,  # 1 hour
        "soft_time_limit": 3300,
    },
}


@celery_app.task(bind=True, **TASK_CONFIG["import_activity_file"])
def import_activity_file(self, file_path: str, user_id: str,
                         filename: Optional[str] = None) -> Dict[str, Any]:
    """
    Import a single uploaded activity file.

    Args:
        file_path: Path to the uploaded GPX, FIT or gzipped FIT file
        user_id: User identifier
        filename: Original upload name used for format detection

    Returns:
        Dict containing the import outcome
    """
    task_logger = get_task_logger("import_activity_file", self.request.id,
                                  user_id=user_id, file=filename or Path(file_path).name)
    start_time = time.monotonic()

    result = run_file_import(file_path, user_id, filename)

    duration = time.monotonic() - start_time
    if result['status'] == OutcomeStatus.CREATED.value:
        task_logger.info("Activity imported", activity_id=result['activity_id'], duration=duration)
    else:
        task_logger.warning("Activity not imported", status=result['status'],
                            errors=result['errors'], duration=duration)
    return result


@celery_app.task(bind=True, **TASK_CONFIG["bulk_import_archive"])
def bulk_import_archive(self, archive_path: str, user_id: str) -> Dict[str, Any]:
    """
    Import every activity file contained in an uploaded ZIP archive.

    Args:
        archive_path: Path to the uploaded ZIP archive (deleted when the job ends)
        user_id: User identifier

    Returns:
        Dict containing counts and per-entry messages, or status "rejected"
        when another bulk import is running for the user
    """
    task_id = self.request.id
    task_logger = get_task_logger("bulk_import_archive", task_id,
                                  user_id=user_id, archive=Path(archive_path).name)

    def report_progress(current: int, total: int, message: str):
        log_task_progress(task_logger, current, total, message)
        # Only a worker-executed task has somewhere to store state
        if task_id:
            percentage = int((current / total) * 100) if total > 0 else 0
            self.update_state(
                state="PROGRESS",
                meta={"current": current, "total": total,
                      "percentage": percentage, "message": message},
            )

    start_time = time.monotonic()
    try:
        result = run_archive_import(archive_path, user_id,
                                    progress_callback=report_progress, task_id=task_id)
    except ImportInProgressError as e:
        task_logger.warning("Bulk import rejected", reason=e.message)
        # The upload belongs to this task; no job will pick it up
        try:
            os.remove(archive_path)
        except FileNotFoundError:
            pass
        return {
            'status': 'rejected',
            'error': e.message,
            'created': 0,
            'skipped': 0,
            'failed': 0,
        }

    task_logger.info("Bulk import completed", duration=time.monotonic() - start_time,
                     created=result['created'], skipped=result['skipped'],
                     failed=result['failed'])
    return result
