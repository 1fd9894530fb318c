"""
Unit tests for activity import tasks.
"""

import pytest
from unittest.mock import Mock, patch

from trackflow.storage import InMemoryActivityStore
from trackflow_tasks.admission import FileAdmissionGate, InMemoryAdmissionGate
from trackflow_tasks.config import ImportConfig
from trackflow_tasks.exceptions import ConfigurationError
from trackflow_tasks.tasks.imports import (
    build_admission_gate,
    bulk_import_archive,
    import_activity_file,
    load_activity_store,
    run_archive_import,
    run_file_import,
)


class TestFactories:
    """Test store and gate factories."""

    def test_load_activity_store(self):
        """Test loading the reference store from a dotted path."""
        store = load_activity_store("trackflow.storage.memory:InMemoryActivityStore")
        assert isinstance(store, InMemoryActivityStore)

    @pytest.mark.parametrize("path", [
        "trackflow.storage.memory",
        "trackflow.storage.nowhere:Store",
        "trackflow.storage.memory:Missing",
    ])
    def test_load_activity_store_invalid(self, path):
        """Test bad store paths raise configuration errors."""
        with pytest.raises(ConfigurationError):
            load_activity_store(path)

    def test_load_activity_store_wrong_type(self):
        """Test classes that are not stores are rejected."""
        with pytest.raises(ConfigurationError, match="not an ActivityStore"):
            load_activity_store("collections:OrderedDict")

    def test_build_memory_gate(self):
        """Test the in-memory admission backend."""
        config = ImportConfig(admission_backend="memory", admission_ttl_seconds=120)
        gate = build_admission_gate(config)
        assert isinstance(gate, InMemoryAdmissionGate)
        assert gate.ttl_seconds == 120

    def test_build_file_gate(self, temp_dir):
        """Test the lock-file admission backend."""
        config = ImportConfig(admission_backend="file", admission_lock_dir=str(temp_dir / "locks"))
        gate = build_admission_gate(config)
        assert isinstance(gate, FileAdmissionGate)
        assert gate.lock_dir == temp_dir / "locks"


class TestRunHelpers:
    """Test the synchronous import helpers."""

    def test_run_file_import(self, activity_store, temp_dir, sample_gpx_bytes):
        """Test a file import result dict."""
        path = temp_dir / "run.gpx"
        path.write_bytes(sample_gpx_bytes)

        result = run_file_import(str(path), "u1", store=activity_store)

        assert result['status'] == "created"
        assert result['errors'] == []
        assert result['activity']['title'] == "Morning Run"
        assert activity_store.get_activity(result['activity_id']) is not None

    def test_run_file_import_unsupported(self, activity_store, temp_dir):
        """Test an unsupported upload is reported as skipped."""
        path = temp_dir / "run.tcx"
        path.write_text("<tcx/>")

        result = run_file_import(str(path), "u1", store=activity_store)

        assert result['status'] == "skipped"
        assert result['activity'] is None
        assert len(result['errors']) == 1

    def test_run_archive_import(self, activity_store, admission_gate, temp_dir, zip_builder,
                                sample_gpx_bytes):
        """Test an archive import result dict."""
        archive = zip_builder(temp_dir / "export.zip",
                              [("run.gpx", sample_gpx_bytes), ("bad.gpx", b"<gpx")])

        result = run_archive_import(str(archive), "u1", store=activity_store, gate=admission_gate)

        assert result['status'] == "completed"
        assert result['created'] == 1
        assert result['skipped'] == 1
        assert result['error_count'] == 1
        assert result['errors'][0].startswith("bad.gpx: ")
        assert not archive.exists()


class TestImportActivityFileTask:
    """Test the single-file import task."""

    def test_task_name(self):
        """Test the task is registered under its module path."""
        assert import_activity_file.name == "trackflow_tasks.tasks.imports.import_activity_file"

    @patch('trackflow_tasks.tasks.imports.get_activity_store')
    def test_import_success(self, mock_get_store, activity_store, temp_dir, sample_fit_bytes):
        """Test a successful import through the task."""
        mock_get_store.return_value = activity_store
        path = temp_dir / "upload.bin"
        path.write_bytes(sample_fit_bytes)

        result = import_activity_file(str(path), "u1", filename="ride.fit")

        assert result['status'] == "created"
        assert result['filename'] == "ride.fit"
        assert result['activity']['activity_type'] == "Running"

    @patch('trackflow_tasks.tasks.imports.get_activity_store')
    def test_import_duplicate(self, mock_get_store, activity_store, temp_dir, sample_fit_bytes):
        """Test a re-upload is skipped as a duplicate."""
        mock_get_store.return_value = activity_store
        path = temp_dir / "ride.fit"
        path.write_bytes(sample_fit_bytes)

        import_activity_file(str(path), "u1")
        result = import_activity_file(str(path), "u1")

        assert result['status'] == "skipped"
        assert "Duplicate" in result['errors'][0]


class TestBulkImportArchiveTask:
    """Test the bulk archive task."""

    def test_task_name(self):
        """Test the task is registered under its module path."""
        assert bulk_import_archive.name == "trackflow_tasks.tasks.imports.bulk_import_archive"

    @patch('trackflow_tasks.tasks.imports.get_admission_gate')
    @patch('trackflow_tasks.tasks.imports.get_activity_store')
    def test_bulk_import(self, mock_get_store, mock_get_gate, activity_store, admission_gate,
                         temp_dir, zip_builder, sample_gpx_bytes, sample_fit_bytes, gzip_bytes):
        """Test a completed archive import."""
        mock_get_store.return_value = activity_store
        mock_get_gate.return_value = admission_gate
        archive = zip_builder(temp_dir / "export.zip", [
            ("run.gpx", sample_gpx_bytes),
            ("notes.txt", b"hello"),
            ("other/ride.fit.gz", gzip_bytes(sample_fit_bytes)),
        ])

        result = bulk_import_archive(str(archive), "u1")

        assert result['status'] == "completed"
        # The GPX sample and the FIT sample describe the same activity
        assert result['created'] == 1
        assert result['skipped'] == 1
        assert result['ignored'] == 1
        assert not archive.exists()
        assert not admission_gate.is_active("u1")

    @patch('trackflow_tasks.tasks.imports.get_admission_gate')
    @patch('trackflow_tasks.tasks.imports.get_activity_store')
    def test_bulk_import_rejected(self, mock_get_store, mock_get_gate, activity_store,
                                  admission_gate, temp_dir, zip_builder, sample_gpx_bytes):
        """Test a second job for a busy user is rejected and its upload removed."""
        mock_get_store.return_value = activity_store
        mock_get_gate.return_value = admission_gate
        admission_gate.try_acquire("u1")
        archive = zip_builder(temp_dir / "export.zip", [("run.gpx", sample_gpx_bytes)])

        result = bulk_import_archive(str(archive), "u1")

        assert result['status'] == "rejected"
        assert result['error'] == "A bulk import is already in progress for this user"
        assert result['created'] == 0
        assert not archive.exists()
        assert activity_store.list_activities("u1") == []
        assert admission_gate.is_active("u1")

    @patch('trackflow_tasks.tasks.imports.get_admission_gate')
    @patch('trackflow_tasks.tasks.imports.get_activity_store')
    def test_progress_state(self, mock_get_store, mock_get_gate, activity_store, admission_gate,
                            temp_dir, zip_builder, sample_gpx_bytes):
        """Test progress is published when running with a task id."""
        mock_get_store.return_value = activity_store
        mock_get_gate.return_value = admission_gate
        archive = zip_builder(temp_dir / "export.zip",
                              [("run.gpx", sample_gpx_bytes), ("notes.txt", b"x")])

        bulk_import_archive.push_request(id="task-1")
        try:
            with patch.object(bulk_import_archive, 'update_state', Mock()) as mock_update:
                bulk_import_archive.run(str(archive), "u1")
        finally:
            bulk_import_archive.pop_request()

        metas = [c.kwargs['meta'] for c in mock_update.call_args_list]
        assert [m['current'] for m in metas] == [1, 2]
        assert metas[-1]['percentage'] == 100
        assert all(c.kwargs['state'] == "PROGRESS" for c in mock_update.call_args_list)
