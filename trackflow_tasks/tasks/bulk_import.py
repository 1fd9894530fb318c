"""
Bulk archive import.

Walks a ZIP archive entry by entry, extracts each supported activity file to a
scratch directory, runs it through the single-file import chain and tallies
the outcome. One entry failing never stops the loop, and scratch files, the
scratch directory, the archive and the user's admission flag are always
cleaned up.
"""

import os
import re
import shutil
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, Callable, Dict, Iterator, List, Optional, Union

from trackflow.processors import detect_format
from trackflow.services import ActivityImportService, ImportOutcome, OutcomeStatus
from trackflow.storage import ActivityStore, ExistingActivitySummary

from trackflow_tasks.admission import AdmissionGate, admission_slot
from trackflow_tasks.exceptions import ArchiveError, archive_error, ExtractionError, extraction_error
from trackflow_tasks.utils.logging import get_task_logger

ProgressCallback = Callable[[int, int, str], None]

DEFAULT_MAX_ENTRY_BYTES = 100 * 1024 * 1024
DEFAULT_MAX_REPORTED_ERRORS = 10

_UNSAFE_FILENAME_CHARS = re.compile(r'[^0-9A-Za-z.\-_]')
_COPY_CHUNK_SIZE = 64 * 1024


def is_ignored_entry(name: str, is_dir: bool = False) -> bool:
    """Directories, OS metadata and dot-hidden files are skipped silently"""
    normalized = name.replace('\\', '/')
    if is_dir or normalized.endswith('/'):
        return True
    if '__MACOSX' in normalized or normalized.startswith('._'):
        return True
    return PurePosixPath(normalized).name.startswith('.')


def sanitize_filename(name: str) -> str:
    """
    Base name of an archive entry, safe to use as a scratch file name

    "../../etc/passwd.gpx" -> "passwd.gpx", "my run (1).fit" -> "my_run__1_.fit"
    """
    base = PurePosixPath(name.replace('\\', '/')).name
    safe = _UNSAFE_FILENAME_CHARS.sub('_', base)
    if safe in ('', '.', '..'):
        return 'entry'
    return safe


@dataclass(frozen=True)
class ArchiveEntry:
    """One member of an archive"""
    name: str
    size: int
    is_dir: bool = False
    # Same-named members can only be told apart by their ZipInfo
    info: Optional[zipfile.ZipInfo] = field(default=None, compare=False, repr=False)

    @property
    def basename(self) -> str:
        return PurePosixPath(self.name.replace('\\', '/')).name


class ZipArchiveSource:
    """Enumerates and opens the members of a ZIP file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._zip: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> "ZipArchiveSource":
        if not self.path.is_file():
            raise archive_error("Archive not found", path=str(self.path))
        try:
            self._zip = zipfile.ZipFile(self.path)
        except zipfile.BadZipFile as e:
            raise archive_error(f"Not a valid ZIP archive: {e}", path=str(self.path)) from e
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def entries(self) -> Iterator[ArchiveEntry]:
        for info in self._zip.infolist():
            yield ArchiveEntry(name=info.filename, size=info.file_size, is_dir=info.is_dir(), info=info)

    def open(self, entry: ArchiveEntry) -> BinaryIO:
        return self._zip.open(entry.info if entry.info is not None else entry.name)


@dataclass
class BatchTally:
    """Counts and per-entry messages for one archive job"""
    created: int = 0
    skipped: int = 0
    failed: int = 0
    ignored: int = 0
    messages: List[str] = field(default_factory=list)
    activity_ids: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.created + self.skipped + self.failed

    def record(self, outcome: ImportOutcome):
        """Count an outcome and keep its message"""
        if outcome.status is OutcomeStatus.CREATED:
            self.created += 1
            self.activity_ids.append(outcome.activity_id)
        elif outcome.status is OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
        if outcome.message:
            self.messages.append(outcome.message)

    def add_message(self, message: str):
        """Add message"""
        self.messages.append(message)

    def to_dict(self, max_reported_errors: int = DEFAULT_MAX_REPORTED_ERRORS) -> Dict[str, Any]:
        return {
            'created': self.created,
            'skipped': self.skipped,
            'failed': self.failed,
            'ignored': self.ignored,
            'processed': self.processed,
            'activity_ids': list(self.activity_ids),
            'error_count': len(self.messages),
            'errors': self.messages[:max_reported_errors],
            'messages': list(self.messages),
        }


class BulkArchiveProcessor:
    """Processes every entry of a ZIP archive for one user"""

    def __init__(self,
                 store: ActivityStore,
                 gate: AdmissionGate,
                 scratch_root: Optional[Union[str, Path]] = None,
                 max_entry_bytes: int = DEFAULT_MAX_ENTRY_BYTES,
                 max_reported_errors: int = DEFAULT_MAX_REPORTED_ERRORS,
                 delete_archive: bool = True,
                 import_service: Optional[ActivityImportService] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.store = store
        self.gate = gate
        self.scratch_root = Path(scratch_root) if scratch_root else None
        self.max_entry_bytes = max_entry_bytes
        self.max_reported_errors = max_reported_errors
        self.delete_archive = delete_archive
        self.import_service = import_service or ActivityImportService(store)
        self.progress_callback = progress_callback

    def run(self, archive_path: Union[str, Path], user_id: str,
            task_id: Optional[str] = None) -> BatchTally:
        """
        Import every supported entry of an archive

        Args:
            archive_path: ZIP file to process
            user_id: Owner of the imported activities
            task_id: Job identifier used in log context

        Returns:
            BatchTally for the archive

        Raises:
            ImportInProgressError: If a bulk import is already running for
                                   the user. Nothing else escapes.
        """
        archive_path = Path(archive_path)
        logger = get_task_logger("trackflow_tasks.bulk_import", task_id,
                                 user_id=user_id, archive=archive_path.name)
        tally = BatchTally()

        with admission_slot(self.gate, user_id):
            logger.info("Bulk import started")
            scratch_dir = None
            try:
                scratch_dir = self._make_scratch_dir()
                self._process_archive(archive_path, user_id, scratch_dir, tally, logger)
            except ArchiveError as e:
                logger.error("Archive could not be opened", error=e.message)
                tally.add_message(f"{archive_path.name}: {e.message}")
            except Exception as e:
                logger.error("Bulk import aborted", error=str(e), exc_info=True)
                tally.add_message(f"{archive_path.name}: {e}")
            finally:
                if scratch_dir is not None:
                    shutil.rmtree(scratch_dir, ignore_errors=True)
                if self.delete_archive:
                    self._remove_archive(archive_path, logger)

        self._log_summary(tally, logger)
        return tally

    def _make_scratch_dir(self) -> Path:
        if self.scratch_root is not None:
            self.scratch_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix="bulk-import-", dir=self.scratch_root))

    def _process_archive(self, archive_path: Path, user_id: str, scratch_dir: Path,
                         tally: BatchTally, logger):
        created_in_job: List[ExistingActivitySummary] = []

        with ZipArchiveSource(archive_path) as source:
            entries = list(source.entries())
            total = len(entries)
            logger.info("Archive opened", entries=total)

            for index, entry in enumerate(entries, start=1):
                if is_ignored_entry(entry.name, entry.is_dir):
                    logger.debug("Skipping metadata entry", entry=entry.name)
                elif not detect_format(entry.basename).is_supported:
                    tally.ignored += 1
                    logger.debug("Ignoring unsupported entry", entry=entry.name)
                else:
                    outcome = self._process_entry(source, entry, index, user_id,
                                                  scratch_dir, created_in_job, logger)
                    tally.record(outcome)
                    summary = outcome.existing_summary()
                    if summary is not None:
                        created_in_job.append(summary)

                if self.progress_callback is not None:
                    self._report_progress(index, total, entry.name, logger)

    def _report_progress(self, index: int, total: int, entry_name: str, logger):
        try:
            self.progress_callback(index, total, entry_name)
        except Exception as e:
            logger.warning("Progress callback failed", entry=entry_name, error=str(e))

    def _process_entry(self, source: ZipArchiveSource, entry: ArchiveEntry, index: int,
                       user_id: str, scratch_dir: Path,
                       created_in_job: List[ExistingActivitySummary], logger) -> ImportOutcome:
        # Index prefix keeps same-named entries from different folders apart
        scratch_path = scratch_dir / f"{index:05d}_{sanitize_filename(entry.name)}"
        try:
            try:
                self._extract(source, entry, scratch_path)
            except ExtractionError as e:
                logger.warning("Entry extraction failed", entry=entry.name, error=e.message)
                return ImportOutcome.skipped(entry.basename, f"Failed to extract - {e.message}")

            try:
                outcome = self.import_service.import_file(
                    user_id, scratch_path, filename=entry.basename, also_check=created_in_job,
                )
            except Exception as e:
                logger.error("Entry import crashed", entry=entry.name, error=str(e), exc_info=True)
                return ImportOutcome.failed(entry.basename, str(e))

            if outcome.status is OutcomeStatus.SKIPPED:
                logger.warning("Entry skipped", entry=entry.name, reason=outcome.reason)
            elif outcome.status is OutcomeStatus.FAILED:
                logger.error("Entry failed", entry=entry.name, reason=outcome.reason)
            return outcome
        finally:
            try:
                scratch_path.unlink()
            except FileNotFoundError:
                pass

    def _extract(self, source: ZipArchiveSource, entry: ArchiveEntry, destination: Path):
        """
        Copy one entry to scratch storage, enforcing the per-entry size cap

        Raises:
            ExtractionError: If the entry cannot be read or written
        """
        if entry.size > self.max_entry_bytes:
            raise extraction_error(
                f"entry is {entry.size} bytes, limit is {self.max_entry_bytes}",
                entry=entry.name,
            )

        written = 0
        try:
            with source.open(entry) as src, open(destination, 'wb') as dst:
                while True:
                    chunk = src.read(_COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_entry_bytes:
                        raise extraction_error(
                            f"entry exceeds {self.max_entry_bytes} bytes",
                            entry=entry.name,
                        )
                    dst.write(chunk)
        except (OSError, EOFError, zipfile.BadZipFile, zlib.error,
                RuntimeError, NotImplementedError) as e:
            # RuntimeError: encrypted entry, NotImplementedError: unknown compression
            raise extraction_error(str(e), entry=entry.name) from e

    @staticmethod
    def _remove_archive(archive_path: Path, logger):
        try:
            os.remove(archive_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not delete archive", error=str(e))

    def _log_summary(self, tally: BatchTally, logger):
        logger.info(
            "Bulk import finished",
            created=tally.created,
            skipped=tally.skipped,
            failed=tally.failed,
            ignored=tally.ignored,
            errors=len(tally.messages),
        )
        for message in tally.messages[:self.max_reported_errors]:
            logger.warning("Bulk import error", message=message)
