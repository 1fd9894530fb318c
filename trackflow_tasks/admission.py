"""
Job admission for bulk imports.

At most one bulk import may run per user. Gates auto-release after a bounded
TTL so a crashed job cannot block a user forever.
"""

import hashlib
import os
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from .exceptions import import_in_progress_error
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


class AdmissionGate(ABC):
    """Per-user admission flag for bulk import jobs"""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    def try_acquire(self, user_id: str) -> bool:
        """Set the flag for a user, False if it is already set"""
        pass

    @abstractmethod
    def release(self, user_id: str) -> None:
        """Clear the flag; safe to call when it was never set"""
        pass

    @abstractmethod
    def is_active(self, user_id: str) -> bool:
        """Whether a job currently holds the flag for a user"""
        pass


class InMemoryAdmissionGate(AdmissionGate):
    """Process-local gate backed by a dict of expiry deadlines"""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        super().__init__(ttl_seconds)
        self._lock = threading.Lock()
        self._deadlines: Dict[str, float] = {}

    def _expired(self, user_id: str, now: float) -> bool:
        deadline = self._deadlines.get(user_id)
        return deadline is None or deadline <= now

    def try_acquire(self, user_id: str) -> bool:
        now = time.monotonic()
        with self._lock:
            if not self._expired(user_id, now):
                return False
            self._deadlines[user_id] = now + self.ttl_seconds
            return True

    def release(self, user_id: str) -> None:
        with self._lock:
            self._deadlines.pop(user_id, None)

    def is_active(self, user_id: str) -> bool:
        with self._lock:
            return not self._expired(user_id, time.monotonic())


class FileAdmissionGate(AdmissionGate):
    """
    Gate backed by one O_EXCL lock file per user.

    Shared by every worker process on a host. A lock file older than the TTL,
    or whose owning pid no longer exists, is treated as stale and reclaimed.
    """

    def __init__(self, lock_dir: Union[str, Path], ttl_seconds: int = DEFAULT_TTL_SECONDS):
        super().__init__(ttl_seconds)
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path(self, user_id: str) -> Path:
        digest = hashlib.sha1(str(user_id).encode("utf-8")).hexdigest()
        return self.lock_dir / f"bulk-import-{digest}.lock"

    def _create(self, path: Path) -> bool:
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        try:
            os.write(fd, f"pid={os.getpid()} time={time.time()}\n".encode("utf-8"))
        finally:
            os.close(fd)
        return True

    @staticmethod
    def _owner_pid(path: Path) -> Optional[int]:
        try:
            payload = path.read_text(encoding="utf-8")
        except OSError:
            return None
        for part in payload.split():
            if part.startswith("pid="):
                try:
                    return int(part.split("=", 1)[1])
                except ValueError:
                    return None
        return None

    def _is_stale(self, path: Path) -> bool:
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return True
        if time.time() - mtime > self.ttl_seconds:
            return True

        pid = self._owner_pid(path)
        if pid is None or pid <= 0:
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        except OSError:
            # Exists but not signalable by us
            return False
        return False

    def try_acquire(self, user_id: str) -> bool:
        path = self.lock_path(user_id)
        if self._create(path):
            return True
        if self._is_stale(path):
            logger.warning("Reclaiming stale admission lock", user_id=user_id, lock=str(path))
            self._remove(path)
            return self._create(path)
        return False

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def release(self, user_id: str) -> None:
        self._remove(self.lock_path(user_id))

    def is_active(self, user_id: str) -> bool:
        path = self.lock_path(user_id)
        return path.exists() and not self._is_stale(path)


@contextmanager
def admission_slot(gate: AdmissionGate, user_id: str) -> Iterator[None]:
    """
    Hold the user's admission flag for the duration of a block.

    Raises:
        ImportInProgressError: If another job already holds the flag
    """
    if not gate.try_acquire(user_id):
        raise import_in_progress_error(
            "A bulk import is already in progress for this user",
            user_id=user_id,
        )
    try:
        yield
    finally:
        gate.release(user_id)
