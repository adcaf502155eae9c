"""
Per-package advisory locking.

Two installs of the same package would otherwise race on the install
directory. The lock is an exclusive, non-blocking flock on a file next to
the install directory.
"""

import fcntl
import logging
import os
from pathlib import Path

from giggler.core.errors import AlreadyInProgressError, FilesystemError

logger = logging.getLogger(__name__)


class PackageLock:
    """Exclusive advisory lock scoped to one package's install directory."""

    def __init__(self, name: str, lock_path: Path):
        self.name = name
        self.lock_path = lock_path
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """Take the lock or fail immediately if another holder exists."""
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise FilesystemError(f"Cannot create lock file {self.lock_path}: {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            raise AlreadyInProgressError(f"Another install of '{self.name}' is in progress")
        except OSError as e:
            os.close(fd)
            raise FilesystemError(f"Cannot lock {self.lock_path}: {e}") from e

        self._fd = fd
        logger.debug(f"Acquired lock {self.lock_path}")

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug(f"Released lock {self.lock_path}")

    def __enter__(self) -> "PackageLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
