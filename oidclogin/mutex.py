"""Inter-process locking by named lock files."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import filelock

from .logger import Logger


@dataclass
class Lock:
    """A held lock."""

    name: str
    data: filelock.FileLock


def lock_file_name(name: str) -> str:
    """Return the path of the lock file for the lock name."""
    try:
        dirname = str(Path.home())
    except (RuntimeError, KeyError):
        dirname = tempfile.gettempdir()
    return os.path.join(dirname, f".kubelogin.{name}.lock")


class Mutex:
    """Acquires and releases locks shared between processes."""

    def __init__(self, logger: Logger | None = None) -> None:
        self.logger = logger if logger is not None else Logger()

    def _release(self, file_lock: filelock.FileLock, path: str) -> None:
        try:
            file_lock.release(force=True)
        except OSError as e:
            self.logger.log(1, "Error closing lock file %s: %s", path, e)
            raise

    def acquire(self, name: str, timeout: float | None = None) -> Lock:
        """Wait for the lock; raise TimeoutError if it is not acquired in time."""
        path = lock_file_name(name)
        file_lock = filelock.FileLock(path)
        try:
            file_lock.acquire(timeout=-1 if timeout is None else timeout)
        except filelock.Timeout:
            raise
        except OSError as e:
            raise OSError(f"error acquiring lock on file {path}: {e}") from e
        return Lock(name=name, data=file_lock)

    def release(self, lock: Lock) -> None:
        """Release the lock."""
        self._release(lock.data, lock_file_name(lock.name))