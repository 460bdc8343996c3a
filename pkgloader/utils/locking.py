"""Cross-process file locking."""

from __future__ import annotations

import fcntl
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

DEFAULT_TIMEOUT = 600.0
DEFAULT_POLL_INTERVAL = 0.1

_THREAD_MUTEXES: dict[str, threading.Lock] = {}
_THREAD_MUTEXES_GUARD = threading.Lock()


class LockTimeoutError(TimeoutError):
    """Raised when an OS file lock cannot be acquired within timeout."""


def _thread_mutex(path: Path) -> threading.Lock:
    # flock() does not exclude threads sharing a process
    key = str(path.resolve())
    with _THREAD_MUTEXES_GUARD:
        return _THREAD_MUTEXES.setdefault(key, threading.Lock())


@contextmanager
def acquire_file_lock(
    lock_path: Path,
    timeout: float = DEFAULT_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Iterator[None]:
    """Hold an exclusive lock on ``lock_path`` for the duration of the context.

    Uses ``fcntl.flock`` with ``LOCK_EX | LOCK_NB`` in a retry loop. The lock
    file is created if needed and never removed.

    Raises:
        LockTimeoutError: Lock not acquired within ``timeout`` seconds
    """
    if timeout <= 0 or poll_interval <= 0:
        raise ValueError("timeout and poll_interval must be positive")

    lock_path.parent.mkdir(parents=True, exist_ok=True)
    start = time.monotonic()

    mutex = _thread_mutex(lock_path)
    if not mutex.acquire(timeout=timeout):
        raise LockTimeoutError(f"Could not acquire lock on {lock_path} within {timeout}s")

    try:
        with open(lock_path, "a+") as fh:
            while True:
                try:
                    fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() - start >= timeout:
                        raise LockTimeoutError(f"Could not acquire lock on {lock_path} within {timeout}s")
                    time.sleep(poll_interval)
            try:
                yield
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
    finally:
        mutex.release()
