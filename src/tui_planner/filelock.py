"""Directory lock so that two processes never write the same store."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

logger = logging.getLogger(__name__)

MAX_LOCK_AGE = 3600  # 1 hour
LOCK_NAME = ".lock"


def _lock_path(directory: Path) -> Path:
    return directory / LOCK_NAME


def _read_lock(lock_file: Path) -> tuple[int, float]:
    pid, stamp = lock_file.read_text(encoding="utf-8").strip().split("|")
    return int(pid), float(stamp)


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except PermissionError:
        return True  # exists, owned by another user
    except OSError:
        return False
    return True


def acquire_lock(directory: Path) -> bool:
    """Try to acquire the lock. Returns True if successful."""
    lock_file = _lock_path(directory)
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    if lock_file.exists():
        try:
            pid, stamp = _read_lock(lock_file)
            if pid == os.getpid():
                return True
            if _pid_alive(pid) and time.time() - stamp <= MAX_LOCK_AGE:
                return False
            logger.info("removing stale lock of pid %d in %s", pid, directory)
        except (ValueError, OSError):
            logger.info("removing unreadable lock in %s", directory)
        lock_file.unlink(missing_ok=True)

    lock_file.write_text(f"{os.getpid()}|{time.time()}", encoding="utf-8")
    return True


def release_lock(directory: Path) -> None:
    """Release the lock if this process holds it."""
    lock_file = _lock_path(directory)
    try:
        if lock_file.exists():
            pid, _ = _read_lock(lock_file)
            if pid == os.getpid():
                lock_file.unlink()
    except (ValueError, OSError) as e:
        logger.warning("could not release lock in %s: %s", directory, e)


def is_locked(directory: Path) -> bool:
    """Check if the directory is locked by another live process."""
    lock_file = _lock_path(directory)
    if not lock_file.exists():
        return False
    try:
        pid, stamp = _read_lock(lock_file)
    except (ValueError, OSError):
        return False
    if pid == os.getpid():
        return False
    return _pid_alive(pid) and time.time() - stamp <= MAX_LOCK_AGE
