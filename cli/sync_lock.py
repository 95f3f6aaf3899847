"""Per-data-directory lock file so only one process syncs a local database."""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_FILE = ".lifecast-sync.lock"
STALE_LOCK_SECONDS = 300.0


class SyncLockBusyError(Exception):
    """Another process is already syncing this data directory."""


def _remove_if_stale(lock_path: Path, stale_after: float) -> None:
    try:
        age = time.time() - lock_path.stat().st_mtime
    except FileNotFoundError:
        return
    if age >= stale_after:
        logger.warning("Removing stale sync lock %s (%.0fs old)", lock_path, age)
        lock_path.unlink(missing_ok=True)


@contextmanager
def sync_lock(data_dir: Path, *, stale_after: float = STALE_LOCK_SECONDS) -> Iterator[Path]:
    """Hold the sync lock for ``data_dir`` for the duration of the block.

    The lock file is created atomically, so two processes racing for it cannot
    both win. A lock older than ``stale_after`` seconds is assumed to belong to
    a crashed process and is taken over. Raises :class:`SyncLockBusyError` when
    a live lock is present.
    """
    lock_path = data_dir / LOCK_FILE
    _remove_if_stale(lock_path, stale_after)
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as exc:
        raise SyncLockBusyError(f"Another lifecast process is syncing {data_dir}") from exc
    try:
        os.write(fd, json.dumps({"pid": os.getpid(), "locked_at": time.time()}).encode())
    finally:
        os.close(fd)

    try:
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)
