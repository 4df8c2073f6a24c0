"""Single-instance advisory lock.

A non-blocking exclusive flock() on a well-known file. A second invocation sees
the lock held and gives up immediately; there is no waiting or retry.

Any failure while acquiring (unwritable directory, permission denied, lock file
swapped out underneath us) is reported exactly like contention: no lock, no run.
"""
from __future__ import annotations
import fcntl, os
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

from .errors import LockBusyError
from .logging_util import debug, warn


class LockHandle:
    """Exclusive hold on one lock file for as long as the handle is live."""

    def __init__(self, path: Path, fh: IO[str]):
        self.path = path
        self._fh: Optional[IO[str]] = fh

    @property
    def held(self) -> bool:
        return self._fh is not None

    def release(self) -> None:
        """Unlock, close and best-effort unlink. Idempotent; never raises."""
        fh, self._fh = self._fh, None
        if fh is None:
            return
        # unlink while still locked so a newcomer can't lock the doomed inode
        try:
            os.unlink(self.path)
        except OSError as e:
            debug("Lock file not removed", path=self.path, error=e)
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        except (OSError, ValueError):
            pass
        try:
            fh.close()
        except OSError:
            pass
        debug("Lock released", path=self.path)

    def __enter__(self) -> "LockHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


def _same_file(fh: IO[str], path: Path) -> bool:
    try:
        on_disk = os.stat(path)
    except FileNotFoundError:
        return False
    held = os.fstat(fh.fileno())
    return (on_disk.st_dev, on_disk.st_ino) == (held.st_dev, held.st_ino)


def acquire_lock(path: Path) -> Optional[LockHandle]:
    """Return a LockHandle, or None when the lock is busy or can't be taken."""
    fh = None
    try:
        fh = open(path, "a+", encoding="utf-8")
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        if not _same_file(fh, path):
            # previous holder unlinked the file between our open and flock
            fh.close()
            return None
        fh.seek(0)
        fh.truncate()
        fh.write(f"{os.getpid()}\n")
        fh.flush()
    except BlockingIOError:
        fh.close()
        return None
    except Exception as e:
        warn("Lock acquisition failed", path=path, error=e)
        if fh is not None:
            try:
                fh.close()
            except OSError:
                pass
        return None
    debug("Lock acquired", path=path, pid=os.getpid())
    return LockHandle(path, fh)


@contextmanager
def hold_lock(path: Path) -> Iterator[LockHandle]:
    """Hold the lock for the duration of the block; raise LockBusyError if taken."""
    handle = acquire_lock(path)
    if handle is None:
        raise LockBusyError(f"Another backup is already running (lock held: {path})")
    try:
        yield handle
    finally:
        handle.release()
