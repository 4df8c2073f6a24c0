"""Retention: keep the newest N dumps, delete the rest.

Only files named exactly gnucash_YYYYMMDD-HHMMSS.dump are candidates. Anything
else in the directory is ignored. The timestamp is fixed-width and zero padded,
so sorting names sorts by age.

Pruning is best effort: a file that can't be removed is logged and skipped.
"""
from __future__ import annotations
import os, re
from pathlib import Path
from typing import Callable, List

from .logging_util import debug, error, info

BACKUP_NAME_RE = re.compile(r"^gnucash_\d{8}-\d{6}\.dump$")


def is_backup_name(name: str) -> bool:
    return BACKUP_NAME_RE.match(name) is not None


def list_backups(directory: Path) -> List[str]:
    """Matching regular files, oldest first. Missing directory -> []."""
    names = []
    try:
        with os.scandir(directory) as it:
            for entry in it:
                if not is_backup_name(entry.name):
                    continue
                try:
                    if entry.is_file(follow_symlinks=False):
                        names.append(entry.name)
                except OSError:
                    continue
    except FileNotFoundError:
        return []
    except OSError as e:
        error("Cannot list backup directory", path=directory, error=e)
        return []
    return sorted(names)


def select_for_deletion(names: List[str], keep: int) -> List[str]:
    excess = len(names) - keep
    return names[:excess] if excess > 0 else []


def prune(directory: Path, keep: int, remove: Callable[[str], None] = os.remove) -> List[str]:
    """Delete all but the newest `keep` backups; return the names removed."""
    if keep <= 0:
        raise ValueError(f"keep must be positive, got {keep}")
    names = list_backups(directory)
    doomed = select_for_deletion(names, keep)
    if not doomed:
        debug("Nothing to prune", path=directory, found=len(names), keep=keep)
        return []
    removed = []
    for name in doomed:
        path = directory / name
        try:
            remove(str(path))
        except OSError as e:
            error("Failed to delete old backup", path=path, error=e)
            continue
        removed.append(name)
        info("Deleted old backup", path=path)
    info("Retention applied", kept=len(names) - len(removed), deleted=len(removed))
    return removed
