"""Clock + identity helpers and the well-known paths used by a run.

Each fixed path can be redirected through an environment variable so tests and
operators can relocate it without code changes.
"""
from __future__ import annotations
import os, pwd, tempfile, time
from datetime import datetime
from pathlib import Path
from typing import Optional

BACKUP_TAG_FORMAT = "%Y%m%d-%H%M%S"
LOG_TS_FORMAT = "%Y-%m-%d %H:%M:%S"

LOCK_FILE_NAME = "gnucash_backup.lock"
LOG_FILE_NAME = "gnucash_backup.log"
SYSTEM_LOG_DIR = Path("/var/log")


def timestamp_tag(now: Optional[datetime] = None) -> str:
    """Fixed-width local timestamp; lexicographic order == chronological order."""
    return (now or datetime.now()).strftime(BACKUP_TAG_FORMAT)


def log_timestamp(now: Optional[datetime] = None) -> str:
    if now is None:
        return time.strftime(LOG_TS_FORMAT, time.localtime())
    return now.strftime(LOG_TS_FORMAT)


def current_user() -> str:
    uid = os.geteuid()
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        # containers often run with uids that have no passwd entry
        return str(uid)


def is_privileged() -> bool:
    return os.geteuid() == 0


def default_lock_path() -> Path:
    override = os.environ.get("GNUCASH_BACKUP_LOCK_FILE")
    if override:
        return Path(override)
    return Path(tempfile.gettempdir()) / LOCK_FILE_NAME


def default_log_path() -> Path:
    override = os.environ.get("GNUCASH_BACKUP_LOG_FILE")
    if override:
        return Path(override)
    if is_privileged():
        return SYSTEM_LOG_DIR / LOG_FILE_NAME
    return Path(tempfile.gettempdir()) / LOG_FILE_NAME


def default_credentials_path() -> Path:
    """Location pg_dump reads passwords from (libpq honours PGPASSFILE)."""
    override = os.environ.get("PGPASSFILE")
    if override:
        return Path(override)
    return Path.home() / ".pgpass"


def dump_executable() -> str:
    return os.environ.get("GNUCASH_BACKUP_PG_DUMP", "pg_dump")
