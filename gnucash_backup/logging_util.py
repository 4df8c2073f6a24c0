"""Lightweight dual-sink logging helper.

Avoids external deps; every line goes to stderr and, once `configure()` has been
called, is appended to a log file as well:

    2025-01-07 03:00:01 [INFO] Backup written path=/srv/backups/gnucash_20250107-030001.dump

Extra keyword fields are rendered as trailing key=value pairs.
"""
from __future__ import annotations
import os, sys, threading
from pathlib import Path
from typing import IO, Optional

from .runtime import log_timestamp

_lock = threading.Lock()
_file: Optional[IO[str]] = None
_file_path: Optional[Path] = None
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LEVEL_ORDER = ["DEBUG","INFO","WARN","ERROR"]

def _should(level: str) -> bool:
    try:
        return LEVEL_ORDER.index(level) >= LEVEL_ORDER.index(LOG_LEVEL)
    except ValueError:
        return True

def format_line(level: str, message: str, **fields) -> str:
    line = f"{log_timestamp()} [{level.upper()}] {message}"
    if fields:
        line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
    return line

def configure(path: Path) -> bool:
    """Attach the file sink. Returns False (console-only) if the file can't be opened."""
    global _file, _file_path
    shutdown()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(path, "a", encoding="utf-8")
    except OSError as e:
        warn("Log file unavailable, logging to console only", path=path, error=e)
        return False
    with _lock:
        _file, _file_path = fh, path
    return True

def log_path() -> Optional[Path]:
    return _file_path

def shutdown() -> None:
    """Flush + close the file sink. Safe to call repeatedly."""
    global _file, _file_path
    with _lock:
        fh, _file, _file_path = _file, None, None
    if fh is None:
        return
    try:
        fh.flush()
        fh.close()
    except OSError:
        pass

def log(level: str, message: str, **fields):
    if not _should(level.upper()):
        return
    line = format_line(level, message, **fields)
    with _lock:
        sys.stderr.write(line + "\n")
        sys.stderr.flush()
        if _file is not None:
            try:
                _file.write(line + "\n")
                _file.flush()
            except OSError:
                # disk full etc.; console copy already written
                pass

def debug(message: str, **fields): log("DEBUG", message, **fields)
def info(message: str, **fields): log("INFO", message, **fields)
def warn(message: str, **fields): log("WARN", message, **fields)
def error(message: str, **fields): log("ERROR", message, **fields)
