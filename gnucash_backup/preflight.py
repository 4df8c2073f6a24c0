"""Environment checks that must all pass before pg_dump is started.

Checks run in a fixed order and the first failure stops the run; later checks
only make sense once the earlier resources are known to exist.
"""
from __future__ import annotations
import os, shutil
from typing import Callable, List, Optional, Tuple

from .config import BackupConfig
from .errors import PreflightError
from .logging_util import debug
from .runtime import default_credentials_path, dump_executable

Which = Callable[[str], Optional[str]]
Check = Callable[[BackupConfig, Which], Optional[str]]


def check_dump_tool(cfg: BackupConfig, which: Which) -> Optional[str]:
    exe = dump_executable()
    if which(exe) is None:
        return f"Required executable not found in PATH: {exe} (install the PostgreSQL client tools)"
    return None


def check_output_dir(cfg: BackupConfig, which: Which) -> Optional[str]:
    out = cfg.output_dir
    if out is None or not out.is_dir():
        return f"Output directory does not exist: {out}"
    if not os.access(out, os.W_OK | os.X_OK):
        return f"Output directory is not writable: {out}"
    return None


def check_credentials(cfg: BackupConfig, which: Which) -> Optional[str]:
    creds = default_credentials_path()
    if not creds.is_file() or not os.access(creds, os.R_OK):
        return f"Credentials file missing or unreadable: {creds}"
    return None


CHECKS: List[Tuple[str, Check]] = [
    ("dump_tool", check_dump_tool),
    ("output_dir", check_output_dir),
    ("credentials", check_credentials),
]


def run_preflight(cfg: BackupConfig, which: Optional[Which] = None) -> None:
    """Raise PreflightError with the first failing check's message."""
    which = which or shutil.which
    for name, check in CHECKS:
        problem = check(cfg, which)
        if problem:
            raise PreflightError(problem)
        debug("Preflight check passed", check=name)
