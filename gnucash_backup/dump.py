"""pg_dump invocation.

The process boundary is kept to one call, `runner(cmd, timeout) -> DumpResult`,
so tests can swap in a fake dump tool. pg_dump's exit status is the only
success signal; the produced file is never opened or inspected.
"""
from __future__ import annotations
import os, subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .config import BackupConfig
from .errors import DumpError
from .logging_util import debug, error, info
from .runtime import dump_executable, timestamp_tag

BACKUP_PREFIX = "gnucash_"
BACKUP_SUFFIX = ".dump"


@dataclass
class DumpResult:
    exit_status: int
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_status == 0 and not self.timed_out


class CommandRunner(Protocol):  # pragma: no cover - structural typing helper
    def __call__(self, cmd: Sequence[str], timeout: Optional[float]) -> DumpResult: ...


def subprocess_runner(cmd: Sequence[str], timeout: Optional[float]) -> DumpResult:
    """Run cmd to completion; subprocess.run kills the child on timeout."""
    try:
        proc = subprocess.run(list(cmd), stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL,
                              stderr=subprocess.PIPE, text=True, encoding="utf-8",
                              errors="replace", timeout=timeout)
    except subprocess.TimeoutExpired as e:
        err = e.stderr or ""
        if isinstance(err, bytes):
            err = err.decode("utf-8", errors="replace")
        return DumpResult(exit_status=-1, stderr=err, timed_out=True)
    except OSError as e:
        return DumpResult(exit_status=127, stderr=str(e))
    return DumpResult(exit_status=proc.returncode, stderr=proc.stderr or "")


def backup_filename(now: Optional[datetime] = None) -> str:
    return f"{BACKUP_PREFIX}{timestamp_tag(now)}{BACKUP_SUFFIX}"


def build_command(cfg: BackupConfig, target: Path, executable: Optional[str] = None) -> List[str]:
    # -w: never prompt; credentials come from the password file only
    # -F c: custom format, compressed and restorable with pg_restore
    return [
        executable or dump_executable(),
        "-h", cfg.host,
        "-p", str(cfg.port),
        "-U", cfg.user,
        "-w",
        "-F", "c",
        "-f", str(target),
        cfg.database,
    ]


def _discard_partial(target: Path) -> None:
    try:
        target.unlink()
        debug("Removed partial dump", path=target)
    except FileNotFoundError:
        pass
    except OSError as e:
        error("Could not remove partial dump", path=target, error=e)


def run_backup(cfg: BackupConfig, runner: Optional[CommandRunner] = None,
               now: Optional[datetime] = None) -> Path:
    """Write one dump into cfg.output_dir and return its path.

    Raises DumpError on a non-zero exit, a timeout, or when the timestamped
    target already exists (two runs within the same second).
    """
    if cfg.output_dir is None:
        raise DumpError("No output directory configured")
    runner = runner or subprocess_runner
    target = cfg.output_dir / backup_filename(now)
    if target.exists():
        raise DumpError(f"Backup file already exists, refusing to overwrite: {target}")

    cmd = build_command(cfg, target)
    info("Running pg_dump", database=cfg.database, target=target)
    debug("Dump command", cmd=" ".join(cmd))
    try:
        result = runner(cmd, cfg.dump_timeout)
    except BaseException:
        # signal or crash mid-dump: a half-written file must not count as a backup
        _discard_partial(target)
        raise

    if result.timed_out:
        _discard_partial(target)
        raise DumpError(f"pg_dump did not finish within {cfg.dump_timeout}s and was killed")
    if result.exit_status != 0:
        detail = result.stderr.strip() or "(no error output)"
        error("pg_dump failed", status=result.exit_status)
        for line in detail.splitlines():
            error(f"pg_dump: {line}")
        _discard_partial(target)
        raise DumpError(f"pg_dump exited with status {result.exit_status}")

    try:
        size = os.path.getsize(target)
    except OSError:
        size = None
    info("Backup written", path=target, bytes=size)
    return target
