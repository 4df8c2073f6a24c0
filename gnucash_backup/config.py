"""Run configuration: command line first, environment fallbacks second.

Built once by `parse_args()` and never mutated afterwards.
"""
from __future__ import annotations
import argparse, math, os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from . import PACKAGE_VERSION, TOOL_NAME
from .errors import UsageError
from .logging_util import warn

DEFAULT_DATABASE = "gnucash_db"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5432
DEFAULT_USER = "gnucash_user"
DEFAULT_KEEP = 5


@dataclass(frozen=True)
class BackupConfig:
    database: str = DEFAULT_DATABASE
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER
    output_dir: Optional[Path] = None
    keep: int = DEFAULT_KEEP
    dump_timeout: Optional[float] = None
    check_only: bool = False
    help: bool = False
    version: bool = False

    def validate(self) -> None:
        if self.help or self.version:
            return
        if self.output_dir is None:
            raise UsageError("Output directory is required (-o/--output-dir)")
        if self.keep <= 0:
            raise UsageError(f"--keep must be a positive integer, got {self.keep}")
        if not 0 < self.port < 65536:
            raise UsageError(f"--port out of range: {self.port}")
        if self.dump_timeout is not None and not (math.isfinite(self.dump_timeout) and self.dump_timeout > 0):
            raise UsageError(f"--timeout must be a positive number of seconds, got {self.dump_timeout}")


def _env_timeout() -> Optional[float]:
    raw = os.environ.get("GNUCASH_BACKUP_DUMP_TIMEOUT")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        warn("Ignoring invalid environment value", key="GNUCASH_BACKUP_DUMP_TIMEOUT", value=raw)
        return None


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors as UsageError instead of exit(2)."""

    def error(self, message):  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    # help/version are plain flags so they win over any other flag on the line
    ap = _Parser(prog=TOOL_NAME, add_help=False,
                 description="Dump the GnuCash PostgreSQL database and rotate old dumps")
    ap.add_argument("-d", "--database", default=DEFAULT_DATABASE, help=f"Database name (default: {DEFAULT_DATABASE})")
    ap.add_argument("-H", "--host", default=DEFAULT_HOST, help=f"Database host (default: {DEFAULT_HOST})")
    ap.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help=f"Database port (default: {DEFAULT_PORT})")
    ap.add_argument("-u", "--user", default=DEFAULT_USER, help=f"Database user (default: {DEFAULT_USER})")
    ap.add_argument("-o", "--output-dir", type=Path, help="Backup destination directory (required)")
    ap.add_argument("-k", "--keep", type=int, default=DEFAULT_KEEP, help=f"Number of backups to retain (default: {DEFAULT_KEEP})")
    ap.add_argument("-t", "--timeout", type=float, default=None,
                    help="Kill pg_dump after this many seconds (default: no limit, or $GNUCASH_BACKUP_DUMP_TIMEOUT)")
    ap.add_argument("--check", action="store_true", help="Acquire the lock and run preflight checks only")
    ap.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    ap.add_argument("-v", "--version", action="store_true", help="Show version and exit")
    return ap


def version_text() -> str:
    return f"{TOOL_NAME} {PACKAGE_VERSION}"


HELP_FLAGS = {"-h", "--help"}
VERSION_FLAGS = {"-v", "--version"}


def parse_args(argv: Sequence[str]) -> BackupConfig:
    argv = list(argv)
    try:
        args = build_parser().parse_args(argv)
    except UsageError:
        # -h/-v still win when another flag on the line is malformed
        if HELP_FLAGS.intersection(argv) or VERSION_FLAGS.intersection(argv):
            return BackupConfig(help=bool(HELP_FLAGS.intersection(argv)),
                                version=bool(VERSION_FLAGS.intersection(argv)))
        raise
    timeout = args.timeout if args.timeout is not None else _env_timeout()
    cfg = BackupConfig(
        database=args.database,
        host=args.host,
        port=args.port,
        user=args.user,
        output_dir=args.output_dir,
        keep=args.keep,
        dump_timeout=timeout,
        check_only=args.check,
        help=args.help,
        version=args.version,
    )
    cfg.validate()
    return cfg


def summary_fields(cfg: BackupConfig) -> dict:
    return {
        "database": cfg.database,
        "host": cfg.host,
        "port": cfg.port,
        "user": cfg.user,
        "output_dir": cfg.output_dir,
        "keep": cfg.keep,
    }
