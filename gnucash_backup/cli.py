"""Top-level run: lock -> preflight -> pg_dump -> retention.

Usage:
  gnucash-backup -o /srv/backups/gnucash [-k 5] [-d gnucash_db] [-H host] [-p port] [-u user]
  python -m gnucash_backup --help

Exit status is 0 on success and 1 for any failure (bad arguments, lock busy,
failed preflight check, failed dump). Pruning problems are logged only.
"""
from __future__ import annotations
import signal, sys
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from . import logging_util as log
from .config import build_parser, parse_args, summary_fields, version_text
from .dump import CommandRunner, run_backup
from .errors import BackupError
from .locking import hold_lock
from .preflight import Which, run_preflight
from .retention import prune
from .runtime import current_user, default_lock_path, default_log_path

EXIT_OK = 0
EXIT_FAILURE = 1

_HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _raise_exit(signum, frame):
    # unwinds through the lock's `with` block instead of dying in place
    raise SystemExit(EXIT_FAILURE)


@contextmanager
def _signals_exit() -> Iterator[None]:
    previous = {}
    for sig in _HANDLED_SIGNALS:
        try:
            previous[sig] = signal.signal(sig, _raise_exit)
        except ValueError:
            # not the main thread; leave handlers alone
            pass
    try:
        yield
    finally:
        for sig, handler in previous.items():
            if handler is not None:
                signal.signal(sig, handler)


def _pipeline(argv: Sequence[str], runner: Optional[CommandRunner], which: Optional[Which]) -> int:
    cfg = parse_args(argv)
    if cfg.help:
        build_parser().print_help(sys.stdout)
        return EXIT_OK
    if cfg.version:
        print(version_text())
        return EXIT_OK

    # file sink only once the run will actually touch the system
    log.configure(default_log_path())
    with hold_lock(default_lock_path()):
        run_preflight(cfg, which=which)
        if cfg.check_only:
            log.info("Preflight checks passed; --check given, not dumping")
            return EXIT_OK
        log.info("Starting GnuCash backup", run_as=current_user(), **summary_fields(cfg))
        run_backup(cfg, runner=runner)
        prune(cfg.output_dir, cfg.keep)
    log.info("Backup completed successfully")
    return EXIT_OK


def run(argv: Optional[Sequence[str]] = None, runner: Optional[CommandRunner] = None,
        which: Optional[Which] = None) -> int:
    """Run one backup and return the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        with _signals_exit():
            return _pipeline(argv, runner, which)
    except BackupError as e:
        log.error(str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        log.error("Interrupted")
        return EXIT_FAILURE
    except SystemExit as e:
        if e.code not in (None, EXIT_OK):
            log.error("Terminated by signal")
        raise
    finally:
        log.shutdown()


def main() -> None:  # pragma: no cover - thin console-script wrapper
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main()
