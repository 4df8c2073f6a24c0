import os, sys, pytest
from pathlib import Path
from gnucash_backup.dump import DumpResult

PROJECT_ROOT = Path(__file__).resolve().parents[1]

FAKE_PG_DUMP = """#!/bin/sh
out=""
while [ $# -gt 0 ]; do
  case "$1" in
    -f) out="$2"; shift 2 ;;
    *) shift ;;
  esac
done
if [ -n "$FAKE_PG_DUMP_FAIL" ]; then
  echo "pg_dump: error: connection to server failed" >&2
  exit 1
fi
echo "PGDMP" > "$out"
if [ -n "$FAKE_PG_DUMP_SLEEP" ]; then
  exec sleep "$FAKE_PG_DUMP_SLEEP"
fi
"""


@pytest.fixture()
def env_paths(tmp_path, monkeypatch):
    """Point lock, log and credentials files into tmp_path."""
    pgpass = tmp_path / '.pgpass'
    pgpass.write_text('*:*:*:*:secret\n')
    pgpass.chmod(0o600)
    paths = {
        'lock': tmp_path / 'backup.lock',
        'log': tmp_path / 'backup.log',
        'pgpass': pgpass,
    }
    monkeypatch.setenv('GNUCASH_BACKUP_LOCK_FILE', str(paths['lock']))
    monkeypatch.setenv('GNUCASH_BACKUP_LOG_FILE', str(paths['log']))
    monkeypatch.setenv('PGPASSFILE', str(pgpass))
    monkeypatch.delenv('GNUCASH_BACKUP_DUMP_TIMEOUT', raising=False)
    monkeypatch.delenv('GNUCASH_BACKUP_PG_DUMP', raising=False)
    return paths


@pytest.fixture()
def out_dir(tmp_path):
    d = tmp_path / 'backups'
    d.mkdir()
    return d


@pytest.fixture()
def fake_pg_dump(tmp_path):
    """Directory holding an executable stand-in for pg_dump."""
    bindir = tmp_path / 'bin'
    bindir.mkdir()
    script = bindir / 'pg_dump'
    script.write_text(FAKE_PG_DUMP)
    script.chmod(0o755)
    return bindir


class FakeRunner:
    """In-process CommandRunner: records commands, writes the -f target on success."""

    def __init__(self, exit_status=0, stderr='', timed_out=False):
        self.exit_status = exit_status
        self.stderr = stderr
        self.timed_out = timed_out
        self.calls = []

    def __call__(self, cmd, timeout):
        self.calls.append((list(cmd), timeout))
        target = Path(cmd[cmd.index('-f') + 1])
        if self.exit_status == 0 and not self.timed_out:
            target.write_bytes(b'PGDMP')
        else:
            target.write_bytes(b'partial')
        return DumpResult(exit_status=self.exit_status, stderr=self.stderr, timed_out=self.timed_out)


@pytest.fixture()
def runner():
    return FakeRunner()


def found_pg_dump(exe):
    return f'/usr/bin/{exe}'


def make_backups(directory, count, start_day=1):
    names = [f'gnucash_202501{day:02d}-000000.dump' for day in range(start_day, start_day + count)]
    for n in names:
        (directory / n).write_text('x')
    return names
