import re
import pytest
from gnucash_backup import logging_util as log

LINE_RE = re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[(DEBUG|INFO|WARN|ERROR)\] ')


@pytest.fixture(autouse=True)
def _close_sink():
    yield
    log.shutdown()


def test_line_format_with_fields():
    line = log.format_line('info', 'Backup written', path='/b/x.dump', bytes=5)
    assert LINE_RE.match(line)
    assert line.endswith('[INFO] Backup written path=/b/x.dump bytes=5')


def test_console_and_file_sinks(tmp_path, capsys):
    path = tmp_path / 'logs' / 'backup.log'
    assert log.configure(path)
    assert log.log_path() == path
    log.error('pg_dump failed', status=1)
    log.shutdown()
    err = capsys.readouterr().err
    assert '[ERROR] pg_dump failed status=1' in err
    content = path.read_text()
    assert LINE_RE.match(content)
    assert content.strip().endswith('pg_dump failed status=1')


def test_file_sink_appends(tmp_path):
    path = tmp_path / 'backup.log'
    path.write_text('previous run\n')
    log.configure(path)
    log.info('second run')
    log.shutdown()
    lines = path.read_text().splitlines()
    assert lines[0] == 'previous run' and lines[1].endswith('[INFO] second run')


def test_unopenable_log_file_falls_back_to_console(tmp_path, capsys):
    blocker = tmp_path / 'not-a-dir'
    blocker.write_text('x')
    assert log.configure(blocker / 'backup.log') is False
    log.info('still logging')
    err = capsys.readouterr().err
    assert 'Log file unavailable' in err and 'still logging' in err


def test_level_threshold(monkeypatch, capsys):
    monkeypatch.setattr(log, 'LOG_LEVEL', 'WARN')
    log.info('hidden')
    log.warn('shown')
    err = capsys.readouterr().err
    assert 'hidden' not in err and '[WARN] shown' in err


def test_shutdown_is_idempotent(tmp_path):
    log.configure(tmp_path / 'a.log')
    log.shutdown()
    log.shutdown()
    assert log.log_path() is None
