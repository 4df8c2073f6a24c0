"""Failure taxonomy for a backup run.

Every stage raises a BackupError subclass; only the top-level runner turns them
into a log line plus exit code 1. Pruning errors never surface here.
"""
from __future__ import annotations


class BackupError(RuntimeError):
    """Fatal condition: the run stops and exits with status 1."""


class UsageError(BackupError):
    pass


class LockBusyError(BackupError):
    pass


class PreflightError(BackupError):
    pass


class DumpError(BackupError):
    pass
