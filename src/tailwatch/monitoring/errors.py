"""Error taxonomy for the log watcher.

Component operations raise these; WatchSupervisor catches them at the cycle
boundary and turns them into ``Error`` events.
"""

from __future__ import annotations


class WatcherError(Exception):
    """Base exception for the watcher.

    Args:
        message: Human readable description.
        underlying: Original exception, if this wraps one.
    """

    def __init__(self, message: str, *, underlying: Exception | None = None):
        super().__init__(message)
        self.underlying = underlying

    def __str__(self) -> str:
        if self.underlying:
            return f"{self.args[0]} (caused by {self.underlying})"
        return self.args[0]


class TransientIOError(WatcherError):
    """Stat, read, rename or compress failure. The cycle is skipped and the next trigger retries."""


class TailReadError(TransientIOError):
    """Raised when the trailing window of the log file cannot be read."""


class RotationError(TransientIOError):
    """Raised when the active file cannot be renamed aside or recreated."""


class CompressionError(TransientIOError):
    """Raised when a rotated file cannot be compressed. The source file is kept."""


class MalformedLine(WatcherError):
    """Raised for a line that cannot be classified. Callers drop it and continue."""


class StartupFailure(WatcherError):
    """Raised when backfill or the initial file subscription fails."""
