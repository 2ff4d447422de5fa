"""Data models for the log watcher.

This module defines the records produced by classification, the lifetime
statistics kept by the supervisor, and the lifecycle phases.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Lifetime counters saturate here instead of growing without bound.
COUNTER_MAX = 2**63 - 1


class Severity(str, Enum):
    """Severity tag carried by a log line."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class WatcherPhase(str, Enum):
    """Lifecycle phase of a WatchSupervisor."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"


@dataclass(frozen=True)
class LogRecord:
    """One classified log line.

    Attributes:
        content: Raw line text without the trailing newline.
        timestamp: Leading numeric token of the line, or classification time in
            unix milliseconds when the line has none.
        severity: Severity parsed from the bracketed tag.
        fingerprint: Fixed-width hex digest of the content. Identity only, never
            used for deduplication.
    """

    content: str
    timestamp: int
    severity: Severity
    fingerprint: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "timestamp": self.timestamp,
            "type": self.severity.value,
            "hash": self.fingerprint,
        }


def _saturating_add(value: int, amount: int = 1) -> int:
    return min(value + amount, COUNTER_MAX)


@dataclass
class WatcherStatistics:
    """Aggregate counters for a watcher.

    Lives as long as the owning supervisor object and survives watcher restarts.

    Attributes:
        total_lines: Records accepted since construction.
        error_count: Accepted records with ERROR severity.
        warning_count: Accepted records with WARNING severity.
        last_update_time: Unix milliseconds of the last completed cycle.
        average_update_interval: Smoothed interval between cycles in milliseconds.
    """

    total_lines: int = 0
    error_count: int = 0
    warning_count: int = 0
    last_update_time: int = 0
    average_update_interval: float = 0.0
    intervals_recorded: int = 0

    def record(self, record: LogRecord) -> None:
        """Count one accepted record."""
        self.total_lines = _saturating_add(self.total_lines)
        if record.severity is Severity.ERROR:
            self.error_count = _saturating_add(self.error_count)
        elif record.severity is Severity.WARNING:
            self.warning_count = _saturating_add(self.warning_count)

    def record_cycle(self, now: int) -> None:
        """Fold the interval since the previous cycle into the moving average.

        The first interval seeds the average; each later one is averaged with
        the previous value: ``new = (old + delta) / 2``.
        """
        delta = max(0, now - self.last_update_time)
        if self.intervals_recorded == 0:
            self.average_update_interval = float(delta)
        else:
            self.average_update_interval = (self.average_update_interval + delta) / 2
        self.intervals_recorded = _saturating_add(self.intervals_recorded)
        self.last_update_time = now

    def copy(self) -> WatcherStatistics:
        return WatcherStatistics(
            total_lines=self.total_lines,
            error_count=self.error_count,
            warning_count=self.warning_count,
            last_update_time=self.last_update_time,
            average_update_interval=self.average_update_interval,
            intervals_recorded=self.intervals_recorded,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLines": self.total_lines,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "lastUpdateTime": self.last_update_time,
            "averageUpdateInterval": self.average_update_interval,
        }
