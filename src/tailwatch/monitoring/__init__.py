"""Log tail monitoring components.

This package provides the building blocks driven by WatchSupervisor: line
classification, a bounded record history, windowed tail reads, size-based
rotation and background compression of rotated files.

Key Components:
    - models: LogRecord, Severity, WatcherStatistics, WatcherPhase
    - history: RingHistory, fixed-capacity FIFO of recent records
    - classifier: LineClassifier, raw line to LogRecord
    - tail_reader: WindowedTailReader, last lines from a trailing byte window
    - rotation: RotationMonitor, size-triggered rename and truncate
    - compression: CompressionPipeline, gzip of rotated files in the background
    - change_source: watchdog-backed file-change notifications

Example:
    >>> from tailwatch.monitoring import LineClassifier, RingHistory
    >>> history = RingHistory(capacity=3)
    >>> history.push(LineClassifier().classify("100 [ERROR] boom"))
    >>> [r.severity.value for r in history.snapshot()]
    ['ERROR']
"""

from __future__ import annotations

from .change_source import ChangeSource, WatchdogChangeSource
from .classifier import LineClassifier
from .compression import CompressionPipeline
from .errors import (
    CompressionError,
    MalformedLine,
    RotationError,
    StartupFailure,
    TailReadError,
    TransientIOError,
    WatcherError,
)
from .history import HistorySnapshot, RingHistory
from .models import LogRecord, Severity, WatcherPhase, WatcherStatistics
from .rotation import RotationMonitor
from .tail_reader import WindowedTailReader

__all__ = [
    "ChangeSource",
    "WatchdogChangeSource",
    "LineClassifier",
    "CompressionPipeline",
    "RingHistory",
    "HistorySnapshot",
    "RotationMonitor",
    "WindowedTailReader",
    "LogRecord",
    "Severity",
    "WatcherPhase",
    "WatcherStatistics",
    "WatcherError",
    "TransientIOError",
    "TailReadError",
    "RotationError",
    "CompressionError",
    "MalformedLine",
    "StartupFailure",
]
