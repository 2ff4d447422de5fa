"""Log tail and rotation watcher.

Watches one growing text log, keeps a bounded window of recent classified
records, rotates the file by size and restarts itself when it stalls.

Example:
    >>> from tailwatch import EventBus, WatchSupervisor, WatcherConfig
    >>> bus = EventBus()
    >>> bus.subscribe("update", lambda event: print(len(event.records)))
    >>> supervisor = WatchSupervisor(WatcherConfig(file_path="app.log"), bus=bus)
    >>> # await supervisor.start()
"""

__version__ = "0.1.0"

from tailwatch.config import WatcherConfig, load_config
from tailwatch.events import EventBus, WatcherEvent
from tailwatch.monitoring import LogRecord, RingHistory, Severity, WatcherPhase, WatcherStatistics
from tailwatch.watch_supervisor import WatchSupervisor

__all__ = [
    "__version__",
    "WatcherConfig",
    "load_config",
    "EventBus",
    "WatcherEvent",
    "LogRecord",
    "RingHistory",
    "Severity",
    "WatcherPhase",
    "WatcherStatistics",
    "WatchSupervisor",
]
