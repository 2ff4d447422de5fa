"""Event data models emitted by the log watcher."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar, Protocol

from tailwatch.monitoring.models import LogRecord, WatcherStatistics


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class WatcherEvent:
    """
    Immutable base class for all watcher events.

    Subclasses fix ``event_type`` and add their own payload fields.

    Attributes:
        source: Identifier of the emitting watcher (usually the file path)
        timestamp: When the event was created
    """

    event_type: ClassVar[str] = "event"

    source: str
    timestamp: datetime = field(default_factory=_now)

    def payload(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation for transports."""
        return {
            "type": self.event_type,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "data": self.payload(),
        }


@dataclass(frozen=True)
class Started(WatcherEvent):
    event_type: ClassVar[str] = "started"


@dataclass(frozen=True)
class Stopped(WatcherEvent):
    event_type: ClassVar[str] = "stopped"


@dataclass(frozen=True)
class Restarted(WatcherEvent):
    event_type: ClassVar[str] = "restarted"


@dataclass(frozen=True)
class Snapshot(WatcherEvent):
    """Full retained history and statistics, sent once the watcher is running."""

    event_type: ClassVar[str] = "snapshot"

    records: tuple[LogRecord, ...] = ()
    stats: WatcherStatistics = field(default_factory=WatcherStatistics)

    def payload(self) -> dict[str, Any]:
        return {
            "lines": [r.to_dict() for r in self.records],
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class Update(WatcherEvent):
    """Records accepted by one watch cycle."""

    event_type: ClassVar[str] = "update"

    records: tuple[LogRecord, ...] = ()
    stats: WatcherStatistics = field(default_factory=WatcherStatistics)

    def payload(self) -> dict[str, Any]:
        return {
            "lines": [r.to_dict() for r in self.records],
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class Rotated(WatcherEvent):
    event_type: ClassVar[str] = "rotated"

    path: str = ""

    def payload(self) -> dict[str, Any]:
        return {"newPath": self.path}


@dataclass(frozen=True)
class Compressed(WatcherEvent):
    event_type: ClassVar[str] = "compressed"

    source_path: str = ""
    compressed_path: str = ""

    def payload(self) -> dict[str, Any]:
        return {"sourcePath": self.source_path, "compressedPath": self.compressed_path}


@dataclass(frozen=True)
class Stalled(WatcherEvent):
    """No successful cycle for longer than three heartbeat intervals."""

    event_type: ClassVar[str] = "stalled"

    idle_ms: int = 0

    def payload(self) -> dict[str, Any]:
        return {"idleMs": self.idle_ms}


@dataclass(frozen=True)
class Error(WatcherEvent):
    event_type: ClassVar[str] = "error"

    message: str = ""
    error_type: str = ""

    def payload(self) -> dict[str, Any]:
        return {"message": self.message, "errorType": self.error_type}


class EventHandler(Protocol):
    """
    Protocol for event handlers.

    Example:
        def my_handler(event: WatcherEvent) -> None:
            print(f"Received event: {event.event_type}")

        bus.subscribe("update", my_handler)
    """

    def __call__(self, event: WatcherEvent) -> None: ...


WATCHER_EVENT_TYPES: dict[str, str] = {
    Started.event_type: "Watcher finished backfill and is running",
    Stopped.event_type: "Watcher was stopped",
    Restarted.event_type: "Watcher was torn down and started again",
    Snapshot.event_type: "Full retained history after start",
    Update.event_type: "New records accepted by a watch cycle",
    Rotated.event_type: "Log file renamed aside after reaching the size threshold",
    Compressed.event_type: "Rotated file compressed to .gz",
    Stalled.event_type: "No successful update within three heartbeat intervals",
    Error.event_type: "A cycle, rotation or compression failed",
}
