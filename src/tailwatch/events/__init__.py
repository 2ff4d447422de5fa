"""Typed watcher events and the bus that delivers them."""

from tailwatch.events.bus import ALL_EVENTS, EventBus
from tailwatch.events.models import (
    WATCHER_EVENT_TYPES,
    Compressed,
    Error,
    EventHandler,
    Restarted,
    Rotated,
    Snapshot,
    Stalled,
    Started,
    Stopped,
    Update,
    WatcherEvent,
)

__all__ = [
    "ALL_EVENTS",
    "EventBus",
    "EventHandler",
    "WATCHER_EVENT_TYPES",
    "WatcherEvent",
    "Started",
    "Stopped",
    "Restarted",
    "Snapshot",
    "Update",
    "Rotated",
    "Compressed",
    "Stalled",
    "Error",
]
