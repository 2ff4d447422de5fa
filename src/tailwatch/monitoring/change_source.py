"""File-change notification sources.

WatchSupervisor subscribes to one of these per (re)start and stops it on
teardown. The watchdog-backed source runs its observer thread outside the
event loop and hands every notification back to the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]


class ChangeSource(Protocol):
    """Interface of a file-change subscription."""

    def start(self, callback: ChangeCallback) -> None:
        """Begin delivering notifications to ``callback`` on the event loop."""
        ...

    def stop(self) -> None:
        """Stop delivering notifications. Must be safe to call twice."""
        ...


class _LogFileEventHandler(FileSystemEventHandler):
    """Forwards events for one path to the owning source."""

    def __init__(self, target: Path, notify: Callable[[], None]):
        self.target = os.path.abspath(target)
        self.notify = notify

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and os.path.abspath(os.fsdecode(p)) == self.target for p in paths)

    def on_modified(self, event: FileSystemEvent) -> None:
        if self._matches(event):
            self.notify()

    def on_created(self, event: FileSystemEvent) -> None:
        if self._matches(event):
            self.notify()

    def on_moved(self, event: FileSystemEvent) -> None:
        if self._matches(event):
            self.notify()


class WatchdogChangeSource:
    """Change source backed by a watchdog Observer on the file's directory.

    Attributes:
        path: Watched log file.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._callback: ChangeCallback | None = None

    def start(self, callback: ChangeCallback) -> None:
        """Start the observer thread.

        Raises:
            OSError: If the directory cannot be watched.
        """
        if self._observer is not None:
            return
        if not self.path.exists():
            raise FileNotFoundError(f"Log file does not exist: {self.path}")

        self._loop = asyncio.get_running_loop()
        self._callback = callback

        handler = _LogFileEventHandler(self.path, self._notify_threadsafe)
        observer = Observer()
        observer.schedule(handler, str(self.path.parent.resolve()), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.debug(f"Watching {self.path} for changes")

    def _notify_threadsafe(self) -> None:
        loop = self._loop
        callback = self._callback
        if loop is None or callback is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(callback)

    def stop(self) -> None:
        observer = self._observer
        self._observer = None
        self._callback = None
        if observer is None:
            return
        observer.stop()
        # Bounded wait for the observer thread
        observer.join(timeout=1)
        logger.debug(f"Stopped watching {self.path}")
