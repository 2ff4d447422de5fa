"""Shared fixtures for watcher tests."""

from pathlib import Path

import pytest

from tailwatch.config import WatcherConfig
from tailwatch.events.bus import EventBus
from tailwatch.events.models import WatcherEvent


class ManualChangeSource:
    """Change source driven by the test instead of the filesystem."""

    def __init__(self, path: Path):
        self.path = path
        self.callback = None
        self.started = False
        self.stopped = False

    def start(self, callback) -> None:
        self.callback = callback
        self.started = True

    def stop(self) -> None:
        self.stopped = True
        self.callback = None

    def fire(self) -> None:
        """Deliver one change notification."""
        if self.callback is not None:
            self.callback()


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class EventRecorder:
    """Collects every event published on a bus."""

    def __init__(self, bus: EventBus):
        self.events: list[WatcherEvent] = []
        bus.subscribe_all(self.events.append)

    @property
    def types(self) -> list[str]:
        return [event.event_type for event in self.events]

    def of_type(self, event_type: str) -> list[WatcherEvent]:
        return [event for event in self.events if event.event_type == event_type]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def change_sources() -> list[ManualChangeSource]:
    """Every ManualChangeSource created through change_source_factory."""
    return []


@pytest.fixture
def change_source_factory(change_sources: list[ManualChangeSource]):
    def _factory(path: Path) -> ManualChangeSource:
        source = ManualChangeSource(path)
        change_sources.append(source)
        return source

    return _factory


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    """Log file with three classified lines."""
    log_file = tmp_path / "app.log"
    log_file.write_text(
        "1700000000000 [INFO] User logged in successfully (ID: 1)\n"
        "1700000000001 [WARNING] High memory usage detected (ID: 2)\n"
        "1700000000002 [ERROR] Database query failed (ID: 3)\n"
    )
    return log_file


@pytest.fixture
def empty_log_file(tmp_path: Path) -> Path:
    log_file = tmp_path / "empty.log"
    log_file.write_text("")
    return log_file


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def make_config():
    """Build a WatcherConfig with fast defaults for tests."""

    def _make(path: Path, **overrides) -> WatcherConfig:
        values = {
            "file_path": str(path),
            "max_lines": 100,
            "watch_interval_ms": 1000,
            "log_dir": str(path.parent / "tailwatch_logs"),
        }
        values.update(overrides)
        return WatcherConfig(**values)

    return _make
