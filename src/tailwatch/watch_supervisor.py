"""
WatchSupervisor - Watches one growing log file and publishes what it sees.

On start it backfills a bounded history from the end of the file, then runs a
watch cycle for every file-change notification and checks its own liveness on
a heartbeat. A heartbeat that finds no successful cycle for three intervals
tears the watcher down and starts it again.

All watcher state is touched from a single asyncio event loop.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any

from tailwatch.config import WatcherConfig
from tailwatch.events.bus import EventBus
from tailwatch.events.models import (
    Compressed,
    Error,
    Restarted,
    Rotated,
    Snapshot,
    Stalled,
    Started,
    Stopped,
    Update,
    WatcherEvent,
)
from tailwatch.monitoring.change_source import ChangeSource, WatchdogChangeSource
from tailwatch.monitoring.classifier import LineClassifier, current_millis
from tailwatch.monitoring.compression import CompressionPipeline
from tailwatch.monitoring.errors import MalformedLine, StartupFailure
from tailwatch.monitoring.history import HistorySnapshot, RingHistory
from tailwatch.monitoring.models import LogRecord, WatcherPhase, WatcherStatistics
from tailwatch.monitoring.rotation import RotationMonitor
from tailwatch.monitoring.tail_reader import WindowedTailReader

# Heartbeat intervals without a successful cycle before the watcher is restarted
STALL_INTERVALS = 3


class WatchSupervisor:
    """
    Owns the history, statistics and lifecycle of one file watcher.

    Phases: stopped -> starting -> running, running -> restarting -> starting
    on a stall, and any phase -> stopped on ``stop()``. Failures inside a cycle
    are published as ``error`` events and never change the phase.

    Statistics live as long as this object. History, the change subscription
    and the heartbeat task are recreated on every (re)start.
    """

    def __init__(
        self,
        config: WatcherConfig | None = None,
        bus: EventBus | None = None,
        change_source_factory: Callable[[Path], ChangeSource] | None = None,
        clock: Callable[[], int] = current_millis,
    ):
        """
        Initialize the supervisor.

        Args:
            config: Watcher configuration (default: WatcherConfig())
            bus: Event bus to publish on (default: a private EventBus)
            change_source_factory: Builds the change subscription for a path
                (default: WatchdogChangeSource)
            clock: Callable returning unix milliseconds
        """
        self.config = (config or WatcherConfig()).validate()
        self.file_path = Path(self.config.file_path)
        self.bus = bus or EventBus()
        self.clock = clock

        self.classifier = LineClassifier(clock)
        self.reader = WindowedTailReader(self.config.buffer_size)
        self.rotation = RotationMonitor(clock)
        self.compression = CompressionPipeline()

        self.stats = WatcherStatistics(last_update_time=clock())
        self.history = RingHistory(self.config.max_lines)

        self._change_source_factory = change_source_factory or WatchdogChangeSource
        self._change_source: ChangeSource | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None
        self._cycle_pending = False

        self._phase = WatcherPhase.STOPPED
        self._generation = 0
        self._running_since = 0
        # End of the last read; cycles only look at bytes appended after it
        self._read_offset = 0

        self._logger = logging.getLogger(__name__)

    # ============================================================================
    # Lifecycle Methods
    # ============================================================================

    @property
    def phase(self) -> WatcherPhase:
        return self._phase

    @property
    def change_source(self) -> ChangeSource | None:
        """Active change subscription, None unless running."""
        return self._change_source

    @property
    def heartbeat_task(self) -> asyncio.Task | None:
        """Active heartbeat task, None unless running."""
        return self._heartbeat_task

    def is_running(self) -> bool:
        return self._phase is WatcherPhase.RUNNING

    async def start(self) -> bool:
        """
        Backfill the history and begin watching.

        Returns:
            True once running. False if startup failed (an ``error`` event has
            been published) or ``stop()`` was called during backfill. The
            caller decides whether a failed start is fatal.

        Raises:
            RuntimeError: If the watcher is not stopped
        """
        if self._phase is not WatcherPhase.STOPPED:
            raise RuntimeError("WatchSupervisor is already running")

        self._logger.info(f"Starting watcher for {self.file_path}")
        return await self._start()

    async def stop(self, timeout: float = 5.0) -> None:
        """
        Stop watching. Stopping a stopped watcher does nothing.

        The change subscription and heartbeat are cancelled before this
        coroutine first yields. In-flight reads and compressions may finish,
        but their results are discarded.

        Args:
            timeout: Maximum time to wait for the heartbeat task to exit (seconds)
        """
        if self._phase is WatcherPhase.STOPPED:
            return

        self._logger.info(f"Stopping watcher for {self.file_path}")
        self._generation += 1
        self._phase = WatcherPhase.STOPPED
        heartbeat = self._teardown()
        self._publish(Stopped(source=self._source))

        if heartbeat is not None:
            try:
                await asyncio.wait_for(heartbeat, timeout=timeout)
            except TimeoutError:
                self._logger.warning("Heartbeat task did not stop within timeout")
            except asyncio.CancelledError:
                self._logger.debug("Heartbeat task cancelled")

    async def _start(self) -> bool:
        """Enter starting, backfill, subscribe and arm the heartbeat."""
        self._generation += 1
        generation = self._generation
        self._phase = WatcherPhase.STARTING

        try:
            await self._backfill(generation)
            if generation != self._generation:
                self._logger.info("Watcher stopped during backfill")
                return False
            self._subscribe()
        except Exception as e:
            if generation != self._generation:
                return False
            failure = (
                e
                if isinstance(e, StartupFailure)
                else StartupFailure(f"Failed to start watching {self.file_path}", underlying=e)
            )
            self._teardown()
            self._phase = WatcherPhase.STOPPED
            self._report_error(failure)
            return False

        self._phase = WatcherPhase.RUNNING
        self._running_since = self.clock()
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(generation), name=f"heartbeat-{self.file_path.name}"
        )

        self._publish(
            Snapshot(
                source=self._source,
                records=tuple(self.history.snapshot()),
                stats=self.stats.copy(),
            )
        )
        self._publish(Started(source=self._source))
        self._logger.info(
            f"Watcher running for {self.file_path}",
            extra={"retained": len(self.history), "generation": generation},
        )
        return True

    async def _restart(self) -> None:
        """Tear down and start again. Statistics are kept."""
        self._logger.warning(f"Restarting watcher for {self.file_path}")
        self._phase = WatcherPhase.RESTARTING
        self._teardown()
        if await self._start():
            self._publish(Restarted(source=self._source))

    async def _backfill(self, generation: int) -> None:
        """Load up to max_lines recent lines into a fresh history."""
        window = await self.reader.read_tail(
            self.file_path, self.config.max_lines, whole_lines=True
        )
        if generation != self._generation:
            return

        history = RingHistory(self.config.max_lines)
        for line in window.lines:
            record = self._classify(line)
            if record is None:
                continue
            history.push(record)
            self.stats.record(record)
        self.history = history
        self._read_offset = window.end

        self._logger.debug(f"Backfilled {len(history)} records from {self.file_path}")

    def _subscribe(self) -> None:
        source = self._change_source_factory(self.file_path)
        source.start(self.notify_change)
        self._change_source = source

    def _teardown(self) -> asyncio.Task | None:
        """
        Cancel the change subscription and the heartbeat.

        Returns:
            The cancelled heartbeat task, unless it is the caller's own task
        """
        source, self._change_source = self._change_source, None
        if source is not None:
            try:
                source.stop()
            except Exception as e:
                self._logger.warning(f"Failed to stop change source for {self.file_path}: {e}")

        task, self._heartbeat_task = self._heartbeat_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return None
        task.cancel()
        return task

    # ============================================================================
    # Watch Cycle
    # ============================================================================

    def notify_change(self) -> None:
        """
        Handle a file-change notification.

        At most one cycle runs at a time. Notifications arriving while a
        cycle is in flight are coalesced into a single follow-up cycle.
        """
        if self._phase is not WatcherPhase.RUNNING:
            return
        if self._cycle_task is not None and not self._cycle_task.done():
            self._cycle_pending = True
            return
        self._cycle_task = asyncio.create_task(
            self._drain_notifications(), name=f"watch-cycle-{self.file_path.name}"
        )

    async def wait_for_cycles(self) -> None:
        """Wait until no watch cycle is in flight or pending."""
        while self._cycle_task is not None and not self._cycle_task.done():
            await asyncio.shield(self._cycle_task)

    async def _drain_notifications(self) -> None:
        while True:
            self._cycle_pending = False
            await self._watch_cycle(self._generation)
            if not self._cycle_pending:
                break

    async def _watch_cycle(self, generation: int) -> None:
        """
        Run one read-classify-store-rotate pass.

        Every failure is caught here and published as an ``error`` event.
        """
        if not self._is_current(generation):
            return

        try:
            size = await self.reader.file_size(self.file_path)
            if size == 0:
                self._read_offset = 0
                return

            window = await self.reader.read_tail(
                self.file_path,
                self.config.cycle_lines,
                since=self._read_offset,
                whole_lines=True,
            )
            if not self._is_current(generation):
                self._logger.debug("Discarding cycle result from a previous run")
                return
            if window.bytes_read == 0:
                return
            self._read_offset = window.end

            accepted: list[LogRecord] = []
            for line in window.lines:
                record = self._classify(line)
                if record is None:
                    continue
                self.history.push(record)
                self.stats.record(record)
                accepted.append(record)

            self.stats.record_cycle(self.clock())

            if accepted:
                self._publish(
                    Update(source=self._source, records=tuple(accepted), stats=self.stats.copy())
                )

            if not self._is_current(generation):
                return
            rotated = await self.rotation.check_and_rotate(
                self.file_path, self.config.rotation_size
            )
            if rotated is None:
                return
            self._read_offset = 0

            if self._is_current(generation):
                self._publish(Rotated(source=self._source, path=str(rotated)))
            if self.config.compression:
                self.compression.schedule(
                    rotated,
                    on_complete=partial(self._on_compressed, generation),
                    on_error=partial(self._on_compression_failed, generation),
                )

        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._is_current(generation):
                self._report_error(e)
            else:
                self._logger.debug(f"Ignoring error from a previous run: {e}")

    def _classify(self, line: str) -> LogRecord | None:
        try:
            return self.classifier.classify(line)
        except MalformedLine as e:
            self._logger.debug(f"Dropping malformed line: {e}")
            return None
        except Exception as e:
            # Drops this line only
            self._logger.warning(
                f"Failed to classify line from {self.file_path}: {e}",
                extra={"error_type": type(e).__name__},
            )
            return None

    def _on_compressed(self, generation: int, source: Path, target: Path) -> None:
        if self._is_current(generation):
            self._publish(
                Compressed(
                    source=self._source,
                    source_path=str(source),
                    compressed_path=str(target),
                )
            )

    def _on_compression_failed(self, generation: int, source: Path, error: Exception) -> None:
        if self._is_current(generation):
            self._report_error(error)

    # ============================================================================
    # Heartbeat
    # ============================================================================

    async def _heartbeat_loop(self, generation: int) -> None:
        """
        Check liveness every heartbeat interval.

        A stall is measured from the later of the last successful cycle and the
        moment the watcher entered running, so each restart gets a full grace
        window.
        """
        interval = self.config.heartbeat_seconds
        limit_ms = STALL_INTERVALS * self.config.watch_interval_ms

        while self._is_current(generation):
            await asyncio.sleep(interval)
            if not self._is_current(generation):
                return

            try:
                idle_ms = self.clock() - max(self.stats.last_update_time, self._running_since)
                if idle_ms > limit_ms:
                    self._logger.warning(
                        f"Watcher for {self.file_path} stalled",
                        extra={"idle_ms": idle_ms, "limit_ms": limit_ms},
                    )
                    self._publish(Stalled(source=self._source, idle_ms=idle_ms))
                    await self._restart()
                    return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._report_error(e)

    # ============================================================================
    # Queries
    # ============================================================================

    def snapshot(self) -> HistorySnapshot:
        """Retained records, oldest first."""
        return self.history.snapshot()

    def get_statistics(self) -> dict[str, Any]:
        """
        Current statistics plus history and file details.

        Returns:
            Dict with totalLines, errorCount, warningCount, lastUpdateTime,
            averageUpdateInterval, currentBufferSize, maxBufferSize, fileSize
            and phase
        """
        stats = self.stats.to_dict()
        stats.update(
            {
                "currentBufferSize": len(self.history),
                "maxBufferSize": self.config.max_lines,
                "fileSize": self._file_size(),
                "phase": self._phase.value,
            }
        )
        return stats

    def _file_size(self) -> int:
        try:
            return os.stat(self.file_path).st_size
        except OSError as e:
            self._logger.debug(f"Failed to stat {self.file_path}: {e}")
            return 0

    # ============================================================================
    # Utility Methods
    # ============================================================================

    @property
    def _source(self) -> str:
        return str(self.file_path)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._phase is WatcherPhase.RUNNING

    def _publish(self, event: WatcherEvent) -> None:
        self.bus.publish(event)

    def _report_error(self, error: Exception) -> None:
        self._logger.error(
            f"Watcher error for {self.file_path}: {error}",
            extra={"error_type": type(error).__name__},
        )
        self._publish(Error(source=self._source, message=str(error), error_type=type(error).__name__))
