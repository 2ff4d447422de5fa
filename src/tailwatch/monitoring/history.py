"""Fixed-capacity history of recent log records."""

from __future__ import annotations

from collections.abc import Iterator

from .models import LogRecord


class HistorySnapshot:
    """Point-in-time view of a RingHistory.

    Iterating walks the captured slots lazily from oldest to newest and can be
    repeated; later pushes into the history do not change the view.
    """

    def __init__(self, slots: list[LogRecord | None], start: int, count: int):
        self._slots = slots
        self._start = start
        self._count = count

    def __iter__(self) -> Iterator[LogRecord]:
        capacity = len(self._slots)
        for offset in range(self._count):
            record = self._slots[(self._start + offset) % capacity]
            if record is None:
                continue
            yield record

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def to_list(self) -> list[LogRecord]:
        return list(self)


class RingHistory:
    """Circular FIFO buffer of LogRecord objects.

    Once ``capacity`` records are stored every push evicts exactly the oldest
    one. Access is not synchronized; callers serialize it through one event
    loop.

    Attributes:
        capacity: Maximum number of retained records.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._slots: list[LogRecord | None] = [None] * capacity
        self._head = 0  # next slot to write
        self._tail = 0  # oldest retained record
        self._full = False

    def push(self, record: LogRecord) -> None:
        """Insert a record, evicting the oldest one when full."""
        self._slots[self._head] = record
        if self._full:
            self._tail = (self._tail + 1) % self.capacity
        self._head = (self._head + 1) % self.capacity
        if self._head == self._tail:
            self._full = True

    @property
    def is_full(self) -> bool:
        return self._full

    def __len__(self) -> int:
        if self._full:
            return self.capacity
        return (self._head - self._tail) % self.capacity

    def snapshot(self) -> HistorySnapshot:
        """Return the retained records, oldest first."""
        return HistorySnapshot(list(self._slots), self._tail, len(self))

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(self.snapshot())
