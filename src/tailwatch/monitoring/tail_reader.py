"""Windowed tail reading of a growing log file.

Only the trailing ``buffer_size`` bytes are ever read, so memory and I/O per
read are bounded no matter how large the file grows. If more than
``buffer_size`` bytes are appended between two reads, the older lines of that
span are never seen: this is a recent-window sampler, not an offset-tracked
reader.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles
import aiofiles.os

from .errors import TailReadError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 16384


@dataclass
class TailWindow:
    """Result of one windowed read.

    Attributes:
        lines: Up to ``count`` non-empty lines, in file order.
        start: Byte offset the read started at.
        end: Byte offset just past the last byte read.
    """

    lines: list[str] = field(default_factory=list)
    start: int = 0
    end: int = 0

    @property
    def bytes_read(self) -> int:
        return self.end - self.start


class WindowedTailReader:
    """Reads the last lines from the trailing byte window of a file.

    Attributes:
        buffer_size: Size of the trailing window in bytes.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size < 1:
            raise ValueError("buffer_size must be positive")
        self.buffer_size = buffer_size

    async def file_size(self, log_file_path: str | Path) -> int:
        """Return the current size of the file in bytes.

        Raises:
            TailReadError: If the file cannot be stat'ed.
        """
        try:
            stat_result = await aiofiles.os.stat(log_file_path)
        except OSError as e:
            raise TailReadError(f"Failed to stat {log_file_path}", underlying=e) from e
        return stat_result.st_size

    async def read_tail(
        self,
        log_file_path: str | Path,
        count: int,
        since: int = 0,
        whole_lines: bool = False,
    ) -> TailWindow:
        """Read the trailing window, starting no earlier than ``since``.

        The read starts at ``max(since, file_size - buffer_size)`` and never
        returns more than ``count`` lines. A ``since`` past the end of the file
        (the file was truncated) is ignored.

        Args:
            log_file_path: Path to the log file.
            count: Maximum number of lines to return.
            since: Byte offset already consumed by an earlier read.
            whole_lines: Hold back a trailing line that has no newline yet.
                ``end`` then stops just past the last newline, so a line
                written in several pieces is read once it is complete.

        Returns:
            The lines read and the byte range they came from. The first line
            may be a fragment when the window starts mid-line.

        Raises:
            TailReadError: If the file cannot be stat'ed, opened or read.
        """
        log_path = Path(log_file_path)
        file_size = await self.file_size(log_path)
        if since > file_size:
            logger.info(f"{log_path} shrank below the last read offset, reading from the window start")
            since = 0
        start = max(since, file_size - self.buffer_size, 0)

        if count <= 0 or start >= file_size:
            return TailWindow(start=start, end=start)

        try:
            async with aiofiles.open(log_path, "rb") as f:
                await f.seek(start)
                data = await f.read(self.buffer_size)
        except OSError as e:
            raise TailReadError(f"Failed to read {log_path}", underlying=e) from e

        held_back = 0
        if whole_lines and not data.endswith(b"\n"):
            complete = data.rfind(b"\n") + 1
            held_back = len(data) - complete
            data = data[:complete]

        # The window may split a multi-byte character at either edge
        content = data.decode("utf-8", errors="replace")
        lines = [line.rstrip("\r") for line in content.split("\n")]
        lines = [line for line in lines if line]

        logger.debug(
            "Read trailing window",
            extra={
                "path": str(log_path),
                "window_start": start,
                "bytes_read": len(data),
                "held_back": held_back,
                "lines_found": len(lines),
            },
        )
        return TailWindow(lines=lines[-count:], start=start, end=start + len(data))

    async def read_last_lines(self, log_file_path: str | Path, count: int) -> list[str]:
        """Read up to ``count`` non-empty lines from the end of the file.

        Raises:
            TailReadError: If the file cannot be stat'ed, opened or read.
        """
        return (await self.read_tail(log_file_path, count)).lines
