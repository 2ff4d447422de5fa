"""Size-triggered rotation of the active log file."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import aiofiles
import aiofiles.os

from .classifier import current_millis
from .errors import RotationError

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_SIZE = 5 * 1024 * 1024


class RotationMonitor:
    """Renames the log file aside once it reaches a size threshold.

    Rotated files are named ``<original>.<unix-millis>`` and the original path
    is recreated empty. Failures are reported to the caller and never retried
    here; the next cycle re-checks.

    Attributes:
        clock: Callable returning unix milliseconds, used for the suffix.
    """

    def __init__(self, clock: Callable[[], int] = current_millis):
        self.clock = clock

    async def rotated_path_for(self, log_path: Path) -> Path:
        """Pick a ``<original>.<millis>`` name that is free, compressed or not."""
        stamp = self.clock()
        candidate = log_path.with_name(f"{log_path.name}.{stamp}")
        while await aiofiles.os.path.exists(candidate) or await aiofiles.os.path.exists(
            candidate.with_name(candidate.name + ".gz")
        ):
            stamp += 1
            candidate = log_path.with_name(f"{log_path.name}.{stamp}")
        return candidate

    async def check_and_rotate(
        self, log_file_path: str | Path, threshold_bytes: int
    ) -> Path | None:
        """Rotate the file if its size is at or above ``threshold_bytes``.

        Args:
            log_file_path: Path of the active log file.
            threshold_bytes: Rotation threshold in bytes.

        Returns:
            Path of the rotated file, or None when the file is under threshold.

        Raises:
            RotationError: If stat, rename or recreation fails. The original
                path is left as it was before the call.
        """
        log_path = Path(log_file_path)

        try:
            size = (await aiofiles.os.stat(log_path)).st_size
        except OSError as e:
            raise RotationError(f"Failed to stat {log_path}", underlying=e) from e

        if size < threshold_bytes:
            return None

        rotated_path = await self.rotated_path_for(log_path)

        try:
            await aiofiles.os.rename(log_path, rotated_path)
        except OSError as e:
            raise RotationError(
                f"Failed to rename {log_path} to {rotated_path}", underlying=e
            ) from e

        try:
            async with aiofiles.open(log_path, "w", encoding="utf-8"):
                pass
        except OSError as e:
            # Put the original back so the next cycle sees the same state
            try:
                await aiofiles.os.rename(rotated_path, log_path)
            except OSError as restore_error:
                logger.error(
                    f"Failed to restore {rotated_path} to {log_path}: {restore_error}"
                )
            raise RotationError(f"Failed to recreate {log_path}", underlying=e) from e

        logger.info(
            f"Rotated {log_path} -> {rotated_path}",
            extra={"size_bytes": size, "threshold_bytes": threshold_bytes},
        )
        return rotated_path
