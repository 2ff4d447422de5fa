"""Background gzip compression of rotated log files."""

from __future__ import annotations

import asyncio
import logging
import zlib
from collections.abc import Callable
from pathlib import Path

import aiofiles
import aiofiles.os

from .errors import CompressionError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# wbits offset 16 selects the gzip container
GZIP_WBITS = 16 + zlib.MAX_WBITS


class CompressionPipeline:
    """Streams rotated files into ``<path>.gz`` siblings.

    The uncompressed file is removed only after the compressed file has been
    fully written, flushed and closed. On any failure the partial ``.gz`` is
    discarded and the source is kept.

    Attributes:
        chunk_size: Bytes read per step.
        compression_level: zlib level, 1-9.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, compression_level: int = 6):
        self.chunk_size = chunk_size
        self.compression_level = compression_level
        self._tasks: set[asyncio.Task] = set()

    @staticmethod
    def compressed_path_for(source_path: Path) -> Path:
        return source_path.with_name(source_path.name + ".gz")

    async def compress(self, source_path: str | Path) -> Path:
        """Compress ``source_path`` and delete it afterwards.

        Returns:
            Path of the ``.gz`` file.

        Raises:
            CompressionError: If reading, compressing or writing fails. The
                source file is left in place.
        """
        source = Path(source_path)
        target = self.compressed_path_for(source)

        try:
            await self._stream(source, target)
        except Exception as e:
            await self._discard_partial(target)
            raise CompressionError(f"Failed to compress {source}", underlying=e) from e

        try:
            await aiofiles.os.remove(source)
        except OSError as e:
            raise CompressionError(
                f"Compressed {source} but failed to remove it", underlying=e
            ) from e

        logger.info(f"Compressed {source} -> {target}")
        return target

    async def _stream(self, source: Path, target: Path) -> None:
        compressor = zlib.compressobj(self.compression_level, zlib.DEFLATED, GZIP_WBITS)
        async with aiofiles.open(source, "rb") as src:
            async with aiofiles.open(target, "wb") as dst:
                while True:
                    chunk = await src.read(self.chunk_size)
                    if not chunk:
                        break
                    await dst.write(compressor.compress(chunk))
                await dst.write(compressor.flush())
                await dst.flush()

    async def _discard_partial(self, target: Path) -> None:
        try:
            if await aiofiles.os.path.exists(target):
                await aiofiles.os.remove(target)
        except OSError as e:
            logger.warning(f"Failed to remove partial archive {target}: {e}")

    def schedule(
        self,
        source_path: str | Path,
        on_complete: Callable[[Path, Path], None] | None = None,
        on_error: Callable[[Path, Exception], None] | None = None,
    ) -> asyncio.Task:
        """Compress in a background task without waiting for it.

        Args:
            source_path: Rotated file to compress.
            on_complete: Called with (source, compressed) on success.
            on_error: Called with (source, error) on failure.

        Returns:
            The background task.
        """
        source = Path(source_path)

        async def run() -> None:
            try:
                target = await self.compress(source)
            except CompressionError as e:
                logger.error(str(e))
                if on_error:
                    on_error(source, e)
                return
            if on_complete:
                on_complete(source, target)

        task = asyncio.create_task(run(), name=f"compress-{source.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        """Number of compressions still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all scheduled compressions to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
