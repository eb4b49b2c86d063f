"""
Stream writer for cache entries.

Copies an incoming byte stream of unknown length into the cache. Bytes go to
a temporary file beside the target and are renamed into place only after a
successful copy, so readers never see a partial entry. Locking is left to
the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import os
from pathlib import Path
from typing import IO, Any, AsyncIterable, AsyncIterator, Callable, Iterable, TypeVar, Union

from regcache.cache.metadata import ContentTypes
from regcache.exceptions import CacheIOError, RegCacheError
from regcache.logging import get_logger
from regcache.types import CacheStatus, Metadata, PathInfo, generate_id, utc_now

logger = get_logger(__name__)

T = TypeVar("T")

ByteStream = Union[
    bytes,
    bytearray,
    memoryview,
    IO[bytes],
    Iterable[bytes],
    AsyncIterable[bytes],
]


async def iter_chunks(stream: Any, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield bytes chunks from any supported stream source.

    Accepts bytes-like objects, objects with a sync or async ``read(n)``,
    async iterables and sync iterables of bytes.

    Raises:
        TypeError: If the source is unsupported or yields non-bytes chunks.
    """
    if isinstance(stream, (bytes, bytearray, memoryview)):
        data = bytes(stream)
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
        return

    read = getattr(stream, "read", None)
    if callable(read):
        loop = asyncio.get_running_loop()
        while True:
            if inspect.iscoroutinefunction(read):
                chunk = await read(chunk_size)
            else:
                chunk = await loop.run_in_executor(None, read, chunk_size)
            if not chunk:
                return
            yield _as_bytes(chunk)

    if hasattr(stream, "__aiter__"):
        async for chunk in stream:
            if chunk:
                yield _as_bytes(chunk)
        return

    if isinstance(stream, Iterable) and not isinstance(stream, str):
        for chunk in stream:
            if chunk:
                yield _as_bytes(chunk)
        return

    raise TypeError(f"Unsupported stream type: {type(stream).__name__}")


def _as_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, (bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Stream yielded {type(chunk).__name__}, expected bytes")


class StreamWriter:
    """Persists byte streams to mapped cache paths."""

    def __init__(self, content_types: ContentTypes, chunk_size: int) -> None:
        self.content_types = content_types
        self.chunk_size = chunk_size

    async def write_locked(self, key: str, info: PathInfo, stream: ByteStream) -> Metadata:
        """Copy a stream into the entry for ``key``.

        The caller must already hold the lock for the entry and release it
        once this finishes, however it finishes.

        Args:
            key: Cache key being written.
            info: Mapped location for the key.
            stream: Source of bytes (see iter_chunks).

        Returns:
            Metadata with the written size and FRESH status.

        Raises:
            CacheIOError: If a filesystem operation fails.
            TypeError: If the stream type is unsupported.
        """
        tmp_path = info.directory / f".{info.file}.{generate_id()}.tmp"
        size = 0
        try:
            await self._io(key, tmp_path, "mkdir", _make_dirs, info.directory)
            fh = await self._io(key, tmp_path, "open", open, tmp_path, "wb")
            try:
                async for chunk in iter_chunks(stream, self.chunk_size):
                    await self._io(key, tmp_path, "write", fh.write, chunk)
                    size += len(chunk)
                await self._io(key, tmp_path, "sync", _flush_and_sync, fh)
            finally:
                fh.close()
            await self._io(key, info.full, "rename", os.replace, tmp_path, info.full)
        except BaseException as e:
            logger.warning(
                "Cache write failed",
                key=key,
                path=info.rel,
                bytes_written=size,
                error=repr(e),
            )
            _discard(tmp_path)
            raise

        logger.info("Cache entry written", key=key, path=info.rel, size=size)
        return Metadata(
            status=CacheStatus.FRESH,
            size=size,
            type=self.content_types.for_filename(info.file),
            mtime=utc_now(),
        )

    async def _io(
        self,
        key: str,
        path: Path,
        operation: str,
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        """Run a blocking filesystem call in the executor.

        OS errors are re-raised as CacheIOError with the key and path attached.
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except RegCacheError:
            raise
        except OSError as e:
            raise CacheIOError(
                "Failed to write cache entry",
                context={
                    "key": key,
                    "path": str(path),
                    "operation": operation,
                    "error": str(e),
                },
            ) from e


def _make_dirs(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)


def _flush_and_sync(fh: IO[bytes]) -> None:
    fh.flush()
    os.fsync(fh.fileno())


def _discard(path: Path) -> None:
    """Remove a temporary file left by a failed write."""
    try:
        path.unlink()
    except (FileNotFoundError, NotADirectoryError):
        pass
    except OSError as e:
        logger.error("Failed to remove partial cache file", path=str(path), error=str(e))
