"""
Lazy byte stream over a cached entry.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import IO, Any

from regcache.exceptions import CacheIOError, EntryNotFoundError
from regcache.logging import get_logger, log_context

logger = get_logger(__name__)


class CacheReader:
    """Async iterator of bytes chunks from one cache file.

    The file is opened on first consumption, so a missing entry surfaces as
    EntryNotFoundError then rather than when the reader is created. The
    stream is finite and cannot be restarted. No freshness check is made.
    """

    def __init__(
        self,
        key: str,
        path: Path,
        chunk_size: int,
        request_id: str | None = None,
    ) -> None:
        self.key = key
        self.path = path
        self.chunk_size = chunk_size
        self.request_id = request_id
        self.bytes_read = 0
        self._fh: IO[bytes] | None = None
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> CacheReader:
        if self._started:
            raise RuntimeError("Cache entry stream cannot be restarted")
        self._started = True
        return self

    async def __anext__(self) -> bytes:
        self._started = True
        if self._closed:
            raise StopAsyncIteration

        with log_context(request_id=self.request_id, operation="read"):
            chunk = await self._read_chunk()
            if not chunk:
                self._close()
                logger.debug("Finished reading cache entry", key=self.key, size=self.bytes_read)

        if not chunk:
            raise StopAsyncIteration
        self.bytes_read += len(chunk)
        return chunk

    async def _read_chunk(self) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            if self._fh is None:
                self._fh = await loop.run_in_executor(None, open, self.path, "rb")
                logger.debug("Opened cache entry", key=self.key, path=str(self.path))
            return await loop.run_in_executor(None, self._fh.read, self.chunk_size)
        except FileNotFoundError as e:
            self._close()
            raise EntryNotFoundError(
                "Cache entry not found",
                context={"key": self.key, "path": str(self.path)},
            ) from e
        except OSError as e:
            self._close()
            raise CacheIOError(
                "Failed to read cache entry",
                context={
                    "key": self.key,
                    "path": str(self.path),
                    "operation": "read",
                    "error": str(e),
                },
            ) from e

    async def read_all(self) -> bytes:
        """Consume the rest of the stream and return it as one bytes object."""
        chunks: list[bytes] = []
        while True:
            try:
                chunks.append(await self.__anext__())
            except StopAsyncIteration:
                return b"".join(chunks)

    async def aclose(self) -> None:
        """Release the file handle without consuming the rest of the stream."""
        self._close()

    async def __aenter__(self) -> CacheReader:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _close(self) -> None:
        self._closed = True
        if self._fh is not None:
            self._fh.close()
            self._fh = None
