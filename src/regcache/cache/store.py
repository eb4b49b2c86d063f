"""
Disk-backed cache for registry proxy responses.

The Cache ties the components together:
- PathMapper: key -> sharded on-disk location
- LockTable: one active writer per entry
- MetadataResolver: size / type / freshness of an entry
- StreamWriter / CacheReader: moving bytes in and out

A Cache is built once per proxy process and shared by every request it
serves. Writes lock synchronously before any I/O is scheduled; reads and
metadata lookups never lock.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from regcache.cache.locks import LockTable
from regcache.cache.metadata import Clock, ContentTypes, MetadataResolver
from regcache.cache.paths import PathMapper
from regcache.cache.reader import CacheReader
from regcache.cache.writer import ByteStream, StreamWriter
from regcache.config import DEFAULT_CHUNK_SIZE
from regcache.exceptions import ConfigurationError, EntryLockedError
from regcache.logging import get_logger, log_context
from regcache.types import CacheStatus, Metadata, PathInfo

if TYPE_CHECKING:
    from regcache.config import Settings

logger = get_logger(__name__)

Callback = Callable[[Optional[BaseException], Optional[Metadata]], None]


class Cache:
    """Content-keyed file cache with per-key write locking.

    Example:
        cache = Cache(path="/var/cache/registry", ttl=1800)
        meta = await cache.meta("/lodash/-/lodash-4.17.21.tgz")
        if meta.status is Cache.FRESH:
            async for chunk in cache.read("/lodash/-/lodash-4.17.21.tgz"):
                ...
    """

    NOT_FOUND = CacheStatus.NOT_FOUND
    FRESH = CacheStatus.FRESH
    STALE = CacheStatus.STALE

    def __init__(
        self,
        path: str | Path,
        ttl: float,
        friendly_names: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        extra_types: Mapping[str, str] | None = None,
        clock: Clock = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            path: Cache root directory. Created lazily on first write.
            ttl: Seconds an entry stays FRESH after its last write.
            friendly_names: Keep module names in paths instead of hashes.
            chunk_size: Bytes per read when copying streams.
            extra_types: Additional extension -> MIME type mappings.
            clock: Source of the current epoch time, for freshness checks.

        Raises:
            ConfigurationError: If ttl or chunk_size is out of range.
        """
        if not str(path):
            raise ConfigurationError("Cache path is required")
        if ttl < 0:
            raise ConfigurationError("TTL must not be negative", context={"ttl": ttl})
        if chunk_size <= 0:
            raise ConfigurationError(
                "Chunk size must be positive", context={"chunk_size": chunk_size}
            )

        self.ttl = ttl
        self.chunk_size = chunk_size
        self._mapper = PathMapper(path, friendly_names=friendly_names)
        self._locks = LockTable()
        self._content_types = ContentTypes(extra_types)
        self._resolver = MetadataResolver(ttl, self._content_types, clock=clock)
        self._writer = StreamWriter(self._content_types, chunk_size)
        self._tasks: set[asyncio.Task[Metadata]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> Cache:
        """Build a cache from loaded settings."""
        return cls(
            path=settings.CACHE_DIR,
            ttl=settings.TTL_SECONDS,
            friendly_names=settings.FRIENDLY_NAMES,
            chunk_size=settings.CHUNK_SIZE,
        )

    @property
    def root(self) -> Path:
        return self._mapper.root

    @property
    def friendly_names(self) -> bool:
        return self._mapper.friendly_names

    @property
    def locks(self) -> LockTable:
        """Table of entries, by relative path, with a write in progress."""
        return self._locks

    def get_path(self, key: str) -> PathInfo:
        """Map a key to its on-disk location."""
        return self._mapper.get_path(key)

    def is_locked(self, key: str) -> bool:
        """Whether a write is in progress for the entry ``key`` maps to."""
        return self._locks.is_locked(self.get_path(key).rel)

    def write(
        self, key: str, stream: ByteStream, request_id: str | None = None
    ) -> asyncio.Task[Metadata]:
        """Start writing a stream into the cache entry for ``key``.

        The lock is held by the time this returns, before any filesystem work
        happens. Locks are per entry, so keys mapping onto the same file
        exclude each other. Await the returned task for the result; the lock
        is released when it is done, including when it is cancelled before
        it starts.

        Args:
            key: Cache key.
            stream: Bytes, a binary file object, an object with an async
                ``read(n)``, or a sync/async iterable of bytes chunks.
            request_id: Proxy request ID attached to log records.

        Returns:
            Task resolving to Metadata with the written size and FRESH status.

        Raises:
            EntryLockedError: If another write for the entry is in progress.
            RuntimeError: If called outside a running event loop.
        """
        loop = asyncio.get_running_loop()
        info = self.get_path(key)

        with log_context(request_id=request_id, operation="write"):
            if not self._locks.acquire(info.rel):
                logger.info("Write rejected, entry is locked", key=key, path=info.rel)
                raise self._locks.locked_error(info.rel, key=key)

            # The task and its callbacks run in a copy of this context
            try:
                task = loop.create_task(self._writer.write_locked(key, info, stream))
            except BaseException:
                self._locks.release(info.rel)
                raise
            task.add_done_callback(lambda _task: self._locks.release(info.rel))

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def write_with_callback(
        self,
        key: str,
        stream: ByteStream,
        callback: Callback,
        request_id: str | None = None,
    ) -> asyncio.Task[Metadata] | None:
        """Callback form of write().

        ``callback(error, metadata)`` is called exactly once, after the lock
        is released. A locked entry is reported through the callback and no
        task is started.
        """
        try:
            task = self.write(key, stream, request_id=request_id)
        except EntryLockedError as e:
            callback(e, None)
            return None
        task.add_done_callback(_deliver_to(callback))
        return task

    def read(self, key: str, request_id: str | None = None) -> CacheReader:
        """Open the entry for ``key`` as a lazy async stream of bytes.

        No freshness check is made; use meta() first for fresh-only reads.
        A missing entry raises EntryNotFoundError when the stream is consumed.
        """
        info = self.get_path(key)
        return CacheReader(key, info.full, self.chunk_size, request_id=request_id)

    async def meta(self, key: str, request_id: str | None = None) -> Metadata:
        """Describe the entry for ``key``.

        Returns:
            Metadata with status NOT_FOUND, FRESH or STALE.

        Raises:
            CacheIOError: If the entry exists but cannot be inspected.
        """
        with log_context(request_id=request_id, operation="meta"):
            info = self.get_path(key)
            meta = await self._resolver.aresolve(info.full, key)
            logger.debug("Resolved metadata", key=key, path=info.rel, status=meta.status.value)
        return meta

    def meta_with_callback(
        self, key: str, callback: Callback, request_id: str | None = None
    ) -> asyncio.Task[Metadata]:
        """Callback form of meta()."""
        task = asyncio.get_running_loop().create_task(self.meta(key, request_id=request_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_deliver_to(callback))
        return task

    def __repr__(self) -> str:
        mode = "friendly" if self.friendly_names else "hashed"
        return f"Cache(root={str(self.root)!r}, ttl={self.ttl}, mode={mode})"


def _deliver_to(callback: Callback) -> Callable[[asyncio.Task[Metadata]], None]:
    def _done(task: asyncio.Task[Metadata]) -> None:
        if task.cancelled():
            callback(asyncio.CancelledError(), None)
            return
        error = task.exception()
        if error is not None:
            callback(error, None)
        else:
            callback(None, task.result())

    return _done
