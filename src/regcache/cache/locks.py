"""
Per-entry write locks.

Entries are identified by their location relative to the cache root, so
keys that map onto the same file share one lock. The lock table is the only mutable state shared between requests. It is
guarded by a threading.Lock so a Cache can be used from several threads or
event loops at once.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator

from regcache.exceptions import EntryLockedError
from regcache.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WriteLock:
    """Marker for an in-flight write."""

    key: str
    acquired_at: float = field(default_factory=time.monotonic)

    @property
    def held_for(self) -> float:
        """Seconds since the lock was taken."""
        return time.monotonic() - self.acquired_at


class LockTable:
    """Process-wide mapping from cache key to its active writer."""

    def __init__(self) -> None:
        self._locks: dict[str, WriteLock] = {}
        self._mutex = threading.Lock()

    def acquire(self, key: str) -> bool:
        """Take the write lock for a key.

        Returns:
            True if the lock was newly taken, False if already held.
        """
        with self._mutex:
            if key in self._locks:
                return False
            self._locks[key] = WriteLock(key)
        logger.debug("Lock acquired", key=key)
        return True

    def release(self, key: str) -> None:
        """Drop the write lock for a key."""
        with self._mutex:
            lock = self._locks.pop(key, None)
        if lock is None:
            logger.warning("Released a lock that was not held", key=key)
            return
        logger.debug("Lock released", key=key, held_for=round(lock.held_for, 4))

    def get(self, key: str) -> WriteLock | None:
        with self._mutex:
            return self._locks.get(key)

    def is_locked(self, key: str) -> bool:
        with self._mutex:
            return key in self._locks

    def held(self) -> list[str]:
        """Keys with a write in progress."""
        with self._mutex:
            return list(self._locks)

    @contextmanager
    def hold(self, key: str) -> Generator[WriteLock, None, None]:
        """Hold the lock for a key for the duration of the block.

        Raises:
            EntryLockedError: If another writer holds the key.
        """
        if not self.acquire(key):
            raise self.locked_error(key)
        with self._mutex:
            lock = self._locks[key]
        try:
            yield lock
        finally:
            self.release(key)

    def locked_error(self, lock_key: str, key: str | None = None) -> EntryLockedError:
        """Build the error for a rejected writer.

        ``key`` is the caller's cache key when it differs from the table
        entry, e.g. a key that maps onto an entry already being written.
        """
        current = self.get(lock_key)
        held_for = round(current.held_for, 3) if current else 0.0
        context = {"key": key or lock_key, "held_for": held_for}
        if key is not None and key != lock_key:
            context["entry"] = lock_key
        return EntryLockedError("Cache entry is already being written", context=context)

    def __contains__(self, key: object) -> bool:
        with self._mutex:
            return key in self._locks

    def __len__(self) -> int:
        with self._mutex:
            return len(self._locks)
