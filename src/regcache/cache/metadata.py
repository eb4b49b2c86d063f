"""
Metadata resolution for cache entries.

Derives size, MIME type and freshness from the filesystem and the
configured TTL. Absence is reported as CacheStatus.NOT_FOUND, never raised.
"""

from __future__ import annotations

import asyncio
import mimetypes
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping

from regcache.exceptions import CacheIOError
from regcache.types import CacheStatus, Metadata

DEFAULT_CONTENT_TYPE = "application/octet-stream"

Clock = Callable[[], float]

# Built-in table only; host mime.types files would make results vary by machine.
_BUILTIN_TYPES = mimetypes.MimeTypes().types_map[True]


def status_for_age(age: float, ttl: float) -> CacheStatus:
    """Classify an existing entry by its age in seconds."""
    return CacheStatus.FRESH if age <= ttl else CacheStatus.STALE


class ContentTypes:
    """Extension to MIME type lookup."""

    def __init__(self, extra_types: Mapping[str, str] | None = None) -> None:
        self._types = dict(_BUILTIN_TYPES)
        for ext, mime in (extra_types or {}).items():
            ext = ext.lower()
            self._types[ext if ext.startswith(".") else f".{ext}"] = mime

    def for_filename(self, filename: str) -> str:
        ext = os.path.splitext(filename)[1].lower()
        return self._types.get(ext, DEFAULT_CONTENT_TYPE)


class MetadataResolver:
    """Builds Metadata for a file from a stat call and the TTL."""

    def __init__(
        self,
        ttl: float,
        content_types: ContentTypes | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.ttl = ttl
        self.content_types = content_types or ContentTypes()
        self.clock = clock

    def from_stat(self, filename: str, st: os.stat_result) -> Metadata:
        age = self.clock() - st.st_mtime
        return Metadata(
            status=status_for_age(age, self.ttl),
            size=st.st_size,
            type=self.content_types.for_filename(filename),
            mtime=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def resolve(self, path: Path, key: str = "") -> Metadata:
        """Stat a path and describe it.

        Args:
            path: File to inspect.
            key: Cache key, used for error context only.

        Returns:
            Metadata; status NOT_FOUND when no file exists.

        Raises:
            CacheIOError: If the stat fails for any reason other than absence.
        """
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return Metadata(status=CacheStatus.NOT_FOUND)
        except OSError as e:
            raise CacheIOError(
                "Failed to stat cache entry",
                context={"key": key, "path": str(path), "operation": "stat", "error": str(e)},
            ) from e
        return self.from_stat(path.name, st)

    async def aresolve(self, path: Path, key: str = "") -> Metadata:
        """Run resolve() in the loop's default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.resolve, path, key)
