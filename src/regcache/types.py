"""
Core types for the registry cache.

This module defines the data structures shared by the cache components:
- CacheStatus enum and its module-level aliases
- Frozen dataclasses for path mapping results (PathInfo) and entry metadata
- Helper functions for ID generation and timestamps
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "req", "tmp")

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class CacheStatus(str, Enum):
    """Freshness state of a cache entry."""

    NOT_FOUND = "not_found"
    FRESH = "fresh"
    STALE = "stale"


NOT_FOUND = CacheStatus.NOT_FOUND
FRESH = CacheStatus.FRESH
STALE = CacheStatus.STALE


@dataclass(frozen=True)
class PathInfo:
    """Location of a cache entry on disk.

    ``dir`` holds the bucket segments below the cache root, ``file`` the
    entry's filename, ``full`` the absolute path and ``rel`` the POSIX path
    relative to the root.
    """

    dir: tuple[str, ...]
    file: str
    full: Path
    rel: str

    @property
    def directory(self) -> Path:
        """Absolute bucket directory containing the entry."""
        return self.full.parent


@dataclass(frozen=True)
class Metadata:
    """Size, content type and freshness of a cache entry.

    Only ``status`` is set for entries that do not exist.
    """

    status: CacheStatus
    size: int | None = None
    type: str | None = None
    mtime: datetime | None = None

    @property
    def exists(self) -> bool:
        return self.status is not CacheStatus.NOT_FOUND

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict, leaving out fields that are not set."""
        data: dict[str, Any] = {"status": self.status.value}
        if self.size is not None:
            data["size"] = self.size
        if self.type is not None:
            data["type"] = self.type
        if self.mtime is not None:
            data["mtime"] = self.mtime.isoformat()
        return data
