"""
Cache package.

This package provides the disk-backed entry cache:
- Path mapping (paths.py): key -> sharded on-disk location
- Locks (locks.py): per-key write exclusion
- Metadata (metadata.py): size, MIME type and freshness
- Writer / reader (writer.py, reader.py): streaming bytes in and out
- Cache facade (store.py)
"""

from regcache.cache.locks import LockTable
from regcache.cache.paths import PathMapper
from regcache.cache.reader import CacheReader
from regcache.cache.store import Cache

__all__ = ["Cache", "CacheReader", "LockTable", "PathMapper"]
