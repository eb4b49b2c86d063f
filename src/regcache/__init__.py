"""
regcache - disk-backed content cache for package-registry proxies.
"""

from regcache.cache import Cache
from regcache.types import FRESH, NOT_FOUND, STALE, CacheStatus, Metadata, PathInfo

__version__ = "0.1.0"

__all__ = [
    "Cache",
    "CacheStatus",
    "Metadata",
    "PathInfo",
    "NOT_FOUND",
    "FRESH",
    "STALE",
    "__version__",
]
