"""
Custom exception hierarchy for the registry cache.

All exceptions inherit from RegCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class RegCacheError(Exception):
    """Base exception for all registry cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(RegCacheError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Missing REGCACHE_CACHE_DIR
        - Negative TTL
    """

    pass


class CacheIOError(RegCacheError):
    """Raised when a filesystem operation on the cache fails.

    Context should include:
        - key: The cache key being processed
        - path: The file the operation touched
        - operation: One of "write", "read", "stat"
        - error: The underlying OS error message
    """

    pass


class EntryNotFoundError(RegCacheError, FileNotFoundError):
    """Raised when a cache entry stream is consumed but no file exists.

    Absence is normally reported as a status by meta(); this error only
    surfaces from reading an entry that was never written.
    """

    pass


class EntryLockedError(RegCacheError):
    """Raised when a write is started for a key that is already being written.

    Context should include:
        - key: The locked cache key
        - held_for: Seconds the current writer has held the lock
    """

    pass
