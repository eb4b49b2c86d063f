"""
Configuration management using pydantic-settings.

Loads configuration from REGCACHE_* environment variables and .env files.
Validates required fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TTL_SECONDS = 1800.0
DEFAULT_CHUNK_SIZE = 64 * 1024


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Required:
        REGCACHE_CACHE_DIR: Root directory for cached entries

    Optional:
        REGCACHE_TTL_SECONDS: Freshness window for cached entries
        REGCACHE_FRIENDLY_NAMES: Keep module names in cache paths instead of hashes
        REGCACHE_CHUNK_SIZE: Bytes copied per read when writing/reading entries
        REGCACHE_LOG_LEVEL: Logging level
        REGCACHE_LOG_FILE: JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="REGCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DIR: Path = Field(..., description="Cache root directory")

    TTL_SECONDS: float = Field(
        default=DEFAULT_TTL_SECONDS, ge=0.0, description="Freshness window in seconds"
    )
    FRIENDLY_NAMES: bool = Field(
        default=False, description="Use human-readable module names in cache paths"
    )
    CHUNK_SIZE: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        ge=1024,
        le=16 * 1024 * 1024,
        description="Copy buffer size in bytes",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON log file")

    @property
    def cache_dir(self) -> Path:
        """Get cache directory (lowercase alias)."""
        return self.CACHE_DIR

    @property
    def ttl(self) -> float:
        """Get TTL in seconds (lowercase alias)."""
        return self.TTL_SECONDS

    @property
    def friendly_names(self) -> bool:
        """Get friendly-name mode flag (lowercase alias)."""
        return self.FRIENDLY_NAMES

    @field_validator("CACHE_DIR", mode="before")
    @classmethod
    def validate_cache_dir(cls, v: object) -> object:
        """Reject an empty cache directory, which would map to the CWD."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("CACHE_DIR must not be empty")
        return v

    def ensure_directories(self) -> None:
        """Create the cache directory if it doesn't exist."""
        self.CACHE_DIR.mkdir(parents=True, exist_ok=True)

    def as_display(self) -> dict[str, str | int | float | bool | None]:
        """Return settings for display."""
        return {
            "CACHE_DIR": str(self.CACHE_DIR),
            "TTL_SECONDS": self.TTL_SECONDS,
            "FRIENDLY_NAMES": self.FRIENDLY_NAMES,
            "CHUNK_SIZE": self.CHUNK_SIZE,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
