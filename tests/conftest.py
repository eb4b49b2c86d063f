"""
Pytest configuration and fixtures for registry cache tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from regcache.cache import Cache
from regcache.config import Settings, clear_settings_cache


class FakeClock:
    """Settable epoch clock for freshness tests."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def dummy() -> bytes:
    return b"Lorem ipsum dolor sit amet ...\n"


@pytest.fixture
def cache_root(temp_dir: Path) -> Path:
    return temp_dir / "cache"


@pytest.fixture
def cache(cache_root: Path) -> Cache:
    """Hashed-mode cache with a 10 second TTL."""
    return Cache(path=cache_root, ttl=10)


@pytest.fixture
def friendly_cache(cache_root: Path) -> Cache:
    """Friendly-name cache with a 10 second TTL."""
    return Cache(path=cache_root, ttl=10, friendly_names=True)


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "REGCACHE_CACHE_DIR": str(temp_dir / "env-cache"),
        "REGCACHE_TTL_SECONDS": "60",
        "REGCACHE_FRIENDLY_NAMES": "true",
        "REGCACHE_CHUNK_SIZE": "4096",
        "REGCACHE_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    clear_settings_cache()
    from regcache.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
