"""
Tests for the regcache CLI.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from typer.testing import CliRunner

from regcache import __version__
from regcache.cache import Cache
from regcache.cli.main import app
from regcache.logging import setup_logging

runner = CliRunner()


@pytest.fixture
def no_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    """Run without any REGCACHE_* settings or .env file."""
    for name in (
        "REGCACHE_CACHE_DIR",
        "REGCACHE_TTL_SECONDS",
        "REGCACHE_FRIENDLY_NAMES",
        "REGCACHE_CHUNK_SIZE",
        "REGCACHE_LOG_LEVEL",
        "REGCACHE_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(temp_dir)
    setup_logging(log_level="WARNING", console_output=False)


class TestPathCommand:
    """Tests for `regcache path`."""

    def test_hashed_path(self, no_env: None, cache_root: Path) -> None:
        result = runner.invoke(app, ["path", "/foo/bar/-/../baz.tgz", "-d", str(cache_root)])

        assert result.exit_code == 0
        assert "0/3/e/03e80b5c.tgz" in result.output

    def test_friendly_flag(self, no_env: None, cache_root: Path) -> None:
        result = runner.invoke(
            app, ["path", "http://registry/te.st", "-d", str(cache_root), "--friendly"]
        )

        assert result.exit_code == 0
        assert "t/e/-/te.st" in result.output

    def test_settings_layout_is_used(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["path", "http://registry/q-1.2.3.tgz"])

        assert result.exit_code == 0
        assert "q/-/-/q-1.2.3.tgz" in result.output

    def test_missing_cache_dir(self, no_env: None) -> None:
        result = runner.invoke(app, ["path", "/a.tgz"])

        assert result.exit_code == 1
        assert "No cache directory" in result.output


class TestMetaCommand:
    """Tests for `regcache meta`."""

    def test_not_found_exits_nonzero(self, no_env: None, cache_root: Path) -> None:
        result = runner.invoke(app, ["meta", "/la/la", "-d", str(cache_root)])

        assert result.exit_code == 1
        assert "not_found" in result.output

    def test_fresh_entry(self, no_env: None, cache_root: Path, dummy: bytes) -> None:
        cache = Cache(path=cache_root, ttl=60)
        asyncio.run(_write(cache, "/-/foo/bar.dat", dummy))

        result = runner.invoke(app, ["meta", "/-/foo/bar.dat", "-d", str(cache_root)])

        assert result.exit_code == 0
        assert "fresh" in result.output
        assert "31" in result.output
        assert "application/octet-stream" in result.output


class TestPutAndCat:
    """Tests for `regcache put` and `regcache cat`."""

    def test_put_then_cat(self, no_env: None, cache_root: Path, temp_dir: Path) -> None:
        source = temp_dir / "dummy.data"
        source.write_bytes(b"tarball bytes\x00\x01")

        put = runner.invoke(app, ["put", "/pkg/-/pkg-1.0.0.tgz", str(source), "-d", str(cache_root)])
        assert put.exit_code == 0
        assert Cache(path=cache_root, ttl=60).get_path("/pkg/-/pkg-1.0.0.tgz").full.exists()

        cat = runner.invoke(app, ["cat", "/pkg/-/pkg-1.0.0.tgz", "-d", str(cache_root)])
        assert cat.exit_code == 0
        assert cat.stdout_bytes == b"tarball bytes\x00\x01"

    def test_cat_missing_entry(self, no_env: None, cache_root: Path) -> None:
        result = runner.invoke(app, ["cat", "/missing.tgz", "-d", str(cache_root)])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestInfoCommands:
    """Tests for `regcache config` and `regcache version`."""

    def test_config_shows_settings(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "TTL_SECONDS" in result.output
        assert "60.0" in result.output

    def test_config_invalid(self, no_env: None) -> None:
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 1
        assert "REGCACHE_CACHE_DIR" in result.output

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output


async def _write(cache: Cache, key: str, data: bytes) -> None:
    await cache.write(key, data)
