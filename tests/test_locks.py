"""
Tests for the per-key lock table.
"""

from __future__ import annotations

import threading

import pytest

from regcache.cache.locks import LockTable
from regcache.exceptions import EntryLockedError


class TestLockTable:
    """Tests for acquire/release semantics."""

    def test_acquire_and_release(self) -> None:
        locks = LockTable()

        assert locks.acquire("/a.tgz") is True
        assert locks.is_locked("/a.tgz")
        assert "/a.tgz" in locks
        assert len(locks) == 1

        locks.release("/a.tgz")

        assert not locks.is_locked("/a.tgz")
        assert len(locks) == 0

    def test_second_acquire_fails(self) -> None:
        locks = LockTable()

        assert locks.acquire("/a.tgz") is True
        assert locks.acquire("/a.tgz") is False

    def test_keys_are_independent(self) -> None:
        locks = LockTable()

        assert locks.acquire("/a.tgz")
        assert locks.acquire("/b.tgz")
        assert sorted(locks.held()) == ["/a.tgz", "/b.tgz"]

    def test_release_unheld_key_is_noop(self) -> None:
        locks = LockTable()
        locks.release("/never.tgz")
        assert len(locks) == 0

    def test_reacquire_after_release(self) -> None:
        locks = LockTable()
        locks.acquire("/a.tgz")
        locks.release("/a.tgz")

        assert locks.acquire("/a.tgz") is True

    def test_get_returns_marker(self) -> None:
        locks = LockTable()
        locks.acquire("/a.tgz")

        marker = locks.get("/a.tgz")
        assert marker is not None
        assert marker.key == "/a.tgz"
        assert marker.held_for >= 0
        assert locks.get("/b.tgz") is None


class TestHold:
    """Tests for the hold() context manager."""

    def test_hold_releases_on_exit(self) -> None:
        locks = LockTable()

        with locks.hold("/a.tgz") as marker:
            assert marker.key == "/a.tgz"
            assert locks.is_locked("/a.tgz")

        assert not locks.is_locked("/a.tgz")

    def test_hold_releases_on_error(self) -> None:
        locks = LockTable()

        with pytest.raises(ValueError):
            with locks.hold("/a.tgz"):
                raise ValueError("boom")

        assert not locks.is_locked("/a.tgz")

    def test_hold_raises_when_locked(self) -> None:
        locks = LockTable()
        locks.acquire("/a.tgz")

        with pytest.raises(EntryLockedError) as exc_info:
            with locks.hold("/a.tgz"):
                pass

        assert exc_info.value.context["key"] == "/a.tgz"
        # The first holder keeps its lock
        assert locks.is_locked("/a.tgz")

    def test_locked_error_names_caller_key(self) -> None:
        locks = LockTable()
        locks.acquire("0/3/e/03e80b5c.tgz")

        error = locks.locked_error("0/3/e/03e80b5c.tgz", key="/foo/bar/baz.tgz")

        assert error.context["key"] == "/foo/bar/baz.tgz"
        assert error.context["entry"] == "0/3/e/03e80b5c.tgz"
        assert error.context["held_for"] >= 0


class TestThreadSafety:
    """Tests for concurrent acquisition from threads."""

    def test_only_one_thread_wins(self) -> None:
        locks = LockTable()
        barrier = threading.Barrier(16)
        results: list[bool] = []
        results_lock = threading.Lock()

        def contend() -> None:
            barrier.wait()
            won = locks.acquire("/contended.tgz")
            with results_lock:
                results.append(won)

        threads = [threading.Thread(target=contend) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == 15
