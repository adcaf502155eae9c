"""Tests for the per-package advisory lock."""

import pytest

from giggler.core.errors import AlreadyInProgressError
from giggler.core.locking import PackageLock


class TestPackageLock:
    def test_acquire_and_release(self, config):
        lock = PackageLock("foo", config.lock_path("foo"))
        lock.acquire()
        assert lock.held is True
        assert config.lock_path("foo").exists()
        lock.release()
        assert lock.held is False

    def test_contention_fails_immediately(self, config):
        with PackageLock("foo", config.lock_path("foo")):
            with pytest.raises(AlreadyInProgressError, match="foo"):
                PackageLock("foo", config.lock_path("foo")).acquire()

    def test_reacquire_after_release(self, config):
        with PackageLock("foo", config.lock_path("foo")):
            pass
        with PackageLock("foo", config.lock_path("foo")) as lock:
            assert lock.held

    def test_locks_are_per_package(self, config):
        with PackageLock("foo", config.lock_path("foo")):
            with PackageLock("bar", config.lock_path("bar")) as other:
                assert other.held

    def test_release_without_acquire_is_noop(self, config):
        PackageLock("foo", config.lock_path("foo")).release()
