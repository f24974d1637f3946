"""
Unit tests for the locking module.

Tests cover:
- Lock acquisition and release
- Timeout behavior
- Stale lock cleanup
"""

import os
import time

import pytest
from filelock import FileLock

from lspkit.core.exceptions import LockTimeoutError
from lspkit.core.locking import LockManager


class TestInstallLock:
    """Tests for LockManager.install_lock."""

    def test_acquire_and_release(self, tmp_path):
        manager = LockManager(tmp_path / "locks")

        with manager.install_lock("Tool", timeout=5):
            assert (tmp_path / "locks" / "Tool.lock").exists()

        # Released: a second acquisition succeeds immediately
        with manager.install_lock("Tool", timeout=0):
            pass

    def test_sanitizes_name(self, tmp_path):
        manager = LockManager(tmp_path)

        with manager.install_lock("org/Tool:1", timeout=5):
            assert (tmp_path / "org-Tool-1.lock").exists()

    def test_timeout_raises(self, tmp_path):
        """Test a held lock times out with LockTimeoutError."""
        manager = LockManager(tmp_path)
        holder = FileLock(tmp_path / "Tool.lock")

        with holder:
            with pytest.raises(LockTimeoutError, match="Tool"):
                with manager.install_lock("Tool", timeout=0.1):
                    pass

    def test_released_on_exception(self, tmp_path):
        manager = LockManager(tmp_path)

        with pytest.raises(RuntimeError):
            with manager.install_lock("Tool", timeout=5):
                raise RuntimeError("boom")

        with manager.install_lock("Tool", timeout=0):
            pass


class TestCleanupStaleLocks:
    def test_removes_only_old_locks(self, tmp_path):
        manager = LockManager(tmp_path)
        old = tmp_path / "Old.lock"
        new = tmp_path / "New.lock"
        old.write_text("")
        new.write_text("")
        two_days_ago = time.time() - 48 * 3600
        os.utime(old, (two_days_ago, two_days_ago))

        assert manager.cleanup_stale_locks(max_age_hours=24) == 1
        assert not old.exists()
        assert new.exists()

    def test_missing_lock_dir(self, tmp_path):
        assert LockManager(tmp_path / "missing").cleanup_stale_locks() == 0
