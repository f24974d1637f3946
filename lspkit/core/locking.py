"""
Concurrent access control for lspkit.

Several editors (or several lspkit processes) may share one installation
cache. This module serialises installs of the same server across processes
with file-based locks.

Usage:
    from lspkit.core.locking import LockManager

    lock_manager = LockManager(cache_dir / ".locks")
    with lock_manager.install_lock("Swift-MesonLSP"):
        # Safe to wipe and repopulate the server directory
        pass
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from lspkit.core.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages install locks for lspkit servers.

    Uses file-based locking with the `filelock` library for cross-platform
    compatibility and automatic cleanup on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)

    @contextmanager
    def install_lock(self, tool_name: str, timeout: int = 300):
        """
        Acquire the install lock for one server.

        Args:
            tool_name: Server name (e.g., 'Swift-MesonLSP')
            timeout: Maximum wait time in seconds (default: 300 for long downloads)

        Raises:
            LockTimeoutError: If lock can't be acquired within timeout
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        safe_name = tool_name.replace("/", "-").replace("\\", "-").replace(":", "-")
        lock_path = self.lock_dir / f"{safe_name}.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired install lock: {lock_path}")
                yield
                logger.debug(f"Released install lock: {lock_path}")
        except Timeout as e:
            logger.error(
                f"Could not acquire install lock for {tool_name} after {timeout}s. "
                "Another process may be installing this server."
            )
            raise LockTimeoutError(
                f"Could not acquire install lock for {tool_name} after {timeout}s. "
                "Another process may be installing this server."
            ) from e

    def cleanup_stale_locks(self, max_age_hours: int = 24) -> int:
        """
        Remove lock files older than max_age_hours.

        Returns:
            Number of stale locks removed
        """
        if not self.lock_dir.exists():
            return 0

        current_time = time.time()
        removed_count = 0

        for lock_file in self.lock_dir.glob("*.lock"):
            try:
                age_hours = (current_time - lock_file.stat().st_mtime) / 3600

                if age_hours > max_age_hours:
                    lock_file.unlink()
                    logger.info(f"Removed stale lock file: {lock_file}")
                    removed_count += 1
            except OSError as e:
                # Lock may be in use or already deleted
                logger.debug(f"Could not remove lock {lock_file}: {e}")

        return removed_count
