"""
Cleanup command implementation.

Removes installed servers and stale lock files from the installation cache.
"""

import logging

from lspkit.cli.utils import load_command_settings
from lspkit.core.directory import get_lock_dir, get_server_cache_dir, list_installed_tools
from lspkit.core.filesystem import safe_rmtree
from lspkit.core.locking import LockManager

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the cleanup command.

    Without ``--server`` or ``--all`` only stale lock files are removed.

    Returns:
        Exit code (0 for success, 1 if the named server is not installed)
    """
    settings = load_command_settings(args)
    cache_dir = get_server_cache_dir(settings.cache_dir)
    lock_manager = LockManager(get_lock_dir(cache_dir))

    installed = list_installed_tools(cache_dir)
    if args.all:
        targets = installed
    elif args.server:
        if args.server not in installed:
            logger.error(f"{args.server} is not installed in {cache_dir}")
            return 1
        targets = [args.server]
    else:
        targets = []

    for name in targets:
        tool_dir = cache_dir / name
        if args.dry_run:
            print(f"Would remove {tool_dir}")
            continue
        with lock_manager.install_lock(name):
            safe_rmtree(tool_dir, require_prefix=cache_dir)
        print(f"Removed {tool_dir}")

    if not args.dry_run:
        removed = lock_manager.cleanup_stale_locks()
        if removed:
            logger.info(f"Removed {removed} stale lock file(s)")

    if not targets:
        logger.info("No servers to remove")
    return 0
