"""
Directory structure management for lspkit.

This module resolves the installation cache root and the per-server
directories inside it.

Directory Structure:
    Cache root (~/.lspkit/servers/ or %USERPROFILE%\\.lspkit\\servers\\):
        - <server name>/  : The single installed copy of that server
        - .locks/         : Cross-process install locks
"""

import os
from pathlib import Path
from typing import Optional, Union

from lspkit.core.exceptions import CacheWriteError, ConfigError

CACHE_DIR_ENV = "LSPKIT_CACHE_DIR"
LOCK_DIR_NAME = ".locks"


def get_global_cache_dir() -> Path:
    """
    Get the platform-specific lspkit home directory.

    Returns:
        Path: The lspkit home directory.
            - Windows: %USERPROFILE%\\.lspkit
            - Linux/macOS: ~/.lspkit/
    """
    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine global cache directory."
            )
        return Path(user_profile) / ".lspkit"
    return Path.home() / ".lspkit"


def get_server_cache_dir(override: Optional[Union[str, Path]] = None) -> Path:
    """
    Get the installation cache root.

    Precedence: explicit ``override``, then ``$LSPKIT_CACHE_DIR``, then
    ``<global cache dir>/servers``.

    Example:
        >>> get_server_cache_dir("/tmp/lsp-cache")
        PosixPath('/tmp/lsp-cache')
    """
    if override:
        return Path(override).expanduser()

    env_value = os.environ.get(CACHE_DIR_ENV)
    if env_value:
        return Path(env_value).expanduser()

    return get_global_cache_dir() / "servers"


def get_tool_dir(cache_dir: Path, tool_name: str) -> Path:
    """Directory holding the installed copy of ``tool_name``."""
    return Path(cache_dir) / tool_name


def get_lock_dir(cache_dir: Path) -> Path:
    """Directory holding lock files; never a tool directory."""
    return Path(cache_dir) / LOCK_DIR_NAME


def ensure_cache_structure(cache_dir: Path) -> Path:
    """
    Create the cache root and its lock directory if they don't exist.

    Raises:
        CacheWriteError: If the directories cannot be created
    """
    cache_dir = Path(cache_dir)
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        get_lock_dir(cache_dir).mkdir(exist_ok=True)
    except OSError as e:
        raise CacheWriteError(f"Failed to create cache directory {cache_dir}: {e}") from e
    return cache_dir


def list_installed_tools(cache_dir: Path) -> list[str]:
    """
    List the tool directories present under the cache root.

    Hidden entries (lock directory, staging directories) are skipped.
    """
    cache_dir = Path(cache_dir)
    if not cache_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in cache_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )


def verify_directory_writable(path: Path) -> bool:
    """
    Verify that a directory exists and is writable.

    Example:
        >>> if verify_directory_writable(Path('/tmp/test')):
        ...     print("Directory is writable")
    """
    if not path.exists():
        return False

    if not path.is_dir():
        return False

    try:
        test_file = path / ".write_test"
        test_file.touch()
        test_file.unlink()
        return True
    except OSError:
        return False


__all__ = [
    "CACHE_DIR_ENV",
    "get_global_cache_dir",
    "get_server_cache_dir",
    "get_tool_dir",
    "get_lock_dir",
    "ensure_cache_structure",
    "list_installed_tools",
    "verify_directory_writable",
]
