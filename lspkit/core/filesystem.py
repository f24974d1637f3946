"""
Cross-platform file system utilities for lspkit.

This module provides the file operations the installer relies on:
- Archive extraction (zip, tar.gz, tar.xz, tar.bz2) with traversal checks
- Safe directory removal restricted to a required prefix
- Executable lookup on PATH and permission fixing
- Chunked file hashing
- Temporary files with guaranteed cleanup
"""

import hashlib
import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from lspkit.core.exceptions import CacheWriteError, ExtractionError

IS_WINDOWS = os.name == "nt"

EXECUTABLE_MODE = 0o755


class UnsupportedArchiveFormat(ExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def find_executable(
    name: str, search_paths: Optional[list[Path]] = None
) -> Optional[Path]:
    """
    Find an executable in the system PATH or provided search paths.

    Args:
        name: Executable name (e.g., 'Swift-MesonLSP', 'clangd')
        search_paths: Optional list of directories to search

    Returns:
        Path to executable if found, None otherwise

    Example:
        >>> find_executable('python3')
        PosixPath('/usr/bin/python3')
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if search_paths is None:
        path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    for directory in search_paths:
        for ext in extensions:
            exe_path = Path(directory) / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


def make_executable(path: Union[str, Path]) -> None:
    """
    Set ``0o755`` on ``path``. No-op on Windows.

    Raises:
        CacheWriteError: If the permission change fails
    """
    if IS_WINDOWS:
        return
    try:
        os.chmod(path, EXECUTABLE_MODE)
    except OSError as e:
        raise CacheWriteError(f"Failed to mark {path} executable: {e}") from e


def is_executable_file(path: Union[str, Path]) -> bool:
    """True if ``path`` is a regular file the current user may execute."""
    path = Path(path)
    if not path.is_file():
        return False
    if IS_WINDOWS:
        return True
    return bool(path.stat().st_mode & stat.S_IXUSR)


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    Supported formats:
    - .zip
    - .tar.gz, .tgz
    - .tar.xz
    - .tar.bz2, .tbz2

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        progress_callback: Optional callback(current, total) for progress

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        InsecureArchiveError: If archive contains malicious paths
        ExtractionError: If extraction fails for any other reason

    Example:
        >>> extract_archive('Swift-MesonLSP-macos12.zip', '/tmp/server')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ExtractionError(f"Archive not found: {archive_path}")

    archive_name = archive_path.name.lower()

    try:
        destination.mkdir(parents=True, exist_ok=True)
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination, progress_callback)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz", progress_callback)
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz", progress_callback)
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2", progress_callback)
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                "Supported: .zip, .tar.gz, .tar.xz, .tar.bz2"
            )
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.namelist()
        total = len(members)

        for member in members:
            _validate_archive_path(member, destination)

        for i, member in enumerate(members):
            zf.extract(member, destination)
            if progress_callback:
                progress_callback(i + 1, total)


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        total = len(members)

        for member in members:
            _validate_archive_path(member.name, destination)

        # Paths were validated above for interpreters without extraction filters
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)

        if progress_callback:
            progress_callback(total, total)


# ============================================================================
# Safe File Operations
# ============================================================================


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Missing directories are not an error.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        CacheWriteError: If path is not under require_prefix or deletion fails

    Example:
        >>> safe_rmtree('~/.lspkit/servers/clangd', require_prefix='~/.lspkit')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise CacheWriteError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise CacheWriteError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise CacheWriteError(f"Failed to remove directory '{path}': {e}") from e


# ============================================================================
# File Hashing
# ============================================================================


def compute_file_hash(
    file_path: Union[str, Path], algorithm: str = "sha256", chunk_size: int = 8192
) -> str:
    """
    Compute hash of a file, reading it in chunks.

    Returns:
        Lowercase hex digest

    Example:
        >>> compute_file_hash('Swift-MesonLSP-win64.zip')
        '093ab6be...'
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()


# ============================================================================
# Temporary Files
# ============================================================================


@contextmanager
def temporary_file(prefix: str = "lspkit-", suffix: str = "") -> Iterator[Path]:
    """
    Context manager yielding a fresh temporary file path in the system temp dir.

    The file is removed on exit whether or not the body raised.

    Raises:
        CacheWriteError: If the temporary file cannot be created

    Example:
        >>> with temporary_file(suffix=".zip") as tmp:
        ...     tmp.write_bytes(b"...")
    """
    try:
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix)
    except OSError as e:
        raise CacheWriteError(f"Failed to create a temporary file: {e}") from e
    os.close(fd)
    path = Path(name)

    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


__all__ = [
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "is_relative_to",
    "find_executable",
    "make_executable",
    "is_executable_file",
    "extract_archive",
    "safe_rmtree",
    "compute_file_hash",
    "temporary_file",
]
