"""
Artifact resolution and installation for language servers.

The resolver answers two questions about a ToolIdentity on the current
platform: is a usable binary already available locally, and if not, what must
be downloaded to obtain one. It also performs that download: fetch to a
temporary file, verify the SHA-256 digest, unpack into the installation
cache, and mark the binary executable.

Resolution order (first match wins):
    1. Explicit override path from configuration (no existence check)
    2. <cache dir>/<server name>/<executable> from a previous install
    3. The executable found on the system PATH

Example:
    >>> resolver = ArtifactResolver(get_server_cache_dir())
    >>> binary = resolver.resolve_local(identity)
    >>> if binary is None:
    ...     binary = resolver.install(identity)
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

import requests

from lspkit.core.directory import ensure_cache_structure, get_lock_dir, get_tool_dir
from lspkit.core.download import (
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT,
    ProgressCallback,
    download_file,
)
from lspkit.core.exceptions import (
    CacheWriteError,
    ExtractionError,
    FetchError,
    HashMismatchError,
    LockTimeoutError,
    UnsupportedPlatformError,
)
from lspkit.core.filesystem import (
    compute_file_hash,
    extract_archive,
    find_executable,
    make_executable,
    safe_rmtree,
    temporary_file,
)
from lspkit.core.interfaces import LoggingNotificationSink, NotificationSink
from lspkit.core.locking import LockManager
from lspkit.core.platform import PlatformInfo, detect_platform, parse_platform_string
from lspkit.servers.identity import (
    DownloadDescriptor,
    Provenance,
    ResolvedBinary,
    ToolIdentity,
)

logger = logging.getLogger(__name__)

ExecutableSearch = Callable[[str], Optional[Union[str, Path]]]


class ArtifactResolver:
    """
    Locate, download, verify and install language server binaries.

    Each call is a fresh computation; the resolver keeps no memory of
    previous resolutions.
    """

    def __init__(
        self,
        cache_dir: Path,
        platform: Optional[PlatformInfo] = None,
        notifier: Optional[NotificationSink] = None,
        which: Optional[ExecutableSearch] = None,
        lock_manager: Optional[LockManager] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        progress_callback: Optional[ProgressCallback] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize resolver.

        Args:
            cache_dir: Installation cache root
            platform: Platform information (auto-detected if None)
            notifier: Operator message sink (logging if None)
            which: Executable search used for PATH lookup
            lock_manager: Install lock provider (lock files under <cache_dir>/.locks)
            timeout: Download timeout in seconds
            max_redirects: Redirect hops a download may follow
            progress_callback: Optional download progress callback
            session: Optional requests session for downloads
        """
        self.cache_dir = Path(cache_dir)
        self.platform = platform or detect_platform()
        self.notifier = notifier or LoggingNotificationSink()
        self.which = which or find_executable
        self.lock_manager = lock_manager or LockManager(get_lock_dir(self.cache_dir))
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.progress_callback = progress_callback
        self.session = session

    # ------------------------------------------------------------------
    # Platform gating
    # ------------------------------------------------------------------

    def supports_system(
        self,
        identity: ToolIdentity,
        os_name: Optional[str] = None,
        arch: Optional[str] = None,
    ) -> bool:
        """Check whether ``identity`` ships a download for the given (or current) platform."""
        return identity.supports_system(
            os_name or self.platform.os, arch or self.platform.arch
        )

    # ------------------------------------------------------------------
    # Local resolution
    # ------------------------------------------------------------------

    def tool_dir(self, identity: ToolIdentity) -> Path:
        return get_tool_dir(self.cache_dir, identity.name)

    def resolve_cached(self, identity: ToolIdentity) -> Optional[ResolvedBinary]:
        """Return the binary installed in the cache, if any."""
        binary = self.tool_dir(identity) / identity.executable_name(self.platform.os)
        if binary.is_file():
            return ResolvedBinary(binary, Provenance.FOUND_IN_CACHE)
        return None

    def resolve_local(
        self,
        identity: ToolIdentity,
        override_path: Optional[Union[str, Path]] = None,
    ) -> Optional[ResolvedBinary]:
        """
        Find a usable binary without downloading anything.

        An override path is returned as-is; if it does not exist the failure
        surfaces when the process is spawned.

        Returns:
            ResolvedBinary, or None when no strategy found a binary
        """
        if override_path:
            path = Path(override_path).expanduser()
            logger.debug(f"Using configured language server path: {path}")
            return ResolvedBinary(path, Provenance.CONFIGURED)

        cached = self.resolve_cached(identity)
        if cached is not None:
            logger.debug(f"Found {identity.name} in cache: {cached.path}")
            return cached

        found = self.which(identity.name)
        if found:
            logger.debug(f"Found {identity.name} on PATH: {found}")
            return ResolvedBinary(Path(found), Provenance.FOUND_ON_SYSTEM)

        logger.debug(f"No local binary for {identity.name}")
        return None

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def artifact_for(
        self,
        identity: ToolIdentity,
        os_name: Optional[str] = None,
        arch: Optional[str] = None,
    ) -> Optional[DownloadDescriptor]:
        """
        Compute the download for ``identity`` on the given (or current) platform.

        Returns:
            DownloadDescriptor, or None if the platform cannot be auto-installed
        """
        os_name = os_name or self.platform.os
        arch = arch or self.platform.arch
        platform_key = f"{os_name}-{arch}"

        artifact = identity.artifacts.get(platform_key)
        if artifact is None:
            return None

        return DownloadDescriptor(
            tool_name=identity.name,
            executable_name=identity.executable_name(os_name),
            url=identity.download_url(artifact),
            sha256=artifact.sha256,
            filename=artifact.filename,
            platform=platform_key,
        )

    def install(self, identity: ToolIdentity) -> ResolvedBinary:
        """
        Download and install ``identity`` for the current platform.

        Raises:
            UnsupportedPlatformError: Before any I/O, if no artifact exists
            FetchError: If any fetch/verify/install step fails
        """
        descriptor = self.artifact_for(identity)
        if descriptor is None:
            error = UnsupportedPlatformError(
                identity.name, self.platform.platform_string()
            )
            self.notifier.error(str(error))
            raise error
        return self.fetch_and_install(descriptor)

    def fetch_and_install(self, descriptor: DownloadDescriptor) -> ResolvedBinary:
        """
        Fetch, verify and install one artifact into the cache.

        Steps (each failure aborts the rest):
            1. Remove and recreate <cache>/<tool>
            2. Download to a temporary file outside the cache
            3. SHA-256 the temporary file
            4. Compare against the expected digest (case-insensitive)
            5. Extract into a staging directory, chmod 0755, swap into place
            6. Delete the temporary file (always)

        A failure leaves <cache>/<tool> empty.

        Raises:
            NetworkError: Server unreachable, HTTP error, or too many redirects
            HashMismatchError: Digest of the download differs from the expected one
            ExtractionError: Archive corrupt or missing the executable
            CacheWriteError: Disk write failed
            LockTimeoutError: Another process holds the install lock
        """
        tool_dir = get_tool_dir(self.cache_dir, descriptor.tool_name)
        logger.info(
            f"Installing {descriptor.tool_name} ({descriptor.platform}) to {tool_dir}"
        )

        try:
            ensure_cache_structure(self.cache_dir)
            with self.lock_manager.install_lock(descriptor.tool_name):
                self._reset_tool_dir(tool_dir)
                with temporary_file(
                    prefix=f"lspkit-{descriptor.tool_name}-",
                    suffix=f"-{descriptor.filename}",
                ) as archive:
                    download_file(
                        descriptor.url,
                        archive,
                        progress_callback=self.progress_callback,
                        timeout=self.timeout,
                        max_redirects=self.max_redirects,
                        session=self.session,
                    )
                    self._verify_digest(archive, descriptor)
                    binary = self._unpack(archive, descriptor, tool_dir)
        except (FetchError, LockTimeoutError) as e:
            logger.error(f"Failed to install {descriptor.tool_name}: {e}")
            self.notifier.error(str(e))
            raise

        self.notifier.info(f"Language server was downloaded: {descriptor.tool_name}")
        return ResolvedBinary(binary, Provenance.FRESHLY_INSTALLED)

    def uninstall(self, identity: ToolIdentity) -> bool:
        """
        Remove the cached installation of ``identity``.

        Returns:
            True if something was removed
        """
        tool_dir = self.tool_dir(identity)
        if not tool_dir.exists():
            return False
        with self.lock_manager.install_lock(identity.name):
            safe_rmtree(tool_dir, require_prefix=self.cache_dir)
        logger.info(f"Removed {tool_dir}")
        return True

    # ------------------------------------------------------------------
    # Install steps
    # ------------------------------------------------------------------

    def _reset_tool_dir(self, tool_dir: Path) -> None:
        safe_rmtree(tool_dir, require_prefix=self.cache_dir)
        try:
            tool_dir.mkdir(parents=True)
        except OSError as e:
            raise CacheWriteError(f"Failed to create {tool_dir}: {e}") from e

    def _verify_digest(self, archive: Path, descriptor: DownloadDescriptor) -> None:
        try:
            actual = compute_file_hash(archive, "sha256")
        except OSError as e:
            raise CacheWriteError(f"Failed to read downloaded file {archive}: {e}") from e

        if actual.lower() != descriptor.sha256.lower():
            raise HashMismatchError(descriptor.sha256, actual, descriptor.filename)
        logger.info("Checksum verified successfully")

    def _unpack(
        self, archive: Path, descriptor: DownloadDescriptor, tool_dir: Path
    ) -> Path:
        """Extract beside the tool directory, then swap the result into place."""
        staging_dir = self.cache_dir / f".{descriptor.tool_name}.staging"
        safe_rmtree(staging_dir, require_prefix=self.cache_dir)

        try:
            extract_archive(archive, staging_dir)

            staged_binary = staging_dir / descriptor.executable_name
            if not staged_binary.is_file():
                raise ExtractionError(
                    f"Archive {descriptor.filename} does not contain "
                    f"{descriptor.executable_name}"
                )

            os_name, _ = parse_platform_string(descriptor.platform)
            if os_name != "windows":
                make_executable(staged_binary)

            try:
                tool_dir.rmdir()
                staging_dir.rename(tool_dir)
            except OSError as e:
                raise CacheWriteError(
                    f"Failed to move {staging_dir} to {tool_dir}: {e}"
                ) from e
        finally:
            safe_rmtree(staging_dir, require_prefix=self.cache_dir)
            tool_dir.mkdir(parents=True, exist_ok=True)

        return tool_dir / descriptor.executable_name
