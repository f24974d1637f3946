"""
Network download manager with progress tracking and bounded redirects.

This module provides the streaming download used to fetch server artifacts:
- HTTP/HTTPS downloads with TLS verification
- Redirect following (301/302/...) capped at a fixed number of hops
- Progress reporting (bytes, percentage, speed, ETA)
- Timeout handling

Downloads are never retried here; callers decide whether to start over.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException, TooManyRedirects

from lspkit.core.exceptions import CacheWriteError, NetworkError, TooManyRedirectsError

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 10
DEFAULT_TIMEOUT = 30
CHUNK_SIZE = 8192


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        return format_progress(self)


ProgressCallback = Callable[[DownloadProgress], None]


def create_session(max_redirects: int = DEFAULT_MAX_REDIRECTS) -> requests.Session:
    """
    Create a requests session that follows at most ``max_redirects`` hops.

    Example:
        >>> session = create_session(max_redirects=5)
        >>> session.max_redirects
        5
    """
    session = requests.Session()
    session.max_redirects = max_redirects
    return session


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[ProgressCallback] = None,
    timeout: int = DEFAULT_TIMEOUT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Stream ``url`` into ``destination``.

    Args:
        url: URL to download from
        destination: Local path to save file (overwritten)
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_redirects: Maximum number of redirect hops to follow
        session: Optional session to reuse (its own redirect limit applies)

    Returns:
        Path to downloaded file

    Raises:
        TooManyRedirectsError: If the redirect chain exceeds ``max_redirects``
        NetworkError: If the server cannot be reached or answers with an error
        CacheWriteError: If writing the destination file fails
        ValueError: If URL or destination is invalid

    Example:
        >>> url = "https://github.com/JCWasmx86/Swift-MesonLSP/releases/download/v2.1/Swift-MesonLSP-win64.zip"
        >>> download_file(url, Path("/tmp/server.zip"))
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    owns_session = session is None
    if session is None:
        session = create_session(max_redirects)

    logger.info(f"Downloading from {url}")

    try:
        try:
            response = session.get(url, stream=True, timeout=timeout, allow_redirects=True)
        except TooManyRedirects as e:
            raise TooManyRedirectsError(url, session.max_redirects) from e
        except RequestException as e:
            raise NetworkError(f"Could not reach server for {url}: {e}") from e

        with response:
            if response.history:
                logger.debug(
                    f"Followed {len(response.history)} redirect(s) to {response.url}"
                )

            try:
                response.raise_for_status()
            except RequestException as e:
                raise NetworkError(f"Download failed for {url}: {e}") from e

            _stream_to_file(response, destination, progress_callback)

    except (NetworkError, CacheWriteError):
        destination.unlink(missing_ok=True)
        raise
    finally:
        if owns_session:
            session.close()

    logger.info(f"Download complete: {destination}")
    return destination


def _stream_to_file(
    response: requests.Response,
    destination: Path,
    progress_callback: Optional[ProgressCallback],
) -> None:
    """Write the response body to disk, reporting progress at most twice a second."""
    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    try:
        f = open(destination, "wb")
    except OSError as e:
        raise CacheWriteError(f"Error writing to file {destination}: {e}") from e

    with f:
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                try:
                    f.write(chunk)
                except OSError as e:
                    raise CacheWriteError(
                        f"Error writing to file {destination}: {e}"
                    ) from e
                downloaded += len(chunk)

                current_time = time.time()
                if progress_callback and (
                    current_time - last_progress_time >= 0.5
                    or downloaded == total_size
                ):
                    progress_callback(
                        _make_progress(downloaded, total_size, current_time - start_time)
                    )
                    last_progress_time = current_time
        except RequestException as e:
            raise NetworkError(f"Connection lost while downloading: {e}") from e


def _make_progress(downloaded: int, total_size: int, elapsed: float) -> DownloadProgress:
    speed = downloaded / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    eta = remaining / speed if speed > 0 else 0

    return DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size if total_size > 0 else downloaded,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=eta,
    )


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0 and progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    return f"{mb_downloaded:.1f} MB " f"at {speed_mbps:.1f} MB/s"
