"""
Unit tests for download module.

Tests download functionality with mocked network requests.
"""

import pytest
import requests
import responses

from lspkit.core.download import (
    DownloadProgress,
    create_session,
    download_file,
    format_progress,
)
from lspkit.core.exceptions import (
    FetchError,
    NetworkError,
    TooManyRedirectsError,
)

BASE = "https://example.com"


def add_redirect_chain(hops: int, final_body: bytes = b"payload") -> str:
    """Register ``hops`` chained 302s ending in a 200; return the first URL."""
    for i in range(hops):
        responses.add(
            responses.GET,
            f"{BASE}/hop{i}",
            status=302,
            headers={"Location": f"{BASE}/hop{i + 1}"},
        )
    responses.add(responses.GET, f"{BASE}/hop{hops}", body=final_body, status=200)
    return f"{BASE}/hop0"


class TestDownloadProgress:
    """Test DownloadProgress dataclass."""

    def test_progress_to_string(self):
        """Test progress string representation."""
        progress = DownloadProgress(
            bytes_downloaded=52428800,  # 50 MB
            total_bytes=104857600,  # 100 MB
            percentage=50.0,
            speed_bps=1048576,  # 1 MB/s
            eta_seconds=50,
        )

        result = str(progress)

        assert "50.0/100.0 MB" in result
        assert "50.0%" in result
        assert "1.0 MB/s" in result
        assert "ETA: 50s" in result


class TestFormatProgress:
    """Test format_progress function."""

    def test_format_with_known_size(self):
        progress = DownloadProgress(
            bytes_downloaded=10485760,
            total_bytes=104857600,
            percentage=10.0,
            speed_bps=2097152,
            eta_seconds=45,
        )

        result = format_progress(progress)

        assert "10.0/100.0 MB" in result
        assert "(10.0%)" in result
        assert "2.0 MB/s" in result
        assert "ETA: 45s" in result

    def test_format_with_unknown_size(self):
        """Test formatting progress with unknown total size."""
        progress = DownloadProgress(
            bytes_downloaded=10485760,
            total_bytes=0,
            percentage=0.0,
            speed_bps=1048576,
            eta_seconds=0,
        )

        result = format_progress(progress)

        assert "10.0 MB" in result
        assert "1.0 MB/s" in result
        assert "ETA" not in result


class TestCreateSession:
    def test_redirect_limit(self):
        session = create_session(max_redirects=3)
        assert isinstance(session, requests.Session)
        assert session.max_redirects == 3


class TestDownloadFile:
    """Test download_file function."""

    @responses.activate
    def test_successful_download(self, tmp_path):
        """Test the body is written to the destination."""
        responses.add(responses.GET, f"{BASE}/file.zip", body=b"archive bytes", status=200)
        dest = tmp_path / "file.zip"

        result = download_file(f"{BASE}/file.zip", dest)

        assert result == dest
        assert dest.read_bytes() == b"archive bytes"

    @responses.activate
    def test_overwrites_existing_destination(self, tmp_path):
        responses.add(responses.GET, f"{BASE}/file.zip", body=b"new", status=200)
        dest = tmp_path / "file.zip"
        dest.write_bytes(b"old content that is longer")

        download_file(f"{BASE}/file.zip", dest)

        assert dest.read_bytes() == b"new"

    @responses.activate
    def test_follows_three_redirects(self, tmp_path):
        """Test a short redirect chain is followed to the final body."""
        url = add_redirect_chain(3, final_body=b"redirected")
        dest = tmp_path / "file.zip"

        download_file(url, dest)

        assert dest.read_bytes() == b"redirected"
        assert len(responses.calls) == 4

    @responses.activate
    def test_follows_exactly_max_redirects(self, tmp_path):
        url = add_redirect_chain(10)
        dest = tmp_path / "file.zip"

        download_file(url, dest, max_redirects=10)

        assert dest.read_bytes() == b"payload"

    @responses.activate
    def test_too_many_redirects(self, tmp_path):
        """Test a chain longer than the bound fails with a typed error."""
        url = add_redirect_chain(11)
        dest = tmp_path / "file.zip"

        with pytest.raises(TooManyRedirectsError) as exc_info:
            download_file(url, dest, max_redirects=10)

        assert exc_info.value.max_redirects == 10
        assert isinstance(exc_info.value, NetworkError)
        assert not dest.exists()

    @responses.activate
    def test_http_404_raises_network_error(self, tmp_path):
        """Test HTTP error statuses raise NetworkError."""
        responses.add(responses.GET, f"{BASE}/missing.zip", status=404)
        dest = tmp_path / "missing.zip"

        with pytest.raises(NetworkError, match="404"):
            download_file(f"{BASE}/missing.zip", dest)

        assert not dest.exists()

    @responses.activate
    def test_http_500_raises_network_error(self, tmp_path):
        responses.add(responses.GET, f"{BASE}/broken.zip", status=500)

        with pytest.raises(FetchError):
            download_file(f"{BASE}/broken.zip", tmp_path / "broken.zip")

    @responses.activate
    def test_connection_error_raises_network_error(self, tmp_path):
        """Test an unreachable server raises NetworkError."""
        responses.add(
            responses.GET,
            f"{BASE}/file.zip",
            body=requests.exceptions.ConnectionError("connection refused"),
        )

        with pytest.raises(NetworkError, match="Could not reach server"):
            download_file(f"{BASE}/file.zip", tmp_path / "file.zip")

    @responses.activate
    def test_timeout_raises_network_error(self, tmp_path):
        responses.add(
            responses.GET,
            f"{BASE}/file.zip",
            body=requests.exceptions.Timeout("timed out"),
        )

        with pytest.raises(NetworkError):
            download_file(f"{BASE}/file.zip", tmp_path / "file.zip", timeout=1)

    @responses.activate
    def test_progress_callback_reports_completion(self, tmp_path):
        """Test progress is reported once the full body arrives."""
        body = b"x" * 20000
        responses.add(
            responses.GET,
            f"{BASE}/file.zip",
            body=body,
            status=200,
            headers={"content-length": str(len(body))},
        )
        updates = []

        download_file(f"{BASE}/file.zip", tmp_path / "file.zip", progress_callback=updates.append)

        assert updates
        final = updates[-1]
        assert final.bytes_downloaded == len(body)
        assert final.total_bytes == len(body)
        assert final.percentage == pytest.approx(100.0)

    def test_empty_url_raises(self, tmp_path):
        with pytest.raises(ValueError, match="URL cannot be empty"):
            download_file("", tmp_path / "file.zip")

    @responses.activate
    def test_uses_supplied_session(self, tmp_path):
        """Test a caller session's redirect limit applies."""
        url = add_redirect_chain(3)
        session = create_session(max_redirects=2)

        with pytest.raises(TooManyRedirectsError) as exc_info:
            download_file(url, tmp_path / "file.zip", session=session)

        assert exc_info.value.max_redirects == 2
