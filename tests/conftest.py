"""
Pytest configuration and shared fixtures for lspkit tests.
"""

import hashlib
import io
import zipfile
from pathlib import Path
from typing import Callable, Dict

import pytest

from lspkit.core.interfaces import NotificationSink
from lspkit.core.platform import PlatformInfo
from lspkit.servers.identity import ArtifactSpec, ToolIdentity


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that spawn real processes"
    )


# ============================================================================
# Helpers
# ============================================================================


class RecordingSink(NotificationSink):
    """Notification sink that remembers every message."""

    def __init__(self):
        self.infos = []
        self.errors = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


def build_zip(files: Dict[str, bytes]) -> bytes:
    """Build an in-memory zip archive from a name -> content mapping."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def tool_archive() -> bytes:
    """Zip archive holding a 'Tool' executable at its root."""
    return build_zip({"Tool": b"#!/bin/sh\necho tool\n", "README.txt": b"docs"})


@pytest.fixture
def make_identity() -> Callable[..., ToolIdentity]:
    """Factory for a 'Tool' identity with a single linux-x64 artifact."""

    def factory(sha256: str = "0" * 64, **overrides) -> ToolIdentity:
        values = dict(
            name="Tool",
            version="3.0.20",
            repo_url="https://example.com/tool",
            artifacts={"linux-x64": ArtifactSpec("Tool.zip", sha256)},
            setup_url="https://example.com/tool/setup",
        )
        values.update(overrides)
        return ToolIdentity(**values)

    return factory


@pytest.fixture
def identity(make_identity, tool_archive) -> ToolIdentity:
    """Tool identity whose digest matches ``tool_archive``."""
    return make_identity(sha256=sha256_of(tool_archive))


@pytest.fixture
def linux_x64() -> PlatformInfo:
    return PlatformInfo("linux", "x64", "6.5.0")


@pytest.fixture
def windows_x64() -> PlatformInfo:
    return PlatformInfo("windows", "x64", "10.0.19041")


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    monkeypatch.delenv("LSPKIT_CACHE_DIR", raising=False)

    return fake_home


@pytest.fixture
def no_path(monkeypatch):
    """Empty PATH so executable lookups find nothing."""
    monkeypatch.setenv("PATH", "")


@pytest.fixture
def zip_builder() -> Callable[[Dict[str, bytes]], bytes]:
    return build_zip
