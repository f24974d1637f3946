"""
Value types describing a language server and where its binary came from.

A server is a row of data, not a subclass: its name, the release it pins,
and a table of per-platform archives with their SHA-256 digests.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

DEFAULT_URL_TEMPLATE = "{repo_url}/releases/download/v{version}/{filename}"
DEFAULT_LAUNCH_ARGS = ("--lsp",)


@dataclass(frozen=True)
class ArtifactSpec:
    """One downloadable archive for a specific platform."""

    filename: str
    """Archive file name; also the last path segment of the download URL"""

    sha256: str
    """Expected SHA-256 digest of the archive (hex)"""

    def __post_init__(self):
        if not self.filename:
            raise ValueError("Artifact filename cannot be empty")
        if not self.sha256:
            raise ValueError("Artifact SHA256 cannot be empty")


@dataclass(frozen=True)
class DownloadDescriptor:
    """Everything needed to fetch and install one artifact."""

    tool_name: str
    executable_name: str
    url: str
    sha256: str
    filename: str
    platform: str


@dataclass(frozen=True)
class ToolIdentity:
    """
    Immutable description of a language server release.

    Attributes:
        name: Server name; also the cache subdirectory and executable stem
        version: Release version without a leading 'v' (e.g., '2.1')
        repo_url: Project URL used to build download URLs
        artifacts: Mapping of '<os>-<arch>' to ArtifactSpec
        launch_args: Arguments that make the server speak LSP over stdio
        setup_url: Manual installation instructions for unsupported hosts
        url_template: Format string for download URLs
        label: Human-readable server description
    """

    name: str
    version: str
    repo_url: str = ""
    artifacts: Mapping[str, ArtifactSpec] = field(default_factory=dict, hash=False)
    launch_args: Tuple[str, ...] = DEFAULT_LAUNCH_ARGS
    setup_url: Optional[str] = None
    url_template: str = DEFAULT_URL_TEMPLATE
    label: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("Server name cannot be empty")
        if not self.version:
            raise ValueError("Server version cannot be empty")
        if self.version.startswith("v"):
            raise ValueError(f"Version must not carry a 'v' prefix: {self.version}")
        # Freeze the table so a shared identity cannot be mutated
        object.__setattr__(self, "artifacts", MappingProxyType(dict(self.artifacts)))
        object.__setattr__(self, "launch_args", tuple(self.launch_args))

    @property
    def display_name(self) -> str:
        return self.label or f"Language Server ({self.name})"

    def supports_system(self, os_name: str, arch: str) -> bool:
        """
        True if a download exists for ``os_name``/``arch``.

        The supported set is the artifact table's key set, so every
        supported platform has an artifact by construction.
        """
        return f"{os_name}-{arch}" in self.artifacts

    def requires_manual_setup(self, os_name: str, arch: str) -> bool:
        return not self.supports_system(os_name, arch)

    def supported_platforms(self) -> list[str]:
        return sorted(self.artifacts)

    def executable_name(self, os_name: str) -> str:
        """Executable file name on ``os_name`` ('.exe' suffix on Windows)."""
        return f"{self.name}.exe" if os_name == "windows" else self.name

    def download_url(self, artifact: ArtifactSpec) -> str:
        return self.url_template.format(
            repo_url=self.repo_url.rstrip("/"),
            version=self.version,
            filename=artifact.filename,
            name=self.name,
        )


class Provenance(Enum):
    """Where a resolved binary was found."""

    CONFIGURED = "configured"
    FOUND_IN_CACHE = "found-in-cache"
    FOUND_ON_SYSTEM = "found-on-system"
    FRESHLY_INSTALLED = "freshly-installed"


@dataclass(frozen=True)
class ResolvedBinary:
    """A located executable and how it was located."""

    path: Path
    provenance: Provenance

    def __str__(self) -> str:
        return f"{self.path} ({self.provenance.value})"
