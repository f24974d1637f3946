"""
Language server registry.

This module provides the table of known language servers with their pinned
release, per-platform archives and SHA-256 digests. Adding a server is adding
a row to the embedded ``servers.json`` (or to a caller-supplied file).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from lspkit.core.exceptions import RegistryError, UnknownServerError
from lspkit.servers.identity import (
    DEFAULT_LAUNCH_ARGS,
    DEFAULT_URL_TEMPLATE,
    ArtifactSpec,
    ToolIdentity,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "Swift-MesonLSP"


class ServerRegistry:
    """
    Registry of available language servers.

    Example:
        >>> registry = ServerRegistry()
        >>> identity = registry.get("Swift-MesonLSP")
        >>> identity.version
        '2.1'
    """

    def __init__(self, metadata_path: Optional[Path] = None):
        """
        Initialize server registry.

        Args:
            metadata_path: Optional path to a servers JSON file.
                          If None, uses the embedded servers.json

        Raises:
            RegistryError: If the file cannot be loaded or a row is invalid
        """
        self.metadata_path = metadata_path or self._get_default_metadata_path()
        self._servers = self._parse_servers(self._load_metadata())
        logger.debug(f"Loaded registry with {len(self._servers)} servers")

    def _get_default_metadata_path(self) -> Path:
        # Path relative to this module: ../data/servers.json
        return Path(__file__).parent.parent / "data" / "servers.json"

    def _load_metadata(self) -> Dict[str, Any]:
        if not self.metadata_path.exists():
            raise RegistryError(f"Server registry file not found: {self.metadata_path}")

        try:
            with open(self.metadata_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RegistryError(
                f"Invalid JSON in server registry: {e}\n" f"File: {self.metadata_path}"
            ) from e
        except OSError as e:
            raise RegistryError(
                f"Failed to load server registry: {e}\n" f"File: {self.metadata_path}"
            ) from e

        if not isinstance(data, dict) or "servers" not in data:
            raise RegistryError(
                f"Invalid registry structure: missing 'servers' key\n"
                f"File: {self.metadata_path}"
            )

        return data

    def _parse_servers(self, data: Dict[str, Any]) -> Dict[str, ToolIdentity]:
        servers = {}
        for name, row in data["servers"].items():
            try:
                servers[name] = identity_from_dict(name, row)
            except (KeyError, TypeError, ValueError) as e:
                raise RegistryError(f"Invalid registry entry for {name}: {e}") from e
        return servers

    def get(self, name: str) -> ToolIdentity:
        """
        Look up a server by name.

        Raises:
            UnknownServerError: If the server is not registered
        """
        try:
            return self._servers[name]
        except KeyError:
            raise UnknownServerError(name) from None

    def list_servers(self) -> List[str]:
        return sorted(self._servers)

    def __contains__(self, name: str) -> bool:
        return name in self._servers

    def __len__(self) -> int:
        return len(self._servers)


def identity_from_dict(name: str, row: Dict[str, Any]) -> ToolIdentity:
    """
    Build a ToolIdentity from one registry row.

    Example:
        >>> identity_from_dict("Tool", {
        ...     "version": "3.0.20",
        ...     "repo_url": "https://example.com/tool",
        ...     "artifacts": {"linux-x64": {"filename": "Tool.zip", "sha256": "aa"}},
        ... }).supported_platforms()
        ['linux-x64']
    """
    artifacts = {
        platform: ArtifactSpec(filename=spec["filename"], sha256=spec["sha256"])
        for platform, spec in row.get("artifacts", {}).items()
    }
    return ToolIdentity(
        name=name,
        version=str(row["version"]),
        repo_url=row.get("repo_url", ""),
        artifacts=artifacts,
        launch_args=tuple(row.get("launch_args", DEFAULT_LAUNCH_ARGS)),
        setup_url=row.get("setup_url"),
        url_template=row.get("url_template", DEFAULT_URL_TEMPLATE),
        label=row.get("label", ""),
    )
