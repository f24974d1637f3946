"""
Shared utilities for CLI commands.

Provides the settings/registry/resolver wiring and the output formatting
used across commands.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

from lspkit.config import Settings, load_settings
from lspkit.core.directory import get_server_cache_dir
from lspkit.core.download import DownloadProgress
from lspkit.core.interfaces import LoggingNotificationSink
from lspkit.servers.identity import ToolIdentity
from lspkit.servers.registry import ServerRegistry
from lspkit.servers.resolver import ArtifactResolver

logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    """Objects every command needs, built from parsed arguments."""

    settings: Settings
    registry: ServerRegistry
    identity: ToolIdentity
    resolver: ArtifactResolver


def load_command_settings(args) -> Settings:
    """
    Load settings and apply command-line overrides.

    Raises:
        ConfigError: If the configuration file is invalid
    """
    settings = load_settings(getattr(args, "config", None))

    server = getattr(args, "server", None)
    if server:
        settings.language_server = server
    cache_dir = getattr(args, "cache_dir", None)
    if cache_dir:
        settings.cache_dir = str(cache_dir)
    if getattr(args, "no_download", False):
        settings.download_language_server = False
    return settings


def build_context(args, progress: bool = False) -> CommandContext:
    """
    Build settings, registry, identity and resolver for a command.

    Raises:
        ConfigError: If the configuration file is invalid
        UnknownServerError: If the selected server is not registered
    """
    settings = load_command_settings(args)
    registry = ServerRegistry()
    identity = registry.get(settings.language_server)
    resolver = ArtifactResolver(
        get_server_cache_dir(settings.cache_dir),
        notifier=LoggingNotificationSink(),
        timeout=settings.download_timeout,
        progress_callback=print_progress if progress else None,
    )
    return CommandContext(settings, registry, identity, resolver)


def print_progress(progress: DownloadProgress) -> None:
    """Render download progress on one stderr line."""
    sys.stderr.write(f"\r  {progress}")
    if progress.total_bytes and progress.bytes_downloaded >= progress.total_bytes:
        sys.stderr.write("\n")
    sys.stderr.flush()


def format_success_message(
    title: str,
    details: Dict[str, Any],
    next_steps: Optional[list] = None,
    width: int = 70,
) -> str:
    """
    Format a standardized success message.

    Args:
        title: Success message title
        details: Key-value pairs to display
        next_steps: Optional list of next step instructions
        width: Width of message box
    """
    lines = ["=" * width, title, "=" * width, ""]

    for key, value in details.items():
        lines.append(f"{key}: {value}")

    if next_steps:
        lines.append("")
        lines.append("Next steps:")
        for step in next_steps:
            lines.append(f"  {step}")

    lines.append("")
    return "\n".join(lines)
