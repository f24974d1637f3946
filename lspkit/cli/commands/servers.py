"""
Servers command implementation.

Lists registered language servers and whether this host can auto-install them.
"""

import logging

from lspkit.core.platform import detect_platform
from lspkit.servers.registry import ServerRegistry

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the servers command.

    Returns:
        Exit code (0 for success)
    """
    registry = ServerRegistry()
    platform = detect_platform()

    print(f"Registered language servers (host: {platform.platform_string()}):")
    for name in registry.list_servers():
        identity = registry.get(name)
        supported = identity.supports_system(platform.os, platform.arch)
        marker = "download" if supported else "manual setup"
        print(f"  {name} {identity.version} [{marker}]")
        print(f"    platforms: {', '.join(identity.supported_platforms()) or 'none'}")
        if not supported and identity.setup_url:
            print(f"    setup: {identity.setup_url}")

    return 0
