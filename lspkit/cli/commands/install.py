"""
Install command implementation.

Downloads, verifies and installs a language server into the cache.
"""

import logging

from lspkit.cli.utils import build_context, format_success_message

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Returns:
        Exit code (0 for success)

    Raises:
        UnsupportedPlatformError: If no download exists for this host
        FetchError: If fetching, verification or extraction fails
    """
    context = build_context(args, progress=not args.quiet)
    identity = context.identity
    resolver = context.resolver

    if not args.force:
        cached = resolver.resolve_cached(identity)
        if cached is not None:
            logger.info(f"{identity.name} is already installed at {cached.path}")
            logger.info("Use --force to reinstall.")
            return 0

    binary = resolver.install(identity)

    print(
        format_success_message(
            f"Installed {identity.name} {identity.version}",
            {
                "Binary": binary.path,
                "Platform": resolver.platform.platform_string(),
                "Cache": resolver.cache_dir,
            },
            next_steps=["lspkit run    # start the server over stdio"],
        )
    )
    return 0
