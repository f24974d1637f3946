"""
Resolve command implementation.

Prints the binary that would be launched and where it was found.
"""

import logging

from lspkit.cli.utils import build_context

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the resolve command.

    Returns:
        Exit code (0 if a binary was found, 1 otherwise)
    """
    context = build_context(args)
    binary = context.resolver.resolve_local(
        context.identity, context.settings.override_path()
    )

    if binary is None:
        logger.error(f"Failed to find a language server on the system: {context.identity.name}")
        if context.resolver.supports_system(context.identity):
            logger.info("Run 'lspkit install' to download it.")
        elif context.identity.setup_url:
            logger.info(f"See {context.identity.setup_url} for manual setup.")
        return 1

    print(binary.path)
    logger.info(f"Resolved {context.identity.name}: {binary.provenance.value}")
    return 0
