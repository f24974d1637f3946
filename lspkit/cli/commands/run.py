"""
Run command implementation.

Supervises the language server and relays LSP traffic between this
process's stdio and the server, so editors can launch ``lspkit run``
as their server command.
"""

import asyncio
import logging
from typing import Optional

from lspkit.cli.utils import load_command_settings
from lspkit.servers.bridge import StdioBridge
from lspkit.servers.supervisor import create_supervisor

logger = logging.getLogger(__name__)

EXIT_GRACE = 1.0


def run(args) -> int:
    """
    Run the run command.

    Returns:
        Exit code of the server process when it exits on its own,
        0 when lspkit stopped it
    """
    settings = load_command_settings(args)
    return asyncio.run(_serve(settings))


async def _serve(settings) -> int:
    bridge = StdioBridge()
    supervisor = create_supervisor(settings, bridge)

    binary = await supervisor.ensure_running()
    logger.info(f"Serving {supervisor.identity.name} from {binary}")

    stopped = asyncio.create_task(supervisor.wait_stopped())
    closed = asyncio.create_task(bridge.wait_closed())
    try:
        done, _ = await asyncio.wait(
            {stopped, closed}, return_when=asyncio.FIRST_COMPLETED
        )
        if stopped not in done:
            # Output usually closes just before the exit is reaped
            done, _ = await asyncio.wait({stopped}, timeout=EXIT_GRACE)
    finally:
        closed.cancel()
        await supervisor.dispose()

    returncode = await stopped
    if stopped not in done:
        # Server kept running after closing its output; dispose() stopped it
        return 0
    return exit_status(returncode)


def exit_status(returncode: Optional[int]) -> int:
    """Map a process return code to a shell exit status (128 + N for signal N)."""
    if returncode is None:
        return 0
    if returncode < 0:
        return 128 - returncode
    return returncode
