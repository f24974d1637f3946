"""
Core interfaces for lspkit.

This module defines the abstract collaborators the resolver and supervisor
depend on. Editors, the CLI and tests implement these to plug in their own
configuration source, message surface and protocol session without the
core knowing about them.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class ConfigurationProvider(ABC):
    """
    Read-only source of the settings the core consults on every resolution.
    """

    @abstractmethod
    def override_path(self) -> Optional[str]:
        """
        Explicit path to a server binary chosen by the operator.

        Returns:
            Path string, or None to fall back to cache and PATH lookup
        """
        pass

    @abstractmethod
    def download_allowed(self) -> bool:
        """Whether the operator consents to automatic downloads."""
        pass


class NotificationSink(ABC):
    """
    Surface for human-readable messages aimed at the operator.

    Calls are fire-and-forget; implementations must not raise.
    """

    @abstractmethod
    def info(self, message: str) -> None:
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        pass


class LoggingNotificationSink(NotificationSink):
    """Notification sink that writes to the ``lspkit`` logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger("lspkit")

    def info(self, message: str) -> None:
        self.log.info(message)

    def error(self, message: str) -> None:
        self.log.error(message)


class ProtocolClient(ABC):
    """
    Drives a language-server-protocol session over the server's stdio.

    The supervisor hands over the process streams once and never touches
    them again; from then on the client owns them.
    """

    @abstractmethod
    async def connect(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        label: str,
    ) -> None:
        """
        Take ownership of the server's stdout (``reader``) and stdin (``writer``).

        Args:
            reader: Stream of bytes written by the server
            writer: Stream of bytes read by the server
            label: Human-readable session label, e.g.
                'Meson Language Server (Swift-MesonLSP)'
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Release the streams before the supervisor terminates the process.

        Must be safe to call when not connected.
        """
        pass
