"""
Lifecycle supervision of a language server process.

The supervisor owns at most one live server process. It resolves (and, with
consent, installs) the binary, spawns it speaking LSP over stdio, hands the
pipes to a ProtocolClient and tears everything down on dispose or restart.

State machine:
    STOPPED -> STARTING -> RUNNING -> STOPPED   (dispose or process exit)
    STARTING -> STOPPED                         (launch failure)

An unexpected exit is reported and moves the supervisor to STOPPED; it is
never restarted automatically.

Usage:
    supervisor = create_supervisor(settings, client)
    await supervisor.ensure_running()
    ...
    await supervisor.dispose()
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from lspkit.core.directory import get_server_cache_dir
from lspkit.core.exceptions import (
    AlreadyRunningError,
    LaunchError,
    LspKitError,
    NotRunningError,
    ServerNotFoundError,
    UnsupportedPlatformError,
)
from lspkit.core.interfaces import (
    ConfigurationProvider,
    LoggingNotificationSink,
    NotificationSink,
    ProtocolClient,
)
from lspkit.servers.identity import ResolvedBinary, ToolIdentity
from lspkit.servers.registry import ServerRegistry
from lspkit.servers.resolver import ArtifactResolver

logger = logging.getLogger(__name__)

DEFAULT_STARTUP_GRACE = 0.2
DEFAULT_STOP_TIMEOUT = 5.0


class SupervisorState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class ProcessSupervisor:
    """
    Supervise one language server process for one ToolIdentity.

    All lifecycle methods are coroutines and are expected to be awaited
    sequentially by a single owner.
    """

    def __init__(
        self,
        identity: ToolIdentity,
        resolver: ArtifactResolver,
        client: ProtocolClient,
        config: ConfigurationProvider,
        notifier: Optional[NotificationSink] = None,
        startup_grace: float = DEFAULT_STARTUP_GRACE,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        """
        Args:
            identity: Server to supervise
            resolver: Resolver used to locate or install the binary
            client: Protocol client that receives the stdio streams
            config: Override path and download consent
            notifier: Operator message sink (logging if None)
            startup_grace: Seconds to watch for an immediate exit after spawn
            stop_timeout: Seconds to wait after terminate before killing
        """
        self.identity = identity
        self.resolver = resolver
        self.client = client
        self.config = config
        self.notifier = notifier or LoggingNotificationSink()
        self.startup_grace = startup_grace
        self.stop_timeout = stop_timeout

        self._state = SupervisorState.STOPPED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._binary: Optional[ResolvedBinary] = None
        self._watcher: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SupervisorState.RUNNING

    @property
    def binary(self) -> Optional[ResolvedBinary]:
        """Binary of the live process, None when stopped."""
        return self._binary if self.is_running else None

    @property
    def process(self) -> asyncio.subprocess.Process:
        """
        The live server process.

        Raises:
            NotRunningError: If no process is running
        """
        if not self.is_running or self._process is None:
            raise NotRunningError(f"{self.identity.name} is not running")
        return self._process

    @property
    def pid(self) -> int:
        return self.process.pid

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def ensure_running(self, allow_download: Optional[bool] = None) -> ResolvedBinary:
        """
        Make sure a server process is running, installing it if permitted.

        Args:
            allow_download: Overrides the configured download consent

        Returns:
            The binary the running process was started from

        Raises:
            ServerNotFoundError: No local binary and download not permitted
            UnsupportedPlatformError: No local binary and no artifact for this platform
            FetchError: Download, verification or install failed
            LaunchError: The process failed to start
        """
        if self.is_running and self._binary is not None:
            return self._binary

        binary = self.resolver.resolve_local(self.identity, self.config.override_path())
        if binary is None:
            if allow_download is None:
                allow_download = self.config.download_allowed()
            binary = await self._acquire(allow_download)

        await self.start(binary)
        return binary

    async def _acquire(self, allow_download: bool) -> ResolvedBinary:
        if not allow_download:
            error = ServerNotFoundError(self.identity.name)
            self.notifier.error(str(error))
            raise error

        descriptor = self.resolver.artifact_for(self.identity)
        if descriptor is None:
            error = UnsupportedPlatformError(
                self.identity.name, self.resolver.platform.platform_string()
            )
            message = str(error)
            if self.identity.setup_url:
                message += f". See {self.identity.setup_url} for manual setup."
            self.notifier.error(message)
            raise error

        # Fetch, hash and extract block; keep them off the event loop
        try:
            return await asyncio.to_thread(self.resolver.fetch_and_install, descriptor)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; it completes the install
            # under the install lock and leaves the cache consistent
            logger.warning(
                f"Stopped waiting for the {self.identity.name} install; "
                "it finishes in the background"
            )
            raise

    async def start(self, binary: ResolvedBinary) -> None:
        """
        Spawn ``binary`` and hand its stdio to the protocol client.

        A running process is stopped first.

        Raises:
            AlreadyRunningError: If another start is in progress
            LaunchError: If spawning fails, the process exits immediately,
                or the client refuses the connection
        """
        if self._state is SupervisorState.STARTING:
            raise AlreadyRunningError(f"{self.identity.name} is already starting")

        if self._process is not None:
            await self.dispose()

        self._state = SupervisorState.STARTING
        try:
            process = await self._spawn(binary.path)
            # Track the process at once so an abandoned start can still stop it
            self._process = process
            self._binary = binary
            await self._check_startup(process)
            self._stderr_task = asyncio.create_task(self._forward_stderr(process))
            await self._connect_client(process)
        except LaunchError as e:
            await self._reset()
            self.notifier.error(str(e))
            raise
        except BaseException:
            logger.warning(f"Start of {self.identity.name} was interrupted, stopping it")
            await self._reset()
            raise

        self._watcher = asyncio.create_task(self._watch(process))
        self._state = SupervisorState.RUNNING
        logger.info(f"Started {self.identity.name} (pid {process.pid}) from {binary}")

    async def restart(self) -> ResolvedBinary:
        """
        Stop the server and start it again from a freshly resolved binary.

        On failure the supervisor stays stopped and the error propagates.
        """
        await self.dispose()
        try:
            return await self.ensure_running()
        except (ServerNotFoundError, UnsupportedPlatformError):
            self.notifier.error(
                "Failed to restart the language server because a binary was not "
                "found and could not be downloaded"
            )
            raise
        except LspKitError as e:
            self.notifier.error(f"Failed to restart the language server: {e}")
            raise

    async def dispose(self) -> None:
        """
        Stop the server if one is running. Safe to call repeatedly.
        """
        process = self._process
        if process is None:
            self._state = SupervisorState.STOPPED
            return

        # Detach first so the exit watcher treats this exit as deliberate
        self._process = None
        self._binary = None
        self._state = SupervisorState.STOPPED

        try:
            await self.client.disconnect()
        except Exception as e:
            logger.warning(f"Protocol client failed to disconnect cleanly: {e}")

        await self._terminate(process)
        await self._drain_tasks()
        logger.info(f"Stopped {self.identity.name}")

    async def wait_stopped(self) -> Optional[int]:
        """
        Wait until the current process exits.

        Returns:
            The exit code, or None if nothing was running
        """
        process = self._process
        if process is None:
            return None
        return await process.wait()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _spawn(self, path: Path) -> asyncio.subprocess.Process:
        command = [str(path), *self.identity.launch_args]
        logger.debug(f"Launching: {' '.join(command)}")
        try:
            return await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise LaunchError(f"Failed to launch {self.identity.name} from {path}: {e}") from e

    async def _check_startup(self, process: asyncio.subprocess.Process) -> None:
        if self.startup_grace <= 0:
            return
        try:
            returncode = await asyncio.wait_for(process.wait(), self.startup_grace)
        except asyncio.TimeoutError:
            return
        raise LaunchError(
            f"{self.identity.name} exited immediately with code {returncode}"
        )

    async def _connect_client(self, process: asyncio.subprocess.Process) -> None:
        try:
            await self.client.connect(
                process.stdout, process.stdin, self.identity.display_name
            )
        except Exception as e:
            raise LaunchError(
                f"Protocol client failed to connect to {self.identity.name}: {e}"
            ) from e

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        if self._process is not process:
            return

        self._process = None
        self._binary = None
        self._state = SupervisorState.STOPPED
        logger.warning(f"{self.identity.name} exited with code {returncode}")
        self.notifier.error(
            f"{self.identity.display_name} exited unexpectedly with code {returncode}"
        )
        try:
            await self.client.disconnect()
        except Exception as e:
            logger.warning(f"Protocol client failed to disconnect cleanly: {e}")

    async def _forward_stderr(self, process: asyncio.subprocess.Process) -> None:
        if process.stderr is None:
            return
        while True:
            line = await process.stderr.readline()
            if not line:
                break
            logger.debug(f"[{self.identity.name}] {line.decode(errors='replace').rstrip()}")

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), self.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"{self.identity.name} did not terminate after {self.stop_timeout}s, killing"
            )
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def _drain_tasks(self) -> None:
        for task in (self._watcher, self._stderr_task):
            if task is not None and not task.done():
                try:
                    await asyncio.wait_for(task, self.stop_timeout)
                except asyncio.TimeoutError:
                    task.cancel()
        self._watcher = None
        self._stderr_task = None

    async def _reset(self) -> None:
        """Tear down a half-started process after a launch failure."""
        process = self._process
        self._process = None
        self._binary = None
        if process is not None:
            await self._terminate(process)
        await self._drain_tasks()
        self._state = SupervisorState.STOPPED


def create_supervisor(
    settings,
    client: ProtocolClient,
    registry: Optional[ServerRegistry] = None,
    notifier: Optional[NotificationSink] = None,
    **kwargs,
) -> ProcessSupervisor:
    """
    Build a supervisor for the server named in ``settings``.

    Args:
        settings: lspkit.config.Settings (also the ConfigurationProvider)
        client: Protocol client for the session
        registry: Server registry (embedded table if None)
        notifier: Operator message sink
        **kwargs: Forwarded to ProcessSupervisor

    Raises:
        UnknownServerError: If the configured server is not registered
    """
    registry = registry or ServerRegistry()
    identity = registry.get(settings.language_server)
    notifier = notifier or LoggingNotificationSink()
    resolver = ArtifactResolver(
        get_server_cache_dir(settings.cache_dir),
        notifier=notifier,
        timeout=settings.download_timeout,
    )
    return ProcessSupervisor(
        identity, resolver, client, settings, notifier=notifier, **kwargs
    )
