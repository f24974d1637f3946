"""
Stdio bridge protocol client.

Relays bytes between a pair of host streams (by default this process's own
stdin/stdout) and the supervised server, so an editor can launch
``lspkit run`` in place of the server binary. Messages are passed through
untouched; no LSP framing is interpreted.

Host input is read by a daemon thread that hands chunks to the event loop.
A blocked read never holds up loop shutdown or interpreter exit, so the
bridge can be torn down while the host keeps its end of the pipe open.
"""

import asyncio
import io
import logging
import os
import sys
import threading
from typing import BinaryIO, Optional

from lspkit.core.interfaces import ProtocolClient

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


class StdioBridge(ProtocolClient):
    """Pipe host input to the server and server output to the host."""

    def __init__(
        self,
        host_input: Optional[BinaryIO] = None,
        host_output: Optional[BinaryIO] = None,
    ):
        self.host_input = host_input if host_input is not None else sys.stdin.buffer
        self.host_output = host_output if host_output is not None else sys.stdout.buffer
        self.label: Optional[str] = None
        self._to_server: Optional[asyncio.Task] = None
        self._to_host: Optional[asyncio.Task] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._host_chunks: Optional[asyncio.Queue] = None
        self._host_eof = False
        self._reader_thread: Optional[threading.Thread] = None

    @property
    def connected(self) -> bool:
        return self._to_host is not None

    async def connect(self, reader, writer, label: str) -> None:
        if self.connected:
            await self.disconnect()
        self._start_host_reader()
        self.label = label
        self._writer = writer
        self._to_server = asyncio.create_task(self._pump_to_server(writer))
        self._to_host = asyncio.create_task(self._pump_to_host(reader))
        logger.debug(f"Bridging stdio to {label}")

    async def disconnect(self) -> None:
        tasks = [t for t in (self._to_server, self._to_host) if t is not None]
        self._to_server = None
        self._to_host = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._writer is not None and not self._writer.is_closing():
            self._writer.close()
        self._writer = None

    async def wait_closed(self) -> None:
        """Wait until the server closes its stdout."""
        task = self._to_host
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def _start_host_reader(self) -> None:
        # One reader per bridge; chunks read while disconnected wait in the queue
        if self._reader_thread is not None:
            return
        loop = asyncio.get_running_loop()
        self._host_chunks = asyncio.Queue()
        self._reader_thread = threading.Thread(
            target=self._read_host,
            args=(loop, self._host_chunks),
            name="lspkit-host-reader",
            daemon=True,
        )
        self._reader_thread.start()

    def _read_host(self, loop: asyncio.AbstractEventLoop, chunks: asyncio.Queue) -> None:
        while True:
            try:
                data = self._read_host_chunk()
            except (OSError, ValueError) as e:
                logger.debug(f"Host input failed: {e}")
                data = b""
            try:
                loop.call_soon_threadsafe(chunks.put_nowait, data)
            except RuntimeError:
                return  # event loop closed
            if not data:
                return

    def _read_host_chunk(self) -> bytes:
        # Raw reads on the descriptor keep the buffered stream's lock free at exit
        try:
            fd = self.host_input.fileno()
        except (AttributeError, OSError, io.UnsupportedOperation):
            fd = None
        if fd is not None:
            return os.read(fd, CHUNK_SIZE)
        read1 = getattr(self.host_input, "read1", None)
        if read1 is not None:
            return read1(CHUNK_SIZE)
        return self.host_input.read(CHUNK_SIZE)

    async def _pump_to_server(self, writer: asyncio.StreamWriter) -> None:
        while not self._host_eof:
            data = await self._host_chunks.get()
            if not data:
                self._host_eof = True
                break
            writer.write(data)
            try:
                await writer.drain()
            except ConnectionError as e:
                logger.debug(f"Server input closed: {e}")
                return

        logger.debug("Host input closed")
        if writer.can_write_eof():
            writer.write_eof()

    async def _pump_to_host(self, reader: asyncio.StreamReader) -> None:
        while True:
            data = await reader.read(CHUNK_SIZE)
            if not data:
                logger.debug("Server output closed")
                return
            self.host_output.write(data)
            self.host_output.flush()
