"""
Tests for the stdio bridge protocol client.
"""

import asyncio
import io
import os
import threading

from lspkit.servers.bridge import StdioBridge

MESSAGE = b'Content-Length: 17\r\n\r\n{"jsonrpc":"2.0"}'


class FakeWriter:
    """Minimal stand-in for the server's stdin StreamWriter."""

    def __init__(self):
        self.data = bytearray()
        self.eof = False
        self.closed = False

    def write(self, data):
        self.data.extend(data)

    async def drain(self):
        pass

    def can_write_eof(self):
        return True

    def write_eof(self):
        self.eof = True

    def is_closing(self):
        return self.closed

    def close(self):
        self.closed = True


async def wait_until(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached"
        await asyncio.sleep(0.01)


class TestStdioBridge:
    def test_relays_both_directions(self):
        host_input = io.BytesIO(MESSAGE)
        host_output = io.BytesIO()
        bridge = StdioBridge(host_input, host_output)
        writer = FakeWriter()

        async def scenario():
            reader = asyncio.StreamReader()
            reader.feed_data(b"server says hi")
            reader.feed_eof()

            await bridge.connect(reader, writer, "Tool LS")
            assert bridge.connected
            assert bridge.label == "Tool LS"

            await asyncio.wait_for(bridge.wait_closed(), 5)
            await wait_until(lambda: writer.eof)
            await bridge.disconnect()

        asyncio.run(scenario())

        assert host_output.getvalue() == b"server says hi"
        assert bytes(writer.data) == MESSAGE
        assert writer.closed
        assert not bridge.connected

    def test_disconnect_when_not_connected(self):
        bridge = StdioBridge(io.BytesIO(), io.BytesIO())

        asyncio.run(bridge.disconnect())

        assert not bridge.connected

    def test_wait_closed_when_not_connected(self):
        bridge = StdioBridge(io.BytesIO(), io.BytesIO())
        asyncio.run(bridge.wait_closed())

    def test_open_host_input_does_not_block_shutdown(self):
        """Teardown finishes while the host keeps its end of stdin open."""
        read_fd, write_fd = os.pipe()
        host_input = os.fdopen(read_fd, "rb", buffering=0)
        bridge = StdioBridge(host_input, io.BytesIO())

        async def scenario():
            reader = asyncio.StreamReader()
            await bridge.connect(reader, FakeWriter(), "Tool LS")
            await asyncio.sleep(0.05)
            await bridge.disconnect()

        runner = threading.Thread(target=asyncio.run, args=(scenario(),), daemon=True)
        try:
            runner.start()
            runner.join(5)
            assert not runner.is_alive()
        finally:
            os.close(write_fd)
            host_input.close()

    def test_reconnect_keeps_host_input(self):
        read_fd, write_fd = os.pipe()
        host_input = os.fdopen(read_fd, "rb", buffering=0)
        bridge = StdioBridge(host_input, io.BytesIO())
        first, second = FakeWriter(), FakeWriter()

        async def scenario():
            await bridge.connect(asyncio.StreamReader(), first, "Tool LS")
            os.write(write_fd, b"one")
            await wait_until(lambda: bytes(first.data) == b"one")
            await bridge.disconnect()

            await bridge.connect(asyncio.StreamReader(), second, "Tool LS")
            os.write(write_fd, b"two")
            os.close(write_fd)
            await wait_until(lambda: second.eof)
            await bridge.disconnect()

        try:
            asyncio.run(scenario())
        finally:
            host_input.close()

        assert bytes(second.data) == b"two"
        assert first.closed
