"""
Integration tests for the unix socket channel.
"""

import asyncio
import os
import shutil
import tempfile

import pytest

from formfill_bridge.bridge import RequestBridge
from formfill_bridge.channel_factory import load_parent_script
from formfill_bridge.config import BridgeConfig
from formfill_bridge.errors import BridgeConnectionError, BridgeError, ChannelClosedError
from formfill_bridge.framing import HEADER
from formfill_bridge.harness import FormFillHarness
from formfill_bridge.parent import ParentScript
from formfill_bridge.storage import MemoryAddressStore
from formfill_bridge.transports.unix_socket import UnixSocketChannel, serve_unix_channel


pytestmark = pytest.mark.requires_unix_socket


@pytest.fixture
def socket_path():
    # Keep the path short; AF_UNIX paths are limited to ~100 bytes
    directory = tempfile.mkdtemp(prefix="ffb", dir="/tmp")
    yield os.path.join(directory, "s.sock")
    shutil.rmtree(directory, ignore_errors=True)


class TestUnixSocketChannel:

    @pytest.mark.asyncio
    async def test_bridge_over_socket(self, socket_path, full_address):
        """Test bridge requests over a unix socket."""
        store = MemoryAddressStore()
        server = await serve_unix_channel(socket_path, lambda ch: ParentScript(ch, store))
        async with server:
            channel = await UnixSocketChannel.connect(socket_path, timeout=1.0)
            bridge = RequestBridge(channel)

            await asyncio.wait_for(bridge.add_address(full_address), 2.0)
            addresses = await asyncio.wait_for(bridge.get_addresses(), 2.0)

            assert len(addresses) == 1
            assert addresses[0]["email"] == "timbl@w3.org"
            assert len(store) == 1
            await channel.destroy()

    @pytest.mark.asyncio
    async def test_harness_over_socket(self, socket_path, full_address):
        """Test harness session over a unix socket."""
        store = MemoryAddressStore()
        server = await serve_unix_channel(socket_path, lambda ch: ParentScript(ch, store))
        async with server:
            config = BridgeConfig(endpoint=f"unix://{socket_path}")
            async with FormFillHarness(config) as harness:
                assert harness.parent is None
                changed = harness.wait_for_storage_change("add")
                await asyncio.wait_for(harness.bridge.add_address(full_address), 2.0)
                assert await asyncio.wait_for(changed, 2.0) == "add"
                await harness.check_addresses([full_address])

            # cleanup reached the server before the socket closed
            for _ in range(50):
                if len(store) == 0:
                    break
                await asyncio.sleep(0.01)
            assert len(store) == 0

    @pytest.mark.asyncio
    async def test_connect_missing_socket(self, socket_path):
        """Test connecting to a missing socket raises."""
        with pytest.raises(BridgeConnectionError, match="Failed to connect") as exc_info:
            await UnixSocketChannel.connect(socket_path, timeout=1.0)
        assert isinstance(exc_info.value, BridgeError)
        assert isinstance(exc_info.value, ConnectionError)

    @pytest.mark.asyncio
    async def test_factory_connects_unix_endpoint(self, socket_path):
        """Test factory opens a socket channel for unix endpoints."""
        server = await serve_unix_channel(socket_path, lambda ch: ParentScript(ch))
        async with server:
            connection = await load_parent_script(BridgeConfig(endpoint=f"unix://{socket_path}"))

            assert isinstance(connection.channel, UnixSocketChannel)
            assert connection.parent is None
            await connection.channel.destroy()

    @pytest.mark.asyncio
    async def test_bad_frame_closes_channel(self, socket_path):
        """Test an oversized frame closes the channel."""
        accepted = asyncio.get_running_loop().create_future()
        server = await serve_unix_channel(socket_path, accepted.set_result, max_frame_bytes=1024)
        async with server:
            reader, writer = await asyncio.open_unix_connection(socket_path)
            channel = await asyncio.wait_for(accepted, 1.0)

            writer.write(HEADER.pack(1_000_000))
            await writer.drain()
            await asyncio.wait_for(channel.wait_closed(), 1.0)

            assert channel.closed is True
            with pytest.raises(ChannelClosedError):
                channel.send_async_message("cleanup")
            writer.close()

    @pytest.mark.asyncio
    async def test_peer_disconnect_marks_closed(self, socket_path):
        """Test peer disconnect marks the channel closed."""
        server_channels = []
        server = await serve_unix_channel(socket_path, server_channels.append)
        async with server:
            channel = await UnixSocketChannel.connect(socket_path, timeout=1.0)
            for _ in range(50):
                if server_channels:
                    break
                await asyncio.sleep(0.01)

            await server_channels[0].destroy()
            await asyncio.wait_for(channel.wait_closed(), 1.0)

            assert channel.closed is True
            await channel.destroy()
