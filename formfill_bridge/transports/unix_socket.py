"""
Unix Socket Channel

Channel implementation over a unix domain socket using length-prefixed
JSON frames.
"""

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from ..channel import Channel
from ..errors import BridgeConnectionError, FrameError
from ..framing import DEFAULT_MAX_FRAME_BYTES, encode_frame, read_frame
from ..messages import Message


logger = logging.getLogger(__name__)


class UnixSocketChannel(Channel):
    """Channel over an established unix socket stream."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES):
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._max_frame_bytes = max_frame_bytes
        self._task = asyncio.get_running_loop().create_task(self._read_loop())

    @classmethod
    async def connect(cls, path: str, max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
                      timeout: Optional[float] = None) -> "UnixSocketChannel":
        """Connect to a backing context listening on `path`."""
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_unix_connection(path), timeout
            )
        except (asyncio.TimeoutError, ConnectionRefusedError, FileNotFoundError) as e:
            raise BridgeConnectionError(f"Failed to connect to {path}: {e}") from e
        logger.debug("Connected to %s", path)
        return cls(reader, writer, max_frame_bytes)

    def _transmit(self, message: Message) -> None:
        self._writer.write(encode_frame(message, self._max_frame_bytes))

    async def _read_loop(self) -> None:
        try:
            while True:
                message = await read_frame(self._reader, self._max_frame_bytes)
                if message is None:
                    break
                self._dispatch(message)
        except FrameError as e:
            logger.error("Closing channel on bad frame: %s", e)
        except ConnectionError as e:
            logger.warning("Connection lost: %s", e)
        finally:
            self._closed = True
            self._writer.close()

    async def wait_closed(self) -> None:
        """Wait until the read side has stopped."""
        await asyncio.wait({self._task})

    async def destroy(self) -> None:
        """Flush pending writes and close the socket."""
        if not self._closed:
            self._closed = True
            with contextlib.suppress(ConnectionError):
                await self._writer.drain()
        self._writer.close()
        with contextlib.suppress(ConnectionError):
            await self._writer.wait_closed()
        if not self._task.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


ChannelHandler = Callable[[UnixSocketChannel], Union[Awaitable[Any], Any]]


async def serve_unix_channel(path: str, on_channel: ChannelHandler,
                             max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES) -> asyncio.AbstractServer:
    """Listen on `path` and hand every client connection to `on_channel`.

    `on_channel` is called before the channel reads its first frame, so
    listeners it registers synchronously see every message.
    """

    async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        channel = UnixSocketChannel(reader, writer, max_frame_bytes)
        result = on_channel(channel)
        if asyncio.iscoroutine(result):
            await result
        await channel.wait_closed()

    server = await asyncio.start_unix_server(_handle, path=path)
    logger.info("Serving backing context on %s", path)
    return server
