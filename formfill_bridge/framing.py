"""
Wire Framing

Length-prefixed JSON frames: a 4-byte big-endian length followed by the
UTF-8 encoded message object.
"""

import asyncio
import json
import struct
from typing import Optional

from .errors import FrameError
from .messages import Message


HEADER = struct.Struct('!I')

DEFAULT_MAX_FRAME_BYTES = 1024 * 1024


def encode_frame(message: Message, max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES) -> bytes:
    """Serialize a message into one frame."""
    try:
        body = json.dumps(message.dict(), separators=(",", ":")).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise FrameError(f"Message {message.name} is not serializable: {e}") from e

    if len(body) > max_frame_bytes:
        raise FrameError(f"Frame too large: {len(body)} bytes")

    return HEADER.pack(len(body)) + body


def decode_body(body: bytes) -> Message:
    """Parse a frame body back into a message."""
    try:
        obj = json.loads(body.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FrameError(f"Invalid frame body: {e}") from e
    return Message.from_dict(obj)


async def read_frame(reader: asyncio.StreamReader,
                     max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES) -> Optional[Message]:
    """Read one message. Returns None on a clean end of stream."""
    try:
        header = await reader.readexactly(HEADER.size)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise FrameError("Connection closed inside frame header") from e

    (length,) = HEADER.unpack(header)

    # Validate length to prevent huge allocations
    if length > max_frame_bytes:
        raise FrameError(f"Frame too large: {length} bytes")

    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise FrameError("Connection closed while reading frame body") from e

    return decode_body(body)
