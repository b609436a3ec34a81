"""
Channel Factory

Opens the channel to the backing context described by a BridgeConfig.
"""

from typing import NamedTuple, Optional

from .channel import Channel, MemoryChannel
from .config import MEMORY_ENDPOINT, BridgeConfig
from .parent import ParentScript
from .storage import MemoryAddressStore
from .telemetry import emit_event


class ParentConnection(NamedTuple):
    """Test-side channel plus the in-process parent script, if there is one."""
    channel: Channel
    parent: Optional[ParentScript]


async def load_parent_script(config: BridgeConfig,
                             store: Optional[MemoryAddressStore] = None) -> ParentConnection:
    """Start or connect to the backing context."""
    if config.endpoint == MEMORY_ENDPOINT:
        content, parent_end = MemoryChannel.pair()
        parent = ParentScript(parent_end, store)
        emit_event("channel", {"op": "channel.open", "endpoint": config.endpoint})
        return ParentConnection(content, parent)

    if config.socket_path is not None:
        # Lazy import keeps socket code off platforms without AF_UNIX
        from .transports.unix_socket import UnixSocketChannel
        channel = await UnixSocketChannel.connect(
            config.socket_path,
            max_frame_bytes=config.max_frame_bytes,
            timeout=config.connect_timeout_ms / 1000,
        )
        emit_event("channel", {"op": "channel.open", "endpoint": config.endpoint})
        return ParentConnection(channel, None)

    raise ValueError(f"Unsupported endpoint: {config.endpoint}")
