"""
Bridge Exceptions

Exception hierarchy shared by the channel, bridge and harness layers.
"""

from typing import Optional


class BridgeError(Exception):
    """Base exception for all formfill_bridge errors."""
    pass


class ChannelClosedError(BridgeError):
    """Raised when sending on a channel that has been destroyed."""

    def __init__(self, name: Optional[str] = None):
        self.name = name
        msg = "Channel is closed"
        if name:
            msg += f" (while sending {name})"
        super().__init__(msg)


class UnknownMessageError(BridgeError):
    """Raised when a request type is not part of the message vocabulary."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown request type: {name!r}")


class InvalidRecordError(BridgeError, ValueError):
    """Raised when an address record fails validation."""
    pass


class RecordNotFoundError(BridgeError, KeyError):
    """Raised by the backing store when a guid does not exist."""

    def __init__(self, guid: str):
        self.guid = guid
        super().__init__(f"No address record with guid {guid!r}")


class FrameError(BridgeError):
    """Raised on a malformed or oversized wire frame."""
    pass


class BridgeConfigError(BridgeError, ValueError):
    """Raised when configuration from the environment is invalid."""
    pass


class BridgeConnectionError(BridgeError, ConnectionError):
    """Raised when the backing context cannot be reached."""
    pass


class HarnessNotReadyError(BridgeError, RuntimeError):
    """Raised when a harness is used before setup() or after cleanup()."""
    pass


class UnexpectedStorageChange(BridgeError, AssertionError):
    """Raised when a storage-changed notification has the wrong type."""

    def __init__(self, expected: str, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected storage change {expected!r}, got {actual!r}")
