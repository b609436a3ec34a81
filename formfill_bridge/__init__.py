"""
formfill_bridge

Asynchronous request/response bridge between a form-autofill test script
and the privileged context that owns the address store.
"""

from .bridge import PendingRequest, RequestBridge
from .channel import Channel, MemoryChannel
from .config import BridgeConfig
from .errors import (
    BridgeConfigError,
    BridgeConnectionError,
    BridgeError,
    ChannelClosedError,
    FrameError,
    HarnessNotReadyError,
    InvalidRecordError,
    RecordNotFoundError,
    UnexpectedStorageChange,
    UnknownMessageError,
)
from .harness import FormFillHarness
from .messages import Message, RequestType, ResponseType
from .parent import ParentScript
from .records import VALID_ADDRESS_FIELDS, records_match
from .storage import MemoryAddressStore

__version__ = "0.1.0"

__all__ = [
    'BridgeConfig',
    'BridgeConfigError',
    'BridgeConnectionError',
    'BridgeError',
    'Channel',
    'ChannelClosedError',
    'FormFillHarness',
    'FrameError',
    'HarnessNotReadyError',
    'InvalidRecordError',
    'MemoryAddressStore',
    'MemoryChannel',
    'Message',
    'ParentScript',
    'PendingRequest',
    'RecordNotFoundError',
    'RequestBridge',
    'RequestType',
    'ResponseType',
    'UnexpectedStorageChange',
    'UnknownMessageError',
    'VALID_ADDRESS_FIELDS',
    'records_match',
]
