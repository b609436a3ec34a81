"""
Unit tests for the exception hierarchy.
"""

import pytest

import formfill_bridge
from formfill_bridge.errors import (
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


class TestErrorHierarchy:
    """Test every library error derives from BridgeError."""

    @pytest.mark.parametrize("error_class", [
        BridgeConfigError,
        BridgeConnectionError,
        ChannelClosedError,
        FrameError,
        HarnessNotReadyError,
        InvalidRecordError,
        RecordNotFoundError,
        UnexpectedStorageChange,
        UnknownMessageError,
    ])
    def test_derives_from_bridge_error(self, error_class):
        """Test each error class is a BridgeError."""
        assert issubclass(error_class, BridgeError)

    def test_builtin_bases_kept(self):
        """Test errors still match the builtin exception callers expect."""
        assert issubclass(UnexpectedStorageChange, AssertionError)
        assert issubclass(BridgeConnectionError, ConnectionError)
        assert issubclass(HarnessNotReadyError, RuntimeError)
        assert issubclass(InvalidRecordError, ValueError)
        assert issubclass(RecordNotFoundError, KeyError)

    def test_unexpected_storage_change_message(self):
        """Test the storage change error names both change types."""
        error = UnexpectedStorageChange("add", "remove")

        assert error.expected == "add"
        assert error.actual == "remove"
        assert "'add'" in str(error) and "'remove'" in str(error)

    def test_exported_from_package(self):
        """Test the new errors are part of the package namespace."""
        assert formfill_bridge.BridgeConnectionError is BridgeConnectionError
        assert formfill_bridge.HarnessNotReadyError is HarnessNotReadyError
