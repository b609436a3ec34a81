"""
Form Fill Test Harness

Test-side session around one backing context: loads it, exposes the
address bridge, tracks autocomplete popup results and tears everything
down again.

Usage:
    async with FormFillHarness() as harness:
        changed = harness.wait_for_storage_change("add")
        await harness.bridge.add_address({"given-name": "John"})
        await changed
        await harness.check_addresses([{"given-name": "John"}])
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .bridge import RequestBridge
from .channel import Channel
from .channel_factory import load_parent_script
from .config import BridgeConfig
from .errors import HarnessNotReadyError, UnexpectedStorageChange
from .messages import CLEANUP, POPUP_SHOWN, STORAGE_CHANGED, Message
from .parent import ParentScript
from .records import AddressRecord, find_unmatched
from . import telemetry


logger = logging.getLogger(__name__)


class FormFillHarness:
    """Owns the channel to the backing context for one test."""

    def __init__(self, config: Optional[BridgeConfig] = None,
                 popup_shown_listener: Optional[Callable[[List[Dict[str, Any]]], Any]] = None):
        self.config = config if config is not None else BridgeConfig.from_env()
        self.popup_shown_listener = popup_shown_listener
        self.channel: Optional[Channel] = None
        self.parent: Optional[ParentScript] = None
        self.bridge: Optional[RequestBridge] = None
        self.last_autocomplete_results: Optional[List[Dict[str, Any]]] = None

    async def __aenter__(self) -> "FormFillHarness":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    async def setup(self) -> None:
        """Load the backing context and wire up the bridge."""
        if self.channel is not None:
            return
        telemetry.configure(self.config.telemetry_enabled, self.config.data_dir)
        connection = await load_parent_script(self.config)
        self.channel = connection.channel
        self.parent = connection.parent
        self.bridge = RequestBridge(self.channel)
        self.channel.add_message_listener(POPUP_SHOWN, self._on_popup_shown)
        logger.debug("Harness ready on %s", self.config.endpoint)

    async def cleanup(self) -> None:
        """Ask the backing context to clear its state, then close the channel.

        The harness can be set up again afterwards.
        """
        channel = self.channel
        if channel is None:
            return
        self.channel = self.parent = self.bridge = None
        if not channel.closed:
            channel.send_async_message(CLEANUP)
        await channel.destroy()
        telemetry.emit_event("harness", {"op": "harness.cleanup", "endpoint": self.config.endpoint})
        telemetry.flush_events()

    def _require_channel(self) -> Channel:
        if self.channel is None:
            raise HarnessNotReadyError("FormFillHarness.setup() has not been called")
        return self.channel

    def _on_popup_shown(self, message: Message) -> None:
        results = _popup_results(message.data)
        self.last_autocomplete_results = results
        if self.popup_shown_listener is not None:
            self.popup_shown_listener(results)

    def wait_for_storage_change(self, expected_type: str) -> "asyncio.Future[str]":
        """Future for the next storage-changed notification.

        The listener is attached immediately, so call this before sending
        the request that causes the change. The future fails with
        UnexpectedStorageChange when the change type differs.
        """
        return self._next_message(STORAGE_CHANGED, lambda data: _check_change(expected_type, data))

    def wait_for_popup_shown(self) -> "asyncio.Future[List[Dict[str, Any]]]":
        """Future for the results of the next popup-shown notification."""
        return self._next_message(POPUP_SHOWN, _popup_results)

    def _next_message(self, name: str, convert: Callable[[Any], Any]) -> asyncio.Future:
        channel = self._require_channel()
        future = asyncio.get_running_loop().create_future()

        def on_message(message: Message) -> None:
            channel.remove_message_listener(name, on_message)
            if future.done():
                return
            try:
                future.set_result(convert(message.data))
            except Exception as e:
                future.set_exception(e)

        channel.add_message_listener(name, on_message)
        return future

    async def check_addresses(self, expected: Sequence[Mapping[str, Any]]) -> List[AddressRecord]:
        """Assert the store holds exactly records matching `expected`."""
        self._require_channel()
        addresses = await self.bridge.get_addresses()
        if len(addresses) != len(expected):
            raise AssertionError(
                f"Number of addresses does not match: expected {len(expected)}, got {len(addresses)}"
            )
        unmatched = find_unmatched(expected, addresses)
        if unmatched:
            raise AssertionError(f"{len(unmatched)} expected address(es) not found: {unmatched!r}")
        return addresses


def _popup_results(data: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(data, dict):
        raise TypeError(f"Popup-shown payload must be an object, got {type(data).__name__}")
    return data.get("results")


def _check_change(expected: str, actual: Any) -> str:
    if actual != expected:
        raise UnexpectedStorageChange(expected, actual)
    return actual
