"""
Request/Response Bridge

Pairs each request sent to the backing context with exactly one response.
"""

import asyncio
import logging
import time
import uuid
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Union

from .channel import Channel
from .messages import RESPONSE_FOR, Message, RequestType
from .records import AddressRecord, validate_record
from .telemetry import emit_event


logger = logging.getLogger(__name__)


class PendingRequest:
    """A request awaiting its response."""

    __slots__ = ("request_id", "request", "response_name", "future", "started")

    def __init__(self, request_id: str, request: RequestType, future: asyncio.Future):
        self.request_id = request_id
        self.request = request
        self.response_name = RESPONSE_FOR[request].value
        self.future = future
        self.started = time.monotonic()


class RequestBridge:
    """Correlates requests and responses over a Channel.

    Pending requests live in a table keyed by a per-request id. A response
    carrying that id resolves exactly that request; a response without one
    resolves the oldest pending request of its type. One listener per
    response name stays attached only while requests of that type are
    pending.

    There is no timeout: if the backing context never answers, `send`
    never returns. Wrap calls in `asyncio.wait_for` where that matters.
    """

    def __init__(self, channel: Channel):
        self.channel = channel
        self._pending: Dict[str, PendingRequest] = {}
        self._queues: Dict[str, Deque[str]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_listening(self, response_name: str) -> bool:
        """Whether the bridge has a listener attached for `response_name`."""
        return response_name in self._queues

    async def send(self, request_type: Union[RequestType, str], payload: Any = None) -> Any:
        """Send a request and wait for the payload of its response."""
        request = RequestType.parse(request_type)
        entry = PendingRequest(uuid.uuid4().hex, request, asyncio.get_running_loop().create_future())

        # Register before sending so a fast response cannot be missed
        self._register(entry)
        try:
            self.channel.send_async_message(request.value, payload, request_id=entry.request_id)
            return await entry.future
        finally:
            self._discard(entry)

    def _register(self, entry: PendingRequest) -> None:
        self._pending[entry.request_id] = entry
        queue = self._queues.get(entry.response_name)
        if queue is None:
            queue = self._queues[entry.response_name] = deque()
            self.channel.add_message_listener(entry.response_name, self._on_response)
        queue.append(entry.request_id)

    def _discard(self, entry: PendingRequest) -> None:
        if self._pending.pop(entry.request_id, None) is None:
            return
        queue = self._queues[entry.response_name]
        queue.remove(entry.request_id)
        if not queue:
            del self._queues[entry.response_name]
            self.channel.remove_message_listener(entry.response_name, self._on_response)

    def _on_response(self, message: Message) -> None:
        if message.request_id is not None:
            entry = self._pending.get(message.request_id)
            if entry is None or entry.response_name != message.name:
                logger.debug("Ignoring %s for unknown request %s", message.name, message.request_id)
                return
        else:
            # Oldest request of this type whose caller is still waiting
            queue = self._queues.get(message.name, ())
            entry = next(
                (self._pending[rid] for rid in queue if not self._pending[rid].future.done()),
                None,
            )
            if entry is None:
                return

        self._discard(entry)
        if entry.future.done():
            return
        entry.future.set_result(message.data)

        latency_ms = int((time.monotonic() - entry.started) * 1000)
        logger.debug("%s answered in %d ms", entry.request.value, latency_ms)
        emit_event("bridge", {
            "op": "bridge.request",
            "request": entry.request.value,
            "response": message.name,
            "latency_ms": latency_ms,
            "correlated": message.request_id is not None,
        })

    async def add_address(self, address: AddressRecord) -> None:
        """Add an address to the backing store."""
        await self.send(RequestType.ADD_RECORD, {"address": validate_record(address)})

    async def remove_address(self, guid: str) -> None:
        """Remove the address with `guid` from the backing store."""
        await self.send(RequestType.REMOVE_RECORD, {"guid": guid})

    async def update_address(self, guid: str, address: AddressRecord) -> None:
        """Replace the address stored under `guid`."""
        await self.send(RequestType.UPDATE_RECORD, {"address": validate_record(address), "guid": guid})

    async def get_addresses(self) -> List[AddressRecord]:
        """Fetch every stored address, in store order."""
        addresses: Optional[List[AddressRecord]] = await self.send(RequestType.GET_ALL_RECORDS)
        return list(addresses or [])
