"""
Message Channel

Abstract channel between the test script and the backing context, plus an
in-process implementation built on asyncio queues.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import ChannelClosedError
from .messages import Message


logger = logging.getLogger(__name__)

Listener = Callable[[Message], Any]


class Channel(ABC):
    """Abstract base class for message channels.

    Listeners are plain callables keyed by message name. Dispatch walks a
    snapshot of the listener list, so a listener may remove itself while it
    is being called.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def add_message_listener(self, name: str, listener: Listener) -> None:
        """Register a listener for messages called `name`."""
        self._listeners.setdefault(name, []).append(listener)

    def remove_message_listener(self, name: str, listener: Listener) -> None:
        """Unregister one registration of `listener`; unknown listeners are ignored."""
        listeners = self._listeners.get(name)
        if not listeners:
            return
        with contextlib.suppress(ValueError):
            listeners.remove(listener)
        if not listeners:
            del self._listeners[name]

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, ()))

    def send_async_message(self, name: str, data: Any = None,
                           request_id: Optional[str] = None) -> None:
        """Queue a message for the other side. Never blocks."""
        if self._closed:
            raise ChannelClosedError(name)
        self._transmit(Message(name, data, request_id))

    def _dispatch(self, message: Message) -> None:
        for listener in list(self._listeners.get(message.name, ())):
            try:
                listener(message)
            except Exception:
                logger.exception("Listener for %s raised", message.name)

    @abstractmethod
    def _transmit(self, message: Message) -> None:
        """Hand a message to the underlying conduit."""
        pass

    @abstractmethod
    async def destroy(self) -> None:
        """Close the channel and release its resources."""
        pass


class MemoryChannel(Channel):
    """One endpoint of an in-process channel pair.

    Each endpoint owns an inbox queue and a dispatch task, so delivery per
    direction is FIFO and always happens on a later loop iteration than the
    send.
    """

    _STOP = object()

    def __init__(self, label: str = "memory"):
        super().__init__()
        self.label = label
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._peer: Optional["MemoryChannel"] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def pair(cls) -> Tuple["MemoryChannel", "MemoryChannel"]:
        """Create two connected endpoints. Must be called inside a running loop."""
        content, parent = cls("content"), cls("parent")
        content._peer, parent._peer = parent, content
        content._start()
        parent._start()
        return content, parent

    def _start(self) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._pump(), name=f"formfill-{self.label}-dispatch")

    def _transmit(self, message: Message) -> None:
        peer = self._peer
        if peer is None or peer._closed:
            logger.debug("Dropping %s: %s peer is gone", message.name, self.label)
            return
        peer._inbox.put_nowait(message.clone())

    async def _pump(self) -> None:
        while True:
            message = await self._inbox.get()
            try:
                if message is self._STOP:
                    return
                self._dispatch(message)
            finally:
                self._inbox.task_done()

    async def wait_idle(self) -> None:
        """Wait until every message queued so far has been dispatched."""
        await self._inbox.join()

    async def destroy(self) -> None:
        """Close both endpoints after draining what was already sent."""
        if self._closed:
            return
        self._closed = True
        self._inbox.put_nowait(self._STOP)
        peer = self._peer
        if peer is not None and not peer._closed:
            peer._closed = True
            peer._inbox.put_nowait(peer._STOP)

        current = asyncio.current_task()
        for endpoint in (self, peer):
            if endpoint is None or endpoint._task is None or endpoint._task is current:
                continue
            await endpoint._task
        logger.debug("Memory channel %s destroyed", self.label)
