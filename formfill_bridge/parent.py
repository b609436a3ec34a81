"""
Parent Script

Backing-context side of the channel: answers address requests from the
test script out of an address store and announces every mutation with an
unsolicited storage-changed message.
"""

import logging
from typing import Any, Dict, List, Optional

from .channel import Channel
from .errors import BridgeError
from .messages import CLEANUP, POPUP_SHOWN, STORAGE_CHANGED, Message, RequestType, ResponseType
from .storage import MemoryAddressStore
from .telemetry import emit_event


logger = logging.getLogger(__name__)


class ParentScript:
    """Handles the address request vocabulary on one channel."""

    def __init__(self, channel: Channel, store: Optional[MemoryAddressStore] = None):
        self.channel = channel
        self.store = store if store is not None else MemoryAddressStore()
        self._handlers = {
            RequestType.ADD_RECORD.value: self._on_add,
            RequestType.REMOVE_RECORD.value: self._on_remove,
            RequestType.UPDATE_RECORD.value: self._on_update,
            RequestType.GET_ALL_RECORDS.value: self._on_get_all,
            CLEANUP: self._on_cleanup,
        }
        for name, handler in self._handlers.items():
            channel.add_message_listener(name, self._guarded(handler))

    def _guarded(self, handler):
        # A request the store rejects gets no response, like a backing
        # context that never answers.
        def listener(message: Message) -> None:
            try:
                handler(message)
            except (BridgeError, KeyError, TypeError, AttributeError) as e:
                logger.error("Dropping %s request: %s", message.name, e)
                emit_event("parent", {"op": "parent.reject", "name": message.name, "reason": str(e)})
        return listener

    def _reply(self, request: Message, response: ResponseType, data: Any = None) -> None:
        self.channel.send_async_message(
            response.value, {} if data is None else data, request_id=request.request_id
        )

    def _notify_changed(self, change_type: str) -> None:
        self.channel.send_async_message(STORAGE_CHANGED, change_type)

    def _on_add(self, message: Message) -> None:
        guid = self.store.add(message.data["address"])
        logger.debug("Added address %s", guid)
        self._notify_changed("add")
        self._reply(message, ResponseType.RECORD_ADDED)

    def _on_remove(self, message: Message) -> None:
        guid = message.data["guid"]
        if self.store.remove(guid):
            self._notify_changed("remove")
        else:
            logger.debug("Remove of unknown guid %s acknowledged", guid)
        self._reply(message, ResponseType.RECORD_REMOVED)

    def _on_update(self, message: Message) -> None:
        self.store.update(message.data["guid"], message.data["address"])
        self._notify_changed("update")
        self._reply(message, ResponseType.RECORD_UPDATED)

    def _on_get_all(self, message: Message) -> None:
        self._reply(message, ResponseType.ALL_RECORDS, self.store.get_all())

    def _on_cleanup(self, message: Message) -> None:
        removed = self.store.remove_all()
        logger.debug("Cleanup removed %d addresses", removed)

    def notify_popup_shown(self, results: List[Dict[str, Any]]) -> None:
        """Tell the test script that the autocomplete popup opened."""
        self.channel.send_async_message(POPUP_SHOWN, {"results": results})
