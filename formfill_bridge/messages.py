"""
Message Vocabulary

Names exchanged between the test script and the backing context, and the
envelope every message travels in.
"""

import copy
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import FrameError, UnknownMessageError


STORAGE_CHANGED = "formautofill-storage-changed"
POPUP_SHOWN = "onpopupshown"
CLEANUP = "cleanup"


class RequestType(Enum):
    """Requests the test script can send to the backing context."""
    ADD_RECORD = "FormAutofillTest:AddAddress"
    REMOVE_RECORD = "FormAutofillTest:RemoveAddress"
    UPDATE_RECORD = "FormAutofillTest:UpdateAddress"
    GET_ALL_RECORDS = "FormAutofillTest:GetAddresses"

    @classmethod
    def parse(cls, value: Union["RequestType", str]) -> "RequestType":
        """Resolve a member from itself, its wire name or its member name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value)]
        except KeyError:
            raise UnknownMessageError(str(value)) from None


class ResponseType(Enum):
    """Responses the backing context sends back, one per request."""
    RECORD_ADDED = "FormAutofillTest:AddressAdded"
    RECORD_REMOVED = "FormAutofillTest:AddressRemoved"
    RECORD_UPDATED = "FormAutofillTest:AddressUpdated"
    ALL_RECORDS = "FormAutofillTest:Addresses"


RESPONSE_FOR: Dict[RequestType, ResponseType] = {
    RequestType.ADD_RECORD: ResponseType.RECORD_ADDED,
    RequestType.REMOVE_RECORD: ResponseType.RECORD_REMOVED,
    RequestType.UPDATE_RECORD: ResponseType.RECORD_UPDATED,
    RequestType.GET_ALL_RECORDS: ResponseType.ALL_RECORDS,
}


class Message:
    """A named message with structured data and optional correlation id."""

    __slots__ = ("name", "data", "request_id")

    def __init__(self, name: str, data: Any = None, request_id: Optional[str] = None):
        self.name = name
        self.data = data
        self.request_id = request_id

    def clone(self) -> "Message":
        """Deep copy, so sender and receiver never share mutable data."""
        return Message(self.name, copy.deepcopy(self.data), self.request_id)

    def dict(self) -> Dict[str, Any]:
        """Convert message to its wire dictionary."""
        out = {"name": self.name, "data": self.data}
        if self.request_id is not None:
            out["requestId"] = self.request_id
        return out

    @classmethod
    def from_dict(cls, obj: Any) -> "Message":
        """Build a message from a decoded wire dictionary."""
        if not isinstance(obj, dict) or not isinstance(obj.get("name"), str):
            raise FrameError(f"Not a message object: {obj!r}")
        return cls(obj["name"], obj.get("data"), obj.get("requestId"))

    def __eq__(self, other):
        if not isinstance(other, Message):
            return NotImplemented
        return (self.name, self.data, self.request_id) == (other.name, other.data, other.request_id)

    def __repr__(self):
        return f"Message(name={self.name!r}, data={self.data!r}, request_id={self.request_id!r})"
