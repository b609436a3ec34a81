"""
In-Memory Address Store

Backing store used by the parent script in tests and by `formfill-bridge
serve`. Records are kept in insertion order and handed out as copies.
"""

import copy
import time
import uuid
from typing import Dict, List, Optional

from .errors import RecordNotFoundError
from .records import AddressRecord, address_fields, validate_record


def _now_ms() -> int:
    return int(time.time() * 1000)


class MemoryAddressStore:
    """Address records keyed by a generated guid."""

    def __init__(self):
        self._records: Dict[str, AddressRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: AddressRecord) -> str:
        """Store a copy of `record` and return its new guid."""
        fields = address_fields(validate_record(record))
        guid = uuid.uuid4().hex[:12]
        now = _now_ms()
        fields.update(guid=guid, timeCreated=now, timeLastModified=now)
        self._records[guid] = fields
        return guid

    def get(self, guid: str) -> Optional[AddressRecord]:
        record = self._records.get(guid)
        return copy.deepcopy(record) if record is not None else None

    def get_all(self) -> List[AddressRecord]:
        return [copy.deepcopy(r) for r in self._records.values()]

    def update(self, guid: str, record: AddressRecord) -> None:
        """Replace the address fields of an existing record."""
        existing = self._records.get(guid)
        if existing is None:
            raise RecordNotFoundError(guid)

        fields = address_fields(validate_record(record))
        fields.update(
            guid=guid,
            timeCreated=existing["timeCreated"],
            timeLastModified=_now_ms(),
        )
        self._records[guid] = fields

    def remove(self, guid: str) -> bool:
        """Remove a record. Returns False if the guid was unknown."""
        return self._records.pop(guid, None) is not None

    def remove_all(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count
