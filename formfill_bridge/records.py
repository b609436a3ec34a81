"""
Address Records

The fixed address field set and the comparison helpers built on it.
"""

from typing import Any, Dict, Iterable, List, Mapping

from .errors import InvalidRecordError


VALID_ADDRESS_FIELDS = (
    "given-name",
    "additional-name",
    "family-name",
    "organization",
    "street-address",
    "address-level2",
    "address-level1",
    "postal-code",
    "country",
    "tel",
    "email",
)

# Bookkeeping fields the backing store adds to every stored record
METADATA_FIELDS = ("guid", "timeCreated", "timeLastModified")

AddressRecord = Dict[str, Any]


def records_match(record_a: Mapping[str, Any], record_b: Mapping[str, Any]) -> bool:
    """Return True if both records agree on every field of the fixed set.

    A field absent from both records is equal; absent on one side only is
    not, even when the other side holds None. Fields outside
    VALID_ADDRESS_FIELDS are ignored.
    """
    for field in VALID_ADDRESS_FIELDS:
        if (field in record_a, record_a.get(field)) != (field in record_b, record_b.get(field)):
            return False
    return True


def address_fields(record: Mapping[str, Any]) -> AddressRecord:
    """Copy only the fixed address fields out of a record."""
    return {k: record[k] for k in VALID_ADDRESS_FIELDS if k in record}


def validate_record(record: Any) -> AddressRecord:
    """Validate a record about to be sent to the backing store."""
    if not isinstance(record, Mapping):
        raise InvalidRecordError(f"Address record must be a mapping, got {type(record).__name__}")

    fields = address_fields(record)
    if not fields:
        raise InvalidRecordError("Address record has none of the known address fields")

    for key, value in fields.items():
        if not isinstance(value, str):
            raise InvalidRecordError(f"Field {key!r} must be a string, got {type(value).__name__}")

    return dict(record)


def find_unmatched(expected: Iterable[Mapping[str, Any]],
                   actual: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Return the expected records that match none of the actual ones."""
    actual = list(actual)
    return [e for e in expected if not any(records_match(e, a) for a in actual)]
