"""
Unit tests for address record helpers.
"""

import pytest

from formfill_bridge.errors import InvalidRecordError
from formfill_bridge.records import (
    VALID_ADDRESS_FIELDS,
    address_fields,
    find_unmatched,
    records_match,
    validate_record,
)


class TestRecordsMatch:
    """Test records_match semantics."""

    def test_field_set(self):
        """Test the fixed address field set."""
        assert len(VALID_ADDRESS_FIELDS) == 11
        assert VALID_ADDRESS_FIELDS[0] == "given-name"
        assert VALID_ADDRESS_FIELDS[-1] == "email"

    def test_reflexive(self, full_address):
        """Test a record matches itself."""
        assert records_match(full_address, full_address) is True

    def test_symmetric(self, full_address):
        """Test mismatch is detected in both directions."""
        other = dict(full_address, tel="+15555550100")

        assert records_match(full_address, other) is False
        assert records_match(other, full_address) is False

    def test_ignores_unknown_fields(self, full_address):
        """Test ignores unknown fields."""
        stored = dict(full_address, guid="abc123", timeCreated=1, nickname="home")

        assert records_match(full_address, stored) is True
        assert records_match(stored, full_address) is True

    def test_absent_vs_present_is_unequal(self):
        """Test absent vs present is unequal."""
        assert records_match({"given-name": "John"}, {"given-name": "John", "email": "a@b.c"}) is False

    def test_absent_on_both_sides_is_equal(self):
        """Test absent on both sides is equal."""
        assert records_match({"given-name": "John"}, {"given-name": "John"}) is True

    def test_none_differs_from_absent(self):
        """Test explicit None differs from an absent field."""
        with_none = {"given-name": "J", "email": None}
        without = {"given-name": "J"}

        assert records_match(with_none, without) is False
        assert records_match(without, with_none) is False
        assert records_match(with_none, dict(with_none)) is True

    def test_empty_string_differs_from_absent(self):
        """Test empty string differs from absent."""
        assert records_match({"country": ""}, {}) is False

    def test_no_fuzzy_match(self):
        """Test comparison is exact."""
        assert records_match({"country": "US"}, {"country": "us"}) is False


class TestValidateRecord:
    """Test record validation."""

    def test_valid_record_is_copied(self, full_address):
        """Test valid record is copied."""
        result = validate_record(full_address)

        assert result == full_address
        assert result is not full_address

    def test_keeps_extra_fields(self):
        """Test keeps extra fields."""
        result = validate_record({"given-name": "John", "guid": "x"})
        assert result["guid"] == "x"

    def test_rejects_non_mapping(self):
        """Test rejects non mapping."""
        with pytest.raises(InvalidRecordError, match="must be a mapping"):
            validate_record(["given-name"])

    def test_rejects_record_without_known_fields(self):
        """Test rejects record without known fields."""
        with pytest.raises(InvalidRecordError, match="none of the known"):
            validate_record({"nickname": "home"})

    def test_rejects_non_string_value(self):
        """Test rejects non string value."""
        with pytest.raises(InvalidRecordError, match="'tel' must be a string"):
            validate_record({"given-name": "John", "tel": 5551234})

    def test_invalid_record_is_value_error(self):
        """Test invalid record is value error."""
        with pytest.raises(ValueError):
            validate_record({})


class TestHelpers:
    def test_address_fields_drops_metadata(self, full_address):
        """Test address fields drops metadata."""
        stored = dict(full_address, guid="abc", timeCreated=1)
        assert address_fields(stored) == full_address

    def test_find_unmatched(self, full_address):
        """Test find_unmatched returns expected records with no match."""
        other = {"given-name": "Jane"}
        unmatched = find_unmatched([full_address, other], [dict(full_address, guid="g")])
        assert unmatched == [other]

    def test_find_unmatched_all_present(self, full_address):
        """Test find_unmatched with every record present."""
        assert find_unmatched([full_address], [full_address]) == []
