# tests/property/test_record_properties.py
"""Property-based tests for Record immutability.

Properties tested:
- with_merged/with_removed never change the receiver
- to_dict snapshots are detached from the record
- Attribute assignment always raises
- Equality ignores insertion order
"""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from brainpipe.contracts.record import Record
from tests.property.conftest import property_names, records, values
from tests.property.settings import QUICK_SETTINGS, STANDARD_SETTINGS


class TestRecordImmutability:
    @given(record=records(), updates=st.dictionaries(property_names, values, max_size=4))
    @STANDARD_SETTINGS
    def test_with_merged_leaves_original(self, record: Record, updates: dict[str, Any]) -> None:
        before = record.to_dict()

        merged = record.with_merged(updates)

        assert record.to_dict() == before
        for key, value in updates.items():
            assert merged.get(key) == value

    @given(record=records(), doomed=st.lists(property_names, max_size=4))
    @STANDARD_SETTINGS
    def test_with_removed_leaves_original(self, record: Record, doomed: list[str]) -> None:
        before = record.to_dict()

        removed = record.with_removed(*doomed)

        assert record.to_dict() == before
        assert not set(doomed) & set(removed.keys())
        assert set(removed.keys()) == set(before) - set(doomed)

    @given(record=records(), key=property_names, value=values)
    @STANDARD_SETTINGS
    def test_to_dict_is_detached(self, record: Record, key: str, value: Any) -> None:
        snapshot = record.to_dict()
        had_key = key in record

        snapshot[key] = value

        assert (key in record) == had_key

    @given(record=records())
    @QUICK_SETTINGS
    def test_attribute_assignment_raises(self, record: Record) -> None:
        with pytest.raises(AttributeError):
            record._data = {}  # type: ignore[misc]

    @given(record=records())
    @STANDARD_SETTINGS
    def test_equality_ignores_order(self, record: Record) -> None:
        reordered = Record(dict(reversed(record.items())))
        assert reordered == record
