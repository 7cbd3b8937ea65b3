# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import records, property_names

    @given(record=records())
    def test_record_is_immutable(record: Record) -> None:
        ...
"""

from __future__ import annotations

from typing import Any

from hypothesis import strategies as st

from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec
from brainpipe.contracts.types import BOOLEAN, FLOAT, INTEGER, STRING, Sequence

# Property names: short lowercase identifiers so collisions are likely
property_names = st.text(alphabet="abcdefgh", min_size=1, max_size=3)

scalar_values = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(2**31), max_value=2**31),
    st.text(max_size=10),
)

# NaN != NaN breaks equality-based assertions
values: st.SearchStrategy[Any] = st.one_of(
    scalar_values,
    st.floats(allow_nan=False),
    st.lists(scalar_values, max_size=4),
)

field_specs = st.builds(
    FieldSpec,
    type=st.sampled_from([None, STRING, INTEGER, FLOAT, BOOLEAN, Sequence(STRING)]),
    optional=st.booleans(),
)

schemas = st.dictionaries(property_names, field_specs, max_size=6)


def records(max_size: int = 6) -> st.SearchStrategy[Record]:
    return st.dictionaries(property_names, values, max_size=max_size).map(Record)
