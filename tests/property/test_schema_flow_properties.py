# tests/property/test_schema_flow_properties.py
"""Property-based tests for schema flow.

The schema after an operation is (prefix - deletes) | sets:
- Every set name is present with exactly its declared spec
- Deleted names are absent unless set again
- Untouched prefix names keep their spec
- The prefix mapping itself is never modified
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from brainpipe.contracts.schema import FieldSpec, apply_schema_flow
from tests.property.conftest import property_names, schemas
from tests.property.settings import STANDARD_SETTINGS


class TestSchemaFlow:
    @given(prefix=schemas, sets=schemas, deletes=st.sets(property_names, max_size=4))
    @STANDARD_SETTINGS
    def test_flow_law(self, prefix: dict[str, FieldSpec], sets: dict[str, FieldSpec], deletes: set[str]) -> None:
        before = dict(prefix)

        result = apply_schema_flow(prefix, sets, deletes)

        assert set(result) == (set(prefix) - deletes) | set(sets)
        for name, spec in sets.items():
            assert result[name] == spec
        for name in set(prefix) - deletes - set(sets):
            assert result[name] == prefix[name]
        assert prefix == before

    @given(prefix=schemas)
    @STANDARD_SETTINGS
    def test_identity(self, prefix: dict[str, FieldSpec]) -> None:
        assert apply_schema_flow(prefix, {}, []) == prefix
