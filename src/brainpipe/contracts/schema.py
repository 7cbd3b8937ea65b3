# src/brainpipe/contracts/schema.py
"""Schemas: the contract currency passed between stages.

A schema maps property name -> FieldSpec(type, optional). Operations
compute their reads/sets/deletes as functions of the schema that precedes
them (the prefix schema), and the schema after them follows the
schema-flow rule:

    output = (prefix - deletes(prefix)) | sets(prefix)

Any property untouched by an operation passes through unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from brainpipe.contracts.types import TypeDescriptor, as_type, describe_type


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Declared type and optionality of one property.

    Attributes:
        type: Expected type, or None when undeclared (no runtime type check)
        optional: For reads, absence is allowed. For sets, the operation may
            leave the property unset.
    """

    type: TypeDescriptor | None = None
    optional: bool = False

    @classmethod
    def of(cls, type_spec: object = None, *, optional: bool = False) -> FieldSpec:
        """Build a FieldSpec, accepting type shorthand (see types.as_type)."""
        return cls(type=None if type_spec is None else as_type(type_spec), optional=optional)

    def as_optional(self, optional: bool = True) -> FieldSpec:
        return replace(self, optional=optional)

    def __str__(self) -> str:
        return f"{describe_type(self.type)}{'?' if self.optional else ''}"


Schema = Mapping[str, FieldSpec]


def schema_from(spec: Mapping[str, object]) -> dict[str, FieldSpec]:
    """Build a schema from {name: FieldSpec | type shorthand}. A trailing '?' marks optional."""
    result: dict[str, FieldSpec] = {}
    for name, value in spec.items():
        optional = name.endswith("?")
        key = name.rstrip("?")
        if isinstance(value, FieldSpec):
            result[key] = value.as_optional() if optional else value
        else:
            result[key] = FieldSpec.of(value, optional=optional)
    return result


def apply_schema_flow(
    prefix: Schema,
    sets: Schema,
    deletes: Iterable[str],
) -> dict[str, FieldSpec]:
    """Compute the schema after an operation or stage.

    Args:
        prefix: Schema before the operation
        sets: Properties written, with their declared specs
        deletes: Properties removed

    Returns:
        (prefix - deletes) | sets, as a new dict
    """
    doomed = set(deletes)
    result = {name: spec for name, spec in prefix.items() if name not in doomed}
    result.update(sets)
    return result


def format_schema(schema: Schema) -> str:
    """One-line rendering for logs and error messages."""
    if not schema:
        return "{}"
    return "{" + ", ".join(f"{name}: {spec}" for name, spec in schema.items()) + "}"
