# src/brainpipe/contracts/type_checker.py
"""Structural validation of values against type descriptors.

validate() recurses through the descriptor and raises TypeMismatchError
with a fully qualified path on the first failure:

    records[2].tags[0] expected String, got Integer

matches() is the boolean form used for Union alternatives and Enum
assignability checks.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping as AbcMapping
from typing import Any

from brainpipe.contracts.errors import TypeMismatchError
from brainpipe.contracts.types import (
    AnyType,
    Enum,
    Instance,
    Mapping,
    Optional,
    Scalar,
    ScalarKind,
    Sequence,
    Struct,
    TypeDescriptor,
    Union,
)


def describe_value(value: Any) -> str:
    """Short description of a runtime value's kind, for error messages."""
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, enum.Enum):
        return "Symbol"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, float):
        return "Float"
    if isinstance(value, str):
        return "String"
    if isinstance(value, (list, tuple)):
        return "Sequence"
    if isinstance(value, AbcMapping):
        return "Mapping"
    return type(value).__name__


def _scalar_matches(value: Any, kind: ScalarKind) -> bool:
    # Exact runtime kinds: bool is not an Integer, int is not a Float
    if kind is ScalarKind.STRING:
        return isinstance(value, str)
    if kind is ScalarKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is ScalarKind.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind is ScalarKind.FLOAT:
        return isinstance(value, float)
    return isinstance(value, enum.Enum)


def _enum_matches(value: Any, allowed: tuple[Any, ...]) -> bool:
    # Same runtime kind as well as ==: True is not 1, 1 is not 1.0
    return any(type(value) is type(v) and value == v for v in allowed)


def _field_path(path: str, name: str) -> str:
    return name if not path else f"{path}.{name}"


def _fail(value: Any, descriptor: TypeDescriptor, path: str) -> TypeMismatchError:
    expected = str(descriptor)
    actual = describe_value(value)
    prefix = f"{path} " if path else ""
    return TypeMismatchError(
        f"{prefix}expected {expected}, got {actual}",
        path=path,
        expected=expected,
        actual=actual,
    )


def validate(value: Any, descriptor: TypeDescriptor | None, path: str = "") -> None:
    """Validate value against descriptor.

    Args:
        value: The value to check
        descriptor: Expected type; None means undeclared and always passes
        path: Qualified path of value, used in error messages

    Raises:
        TypeMismatchError: On the first mismatch found
    """
    if descriptor is None or isinstance(descriptor, AnyType):
        return

    if isinstance(descriptor, Optional):
        if value is None:
            return
        validate(value, descriptor.inner, path)
        return

    if isinstance(descriptor, Scalar):
        if not _scalar_matches(value, descriptor.kind):
            raise _fail(value, descriptor, path)
        return

    if isinstance(descriptor, Enum):
        if not _enum_matches(value, descriptor.values):
            raise _fail(value, descriptor, path)
        return

    if isinstance(descriptor, Union):
        if not any(matches(value, alt) for alt in descriptor.alternatives):
            raise _fail(value, descriptor, path)
        return

    if isinstance(descriptor, Instance):
        if not isinstance(value, descriptor.cls):
            raise _fail(value, descriptor, path)
        return

    if isinstance(descriptor, Sequence):
        if not isinstance(value, (list, tuple)):
            raise _fail(value, descriptor, path)
        for i, item in enumerate(value):
            validate(item, descriptor.element, f"{path}[{i}]")
        return

    if isinstance(descriptor, Mapping):
        if not isinstance(value, AbcMapping):
            raise _fail(value, descriptor, path)
        for key, item in value.items():
            key_path = f"{path}[{key!r}]"
            validate(key, descriptor.key, f"{key_path} (key)")
            validate(item, descriptor.value, key_path)
        return

    if isinstance(descriptor, Struct):
        if not isinstance(value, AbcMapping):
            raise _fail(value, descriptor, path)
        for f in descriptor.fields:
            field_path = _field_path(path, f.name)
            if f.name in value:
                validate(value[f.name], f.type, field_path)
            elif not (f.optional or isinstance(f.type, Optional)):
                raise TypeMismatchError(
                    f"{field_path} is required but missing",
                    path=field_path,
                    expected=str(f.type),
                    actual="missing",
                )
        return

    raise TypeError(f"Unknown type descriptor: {descriptor!r}")


def matches(value: Any, descriptor: TypeDescriptor | None) -> bool:
    """Boolean form of validate()."""
    try:
        validate(value, descriptor)
    except TypeMismatchError:
        return False
    return True
