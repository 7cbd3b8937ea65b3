# src/brainpipe/contracts/types.py
"""Type descriptors for declared reads and sets.

A descriptor is a small frozen dataclass describing an expected shape:

    Scalar(kind)             string / integer / float / boolean / symbol
    Sequence(element)        list or tuple, every element matching element
    Mapping(key, value)      dict, every key/value matching
    Struct(fields)           dict with named fields, some optional
    Any                      always matches (the ANY singleton)
    Optional(inner)          None or inner
    Enum(values)             one of a fixed set of values
    Union(alternatives)      any alternative matches
    Instance(cls)            isinstance(value, cls)

Descriptors compare structurally, so Stage type-conflict detection can
simply use ==.

Shorthand accepted by as_type():
    str, int, float, bool         -> Scalar
    "string", "integer", ...      -> Scalar (or ANY for "any")
    [T]                           -> Sequence(T)
    {K: V} with type keys         -> Mapping(K, V)
    {"name": T, "opt?": T}        -> Struct
    any other class               -> Instance(cls)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any as _AnyValue, Union as _TypingUnion


class ScalarKind(enum.StrEnum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    SYMBOL = "symbol"


_SCALAR_NAMES: dict[ScalarKind, str] = {
    ScalarKind.STRING: "String",
    ScalarKind.INTEGER: "Integer",
    ScalarKind.FLOAT: "Float",
    ScalarKind.BOOLEAN: "Boolean",
    ScalarKind.SYMBOL: "Symbol",
}


@dataclass(frozen=True, slots=True)
class Scalar:
    kind: ScalarKind

    def __str__(self) -> str:
        return _SCALAR_NAMES[self.kind]


@dataclass(frozen=True, slots=True)
class Sequence:
    element: TypeDescriptor

    def __str__(self) -> str:
        return f"[{self.element}]"


@dataclass(frozen=True, slots=True)
class Mapping:
    key: TypeDescriptor
    value: TypeDescriptor

    def __str__(self) -> str:
        return f"{{{self.key} => {self.value}}}"


@dataclass(frozen=True, slots=True)
class StructField:
    name: str
    type: TypeDescriptor
    optional: bool = False


@dataclass(frozen=True, slots=True)
class Struct:
    fields: tuple[StructField, ...]

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate field names in Struct: {', '.join(duplicates)}")

    def field(self, name: str) -> StructField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def __str__(self) -> str:
        parts = [f"{f.name}{'?' if f.optional else ''}: {f.type}" for f in self.fields]
        return "{ " + ", ".join(parts) + " }"


@dataclass(frozen=True, slots=True)
class AnyType:
    def __str__(self) -> str:
        return "Any"


@dataclass(frozen=True, slots=True)
class Optional:
    inner: TypeDescriptor

    def __str__(self) -> str:
        return f"Optional[{self.inner}]"


@dataclass(frozen=True, slots=True)
class Enum:
    values: tuple[_AnyValue, ...]

    def __str__(self) -> str:
        return "Enum[" + ", ".join(repr(v) for v in self.values) + "]"


@dataclass(frozen=True, slots=True)
class Union:
    alternatives: tuple[TypeDescriptor, ...]

    def __post_init__(self) -> None:
        if not self.alternatives:
            raise ValueError("Union requires at least one alternative")

    def __str__(self) -> str:
        return "Union[" + ", ".join(str(t) for t in self.alternatives) + "]"


@dataclass(frozen=True, slots=True)
class Instance:
    cls: type

    def __str__(self) -> str:
        return self.cls.__name__


TypeDescriptor = _TypingUnion[Scalar, Sequence, Mapping, Struct, AnyType, Optional, Enum, Union, Instance]

ANY = AnyType()
STRING = Scalar(ScalarKind.STRING)
INTEGER = Scalar(ScalarKind.INTEGER)
FLOAT = Scalar(ScalarKind.FLOAT)
BOOLEAN = Scalar(ScalarKind.BOOLEAN)
SYMBOL = Scalar(ScalarKind.SYMBOL)

_DESCRIPTOR_CLASSES = (Scalar, Sequence, Mapping, Struct, AnyType, Optional, Enum, Union, Instance)

_BUILTIN_SCALARS: dict[type, Scalar] = {
    str: STRING,
    int: INTEGER,
    float: FLOAT,
    bool: BOOLEAN,
}

# Type names accepted in declarative descriptions
_NAMED_TYPES: dict[str, TypeDescriptor] = {
    "string": STRING,
    "str": STRING,
    "integer": INTEGER,
    "int": INTEGER,
    "float": FLOAT,
    "boolean": BOOLEAN,
    "bool": BOOLEAN,
    "symbol": SYMBOL,
    "any": ANY,
}


def is_descriptor(value: object) -> bool:
    return isinstance(value, _DESCRIPTOR_CLASSES)


def as_type(spec: object) -> TypeDescriptor:
    """Convert shorthand into a TypeDescriptor.

    Args:
        spec: A descriptor, a builtin scalar class, a one-element list,
            a one-entry {KeyType: ValueType} dict, a {field: type} dict,
            or any other class

    Returns:
        The equivalent TypeDescriptor

    Raises:
        TypeError: If spec cannot be interpreted as a type
    """
    if is_descriptor(spec):
        return spec  # type: ignore[return-value]
    if isinstance(spec, str):
        try:
            return _NAMED_TYPES[spec.lower()]
        except KeyError:
            raise TypeError(f"Unknown type name {spec!r}; expected one of {', '.join(sorted(_NAMED_TYPES))}") from None
    if isinstance(spec, type):
        if spec in _BUILTIN_SCALARS:
            return _BUILTIN_SCALARS[spec]
        if spec is object:
            return ANY
        if issubclass(spec, enum.Enum):
            return Enum(tuple(spec))
        return Instance(spec)
    if isinstance(spec, list):
        if not spec:
            return Sequence(ANY)
        if len(spec) != 1:
            raise TypeError(f"Sequence shorthand takes exactly one element type, got {len(spec)}")
        return Sequence(as_type(spec[0]))
    if isinstance(spec, dict):
        if not spec:
            return Mapping(ANY, ANY)
        if all(not isinstance(k, str) for k in spec):
            if len(spec) != 1:
                raise TypeError("Mapping shorthand takes exactly one {KeyType: ValueType} entry")
            ((key_type, value_type),) = spec.items()
            return Mapping(as_type(key_type), as_type(value_type))
        fields = []
        for name, field_spec in spec.items():
            if not isinstance(name, str):
                raise TypeError(f"Struct field names must be str, got {name!r}")
            optional = name.endswith("?")
            fields.append(StructField(name.rstrip("?"), as_type(field_spec), optional))
        return Struct(tuple(fields))
    raise TypeError(f"Cannot interpret {spec!r} as a type descriptor")


def describe_type(descriptor: TypeDescriptor | None) -> str:
    """Human-readable type name. None means "undeclared"."""
    if descriptor is None:
        return "untyped"
    return str(descriptor)


def element_type(descriptor: TypeDescriptor | None) -> TypeDescriptor | None:
    """Unwrap a Sequence to its element type; other descriptors pass through."""
    if isinstance(descriptor, Sequence):
        return descriptor.element
    return descriptor


def sequence_of(descriptor: TypeDescriptor | None) -> TypeDescriptor | None:
    """Wrap a known type in a Sequence; undeclared stays undeclared."""
    if descriptor is None:
        return None
    return Sequence(descriptor)


def infer_type(value: object) -> TypeDescriptor:
    """Infer a descriptor for a constant value (used by `set` rewiring)."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, enum.Enum):
        return SYMBOL
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, float):
        return FLOAT
    if isinstance(value, str):
        return STRING
    if isinstance(value, (list, tuple)):
        return Sequence(ANY)
    if isinstance(value, dict):
        return Mapping(ANY, ANY)
    if value is None:
        return Optional(ANY)
    return Instance(type(value))


def is_assignable(provided: TypeDescriptor | None, required: TypeDescriptor | None) -> bool:
    """Whether a property declared as `provided` can satisfy a read of `required`.

    Undeclared types on either side are compatible; the executor checks
    actual values at runtime.
    """
    if provided is None or required is None:
        return True
    if isinstance(required, AnyType) or isinstance(provided, AnyType):
        return True
    if provided == required:
        return True
    if isinstance(required, Optional):
        inner = provided.inner if isinstance(provided, Optional) else provided
        return is_assignable(inner, required.inner)
    if isinstance(required, Union):
        if isinstance(provided, Union):
            return all(is_assignable(alt, required) for alt in provided.alternatives)
        return any(is_assignable(provided, alt) for alt in required.alternatives)
    if isinstance(provided, Enum):
        from brainpipe.contracts.type_checker import matches

        return all(matches(v, required) for v in provided.values)
    if isinstance(required, Sequence) and isinstance(provided, Sequence):
        return is_assignable(provided.element, required.element)
    if isinstance(required, Mapping) and isinstance(provided, Mapping):
        return is_assignable(provided.key, required.key) and is_assignable(provided.value, required.value)
    if isinstance(required, Struct) and isinstance(provided, Struct):
        for want in required.fields:
            have = provided.field(want.name)
            if have is None:
                if not want.optional:
                    return False
                continue
            if not is_assignable(have.type, want.type):
                return False
        return True
    if isinstance(required, Instance) and isinstance(provided, Instance):
        return issubclass(provided.cls, required.cls)
    return False
