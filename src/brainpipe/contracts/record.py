# src/brainpipe/contracts/record.py
"""Record: the immutable property bag that flows through a pipe.

Every operation boundary produces new Records; nothing mutates one in
place. "Mutations" (with_merged, with_removed) return new instances and
leave the receiver untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from brainpipe.contracts.errors import PropertyNotFoundError


def _check_keys(properties: Mapping[str, Any]) -> None:
    for key in properties:
        if not isinstance(key, str):
            raise TypeError(f"Record property names must be str, got {type(key).__name__}: {key!r}")


class Record:
    """Immutable mapping from property name to value.

    Reading a missing key is an explicit miss: get() and [] raise
    PropertyNotFoundError rather than returning a default.

    Equality compares contents only; insertion order is preserved for
    iteration but ignored by ==.

    Example:
        record = Record({"text": "hello"})
        shouted = record.with_merged({"shout": "HELLO"})
        assert "shout" not in record
        assert shouted.get("shout") == "HELLO"
    """

    __slots__ = ("_data",)

    _data: Mapping[str, Any]

    def __init__(self, properties: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        data = dict(properties) if properties is not None else {}
        data.update(kwargs)
        _check_keys(data)
        object.__setattr__(self, "_data", MappingProxyType(data))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Record is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Record is immutable")

    def get(self, key: str) -> Any:
        """Return the value for key.

        Raises:
            PropertyNotFoundError: If the record has no such property
        """
        try:
            return self._data[key]
        except KeyError:
            raise PropertyNotFoundError(
                f"Property '{key}' not found in record (available: {', '.join(self._data) or 'none'})",
                property_name=key,
            ) from None

    __getitem__ = get

    def has(self, key: str) -> bool:
        return key in self._data

    __contains__ = has

    def keys(self) -> list[str]:
        """Property names in insertion order."""
        return list(self._data)

    def items(self) -> list[tuple[str, Any]]:
        return list(self._data.items())

    def with_merged(self, properties: Mapping[str, Any]) -> Record:
        """Return a new Record with the given properties added or overwritten."""
        merged = dict(self._data)
        merged.update(properties)
        return Record(merged)

    def with_removed(self, *keys: str) -> Record:
        """Return a new Record lacking the given keys. Absent keys are ignored."""
        doomed = set(keys)
        return Record({k: v for k, v in self._data.items() if k not in doomed})

    def to_dict(self) -> dict[str, Any]:
        """Plain dict snapshot. Mutating it does not affect the record."""
        return dict(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return dict(self._data) == dict(other._data)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Record({dict(self._data)!r})"


def as_records(items: Iterable[Record | Mapping[str, Any]]) -> list[Record]:
    """Coerce mappings to Records, leaving Records untouched."""
    return [item if isinstance(item, Record) else Record(item) for item in items]
