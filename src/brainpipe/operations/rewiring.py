# src/brainpipe/operations/rewiring.py
"""Field rewiring: copy, move, set, delete.

Applied in that fixed order after an operation's primary effect:

    copy   {source: target}  target = source, source kept
    move   {source: target}  target = source, source removed
    set    {name: value}     name = constant value
    delete [name, ...]       name removed

Each step sees the result of the previous one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from brainpipe.contracts.errors import PropertyNotFoundError
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.contracts.types import infer_type
from brainpipe.operations.config_base import RewiringConfig


def _take(data: dict[str, Any], name: str, step: str) -> Any:
    try:
        return data[name]
    except KeyError:
        raise PropertyNotFoundError(
            f"Cannot {step} '{name}': property not found (available: {', '.join(data) or 'none'})",
            property_name=name,
        ) from None


@dataclass(frozen=True, slots=True)
class Rewiring:
    copy: dict[str, str] = field(default_factory=dict)
    move: dict[str, str] = field(default_factory=dict)
    set: dict[str, Any] = field(default_factory=dict)
    delete: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: RewiringConfig) -> Rewiring:
        return cls(
            copy=dict(config.copy_fields),
            move=dict(config.move_fields),
            set=dict(config.set_values),
            delete=tuple(config.delete_fields),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.copy or self.move or self.set or self.delete)

    def apply(self, record: Record) -> Record:
        """Apply every step to one record.

        Raises:
            PropertyNotFoundError: If a copy/move source is absent
        """
        if self.is_empty:
            return record
        data = record.to_dict()
        for source, target in self.copy.items():
            data[target] = _take(data, source, "copy")
        for source, target in self.move.items():
            value = _take(data, source, "move")
            del data[source]
            data[target] = value
        data.update(self.set)
        for name in self.delete:
            data.pop(name, None)
        return Record(data)

    def reads(self, prefix: Schema, produced: Schema | None = None) -> dict[str, FieldSpec]:
        """Copy/move sources that must already be on the input record.

        Args:
            prefix: Schema before the operation
            produced: Properties the primary effect writes; sources found
                there are not reads
        """
        available = set(produced or {})
        reads: dict[str, FieldSpec] = {}
        for source, target in [*self.copy.items(), *self.move.items()]:
            if source not in available and source not in reads:
                spec = prefix.get(source)
                reads[source] = FieldSpec(spec.type if spec is not None else None)
            available.add(target)
        return reads

    def project(self, sets: Schema, prefix: Schema) -> tuple[dict[str, FieldSpec], dict[str, bool]]:
        """Apply the rewiring to declared sets.

        Args:
            sets: Sets produced by the primary effect
            prefix: Schema before the operation

        Returns:
            (sets, deletes) after rewiring. A name removed and then set
            again is a set, never a delete, so the two never overlap.
        """
        result = dict(sets)
        removed: list[str] = []

        def type_of(name: str) -> Any:
            spec = result.get(name) or prefix.get(name)
            return spec.type if spec is not None else None

        for source, target in self.copy.items():
            result[target] = FieldSpec(type_of(source))
        for source, target in self.move.items():
            result[target] = FieldSpec(type_of(source))
            result.pop(source, None)
            removed.append(source)
        for name, value in self.set.items():
            result[name] = FieldSpec(infer_type(value))
        for name in self.delete:
            result.pop(name, None)
            removed.append(name)

        deletes = {name: False for name in dict.fromkeys(removed) if name not in result}
        return result, deletes
