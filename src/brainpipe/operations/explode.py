# src/brainpipe/operations/explode.py
"""Explode operation: fan one record out into many (1 -> N).

Options:
    split:    {source: target}  sequence fields to split; element i of every
              source goes to its target on output record i (required)
    on_empty: "skip" (default) yields no records for an empty sequence;
              "error" raises ExecutionError
    copy/move/set/delete: rewiring applied to every output record

All split sources of one record must have the same length, otherwise
ExecutionError. Non-split fields are copied to every output.

Schema effect: split sources are deleted; each target gets the element
type of its source; every other prefix field passes through.

Example:
    {"order_ids": ["A", "B"], "customer": "c1"}
    split {order_ids: order_id}
    -> {"order_id": "A", "customer": "c1"}, {"order_id": "B", "customer": "c1"}
"""

from collections.abc import Sequence
from typing import Any, Literal

from pydantic import Field, field_validator

from brainpipe.contracts.errors import ExecutionError
from brainpipe.contracts.operation import Cardinality, ContractBuilder
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.contracts.types import element_type
from brainpipe.operations.base import BaseOperation
from brainpipe.operations.config_base import RewiringConfig
from brainpipe.operations.rewiring import Rewiring


class ExplodeConfig(RewiringConfig):
    """Configuration for the explode operation."""

    split: dict[str, str] = Field(description="Sequence field -> per-element target field")
    on_empty: Literal["skip", "error"] = "skip"

    @field_validator("split")
    @classmethod
    def validate_split(cls, v: dict[str, str]) -> dict[str, str]:
        if not v:
            raise ValueError("Explode requires a non-empty 'split' mapping")
        return v


class Explode(BaseOperation):
    """Split sequence-valued fields into one record per element."""

    name = "explode"
    config_model = ExplodeConfig

    def __init__(self, options: dict[str, Any] | None = None, *, model: Any = None) -> None:
        super().__init__(options, model=model)
        cfg: ExplodeConfig = self.config  # type: ignore[assignment]
        self._split = dict(cfg.split)
        self._on_empty = cfg.on_empty
        self._rewiring = Rewiring.from_config(cfg)

    def build_contract(self, builder: ContractBuilder) -> ContractBuilder:
        return builder.cardinality(Cardinality.EXPAND)

    def declared_reads(self, prefix: Schema) -> dict[str, FieldSpec]:
        reads: dict[str, FieldSpec] = {}
        for source in self._split:
            spec = prefix.get(source)
            reads[source] = FieldSpec(spec.type if spec is not None else None)
        produced = self._primary_sets(prefix)
        for name, spec in self._rewiring.reads(prefix, produced).items():
            reads.setdefault(name, spec)
        return reads

    def _primary_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        sets = {name: spec for name, spec in prefix.items() if name not in self._split}
        for source, target in self._split.items():
            spec = prefix.get(source)
            sets[target] = FieldSpec(element_type(spec.type) if spec is not None else None)
        return sets

    def declared_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        sets, _ = self._rewiring.project(self._primary_sets(prefix), prefix)
        return sets

    def declared_deletes(self, prefix: Schema) -> dict[str, bool]:
        sets, deletes = self._rewiring.project(self._primary_sets(prefix), prefix)
        for source in self._split:
            if source not in sets:
                deletes.setdefault(source, False)
        return deletes

    def _explode(self, record: Record) -> list[Record]:
        arrays: dict[str, Sequence[Any]] = {}
        for source in self._split:
            value = record.get(source)
            if not isinstance(value, (list, tuple)):
                raise ExecutionError(f"Explode: field '{source}' must be a sequence, got {type(value).__name__}")
            arrays[source] = value

        first_source, first = next(iter(arrays.items()))
        for source, values in arrays.items():
            if len(values) != len(first):
                raise ExecutionError(
                    f"Explode: mismatched cardinalities. Field '{first_source}' has {len(first)} elements, "
                    f"but '{source}' has {len(values)}"
                )

        if not first:
            if self._on_empty == "error":
                raise ExecutionError(f"Explode: empty sequence in field '{first_source}'")
            return []

        base = record.with_removed(*self._split)
        outputs = []
        for index in range(len(first)):
            exploded = base.with_merged({target: arrays[source][index] for source, target in self._split.items()})
            outputs.append(self._rewiring.apply(exploded))
        return outputs

    def call(self, records: list[Record]) -> list[Record]:
        return [out for record in records for out in self._explode(record)]
