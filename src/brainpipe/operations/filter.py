# src/brainpipe/operations/filter.py
"""Filter operation: keep records matching a field/value pair or a predicate (N -> <=N).

Options:
    field + value: keep records whose ``field`` equals ``value``
    condition:     callable(Record) -> bool; keep records where it is truthy
    copy/move/set/delete: rewiring applied to the kept records

Exactly one of ``field`` or ``condition`` is required. Without rewiring,
Filter is a pure schema passthrough.
"""

from collections.abc import Callable
from typing import Any, Self

from pydantic import model_validator

from brainpipe.contracts.operation import Cardinality, ContractBuilder
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.operations.base import BaseOperation
from brainpipe.operations.config_base import RewiringConfig
from brainpipe.operations.rewiring import Rewiring


class FilterConfig(RewiringConfig):
    """Configuration for the filter operation."""

    field: str | None = None
    value: Any = None
    condition: Callable[[Record], Any] | None = None

    @model_validator(mode="after")
    def validate_selector(self) -> Self:
        if self.field is None and self.condition is None:
            raise ValueError("Filter requires either 'condition' or 'field'")
        if self.field is not None and self.condition is not None:
            raise ValueError("Filter accepts 'condition' or 'field', not both")
        return self


class Filter(BaseOperation):
    """Drop records that do not match."""

    name = "filter"
    config_model = FilterConfig

    def __init__(self, options: dict[str, Any] | None = None, *, model: Any = None) -> None:
        super().__init__(options, model=model)
        cfg: FilterConfig = self.config  # type: ignore[assignment]
        self._field = cfg.field
        self._value = cfg.value
        self._condition = cfg.condition
        self._rewiring = Rewiring.from_config(cfg)

    def build_contract(self, builder: ContractBuilder) -> ContractBuilder:
        return builder.cardinality(Cardinality.FILTER)

    def declared_reads(self, prefix: Schema) -> dict[str, FieldSpec]:
        reads: dict[str, FieldSpec] = {}
        if self._field is not None:
            spec = prefix.get(self._field)
            reads[self._field] = FieldSpec(spec.type if spec is not None else None)
        reads.update({k: v for k, v in self._rewiring.reads(prefix).items() if k not in reads})
        return reads

    def declared_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        sets, _ = self._rewiring.project({}, prefix)
        return sets

    def declared_deletes(self, prefix: Schema) -> dict[str, bool]:
        _, deletes = self._rewiring.project({}, prefix)
        return deletes

    def _keep(self, record: Record) -> bool:
        if self._condition is not None:
            return bool(self._condition(record))
        return bool(record.get(self._field) == self._value)  # type: ignore[arg-type]

    def call(self, records: list[Record]) -> list[Record]:
        return [self._rewiring.apply(record) for record in records if self._keep(record)]
