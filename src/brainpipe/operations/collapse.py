# src/brainpipe/operations/collapse.py
"""Collapse operation: merge many records into one (N -> 1).

Options:
    merge: {field: strategy}  per-field strategy; unlisted fields use "equal"
    copy/move/set/delete: rewiring applied to the merged record

Strategies (None values are dropped before a strategy runs):

    collect   all values, in record order
    sum       numeric sum
    concat    string join, or sequence concatenation
    first     first value
    last      last value
    equal     all values must be equal (default); else ExecutionError
    distinct  all values, which must be unique; else ExecutionError

A field whose values are all None collapses to None.

Schema effect: collect/distinct widen a field's type to a sequence of it;
every other field keeps its prefix type.
"""

from collections.abc import Callable
from typing import Any, Literal

from pydantic import Field

from brainpipe.contracts.errors import ExecutionError
from brainpipe.contracts.operation import Cardinality, ContractBuilder
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.contracts.types import sequence_of
from brainpipe.operations.base import BaseOperation
from brainpipe.operations.config_base import RewiringConfig
from brainpipe.operations.rewiring import Rewiring

CollapseStrategy = Literal["collect", "sum", "concat", "first", "last", "equal", "distinct"]

_WIDENING: frozenset[str] = frozenset({"collect", "distinct"})


class CollapseConfig(RewiringConfig):
    """Configuration for the collapse operation."""

    merge: dict[str, CollapseStrategy] = Field(default_factory=dict)


def _collect(values: list[Any], name: str) -> Any:
    return values


def _sum(values: list[Any], name: str) -> Any:
    try:
        return sum(values[1:], start=values[0])
    except TypeError as e:
        raise ExecutionError(f"Collapse: cannot sum field '{name}': {e}") from e


def _concat(values: list[Any], name: str) -> Any:
    first = values[0]
    if isinstance(first, str) and all(isinstance(v, str) for v in values):
        return "".join(values)
    if isinstance(first, (list, tuple)) and all(isinstance(v, (list, tuple)) for v in values):
        return [item for v in values for item in v]
    raise ExecutionError(
        f"Collapse: cannot concat field '{name}': values must all be strings or all be sequences, got {values!r}"
    )


def _first(values: list[Any], name: str) -> Any:
    return values[0]


def _last(values: list[Any], name: str) -> Any:
    return values[-1]


def _equal(values: list[Any], name: str) -> Any:
    first = values[0]
    if any(v != first for v in values[1:]):
        raise ExecutionError(f"Collapse: conflicting values for field '{name}': {values!r}")
    return first


def _distinct(values: list[Any], name: str) -> Any:
    # Pairwise == so unhashable values work
    for i, value in enumerate(values):
        if any(value == other for other in values[i + 1 :]):
            raise ExecutionError(f"Collapse: duplicate values for field '{name}': {values!r}")
    return values


_STRATEGIES: dict[str, Callable[[list[Any], str], Any]] = {
    "collect": _collect,
    "sum": _sum,
    "concat": _concat,
    "first": _first,
    "last": _last,
    "equal": _equal,
    "distinct": _distinct,
}


class Collapse(BaseOperation):
    """Merge all input records into a single record."""

    name = "collapse"
    config_model = CollapseConfig

    def __init__(self, options: dict[str, Any] | None = None, *, model: Any = None) -> None:
        super().__init__(options, model=model)
        cfg: CollapseConfig = self.config  # type: ignore[assignment]
        self._strategies: dict[str, str] = dict(cfg.merge)
        self._rewiring = Rewiring.from_config(cfg)

    def build_contract(self, builder: ContractBuilder) -> ContractBuilder:
        return builder.cardinality(Cardinality.COLLAPSE)

    def strategy_for(self, name: str) -> str:
        return self._strategies.get(name, "equal")

    def declared_reads(self, prefix: Schema) -> dict[str, FieldSpec]:
        return dict(prefix)

    def _primary_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        sets: dict[str, FieldSpec] = {}
        for name, spec in prefix.items():
            if self.strategy_for(name) in _WIDENING:
                sets[name] = FieldSpec(sequence_of(spec.type), optional=spec.optional)
            else:
                sets[name] = spec
        return sets

    def declared_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        sets, _ = self._rewiring.project(self._primary_sets(prefix), prefix)
        return sets

    def declared_deletes(self, prefix: Schema) -> dict[str, bool]:
        _, deletes = self._rewiring.project(self._primary_sets(prefix), prefix)
        return deletes

    def call(self, records: list[Record]) -> list[Record]:
        if not records:
            return [Record()]

        keys = dict.fromkeys(key for record in records for key in record)
        merged: dict[str, Any] = {}
        for key in keys:
            if key in self._rewiring.delete:
                continue
            values = [record.get(key) for record in records if key in record]
            values = [v for v in values if v is not None]
            if not values:
                merged[key] = None
                continue
            merged[key] = _STRATEGIES[self.strategy_for(key)](values, key)
        return [self._rewiring.apply(Record(merged))]
