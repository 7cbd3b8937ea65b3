# src/brainpipe/operations/link.py
"""Link operation: rename, duplicate, set and remove fields (1:1).

Options:
    copy:   {source: target}   duplicate source into target
    move:   {source: target}   rename source to target
    set:    {name: value}      write a constant
    delete: [name, ...]        remove fields

Applied in that order. At least one option is required. Types flow
through: a copied or moved field keeps its prefix type; a set field gets
the type inferred from its constant.
"""

from typing import Any, Self

from pydantic import model_validator

from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.operations.base import BaseOperation
from brainpipe.operations.config_base import RewiringConfig
from brainpipe.operations.rewiring import Rewiring


class LinkConfig(RewiringConfig):
    """Configuration for the link operation."""

    @model_validator(mode="after")
    def validate_has_rewiring(self) -> Self:
        if not (self.copy_fields or self.move_fields or self.set_values or self.delete_fields):
            raise ValueError("Link requires at least one of: copy, move, set, delete")
        return self


class Link(BaseOperation):
    """Rewire fields without changing record count."""

    name = "link"
    config_model = LinkConfig

    def __init__(self, options: dict[str, Any] | None = None, *, model: Any = None) -> None:
        super().__init__(options, model=model)
        self._rewiring = Rewiring.from_config(self.config)  # type: ignore[arg-type]

    def declared_reads(self, prefix: Schema) -> dict[str, FieldSpec]:
        return self._rewiring.reads(prefix)

    def declared_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        sets, _ = self._rewiring.project({}, prefix)
        return sets

    def declared_deletes(self, prefix: Schema) -> dict[str, bool]:
        _, deletes = self._rewiring.project({}, prefix)
        return deletes

    def call(self, records: list[Record]) -> list[Record]:
        return [self._rewiring.apply(record) for record in records]
