# src/brainpipe/operations/base.py
"""Base classes for operation implementations.

Operation classes that are resolved by name (OperationRegistry) MUST
subclass BaseOperation: registry lookups use issubclass(), which Protocols
with data members cannot support. The Operation protocol in
brainpipe.contracts.operation remains the engine-facing interface.

Two authoring styles
--------------------

**1. Static contract + per-record process()**

    class Shout(BaseOperation):
        name = "shout"

        def build_contract(self, builder):
            return builder.reads("text", str).sets("shout", str)

        def process(self, record):
            return {"shout": record.get("text").upper()}

    process() returns either a mapping merged onto the input record, or a
    complete Record.

**2. Whole-array call()**

    class Dedupe(BaseOperation):
        name = "dedupe"

        def build_contract(self, builder):
            return builder.cardinality(Cardinality.FILTER)

        def call(self, records):
            ...

Operations whose declarations depend on the prefix schema (Explode,
Collapse) override declared_reads/declared_sets/declared_deletes.

Lifecycle: constructed once when the pipe is built, immutable afterwards;
create() is called per stage execution and returns the callable the
executor invokes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from brainpipe.contracts.capabilities import ModelReference
from brainpipe.contracts.operation import (
    Cardinality,
    ContractBuilder,
    ErrorPolicy,
    OperationContract,
    RecordsCallable,
)
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.operations.config_base import OperationConfig


class BaseOperation:
    """Base class for all operations.

    Class attributes:
        name: Registry name; defaults to the class name
        config_model: pydantic model the ``options`` mapping is parsed with
    """

    name: str = "operation"
    config_model: ClassVar[type[OperationConfig]] = OperationConfig

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "name" not in cls.__dict__:
            cls.name = cls.__name__

    def __init__(self, options: Mapping[str, Any] | None = None, *, model: ModelReference | None = None) -> None:
        self.options: dict[str, Any] = dict(options or {})
        self.config = self.config_model.from_dict(self.options)
        self._model = model
        self.contract: OperationContract = self.build_contract(ContractBuilder(self.name)).build()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def build_contract(self, builder: ContractBuilder) -> ContractBuilder:
        """Declare reads, sets, deletes and policies. Override in subclasses."""
        return builder

    # =========================================================================
    # Operation protocol
    # =========================================================================

    @property
    def model(self) -> ModelReference | None:
        return self._model

    @property
    def cardinality(self) -> Cardinality:
        return self.contract.cardinality

    @property
    def allows_count_change(self) -> bool:
        return self.cardinality.allows_count_change

    @property
    def required_capability(self) -> str | None:
        return self.contract.required_capability

    @property
    def error_policy(self) -> ErrorPolicy:
        if self.config.ignore_errors is not None:
            return self.config.ignore_errors
        return self.contract.error_policy

    @property
    def timeout(self) -> float | None:
        if self.config.timeout is not None:
            return self.config.timeout
        return self.contract.timeout

    def declared_reads(self, prefix: Schema) -> dict[str, FieldSpec]:
        return dict(self.contract.reads)

    def declared_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        return dict(self.contract.sets)

    def declared_deletes(self, prefix: Schema) -> dict[str, bool]:
        return dict(self.contract.deletes)

    def create(self) -> RecordsCallable:
        return self.call

    # =========================================================================
    # Behaviour
    # =========================================================================

    def call(self, records: list[Record]) -> list[Record]:
        """Process the whole record array. Default: process() each record."""
        return [self._apply(record) for record in records]

    def process(self, record: Record) -> Mapping[str, Any] | Record:
        """Process one record. Override this or call()."""
        raise NotImplementedError(f"{type(self).__name__} must implement process() or call()")

    def _apply(self, record: Record) -> Record:
        result = self.process(record)
        if isinstance(result, Record):
            return result
        return record.with_merged(result or {})


class CallableOperation(BaseOperation):
    """Wrap a bare ``(list[Record]) -> list[Record]`` function with an explicit contract.

    Example:
        contract = ContractBuilder("upper").reads("text", str).sets("upper", str).build()
        op = CallableOperation(
            contract,
            lambda records: [r.with_merged({"upper": r.get("text").upper()}) for r in records],
        )
    """

    def __init__(
        self,
        contract: OperationContract,
        fn: RecordsCallable,
        *,
        model: ModelReference | None = None,
    ) -> None:
        if not callable(fn):
            raise TypeError(f"CallableOperation needs a callable, got {type(fn).__name__}")
        self.name = contract.name
        self.options = {}
        self.config = OperationConfig()
        self._model = model
        self.contract = contract
        self._fn = fn

    def create(self) -> RecordsCallable:
        return self._fn
