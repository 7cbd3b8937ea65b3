# src/brainpipe/contracts/operation.py
"""Operation contracts.

An operation declares, as a function of the schema that precedes it, which
properties it reads, sets and deletes, whether it may change the number of
records, which model capability it needs, and which errors it tolerates.
The executor holds it to those declarations.

Contracts are immutable values assembled with ContractBuilder:

    contract = (
        ContractBuilder("shout")
        .reads("text", str)
        .sets("shout", str)
        .ignore_errors(lambda e: isinstance(e, ValueError))
        .build()
    )

Operations whose declarations depend on the prefix schema (Explode,
Collapse) implement the Operation protocol's declared_* methods directly.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

from brainpipe.contracts.capabilities import is_valid_capability
from brainpipe.contracts.errors import ConfigurationError
from brainpipe.contracts.schema import FieldSpec, Schema

if TYPE_CHECKING:
    from brainpipe.contracts.capabilities import ModelReference
    from brainpipe.contracts.record import Record


class Cardinality(StrEnum):
    """How an operation relates input record count to output record count."""

    ONE_TO_ONE = "one_to_one"
    FILTER = "filter"  # N -> <=N
    EXPAND = "expand"  # 1 -> N
    COLLAPSE = "collapse"  # N -> 1

    @property
    def allows_count_change(self) -> bool:
        return self is not Cardinality.ONE_TO_ONE


ErrorPredicate = Callable[[BaseException], bool]
ErrorPolicy = bool | ErrorPredicate
"""False: propagate everything. True: ignore everything. Callable: ignore when it returns True."""

RecordsCallable = Callable[[list["Record"]], list["Record"]]


def check_error_policy(policy: object) -> ErrorPolicy:
    """Validate an error policy value at construction time.

    Raises:
        ConfigurationError: If policy is neither a bool nor a callable
    """
    if isinstance(policy, bool) or callable(policy):
        return policy  # type: ignore[return-value]
    raise ConfigurationError(f"ignore_errors must be a bool or a callable, got {type(policy).__name__}")


def should_ignore(policy: ErrorPolicy, error: BaseException) -> bool:
    """Evaluate an error policy against a concrete error."""
    if isinstance(policy, bool):
        return policy
    return bool(policy(error))


@dataclass(frozen=True, slots=True)
class OperationContract:
    """Static declaration of an operation's surface.

    Attributes:
        name: Operation name used in errors and logs
        reads: Properties read, by name
        sets: Properties written, by name
        deletes: Properties removed, mapped to whether the removal is optional
        cardinality: Record-count behaviour
        required_capability: Model capability the bound model must have
        error_policy: Which errors are ignored
        timeout: Per-call budget in seconds, or None
    """

    name: str
    reads: Mapping[str, FieldSpec] = field(default_factory=dict)
    sets: Mapping[str, FieldSpec] = field(default_factory=dict)
    deletes: Mapping[str, bool] = field(default_factory=dict)
    cardinality: Cardinality = Cardinality.ONE_TO_ONE
    required_capability: str | None = None
    error_policy: ErrorPolicy = False
    timeout: float | None = None

    def __post_init__(self) -> None:
        overlap = set(self.sets) & set(self.deletes)
        if overlap:
            raise ConfigurationError(
                f"Operation '{self.name}' both sets and deletes: {', '.join(sorted(overlap))}"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Operation '{self.name}' timeout must be positive, got {self.timeout}")
        if self.required_capability is not None and not is_valid_capability(self.required_capability):
            raise ConfigurationError(
                f"Operation '{self.name}' requires unknown capability '{self.required_capability}'"
            )
        check_error_policy(self.error_policy)
        # Freeze the mappings so a contract cannot drift after construction
        object.__setattr__(self, "reads", MappingProxyType(dict(self.reads)))
        object.__setattr__(self, "sets", MappingProxyType(dict(self.sets)))
        object.__setattr__(self, "deletes", MappingProxyType(dict(self.deletes)))

    @property
    def allows_count_change(self) -> bool:
        return self.cardinality.allows_count_change


class ContractBuilder:
    """Fluent builder for OperationContract.

    Type arguments accept the shorthand understood by types.as_type().
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._reads: dict[str, FieldSpec] = {}
        self._sets: dict[str, FieldSpec] = {}
        self._deletes: dict[str, bool] = {}
        self._cardinality = Cardinality.ONE_TO_ONE
        self._capability: str | None = None
        self._error_policy: ErrorPolicy = False
        self._timeout: float | None = None

    def reads(self, name: str, type_spec: object = None, *, optional: bool = False) -> Self:
        self._reads[name] = FieldSpec.of(type_spec, optional=optional)
        return self

    def sets(self, name: str, type_spec: object = None, *, optional: bool = False) -> Self:
        self._sets[name] = FieldSpec.of(type_spec, optional=optional)
        return self

    def deletes(self, name: str, *, optional: bool = False) -> Self:
        self._deletes[name] = optional
        return self

    def cardinality(self, cardinality: Cardinality | str) -> Self:
        self._cardinality = Cardinality(cardinality)
        return self

    def requires_model(self, capability: str) -> Self:
        self._capability = str(capability)
        return self

    def ignore_errors(self, policy: ErrorPolicy = True) -> Self:
        self._error_policy = check_error_policy(policy)
        return self

    def timeout(self, seconds: float | None) -> Self:
        self._timeout = seconds
        return self

    def build(self) -> OperationContract:
        return OperationContract(
            name=self._name,
            reads=self._reads,
            sets=self._sets,
            deletes=self._deletes,
            cardinality=self._cardinality,
            required_capability=self._capability,
            error_policy=self._error_policy,
            timeout=self._timeout,
        )


@runtime_checkable
class Operation(Protocol):
    """What the engine requires of an operation.

    declared_* receive the prefix schema (the schema before this
    operation) and return fresh dicts the caller may keep.
    """

    name: str

    @property
    def cardinality(self) -> Cardinality: ...

    @property
    def allows_count_change(self) -> bool: ...

    @property
    def required_capability(self) -> str | None: ...

    @property
    def error_policy(self) -> ErrorPolicy: ...

    @property
    def timeout(self) -> float | None: ...

    @property
    def model(self) -> ModelReference | None: ...

    def declared_reads(self, prefix: Schema) -> dict[str, FieldSpec]: ...

    def declared_sets(self, prefix: Schema) -> dict[str, FieldSpec]: ...

    def declared_deletes(self, prefix: Schema) -> dict[str, bool]: ...

    def create(self) -> RecordsCallable: ...
