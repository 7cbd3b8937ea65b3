# src/brainpipe/contracts/__init__.py
"""Shared contracts: records, type descriptors, schemas, operation contracts, errors.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes live in brainpipe.core.config and are not re-exported here.

Import patterns:
    from brainpipe.contracts import Record, ContractBuilder, TypeMismatchError
    from brainpipe.core.config import EngineSettings
"""

from brainpipe.contracts.capabilities import (
    VALID_CAPABILITIES,
    Capability,
    ModelReference,
    is_valid_capability,
)
from brainpipe.contracts.errors import (
    BrainpipeError,
    CapabilityMismatchError,
    ConfigurationError,
    ContractViolation,
    EmptyInputError,
    ExecutionError,
    IncompatibleStagesError,
    MissingModelError,
    MissingOperationError,
    OutputCountMismatchError,
    PipelineTimeoutError,
    PropertyNotFoundError,
    TypeConflictError,
    TypeMismatchError,
    UnexpectedDeletionError,
    UnexpectedPropertyError,
    WriteConflictError,
)
from brainpipe.contracts.operation import (
    Cardinality,
    ContractBuilder,
    ErrorPolicy,
    Operation,
    OperationContract,
    RecordsCallable,
    should_ignore,
)
from brainpipe.contracts.record import Record, as_records
from brainpipe.contracts.schema import FieldSpec, Schema, apply_schema_flow, format_schema, schema_from
from brainpipe.contracts.type_checker import describe_value, matches, validate
from brainpipe.contracts.types import (
    ANY,
    BOOLEAN,
    FLOAT,
    INTEGER,
    STRING,
    SYMBOL,
    AnyType,
    Enum,
    Instance,
    Mapping,
    Optional,
    Scalar,
    ScalarKind,
    Sequence,
    Struct,
    StructField,
    TypeDescriptor,
    Union,
    as_type,
    describe_type,
    infer_type,
    is_assignable,
)

__all__ = [
    # types
    "ANY",
    "BOOLEAN",
    "FLOAT",
    "INTEGER",
    "STRING",
    "SYMBOL",
    "AnyType",
    "Enum",
    "Instance",
    "Mapping",
    "Optional",
    "Scalar",
    "ScalarKind",
    "Sequence",
    "Struct",
    "StructField",
    "TypeDescriptor",
    "Union",
    "as_type",
    "describe_type",
    "infer_type",
    "is_assignable",
    # type_checker
    "describe_value",
    "matches",
    "validate",
    # record
    "Record",
    "as_records",
    # schema
    "FieldSpec",
    "Schema",
    "apply_schema_flow",
    "format_schema",
    "schema_from",
    # operation
    "Cardinality",
    "ContractBuilder",
    "ErrorPolicy",
    "Operation",
    "OperationContract",
    "RecordsCallable",
    "should_ignore",
    # capabilities
    "VALID_CAPABILITIES",
    "Capability",
    "ModelReference",
    "is_valid_capability",
    # errors
    "BrainpipeError",
    "CapabilityMismatchError",
    "ConfigurationError",
    "ContractViolation",
    "EmptyInputError",
    "ExecutionError",
    "IncompatibleStagesError",
    "MissingModelError",
    "MissingOperationError",
    "OutputCountMismatchError",
    "PipelineTimeoutError",
    "PropertyNotFoundError",
    "TypeConflictError",
    "TypeMismatchError",
    "UnexpectedDeletionError",
    "UnexpectedPropertyError",
    "WriteConflictError",
]
