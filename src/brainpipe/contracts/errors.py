# src/brainpipe/contracts/errors.py
"""Exception taxonomy for brainpipe.

Three families, matching when they can occur:

- ConfigurationError: raised while a pipeline is being built (bad options,
  unknown operations, capability mismatches, incompatible stage schemas,
  conflicting parallel writers). Never raised during execution.
- ContractViolation: raised by the executor when an operation's runtime
  behaviour disagrees with what it declared (missing reads, wrong types,
  undeclared writes or deletions, wrong output count).
- ExecutionError: runtime failures that are not contract breaches (empty
  stage input, explode cardinality mismatches, collapse assertion failures,
  timeouts).

Every error raised from Pipe.call carries enough context (stage name,
operation name, property path) to locate the fault without re-running.
"""

from __future__ import annotations

from typing import Any


class BrainpipeError(Exception):
    """Base class for all brainpipe errors."""


# =============================================================================
# Configuration-time errors
# =============================================================================


class ConfigurationError(BrainpipeError):
    """Raised when a pipeline, stage, or operation is configured incorrectly."""


class MissingOperationError(ConfigurationError):
    """Raised when an operation type name cannot be resolved."""


class MissingModelError(ConfigurationError):
    """Raised when a named model is not registered."""


class CapabilityMismatchError(ConfigurationError):
    """Raised when an operation's bound model lacks its required capability."""


class IncompatibleStagesError(ConfigurationError):
    """Raised when a stage reads properties its predecessors do not provide.

    Attributes:
        stage: Name of the stage whose reads are unsatisfied
        property_name: The missing or mismatched property
    """

    def __init__(self, message: str, *, stage: str | None = None, property_name: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.property_name = property_name


class TypeConflictError(ConfigurationError):
    """Raised when parallel operations in one stage declare different types for one property."""

    def __init__(self, message: str, *, stage: str | None = None, property_name: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.property_name = property_name


class WriteConflictError(ConfigurationError):
    """Raised when a disjoint stage has two operations writing the same property."""

    def __init__(self, message: str, *, stage: str | None = None, property_name: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.property_name = property_name


# =============================================================================
# Runtime errors
# =============================================================================


class ExecutionError(BrainpipeError):
    """Raised when execution fails for a reason other than a contract breach."""


class PipelineTimeoutError(ExecutionError, TimeoutError):
    """Raised when a pipe, stage, or operation exceeds its time budget.

    Timeouts are cooperative: the timed-out work is not interrupted, its
    result is discarded.

    Attributes:
        scope: Which budget expired ("pipe", "stage" or "operation")
        seconds: The budget that was exceeded, in seconds
    """

    def __init__(self, message: str, *, scope: str, seconds: float | None = None) -> None:
        super().__init__(message)
        self.scope = scope
        self.seconds = seconds


class EmptyInputError(ExecutionError):
    """Raised when a stage or pipe receives no records."""


# =============================================================================
# Contract violations
# =============================================================================


class ContractViolation(BrainpipeError):
    """Base class for executor-detected contract breaches.

    Attributes:
        operation: Name of the operation that broke its contract
        stage: Name of the stage it ran in (None outside a stage)
        property_name: The property involved
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        stage: str | None = None,
        property_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.stage = stage
        self.property_name = property_name


class PropertyNotFoundError(ContractViolation):
    """Raised when a required property is absent (a read, or a declared set)."""


class TypeMismatchError(ContractViolation):
    """Raised when a value does not satisfy its declared type.

    Attributes:
        path: Fully qualified path of the offending value (e.g. "records[2].tags[0]")
        expected: Human-readable expected type
        actual: Human-readable description of the actual value
    """

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        expected: str | None = None,
        actual: str | None = None,
        operation: str | None = None,
        stage: str | None = None,
        property_name: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation, stage=stage, property_name=property_name)
        self.path = path
        self.expected = expected
        self.actual = actual


class UnexpectedPropertyError(ContractViolation):
    """Raised when an output holds a property the operation did not declare.

    Covers undeclared new keys, undeclared value changes, and declared
    deletes that are still present.
    """


class UnexpectedDeletionError(ContractViolation):
    """Raised when an input property vanished without a declared delete."""


class OutputCountMismatchError(ContractViolation):
    """Raised when a 1:1 operation returns a different number of records."""

    def __init__(self, message: str, *, expected: int, actual: int, **context: Any) -> None:
        super().__init__(message, **context)
        self.expected = expected
        self.actual = actual
