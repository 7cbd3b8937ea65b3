# src/brainpipe/engine/executor.py
"""OperationExecutor: runs one operation and holds it to its contract.

For each call the executor:

1. Validates every input record against the operation's declared reads
   (required reads must be present; present reads must match their type)
2. Invokes the operation's callable, bounded by the operation budget
3. Checks the result is a list of Records and, for 1:1 operations, that
   the count is unchanged
4. Validates declared sets (present unless optional, correctly typed)
5. Validates declared deletes (absent unless optional)
6. Rejects undeclared effects: new keys, vanished keys, and for 1:1
   operations changed values of keys the operation did not declare

Any failure is offered to the operation's error policy. An ignored error
turns the call into a passthrough: the input records are returned
unchanged.

Timeouts are cooperative. The callable runs on a worker thread; when the
budget expires the executor stops waiting, discards the eventual result
and raises PipelineTimeoutError. The worker thread is not interrupted.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

import structlog

from brainpipe.contracts.errors import (
    ExecutionError,
    OutputCountMismatchError,
    PropertyNotFoundError,
    TypeMismatchError,
    UnexpectedDeletionError,
    UnexpectedPropertyError,
)
from brainpipe.contracts.operation import Operation, should_ignore
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema
from brainpipe.contracts.type_checker import validate
from brainpipe.engine.budget import Budget
from brainpipe.engine.clock import DEFAULT_CLOCK, Clock
from brainpipe.telemetry.collectors import NullMetricsCollector
from brainpipe.telemetry.protocols import MetricsCollector

slog = structlog.get_logger(__name__)


def infer_prefix(records: Sequence[Record]) -> dict[str, FieldSpec]:
    """Untyped schema covering every key present in records.

    A key missing from some records is optional.
    """
    counts: dict[str, int] = {}
    for record in records:
        for key in record:
            counts[key] = counts.get(key, 0) + 1
    return {key: FieldSpec(optional=count < len(records)) for key, count in counts.items()}


def _changed(before: Any, after: Any) -> bool:
    return before is not after and before != after


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """Records produced by one executor call.

    Attributes:
        records: Output records (the inputs unchanged when ignored)
        ignored: True if the operation failed and its error policy ignored
            the failure; the operation then wrote nothing
    """

    records: list[Record]
    ignored: bool = False


class OperationExecutor:
    """Runtime wrapper enforcing one operation's contract, timeout and error policy.

    Example:
        executor = OperationExecutor(op, stage_name="enrich")
        outputs = executor.call([Record({"text": "hi"})])
    """

    def __init__(
        self,
        operation: Operation,
        *,
        stage_name: str | None = None,
        pipe_name: str | None = None,
        prefix_schema: Schema | None = None,
        metrics: MetricsCollector | None = None,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        self._operation = operation
        self._stage_name = stage_name
        self._pipe_name = pipe_name
        self._prefix = dict(prefix_schema) if prefix_schema is not None else None
        self._metrics: MetricsCollector = metrics if metrics is not None else NullMetricsCollector()
        self._clock = clock
        self._callable = operation.create()

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def name(self) -> str:
        return self._operation.name

    def call(self, records: Sequence[Record], *, budget: Budget | None = None) -> list[Record]:
        """Run the operation over records.

        Args:
            records: Input records
            budget: Enclosing (stage) budget; the operation's own timeout is
                clamped to it

        Returns:
            Output records, or the inputs unchanged if an error was ignored

        Raises:
            ContractViolation: If the operation broke its contract
            PipelineTimeoutError: If the operation exceeded its budget
            Exception: Whatever the callable raised, unless ignored
        """
        return self.execute(records, budget=budget).records

    def execute(self, records: Sequence[Record], *, budget: Budget | None = None) -> ExecutionOutcome:
        """Like call(), but also reports whether an error was ignored.

        Stages use this to keep an ignored operation out of the merge.
        """
        records = list(records)
        prefix = self._prefix if self._prefix is not None else infer_prefix(records)
        op_budget = (budget or Budget.unbounded(scope="operation", clock=self._clock)).child(
            self._operation.timeout, scope="operation"
        )

        self._metrics.operation_started(
            operation=self.name,
            record_count=len(records),
            stage=self._stage_name,
            pipe=self._pipe_name,
        )
        start = time.perf_counter()

        try:
            reads = self._operation.declared_reads(prefix)
            for record in records:
                self._validate_reads(record, reads)
            outputs = self._invoke(records, op_budget)
            self._validate_outputs(records, outputs, prefix)
        except Exception as error:
            duration_ms = (time.perf_counter() - start) * 1000
            if should_ignore(self._operation.error_policy, error):
                slog.warning(
                    "operation_error_ignored",
                    operation=self.name,
                    stage=self._stage_name,
                    pipe=self._pipe_name,
                    error_type=type(error).__name__,
                    error=str(error),
                )
                self._metrics.operation_completed(
                    operation=self.name,
                    record_count=len(records),
                    duration_ms=duration_ms,
                    stage=self._stage_name,
                    pipe=self._pipe_name,
                )
                return ExecutionOutcome(records, ignored=True)
            self._metrics.operation_failed(
                operation=self.name,
                error=error,
                duration_ms=duration_ms,
                stage=self._stage_name,
                pipe=self._pipe_name,
            )
            raise

        self._metrics.operation_completed(
            operation=self.name,
            record_count=len(outputs),
            duration_ms=(time.perf_counter() - start) * 1000,
            stage=self._stage_name,
            pipe=self._pipe_name,
        )
        return ExecutionOutcome(list(outputs))

    # =========================================================================
    # Invocation
    # =========================================================================

    def _invoke(self, records: list[Record], budget: Budget) -> Any:
        remaining = budget.remaining()
        if remaining is None:
            return self._callable(list(records))
        if remaining <= 0:
            raise budget.timeout_error(f"Operation '{self.name}' could not start: {budget.scope} budget exhausted")

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"brainpipe-op-{self.name}")
        try:
            future = pool.submit(self._callable, list(records))
            done, _ = wait([future], timeout=remaining)
            if future not in done:
                future.cancel()
                raise budget.timeout_error(
                    f"Operation '{self.name}' timed out after {remaining:.3f}s ({budget.scope} budget)"
                )
            return future.result()
        finally:
            # Do not block on a timed-out callable; its result is discarded
            pool.shutdown(wait=False)

    # =========================================================================
    # Contract checks
    # =========================================================================

    def _context(self, property_name: str | None = None) -> dict[str, Any]:
        return {"operation": self.name, "stage": self._stage_name, "property_name": property_name}

    def _where(self) -> str:
        if self._stage_name is None:
            return f"Operation '{self.name}'"
        return f"Operation '{self.name}' in stage '{self._stage_name}'"

    def _check_type(self, value: Any, spec: FieldSpec, name: str, phase: str) -> None:
        try:
            validate(value, spec.type, name)
        except TypeMismatchError as e:
            raise TypeMismatchError(
                f"{self._where()} {phase}: {e}",
                path=e.path,
                expected=e.expected,
                actual=e.actual,
                **self._context(name),
            ) from None

    def _validate_reads(self, record: Record, reads: Mapping[str, FieldSpec]) -> None:
        for name, spec in reads.items():
            if name not in record:
                if spec.optional:
                    continue
                raise PropertyNotFoundError(
                    f"{self._where()} expected to read '{name}' but it was not found "
                    f"(available: {', '.join(record.keys()) or 'none'})",
                    **self._context(name),
                )
            self._check_type(record.get(name), spec, name, "read")

    def _validate_outputs(self, inputs: list[Record], outputs: Any, prefix: Schema) -> None:
        if not isinstance(outputs, (list, tuple)) or not all(isinstance(r, Record) for r in outputs):
            raise ExecutionError(f"{self._where()} must return a list of Records, got {type(outputs).__name__}")

        if not self._operation.allows_count_change and len(outputs) != len(inputs):
            raise OutputCountMismatchError(
                f"{self._where()} returned {len(outputs)} records but received {len(inputs)}",
                expected=len(inputs),
                actual=len(outputs),
                **self._context(),
            )

        sets = self._operation.declared_sets(prefix)
        deletes = self._operation.declared_deletes(prefix)

        for record in outputs:
            for name, spec in sets.items():
                if name not in record:
                    if spec.optional:
                        continue
                    raise PropertyNotFoundError(
                        f"{self._where()} declared it would set '{name}' but it was not found in output",
                        **self._context(name),
                    )
                self._check_type(record.get(name), spec, name, "output")
            for name, optional in deletes.items():
                if name in record and not optional:
                    raise UnexpectedPropertyError(
                        f"{self._where()} declared it would delete '{name}' but it still exists in output",
                        **self._context(name),
                    )

        self._validate_undeclared(inputs, list(outputs), set(sets), set(deletes))

    def _validate_undeclared(
        self,
        inputs: list[Record],
        outputs: list[Record],
        sets: set[str],
        deletes: set[str],
    ) -> None:
        seen = {key for record in inputs for key in record}
        for record in outputs:
            for key in record:
                if key not in seen and key not in sets:
                    raise UnexpectedPropertyError(
                        f"{self._where()} produced undeclared property '{key}'",
                        **self._context(key),
                    )

        if self._operation.allows_count_change:
            # Keys every input shared must survive in every output
            if not inputs:
                return
            common = set(inputs[0].keys()).intersection(*(r.keys() for r in inputs[1:]))
            for record in outputs:
                self._check_vanished(common, record, deletes)
            return

        for before, after in zip(inputs, outputs, strict=True):
            self._check_vanished(set(before.keys()), after, deletes)
            for key in before:
                if key in sets or key not in after:
                    continue
                if _changed(before.get(key), after.get(key)):
                    raise UnexpectedPropertyError(
                        f"{self._where()} changed undeclared property '{key}'",
                        **self._context(key),
                    )

    def _check_vanished(self, expected: set[str], record: Record, deletes: set[str]) -> None:
        for key in sorted(expected):
            if key not in record and key not in deletes:
                raise UnexpectedDeletionError(
                    f"{self._where()} removed '{key}' without declaring a delete",
                    **self._context(key),
                )
