# src/brainpipe/engine/stage.py
"""Stage: a group of operations run together over one record array.

Execution disciplines (StageMode):

- direct (default): every operation receives the whole record array.
  Several 1:1 operations run concurrently and their outputs are merged per
  record index (see engine.merge). A cardinality-changing operation
  (Explode, Collapse, Filter) must be the only operation in its stage.
- batch: legacy name for direct.
- merge: legacy. The input array is first combined into a single record
  with the stage merge strategy; operations then run on that one record.
  Under collate every property may then hold a list, and the schema the
  operations see widens accordingly (see operation_prefix).
- fan_out: legacy. Every operation runs on every record independently
  and concurrently; results are merged per record.

Composition-time checks (raised as ConfigurationError subclasses):
- at least one operation
- a cardinality-changing operation is alone in its stage
- every operation's bound model has its required capability
- operations that write the same property declare the same type
  (TypeConflictError)
- under the disjoint strategy, no property has two writers
  (WriteConflictError)

All operations are allowed to finish before any error is raised. Errors
are surfaced in declaration order; later ones are logged.
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import StrEnum

import structlog

from brainpipe.contracts.errors import (
    CapabilityMismatchError,
    ConfigurationError,
    EmptyInputError,
    TypeConflictError,
    WriteConflictError,
)
from brainpipe.contracts.operation import Operation
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, Schema, apply_schema_flow
from brainpipe.contracts.types import AnyType, TypeDescriptor, Union, sequence_of
from brainpipe.core.config import EngineSettings
from brainpipe.engine.budget import Budget
from brainpipe.engine.clock import DEFAULT_CLOCK, Clock
from brainpipe.engine.executor import ExecutionOutcome, OperationExecutor, infer_prefix
from brainpipe.engine.merge import MergeStrategy, WriterOutput, merge_outcomes, merge_records
from brainpipe.telemetry.collectors import NullMetricsCollector
from brainpipe.telemetry.protocols import MetricsCollector

slog = structlog.get_logger(__name__)


class StageMode(StrEnum):
    DIRECT = "direct"
    MERGE = "merge"
    FAN_OUT = "fan_out"
    BATCH = "batch"


class Stage:
    """A named group of operations with a concurrency/merge discipline.

    Example:
        stage = Stage("enrich", [Summarize(), Classify()], merge_strategy="collate")
        outputs = stage.call([Record({"text": "..."})])
    """

    def __init__(
        self,
        name: str,
        operations: Sequence[Operation],
        *,
        mode: StageMode | str = StageMode.DIRECT,
        merge_strategy: MergeStrategy | str | None = None,
        timeout: float | None = None,
        settings: EngineSettings | None = None,
        prefix_schema: Schema | None = None,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        self._settings = settings if settings is not None else EngineSettings()
        self.name = name
        self.operations: tuple[Operation, ...] = tuple(operations)
        self.mode = StageMode(mode)
        self.merge_strategy = MergeStrategy(merge_strategy or self._settings.default_merge_strategy)
        self.timeout = timeout
        self._clock = clock

        self._validate_composition()
        prefix = dict(prefix_schema) if prefix_schema is not None else {}
        self.validate(prefix)
        self.inputs: dict[str, FieldSpec] = self.aggregate_reads(prefix)
        self.outputs: dict[str, FieldSpec] = self.aggregate_sets(prefix)

    def __repr__(self) -> str:
        ops = ", ".join(op.name for op in self.operations)
        return f"Stage({self.name!r}, [{ops}], mode={self.mode.value})"

    # =========================================================================
    # Composition-time validation
    # =========================================================================

    def _validate_composition(self) -> None:
        if not self.operations:
            raise ConfigurationError(f"Stage '{self.name}' must have at least one operation")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Stage '{self.name}' timeout must be positive, got {self.timeout}")

        for op in self.operations:
            if not isinstance(op, Operation):
                raise ConfigurationError(f"Stage '{self.name}' got {op!r}, which does not implement the Operation protocol")

        changers = [op.name for op in self.operations if op.allows_count_change]
        if changers and len(self.operations) > 1:
            raise ConfigurationError(
                f"Stage '{self.name}': cardinality-changing operation '{changers[0]}' must be the only operation in its stage"
            )

        for op in self.operations:
            check_capability(op, stage=self.name)

    def validate(self, prefix: Schema) -> None:
        """Check parallel writers against each other for a given prefix schema.

        Raises:
            TypeConflictError: Two operations set one property with different types
            WriteConflictError: Two operations set one property under disjoint
        """
        prefix = self.operation_prefix(prefix)
        writers: dict[str, tuple[str, FieldSpec]] = {}
        for op in self.operations:
            for name, spec in op.declared_sets(prefix).items():
                if name not in writers:
                    writers[name] = (op.name, spec)
                    continue
                first_op, first_spec = writers[name]
                if self.merge_strategy is MergeStrategy.DISJOINT:
                    raise WriteConflictError(
                        f"Stage '{self.name}' uses disjoint merging but both '{first_op}' and '{op.name}' set '{name}'",
                        stage=self.name,
                        property_name=name,
                    )
                if first_spec.type is None:
                    writers[name] = (op.name, spec)
                elif spec.type is not None and spec.type != first_spec.type:
                    raise TypeConflictError(
                        f"Stage '{self.name}' has type conflict for '{name}': "
                        f"'{first_op}' sets {first_spec.type}, but '{op.name}' sets {spec.type}",
                        stage=self.name,
                        property_name=name,
                    )

    # =========================================================================
    # Schema aggregation
    # =========================================================================

    def operation_prefix(self, prefix: Schema) -> dict[str, FieldSpec]:
        """The schema this stage's operations see, given the schema before the stage.

        Merge mode under collate folds the input records into one first, so
        any property may arrive as the list of its differing values.
        """
        if self.mode is not StageMode.MERGE or self.merge_strategy is not MergeStrategy.COLLATE:
            return dict(prefix)
        return {name: FieldSpec(_collated(spec.type), optional=spec.optional) for name, spec in prefix.items()}

    def aggregate_reads(self, prefix: Schema) -> dict[str, FieldSpec]:
        """Union of reads; a property is required if any operation requires it."""
        prefix = self.operation_prefix(prefix)
        reads: dict[str, FieldSpec] = {}
        for op in self.operations:
            for name, spec in op.declared_reads(prefix).items():
                existing = reads.get(name)
                if existing is None:
                    reads[name] = spec
                    continue
                merged_type = existing.type if existing.type is not None else spec.type
                reads[name] = FieldSpec(merged_type, optional=existing.optional and spec.optional)
        return reads

    def aggregate_sets(self, prefix: Schema) -> dict[str, FieldSpec]:
        """Union of sets. Under collate, a property with several writers widens to a list."""
        prefix = self.operation_prefix(prefix)
        sets: dict[str, FieldSpec] = {}
        counts: dict[str, int] = {}
        for op in self.operations:
            for name, spec in op.declared_sets(prefix).items():
                counts[name] = counts.get(name, 0) + 1
                existing = sets.get(name)
                if existing is None:
                    sets[name] = spec
                    continue
                merged_type = existing.type if existing.type is not None else spec.type
                sets[name] = FieldSpec(merged_type, optional=existing.optional and spec.optional)
        if self.merge_strategy is MergeStrategy.COLLATE:
            for name, count in counts.items():
                if count > 1:
                    sets[name] = FieldSpec(sequence_of(sets[name].type), optional=sets[name].optional)
        return sets

    def aggregate_deletes(self, prefix: Schema) -> dict[str, bool]:
        prefix = self.operation_prefix(prefix)
        deletes: dict[str, bool] = {}
        for op in self.operations:
            for name, optional in op.declared_deletes(prefix).items():
                deletes[name] = deletes.get(name, True) and optional
        return deletes

    def output_schema(self, prefix: Schema) -> dict[str, FieldSpec]:
        """(prefix - deletes) | sets for this stage."""
        return apply_schema_flow(
            self.operation_prefix(prefix), self.aggregate_sets(prefix), self.aggregate_deletes(prefix)
        )

    # =========================================================================
    # Execution
    # =========================================================================

    def call(
        self,
        records: Sequence[Record],
        *,
        budget: Budget | None = None,
        metrics: MetricsCollector | None = None,
        pipe_name: str | None = None,
        prefix_schema: Schema | None = None,
    ) -> list[Record]:
        """Run the stage over records.

        Args:
            records: Input records (must be non-empty)
            budget: Enclosing pipe budget; the stage timeout is clamped to it
            metrics: Lifecycle collector
            pipe_name: Enclosing pipe, for error context and metrics
            prefix_schema: Schema before this stage; inferred from the
                records (untyped) when omitted

        Raises:
            EmptyInputError: If records is empty
            PipelineTimeoutError: If the stage budget expires
        """
        records = list(records)
        if not records:
            raise EmptyInputError(f"Stage '{self.name}' received empty input")

        metrics = metrics if metrics is not None else NullMetricsCollector()
        stage_budget = (budget or Budget.unbounded(scope="stage", clock=self._clock)).child(self.timeout, scope="stage")
        stage_budget.check(f"Stage '{self.name}'")

        metrics.stage_started(stage=self.name, record_count=len(records), pipe=pipe_name)
        start = time.perf_counter()
        try:
            result = self._execute(records, stage_budget, metrics, pipe_name, prefix_schema)
        except Exception as error:
            metrics.stage_failed(
                stage=self.name,
                error=error,
                duration_ms=(time.perf_counter() - start) * 1000,
                pipe=pipe_name,
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        metrics.stage_completed(stage=self.name, record_count=len(result), duration_ms=duration_ms, pipe=pipe_name)
        slog.debug(
            "stage_completed",
            stage=self.name,
            pipe=pipe_name,
            mode=self.mode.value,
            records_in=len(records),
            records_out=len(result),
        )
        return result

    def _batches(self, records: list[Record]) -> list[list[Record]]:
        if self.mode is StageMode.MERGE:
            return [[merge_records(records, self.merge_strategy)]]
        if self.mode is StageMode.FAN_OUT:
            return [[record] for record in records]
        return [records]

    def _execute(
        self,
        records: list[Record],
        budget: Budget,
        metrics: MetricsCollector,
        pipe_name: str | None,
        prefix_schema: Schema | None,
    ) -> list[Record]:
        batches = self._batches(records)
        if prefix_schema is not None:
            prefix = self.operation_prefix(prefix_schema)
        else:
            prefix = infer_prefix([r for b in batches for r in b])
        executors = [
            OperationExecutor(
                op,
                stage_name=self.name,
                pipe_name=pipe_name,
                prefix_schema=prefix,
                metrics=metrics,
                clock=self._clock,
            )
            for op in self.operations
        ]
        writes = [frozenset(op.declared_sets(prefix)) for op in self.operations]

        # (op index, batch index) in declaration order
        tasks = [(i, b) for i in range(len(executors)) for b in range(len(batches))]
        ranks = itertools.count()
        rank_lock = threading.Lock()

        def run(op_index: int, batch_index: int) -> tuple[ExecutionOutcome, int]:
            output = executors[op_index].execute(batches[batch_index], budget=budget)
            with rank_lock:
                return output, next(ranks)

        workers = min(len(tasks), self._settings.max_workers)
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"brainpipe-stage-{self.name}")
        futures: dict[tuple[int, int], Future[tuple[ExecutionOutcome, int]]] = {}
        timed_out = False
        try:
            for task in tasks:
                futures[task] = pool.submit(run, *task)
            _, not_done = wait(list(futures.values()), timeout=budget.remaining())
            timed_out = bool(not_done)
        finally:
            pool.shutdown(wait=not timed_out, cancel_futures=timed_out)

        if timed_out:
            raise budget.timeout_error(f"Stage '{self.name}' timed out ({budget.scope} budget of {budget.seconds}s)")

        errors = [futures[task].exception() for task in tasks]
        raised = [e for e in errors if e is not None]
        if raised:
            for secondary in raised[1:]:
                slog.warning(
                    "stage_error_suppressed",
                    stage=self.name,
                    pipe=pipe_name,
                    error_type=type(secondary).__name__,
                    error=str(secondary),
                )
            raise raised[0]

        results = {task: futures[task].result() for task in tasks}
        merged: list[Record] = []
        for b, batch in enumerate(batches):
            if len(executors) == 1:
                merged.extend(results[(0, b)][0].records)
                continue
            # An ignored operation wrote nothing; only the others take part in the merge
            written = [i for i in range(len(executors)) if not results[(i, b)][0].ignored]
            for index, source in enumerate(batch):
                outputs = [
                    WriterOutput(
                        record=results[(i, b)][0].records[index],
                        writes=writes[i],
                        completion=results[(i, b)][1],
                    )
                    for i in written
                ]
                merged.append(merge_outcomes(source, outputs, self.merge_strategy))
        return merged


def _collated(descriptor: TypeDescriptor | None) -> TypeDescriptor | None:
    if descriptor is None or isinstance(descriptor, AnyType):
        return descriptor
    return Union((descriptor, sequence_of(descriptor)))  # type: ignore[arg-type]


def check_capability(operation: Operation, *, stage: str | None = None) -> None:
    """Ensure an operation's bound model has the capability it requires.

    Raises:
        CapabilityMismatchError: If no model is bound or it lacks the capability
    """
    required = operation.required_capability
    if required is None:
        return
    where = f" in stage '{stage}'" if stage else ""
    model = operation.model
    if model is None:
        raise CapabilityMismatchError(
            f"Operation '{operation.name}'{where} requires a model with '{required}' capability, but no model was bound"
        )
    if required not in model.capabilities:
        raise CapabilityMismatchError(
            f"Operation '{operation.name}'{where} requires '{required}' capability, "
            f"but model '{model.name}' only has: {', '.join(sorted(model.capabilities)) or 'none'}"
        )
