# src/brainpipe/engine/pipe.py
"""Pipe: an ordered sequence of stages forming one pipeline.

Construction walks the stages with a running schema, starting from the
declared input schema (or, without one, from the first stage's reads):

    prefix_0 = inputs
    prefix_i+1 = (prefix_i - deletes_i) | sets_i

Every stage's required reads must be present in its prefix with an
assignable type, otherwise IncompatibleStagesError names the stage and
property. The final prefix is the pipe's advertised output.

call() threads one Record through the stages under a single time budget
and returns the final record as a plain dict.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from brainpipe.contracts.errors import (
    ConfigurationError,
    EmptyInputError,
    ExecutionError,
    IncompatibleStagesError,
    PropertyNotFoundError,
    TypeMismatchError,
)
from brainpipe.contracts.operation import Cardinality
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec, format_schema, schema_from
from brainpipe.contracts.type_checker import validate
from brainpipe.contracts.types import describe_type, is_assignable
from brainpipe.engine.budget import Budget
from brainpipe.engine.clock import DEFAULT_CLOCK, Clock
from brainpipe.engine.stage import Stage
from brainpipe.telemetry.collectors import NullMetricsCollector
from brainpipe.telemetry.protocols import MetricsCollector

slog = structlog.get_logger(__name__)


class Pipe:
    """A validated, reusable pipeline.

    Example:
        pipe = Pipe("orders", [split_stage, total_stage], timeout=10)
        result = pipe.call(order_ids=["A", "A"], quantities=[10, 20])
    """

    def __init__(
        self,
        name: str,
        stages: Sequence[Stage],
        *,
        timeout: float | None = None,
        input_schema: Mapping[str, Any] | None = None,
        metrics: MetricsCollector | None = None,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        self.name = name
        self.stages: tuple[Stage, ...] = tuple(stages)
        self.timeout = timeout
        self.metrics: MetricsCollector = metrics if metrics is not None else NullMetricsCollector()
        self._clock = clock
        self._declared_inputs = input_schema is not None

        if not self.stages:
            raise ConfigurationError(f"Pipe '{name}' must have at least one stage")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"Pipe '{name}' timeout must be positive, got {timeout}")
        self._validate_last_stage()

        if input_schema is not None:
            try:
                self.inputs: dict[str, FieldSpec] = schema_from(input_schema)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Pipe '{name}' has an invalid input_schema: {e}") from e
        else:
            self.inputs = self.stages[0].aggregate_reads({})
        self._prefixes: list[dict[str, FieldSpec]] = []
        self.outputs: dict[str, FieldSpec] = self._validate_stage_compatibility()

    def __repr__(self) -> str:
        return f"Pipe({self.name!r}, stages=[{', '.join(s.name for s in self.stages)}])"

    # =========================================================================
    # Construction-time validation
    # =========================================================================

    def _validate_last_stage(self) -> None:
        last = self.stages[-1]
        for op in last.operations:
            if op.cardinality is Cardinality.EXPAND:
                raise ConfigurationError(
                    f"Pipe '{self.name}' last stage '{last.name}' contains expanding operation '{op.name}'; "
                    "a pipe must end with a single record"
                )

    def _validate_stage_compatibility(self) -> dict[str, FieldSpec]:
        prefix = dict(self.inputs)
        for stage in self.stages:
            stage.validate(prefix)
            seen = stage.operation_prefix(prefix)
            for name, spec in stage.aggregate_reads(prefix).items():
                provided = seen.get(name)
                if provided is None:
                    if spec.optional:
                        continue
                    raise IncompatibleStagesError(
                        f"Stage '{stage.name}' requires property '{name}' which is not provided by "
                        f"previous stages or pipe inputs (available: {format_schema(prefix)})",
                        stage=stage.name,
                        property_name=name,
                    )
                if not is_assignable(provided.type, spec.type):
                    raise IncompatibleStagesError(
                        f"Stage '{stage.name}' reads '{name}' as {describe_type(spec.type)}, "
                        f"but it is provided as {describe_type(provided.type)}",
                        stage=stage.name,
                        property_name=name,
                    )
            self._prefixes.append(prefix)
            prefix = stage.output_schema(prefix)
        return prefix

    # =========================================================================
    # Execution
    # =========================================================================

    @property
    def operations_count(self) -> int:
        return sum(len(stage.operations) for stage in self.stages)

    def call(
        self,
        properties: Mapping[str, Any] | Record | None = None,
        /,
        *,
        metrics: MetricsCollector | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Run the pipe.

        Args:
            properties: Initial properties (a mapping or a Record)
            metrics: Overrides the pipe's collector for this call
            **kwargs: Initial properties given as keywords

        Returns:
            The final record's properties as a plain dict

        Raises:
            EmptyInputError: If no properties were given at all
            ExecutionError: If the final stage does not yield exactly one record
            BrainpipeError: Any contract violation or runtime failure, with
                stage and operation context
        """
        if properties is None and not kwargs:
            raise EmptyInputError(f"Pipe '{self.name}' received no properties")
        if isinstance(properties, Record):
            initial = properties.with_merged(kwargs) if kwargs else properties
        else:
            initial = Record({**dict(properties or {}), **kwargs})

        collector = metrics if metrics is not None else self.metrics
        budget = Budget.start(self.timeout, scope="pipe", clock=self._clock)
        collector.pipe_started(pipe=self.name, input=initial)
        start = time.perf_counter()

        try:
            if self._declared_inputs:
                self._validate_inputs(initial)
            records = [initial]
            for stage, prefix in zip(self.stages, self._prefixes, strict=True):
                records = stage.call(
                    records,
                    budget=budget,
                    metrics=collector,
                    pipe_name=self.name,
                    prefix_schema=prefix,
                )
            if len(records) != 1:
                raise ExecutionError(
                    f"Pipe '{self.name}' must end with exactly one record, got {len(records)} "
                    f"after stage '{self.stages[-1].name}'"
                )
            output = records[0].to_dict()
        except Exception as error:
            collector.pipe_failed(pipe=self.name, error=error, duration_ms=(time.perf_counter() - start) * 1000)
            raise

        collector.pipe_completed(
            pipe=self.name,
            input=initial,
            output=output,
            duration_ms=(time.perf_counter() - start) * 1000,
            operations_count=self.operations_count,
        )
        slog.debug("pipe_completed", pipe=self.name, stages=len(self.stages), output_keys=list(output))
        return output

    __call__ = call

    def _validate_inputs(self, record: Record) -> None:
        for name, spec in self.inputs.items():
            if name not in record:
                if spec.optional:
                    continue
                raise PropertyNotFoundError(
                    f"Pipe '{self.name}' requires input '{name}'",
                    property_name=name,
                )
            try:
                validate(record.get(name), spec.type, name)
            except TypeMismatchError as e:
                raise TypeMismatchError(
                    f"Pipe '{self.name}' input: {e}",
                    path=e.path,
                    expected=e.expected,
                    actual=e.actual,
                    property_name=name,
                ) from None
