# src/brainpipe/telemetry/collectors.py
"""Built-in metrics collectors.

NullMetricsCollector: the default; every callback is a no-op.
LoggingMetricsCollector: emits one structlog event per callback.
"""

from typing import Any

import structlog

from brainpipe.contracts.record import Record


class NullMetricsCollector:
    """Discards every event."""

    def operation_started(self, *, operation: str, record_count: int, stage: str | None = None, pipe: str | None = None) -> None:
        pass

    def operation_completed(
        self,
        *,
        operation: str,
        record_count: int,
        duration_ms: float,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None:
        pass

    def operation_failed(
        self,
        *,
        operation: str,
        error: BaseException,
        duration_ms: float,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None:
        pass

    def stage_started(self, *, stage: str, record_count: int, pipe: str | None = None) -> None:
        pass

    def stage_completed(self, *, stage: str, record_count: int, duration_ms: float, pipe: str | None = None) -> None:
        pass

    def stage_failed(self, *, stage: str, error: BaseException, duration_ms: float, pipe: str | None = None) -> None:
        pass

    def pipe_started(self, *, pipe: str, input: Record) -> None:
        pass

    def pipe_completed(
        self,
        *,
        pipe: str,
        input: Record,
        output: dict[str, Any],
        duration_ms: float,
        operations_count: int,
    ) -> None:
        pass

    def pipe_failed(self, *, pipe: str, error: BaseException, duration_ms: float) -> None:
        pass


class LoggingMetricsCollector:
    """Writes lifecycle events to a structlog logger.

    Start/complete events go out at debug (configurable), failures at
    warning. Record contents are never logged, only counts and key names.

    Example:
        pipe = Pipe("orders", stages, metrics=LoggingMetricsCollector(level="info"))
    """

    def __init__(self, logger: Any = None, *, level: str = "debug") -> None:
        self._logger = logger if logger is not None else structlog.get_logger("brainpipe.metrics")
        self._level = level.lower()

    def _emit(self, event: str, **fields: Any) -> None:
        getattr(self._logger, self._level)(event, **fields)

    def operation_started(self, *, operation: str, record_count: int, stage: str | None = None, pipe: str | None = None) -> None:
        self._emit("operation_started", operation=operation, record_count=record_count, stage=stage, pipe=pipe)

    def operation_completed(
        self,
        *,
        operation: str,
        record_count: int,
        duration_ms: float,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None:
        self._emit(
            "operation_completed",
            operation=operation,
            record_count=record_count,
            duration_ms=round(duration_ms, 3),
            stage=stage,
            pipe=pipe,
        )

    def operation_failed(
        self,
        *,
        operation: str,
        error: BaseException,
        duration_ms: float,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None:
        self._logger.warning(
            "operation_failed",
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
            duration_ms=round(duration_ms, 3),
            stage=stage,
            pipe=pipe,
        )

    def stage_started(self, *, stage: str, record_count: int, pipe: str | None = None) -> None:
        self._emit("stage_started", stage=stage, record_count=record_count, pipe=pipe)

    def stage_completed(self, *, stage: str, record_count: int, duration_ms: float, pipe: str | None = None) -> None:
        self._emit("stage_completed", stage=stage, record_count=record_count, duration_ms=round(duration_ms, 3), pipe=pipe)

    def stage_failed(self, *, stage: str, error: BaseException, duration_ms: float, pipe: str | None = None) -> None:
        self._logger.warning(
            "stage_failed",
            stage=stage,
            error_type=type(error).__name__,
            error=str(error),
            duration_ms=round(duration_ms, 3),
            pipe=pipe,
        )

    def pipe_started(self, *, pipe: str, input: Record) -> None:
        self._emit("pipe_started", pipe=pipe, input_keys=input.keys())

    def pipe_completed(
        self,
        *,
        pipe: str,
        input: Record,
        output: dict[str, Any],
        duration_ms: float,
        operations_count: int,
    ) -> None:
        self._emit(
            "pipe_completed",
            pipe=pipe,
            output_keys=list(output),
            duration_ms=round(duration_ms, 3),
            operations_count=operations_count,
        )

    def pipe_failed(self, *, pipe: str, error: BaseException, duration_ms: float) -> None:
        self._logger.warning(
            "pipe_failed",
            pipe=pipe,
            error_type=type(error).__name__,
            error=str(error),
            duration_ms=round(duration_ms, 3),
        )
