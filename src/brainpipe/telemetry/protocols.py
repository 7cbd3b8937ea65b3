# src/brainpipe/telemetry/protocols.py
"""Protocol definitions for metrics collectors.

A collector receives lifecycle notifications from executors, stages and
pipes. It is optional: NullMetricsCollector is the default and is always
safe to use.

Thread Safety:
    Operations in one stage run on worker threads, so operation_* and
    stage_* callbacks may arrive concurrently. Implementations must be safe
    for concurrent calls.

Error handling:
    Collectors MUST NOT raise. A failing collector would otherwise turn a
    successful pipe into a failed one.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from brainpipe.contracts.record import Record


@runtime_checkable
class MetricsCollector(Protocol):
    """Receives pipe, stage and operation lifecycle events."""

    def operation_started(
        self,
        *,
        operation: str,
        record_count: int,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None: ...

    def operation_completed(
        self,
        *,
        operation: str,
        record_count: int,
        duration_ms: float,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None: ...

    def operation_failed(
        self,
        *,
        operation: str,
        error: BaseException,
        duration_ms: float,
        stage: str | None = None,
        pipe: str | None = None,
    ) -> None: ...

    def stage_started(self, *, stage: str, record_count: int, pipe: str | None = None) -> None: ...

    def stage_completed(
        self,
        *,
        stage: str,
        record_count: int,
        duration_ms: float,
        pipe: str | None = None,
    ) -> None: ...

    def stage_failed(
        self,
        *,
        stage: str,
        error: BaseException,
        duration_ms: float,
        pipe: str | None = None,
    ) -> None: ...

    def pipe_started(self, *, pipe: str, input: "Record") -> None: ...

    def pipe_completed(
        self,
        *,
        pipe: str,
        input: "Record",
        output: dict[str, Any],
        duration_ms: float,
        operations_count: int,
    ) -> None: ...

    def pipe_failed(self, *, pipe: str, error: BaseException, duration_ms: float) -> None: ...
