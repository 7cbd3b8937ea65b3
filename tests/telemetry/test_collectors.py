# tests/telemetry/test_collectors.py
"""Tests for the built-in metrics collectors."""

from typing import Any

from brainpipe.contracts.record import Record
from brainpipe.telemetry.collectors import LoggingMetricsCollector, NullMetricsCollector
from brainpipe.telemetry.protocols import MetricsCollector


class TestProtocolConformance:
    def test_null_collector(self) -> None:
        assert isinstance(NullMetricsCollector(), MetricsCollector)

    def test_logging_collector(self) -> None:
        assert isinstance(LoggingMetricsCollector(), MetricsCollector)


class TestNullMetricsCollector:
    def test_every_callback_is_a_no_op(self) -> None:
        collector = NullMetricsCollector()
        collector.operation_started(operation="op", record_count=1)
        collector.operation_completed(operation="op", record_count=1, duration_ms=1.0)
        collector.operation_failed(operation="op", error=ValueError("x"), duration_ms=1.0)
        collector.stage_started(stage="s", record_count=1)
        collector.stage_completed(stage="s", record_count=1, duration_ms=1.0)
        collector.stage_failed(stage="s", error=ValueError("x"), duration_ms=1.0)
        collector.pipe_started(pipe="p", input=Record())
        collector.pipe_completed(pipe="p", input=Record(), output={}, duration_ms=1.0, operations_count=0)
        collector.pipe_failed(pipe="p", error=ValueError("x"), duration_ms=1.0)


class TestLoggingMetricsCollector:
    """Lifecycle events become structlog events."""

    def test_start_and_complete_at_configured_level(self, captured_logs: list[dict[str, Any]]) -> None:
        collector = LoggingMetricsCollector(level="INFO")

        collector.operation_started(operation="shout", record_count=2, stage="s", pipe="p")
        collector.stage_completed(stage="s", record_count=2, duration_ms=1.23456, pipe="p")

        assert captured_logs[0]["event"] == "operation_started"
        assert captured_logs[0]["log_level"] == "info"
        assert captured_logs[0]["record_count"] == 2
        assert captured_logs[1]["duration_ms"] == 1.235

    def test_failures_are_warnings(self, captured_logs: list[dict[str, Any]]) -> None:
        collector = LoggingMetricsCollector()

        collector.operation_failed(operation="shout", error=KeyError("text"), duration_ms=0.5)

        event = captured_logs[0]
        assert event["log_level"] == "warning"
        assert event["error_type"] == "KeyError"

    def test_pipe_events_log_key_names_not_values(self, captured_logs: list[dict[str, Any]]) -> None:
        collector = LoggingMetricsCollector()

        collector.pipe_started(pipe="p", input=Record({"secret": "hunter2"}))
        collector.pipe_completed(
            pipe="p",
            input=Record({"secret": "hunter2"}),
            output={"answer": "42"},
            duration_ms=3.0,
            operations_count=2,
        )

        assert captured_logs[0]["input_keys"] == ["secret"]
        assert captured_logs[1]["output_keys"] == ["answer"]
        assert "hunter2" not in repr(captured_logs)

    def test_custom_logger(self) -> None:
        calls: list[tuple[str, dict[str, Any]]] = []

        class FakeLogger:
            def debug(self, event: str, **fields: Any) -> None:
                calls.append((event, fields))

        LoggingMetricsCollector(FakeLogger()).stage_started(stage="s", record_count=3)

        assert calls == [("stage_started", {"stage": "s", "record_count": 3, "pipe": None})]
