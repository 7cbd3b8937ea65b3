# tests/engine/test_pipe.py
"""Tests for Pipe construction-time validation and execution."""

import threading
import time
from typing import Any

import pytest

from brainpipe.contracts.errors import (
    ConfigurationError,
    EmptyInputError,
    ExecutionError,
    IncompatibleStagesError,
    PipelineTimeoutError,
    PropertyNotFoundError,
    TypeMismatchError,
)
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec
from brainpipe.contracts.types import INTEGER, STRING, Sequence, Union
from brainpipe.engine.pipe import Pipe
from brainpipe.engine.stage import Stage
from brainpipe.operations import Collapse, Explode, Filter
from tests.conftest import RecordingMetricsCollector, make_operation, setter


def orders_pipe(**kwargs: Any) -> Pipe:
    return Pipe(
        "orders",
        [
            Stage("split", [Explode({"split": {"order_ids": "order_id", "quantities": "quantity"}})]),
            Stage("total", [Collapse({"merge": {"order_id": "collect", "quantity": "sum"}})]),
        ],
        **kwargs,
    )


def summarize() -> Any:
    return make_operation(
        "summarize",
        lambda rs: [r.with_merged({"summary": r.get("text")[:5]}) for r in rs],
        reads={"text": str},
        sets={"summary": str},
    )


class TestEndToEnd:
    """Explode then Collapse, the canonical round trip."""

    def test_orders(self) -> None:
        result = orders_pipe().call(order_ids=["A", "A"], quantities=[10, 20])
        assert result == {"order_id": ["A", "A"], "quantity": 30}

    def test_orders_with_typed_inputs(self) -> None:
        pipe = orders_pipe(input_schema={"order_ids": [str], "quantities": [int]})

        assert pipe.outputs == {"order_id": FieldSpec(Sequence(STRING)), "quantity": FieldSpec(INTEGER)}
        assert pipe.call({"order_ids": ["A", "B"], "quantities": [1, 2]}) == {"order_id": ["A", "B"], "quantity": 3}

    def test_pipe_is_reusable(self) -> None:
        pipe = orders_pipe()
        assert pipe(order_ids=["A"], quantities=[1]) == {"order_id": ["A"], "quantity": 1}
        assert pipe(order_ids=["B", "C"], quantities=[2, 3]) == {"order_id": ["B", "C"], "quantity": 5}

    def test_inputs_inferred_from_first_stage(self) -> None:
        assert set(orders_pipe().inputs) == {"order_ids", "quantities"}

    def test_record_input_and_keywords_merge(self) -> None:
        pipe = Pipe("p", [Stage("s", [summarize()])])
        result = pipe.call(Record({"text": "hello world"}), lang="en")
        assert result == {"text": "hello world", "lang": "en", "summary": "hello"}


class TestStageCompatibility:
    """Construction walks the stages with a running schema."""

    def test_missing_property(self) -> None:
        needs_summary = make_operation("publish", lambda rs: rs, reads={"summary": str})

        with pytest.raises(IncompatibleStagesError, match="requires property 'summary'") as exc_info:
            Pipe("p", [Stage("first", [setter("tag", "tag", "x")]), Stage("second", [needs_summary])], input_schema={})

        assert exc_info.value.stage == "second"
        assert exc_info.value.property_name == "summary"

    def test_earlier_stage_provides_property(self) -> None:
        needs_summary = make_operation("publish", lambda rs: rs, reads={"summary": str})
        pipe = Pipe("p", [Stage("first", [summarize()]), Stage("second", [needs_summary])])

        assert pipe.call(text="hello world")["summary"] == "hello"

    def test_type_mismatch_between_stages(self) -> None:
        wants_int = make_operation("count", lambda rs: rs, reads={"n": int})

        with pytest.raises(IncompatibleStagesError, match="reads 'n' as Integer, but it is provided as String"):
            Pipe("p", [Stage("first", [setter("label", "n", "x", type_spec=str)]), Stage("second", [wants_int])])

    def test_optional_read_not_required(self) -> None:
        maybe = make_operation("maybe", lambda rs: rs, reads={"lang?": str})
        Pipe("p", [Stage("first", [setter("a", "a", 1)]), Stage("second", [maybe])], input_schema={"x": None})

    def test_deleted_property_unavailable_downstream(self) -> None:
        drop = make_operation("drop", lambda rs: [r.with_removed("text") for r in rs], deletes={"text": False})
        needs_text = make_operation("needs", lambda rs: rs, reads={"text": None})

        with pytest.raises(IncompatibleStagesError, match="'text'"):
            Pipe("p", [Stage("drop", [drop]), Stage("use", [needs_text])], input_schema={"text": str})

    def test_collating_merge_stage_sees_lists(self) -> None:
        """A typed scalar read after a collating merge fails at construction."""
        wants_str = make_operation("reader", lambda rs: rs, reads={"x": str})

        with pytest.raises(IncompatibleStagesError, match="reads 'x' as String"):
            Pipe(
                "p",
                [
                    Stage("split", [Explode({"split": {"items": "x"}})]),
                    Stage("m", [wants_str], mode="merge", merge_strategy="collate"),
                ],
                input_schema={"items": [str]},
            )

    def test_collating_merge_stage_untyped_read(self) -> None:
        untyped = make_operation("reader", lambda rs: rs, reads={"x": None})
        pipe = Pipe(
            "p",
            [
                Stage("split", [Explode({"split": {"items": "x"}})]),
                Stage("m", [untyped], mode="merge", merge_strategy="collate"),
            ],
            input_schema={"items": [str]},
        )

        assert pipe.outputs["x"] == FieldSpec(Union((STRING, Sequence(STRING))))
        assert pipe.call(items=["a", "b"]) == {"x": ["a", "b"]}

    def test_last_stage_cannot_expand(self) -> None:
        with pytest.raises(ConfigurationError, match="must end with a single record"):
            Pipe("p", [Stage("split", [Explode({"split": {"items": "item"}})])])

    def test_requires_stages(self) -> None:
        with pytest.raises(ConfigurationError, match="at least one stage"):
            Pipe("p", [])

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout must be positive"):
            orders_pipe(timeout=-1)

    def test_invalid_input_schema(self) -> None:
        with pytest.raises(ConfigurationError, match="invalid input_schema"):
            orders_pipe(input_schema={"order_ids": "decimal"})


class TestInputs:
    def test_no_properties(self) -> None:
        with pytest.raises(EmptyInputError, match="received no properties"):
            orders_pipe().call()

    def test_declared_input_missing(self) -> None:
        pipe = Pipe("p", [Stage("s", [summarize()])], input_schema={"text": str})

        with pytest.raises(PropertyNotFoundError, match="requires input 'text'"):
            pipe.call(other="x")

    def test_declared_input_wrong_type(self) -> None:
        pipe = Pipe("p", [Stage("s", [summarize()])], input_schema={"text": str})

        with pytest.raises(TypeMismatchError, match="Pipe 'p' input: text expected String, got Integer"):
            pipe.call(text=5)

    def test_optional_declared_input(self) -> None:
        pipe = Pipe("p", [Stage("s", [summarize()])], input_schema={"text": str, "lang?": str})
        assert pipe.call(text="hello there")["summary"] == "hello"


class TestRuntimeFailures:
    def test_must_end_with_one_record(self) -> None:
        pipe = Pipe(
            "p",
            [
                Stage("split", [Explode({"split": {"items": "item"}})]),
                Stage("keep", [Filter({"condition": lambda r: r.get("item") > 1})]),
            ],
        )

        with pytest.raises(ExecutionError, match="must end with exactly one record, got 2"):
            pipe.call(items=[1, 2, 3])

    def test_empty_intermediate_stage(self) -> None:
        with pytest.raises(EmptyInputError, match="Stage 'total' received empty input"):
            orders_pipe().call(order_ids=[], quantities=[])

    def test_errors_carry_stage_context(self) -> None:
        wants_int = make_operation("count", lambda rs: rs, reads={"n": int})
        pipe = Pipe("p", [Stage("first", [setter("label", "n", "x")]), Stage("second", [wants_int])])

        with pytest.raises(TypeMismatchError) as exc_info:
            pipe.call(x=1)

        assert exc_info.value.stage == "second"
        assert exc_info.value.operation == "count"

    def test_pipe_timeout_clamps_stage_timeout(self) -> None:
        release = threading.Event()

        def slow(records: list[Record]) -> list[Record]:
            release.wait(5)
            return records

        pipe = Pipe("p", [Stage("slow", [make_operation("slow", slow)], timeout=30)], timeout=0.1)
        start = time.monotonic()
        try:
            with pytest.raises(PipelineTimeoutError) as exc_info:
                pipe.call(x=1)
        finally:
            release.set()

        assert time.monotonic() - start < 2
        assert exc_info.value.scope == "pipe"


class TestMetrics:
    def test_lifecycle_events(self) -> None:
        metrics = RecordingMetricsCollector()
        orders_pipe(metrics=metrics).call(order_ids=["A"], quantities=[1])

        names = metrics.names()
        assert names[0] == "pipe_started"
        assert names[-1] == "pipe_completed"
        completed = metrics.events[-1][1]
        assert completed["operations_count"] == 2
        assert completed["output"] == {"order_id": ["A"], "quantity": 1}

    def test_per_call_collector_overrides(self) -> None:
        default = RecordingMetricsCollector()
        override = RecordingMetricsCollector()
        orders_pipe(metrics=default).call({"order_ids": ["A"], "quantities": [1]}, metrics=override)

        assert default.events == []
        assert override.names()[0] == "pipe_started"

    def test_failure_event(self) -> None:
        metrics = RecordingMetricsCollector()
        with pytest.raises(EmptyInputError):
            orders_pipe(metrics=metrics).call(order_ids=[], quantities=[])

        assert metrics.names()[-1] == "pipe_failed"
