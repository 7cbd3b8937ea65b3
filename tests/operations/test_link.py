# tests/operations/test_link.py
"""Tests for the Link operation."""

import pytest

from brainpipe.contracts.errors import ConfigurationError, IncompatibleStagesError, PropertyNotFoundError
from brainpipe.contracts.record import Record
from brainpipe.contracts.schema import FieldSpec
from brainpipe.contracts.types import INTEGER, STRING
from brainpipe.engine.executor import OperationExecutor
from brainpipe.engine.pipe import Pipe
from brainpipe.engine.stage import Stage
from brainpipe.operations import Link


class TestLinkConfig:
    def test_requires_an_option(self) -> None:
        with pytest.raises(ConfigurationError, match="Link requires at least one of"):
            Link({})

    def test_rejects_unknown_options(self) -> None:
        with pytest.raises(ConfigurationError):
            Link({"rename": {"a": "b"}})


class TestLinkDeclarations:
    PREFIX = {"title": FieldSpec(STRING), "count": FieldSpec(INTEGER)}

    def test_move(self) -> None:
        link = Link({"move": {"title": "heading"}})

        assert link.declared_reads(self.PREFIX) == {"title": FieldSpec(STRING)}
        assert link.declared_sets(self.PREFIX) == {"heading": FieldSpec(STRING)}
        assert link.declared_deletes(self.PREFIX) == {"title": False}

    def test_copy_keeps_source(self) -> None:
        link = Link({"copy": {"count": "total"}})

        assert link.declared_sets(self.PREFIX) == {"total": FieldSpec(INTEGER)}
        assert link.declared_deletes(self.PREFIX) == {}

    def test_set_infers_type(self) -> None:
        link = Link({"set": {"source": "import"}})

        assert link.declared_reads(self.PREFIX) == {}
        assert link.declared_sets(self.PREFIX) == {"source": FieldSpec(STRING)}


class TestLinkExecution:
    """Link satisfies its own contract under the executor."""

    def test_all_steps(self) -> None:
        link = Link({"copy": {"a": "a2"}, "move": {"b": "b2"}, "set": {"c": 3}, "delete": ["d"]})

        outputs = OperationExecutor(link).call([Record({"a": 1, "b": 2, "d": 4, "keep": True})])

        assert outputs == [Record({"a": 1, "a2": 1, "b2": 2, "c": 3, "keep": True})]

    def test_missing_source_is_a_read_failure(self) -> None:
        with pytest.raises(PropertyNotFoundError, match="expected to read 'title'"):
            OperationExecutor(Link({"move": {"title": "heading"}})).call([Record({"body": "x"})])

    def test_delete_of_absent_field_is_harmless(self) -> None:
        link = Link({"delete": "draft"})
        assert OperationExecutor(link).call([Record({"x": 1})]) == [Record({"x": 1})]

    def test_schema_flows_to_next_stage(self) -> None:
        rename = Stage("rename", [Link({"move": {"title": "heading"}})])
        needs_title = Stage("again", [Link({"copy": {"title": "t2"}})])

        with pytest.raises(IncompatibleStagesError, match="'title'"):
            Pipe("p", [rename, needs_title], input_schema={"title": str})

    def test_in_a_pipe(self) -> None:
        pipe = Pipe("p", [Stage("rename", [Link({"move": {"title": "heading"}, "set": {"seen": True}})])])
        assert pipe.call(title="Hello") == {"heading": "Hello", "seen": True}
