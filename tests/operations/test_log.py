# tests/operations/test_log.py
"""Tests for the Log operation."""

from typing import Any

import pytest

from brainpipe.contracts.errors import ConfigurationError
from brainpipe.contracts.record import Record
from brainpipe.engine.executor import OperationExecutor
from brainpipe.operations import Log


class ListLogger:
    """Minimal logger that keeps (level, event, fields)."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, event: str, **kw: Any) -> None:
        self.calls.append(("debug", event, kw))

    def info(self, event: str, **kw: Any) -> None:
        self.calls.append(("info", event, kw))

    def warning(self, event: str, **kw: Any) -> None:
        self.calls.append(("warning", event, kw))

    def error(self, event: str, **kw: Any) -> None:
        self.calls.append(("error", event, kw))


class TestLogConfig:
    def test_warn_alias(self) -> None:
        assert Log({"level": "WARN"}).config.level == "warning"

    def test_unknown_level(self) -> None:
        with pytest.raises(ConfigurationError):
            Log({"level": "trace"})

    def test_single_field_string(self) -> None:
        assert Log({"fields": "id"}).config.fields == ["id"]


class TestLog:
    def test_passthrough(self) -> None:
        records = [Record({"id": 1}), Record({"id": 2})]
        assert OperationExecutor(Log()).call(records) == records

    def test_contract_is_empty(self) -> None:
        op = Log({"fields": ["id"]})

        assert op.declared_reads({}) == {}
        assert op.declared_sets({}) == {}
        assert op.declared_deletes({}) == {}

    def test_logs_each_record(self, captured_logs: Any) -> None:
        Log({"message": "seen"}).call([Record({"id": 1}), Record({"id": 2})])

        seen = [entry for entry in captured_logs if entry["event"] == "seen"]
        assert [entry["index"] for entry in seen] == [0, 1]
        assert seen[1]["record"] == {"id": 2}
        assert seen[0]["log_level"] == "info"

    def test_selected_fields_and_missing(self, captured_logs: Any) -> None:
        Log({"fields": ["id", "note"], "level": "warn"}).call([Record({"id": 1, "secret": "x"})])

        [entry] = [entry for entry in captured_logs if entry["event"] == "record"]
        assert entry["record"] == {"id": 1, "note": "<missing>"}
        assert entry["log_level"] == "warning"

    def test_custom_logger(self) -> None:
        logger = ListLogger()

        Log({"logger": logger, "level": "debug", "message": "trace"}).call([Record({"a": 1})])

        assert logger.calls == [("debug", "trace", {"index": 0, "record": {"a": 1}})]
