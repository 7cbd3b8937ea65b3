# src/brainpipe/operations/log.py
"""Log operation: write record snapshots to the log (1:1 passthrough).

Options:
    fields:  names to include (default: the whole record)
    message: event text (default "record")
    level:   "debug", "info" (default), "warn"/"warning" or "error"
    logger:  a structlog-compatible logger (default: this module's)

Missing fields are logged as "<missing>" rather than failing; Log never
reads, sets or deletes anything as far as its contract is concerned.
"""

from typing import Any, Literal

import structlog
from pydantic import field_validator

from brainpipe.contracts.record import Record
from brainpipe.operations.base import BaseOperation
from brainpipe.operations.config_base import OperationConfig

slog = structlog.get_logger(__name__)

_MISSING = "<missing>"


class LogConfig(OperationConfig):
    """Configuration for the log operation."""

    fields: list[str] | None = None
    message: str = "record"
    level: Literal["debug", "info", "warning", "error"] = "info"
    logger: Any = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.lower()
            return "warning" if v == "warn" else v
        return v

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_fields(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v


class Log(BaseOperation):
    """Log each record and pass it through unchanged."""

    name = "log"
    config_model = LogConfig

    def __init__(self, options: dict[str, Any] | None = None, *, model: Any = None) -> None:
        super().__init__(options, model=model)
        cfg: LogConfig = self.config  # type: ignore[assignment]
        self._fields = cfg.fields
        self._message = cfg.message
        self._level = cfg.level
        self._logger = cfg.logger if cfg.logger is not None else slog

    def _snapshot(self, record: Record) -> dict[str, Any]:
        if self._fields is None:
            return record.to_dict()
        return {name: record.get(name) if name in record else _MISSING for name in self._fields}

    def call(self, records: list[Record]) -> list[Record]:
        emit = getattr(self._logger, self._level)
        for index, record in enumerate(records):
            emit(self._message, index=index, record=self._snapshot(record))
        return records
