# src/brainpipe/core/config.py
"""
Configuration schema for brainpipe pipelines.

Uses Pydantic for validation. Settings are frozen (immutable) after
construction and passed explicitly into the builder, stages and pipes;
there is no process-wide configuration singleton.

Example:
    settings = PipeSettings.from_dict(
        {
            "name": "orders",
            "timeout": 10,
            "stages": [
                {"name": "split", "operations": [{"type": "explode", "options": {...}}]},
                {"name": "total", "operations": [{"type": "collapse", "options": {...}}]},
            ],
        }
    )
"""

from typing import Any, Literal, Self

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from brainpipe.contracts.errors import ConfigurationError

StageModeName = Literal["direct", "merge", "fan_out", "batch"]
MergeStrategyName = Literal["last_in", "first_in", "collate", "disjoint"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


def _from_dict(cls: type[BaseModel], data: Any) -> Any:
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid configuration for {cls.__name__}: expected a dict, got {type(data).__name__}")
    try:
        return cls.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration for {cls.__name__}: {e}") from e


class EngineSettings(BaseModel):
    """Engine-wide execution settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    max_workers: int = Field(default=10, gt=0, description="Upper bound on every worker pool the engine creates")
    default_merge_strategy: MergeStrategyName = Field(
        default="last_in",
        description="Merge strategy for stages that do not specify one",
    )
    log_level: LogLevelName = "INFO"
    json_logs: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _from_dict(cls, data)  # type: ignore[no-any-return]


class OperationSettings(BaseModel):
    """One operation inside a stage.

    Example YAML-equivalent:
        type: explode
        model: gpt
        timeout: 5
        options:
          split: {items: item}
    """

    model_config = {"frozen": True, "extra": "forbid"}

    type: str = Field(min_length=1, description="Registered operation name or class name")
    model: str | None = Field(default=None, description="Name of a registered model to bind")
    options: dict[str, Any] = Field(default_factory=dict)
    timeout: float | None = Field(default=None, gt=0)


class StageSettings(BaseModel):
    """One stage: a named group of operations."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1)
    operations: list[OperationSettings] = Field(min_length=1)
    mode: StageModeName = "direct"
    merge_strategy: MergeStrategyName | None = None
    timeout: float | None = Field(default=None, gt=0)


class PipeSettings(BaseModel):
    """A whole pipe: ordered stages plus an overall timeout."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1)
    stages: list[StageSettings] = Field(min_length=1)
    timeout: float | None = Field(default=None, gt=0)
    input_schema: dict[str, Any] | None = Field(
        default=None,
        description="Optional declared inputs, {name: type shorthand}; a trailing '?' marks optional",
    )

    @model_validator(mode="after")
    def validate_unique_stage_names(self) -> Self:
        seen: set[str] = set()
        for stage in self.stages:
            if stage.name in seen:
                raise ValueError(f"Duplicate stage name '{stage.name}' in pipe '{self.name}'")
            seen.add(stage.name)
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create settings from a plain dict.

        Raises:
            ConfigurationError: If the dict does not describe a valid pipe
        """
        return _from_dict(cls, data)  # type: ignore[no-any-return]
