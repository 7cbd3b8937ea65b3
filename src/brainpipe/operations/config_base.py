# src/brainpipe/operations/config_base.py
"""Base classes for typed operation configurations.

Operations parse their ``options`` mapping through one of these models,
so invalid option combinations, missing required options and unknown
strategies fail when the pipe is built:

- Strict validation (unknown options are rejected)
- from_dict() factory wrapping pydantic errors as ConfigurationError

Example:
    class ExplodeConfig(RewiringConfig):
        split: dict[str, str]
        on_empty: Literal["skip", "error"] = "skip"

    cfg = ExplodeConfig.from_dict({"split": {"items": "item"}})
"""

from typing import Any, Self

from pydantic import BaseModel, Field, ValidationError, field_validator

from brainpipe.contracts.errors import ConfigurationError


class OperationConfig(BaseModel):
    """Options every operation accepts.

    timeout: per-call budget in seconds (overrides the contract's)
    ignore_errors: True/False overrides the contract's error policy
    """

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    timeout: float | None = Field(default=None, gt=0)
    ignore_errors: bool | None = None

    @classmethod
    def from_dict(cls, config: Any) -> Self:
        """Create config from a dict with a clear error on validation failure.

        Raises:
            ConfigurationError: If the options are invalid
        """
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Invalid configuration for {cls.__name__}: options must be a dict, got {type(config).__name__}."
            )
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for {cls.__name__}: {e}") from e


class RewiringConfig(OperationConfig):
    """Options for the copy/move/set/delete post-step shared by the built-in operations.

    YAML-style keys are ``copy``, ``move``, ``set`` and ``delete``.
    """

    copy_fields: dict[str, str] = Field(default_factory=dict, alias="copy")
    move_fields: dict[str, str] = Field(default_factory=dict, alias="move")
    set_values: dict[str, Any] = Field(default_factory=dict, alias="set")
    delete_fields: list[str] = Field(default_factory=list, alias="delete")

    @field_validator("delete_fields", mode="before")
    @classmethod
    def coerce_delete(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v
