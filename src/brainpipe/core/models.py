# src/brainpipe/core/models.py
"""Named model configurations and their registry.

The engine never calls a model. It only needs each model's name and
capability set so operations that require a capability can be checked
when a pipe is built. Secret resolution and provider wire formats are the
job of whatever adapter the operation callable uses.
"""

from typing import Any, Self

from pydantic import BaseModel, Field, ValidationError, field_validator

from brainpipe.contracts.capabilities import VALID_CAPABILITIES
from brainpipe.contracts.errors import ConfigurationError, MissingModelError


class ModelConfig(BaseModel):
    """A named model endpoint and what it can do.

    Example:
        ModelConfig(
            name="default",
            provider="openai",
            model="gpt-4o",
            capabilities=["text_to_text", "image_to_text"],
        )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    capabilities: frozenset[str] = Field(default_factory=frozenset)
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("capabilities", mode="before")
    @classmethod
    def coerce_capabilities(cls, v: Any) -> Any:
        if isinstance(v, str):
            return frozenset({v})
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(str(c) for c in v)
        return v

    @field_validator("capabilities")
    @classmethod
    def validate_capabilities(cls, v: frozenset[str]) -> frozenset[str]:
        invalid = sorted(v - VALID_CAPABILITIES)
        if invalid:
            raise ValueError(f"Invalid capabilities: {', '.join(invalid)}. Valid capabilities: {', '.join(sorted(VALID_CAPABILITIES))}")
        return v

    def has_capability(self, capability: str) -> bool:
        return str(capability) in self.capabilities

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a ModelConfig, wrapping validation failures.

        Raises:
            ConfigurationError: If the model description is invalid
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            name = data.get("name", "?") if isinstance(data, dict) else "?"
            raise ConfigurationError(f"Invalid configuration for model '{name}': {e}") from e


class ModelRegistry:
    """Name -> ModelConfig lookup.

    Built once before pipes are constructed and read concurrently
    afterwards; the engine never writes to it during execution.
    """

    def __init__(self, models: list[ModelConfig] | None = None) -> None:
        self._models: dict[str, ModelConfig] = {}
        for config in models or []:
            self.register(config.name, config)

    def register(self, name: str, config: ModelConfig) -> None:
        if not isinstance(config, ModelConfig):
            raise TypeError(f"Expected ModelConfig, got {type(config).__name__}")
        self._models[name] = config

    def get(self, name: str) -> ModelConfig:
        """Return the named model.

        Raises:
            MissingModelError: If no model is registered under name
        """
        try:
            return self._models[name]
        except KeyError:
            raise MissingModelError(
                f"Model '{name}' not found. Registered models: {', '.join(sorted(self._models)) or 'none'}"
            ) from None

    def find(self, name: str) -> ModelConfig | None:
        return self._models.get(name)

    def names(self) -> list[str]:
        return list(self._models)

    def clear(self) -> None:
        self._models.clear()

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._models
