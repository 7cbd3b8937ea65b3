# src/brainpipe/core/__init__.py
"""Core infrastructure: Configuration, Logging, Model registry, Operation registry."""

from brainpipe.core.config import (
    EngineSettings,
    OperationSettings,
    PipeSettings,
    StageSettings,
)
from brainpipe.core.logging import configure_logging, get_logger
from brainpipe.core.models import ModelConfig, ModelRegistry
from brainpipe.core.registry import OperationRegistry

__all__ = [
    "EngineSettings",
    "ModelConfig",
    "ModelRegistry",
    "OperationRegistry",
    "OperationSettings",
    "PipeSettings",
    "StageSettings",
    "configure_logging",
    "get_logger",
]
