# src/brainpipe/__init__.py
"""
brainpipe: typed, contract-checked pipelines of operations.

Operations declare what they read, set and delete; stages run them
concurrently and merge their results; pipes check that consecutive stages
fit together before anything runs, and enforce every declaration while
it does.
"""

__version__ = "0.1.0"

from brainpipe.contracts import (
    BrainpipeError,
    Cardinality,
    ConfigurationError,
    ContractBuilder,
    ContractViolation,
    ExecutionError,
    FieldSpec,
    Record,
)
from brainpipe.core import EngineSettings, ModelConfig, ModelRegistry, OperationRegistry, PipeSettings
from brainpipe.engine import Pipe, Stage, StageMode, build_pipe
from brainpipe.operations import BaseOperation, CallableOperation, Collapse, Explode, Filter, Link, Log

__all__ = [
    "BaseOperation",
    "BrainpipeError",
    "CallableOperation",
    "Cardinality",
    "Collapse",
    "ConfigurationError",
    "ContractBuilder",
    "ContractViolation",
    "EngineSettings",
    "ExecutionError",
    "Explode",
    "FieldSpec",
    "Filter",
    "Link",
    "Log",
    "ModelConfig",
    "ModelRegistry",
    "OperationRegistry",
    "Pipe",
    "PipeSettings",
    "Record",
    "Stage",
    "StageMode",
    "build_pipe",
]
