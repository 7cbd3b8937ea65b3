# src/brainpipe/engine/builder.py
"""Build a Pipe from an already-parsed declarative description.

The description is a PipeSettings (or the equivalent plain dict):

    build_pipe(
        {
            "name": "orders",
            "stages": [
                {"name": "split", "operations": [
                    {"type": "explode", "options": {"split": {"order_ids": "order_id"}}},
                ]},
                {"name": "total", "operations": [
                    {"type": "collapse", "options": {"merge": {"order_id": "collect"}}},
                ]},
            ],
        },
        registry=registry,
        models=models,
    )

Operation types resolve through the OperationRegistry; model names through
the ModelRegistry. Every configuration problem surfaces here as a
ConfigurationError subclass, before anything runs.
"""

from typing import Any

import structlog

from brainpipe.core.config import EngineSettings, OperationSettings, PipeSettings, StageSettings
from brainpipe.core.models import ModelRegistry
from brainpipe.core.registry import OperationRegistry
from brainpipe.engine.clock import DEFAULT_CLOCK, Clock
from brainpipe.engine.pipe import Pipe
from brainpipe.engine.stage import Stage, check_capability
from brainpipe.operations.base import BaseOperation
from brainpipe.telemetry.protocols import MetricsCollector

slog = structlog.get_logger(__name__)


def default_registry() -> OperationRegistry:
    """A fresh registry holding the built-in operations."""
    registry = OperationRegistry()
    registry.register_builtin_operations()
    return registry


def build_operation(
    settings: OperationSettings,
    *,
    registry: OperationRegistry,
    models: ModelRegistry,
) -> BaseOperation:
    """Resolve, configure and capability-check one operation.

    Raises:
        MissingOperationError: Unknown operation type
        MissingModelError: Unknown model name
        CapabilityMismatchError: Bound model lacks the required capability
        ConfigurationError: Invalid options
    """
    operation_class = registry.resolve(settings.type)
    model = models.get(settings.model) if settings.model is not None else None
    options = dict(settings.options)
    if settings.timeout is not None:
        options["timeout"] = settings.timeout
    operation = operation_class(options, model=model)
    check_capability(operation)
    return operation


def build_stage(
    settings: StageSettings,
    *,
    registry: OperationRegistry,
    models: ModelRegistry,
    engine: EngineSettings,
    clock: Clock = DEFAULT_CLOCK,
) -> Stage:
    operations = [build_operation(op, registry=registry, models=models) for op in settings.operations]
    return Stage(
        settings.name,
        operations,
        mode=settings.mode,
        merge_strategy=settings.merge_strategy,
        timeout=settings.timeout,
        settings=engine,
        clock=clock,
    )


def build_pipe(
    settings: PipeSettings | dict[str, Any],
    *,
    registry: OperationRegistry | None = None,
    models: ModelRegistry | None = None,
    engine: EngineSettings | None = None,
    metrics: MetricsCollector | None = None,
    clock: Clock = DEFAULT_CLOCK,
) -> Pipe:
    """Build and validate a Pipe.

    Args:
        settings: Pipe description
        registry: Operation registry (default: built-ins only)
        models: Model registry (default: empty)
        engine: Engine settings (default: EngineSettings())
        metrics: Lifecycle collector for the pipe
        clock: Time source for budgets

    Returns:
        A validated Pipe

    Raises:
        ConfigurationError: If the description is invalid in any way
    """
    if not isinstance(settings, PipeSettings):
        settings = PipeSettings.from_dict(settings)
    registry = registry if registry is not None else default_registry()
    models = models if models is not None else ModelRegistry()
    engine = engine if engine is not None else EngineSettings()

    stages = [
        build_stage(stage, registry=registry, models=models, engine=engine, clock=clock)
        for stage in settings.stages
    ]
    pipe = Pipe(
        settings.name,
        stages,
        timeout=settings.timeout,
        input_schema=settings.input_schema,
        metrics=metrics,
        clock=clock,
    )
    slog.debug("pipe_built", pipe=pipe.name, stages=[s.name for s in stages], operations=pipe.operations_count)
    return pipe
