# tests/conftest.py
"""Shared test configuration.

Test Organization:
    tests/
    ├── contracts/     # Records, type descriptors, schemas, operation contracts
    ├── core/          # Settings, model registry, operation registry, logging
    ├── engine/        # Budgets, merging, executor, stages, pipes, builder
    ├── operations/    # Built-in operations (Link, Filter, Explode, Collapse, Log)
    ├── telemetry/     # Metrics collectors
    └── property/      # Hypothesis property tests

Shared helpers live here so test modules can import them directly:

    from tests.conftest import RecordingMetricsCollector, make_operation

Hypothesis profiles are selected with HYPOTHESIS_PROFILE (ci, nightly, debug).
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings
from structlog.testing import capture_logs

from brainpipe.contracts.operation import Cardinality, ContractBuilder
from brainpipe.contracts.record import Record
from brainpipe.core.models import ModelConfig, ModelRegistry
from brainpipe.core.registry import OperationRegistry
from brainpipe.engine.clock import MockClock
from brainpipe.operations.base import CallableOperation

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock(start=1000.0)


@pytest.fixture
def operation_registry() -> OperationRegistry:
    """Registry with the built-in operations registered."""
    registry = OperationRegistry()
    registry.register_builtin_operations()
    return registry


@pytest.fixture
def model_registry() -> ModelRegistry:
    return ModelRegistry(
        [
            ModelConfig(name="writer", provider="openai", model="gpt-4o", capabilities=["text_to_text"]),
            ModelConfig(name="painter", provider="openai", model="dall-e-3", capabilities=["text_to_image"]),
        ]
    )


@pytest.fixture
def captured_logs() -> Any:
    """Capture structlog events emitted during the test."""
    with capture_logs() as logs:
        yield logs


# =============================================================================
# Shared Test Helpers
# =============================================================================


def make_operation(
    name: str,
    fn: Callable[[list[Record]], list[Record]],
    *,
    reads: dict[str, Any] | None = None,
    sets: dict[str, Any] | None = None,
    deletes: dict[str, bool] | None = None,
    cardinality: Cardinality = Cardinality.ONE_TO_ONE,
    ignore_errors: Any = False,
    timeout: float | None = None,
    capability: str | None = None,
    model: Any = None,
) -> CallableOperation:
    """Build a CallableOperation from plain dicts.

    reads/sets map property name to type shorthand (None for untyped); a
    trailing '?' on the name marks the property optional.

    Example:
        shout = make_operation(
            "shout",
            lambda rs: [r.with_merged({"shout": r.get("text").upper()}) for r in rs],
            reads={"text": str},
            sets={"shout": str},
        )
    """
    builder = ContractBuilder(name).cardinality(cardinality).ignore_errors(ignore_errors).timeout(timeout)
    for prop, type_spec in (reads or {}).items():
        builder.reads(prop.rstrip("?"), type_spec, optional=prop.endswith("?"))
    for prop, type_spec in (sets or {}).items():
        builder.sets(prop.rstrip("?"), type_spec, optional=prop.endswith("?"))
    for prop, optional in (deletes or {}).items():
        builder.deletes(prop, optional=optional)
    if capability is not None:
        builder.requires_model(capability)
    return CallableOperation(builder.build(), fn, model=model)


def setter(name: str, key: str, value: Any, *, type_spec: Any = None, **kwargs: Any) -> CallableOperation:
    """A 1:1 operation that writes one constant onto every record."""
    return make_operation(
        name,
        lambda records: [r.with_merged({key: value}) for r in records],
        sets={key: type_spec},
        **kwargs,
    )


class RecordingMetricsCollector:
    """MetricsCollector that keeps every event as (event_name, fields)."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def _record(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def operation_started(self, **fields: Any) -> None:
        self._record("operation_started", **fields)

    def operation_completed(self, **fields: Any) -> None:
        self._record("operation_completed", **fields)

    def operation_failed(self, **fields: Any) -> None:
        self._record("operation_failed", **fields)

    def stage_started(self, **fields: Any) -> None:
        self._record("stage_started", **fields)

    def stage_completed(self, **fields: Any) -> None:
        self._record("stage_completed", **fields)

    def stage_failed(self, **fields: Any) -> None:
        self._record("stage_failed", **fields)

    def pipe_started(self, **fields: Any) -> None:
        self._record("pipe_started", **fields)

    def pipe_completed(self, **fields: Any) -> None:
        self._record("pipe_completed", **fields)

    def pipe_failed(self, **fields: Any) -> None:
        self._record("pipe_failed", **fields)


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Thread pools make timing vary
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
