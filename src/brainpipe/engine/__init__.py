# src/brainpipe/engine/__init__.py
"""Execution engine for brainpipe pipelines.

- OperationExecutor: runs one operation under its contract, timeout and error policy
- Stage: runs a group of operations over a record array and merges results
- Pipe: validates stage compatibility and threads a record through the stages
- Budget: nested pipe/stage/operation timeouts
- build_pipe: turns a PipeSettings description into a validated Pipe

Example:
    from brainpipe.engine import Pipe, Stage
    from brainpipe.operations import Collapse, Explode

    pipe = Pipe(
        "orders",
        [
            Stage("split", [Explode({"split": {"order_ids": "order_id", "quantities": "quantity"}})]),
            Stage("total", [Collapse({"merge": {"order_id": "collect", "quantity": "sum"}})]),
        ],
    )
    pipe.call(order_ids=["A", "A"], quantities=[10, 20])
    # {"order_id": ["A", "A"], "quantity": 30}
"""

from brainpipe.engine.budget import Budget
from brainpipe.engine.builder import build_operation, build_pipe, build_stage, default_registry
from brainpipe.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from brainpipe.engine.executor import OperationExecutor
from brainpipe.engine.merge import MergeStrategy, merge_outcomes, merge_records
from brainpipe.engine.pipe import Pipe
from brainpipe.engine.stage import Stage, StageMode, check_capability

__all__ = [
    "DEFAULT_CLOCK",
    "Budget",
    "Clock",
    "MergeStrategy",
    "MockClock",
    "OperationExecutor",
    "Pipe",
    "Stage",
    "StageMode",
    "SystemClock",
    "build_operation",
    "build_pipe",
    "build_stage",
    "check_capability",
    "default_registry",
    "merge_outcomes",
    "merge_records",
]
