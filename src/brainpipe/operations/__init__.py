# src/brainpipe/operations/__init__.py
"""Built-in operations and the base classes for writing new ones.

Built-in operations:
- Link: copy/move/set/delete fields (1:1)
- Filter: keep matching records (N -> <=N)
- Explode: split sequence fields into one record per element (1 -> N)
- Collapse: merge records field by field (N -> 1)
- Log: log records and pass them through (1:1)
"""

from brainpipe.operations.base import BaseOperation, CallableOperation
from brainpipe.operations.collapse import Collapse, CollapseConfig
from brainpipe.operations.config_base import OperationConfig, RewiringConfig
from brainpipe.operations.explode import Explode, ExplodeConfig
from brainpipe.operations.filter import Filter, FilterConfig
from brainpipe.operations.link import Link, LinkConfig
from brainpipe.operations.log import Log, LogConfig
from brainpipe.operations.rewiring import Rewiring

BUILTIN_OPERATIONS: tuple[type[BaseOperation], ...] = (Link, Filter, Explode, Collapse, Log)

__all__ = [
    "BUILTIN_OPERATIONS",
    "BaseOperation",
    "CallableOperation",
    "Collapse",
    "CollapseConfig",
    "Explode",
    "ExplodeConfig",
    "Filter",
    "FilterConfig",
    "Link",
    "LinkConfig",
    "Log",
    "LogConfig",
    "OperationConfig",
    "Rewiring",
    "RewiringConfig",
]
