# src/brainpipe/core/hookspecs.py
"""pluggy hook specifications for brainpipe operation plugins.

Plugins implement these hooks to make operation classes resolvable by
name from declarative pipe descriptions.

Usage (implementing a plugin):
    from brainpipe.core.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def brainpipe_get_operations(self):
            return [SummarizeOperation]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from brainpipe.operations.base import BaseOperation

PROJECT_NAME = "brainpipe"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class BrainpipeOperationSpec:
    """Hook specifications for operation plugins."""

    @hookspec
    def brainpipe_get_operations(self) -> list[type["BaseOperation"]]:  # type: ignore[empty-body]
        """Return operation classes (not instances).

        Each class is registered under its ``name`` attribute and is also
        resolvable by its class name.
        """
