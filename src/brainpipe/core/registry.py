# src/brainpipe/core/registry.py
"""Operation registry: resolve operation type names to classes.

Uses pluggy for hook-based registration. Resolution order for a type
string:

1. A registered operation's ``name`` (e.g. "explode")
2. A registered operation's class name (e.g. "Explode")
3. A dotted import path "package.module.ClassName"

Unknown names raise MissingOperationError; anything that resolves to a
class that is not a BaseOperation raises ConfigurationError.
"""

import importlib
from typing import Any

import pluggy
import structlog

from brainpipe.contracts.errors import ConfigurationError, MissingOperationError
from brainpipe.core.hookspecs import PROJECT_NAME, BrainpipeOperationSpec, hookimpl
from brainpipe.operations.base import BaseOperation

slog = structlog.get_logger(__name__)


def create_operations_hookimpl(operation_classes: list[type[BaseOperation]]) -> object:
    """Wrap a list of operation classes in a pluggy plugin object."""

    class OperationsHookImpl:
        """Dynamically generated hook implementer."""

        @hookimpl
        def brainpipe_get_operations(self) -> list[type[BaseOperation]]:
            return list(operation_classes)

    return OperationsHookImpl()


def _is_operation_class(candidate: Any) -> bool:
    return isinstance(candidate, type) and issubclass(candidate, BaseOperation)


class OperationRegistry:
    """Manages operation registration and lookup.

    Usage:
        registry = OperationRegistry()
        registry.register_builtin_operations()
        registry.register_operation(SummarizeOperation)

        explode_cls = registry.resolve("explode")
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(BrainpipeOperationSpec)
        self._by_name: dict[str, type[BaseOperation]] = {}
        self._by_class_name: dict[str, type[BaseOperation]] = {}

    def register_builtin_operations(self) -> None:
        """Register Link, Filter, Explode, Collapse and Log."""
        from brainpipe.operations import BUILTIN_OPERATIONS

        self.register(create_operations_hookimpl(list(BUILTIN_OPERATIONS)))

    def register_operation(self, operation_class: type[BaseOperation]) -> None:
        """Register a single operation class."""
        if not _is_operation_class(operation_class):
            raise ConfigurationError(f"{operation_class!r} must be a BaseOperation subclass")
        self.register(create_operations_hookimpl([operation_class]))

    def register(self, plugin: Any) -> None:
        """Register a pluggy plugin implementing brainpipe_get_operations."""
        self._pm.register(plugin)
        self._refresh_caches()

    def _refresh_caches(self) -> None:
        """Rebuild name caches from all registered plugins.

        Raises:
            ConfigurationError: On duplicate operation names, or a hook
                returning something that is not an operation class
        """
        by_name: dict[str, type[BaseOperation]] = {}
        by_class_name: dict[str, type[BaseOperation]] = {}
        # pluggy calls hooks LIFO; reverse so registration order decides class-name ties
        for classes in reversed(self._pm.hook.brainpipe_get_operations()):
            for cls in classes:
                if not _is_operation_class(cls):
                    raise ConfigurationError(f"Plugin returned {cls!r}, which is not a BaseOperation subclass")
                existing = by_name.get(cls.name)
                if existing is not None and existing is not cls:
                    raise ConfigurationError(
                        f"Duplicate operation name: '{cls.name}'. Already registered by {existing.__name__}"
                    )
                by_name[cls.name] = cls
                by_class_name.setdefault(cls.__name__, cls)
        self._by_name = by_name
        self._by_class_name = by_class_name

    def resolve(self, type_name: str) -> type[BaseOperation]:
        """Resolve an operation type string to a class.

        Raises:
            MissingOperationError: If nothing matches type_name
            ConfigurationError: If type_name names something that is not an operation
        """
        if type_name in self._by_name:
            return self._by_name[type_name]
        if type_name in self._by_class_name:
            return self._by_class_name[type_name]

        candidate = self._import_path(type_name)
        if candidate is None:
            raise MissingOperationError(
                f"Operation '{type_name}' not found. Available: {', '.join(sorted(self._by_name)) or 'none'}"
            )
        if not _is_operation_class(candidate):
            raise ConfigurationError(f"'{type_name}' resolved to {candidate!r}, which is not a BaseOperation subclass")
        slog.debug("operation_resolved_by_import", type_name=type_name)
        return candidate  # type: ignore[no-any-return]

    @staticmethod
    def _import_path(type_name: str) -> Any:
        module_name, _, attr = type_name.rpartition(".")
        if not module_name:
            return None
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
        return getattr(module, attr, None)

    def names(self) -> list[str]:
        return sorted(self._by_name)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._by_name or type_name in self._by_class_name
