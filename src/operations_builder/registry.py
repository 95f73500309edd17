"""
Operation Registry for managing and instantiating operations.

Besides the name -> class catalog, the registry keeps the dispatch table
builders use for factory calls: registering `tmp_dir` makes
`builder.task_tmp_dir(...)` available.
"""

from typing import Any, Callable, Dict, List, Optional, Type
import inspect
import logging

from .base import BaseOperation
from .exceptions import OperationNotFoundError
from .filesystem import FilesystemStack, TmpDirOperation, WorkDirOperation
from .process import ExecOperation

logger = logging.getLogger("operations_builder")

FACTORY_PREFIX = "task_"


def factory_method_name(name: str) -> str:
    """Return the builder method that constructs operation `name`."""
    return f"{FACTORY_PREFIX}{name}"


class OperationRegistry:
    """
    Registry for all operation implementations.

    Example:
        >>> from operations_builder import get_registry
        >>> registry = get_registry()
        >>>
        >>> registry.list_operations()
        >>> registry.describe_operation("exec")
        >>> construct = registry.get_factory("task_exec")
        >>> operation = construct("ls")
    """

    def __init__(self):
        self._operations: Dict[str, Type[BaseOperation]] = {}
        self._factories: Dict[str, Callable[..., BaseOperation]] = {}
        self._register_default_operations()

    def _register_default_operations(self):
        """Register all built-in operations."""

        # Filesystem
        self.register("tmp_dir", TmpDirOperation)
        self.register("work_dir", WorkDirOperation)
        self.register("filesystem_stack", FilesystemStack)
        self.register("fs", FilesystemStack)  # Alias

        # Process
        self.register("exec", ExecOperation)

    def register(self, name: str, operation_class: Type[BaseOperation]):
        """
        Register an operation by name.

        Args:
            name: Name to register the operation under (snake_case)
            operation_class: Operation class (not instance)
        """
        self._operations[name] = operation_class

        def construct(*args, **kwargs):
            return operation_class(*args, **kwargs)

        construct.operation_class = operation_class
        self._factories[factory_method_name(name)] = construct
        logger.debug("Registered operation: %s -> %s", name, operation_class.__name__)

    def get_factory(self, method_name: str) -> Optional[Callable[..., BaseOperation]]:
        """Return the constructor for a `task_*` method, or None."""
        return self._factories.get(method_name)

    def factory_methods(self) -> List[str]:
        return sorted(self._factories)

    def get_operation(self, name: str, *args, **kwargs) -> BaseOperation:
        """
        Construct an operation instance by name.

        Raises:
            OperationNotFoundError: If operation not found (includes suggestions)
        """
        if name not in self._operations:
            raise OperationNotFoundError(name, list(self._operations.keys()))
        return self._operations[name](*args, **kwargs)

    def get_operation_class(self, name: str) -> Type[BaseOperation]:
        if name not in self._operations:
            raise OperationNotFoundError(name, list(self._operations.keys()))
        return self._operations[name]

    def has_operation(self, name: str) -> bool:
        """Check if an operation is registered."""
        return name in self._operations

    def describe_operation(self, name: str) -> Dict[str, Any]:
        """
        Get documentation for an operation.

        Returns:
            Dict with name, type, description, factory method and the
            constructor parameters

        Example:
            >>> registry.describe_operation("tmp_dir")
            {
                "name": "tmp_dir",
                "type": "filesystem",
                "description": "Create a temporary directory ...",
                "factory": "task_tmp_dir",
                "parameters": {"prefix": {"default": "tmp"}, ...},
            }
        """
        operation_class = self.get_operation_class(name)

        parameters: Dict[str, Dict[str, Any]] = {}
        for param in inspect.signature(operation_class.__init__).parameters.values():
            if param.name == "self" or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            info: Dict[str, Any] = {"required": param.default is param.empty}
            if param.default is not param.empty:
                info["default"] = param.default
            parameters[param.name] = info

        return {
            "name": name,
            "type": operation_class.operation_type.value,
            "description": operation_class.get_description(),
            "factory": factory_method_name(name),
            "parameters": parameters,
        }

    def list_operations(self, category: Optional[str] = None) -> List[Dict[str, str]]:
        """
        List all operations with brief descriptions.

        Args:
            category: Optional filter by type: 'filesystem', 'process',
                     'code' or 'group'
        """
        result = []
        seen_classes = set()  # Avoid duplicates from aliases

        for name, cls in self._operations.items():
            if cls in seen_classes:
                continue
            seen_classes.add(cls)

            op_type = cls.operation_type.value
            if category and op_type != category:
                continue

            result.append(
                {
                    "name": name,
                    "type": op_type,
                    "description": cls.get_description(),
                }
            )

        return sorted(result, key=lambda x: (x["type"], x["name"]))


# Global registry instance
_global_registry = OperationRegistry()


def get_registry() -> OperationRegistry:
    """Get the global operation registry."""
    return _global_registry


def register_operation(name: str, operation_class: Type[BaseOperation]):
    """
    Register a custom operation with the global registry.

    Example:
        >>> class HelloOperation(BaseOperation):
        ...     def run(self):
        ...         return OperationResult.succeeded("hello")
        >>>
        >>> register_operation("hello", HelloOperation)
        >>> host.collection_builder().task_hello().run()
    """
    _global_registry.register(name, operation_class)
