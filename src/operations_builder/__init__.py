"""
Operations Builder - A fluent builder for operation groups.

This library assembles operations into groups with rollback and
completion handling, through a chained builder API. A builder holding a
single operation runs it directly; adding a second one promotes the
builder to a full group.

Basic Usage:
    >>> from operations_builder import OperationHost
    >>>
    >>> with OperationHost() as host:
    ...     result = (
    ...         host.collection_builder()
    ...         .task_filesystem_stack()
    ...             .mkdir("g")
    ...             .touch("g/g.txt")
    ...         .rollback(host.task("filesystem_stack").remove("g"))
    ...         .task_exec("ls").arg("g")
    ...         .run()
    ...     )
    >>> result.success, result["time"]

Key Concepts:
    - **Operations**: Units of work with a `run()` method and optional
      capabilities (command text, completion, rollback, nesting)
    - **Group**: An ordered sequence of operations with rollback and
      completion stacks
    - **Builder**: The fluent front end; `task_*` calls construct
      operations, other calls configure the current one
    - **Simulation**: Dry-run mode in which operations report what they
      would do instead of doing it

Custom operations:
    >>> from operations_builder import BaseOperation, OperationResult, register_operation
    >>>
    >>> class HelloOperation(BaseOperation):
    ...     def run(self):
    ...         return OperationResult.succeeded("hello")
    >>>
    >>> register_operation("hello", HelloOperation)
    >>> host.collection_builder().task_hello().run()
"""

from .base import (
    BaseOperation,
    BuilderAware,
    CommandProducing,
    CompletionCapable,
    Decoration,
    NestedGroupCapable,
    Operation,
    OperationResult,
    OperationType,
    RollbackCapable,
    WrappedOperation,
    unwrap,
)
from .builder import BuilderMode, OperationBuilder
from .code import CallableOperation
from .completion import CompletionDecorator, CompletionTracker
from .exceptions import (
    CommandNotSupportedError,
    ConfigurationError,
    NoActiveOperationError,
    OperationConstructionError,
    OperationError,
    OperationNotFoundError,
    UnknownOperationError,
)
from .filesystem import FilesystemStack, TmpDirOperation, WorkDirOperation
from .group import OperationGroup
from .host import OperationHost
from .operation import OperationSpec
from .parser import PlanParser
from .process import ExecOperation
from .registry import OperationRegistry, get_registry, register_operation
from .settings import BuilderSettings
from .simulator import SimulationDecorator

__version__ = "0.1.0"

__all__ = [
    # Core types
    "BaseOperation",
    "OperationType",
    "OperationResult",
    "Decoration",
    "unwrap",
    # Capabilities
    "Operation",
    "CommandProducing",
    "CompletionCapable",
    "RollbackCapable",
    "NestedGroupCapable",
    "BuilderAware",
    "WrappedOperation",
    # Building & execution
    "OperationBuilder",
    "BuilderMode",
    "OperationGroup",
    "OperationHost",
    "BuilderSettings",
    # Decorators
    "CompletionDecorator",
    "CompletionTracker",
    "SimulationDecorator",
    # Registry
    "OperationRegistry",
    "get_registry",
    "register_operation",
    # Plans
    "OperationSpec",
    "PlanParser",
    # Exceptions
    "OperationError",
    "OperationNotFoundError",
    "UnknownOperationError",
    "NoActiveOperationError",
    "OperationConstructionError",
    "CommandNotSupportedError",
    "ConfigurationError",
    # Built-in operations
    "CallableOperation",
    "ExecOperation",
    "FilesystemStack",
    "TmpDirOperation",
    "WorkDirOperation",
]
