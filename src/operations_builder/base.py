"""
Base operation interface for the operations builder.

This module defines the core abstractions:
- OperationType: Enum classifying operations
- Decoration: Tag telling plain operations apart from decorators
- OperationResult: Outcome of running an operation or a group
- Capability interfaces: Operation, CommandProducing, CompletionCapable,
  RollbackCapable, NestedGroupCapable, BuilderAware, WrappedOperation
- BaseOperation: Convenience base class for concrete operations
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .builder import OperationBuilder
    from .settings import BuilderSettings


class OperationType(Enum):
    """
    Classification of operations, used for registry listings.

    - FILESYSTEM: Creates, moves or removes files and directories
    - PROCESS: Runs an external command
    - CODE: Runs Python code
    - GROUP: Holds and runs other operations
    """

    FILESYSTEM = "filesystem"
    PROCESS = "process"
    CODE = "code"
    GROUP = "group"


class Decoration(Enum):
    """Which decorator, if any, an operation object is."""

    PLAIN = "plain"
    COMPLETION = "completion"
    SIMULATION = "simulation"


@dataclass
class OperationResult:
    """
    Result of running an operation, a group or a builder.

    Item access reads and writes `data`, so callers can treat the result
    like a mapping:

        >>> result = builder.run()
        >>> result["time"]
        0.0123

    Attributes:
        operation_name: Name of the operation that produced this result
        success: Whether the operation completed successfully
        exit_code: Process-style exit code (0 on success)
        message: Human-readable summary
        error: Error message if the operation failed
        data: Arbitrary result data (timing, paths, simulated flag, ...)
        timestamp: When the result was produced
    """

    operation_name: str
    success: bool = True
    exit_code: int = 0
    message: str = ""
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def succeeded(cls, operation_name: str, message: str = "", **data) -> "OperationResult":
        return cls(operation_name=operation_name, message=message, data=data)

    @classmethod
    def failed(
        cls, operation_name: str, error: str, exit_code: int = 1, **data
    ) -> "OperationResult":
        return cls(
            operation_name=operation_name,
            success=False,
            exit_code=exit_code or 1,
            error=error,
            data=data,
        )

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any):
        self.data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def was_successful(self) -> bool:
        return self.success and self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and debugging."""
        return {
            "operation_name": self.operation_name,
            "success": self.success,
            "exit_code": self.exit_code,
            "message": self.message,
            "error": self.error,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================================
# Capabilities
# ============================================================================


class Operation(ABC):
    """Anything that can be run."""

    @abstractmethod
    def run(self) -> OperationResult:
        pass


class CommandProducing(ABC):
    """An operation that can describe itself as a shell command."""

    @abstractmethod
    def command_text(self) -> str:
        pass


class CompletionCapable(ABC):
    """An operation with work to do once its group has finished."""

    @abstractmethod
    def complete(self) -> None:
        pass


class RollbackCapable(ABC):
    """An operation that can undo itself if a later operation fails."""

    @abstractmethod
    def rollback(self) -> None:
        pass


class NestedGroupCapable(ABC):
    """A group of operations that can be nested inside another group."""

    @abstractmethod
    def set_parent_group(self, parent_group) -> Any:
        pass


class WrappedOperation(ABC):
    """An object standing in front of another operation."""

    @abstractmethod
    def original(self) -> Any:
        pass


class BuilderAware(ABC):
    """
    Mixin for operations that build sub-operations of their own.

    The builder that constructs the operation injects itself; the
    operation can then ask for fresh builders sharing its settings.
    """

    _builder: Optional["OperationBuilder"] = None

    def set_builder(self, builder: "OperationBuilder"):
        self._builder = builder
        return self

    def get_builder(self) -> Optional["OperationBuilder"]:
        return self._builder

    def collection_builder(self) -> "OperationBuilder":
        """Return a new, empty builder derived from the injected one."""
        if self._builder is None:
            raise RuntimeError(
                f"{self.__class__.__name__} has no builder; it was not constructed by one."
            )
        return self._builder.new_builder()


def unwrap(operation: Any) -> Any:
    """Peel every decorator layer off an operation."""
    while isinstance(operation, WrappedOperation) and not isinstance(
        operation, NestedGroupCapable
    ):
        operation = operation.original()
    return operation


class BaseOperation(Operation):
    """
    Base class for concrete operations.

    Subclasses implement `run()` and inherit from whichever capability
    interfaces apply to them.

    Example:
        >>> class HelloOperation(BaseOperation):
        ...     \"\"\"Log a greeting.\"\"\"
        ...     def run(self):
        ...         logger.info("hello")
        ...         return OperationResult.succeeded(self.get_name())
    """

    operation_type: OperationType = OperationType.CODE
    decoration: Decoration = Decoration.PLAIN
    settings: Optional["BuilderSettings"] = None
    completion_tracker: Any = None

    def inflect(self, parent: Any):
        """Take over ambient state (settings, completion tracker) from a parent."""
        settings = getattr(parent, "settings", None)
        if settings is not None:
            self.settings = settings
        tracker = getattr(parent, "completion_tracker", None)
        if tracker is not None:
            self.completion_tracker = tracker
        return self

    def get_name(self) -> str:
        return self.__class__.__name__

    @classmethod
    def get_description(cls) -> str:
        """
        Return a brief description of what this operation does.

        Default implementation uses the class docstring's first line.
        """
        doc = cls.__doc__
        if doc:
            return doc.strip().split("\n")[0]
        return f"{cls.__name__} operation"

    def __repr__(self):
        return f"<{self.__class__.__name__}(type={self.operation_type.value})>"
