"""
Exception classes for Operations Builder.

All exceptions include:
- Descriptive messages with context
- `to_dict()` method for structured JSON output
- Fuzzy-matched suggestions where applicable

Only construction and dispatch problems are raised. Failures while an
operation runs are reported through OperationResult instead.
"""

from difflib import get_close_matches
from typing import Any, Dict, List, Optional


def _suggest(name: str, candidates: List[str]) -> List[str]:
    matches = get_close_matches(
        name.lower(),
        [candidate.lower() for candidate in candidates],
        n=3,
        cutoff=0.5,
    )
    # Map back to original case
    return [candidate for candidate in candidates if candidate.lower() in matches]


class OperationError(Exception):
    """
    Base exception for all Operations Builder errors.

    Example:
        >>> try:
        ...     builder.task_unknown()
        ... except OperationError as e:
        ...     print(e.to_dict())
    """

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class OperationNotFoundError(OperationError):
    """
    Raised when an unknown operation is requested from the registry.

    Attributes:
        operation: The unknown operation name that was requested
        valid_operations: List of all valid operation names
        suggestions: Fuzzy-matched similar operation names

    Example:
        >>> registry.get_operation("tmpdir")
        OperationNotFoundError: Unknown operation: 'tmpdir'.
        Did you mean: tmp_dir?
        Available operations: exec, filesystem_stack, tmp_dir, work_dir
    """

    def __init__(self, operation: str, valid_operations: List[str]):
        self.operation = operation
        self.valid_operations = valid_operations
        self.suggestions = _suggest(operation, valid_operations)

        message = f"Unknown operation: '{operation}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"

        # Show available operations (truncated)
        sorted_ops = sorted(valid_operations)[:10]
        message += f"\nAvailable operations: {', '.join(sorted_ops)}"
        if len(valid_operations) > 10:
            message += f" ... ({len(valid_operations) - 10} more)"

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "OPERATION_NOT_FOUND",
            "operation": self.operation,
            "suggestions": self.suggestions,
            "valid_operations": sorted(self.valid_operations),
        }


class UnknownOperationError(OperationError):
    """
    Raised when a `task_*` call cannot be built by the host.

    Attributes:
        method_name: The factory method that was called
        host_type: Class name of the host that was asked to build it
        suggestions: Similar factory methods the host does know
    """

    def __init__(
        self,
        method_name: str,
        host_type: str,
        known_methods: Optional[List[str]] = None,
    ):
        self.method_name = method_name
        self.host_type = host_type
        self.suggestions = _suggest(method_name, known_methods or [])

        message = f"No such method {method_name}: operation does not exist in {host_type}."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "UNKNOWN_OPERATION",
            "method": self.method_name,
            "host": self.host_type,
            "suggestions": self.suggestions,
        }


class NoActiveOperationError(OperationError):
    """Raised when a call is forwarded before any operation was added."""

    def __init__(self, method_name: str):
        self.method_name = method_name
        super().__init__(
            f"No such method {method_name}: current operation undefined in builder."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "NO_ACTIVE_OPERATION",
            "method": self.method_name,
        }


class OperationConstructionError(OperationError):
    """
    Raised when an operation class cannot be instantiated.

    Attributes:
        operation_name: Name (or class name) of the operation
        original_error: The exception raised by the constructor
    """

    def __init__(self, operation_name: str, original_error: Optional[Exception] = None):
        self.operation_name = operation_name
        self.original_error = original_error

        message = f"Can not construct operation {operation_name}"
        if original_error is not None:
            message += f": {original_error}"

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "error": "CONSTRUCTION_ERROR",
            "operation": self.operation_name,
        }
        if self.original_error:
            result["original_error"] = str(self.original_error)
        return result


class CommandNotSupportedError(OperationError):
    """Raised when command text is requested from an operation that has none."""

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        super().__init__(
            f"{operation_name} does not produce command text."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "COMMAND_NOT_SUPPORTED",
            "operation": self.operation_name,
        }


class ConfigurationError(OperationError):
    """
    Raised when settings or a plan definition are invalid.

    Includes the schema showing required and optional parameters.

    Attributes:
        message: Error description
        operation_name: Name of the misconfigured operation or settings block
        config_schema: The expected configuration schema
        provided_config: The invalid configuration that was provided
    """

    def __init__(
        self,
        message: str,
        operation_name: Optional[str] = None,
        config_schema: Optional[Dict[str, Any]] = None,
        provided_config: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.operation_name = operation_name
        self.config_schema = config_schema
        self.provided_config = provided_config

        full_message = message
        if operation_name:
            full_message = f"[{operation_name}] {message}"

        super().__init__(full_message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "CONFIGURATION_ERROR",
            "message": self.message,
            "operation": self.operation_name,
            "config_schema": self.config_schema,
            "provided_config": self.provided_config,
        }
