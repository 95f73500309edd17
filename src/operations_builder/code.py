"""
Operations that run Python code.
"""

from typing import Any, Callable
import logging

from .base import BaseOperation, OperationResult, OperationType

logger = logging.getLogger("operations_builder")


class CallableOperation(BaseOperation):
    """
    Run a Python callable as an operation.

    The callable's return value decides the outcome:
    - an OperationResult is passed through
    - False (or a non-zero int) is a failure
    - anything else is a success, stored under result["value"]

    Example:
        >>> builder.add_code(lambda: print("hello"))
    """

    operation_type = OperationType.CODE

    def __init__(self, code: Callable[[], Any]):
        if not callable(code):
            raise TypeError(f"CallableOperation needs a callable, got {type(code).__name__}")
        self._code = code

    def get_name(self) -> str:
        return getattr(self._code, "__qualname__", None) or self.__class__.__name__

    def run(self) -> OperationResult:
        value = self._code()
        if isinstance(value, OperationResult):
            return value
        if value is False:
            return OperationResult.failed(self.get_name(), error="returned False")
        if isinstance(value, int) and not isinstance(value, bool) and value != 0:
            return OperationResult.failed(
                self.get_name(), error=f"exited with {value}", exit_code=value
            )
        return OperationResult.succeeded(self.get_name(), value=value)
