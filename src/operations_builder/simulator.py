"""
Simulated (dry-run) execution.

A SimulationDecorator stands in for an operation when the builder is in
simulation mode. Configuration calls still reach the real operation, so
queries like `get_path()` answer correctly, but `run()` only reports what
would have happened.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from .base import (
    BaseOperation,
    CommandProducing,
    Decoration,
    OperationResult,
    WrappedOperation,
    unwrap,
)
from .completion import describe_entry

logger = logging.getLogger("operations_builder")


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {_format_value(v)}" for k, v in value.items()) + "}"
    return str(value)


def format_call(name: str, args: Sequence[Any] = (), kwargs: Optional[Dict[str, Any]] = None) -> str:
    parts = [_format_value(arg) for arg in args]
    parts += [f"{key}={_format_value(value)}" for key, value in (kwargs or {}).items()]
    return f"{name}({', '.join(parts)})"


class SimulationDecorator(BaseOperation, WrappedOperation):
    """
    Record what an operation would do instead of doing it.

    Attributes:
        constructor_args: Positional arguments the operation was built with
        calls: Every method call forwarded through this decorator, as
               (method_name, args, kwargs) tuples
    """

    decoration = Decoration.SIMULATION

    def __init__(self, operation: Any, constructor_args: Sequence[Any] = ()):
        self._operation = operation
        self.constructor_args = list(constructor_args)
        self.calls: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def original(self):
        return self._operation

    @property
    def operation_type(self):
        return self._operation.operation_type

    def get_name(self) -> str:
        return describe_entry(self._operation)

    def run(self) -> OperationResult:
        name = self.get_name()
        logger.info("Simulating %s", format_call(name, self.constructor_args))
        for method, args, kwargs in self.calls:
            logger.info("    ->%s", format_call(method, args, kwargs))

        command = None
        inner = unwrap(self._operation)
        if isinstance(inner, CommandProducing):
            command = inner.command_text()
            logger.info("    Running %s", command)

        result = OperationResult.succeeded(name, message="Simulated", simulated=True)
        if command is not None:
            result["command"] = command
        return result

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        attribute = getattr(self._operation, name)
        if not callable(attribute):
            return attribute

        def recorded(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return attribute(*args, **kwargs)

        return recorded

    def __repr__(self):
        return f"<SimulationDecorator({self._operation!r})>"
