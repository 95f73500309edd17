"""
Plan step value object.

Represents a single step in a declarative plan. This is the data
structure used to define plans in JSON/dict format.
"""

from typing import Any, Dict, List, Optional, Sequence

ROLES = ("task", "rollback", "completion")


class OperationSpec:
    """
    Value object representing a single step in a plan.

    Attributes:
        operation: Registered operation name (e.g., 'exec', 'tmp_dir')
        args: Positional constructor arguments
        kwargs: Keyword constructor arguments
        calls: Setter calls applied after construction, each a dict
               with 'method' and optional 'args' / 'kwargs'
        role: 'task' (run in sequence), 'rollback' or 'completion'

    Example (from JSON):
        >>> {
        ...     "operation": "exec",
        ...     "args": ["git"],
        ...     "calls": [{"method": "arg", "args": ["status"]}],
        ...     "role": "task"
        ... }
    """

    def __init__(
        self,
        operation: str,
        args: Optional[Sequence[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        calls: Optional[List[Dict[str, Any]]] = None,
        role: str = "task",
    ):
        if role not in ROLES:
            raise ValueError(f"role must be one of {', '.join(ROLES)}, not '{role}'")
        self._operation = operation
        self._args = list(args or [])
        self._kwargs = dict(kwargs or {})
        self._calls = list(calls or [])
        self._role = role

    def to_dict(self) -> Dict[str, Any]:
        """Convert the step to a dictionary, for JSON serialization."""
        return {
            "operation": self._operation,
            "args": self._args,
            "kwargs": self._kwargs,
            "calls": self._calls,
            "role": self._role,
        }

    def __repr__(self):
        return f"OperationSpec(operation={self._operation}, role={self._role})"

    @property
    def operation(self) -> str:
        return self._operation

    @property
    def args(self) -> List[Any]:
        return self._args

    @property
    def kwargs(self) -> Dict[str, Any]:
        return self._kwargs

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self._calls

    @property
    def role(self) -> str:
        return self._role
