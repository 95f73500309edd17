"""
Plan parser for turning JSON definitions into builders.

A plan is a list of steps. Each step names a registered operation, its
constructor arguments, the setter calls to apply and whether it runs in
sequence, as a rollback, or as a completion.
"""

import json
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError
from .operation import ROLES, OperationSpec
from .registry import OperationRegistry, factory_method_name, get_registry

PlanDefinition = Union[str, List[Dict[str, Any]]]


def _load(plan_json: PlanDefinition, plan_name: str) -> List[Any]:
    if isinstance(plan_json, str):
        try:
            loaded = json.loads(plan_json)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in plan '{plan_name}': {e}") from e
        if not isinstance(loaded, list):
            raise TypeError(f"Plan '{plan_name}' must be a JSON list, not {type(loaded).__name__}")
        return loaded
    if isinstance(plan_json, list):
        return plan_json
    raise TypeError(f"plan_json must be a JSON string or a list, not {type(plan_json).__name__}")


class PlanParser:
    """
    Utility class to parse, validate and build plans.

    Example:
        >>> plan = [
        ...     {"operation": "filesystem_stack", "calls": [{"method": "mkdir", "args": ["out"]}]},
        ...     {"operation": "exec", "args": ["make"], "calls": [{"method": "dir", "args": ["out"]}]},
        ... ]
        >>> builder = PlanParser.build(plan, host)
        >>> result = builder.run()
    """

    @classmethod
    def from_json(cls, plan_json: PlanDefinition, plan_name: str = "Unnamed") -> List[OperationSpec]:
        """
        Transform plan JSON into a list of OperationSpec objects, in order.

        Raises:
            ValueError: If JSON is invalid or a step is malformed
            TypeError: If input is not a string or a list
        """
        steps = _load(plan_json, plan_name)
        specs: List[OperationSpec] = []

        for idx, step in enumerate(steps):
            if not isinstance(step, dict):
                raise ValueError(
                    f"Plan step at index {idx} in '{plan_name}' must be a dict, "
                    f"not {type(step).__name__}."
                )
            operation_name = step.get("operation")
            if not operation_name:
                raise ValueError(
                    f"Plan step at index {idx} in '{plan_name}' "
                    f"is missing required 'operation' field."
                )
            specs.append(
                OperationSpec(
                    operation=operation_name,
                    args=step.get("args"),
                    kwargs=step.get("kwargs"),
                    calls=step.get("calls"),
                    role=step.get("role", "task"),
                )
            )

        return specs

    @classmethod
    def validate(
        cls,
        plan_json: PlanDefinition,
        registry: Optional[OperationRegistry] = None,
        plan_name: str = "Unnamed",
    ) -> List[str]:
        """
        Validate a plan without building it.

        Checks:
        - JSON structure is valid
        - Every step names a registered operation
        - Roles are known and calls are well formed

        Returns:
            List of validation error messages (empty if valid).
        """
        registry = registry if registry is not None else get_registry()
        errors: List[str] = []

        try:
            steps = _load(plan_json, plan_name)
        except (ValueError, TypeError) as e:
            return [str(e)]

        if not steps:
            return ["Plan cannot be empty"]

        for idx, step in enumerate(steps):
            prefix = f"Step {idx}"

            if not isinstance(step, dict):
                errors.append(f"{prefix}: Expected dict, got {type(step).__name__}")
                continue

            op_name = step.get("operation")
            if not op_name:
                errors.append(f"{prefix}: Missing required 'operation' field")
                continue

            if not registry.has_operation(op_name):
                errors.append(f"{prefix}: Unknown operation '{op_name}'")

            role = step.get("role", "task")
            if role not in ROLES:
                errors.append(f"{prefix} ({op_name}): Unknown role '{role}'")

            if not isinstance(step.get("args", []), list):
                errors.append(f"{prefix} ({op_name}): 'args' must be a list")
            if not isinstance(step.get("kwargs", {}), dict):
                errors.append(f"{prefix} ({op_name}): 'kwargs' must be a dict")

            for call_idx, call in enumerate(step.get("calls", []) or []):
                if not isinstance(call, dict) or not call.get("method"):
                    errors.append(f"{prefix} ({op_name}): Call {call_idx} needs a 'method'")

        return errors

    @classmethod
    def build(cls, plan_json: PlanDefinition, host: Any, plan_name: str = "Unnamed"):
        """
        Build a plan into a new builder from `host`.

        Raises:
            ConfigurationError: If the plan does not validate
        """
        errors = cls.validate(plan_json, host.registry, plan_name)
        if errors:
            raise ConfigurationError(
                "; ".join(errors),
                operation_name=plan_name,
                provided_config={"plan": plan_json},
            )

        builder = host.collection_builder()
        for spec in cls.from_json(plan_json, plan_name):
            if spec.role == "task":
                builder.resolve(factory_method_name(spec.operation), *spec.args, **spec.kwargs)
                for call in spec.calls:
                    builder.resolve(call["method"], *call.get("args", []), **call.get("kwargs", {}))
                continue

            step_builder = builder.new_builder().resolve(
                factory_method_name(spec.operation), *spec.args, **spec.kwargs
            )
            for call in spec.calls:
                step_builder.resolve(call["method"], *call.get("args", []), **call.get("kwargs", {}))
            if spec.role == "rollback":
                builder.rollback(step_builder)
            else:
                builder.completion(step_builder)

        return builder
