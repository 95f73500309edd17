"""
Fluent builder for operation groups.

The builder collects operations through chained calls:

    >>> result = (
    ...     host.collection_builder()
    ...     .task_filesystem_stack()
    ...         .mkdir("g")
    ...         .touch("g/g.txt")
    ...     .rollback(host.task("filesystem_stack").remove("g"))
    ...     .task_filesystem_stack()
    ...         .mkdir("g/h")
    ...         .touch("g/h/h.txt")
    ...     .run()
    ... )

Calls the builder does not define itself are resolved dynamically:

- `task_<name>(...)` constructs the operation registered as `<name>`,
  decorates it and adds it to the builder.
- Anything else is forwarded to the operation added last. If that
  call returns the operation itself (a setter), the builder is returned
  so the chain continues; any other value (a getter) is returned as is.

A builder holding a single operation runs it directly. As soon as a
second operation arrives (or the first one is itself a group) the
builder promotes itself to an OperationGroup, and stays promoted.
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Sequence
import functools
import logging
import re
import time

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
    WrappedOperation,
    unwrap,
)
from .completion import CompletionDecorator, CompletionTracker, describe_entry
from .exceptions import (
    NoActiveOperationError,
    OperationConstructionError,
    UnknownOperationError,
)
from .group import OperationGroup
from .settings import BuilderSettings
from .simulator import SimulationDecorator

logger = logging.getLogger("operations_builder")

FACTORY_METHOD = re.compile(r"^task_[a-z]")


class BuilderMode(Enum):
    """A builder holds either one operation directly, or a group."""

    SINGLE = "single"
    GROUPED = "grouped"


class OperationBuilder(BaseOperation, NestedGroupCapable, WrappedOperation, CommandProducing):
    """
    Creates a group and adds operations to it.

    Args:
        host: Object that builds operations by name (usually an
              OperationHost). Without one, `task_*` calls are forwarded
              like any other call.
        settings: Ambient settings; taken from the host when omitted
        completion_tracker: Receives completions of operations that run
              outside any group; taken from the host when omitted
    """

    operation_type = OperationType.GROUP

    def __init__(
        self,
        host: Any = None,
        settings: Optional[BuilderSettings] = None,
        completion_tracker: Optional[CompletionTracker] = None,
    ):
        if settings is None:
            settings = getattr(host, "settings", None)
        if completion_tracker is None:
            completion_tracker = getattr(host, "completion_tracker", None)

        self._host = host
        self._mode = BuilderMode.SINGLE
        self._current_operation: Any = None
        self._group: Optional[OperationGroup] = None
        self._simulated: Optional[bool] = None
        self.settings = settings if settings is not None else BuilderSettings()
        self.completion_tracker = (
            completion_tracker if completion_tracker is not None else CompletionTracker()
        )

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def simulated(self, simulated: bool = True):
        self._simulated = bool(simulated)
        return self

    def is_simulated(self) -> bool:
        if self._simulated is None:
            self._simulated = bool(self.settings.simulate)
        return self._simulated

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def mode(self) -> BuilderMode:
        return self._mode

    @property
    def host(self) -> Any:
        return self._host

    @property
    def current_operation(self) -> Any:
        return self._current_operation

    @property
    def group(self) -> OperationGroup:
        """The builder's group, created on first access."""
        if self._group is None:
            self._promote()
        return self._group

    def _promote(self):
        if self._group is None:
            group = OperationGroup()
            group.inflect(self)
            group.set_progress_bar_auto_display_interval(
                self.settings.progress_bar_auto_display_interval
            )
            self._group = group
            self._mode = BuilderMode.GROUPED
            logger.debug("Builder promoted to group mode")

            if self._current_operation is not None:
                group.add(self._current_operation)

    def original(self) -> OperationGroup:
        return self.group

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    def tmp_dir(self, prefix: str = "tmp", base: Optional[str] = None, include_random_part: bool = True) -> str:
        """
        Create a temporary directory to work in.

        The directory is deleted when the group completes or rolls back.
        Returns the path where the directory will be created.
        """
        # Factory calls always return the builder, so get_path() below is
        # forwarded to the operation just added.
        return self.resolve("task_tmp_dir", prefix, base, include_random_part).get_path()

    def work_dir(self, final_destination: str) -> str:
        """
        Create a working directory that is moved to `final_destination` on success.

        Returns the path of the working directory.
        """
        return self.resolve("task_work_dir", final_destination).get_path()

    # ------------------------------------------------------------------
    # Adding to the group
    # ------------------------------------------------------------------

    def add_operation(self, operation: Operation):
        self.group.add(operation)
        return self

    def add_code(self, code: Callable[[], Any]):
        self.group.add_code(code)
        return self

    def add_operation_list(self, operations: Iterable[Operation]):
        self.group.add_operation_list(operations)
        return self

    def rollback(self, operation: Operation):
        self.group.rollback(operation)
        return self

    def rollback_code(self, code: Callable[[], Any]):
        self.group.rollback_code(code)
        return self

    def completion(self, operation: Operation):
        self.group.completion(operation)
        return self

    def completion_code(self, code: Callable[[], Any]):
        self.group.completion_code(code)
        return self

    def progress_message(
        self,
        text: str,
        context: Optional[Dict[str, Any]] = None,
        level: int = logging.INFO,
    ):
        self.group.progress_message(text, context, level)
        return self

    def set_parent_group(self, parent_group: NestedGroupCapable):
        self.group.set_parent_group(parent_group)
        return self

    def register_rollback(self, rollback: Any):
        self.group.register_rollback(rollback)
        return self

    def register_completion(self, completion: Any):
        self.group.register_completion(completion)
        return self

    def add_operation_to_group(self, operation: Any):
        """
        Make `operation` the current operation, promoting to a group if needed.

        The group is only created the second time this is called, or when
        the first operation is itself a group.
        """
        if self._mode is BuilderMode.SINGLE and (
            self._current_operation is not None
            or isinstance(operation, NestedGroupCapable)
        ):
            self._promote()

        self._current_operation = operation
        if self._mode is BuilderMode.GROUPED:
            self._group.add(operation)
        return self

    def new_builder(self) -> "OperationBuilder":
        """Create a new builder with its own group, sharing this one's settings."""
        builder = OperationBuilder(
            self._host, settings=self.settings, completion_tracker=self.completion_tracker
        )
        builder.inflect(self)
        builder.simulated(self.is_simulated())
        return builder

    # ------------------------------------------------------------------
    # Construction & decoration
    # ------------------------------------------------------------------

    def build(self, operation_class: Callable[..., Any], *args, **kwargs):
        """Construct an operation, decorate it and add it to this builder."""
        target = getattr(operation_class, "operation_class", operation_class)
        name = getattr(target, "__name__", repr(target))

        try:
            operation = operation_class(*args, **kwargs)
        except Exception as e:
            raise OperationConstructionError(name, e) from e
        if operation is None:
            raise OperationConstructionError(name)

        operation = self.decorate(operation, args)
        return self.add_operation_to_group(operation)

    def decorate(self, operation: Any, args: Sequence[Any] = ()) -> Any:
        """
        Prepare a freshly constructed operation for this builder.

        Completion-capable operations get their completion registered with
        the completion tracker once they run; when the operation ends up in
        a group, the group swaps that wrapper for one bound to itself. In
        simulation mode, operations (but not groups, whose children are
        simulated individually) are replaced by a SimulationDecorator.
        """
        inflect = getattr(operation, "inflect", None)
        if callable(inflect):
            inflect(self)
        if isinstance(operation, BuilderAware):
            operation.set_builder(self)

        # Do not wrap our wrappers.
        if getattr(operation, "decoration", Decoration.PLAIN) is not Decoration.PLAIN:
            return operation

        is_operation = isinstance(operation, Operation)
        is_group = isinstance(operation, NestedGroupCapable)

        if isinstance(operation, CompletionCapable):
            operation = CompletionDecorator(self.completion_tracker, operation)

        if is_operation and not is_group and self.is_simulated():
            operation = SimulationDecorator(operation, args)
            operation.inflect(self)

        logger.debug("Decorated %r", operation)
        return operation

    # ------------------------------------------------------------------
    # Dynamic dispatch
    # ------------------------------------------------------------------

    def resolve(self, method_name: str, *args, **kwargs):
        """
        Resolve a call the builder does not implement itself.

        Raises:
            UnknownOperationError: `task_*` call the host cannot build
            NoActiveOperationError: Forwarded call before any operation exists
            OperationConstructionError: The operation's constructor failed
        """
        build_operation = getattr(self._host, "build_operation", None)
        if FACTORY_METHOD.match(method_name) and callable(build_operation):
            # Build through the host with this builder bound, so the new
            # operation picks up this builder's state.
            saved_builder = self._host.get_builder()
            self._host.set_builder(self)
            try:
                temporary_builder = build_operation(method_name, args, kwargs)
            finally:
                self._host.set_builder(saved_builder)

            if temporary_builder is None:
                known = getattr(self._host, "factory_methods", None)
                raise UnknownOperationError(
                    method_name,
                    type(self._host).__name__,
                    known() if callable(known) else None,
                )
            temporary_builder.group.transfer_operations_to(self)
            return self

        if self._current_operation is None:
            raise NoActiveOperationError(method_name)

        current = self._current_operation
        result = getattr(current, method_name)(*args, **kwargs)

        # Setters return the operation (or one of its wrappers); keep chaining.
        if result is None or result is current or result is unwrap(current):
            return self
        return result

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return functools.partial(self.resolve, name)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def run(self) -> OperationResult:
        """Run everything in the builder; the result carries the elapsed seconds under "time"."""
        started = time.perf_counter()
        result = self._run_operations()
        result["time"] = time.perf_counter() - started
        return result

    def _run_operations(self) -> OperationResult:
        # A single operation runs directly; otherwise the group runs all of them.
        if self._mode is BuilderMode.SINGLE and self._current_operation is not None:
            operation = self._current_operation
            name = describe_entry(operation)
            try:
                result = operation.run()
            except Exception as e:
                logger.error("Operation %s raised: %s", name, e)
                result = OperationResult.failed(name, error=str(e))
        else:
            result = self.group.run()
        if result is None:
            result = OperationResult.succeeded(self.get_name())
        return result

    def command_text(self) -> str:
        if self._mode is BuilderMode.SINGLE and self._current_operation is not None:
            operation = unwrap(self._current_operation)
            if isinstance(operation, CommandProducing):
                return operation.command_text()
        return self.group.command_text()

    def __repr__(self):
        count = len(self._group) if self._group is not None else int(self._current_operation is not None)
        return f"<OperationBuilder(mode={self._mode.value}, operations={count})>"
