"""
Operation group for running ordered operation sequences.

A group runs its operations one after another. When one fails, the
rollbacks registered so far run in reverse order; completions run in
reverse order once the group is done, whether it succeeded or not.
Groups nest: a child group hands its rollbacks and completions to its
parent, so they run when the outermost group finishes.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import time

from .base import (
    BaseOperation,
    CommandProducing,
    CompletionCapable,
    Decoration,
    NestedGroupCapable,
    Operation,
    OperationResult,
    OperationType,
    RollbackCapable,
    unwrap,
)
from .code import CallableOperation
from .completion import CompletionDecorator, describe_entry, fire_completion, same_entry
from .exceptions import CommandNotSupportedError

logger = logging.getLogger("operations_builder")

OPERATION = "operation"
ROLLBACK = "rollback"
COMPLETION = "completion"
PROGRESS = "progress"


def interpolate(text: str, context: Dict[str, Any]) -> str:
    """Replace `{key}` placeholders found in `context`; anything else is left as written."""
    for key, value in context.items():
        text = text.replace("{" + str(key) + "}", str(value))
    return text


@dataclass
class _Entry:
    kind: str
    item: Any
    runnable: Any = None
    context: Dict[str, Any] = field(default_factory=dict)
    level: int = logging.INFO


class OperationGroup(BaseOperation, NestedGroupCapable, CommandProducing):
    """
    Runs a sequence of operations with rollback and completion handling.

    Rollback and completion declarations keep their place in the
    sequence: a rollback declared between A and B is registered only
    once A has succeeded, so it runs if B (or anything after it) fails.

    Example:
        >>> group = OperationGroup()
        >>> group.add(FilesystemStack().mkdir("build"))
        >>> group.rollback_code(lambda: shutil.rmtree("build"))
        >>> group.add(ExecOperation("make").dir("build"))
        >>> result = group.run()
    """

    operation_type = OperationType.GROUP

    def __init__(self):
        self._entries: List[_Entry] = []
        self._parent: Optional[NestedGroupCapable] = None
        self._rollback_stack: List[Any] = []
        self._completion_stack: List[Any] = []
        self._progress_interval: Optional[float] = None

    # ------------------------------------------------------------------
    # Building the sequence
    # ------------------------------------------------------------------

    def add(self, operation: Operation):
        """Append an operation; insertion order is execution order."""
        runnable = self._fix_operation(operation)
        self._entries.append(_Entry(OPERATION, operation, runnable))
        logger.debug("Added %s to group (%d operations)", describe_entry(runnable), len(self))
        return self

    def add_code(self, code: Callable[[], Any]):
        return self.add(CallableOperation(code))

    def add_operation_list(self, operations: Iterable[Operation]):
        for operation in operations:
            self.add(operation)
        return self

    def rollback(self, operation: Operation):
        self._entries.append(_Entry(ROLLBACK, operation))
        return self

    def rollback_code(self, code: Callable[[], Any]):
        self._entries.append(_Entry(ROLLBACK, code))
        return self

    def completion(self, operation: Operation):
        self._entries.append(_Entry(COMPLETION, operation))
        return self

    def completion_code(self, code: Callable[[], Any]):
        self._entries.append(_Entry(COMPLETION, code))
        return self

    def progress_message(
        self,
        text: str,
        context: Optional[Dict[str, Any]] = None,
        level: int = logging.INFO,
    ):
        """Log `text`, with `{key}` placeholders filled from `context`, when execution reaches this point."""
        self._entries.append(_Entry(PROGRESS, text, context=dict(context or {}), level=level))
        return self

    def _fix_operation(self, operation: Any) -> Any:
        if isinstance(operation, BaseOperation):
            operation.inflect(self)
        if isinstance(operation, NestedGroupCapable):
            operation.set_parent_group(self)

        # A completion wrapper bound elsewhere (usually the host's tracker)
        # is replaced by one bound to this group.
        if getattr(operation, "decoration", None) is Decoration.COMPLETION:
            operation.release()
            return CompletionDecorator(self, operation.original())
        if isinstance(operation, CompletionCapable) and not isinstance(
            operation, NestedGroupCapable
        ):
            return CompletionDecorator(self, operation)
        return operation

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def operations(self) -> List[Any]:
        """Operations in execution order, as they were added."""
        return [entry.item for entry in self._entries if entry.kind == OPERATION]

    @property
    def rollbacks(self) -> List[Any]:
        """Declared rollback entries, in declaration order."""
        return [entry.item for entry in self._entries if entry.kind == ROLLBACK]

    @property
    def completions(self) -> List[Any]:
        """Declared completion entries, in declaration order."""
        return [entry.item for entry in self._entries if entry.kind == COMPLETION]

    def __len__(self):
        return sum(1 for entry in self._entries if entry.kind == OPERATION)

    def set_progress_bar_auto_display_interval(self, interval: Optional[float]):
        self._progress_interval = interval
        return self

    def set_parent_group(self, parent_group: NestedGroupCapable):
        self._parent = parent_group
        return self

    def get_parent_group(self) -> Optional[NestedGroupCapable]:
        return self._parent

    # ------------------------------------------------------------------
    # Runtime registration
    # ------------------------------------------------------------------

    def register_rollback(self, rollback: Any):
        if self._parent is not None:
            return self._parent.register_rollback(rollback)
        self._rollback_stack.append(rollback)
        return self

    def register_completion(self, completion: Any):
        if self._parent is not None:
            return self._parent.register_completion(completion)
        if not any(same_entry(entry, completion) for entry in self._completion_stack):
            self._completion_stack.append(completion)
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self) -> OperationResult:
        """
        Run every operation in order.

        Returns:
            A successful result, or a failed one naming the operation that
            failed. Exceptions raised by operations are captured into the
            result, never propagated.
        """
        total = len(self)
        started = time.perf_counter()
        if self._parent is None:
            self._rollback_stack = []
        step = 0
        failure: Optional[OperationResult] = None

        logger.debug("Starting group with %d operations", total)

        for index, entry in enumerate(self._entries):
            if entry.kind == ROLLBACK:
                self.register_rollback(entry.item)
            elif entry.kind == COMPLETION:
                self.register_completion(entry.item)
            elif entry.kind == PROGRESS:
                logger.log(entry.level, interpolate(entry.item, entry.context))
            else:
                step += 1
                name = describe_entry(entry.runnable)
                outcome = self._run_operation(entry.runnable, name)
                if not outcome.was_successful():
                    failure = OperationResult.failed(
                        self.get_name(),
                        error=f"{name} failed: {outcome.error or outcome.message}",
                        exit_code=outcome.exit_code,
                        failed_operation=name,
                        step_index=index,
                    )
                    break
                self._register_own_rollback(entry.runnable)
                self._report_progress(step, total, started)

        if failure is not None:
            self._fail()
            result = failure
        else:
            result = OperationResult.succeeded(
                self.get_name(), message=f"{total} operations completed"
            )

        self._complete()
        logger.debug("Group finished, success: %s", result.success)
        return result

    def _run_operation(self, operation: Any, name: str) -> OperationResult:
        try:
            outcome = operation.run()
        except Exception as e:
            logger.error("Operation %s raised: %s", name, e)
            return OperationResult.failed(name, error=str(e))

        if outcome is None:
            return OperationResult.succeeded(name)
        if not outcome.was_successful():
            logger.error("Operation %s failed: %s", name, outcome.error or outcome.message)
        return outcome

    def _register_own_rollback(self, runnable: Any):
        inner = runnable
        if getattr(runnable, "decoration", None) is Decoration.COMPLETION:
            inner = runnable.original()
        if isinstance(inner, RollbackCapable) and not isinstance(inner, NestedGroupCapable):
            self.register_rollback(inner.rollback)

    def _report_progress(self, step: int, total: int, started: float):
        if self._progress_interval is None:
            return
        elapsed = time.perf_counter() - started
        if elapsed >= self._progress_interval:
            logger.info("Progress: %d/%d operations (%.1fs)", step, total, elapsed)

    def _fail(self):
        while self._rollback_stack:
            rollback = self._rollback_stack.pop()
            try:
                if isinstance(rollback, Operation):
                    rollback.run()
                else:
                    rollback()
            except Exception as e:
                logger.warning(
                    "Rollback %s failed (ignored): %s", describe_entry(rollback), e
                )

    def _complete(self):
        if self._parent is not None:
            return
        while self._completion_stack:
            completion = self._completion_stack.pop()
            try:
                fire_completion(completion)
            except Exception as e:
                logger.warning(
                    "Completion %s failed (ignored): %s", describe_entry(completion), e
                )

    # ------------------------------------------------------------------
    # Command text & transfer
    # ------------------------------------------------------------------

    def command_text(self) -> str:
        commands = []
        for entry in self._entries:
            if entry.kind != OPERATION:
                continue
            inner = unwrap(entry.runnable)
            if not isinstance(inner, CommandProducing):
                raise CommandNotSupportedError(describe_entry(inner))
            commands.append(inner.command_text())
        return " && ".join(commands)

    def transfer_operations_to(self, builder: Any):
        """
        Hand every operation, in order, to another builder and empty this group.

        Rollback and completion declarations are not transferred; groups
        being transferred hold only freshly built operations.
        """
        for entry in self._entries:
            if entry.kind == OPERATION:
                builder.add_operation_to_group(entry.item)
        self._entries = []
        return builder
