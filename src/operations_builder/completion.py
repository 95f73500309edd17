"""
Completion tracking.

Operations implementing CompletionCapable have cleanup to do once the
work they belong to has finished (a temporary directory must be deleted,
a working directory moved into place). A CompletionDecorator makes sure
that cleanup is registered with *someone* as soon as the operation runs:

- A group, when the operation was added to one. The group fires its
  completions when it finishes running.
- A CompletionTracker otherwise. The tracker is owned by the host and
  fires whatever is still pending when the host's run ends.
"""

from typing import Any, Callable, List, Union
import inspect
import logging

from .base import (
    BaseOperation,
    CompletionCapable,
    Decoration,
    Operation,
    OperationResult,
    WrappedOperation,
)

logger = logging.getLogger("operations_builder")

CompletionEntry = Union[Operation, CompletionCapable, Callable[[], Any]]


def fire_completion(entry: CompletionEntry) -> None:
    """Run one completion entry: an operation is run, anything else is called."""
    if isinstance(entry, Operation):
        entry.run()
    else:
        entry()


def same_entry(first: Any, second: Any) -> bool:
    """Identity, except that two bound methods of one object for one function match."""
    if first is second:
        return True
    return inspect.ismethod(first) and inspect.ismethod(second) and first == second


def describe_entry(entry: Any) -> str:
    if hasattr(entry, "get_name"):
        return entry.get_name()
    return getattr(entry, "__qualname__", None) or repr(entry)


class CompletionTracker:
    """
    Completions waiting for the end of the host application's run.

    Use it as a context manager, or call `complete()` explicitly:

        >>> with CompletionTracker() as tracker:
        ...     builder = OperationHost(completion_tracker=tracker).task("tmp_dir")
        ...     builder.run()
        ... # the temporary directory is gone here

    Every entry is removed exactly once: either when it fires, or when it
    is released because a group took over responsibility for it.
    """

    def __init__(self):
        self._pending: List[CompletionEntry] = []

    @property
    def pending(self) -> List[CompletionEntry]:
        return list(self._pending)

    def register_completion(self, completion: CompletionEntry):
        if any(same_entry(entry, completion) for entry in self._pending):
            return self
        logger.debug("Tracking completion for %s", describe_entry(completion))
        self._pending.append(completion)
        return self

    def discard(self, completion: CompletionEntry) -> bool:
        for index, entry in enumerate(self._pending):
            if same_entry(entry, completion):
                del self._pending[index]
                return True
        return False

    def complete(self):
        """Fire every pending completion, most recent first."""
        while self._pending:
            entry = self._pending.pop()
            try:
                fire_completion(entry)
            except Exception as e:
                logger.warning(
                    "Completion for %s failed (ignored): %s", describe_entry(entry), e
                )

    def __len__(self):
        return len(self._pending)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.complete()
        return False


class CompletionDecorator(BaseOperation, WrappedOperation):
    """
    Registers an operation's completion with a target when it runs.

    The target is anything with `register_completion()`: a
    CompletionTracker or an OperationGroup. Attribute access is forwarded
    to the wrapped operation so setters keep working through the wrapper.
    """

    decoration = Decoration.COMPLETION

    def __init__(self, target: Any, operation: CompletionCapable):
        if getattr(operation, "decoration", None) is Decoration.COMPLETION:
            operation = operation.original()
        self._target = target
        self._operation = operation

    def original(self):
        return self._operation

    @property
    def target(self):
        return self._target

    @property
    def operation_type(self):
        return self._operation.operation_type

    def get_name(self) -> str:
        return describe_entry(self._operation)

    def run(self) -> OperationResult:
        self._target.register_completion(self._operation.complete)
        return self._operation.run()

    def release(self):
        """Withdraw the completion from the target, if it was registered there."""
        discard = getattr(self._target, "discard", None)
        if discard is not None:
            discard(self._operation.complete)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._operation, name)

    def __repr__(self):
        return f"<CompletionDecorator({self._operation!r})>"
