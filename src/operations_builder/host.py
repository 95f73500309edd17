"""
Host context: the object builders ask to construct operations by name.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging

from .builder import OperationBuilder
from .completion import CompletionTracker
from .registry import OperationRegistry, factory_method_name, get_registry
from .settings import BuilderSettings

logger = logging.getLogger("operations_builder")


class OperationHost:
    """
    Builds operations by name and owns the completion tracker.

    The host keeps one *bound* builder. Operations built through the host
    are built by a child of that builder, so they inherit its settings and
    simulation mode. Leaving the host's context fires every completion
    still pending in its tracker.

    Example:
        >>> with OperationHost() as host:
        ...     result = (
        ...         host.collection_builder()
        ...         .task_exec("git").arg("status")
        ...         .run()
        ...     )
    """

    def __init__(
        self,
        registry: Optional[OperationRegistry] = None,
        settings: Optional[BuilderSettings] = None,
        completion_tracker: Optional[CompletionTracker] = None,
    ):
        self.registry = registry if registry is not None else get_registry()
        self.settings = settings if settings is not None else BuilderSettings()
        self.completion_tracker = (
            completion_tracker if completion_tracker is not None else CompletionTracker()
        )
        self._builder: Optional[OperationBuilder] = None

    def get_builder(self) -> OperationBuilder:
        if self._builder is None:
            self._builder = OperationBuilder(self)
        return self._builder

    def set_builder(self, builder: Optional[OperationBuilder]):
        self._builder = builder
        return self

    def collection_builder(self) -> OperationBuilder:
        """Return a new, empty builder derived from the bound one."""
        return self.get_builder().new_builder()

    def factory_methods(self) -> List[str]:
        return self.registry.factory_methods()

    def build_operation(
        self,
        method_name: str,
        args: Sequence[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> Optional[OperationBuilder]:
        """
        Build the operation behind a `task_*` method in a new builder.

        Returns:
            A temporary builder holding the decorated operation, or None if
            no operation is registered for `method_name`
        """
        construct = self.registry.get_factory(method_name)
        if construct is None:
            logger.debug("No operation registered for %s", method_name)
            return None
        return self.collection_builder().build(construct, *args, **(kwargs or {}))

    def task(self, name: str, *args, **kwargs) -> OperationBuilder:
        """Build the operation registered as `name` in a new builder."""
        return self.collection_builder().resolve(factory_method_name(name), *args, **kwargs)

    def complete(self):
        """Fire every completion still waiting in the tracker."""
        self.completion_tracker.complete()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.complete()
        return False
