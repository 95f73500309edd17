"""
Filesystem operations.

TmpDirOperation and WorkDirOperation pick their paths when they are
constructed, so callers can refer to the path while still building the
rest of the sequence. The directories only exist once the operation has
run, and are cleaned up (or moved into place) on completion.
"""

from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Union
import logging
import os
import shutil
import tempfile
import uuid

from .base import (
    BaseOperation,
    CompletionCapable,
    OperationResult,
    OperationType,
    RollbackCapable,
)

logger = logging.getLogger("operations_builder")

PathLike = Union[str, "os.PathLike[str]"]


class TmpDirOperation(BaseOperation, CompletionCapable, RollbackCapable):
    """
    Create a temporary directory that is deleted on completion or rollback.

    Args:
        prefix: Directory name prefix
        base: Parent directory (defaults to the system temp dir)
        include_random_part: Append a random suffix to the name
    """

    operation_type = OperationType.FILESYSTEM

    def __init__(
        self,
        prefix: str = "tmp",
        base: Optional[PathLike] = None,
        include_random_part: bool = True,
    ):
        base_dir = Path(base) if base else Path(tempfile.gettempdir())
        name = prefix
        if include_random_part:
            name = f"{prefix}{uuid.uuid4().hex[:12]}"
        self._path = base_dir / name
        self._cwd = False
        self._saved_cwd: Optional[str] = None

    def get_path(self) -> str:
        return str(self._path)

    def cwd(self, enabled: bool = True):
        """Change into the directory once created; the old cwd is restored on cleanup."""
        self._cwd = enabled
        return self

    def run(self) -> OperationResult:
        try:
            self._path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return OperationResult.failed(self.get_name(), error=f"Could not create {self._path}: {e}")

        if self._cwd:
            self._saved_cwd = os.getcwd()
            os.chdir(self._path)

        logger.debug("Created temporary directory %s", self._path)
        return OperationResult.succeeded(self.get_name(), path=str(self._path))

    def _restore_cwd(self):
        if self._saved_cwd is not None:
            os.chdir(self._saved_cwd)
            self._saved_cwd = None

    def _delete(self):
        self._restore_cwd()
        if self._path.exists():
            shutil.rmtree(self._path)
            logger.debug("Deleted temporary directory %s", self._path)

    def rollback(self):
        self._delete()

    def complete(self):
        self._delete()


class WorkDirOperation(TmpDirOperation):
    """
    Create a working directory that replaces `final_destination` on success.

    The directory is created next to the destination. On completion, any
    existing destination is moved out of the way and deleted, and the
    working directory is renamed into place. After a rollback the working
    directory is simply deleted.
    """

    def __init__(self, final_destination: PathLike):
        self._final_destination = Path(final_destination)
        super().__init__(
            prefix=f"{self._final_destination.name}.work.",
            base=self._final_destination.parent,
        )
        self._rolled_back = False

    @property
    def final_destination(self) -> str:
        return str(self._final_destination)

    def rollback(self):
        self._rolled_back = True
        self._delete()

    def complete(self):
        self._restore_cwd()
        if self._rolled_back or not self._path.exists():
            return

        if self._final_destination.exists():
            displaced = self._final_destination.with_name(
                f"{self._final_destination.name}.old.{uuid.uuid4().hex[:8]}"
            )
            self._final_destination.rename(displaced)
            shutil.rmtree(displaced)

        self._path.rename(self._final_destination)
        logger.debug("Moved working directory into %s", self._final_destination)


class FilesystemStack(BaseOperation):
    """
    Queue filesystem changes and apply them in order.

    Example:
        >>> builder.task_filesystem_stack().mkdir("g").touch("g/g.txt").run()
    """

    operation_type = OperationType.FILESYSTEM

    def __init__(self):
        self._stack: List[Tuple[str, Callable[[], Any]]] = []

    def _queue(self, description: str, action: Callable[[], Any]):
        self._stack.append((description, action))
        return self

    def mkdir(self, path: PathLike):
        return self._queue(f"mkdir {path}", lambda: Path(path).mkdir(parents=True, exist_ok=True))

    def touch(self, path: PathLike):
        return self._queue(f"touch {path}", lambda: Path(path).touch())

    def copy(self, source: PathLike, destination: PathLike):
        def action():
            if Path(source).is_dir():
                shutil.copytree(source, destination, dirs_exist_ok=True)
            else:
                shutil.copy2(source, destination)

        return self._queue(f"copy {source} {destination}", action)

    def rename(self, source: PathLike, destination: PathLike):
        return self._queue(f"rename {source} {destination}", lambda: Path(source).rename(destination))

    def remove(self, path: PathLike):
        def action():
            target = Path(path)
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()

        return self._queue(f"remove {path}", action)

    @property
    def pending(self) -> List[str]:
        return [description for description, _ in self._stack]

    def run(self) -> OperationResult:
        for description, action in self._stack:
            logger.debug("%s", description)
            try:
                action()
            except OSError as e:
                return OperationResult.failed(self.get_name(), error=f"{description}: {e}")
        return OperationResult.succeeded(
            self.get_name(), message=f"{len(self._stack)} filesystem changes"
        )
