"""
Process execution operations.
"""

from typing import Dict, List, Optional
import logging
import os
import shlex
import subprocess

from .base import BaseOperation, CommandProducing, OperationResult, OperationType

logger = logging.getLogger("operations_builder")


class ExecOperation(BaseOperation, CommandProducing):
    """
    Run an external command.

    Setters return the operation itself so they chain, both directly and
    through a builder:

        >>> builder.task_exec("git").arg("status").option("short").run()
    """

    operation_type = OperationType.PROCESS

    def __init__(self, command: str):
        self._command = command
        self._arguments: List[str] = []
        self._working_dir: Optional[str] = None
        self._env: Dict[str, str] = {}

    def arg(self, argument: str):
        self._arguments.append(str(argument))
        return self

    def args(self, *arguments: str):
        for argument in arguments:
            self.arg(argument)
        return self

    def option(self, name: str, value: Optional[str] = None):
        flag = name if name.startswith("-") else f"--{name}"
        self._arguments.append(flag if value is None else f"{flag}={value}")
        return self

    def dir(self, working_dir: str):
        self._working_dir = str(working_dir)
        return self

    def env(self, name: str, value: str):
        self._env[name] = str(value)
        return self

    def get_command(self) -> str:
        return self._command

    def command_text(self) -> str:
        parts = [self._command] + [shlex.quote(argument) for argument in self._arguments]
        command = " ".join(parts)
        if self._working_dir:
            command = f"cd {shlex.quote(self._working_dir)} && {command}"
        return command

    def run(self) -> OperationResult:
        argv = shlex.split(self._command) + self._arguments
        environ = dict(os.environ, **self._env) if self._env else None

        logger.info("Running %s", self.command_text())
        try:
            completed = subprocess.run(
                argv,
                cwd=self._working_dir,
                env=environ,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return OperationResult.failed(self.get_name(), error=str(e), exit_code=127)

        if completed.returncode != 0:
            return OperationResult.failed(
                self.get_name(),
                error=completed.stderr.strip() or f"exit code {completed.returncode}",
                exit_code=completed.returncode,
                output=completed.stdout,
            )
        return OperationResult.succeeded(
            self.get_name(), message=completed.stdout.strip(), output=completed.stdout
        )
