"""Execution of the external command-line tools this package relies on.

Every tool call goes through a :class:`ToolRunner` passed in by the caller, so
tests and alternative hosts can substitute their own implementation without
any process-wide registration.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from nativepack.errors import ToolInvocationError

_STDERR_LIMIT = 2000


@dataclass(frozen=True, slots=True)
class ExecutionConfiguration:
    """A program to run, a task name for diagnostics, and its arguments."""

    program: str
    task: str
    arguments: tuple[str, ...] = ()

    @property
    def command(self) -> tuple[str, ...]:
        return (self.program, *self.arguments)


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    returncode: int
    output: str
    error: str = ""


class ToolRunner(Protocol):
    def execute(self, configuration: ExecutionConfiguration) -> ExecutionResult:
        """Run the configured program to completion and capture its output."""


@dataclass(frozen=True, slots=True)
class SubprocessToolRunner:
    cwd: Path | None = None

    def execute(self, configuration: ExecutionConfiguration) -> ExecutionResult:
        try:
            result = subprocess.run(
                list(configuration.command),
                cwd=str(self.cwd) if self.cwd is not None else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ToolInvocationError(
                f"{configuration.program} could not be started.",
                hint="Check that the tool is installed and the configured path is correct.",
                context={
                    "task": configuration.task,
                    "command": " ".join(configuration.command),
                    "error": str(exc),
                },
            ) from exc
        return ExecutionResult(
            returncode=result.returncode,
            output=result.stdout or "",
            error=result.stderr or "",
        )


def run_tool(
    runner: ToolRunner,
    program: str,
    task: str,
    *arguments: str,
) -> ExecutionResult:
    """Run *program* and raise :class:`ToolInvocationError` unless it exits with status 0."""
    configuration = ExecutionConfiguration(program=program, task=task, arguments=arguments)
    result = runner.execute(configuration)
    if result.returncode != 0:
        raise ToolInvocationError(
            f"{program} failed: {result.returncode}",
            hint=f"Check {Path(program).name} output for details.",
            context={
                "task": task,
                "command": " ".join(configuration.command),
                "returncode": str(result.returncode),
                "stderr": result.error[:_STDERR_LIMIT] if result.error else "",
            },
        )
    return result


DEFAULT_RUNNER = SubprocessToolRunner()

__all__ = [
    "DEFAULT_RUNNER",
    "ExecutionConfiguration",
    "ExecutionResult",
    "SubprocessToolRunner",
    "ToolRunner",
    "run_tool",
]
