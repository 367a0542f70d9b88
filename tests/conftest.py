"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

import pytest

from nativepack.reporting import StructuredReporter
from nativepack.tools import ExecutionConfiguration, ExecutionResult


class FakeToolRunner:
    """Scripted stand-in for ``otool``, ``file``, ``lipo`` and ``install_name_tool``.

    Outputs are keyed by the file name of the last argument, so a library
    answers the same way wherever it has been copied to. A key holding the
    full path takes precedence.
    """

    def __init__(self) -> None:
        self.otool_outputs: dict[str, str] = {}
        self.brief_descriptions: dict[str, str] = {}
        self.descriptions: dict[str, str] = {}
        self.failures: dict[str, tuple[int, str]] = {}
        self.calls: list[ExecutionConfiguration] = []

    def add_thin_library(
        self,
        file_name: str,
        architecture: str,
        dependencies: Iterable[str] = (),
    ) -> None:
        lines = [f"/fake/{file_name}:"]
        lines.extend(_dependency_line(path) for path in dependencies)
        self.otool_outputs[file_name] = "\n".join(lines) + "\n"
        kind = f"Mach-O 64-bit dynamically linked shared library {architecture}"
        self.brief_descriptions[file_name] = kind + "\n"
        self.descriptions[file_name] = f"/fake/{file_name}: {kind}\n"

    def add_universal_library(
        self,
        file_name: str,
        dependencies: Mapping[str, Iterable[str]],
    ) -> None:
        lines: list[str] = []
        for architecture, paths in dependencies.items():
            lines.append(f"/fake/{file_name} (architecture {architecture}):")
            lines.extend(_dependency_line(path) for path in paths)
        self.otool_outputs[file_name] = "\n".join(lines) + "\n"
        slices = " ".join(
            f"[{a}:Mach-O 64-bit dynamically linked shared library {a}]" for a in dependencies
        )
        self.descriptions[file_name] = (
            f"/fake/{file_name}: Mach-O universal binary with {len(dependencies)} "
            f"architectures: {slices}\n"
        )

    def fail(self, program: str, returncode: int = 1, error: str = "tool failed") -> None:
        self.failures[program] = (returncode, error)

    def programs(self) -> list[str]:
        return [Path(call.program).name for call in self.calls]

    def execute(self, configuration: ExecutionConfiguration) -> ExecutionResult:
        self.calls.append(configuration)
        program = Path(configuration.program).name
        if program in self.failures:
            returncode, error = self.failures[program]
            return ExecutionResult(returncode=returncode, output="", error=error)
        target = configuration.arguments[-1]
        if program == "otool":
            return ExecutionResult(returncode=0, output=_lookup(self.otool_outputs, target))
        if program == "file":
            table = self.brief_descriptions if configuration.arguments[0] == "-b" else self.descriptions
            return ExecutionResult(returncode=0, output=_lookup(table, target))
        if program == "lipo":
            Path(configuration.arguments[-1]).write_bytes(b"universal")
        return ExecutionResult(returncode=0, output="")


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    """Provide a scripted tool runner for tests that inspect libraries."""
    return FakeToolRunner()


@pytest.fixture
def reporter() -> StructuredReporter:
    return StructuredReporter(operation="test")


def _dependency_line(path: str) -> str:
    return f"\t{path} (compatibility version 1.0.0, current version 1.2.0)"


def _lookup(table: Mapping[str, str], target: str) -> str:
    if target in table:
        return table[target]
    return table.get(Path(target).name, "")
