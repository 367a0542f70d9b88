"""Parsers for the output of ``otool`` and ``file``, and the queries that run them.

``otool -L -arch all <file>`` prints one section per architecture::

    /path/libfoo.dylib (architecture x86_64):
    \t/usr/local/opt/bar/lib/libbar.1.dylib (compatibility version 2.0.0, current version 2.1.0)

A thin binary has a single section without an architecture header, so its
architecture is obtained from ``file -b`` instead.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path

from nativepack.architecture import Architecture, parse_architecture
from nativepack.config import DEFAULT_CONFIG, ToolConfig
from nativepack.errors import LibraryFileNotFoundError, ToolOutputError
from nativepack.reporting import Reporter
from nativepack.tools import DEFAULT_RUNNER, ToolRunner, run_tool

_ARCHITECTURE_HEADER = " (architecture "
_DEPENDENCY_MARKER = " (compatibility version "
_SHARED_LIBRARY_MARKER = "dynamically linked shared library "
_UNIVERSAL_MARKER = "universal binary"
_UNIVERSAL_SLICE = re.compile(r"\[([^:\[\]]*):")


def parse_architecture_header(line: str) -> str | None:
    pos = line.find(_ARCHITECTURE_HEADER)
    if pos < 0:
        return None
    rest = line[pos + len(_ARCHITECTURE_HEADER) :]
    end = rest.find(")")
    if end < 0:
        return None
    return rest[:end]


def parse_dependency_line(line: str) -> str | None:
    if not line.startswith("\t"):
        return None
    pos = line.find(_DEPENDENCY_MARKER)
    if pos < 0:
        return None
    return line[1:pos]


def parse_otool_output(
    output: str,
    single_architecture: Callable[[], str],
    *,
    reporter: Reporter | None = None,
) -> dict[str, frozenset[str]]:
    """Parse ``otool -L`` output into architecture name -> dependency paths.

    *single_architecture* is consulted only when the first line is not an
    architecture header, which is how a thin binary is printed. Dependency
    lines that appear before any architecture is known, and lines that are
    not recognised at all, are dropped.
    """
    sections: dict[str, set[str]] = {}
    current: set[str] | None = None
    for index, line in enumerate(output.splitlines()):
        architecture = parse_architecture_header(line)
        if architecture is not None:
            current = sections.setdefault(architecture, set())
            continue
        dependency = parse_dependency_line(line)
        if dependency is not None:
            if current is not None:
                current.add(dependency)
            elif reporter is not None:
                reporter.verbose(f"Ignoring dependency before architecture in otool output: {line}")
            continue
        if index == 0:
            current = sections.setdefault(single_architecture(), set())
        elif line.strip() and reporter is not None:
            reporter.verbose(f"Ignoring unrecognized line in otool output: {line}")
    return {name: frozenset(paths) for name, paths in sections.items()}


def parse_single_architecture(description: str) -> str | None:
    """Extract the architecture name from a ``file -b`` description of a thin binary."""
    line = description.split("\n", 1)[0].strip()
    pos = line.find(_SHARED_LIBRARY_MARKER)
    if pos >= 0:
        return line[pos + len(_SHARED_LIBRARY_MARKER) :].strip() or None
    _, sep, last = line.rpartition(" ")
    return last if sep and last else None


def parse_file_description(description: str) -> frozenset[Architecture]:
    """Parse the architectures out of the first line of ``file`` output.

    Two forms are understood::

        <file>: Mach-O universal binary with 2 architectures: [x86_64:Mach-O ...] [arm64:Mach-O ...]
        <file>: Mach-O 64-bit dynamically linked shared library x86_64
    """
    lines = description.splitlines()
    if not lines:
        raise ToolOutputError("No file description found")
    line = lines[0]
    pos = line.find(_UNIVERSAL_MARKER)
    if pos > 0:
        names = _UNIVERSAL_SLICE.findall(line[pos:])
        found = [parse_architecture(name) for name in names]
        if not found or any(a is None for a in found):
            raise ToolOutputError(
                "Unable to parse file description.",
                context={"description": line},
            )
        return frozenset(a for a in found if a is not None)
    pos = line.rfind(" ")
    if pos > 0:
        architecture = parse_architecture(line[pos + 1 :])
        if architecture is not None:
            return frozenset({architecture})
    raise ToolOutputError(
        "Unable to parse file description.",
        context={"description": line},
    )


def get_single_architecture(
    file: Path,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> str:
    result = run_tool(runner, config.file, "get_single_architecture", "-b", str(file.absolute()))
    name = parse_single_architecture(result.output)
    if name is None:
        raise ToolOutputError(
            f"Failed to identify architecture of {file}",
            context={"description": result.output.strip()},
        )
    return name


def get_raw_dependencies(
    file: Path,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> dict[str, frozenset[str]]:
    """Return architecture name -> direct dependency paths for one library file."""
    if not file.is_file():
        raise LibraryFileNotFoundError(
            f"File not found: {file}",
            context={"path": str(file)},
        )
    result = run_tool(
        runner,
        config.otool,
        "get_raw_dependencies",
        "-L",
        "-arch",
        "all",
        str(file.absolute()),
    )
    return parse_otool_output(
        result.output,
        lambda: get_single_architecture(file, runner=runner, config=config),
        reporter=reporter,
    )


def get_architectures(
    file: Path,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> frozenset[Architecture]:
    """Return the architectures contained in *file* as reported by ``file``."""
    result = run_tool(runner, config.file, "get_raw_architectures", str(file.absolute()))
    return parse_file_description(result.output)


__all__ = [
    "get_architectures",
    "get_raw_dependencies",
    "get_single_architecture",
    "parse_architecture_header",
    "parse_dependency_line",
    "parse_file_description",
    "parse_otool_output",
    "parse_single_architecture",
]
