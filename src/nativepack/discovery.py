"""Recognise native libraries and frameworks on disk and build their descriptions."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path

from nativepack.architecture import Architecture, parse_architectures
from nativepack.config import DEFAULT_CONFIG, ToolConfig
from nativepack.conventions import LIBRARY_PREFIX, LIBRARY_SUFFIX, framework_name
from nativepack.errors import (
    InvalidFrameworkError,
    InvalidSearchPathError,
    NativePackError,
    NoSupportedArchitecturesError,
    UnrecognizedLibraryNameError,
)
from nativepack.introspect import get_architectures, get_raw_dependencies
from nativepack.models import (
    NativeFramework,
    NativeLibrary,
    create_native_library,
    create_single_file_library,
)
from nativepack.reporting import Reporter
from nativepack.tools import DEFAULT_RUNNER, ToolRunner, run_tool


def to_library_name(file: Path | str) -> str | None:
    """Return the basic library name for ``lib<name>[.N...].dylib``, else ``None``.

    >>> to_library_name("libfoo.2.0.dylib")
    'foo'
    """
    name = file.name if isinstance(file, Path) else file
    if name.startswith(LIBRARY_PREFIX) and name.endswith(LIBRARY_SUFFIX):
        basic = name[len(LIBRARY_PREFIX) : len(name) - len(LIBRARY_SUFFIX)]
        return _remove_version_numbers(basic)
    return None


def _remove_version_numbers(name: str) -> str:
    while True:
        head, sep, tail = name.rpartition(".")
        if not sep or not (tail.isascii() and tail.isdigit()):
            return name
        name = head


def library_file_name(name: str) -> str:
    return f"{LIBRARY_PREFIX}{name}{LIBRARY_SUFFIX}"


def create_for_file(
    file: Path,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
    file_name: str | None = None,
) -> NativeLibrary:
    """Describe a ``lib<name>.dylib`` file, discovering its architectures with ``otool``.

    The basic name is taken from *file_name* when given, so a copy written
    under a different name keeps the name of the library it came from.
    """
    name = to_library_name(file_name if file_name is not None else file)
    if name is None:
        raise UnrecognizedLibraryNameError(
            f"Unrecognized library file name: {file.name}",
            context={"path": str(file)},
        )
    return _create_for_named_file(name, file, runner=runner, config=config, reporter=reporter)


def create_for_framework_file(
    file: Path,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> NativeLibrary:
    """Describe the dynamic library of a framework, which has a plain file name."""
    return _create_for_named_file(file.name, file, runner=runner, config=config, reporter=reporter)


def _create_for_named_file(
    name: str,
    file: Path,
    *,
    runner: ToolRunner,
    config: ToolConfig,
    reporter: Reporter | None,
) -> NativeLibrary:
    raw = get_raw_dependencies(file, runner=runner, config=config, reporter=reporter)
    architectures = parse_architectures(raw)
    if not architectures:
        raise NoSupportedArchitecturesError(
            "File supports no known architectures",
            context={"path": str(file), "reported": ", ".join(sorted(raw))},
        )
    return create_single_file_library(name, architectures, file)


def create_framework(
    root: Path,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> NativeFramework:
    """Describe a ``<Name>.framework`` bundle.

    The bundle must contain a top-level symbolic link ``<Name>`` to its
    current dynamic library. The link may not climb out of the bundle.
    """
    name = framework_name(root)
    if name is None:
        raise InvalidFrameworkError(f"Not a supported framework directory name: {root}")
    if not root.is_dir() or root.is_symlink():
        raise InvalidFrameworkError(f"Framework directory not found: {root}")
    executable = root / name
    if not executable.is_symlink():
        raise InvalidFrameworkError(f"Framework library link not found: {executable}")
    link = os.readlink(executable)
    if ".." in link:
        raise InvalidFrameworkError(f"Framework library link is invalid: {link}")
    try:
        library_file = executable.resolve(strict=True)
    except OSError as exc:
        raise InvalidFrameworkError(f"Framework library link is invalid: {link}") from exc
    library = create_for_framework_file(
        library_file,
        runner=runner,
        config=config,
        reporter=reporter,
    )
    return NativeFramework(name=name, library=library, root=root)


def search_for_library(search_path: Iterable[Path], name: str) -> list[Path]:
    """Return resolved ``lib<name>.dylib`` files found in *search_path*, in search order."""
    file_name = library_file_name(name)
    found: list[Path] = []
    for directory in search_path:
        if not directory.is_dir():
            raise InvalidSearchPathError(
                f"Not a directory: {directory}",
                context={"path": str(directory)},
            )
        candidate = directory.resolve() / file_name
        if candidate.is_file():
            found.append(candidate.resolve())
    return found


def find_library(
    search_path: Sequence[Path],
    name: str,
    architectures: Iterable[Architecture],
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> NativeLibrary | None:
    """Find library files that together support every requested architecture.

    Candidates whose architectures cannot be determined are skipped.
    """
    remaining = set(architectures)
    if not remaining:
        raise ValueError("At least one architecture must be specified")
    files: dict[Architecture, Path] = {}
    for candidate in search_for_library(search_path, name):
        try:
            supported = get_architectures(candidate, runner=runner, config=config)
        except NativePackError:
            continue
        for architecture in supported & remaining:
            files[architecture] = candidate
            remaining.discard(architecture)
        if not remaining:
            return create_native_library(name, files)
    return None


def create_universal_library(
    name: str,
    files: Iterable[Path],
    *,
    output: Path | None = None,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> Path:
    """Combine single-architecture files into one universal file with ``lipo``."""
    inputs = [str(f.absolute()) for f in files]
    if not inputs:
        raise ValueError("At least one library file must be specified")
    if output is None:
        fd, temp_name = tempfile.mkstemp(prefix=f"{LIBRARY_PREFIX}{name}", suffix=LIBRARY_SUFFIX)
        os.close(fd)
        output = Path(temp_name)
    run_tool(
        runner,
        config.lipo,
        "lipo",
        *inputs,
        "-create",
        "-output",
        str(output.absolute()),
    )
    return output


def universal_library_file(
    library: NativeLibrary,
    *,
    output: Path | None = None,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> Path:
    """Return the one file holding every architecture of *library*, building it if needed."""
    file = library.single_file
    if file is not None:
        return file
    return create_universal_library(
        library.name,
        sorted(library.all_files),
        output=output,
        runner=runner,
        config=config,
    )


def set_linker_id(
    file: Path,
    linker_id: str,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> None:
    run_tool(
        runner,
        config.install_name_tool,
        "install_name_tool",
        "-id",
        linker_id,
        str(file.absolute()),
    )


__all__ = [
    "create_for_file",
    "create_for_framework_file",
    "create_framework",
    "create_universal_library",
    "find_library",
    "library_file_name",
    "search_for_library",
    "set_linker_id",
    "to_library_name",
    "universal_library_file",
]
