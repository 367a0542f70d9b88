"""Direct and transitive native-library dependency resolution."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Mapping
from functools import partial
from pathlib import Path

from nativepack.architecture import Architecture, parse_architecture, sorted_architectures
from nativepack.config import DEFAULT_CONFIG, ToolConfig
from nativepack.discovery import to_library_name
from nativepack.errors import UnsupportedLibraryShapeError
from nativepack.introspect import get_raw_dependencies
from nativepack.models import NativeLibrary, create_native_library, restrict_architectures
from nativepack.reporting import Reporter
from nativepack.tools import DEFAULT_RUNNER, ToolRunner

NameFilter = Callable[[str], str | None]


def installed_library_name(path: str, prefixes: Iterable[str]) -> str | None:
    """Return the basic name of a library installed under one of *prefixes*.

    Libraries elsewhere, notably system libraries, are assumed to be present
    in the execution environment and yield ``None``.
    """
    _, sep, file_name = path.rpartition("/")
    if not sep:
        return None
    name = to_library_name(file_name)
    if name is not None and path.startswith(tuple(prefixes)):
        return name
    return None


def make_name_filter(prefixes: Iterable[str]) -> NameFilter:
    return partial(installed_library_name, prefixes=tuple(prefixes))


def get_library_raw_dependencies(
    library: NativeLibrary,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> dict[str, frozenset[str]]:
    """Merge the raw dependencies of every distinct file backing *library*."""
    merged: dict[str, set[str]] = {}
    for file in sorted(library.all_files):
        raw = get_raw_dependencies(file, runner=runner, config=config, reporter=reporter)
        for architecture_name, paths in raw.items():
            merged.setdefault(architecture_name, set()).update(paths)
    return {name: frozenset(paths) for name, paths in merged.items()}


def libraries_from_raw(
    raw: Mapping[str, Iterable[str]],
    name_filter: NameFilter,
) -> dict[str, NativeLibrary]:
    """Build basic name -> library descriptions for the interesting paths in *raw*."""
    basic_names = sorted(
        {name for paths in raw.values() for path in paths if (name := name_filter(path)) is not None}
    )
    libraries: dict[str, NativeLibrary] = {}
    for basic_name in basic_names:
        files: dict[Architecture, Path] = {}
        for architecture_name in sorted(raw):
            architecture = parse_architecture(architecture_name)
            if architecture is None:
                continue
            for path in sorted(raw[architecture_name]):
                if name_filter(path) == basic_name:
                    files[architecture] = Path(path)
        if files:
            libraries[basic_name] = create_native_library(basic_name, files)
    return libraries


def get_dependencies(
    library: NativeLibrary,
    name_filter: NameFilter,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> dict[str, NativeLibrary]:
    """Identify the direct dependencies of *library* that *name_filter* accepts.

    *name_filter* maps a dependency path to its basic library name, or to
    ``None`` when the dependency should be excluded.
    """
    raw = get_library_raw_dependencies(library, runner=runner, config=config, reporter=reporter)
    if not raw:
        return {}
    return libraries_from_raw(raw, name_filter)


def get_file_dependencies(
    library: NativeLibrary,
    name_filter: NameFilter,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> dict[str, NativeLibrary]:
    """Like :func:`get_dependencies`, for libraries backed by exactly one file."""
    file = library.single_file
    if file is None:
        raise UnsupportedLibraryShapeError(
            f"Library {library.name} is backed by multiple files.",
            hint="Create a universal library first or use get_dependencies().",
            context={"library": library.name},
        )
    raw = get_raw_dependencies(file, runner=runner, config=config, reporter=reporter)
    if not raw:
        return {}
    return libraries_from_raw(raw, name_filter)


def resolve_dependency_closure(
    libraries: Iterable[NativeLibrary],
    architectures: Iterable[Architecture],
    *,
    name_filter: NameFilter | None = None,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
    reporter: Reporter | None = None,
) -> list[NativeLibrary]:
    """Return the libraries that *libraries* need, directly or indirectly.

    Only dependencies accepted by *name_filter* (by default, libraries under
    the configured install prefixes) are followed. Each one is narrowed to the
    required *architectures*. The required libraries themselves are never
    part of the result, and every basic name is expanded at most once.
    """
    required = list(libraries)
    wanted = frozenset(architectures)
    accept = name_filter or make_name_filter(config.installed_prefixes)
    known = {library.name for library in required}
    queue = deque(required)
    found: list[NativeLibrary] = []
    while queue:
        library = queue.popleft()
        if reporter is not None:
            reporter.verbose(f"Processing native library: {library.name}")
        dependencies = get_dependencies(
            library,
            accept,
            runner=runner,
            config=config,
            reporter=reporter,
        )
        for name in sorted(dependencies):
            if name in known:
                continue
            dependency = dependencies[name]
            if not dependency.architectures & wanted:
                if reporter is not None:
                    reporter.verbose(
                        f"  Skipping dependent native library {name}: "
                        f"no required architecture among "
                        f"{' '.join(str(a) for a in sorted_architectures(dependency.architectures))}"
                    )
                continue
            dependency = restrict_architectures(dependency, wanted)
            known.add(name)
            found.append(dependency)
            queue.append(dependency)
            if reporter is not None:
                reporter.verbose(f"  Adding dependent native library: {name}")
    return found


__all__ = [
    "NameFilter",
    "get_dependencies",
    "get_file_dependencies",
    "get_library_raw_dependencies",
    "installed_library_name",
    "libraries_from_raw",
    "make_name_filter",
    "resolve_dependency_closure",
]
