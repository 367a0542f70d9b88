"""Immutable, architecture-aware descriptions of native libraries and frameworks.

A :data:`NativeLibrary` is one of three shapes that answer the same questions:

* :class:`SingleArchitectureLibrary` - one file, one architecture;
* :class:`FatLibrary` - one universal file holding several architecture slices;
* :class:`PerArchitectureLibrary` - a distinct file per architecture.

Values are never mutated. Operations that change the architecture set go
through :func:`create_native_library` again so the result is always the
simplest applicable shape.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType

from nativepack.architecture import Architecture, sorted_architectures


@dataclass(frozen=True, slots=True)
class SingleArchitectureLibrary:
    name: str
    architecture: Architecture
    file: Path
    debug_symbols: Path | None = None

    @property
    def architectures(self) -> frozenset[Architecture]:
        return frozenset({self.architecture})

    @property
    def is_single(self) -> bool:
        return True

    @property
    def single_file(self) -> Path:
        return self.file

    @property
    def all_files(self) -> frozenset[Path]:
        return frozenset({self.file})

    def file_for(self, architecture: Architecture) -> Path | None:
        return self.file if architecture is self.architecture else None

    def with_debug_symbols(self, debug_symbols: Path) -> SingleArchitectureLibrary:
        return replace(self, debug_symbols=debug_symbols)

    def to_payload(self) -> dict[str, object]:
        return _payload(self, {self.architecture: self.file})

    def __str__(self) -> str:
        return f"{self.architecture}: {self.file}"


@dataclass(frozen=True, slots=True)
class FatLibrary:
    name: str
    architectures: frozenset[Architecture]
    file: Path
    debug_symbols: Path | None = None

    def __post_init__(self) -> None:
        if not self.architectures:
            raise ValueError("At least one architecture must be specified")

    @property
    def is_single(self) -> bool:
        return True

    @property
    def single_file(self) -> Path:
        return self.file

    @property
    def all_files(self) -> frozenset[Path]:
        return frozenset({self.file})

    def file_for(self, architecture: Architecture) -> Path | None:
        return self.file if architecture in self.architectures else None

    def with_debug_symbols(self, debug_symbols: Path) -> FatLibrary:
        return replace(self, debug_symbols=debug_symbols)

    def to_payload(self) -> dict[str, object]:
        return _payload(self, {a: self.file for a in self.architectures})

    def __str__(self) -> str:
        names = " ".join(str(a) for a in sorted_architectures(self.architectures))
        return f"{names}: {self.file}"


@dataclass(frozen=True, slots=True)
class PerArchitectureLibrary:
    name: str
    files: Mapping[Architecture, Path]
    debug_symbols: Path | None = None

    def __post_init__(self) -> None:
        if not self.files:
            raise ValueError("At least one file must be provided")
        # Freeze a private copy so callers cannot mutate the mapping afterwards.
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def architectures(self) -> frozenset[Architecture]:
        return frozenset(self.files)

    @property
    def is_single(self) -> bool:
        return len(self.files) == 1

    @property
    def single_file(self) -> Path | None:
        if len(self.files) == 1:
            return next(iter(self.files.values()))
        return None

    @property
    def all_files(self) -> frozenset[Path]:
        return frozenset(self.files.values())

    def file_for(self, architecture: Architecture) -> Path | None:
        return self.files.get(architecture)

    def with_debug_symbols(self, debug_symbols: Path) -> PerArchitectureLibrary:
        return PerArchitectureLibrary(
            name=self.name,
            files=self.files,
            debug_symbols=debug_symbols,
        )

    def to_payload(self) -> dict[str, object]:
        return _payload(self, self.files)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PerArchitectureLibrary):
            return NotImplemented
        return (
            self.name == other.name
            and dict(self.files) == dict(other.files)
            and self.debug_symbols == other.debug_symbols
        )

    def __hash__(self) -> int:
        return hash((self.name, frozenset(self.files.items()), self.debug_symbols))

    def __str__(self) -> str:
        return "; ".join(
            f"{a}: {self.files[a]}" for a in sorted_architectures(self.files)
        )


NativeLibrary = SingleArchitectureLibrary | FatLibrary | PerArchitectureLibrary


def create_native_library(
    basic_name: str,
    files: Mapping[Architecture, Path],
    *,
    debug_symbols: Path | None = None,
) -> NativeLibrary:
    """Create the simplest library value for an architecture-to-file map."""
    if not files:
        raise ValueError("At least one file must be specified")
    if len(files) == 1:
        ((architecture, file),) = files.items()
        return SingleArchitectureLibrary(
            name=basic_name,
            architecture=architecture,
            file=file,
            debug_symbols=debug_symbols,
        )
    distinct = set(files.values())
    if len(distinct) == 1:
        return FatLibrary(
            name=basic_name,
            architectures=frozenset(files),
            file=distinct.pop(),
            debug_symbols=debug_symbols,
        )
    return PerArchitectureLibrary(name=basic_name, files=files, debug_symbols=debug_symbols)


def create_single_file_library(
    basic_name: str,
    architectures: Iterable[Architecture],
    file: Path,
) -> NativeLibrary:
    """Create a library backed by one file containing the given architectures."""
    return create_native_library(basic_name, {a: file for a in architectures})


def architecture_files(library: NativeLibrary) -> dict[Architecture, Path]:
    files: dict[Architecture, Path] = {}
    for architecture in sorted_architectures(library.architectures):
        file = library.file_for(architecture)
        if file is not None:
            files[architecture] = file
    return files


def restrict_architectures(
    library: NativeLibrary,
    architectures: Iterable[Architecture],
) -> NativeLibrary:
    """Narrow *library* to the requested architectures.

    The result keeps the library name and debug symbols and uses the simplest
    shape for what remains. The input is returned unchanged when it already
    matches the requested set.
    """
    wanted = frozenset(architectures) & library.architectures
    if not wanted:
        raise ValueError(
            f"Library {library.name} supports none of the requested architectures"
        )
    if wanted == library.architectures:
        return library
    files = {a: f for a, f in architecture_files(library).items() if a in wanted}
    return create_native_library(library.name, files, debug_symbols=library.debug_symbols)


def merge_libraries(first: NativeLibrary, second: NativeLibrary) -> NativeLibrary:
    """Combine two descriptions of the same library; *first* wins on overlapping architectures."""
    if first.name != second.name:
        raise ValueError(f"Cannot merge libraries {first.name} and {second.name}")
    files = architecture_files(second)
    files.update(architecture_files(first))
    return create_native_library(
        first.name,
        files,
        debug_symbols=first.debug_symbols or second.debug_symbols,
    )


def _payload(library: NativeLibrary, files: Mapping[Architecture, Path]) -> dict[str, object]:
    return {
        "name": library.name,
        "kind": type(library).__name__,
        "architectures": [str(a) for a in sorted_architectures(library.architectures)],
        "files": {str(a): str(files[a]) for a in sorted_architectures(files)},
        "debug_symbols": str(library.debug_symbols) if library.debug_symbols else None,
    }


@dataclass(frozen=True, slots=True)
class NativeFramework:
    """A framework bundle, or a system framework when it has neither root nor library.

    Third party frameworks are assumed to provide one dynamic library that
    includes every required architecture.
    """

    name: str
    library: NativeLibrary | None = None
    root: Path | None = None
    debug_symbols: Path | None = None

    @classmethod
    def create_system(cls, name: str) -> NativeFramework:
        return cls(name=name)

    @property
    def is_system(self) -> bool:
        return self.root is None and self.library is None

    @property
    def file(self) -> Path | None:
        return self.library.single_file if self.library is not None else None

    def with_debug_symbols(self, debug_symbols: Path) -> NativeFramework:
        if self.is_system:
            return self
        return replace(self, debug_symbols=debug_symbols)

    def to_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "root": str(self.root) if self.root else None,
            "library": self.library.to_payload() if self.library is not None else None,
            "debug_symbols": str(self.debug_symbols) if self.debug_symbols else None,
        }

    def __str__(self) -> str:
        return str(self.root) if self.root is not None else self.name


@dataclass(frozen=True, slots=True, order=True)
class RelativeFile:
    """A file paired with the relative path it should occupy inside a destination tree."""

    path: str
    file: Path

    def __post_init__(self) -> None:
        if self.path.startswith("/"):
            raise ValueError("Path must be a relative path")

    @classmethod
    def from_base(cls, base_directory: Path, file: Path) -> RelativeFile:
        dir_path = str(base_directory.absolute()) + "/"
        file_path = str(file.absolute())
        if not file_path.startswith(dir_path):
            raise ValueError("File path does not match base directory")
        return cls(path=file_path[len(dir_path) :], file=file)

    @property
    def base_directory(self) -> Path | None:
        """Return the base directory implied by the relative path, if it exists."""
        full_path = str(self.file.absolute())
        if full_path.endswith(self.path):
            base = Path(full_path[: len(full_path) - len(self.path)])
            if base.is_dir():
                return base
        return None

    def __str__(self) -> str:
        return f"{self.path}: {self.file}"


__all__ = [
    "FatLibrary",
    "NativeFramework",
    "NativeLibrary",
    "PerArchitectureLibrary",
    "RelativeFile",
    "SingleArchitectureLibrary",
    "architecture_files",
    "create_native_library",
    "create_single_file_library",
    "merge_libraries",
    "restrict_architectures",
]
