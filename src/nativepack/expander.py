"""Expand archives and directory trees into classified destination directories.

Every source is classified item by item. Class files and resources go to the
class target, native libraries and their debug symbols go to the native
library target, and frameworks go to the native framework target. Files that
would overwrite existing content are compared first: identical content is
skipped, different content is written beside the original under a unique
``<stem>-<N><ext>`` name, and a differing ``.class`` file is always an error.
"""

from __future__ import annotations

import json
import os
import tempfile
import zipfile
import zlib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import cbor2

from nativepack.config import DEFAULT_CONFIG, ToolConfig
from nativepack.conventions import (
    is_archive,
    is_class_file,
    is_native_framework,
    is_native_framework_entry,
    is_native_framework_symbols,
    is_native_library,
    is_native_library_entry,
    is_native_library_related_entry,
    is_native_library_symbols,
    native_library_symbols_bundle_of_entry,
    should_exclude_entry,
    symbols_base,
)
from nativepack.discovery import create_for_file, create_framework, to_library_name
from nativepack.errors import DestinationNotFoundError, InvalidSourceError, NativePackError, ValidationError
from nativepack.models import NativeFramework, NativeLibrary
from nativepack.reporting import Reporter
from nativepack.sources import FileSourceElement, SourceElement, ZipEntrySourceElement, same_contents
from nativepack.tools import DEFAULT_RUNNER, ToolRunner

# Errors raised while reading one entry or copying one file.
_ENTRY_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error)


@dataclass(frozen=True, slots=True)
class ExpandConfiguration:
    sources: tuple[Path, ...]
    class_target: Path | None = None
    native_library_target: Path | None = None
    native_framework_target: Path | None = None

    def __post_init__(self) -> None:
        if isinstance(self.sources, (str, os.PathLike)):
            raise ValidationError(
                "sources must be a sequence of paths, not a single path.",
                context={"sources": str(self.sources)},
            )
        object.__setattr__(self, "sources", tuple(Path(s) for s in self.sources))

    @property
    def targets(self) -> tuple[Path, ...]:
        return tuple(
            t
            for t in (self.class_target, self.native_library_target, self.native_framework_target)
            if t is not None
        )


@dataclass(frozen=True, slots=True)
class ExpandResult:
    errors_found: bool
    native_libraries: tuple[NativeLibrary, ...] = ()
    native_frameworks: tuple[NativeFramework, ...] = ()
    schema_version: int = 1

    def to_json(self, path: str | Path | None = None) -> str:
        payload = self._payload()
        encoded = json.dumps(payload, indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        payload = self._payload()
        encoded = cbor2.dumps(payload, canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _payload(self) -> dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "errors_found": self.errors_found,
            "native_libraries": [lib.to_payload() for lib in self.native_libraries],
            "native_frameworks": [fw.to_payload() for fw in self.native_frameworks],
        }


@dataclass(slots=True)
class Expander:
    """One expansion run. Instances hold per-run indices and are not reusable."""

    configuration: ExpandConfiguration
    reporter: Reporter
    runner: ToolRunner = DEFAULT_RUNNER
    config: ToolConfig = DEFAULT_CONFIG
    errors_found: bool = False
    _libraries: list[NativeLibrary] = field(default_factory=list)
    _frameworks: list[NativeFramework] = field(default_factory=list)
    _library_symbols: dict[str, Path] = field(default_factory=dict)
    _framework_symbols: dict[str, Path] = field(default_factory=dict)

    def run(self) -> ExpandResult:
        self.configuration = validate_configuration(self.configuration)
        if self.configuration.targets:
            for source in self.configuration.sources:
                self._process_source(source)
        return self._reconcile()

    # Top level

    def _process_source(self, source: Path) -> None:
        configuration = self.configuration
        if source.is_file():
            if is_archive(source):
                self.reporter.info(f"  Expanding: {source}")
                self._expand_archive(source.resolve())
            elif is_native_library(source):
                if configuration.native_library_target is not None:
                    self.reporter.info(f"  Copying: {source}")
                    self._process_native_library(source)
            else:
                self._error(f"Unsupported source file: {source}")
        elif source.is_dir():
            directory = source.resolve()
            if is_native_library_symbols(source):
                if configuration.native_library_target is not None:
                    self.reporter.info(f"  Copying:   {source}")
                    self._process_native_library_symbols(directory)
            elif is_native_framework(source):
                if configuration.native_framework_target is not None:
                    self.reporter.info(f"  Copying:   {source}")
                    self._process_native_framework(directory)
            elif is_native_framework_symbols(source):
                if configuration.native_framework_target is not None:
                    self.reporter.info(f"  Copying:   {source}")
                    self._process_native_framework_symbols(directory)
            else:
                self.reporter.info(f"  Copying:   {source}")
                self._copy_source_tree(directory)
        else:
            self._error(f"Source not found: {source}")

    def _copy_source_tree(self, directory: Path) -> None:
        try:
            children = sorted(directory.iterdir())
        except OSError:
            self._error(f"Unable to scan directory: {directory}")
            return
        for child in children:
            if is_native_library(child):
                self._process_native_library(child)
            elif is_native_library_symbols(child):
                self._process_native_library_symbols(child)
            elif is_native_framework(child):
                self._process_native_framework(child)
            elif is_native_framework_symbols(child):
                self._process_native_framework_symbols(child)
            elif self.configuration.class_target is not None:
                self._copy_class_item(child, directory, self.configuration.class_target)

    def _copy_class_item(self, source: Path, root: Path, target: Path) -> None:
        relative = source.relative_to(root).as_posix()
        if source.is_dir() and not source.is_symlink():
            try:
                children = sorted(source.iterdir())
            except OSError:
                self._error(f"Unable to scan directory: {source}")
                return
            for child in children:
                self._copy_class_item(child, root, target)
        elif should_exclude_entry(relative):
            self.reporter.verbose(f"Skipping excluded file: {relative}")
        elif source.is_symlink():
            destination = self._compute_target(target, relative)
            if destination is not None:
                self._copy_symlink(source, destination)
        else:
            element = FileSourceElement(
                name=relative,
                mtime=source.lstat().st_mtime,
                is_directory=False,
                file=source,
            )
            self._copy_element(element, target)

    # Native libraries and frameworks

    def _process_native_library(self, file: Path) -> None:
        target = self.configuration.native_library_target
        if target is None:
            return
        copied = self._copy_element(FileSourceElement.for_file(file), target)
        if copied is not None:
            self._register_library(copied, str(file), file.name)

    def _process_native_library_symbols(self, bundle: Path) -> None:
        target = self.configuration.native_library_target
        if target is None:
            return
        destination = self._copy_directory(bundle, target)
        key = symbols_base(bundle.name)
        if destination is not None and key is not None:
            self._library_symbols[key] = destination

    def _process_native_framework(self, root: Path) -> None:
        target = self.configuration.native_framework_target
        if target is None:
            return
        destination = self._copy_directory(root, target)
        if destination is None:
            return
        try:
            framework = create_framework(
                destination,
                runner=self.runner,
                config=self.config,
                reporter=self.reporter,
            )
        except NativePackError as exc:
            self._error(f"Invalid native framework: {root} [{exc.args[0]}]")
            return
        if framework not in self._frameworks:
            self._frameworks.append(framework)

    def _process_native_framework_symbols(self, bundle: Path) -> None:
        target = self.configuration.native_framework_target
        if target is None:
            return
        destination = self._copy_directory(bundle, target)
        key = symbols_base(bundle.name)
        if destination is not None and key is not None:
            self._framework_symbols[key] = destination

    def _register_library(self, file: Path, label: str, file_name: str) -> None:
        try:
            library = create_for_file(
                file,
                runner=self.runner,
                config=self.config,
                reporter=self.reporter,
                file_name=file_name,
            )
        except NativePackError as exc:
            self._error(f"Invalid native library: {label} [{exc.args[0]}]")
            return
        if library not in self._libraries:
            self._libraries.append(library)

    # Archives

    def _expand_archive(self, archive_file: Path) -> None:
        try:
            with zipfile.ZipFile(archive_file) as archive:
                entries = archive.infolist()
                for entry in entries:
                    self.reporter.verbose(f"extracting {entry.filename}")
                    if not entry.is_dir():
                        self._copy_entry(ZipEntrySourceElement.for_entry(archive, entry))
        except (OSError, zipfile.BadZipFile) as exc:
            self._error(f"Error while expanding {archive_file}: {exc}")
            return
        if not entries:
            self.reporter.info(f"Archive is empty: {archive_file}")
        self.reporter.verbose("expand complete")

    def _copy_entry(self, element: ZipEntrySourceElement) -> None:
        name = element.name
        if should_exclude_entry(name):
            return
        if is_native_library_related_entry(name):
            self._process_native_library_entry(element)
        elif is_native_framework_entry(name):
            self.reporter.info(f"  Skipping native framework in archive: {name} [unsupported]")
        elif self.configuration.class_target is not None:
            self._copy_element(element, self.configuration.class_target)

    def _process_native_library_entry(self, element: ZipEntrySourceElement) -> None:
        target = self.configuration.native_library_target
        if target is None:
            return
        copied = self._copy_element(element, target)
        if copied is None:
            return
        if is_native_library_entry(element.name):
            self._register_library(copied, element.name, element.name)
            return
        bundle = native_library_symbols_bundle_of_entry(element.name)
        if bundle is not None:
            key = symbols_base(bundle)
            if key is not None:
                self._library_symbols[key] = target / bundle

    # Copying

    def _copy_element(self, element: SourceElement, directory: Path) -> Path | None:
        """Write *element* below *directory*; return where its content now lives."""
        target = self._compute_target(directory, element.name)
        if target is None:
            return None
        prepared = self._prepare_target_file(element, target)
        if prepared is None:
            return None
        destination, write = prepared
        if not write:
            return destination
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            self._error(f"Unable to create target directory: {destination.parent}")
            return None
        try:
            element.copy_to(destination)
        except _ENTRY_ERRORS as exc:
            destination.unlink(missing_ok=True)
            self._error(f"Unable to copy {element.name}: {exc}")
            return None
        return destination

    def _copy_directory(self, source: Path, target_root: Path) -> Path | None:
        destination = self._compute_target(target_root, source.name)
        if destination is None:
            return None
        if not self._copy_tree(source, destination):
            return None
        return destination

    def _copy_tree(self, source: Path, destination: Path) -> bool:
        if destination.is_symlink() or (destination.exists() and not destination.is_dir()):
            self._error(f"Target is not a directory: {destination}")
            return False
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError:
            self._error(f"Unable to create directory: {destination}")
            return False
        try:
            children = sorted(source.iterdir())
        except OSError:
            self._error(f"Unable to scan directory: {source}")
            return False
        for child in children:
            if child.is_symlink():
                self._copy_symlink(child, destination / child.name)
            elif child.is_dir():
                self._copy_tree(child, destination / child.name)
            elif child.is_file():
                self._copy_element(FileSourceElement.for_file(child), destination)
        return True

    def _copy_symlink(self, source: Path, destination: Path) -> None:
        if destination.is_symlink() or destination.exists():
            self.reporter.info(f"Target file exists: {destination}")
            return
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.symlink_to(os.readlink(source))
        except OSError as exc:
            self._error(f"Unable to copy symlink {source}: {exc}")

    def _compute_target(self, directory: Path, name: str) -> Path | None:
        target = compute_target(directory, name)
        if target is None:
            self._error(f"Target {directory / name} is outside directory {directory}")
        return target

    def _prepare_target_file(self, element: SourceElement, target: Path) -> tuple[Path, bool] | None:
        """Apply the collision policy to *target*.

        Returns the path to write and whether writing is needed, or ``None``
        when nothing may be written.
        """
        if target.is_file() and not target.is_symlink():
            try:
                identical = _element_matches(element, target)
            except _ENTRY_ERRORS as exc:
                identical = False
                self.reporter.info(f"Unable to compare file contents: {target} [{exc}]")
            if identical:
                self.reporter.verbose(f"Skipping entry [duplicate file exists]: {element.name}")
                return target, False
            if is_class_file(target.name):
                self._error(f"Not expanding {element.name} [duplicate]")
                return None
            self.reporter.verbose(f"Existing file has different content: {element.name}")
        elif target.is_symlink() or target.exists():
            self.reporter.verbose(f"Collision with a target that is not a regular file: {element.name}")
        else:
            return target, True
        unique = generate_unique_file(target)
        self.reporter.info(f"Expanding {element.name} to {unique} [file collision]")
        return unique, True

    # Reconciliation

    def _reconcile(self) -> ExpandResult:
        libraries = list(self._libraries)
        frameworks = list(self._frameworks)
        for key, bundle in sorted(self._library_symbols.items()):
            index = _find_library(libraries, key)
            if index is None:
                self.reporter.verbose(f"  No native library for symbols: {bundle}")
                continue
            self.reporter.info(f"  Found symbols for {key}: {bundle}")
            libraries[index] = libraries[index].with_debug_symbols(bundle)
        for key, bundle in sorted(self._framework_symbols.items()):
            index = _find_framework(frameworks, key)
            if index is None:
                self.reporter.verbose(f"  No native framework for symbols: {bundle}")
                continue
            self.reporter.info(f"  Found symbols for {key}: {bundle}")
            frameworks[index] = frameworks[index].with_debug_symbols(bundle)
        return ExpandResult(
            errors_found=self.errors_found,
            native_libraries=tuple(libraries),
            native_frameworks=tuple(frameworks),
        )

    def _error(self, message: str) -> None:
        self.errors_found = True
        self.reporter.error(message)


def expand(
    configuration: ExpandConfiguration,
    reporter: Reporter,
    *,
    runner: ToolRunner = DEFAULT_RUNNER,
    config: ToolConfig = DEFAULT_CONFIG,
) -> ExpandResult:
    """Expand every source of *configuration* into its targets.

    Raises :class:`DestinationNotFoundError` before processing anything when
    a declared target is not an existing directory. Per-item problems are
    reported through *reporter* and summarised by ``errors_found``.
    """
    return Expander(configuration, reporter, runner=runner, config=config).run()


def validate_configuration(configuration: ExpandConfiguration) -> ExpandConfiguration:
    class_target = _validate_target(configuration.class_target, "Class")
    library_target = _validate_target(configuration.native_library_target, "Native library")
    framework_target = _validate_target(configuration.native_framework_target, "Native framework")
    targets = [t for t in (class_target, library_target, framework_target) if t is not None]
    for source in configuration.sources:
        if not source.exists():
            continue
        resolved = source.resolve()
        for target in targets:
            if target == resolved or target.is_relative_to(resolved):
                raise InvalidSourceError(
                    f"Source {source} contains the target directory {target}",
                    hint="Expand into a directory outside every source tree.",
                    context={"source": str(source), "target": str(target)},
                )
    return ExpandConfiguration(
        sources=configuration.sources,
        class_target=class_target,
        native_library_target=library_target,
        native_framework_target=framework_target,
    )


def _validate_target(directory: Path | None, kind: str) -> Path | None:
    if directory is None:
        return None
    if directory.is_dir():
        return directory.resolve().absolute()
    raise DestinationNotFoundError(
        f"{kind} target not found: {directory}",
        context={"path": str(directory)},
    )


def compute_target(directory: Path, name: str) -> Path | None:
    """Join *name* onto *directory*, or return ``None`` if the result escapes it.

    The check is made twice: lexically, then on the resolved parent, so a
    symlinked directory already inside *directory* cannot lead out of it.
    """
    target = Path(os.path.normpath(directory / name))
    if target == directory or not target.is_relative_to(directory):
        return None
    if not target.parent.resolve().is_relative_to(directory.resolve()):
        return None
    return target


def generate_unique_file(path: Path) -> Path:
    """Return the first unused ``<stem>-<N><ext>`` sibling of *path*, counting from 1."""
    stem, dot, extension = path.name.rpartition(".")
    if not dot:
        stem, extension = path.name, ""
    else:
        extension = "." + extension
    counter = 1
    while True:
        candidate = path.with_name(f"{stem}-{counter}{extension}")
        if not (candidate.is_symlink() or candidate.exists()):
            return candidate
        counter += 1


def _element_matches(element: SourceElement, target: Path) -> bool:
    source = element.source_file
    if source is not None:
        return same_contents(source, target)
    fd, temp_name = tempfile.mkstemp(prefix="nativepack-")
    os.close(fd)
    temp = Path(temp_name)
    try:
        element.copy_to(temp)
        return same_contents(temp, target)
    finally:
        temp.unlink(missing_ok=True)


def _find_library(libraries: Sequence[NativeLibrary], file_name: str) -> int | None:
    for index, library in enumerate(libraries):
        file = library.single_file
        if file is not None and file.name == file_name:
            return index
    # A copy renamed on collision still carries its basic name.
    name = to_library_name(file_name)
    for index, library in enumerate(libraries):
        if library.single_file is not None and library.name == name:
            return index
    return None


def _find_framework(frameworks: Iterable[NativeFramework], root_name: str) -> int | None:
    for index, framework in enumerate(frameworks):
        if framework.root is not None and framework.root.name == root_name:
            return index
    return None


__all__ = [
    "ExpandConfiguration",
    "ExpandResult",
    "Expander",
    "compute_target",
    "expand",
    "generate_unique_file",
    "validate_configuration",
]
