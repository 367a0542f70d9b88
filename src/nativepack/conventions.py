"""File and archive-entry naming conventions for native libraries, frameworks, and symbols."""

from __future__ import annotations

import zipfile
from pathlib import Path

LIBRARY_PREFIX = "lib"
LIBRARY_SUFFIX = ".dylib"
SYMBOLS_SUFFIX = ".dSYM"
LIBRARY_SYMBOLS_SUFFIX = LIBRARY_SUFFIX + SYMBOLS_SUFFIX
FRAMEWORK_SUFFIX = ".framework"
FRAMEWORK_SYMBOLS_SUFFIX = FRAMEWORK_SUFFIX + SYMBOLS_SUFFIX
CLASS_SUFFIX = ".class"
ARCHIVE_SUFFIXES = (".jar", ".zip")

# A symbols bundle inside an archive is recognised by this one nested entry,
# since archives need not contain directory entries.
SYMBOLS_DISTINGUISHED_ENTRY = "/Contents/Info.plist"

_SKIPPABLE_SUFFIXES = (".so", ".dll")
_METADATA_PREFIX = "META-INF/"


def is_archive(path: Path) -> bool:
    """Return True if *path* is a regular file holding a zip-format archive."""
    if not path.is_file():
        return False
    if path.name.endswith(ARCHIVE_SUFFIXES):
        return True
    if is_native_library_name(path.name):
        return False
    return zipfile.is_zipfile(path)


def is_native_library_name(name: str) -> bool:
    return name.endswith(LIBRARY_SUFFIX)


def is_native_library(path: Path) -> bool:
    return (
        is_native_library_name(path.name)
        and f"{LIBRARY_SYMBOLS_SUFFIX}/" not in path.as_posix()
        and path.is_file()
        and not path.is_symlink()
    )


def is_native_library_symbols_name(name: str) -> bool:
    return name.endswith(LIBRARY_SYMBOLS_SUFFIX)


def is_native_library_symbols(path: Path) -> bool:
    return is_native_library_symbols_name(path.name) and _is_real_directory(path)


def is_native_framework(path: Path) -> bool:
    return path.name.endswith(FRAMEWORK_SUFFIX) and _is_real_directory(path)


def is_native_framework_symbols(path: Path) -> bool:
    return path.name.endswith(FRAMEWORK_SYMBOLS_SUFFIX) and _is_real_directory(path)


def is_class_file(name: str) -> bool:
    return name.endswith(CLASS_SUFFIX)


def is_native_library_related_entry(name: str) -> bool:
    """Top-level ``.dylib`` entries and the contents of a top-level ``.dylib.dSYM`` bundle."""
    head, sep, _ = name.partition("/")
    if sep:
        return head.endswith(LIBRARY_SYMBOLS_SUFFIX)
    return is_native_library_name(name)


def is_native_library_entry(name: str) -> bool:
    return "/" not in name and is_native_library_name(name)


def native_library_symbols_bundle_of_entry(name: str) -> str | None:
    """Return the bundle name if *name* is the distinguished entry of a library symbols bundle."""
    marker = LIBRARY_SYMBOLS_SUFFIX + SYMBOLS_DISTINGUISHED_ENTRY
    if name.endswith(marker):
        return name[: len(name) - len(SYMBOLS_DISTINGUISHED_ENTRY)]
    return None


def is_native_framework_entry(name: str) -> bool:
    return f"{FRAMEWORK_SUFFIX}/" in name or f"{FRAMEWORK_SYMBOLS_SUFFIX}/" in name


def symbols_base(name: str) -> str | None:
    """Strip the symbols suffix: ``libfoo.dylib.dSYM`` -> ``libfoo.dylib``."""
    if name.endswith(SYMBOLS_SUFFIX):
        return name[: -len(SYMBOLS_SUFFIX)]
    if name.endswith(SYMBOLS_SUFFIX + SYMBOLS_DISTINGUISHED_ENTRY):
        return name[: -len(SYMBOLS_SUFFIX + SYMBOLS_DISTINGUISHED_ENTRY)]
    return None


def framework_name(root: Path) -> str | None:
    if root.name.endswith(FRAMEWORK_SUFFIX):
        return root.name[: -len(FRAMEWORK_SUFFIX)]
    return None


def should_exclude_entry(name: str) -> bool:
    """Return True for archive entries that are never copied out of an archive."""
    if name.startswith(_METADATA_PREFIX):
        rest = name[len(_METADATA_PREFIX) :]
        if rest in ("MANIFEST.MF", "INDEX.LIST") or rest.startswith("maven/"):
            return True
        if rest.endswith((".SF", ".RSA")):
            return True
        if rest.startswith("services/"):
            return True
    return name.endswith(_SKIPPABLE_SUFFIXES)


def _is_real_directory(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


__all__ = [
    "ARCHIVE_SUFFIXES",
    "CLASS_SUFFIX",
    "FRAMEWORK_SUFFIX",
    "FRAMEWORK_SYMBOLS_SUFFIX",
    "LIBRARY_PREFIX",
    "LIBRARY_SUFFIX",
    "LIBRARY_SYMBOLS_SUFFIX",
    "SYMBOLS_DISTINGUISHED_ENTRY",
    "SYMBOLS_SUFFIX",
    "framework_name",
    "is_archive",
    "is_class_file",
    "is_native_framework",
    "is_native_framework_entry",
    "is_native_framework_symbols",
    "is_native_library",
    "is_native_library_entry",
    "is_native_library_name",
    "is_native_library_related_entry",
    "is_native_library_symbols",
    "is_native_library_symbols_name",
    "native_library_symbols_bundle_of_entry",
    "should_exclude_entry",
    "symbols_base",
]
