"""Uniform access to content that comes either from disk or from inside a zip archive."""

from __future__ import annotations

import filecmp
import os
import shutil
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class FileSourceElement:
    name: str
    mtime: float
    is_directory: bool
    file: Path

    @classmethod
    def for_file(cls, file: Path) -> FileSourceElement:
        stat = file.lstat()
        return cls(name=file.name, mtime=stat.st_mtime, is_directory=file.is_dir(), file=file)

    @property
    def source_file(self) -> Path | None:
        return self.file

    def copy_to(self, dest: Path) -> None:
        shutil.copy2(self.file, dest, follow_symlinks=False)
        set_modification_time(dest, self.mtime)


@dataclass(frozen=True, slots=True)
class ZipEntrySourceElement:
    name: str
    mtime: float
    is_directory: bool
    archive: zipfile.ZipFile
    entry: zipfile.ZipInfo

    @classmethod
    def for_entry(cls, archive: zipfile.ZipFile, entry: zipfile.ZipInfo) -> ZipEntrySourceElement:
        return cls(
            name=entry.filename,
            mtime=time.mktime((*entry.date_time, 0, 0, -1)),
            is_directory=entry.is_dir(),
            archive=archive,
            entry=entry,
        )

    @property
    def source_file(self) -> Path | None:
        return None

    def copy_to(self, dest: Path) -> None:
        with self.archive.open(self.entry) as src, dest.open("wb") as out:
            shutil.copyfileobj(src, out, _CHUNK_SIZE)
        set_modification_time(dest, self.mtime)


SourceElement = FileSourceElement | ZipEntrySourceElement


def set_modification_time(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime), follow_symlinks=False)


def same_contents(first: Path, second: Path) -> bool:
    """Byte-for-byte comparison of two regular files."""
    return filecmp.cmp(first, second, shallow=False)


__all__ = [
    "FileSourceElement",
    "SourceElement",
    "ZipEntrySourceElement",
    "same_contents",
    "set_modification_time",
]
