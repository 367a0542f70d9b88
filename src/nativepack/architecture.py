"""Target CPU architectures and native target triples."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class Architecture(Enum):
    """A target architecture, valued by the short name used in messages and file names."""

    INTEL = "x86"
    ARM = "arm"

    @property
    def short_name(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


_ARCHITECTURE_NAMES: dict[str, Architecture] = {
    "x86": Architecture.INTEL,
    "x86_64": Architecture.INTEL,
    "arm": Architecture.ARM,
    "arm64": Architecture.ARM,
}


def parse_architecture(name: str) -> Architecture | None:
    """Map a tool or user supplied architecture name to an :class:`Architecture`.

    Unrecognized names return ``None``; callers treat them as entries to skip.
    """
    return _ARCHITECTURE_NAMES.get(name)


def parse_architectures(names: Iterable[str]) -> frozenset[Architecture]:
    found = (parse_architecture(name) for name in names)
    return frozenset(a for a in found if a is not None)


def sorted_architectures(architectures: Iterable[Architecture]) -> list[Architecture]:
    """Return architectures in declaration order, for stable output."""
    members = list(Architecture)
    return sorted(set(architectures), key=members.index)


@dataclass(frozen=True, slots=True)
class NativeTarget:
    """A target triple of the form ``arch[-vendor]-os[minOSVersion]``.

    Only macOS minimum versions are split out of the OS component, e.g.
    ``arm64-apple-macos11`` has OS ``macos`` and minimum version ``11``.
    Equality is by the canonical string :attr:`value`.
    """

    value: str
    arch_name: str = field(compare=False)
    vendor: str | None = field(compare=False)
    os: str = field(compare=False)
    min_os_version: str | None = field(compare=False)

    @classmethod
    def parse(cls, text: str) -> NativeTarget:
        rest = text
        arch, sep, tail = rest.partition("-")
        if sep:
            rest = tail
        else:
            arch = ""
        vendor: str | None = None
        head, sep, tail = rest.partition("-")
        if sep:
            vendor = head or None
            rest = tail
        if rest.startswith("macos"):
            os_name, min_version = "macos", rest[len("macos") :]
        else:
            os_name, min_version = rest, None
        return cls(
            value=text,
            arch_name=arch,
            vendor=vendor,
            os=os_name,
            min_os_version=min_version,
        )

    @classmethod
    def create(
        cls,
        arch: str,
        vendor: str | None,
        os: str,
        min_os_version: str | None = None,
    ) -> NativeTarget:
        value = arch
        if vendor is not None:
            value += f"-{vendor}"
        value += f"-{os}"
        if min_os_version is not None:
            value += min_os_version
        return cls(
            value=value,
            arch_name=arch,
            vendor=vendor,
            os=os,
            min_os_version=min_os_version,
        )

    @property
    def architecture(self) -> Architecture | None:
        return parse_architecture(self.arch_name)

    def __str__(self) -> str:
        return self.value


__all__ = [
    "Architecture",
    "NativeTarget",
    "parse_architecture",
    "parse_architectures",
    "sorted_architectures",
]
