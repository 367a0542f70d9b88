from pathlib import Path

import pytest

from nativepack.architecture import Architecture
from nativepack.config import ToolConfig
from nativepack.dependencies import (
    get_dependencies,
    get_file_dependencies,
    installed_library_name,
    make_name_filter,
    resolve_dependency_closure,
)
from nativepack.errors import UnsupportedLibraryShapeError
from nativepack.models import FatLibrary, SingleArchitectureLibrary, create_native_library
from nativepack.reporting import StructuredReporter

INTEL = Architecture.INTEL
ARM = Architecture.ARM
PREFIXES = ("/usr/local/opt", "/opt/homebrew/opt")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/usr/local/opt/zstd/lib/libzstd.1.dylib", "zstd"),
        ("/opt/homebrew/opt/xz/lib/liblzma.5.dylib", "lzma"),
        ("/usr/lib/libSystem.B.dylib", None),
        ("/usr/local/lib/libfoo.dylib", None),
        ("/usr/local/opt/foo/Foo.framework/Foo", None),
        ("libfoo.dylib", None),
    ],
)
def test_installed_library_name(path: str, expected: str | None) -> None:
    assert installed_library_name(path, PREFIXES) == expected


def test_make_name_filter_binds_prefixes() -> None:
    name_filter = make_name_filter(["/sw/opt"])

    assert name_filter("/sw/opt/png/lib/libpng16.16.dylib") == "png16"
    assert name_filter("/usr/local/opt/png/lib/libpng16.16.dylib") is None


def test_get_dependencies_groups_paths_by_name(tmp_path: Path, fake_runner) -> None:
    library = create_native_library("foo", {INTEL: _touch(tmp_path / "libfoo.dylib"), ARM: tmp_path / "libfoo.dylib"})
    fake_runner.add_universal_library(
        "libfoo.dylib",
        {
            "x86_64": ["/usr/local/opt/bar/lib/libbar.1.dylib", "/usr/lib/libSystem.B.dylib"],
            "arm64": [
                "/opt/homebrew/opt/bar/lib/libbar.1.dylib",
                "/opt/homebrew/opt/baz/lib/libbaz.dylib",
            ],
        },
    )

    dependencies = get_dependencies(library, make_name_filter(PREFIXES), runner=fake_runner)

    assert sorted(dependencies) == ["bar", "baz"]
    bar = dependencies["bar"]
    assert bar.file_for(INTEL) == Path("/usr/local/opt/bar/lib/libbar.1.dylib")
    assert bar.file_for(ARM) == Path("/opt/homebrew/opt/bar/lib/libbar.1.dylib")
    assert isinstance(dependencies["baz"], SingleArchitectureLibrary)
    assert dependencies["baz"].architectures == {ARM}


def test_get_dependencies_reads_every_file(tmp_path: Path, fake_runner) -> None:
    library = create_native_library(
        "foo",
        {INTEL: _touch(tmp_path / "x86" / "libfoo.dylib"), ARM: _touch(tmp_path / "arm" / "libfoo.dylib")},
    )
    fake_runner.otool_outputs[str((tmp_path / "x86" / "libfoo.dylib").absolute())] = (
        "/x/libfoo.dylib (architecture x86_64):\n"
        "\t/usr/local/opt/bar/lib/libbar.dylib (compatibility version 1.0.0, current version 1.0.0)\n"
    )
    fake_runner.otool_outputs[str((tmp_path / "arm" / "libfoo.dylib").absolute())] = (
        "/x/libfoo.dylib (architecture arm64):\n"
        "\t/usr/local/opt/bar/lib/libbar.dylib (compatibility version 1.0.0, current version 1.0.0)\n"
    )

    dependencies = get_dependencies(library, make_name_filter(PREFIXES), runner=fake_runner)

    assert isinstance(dependencies["bar"], FatLibrary)
    assert dependencies["bar"].architectures == {INTEL, ARM}
    assert fake_runner.programs() == ["otool", "otool"]


def test_get_dependencies_without_output_is_empty(tmp_path: Path, fake_runner) -> None:
    library = create_native_library("foo", {ARM: _touch(tmp_path / "libfoo.dylib")})

    assert get_dependencies(library, make_name_filter(PREFIXES), runner=fake_runner) == {}


def test_get_file_dependencies_rejects_multi_file_libraries(tmp_path: Path, fake_runner) -> None:
    library = create_native_library(
        "foo",
        {INTEL: tmp_path / "x86" / "libfoo.dylib", ARM: tmp_path / "arm" / "libfoo.dylib"},
    )

    with pytest.raises(UnsupportedLibraryShapeError):
        get_file_dependencies(library, make_name_filter(PREFIXES), runner=fake_runner)
    assert fake_runner.calls == []


def test_get_file_dependencies_thin_library(tmp_path: Path, fake_runner) -> None:
    library = create_native_library("foo", {ARM: _touch(tmp_path / "libfoo.dylib")})
    fake_runner.add_thin_library("libfoo.dylib", "arm64", ["/opt/homebrew/opt/bar/lib/libbar.dylib"])

    dependencies = get_file_dependencies(library, make_name_filter(PREFIXES), runner=fake_runner)

    assert list(dependencies) == ["bar"]
    assert dependencies["bar"].architectures == {ARM}


def test_closure_follows_transitive_dependencies(tmp_path: Path, fake_runner) -> None:
    prefix = tmp_path / "opt"
    a = _touch(prefix / "a" / "liba.dylib")
    b = _touch(prefix / "b" / "libb.dylib")
    c = _touch(prefix / "c" / "libc.dylib")
    fake_runner.add_thin_library("liba.dylib", "arm64", [str(b), "/usr/lib/libSystem.B.dylib"])
    fake_runner.add_thin_library("libb.dylib", "arm64", [str(c)])
    fake_runner.add_thin_library("libc.dylib", "arm64")
    reporter = StructuredReporter()

    closure = resolve_dependency_closure(
        [create_native_library("a", {ARM: a})],
        {ARM},
        config=ToolConfig(installed_prefixes=(str(prefix),)),
        runner=fake_runner,
        reporter=reporter,
    )

    assert [library.name for library in closure] == ["b", "c"]
    assert closure[0].single_file == b
    assert "  Adding dependent native library: b" in reporter.messages("verbose")


def test_closure_terminates_on_cycles(tmp_path: Path, fake_runner) -> None:
    prefix = tmp_path / "opt"
    a = _touch(prefix / "a" / "liba.dylib")
    b = _touch(prefix / "b" / "libb.dylib")
    fake_runner.add_thin_library("liba.dylib", "x86_64", [str(b)])
    fake_runner.add_thin_library("libb.dylib", "x86_64", [str(a)])

    closure = resolve_dependency_closure(
        [create_native_library("a", {INTEL: a})],
        {INTEL},
        name_filter=make_name_filter([str(prefix)]),
        runner=fake_runner,
    )

    assert [library.name for library in closure] == ["b"]
    assert fake_runner.programs().count("otool") == 2


def test_closure_restricts_and_skips_architectures(tmp_path: Path, fake_runner) -> None:
    prefix = tmp_path / "opt"
    a = _touch(prefix / "a" / "liba.dylib")
    b = _touch(prefix / "b" / "libb.dylib")
    c = _touch(prefix / "c" / "libc.dylib")
    fake_runner.add_universal_library(
        "liba.dylib",
        {"x86_64": [str(b)], "arm64": [str(b), str(c)]},
    )
    fake_runner.add_universal_library("libb.dylib", {"x86_64": [], "arm64": []})
    reporter = StructuredReporter()

    closure = resolve_dependency_closure(
        [create_native_library("a", {INTEL: a, ARM: a})],
        {INTEL},
        name_filter=make_name_filter([str(prefix)]),
        runner=fake_runner,
        reporter=reporter,
    )

    assert [library.name for library in closure] == ["b"]
    assert isinstance(closure[0], SingleArchitectureLibrary)
    assert closure[0].architecture is INTEL
    assert any("Skipping dependent native library c" in m for m in reporter.messages("verbose"))


def test_closure_never_includes_required_libraries(tmp_path: Path, fake_runner) -> None:
    prefix = tmp_path / "opt"
    a = _touch(prefix / "a" / "liba.dylib")
    b = _touch(prefix / "b" / "libb.dylib")
    fake_runner.add_thin_library("liba.dylib", "arm64", [str(b)])
    fake_runner.add_thin_library("libb.dylib", "arm64", [str(a)])

    closure = resolve_dependency_closure(
        [create_native_library("a", {ARM: a}), create_native_library("b", {ARM: b})],
        {ARM},
        name_filter=make_name_filter([str(prefix)]),
        runner=fake_runner,
    )

    assert closure == []


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\xcf\xfa\xed\xfe")
    return path
