import pytest

from nativepack.architecture import (
    Architecture,
    NativeTarget,
    parse_architecture,
    parse_architectures,
    sorted_architectures,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("x86", Architecture.INTEL),
        ("x86_64", Architecture.INTEL),
        ("arm", Architecture.ARM),
        ("arm64", Architecture.ARM),
        ("ppc", None),
        ("arm64e", None),
        ("", None),
    ],
)
def test_parse_architecture(name: str, expected: Architecture | None) -> None:
    assert parse_architecture(name) is expected


def test_parse_architectures_drops_unknown_names() -> None:
    assert parse_architectures(["x86_64", "i386", "arm64"]) == {Architecture.INTEL, Architecture.ARM}
    assert parse_architectures([]) == frozenset()


def test_architecture_short_names_are_stable() -> None:
    assert str(Architecture.INTEL) == "x86"
    assert Architecture.ARM.short_name == "arm"


def test_sorted_architectures_uses_declaration_order() -> None:
    assert sorted_architectures({Architecture.ARM, Architecture.INTEL}) == [
        Architecture.INTEL,
        Architecture.ARM,
    ]


def test_native_target_parse_splits_macos_minimum_version() -> None:
    target = NativeTarget.parse("arm64-apple-macos11")

    assert target.arch_name == "arm64"
    assert target.vendor == "apple"
    assert target.os == "macos"
    assert target.min_os_version == "11"
    assert target.architecture is Architecture.ARM
    assert str(target) == "arm64-apple-macos11"


def test_native_target_parse_without_vendor() -> None:
    target = NativeTarget.parse("x86_64-macos10.15")

    assert target.vendor is None
    assert target.os == "macos"
    assert target.min_os_version == "10.15"
    assert target.architecture is Architecture.INTEL


def test_native_target_parse_keeps_other_os_whole() -> None:
    target = NativeTarget.parse("x86_64-pc-linux")

    assert target.os == "linux"
    assert target.min_os_version is None


def test_native_target_create_matches_parse() -> None:
    created = NativeTarget.create("arm64", "apple", "macos", "12")

    assert created.value == "arm64-apple-macos12"
    assert created == NativeTarget.parse("arm64-apple-macos12")
    assert hash(created) == hash(NativeTarget.parse("arm64-apple-macos12"))


def test_native_target_with_unknown_architecture() -> None:
    assert NativeTarget.parse("riscv64-unknown-linux").architecture is None
