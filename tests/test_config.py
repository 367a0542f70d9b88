import os

import pytest

from nativepack.config import DEFAULT_CONFIG, DEFAULT_INSTALLED_PREFIXES, ToolConfig


def test_default_tool_locations() -> None:
    assert DEFAULT_CONFIG.otool == "/usr/bin/otool"
    assert DEFAULT_CONFIG.file == "/usr/bin/file"
    assert DEFAULT_CONFIG.lipo == "/usr/bin/lipo"
    assert DEFAULT_CONFIG.install_name_tool == "/usr/bin/install_name_tool"
    assert DEFAULT_CONFIG.installed_prefixes == ("/usr/local/opt", "/opt/homebrew/opt")


def test_from_env_without_overrides_matches_defaults() -> None:
    assert ToolConfig.from_env({}) == ToolConfig()


def test_from_env_overrides_tools_and_prefixes() -> None:
    config = ToolConfig.from_env(
        {
            "NATIVEPACK_OTOOL": "/opt/xcode/otool",
            "NATIVEPACK_LIPO": "  ",
            "NATIVEPACK_INSTALLED_PREFIXES": os.pathsep.join(["/sw/opt", "", "/nix/store"]),
        }
    )

    assert config.otool == "/opt/xcode/otool"
    assert config.lipo == "/usr/bin/lipo"
    assert config.installed_prefixes == ("/sw/opt", "/nix/store")


def test_from_env_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NATIVEPACK_FILE", "/custom/file")
    monkeypatch.delenv("NATIVEPACK_INSTALLED_PREFIXES", raising=False)

    config = ToolConfig.from_env()

    assert config.file == "/custom/file"
    assert config.installed_prefixes == DEFAULT_INSTALLED_PREFIXES
