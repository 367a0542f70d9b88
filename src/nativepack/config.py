"""Tool locations and dependency-filter settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

# Libraries installed under these prefixes are not part of the base system and
# must be bundled with the application that uses them.
DEFAULT_INSTALLED_PREFIXES = ("/usr/local/opt", "/opt/homebrew/opt")

_ENV_TOOLS = {
    "NATIVEPACK_OTOOL": "otool",
    "NATIVEPACK_FILE": "file",
    "NATIVEPACK_LIPO": "lipo",
    "NATIVEPACK_INSTALL_NAME_TOOL": "install_name_tool",
}


@dataclass(frozen=True, slots=True)
class ToolConfig:
    otool: str = "/usr/bin/otool"
    file: str = "/usr/bin/file"
    lipo: str = "/usr/bin/lipo"
    install_name_tool: str = "/usr/bin/install_name_tool"
    installed_prefixes: tuple[str, ...] = DEFAULT_INSTALLED_PREFIXES

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ToolConfig:
        """Build a configuration, letting ``NATIVEPACK_*`` variables override the defaults."""
        env = os.environ if environ is None else environ
        config = cls()
        overrides: dict[str, object] = {}
        for variable, attribute in _ENV_TOOLS.items():
            value = env.get(variable, "").strip()
            if value:
                overrides[attribute] = value
        prefixes = env.get("NATIVEPACK_INSTALLED_PREFIXES", "").strip()
        if prefixes:
            overrides["installed_prefixes"] = tuple(
                prefix for prefix in prefixes.split(os.pathsep) if prefix
            )
        return replace(config, **overrides) if overrides else config


DEFAULT_CONFIG = ToolConfig()

__all__ = ["DEFAULT_CONFIG", "DEFAULT_INSTALLED_PREFIXES", "ToolConfig"]
