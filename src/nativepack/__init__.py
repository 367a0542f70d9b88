"""Public package entrypoint for native library packaging."""

from .architecture import Architecture, NativeTarget, parse_architecture, parse_architectures
from .config import ToolConfig
from .dependencies import (
    get_dependencies,
    get_file_dependencies,
    installed_library_name,
    make_name_filter,
    resolve_dependency_closure,
)
from .discovery import (
    create_for_file,
    create_framework,
    create_universal_library,
    find_library,
    to_library_name,
)
from .errors import (
    DestinationNotFoundError,
    ErrorCode,
    InvalidFrameworkError,
    LibraryFileNotFoundError,
    NativePackError,
    NoSupportedArchitecturesError,
    ToolInvocationError,
    ToolOutputError,
    UnrecognizedLibraryNameError,
    UnsupportedLibraryShapeError,
    ValidationError,
)
from .expander import ExpandConfiguration, ExpandResult, expand
from .models import (
    FatLibrary,
    NativeFramework,
    NativeLibrary,
    PerArchitectureLibrary,
    RelativeFile,
    SingleArchitectureLibrary,
    create_native_library,
    restrict_architectures,
)
from .reporting import LoggingReporter, Reporter, StructuredReporter, configure_logging
from .tools import SubprocessToolRunner, ToolRunner

__all__ = [
    "Architecture",
    "DestinationNotFoundError",
    "ErrorCode",
    "ExpandConfiguration",
    "ExpandResult",
    "FatLibrary",
    "InvalidFrameworkError",
    "LibraryFileNotFoundError",
    "LoggingReporter",
    "NativeFramework",
    "NativeLibrary",
    "NativePackError",
    "NativeTarget",
    "NoSupportedArchitecturesError",
    "PerArchitectureLibrary",
    "RelativeFile",
    "Reporter",
    "SingleArchitectureLibrary",
    "StructuredReporter",
    "SubprocessToolRunner",
    "ToolConfig",
    "ToolInvocationError",
    "ToolOutputError",
    "ToolRunner",
    "UnrecognizedLibraryNameError",
    "UnsupportedLibraryShapeError",
    "ValidationError",
    "configure_logging",
    "create_for_file",
    "create_framework",
    "create_native_library",
    "create_universal_library",
    "expand",
    "find_library",
    "get_dependencies",
    "get_file_dependencies",
    "installed_library_name",
    "make_name_filter",
    "parse_architecture",
    "parse_architectures",
    "resolve_dependency_closure",
    "restrict_architectures",
    "to_library_name",
]
