"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the packaging pipeline."""

    VALIDATION = "E_VALIDATION"
    DESTINATION_NOT_FOUND = "E_DESTINATION_NOT_FOUND"
    INVALID_SOURCE = "E_INVALID_SOURCE"
    INVALID_SEARCH_PATH = "E_INVALID_SEARCH_PATH"
    UNRECOGNIZED_NAME = "E_UNRECOGNIZED_NAME"
    NO_SUPPORTED_ARCHITECTURES = "E_NO_SUPPORTED_ARCHITECTURES"
    TOOL_INVOCATION = "E_TOOL_INVOCATION"
    TOOL_OUTPUT = "E_TOOL_OUTPUT"
    LIBRARY_NOT_FOUND = "E_LIBRARY_NOT_FOUND"
    UNSUPPORTED_LIBRARY_SHAPE = "E_UNSUPPORTED_LIBRARY_SHAPE"
    INVALID_FRAMEWORK = "E_INVALID_FRAMEWORK"


class NativePackError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class _CodedError(NativePackError):
    _code: ErrorCode = ErrorCode.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=self._code, hint=hint, context=context)


class ValidationError(_CodedError):
    _code = ErrorCode.VALIDATION


class DestinationNotFoundError(_CodedError):
    """A configured destination root is not an existing directory."""

    _code = ErrorCode.DESTINATION_NOT_FOUND


class InvalidSourceError(_CodedError):
    _code = ErrorCode.INVALID_SOURCE


class InvalidSearchPathError(_CodedError):
    _code = ErrorCode.INVALID_SEARCH_PATH


class UnrecognizedLibraryNameError(_CodedError):
    """A file name does not follow the ``lib<name>.dylib`` convention."""

    _code = ErrorCode.UNRECOGNIZED_NAME


class NoSupportedArchitecturesError(_CodedError):
    _code = ErrorCode.NO_SUPPORTED_ARCHITECTURES


class ToolInvocationError(_CodedError):
    """An external tool could not run or exited with a non-zero status."""

    _code = ErrorCode.TOOL_INVOCATION


class ToolOutputError(_CodedError):
    """An external tool produced output that could not be parsed."""

    _code = ErrorCode.TOOL_OUTPUT


class LibraryFileNotFoundError(_CodedError):
    _code = ErrorCode.LIBRARY_NOT_FOUND


class UnsupportedLibraryShapeError(_CodedError):
    """A single-file operation was requested for a multi-file library."""

    _code = ErrorCode.UNSUPPORTED_LIBRARY_SHAPE


class InvalidFrameworkError(_CodedError):
    _code = ErrorCode.INVALID_FRAMEWORK


__all__ = [
    "DestinationNotFoundError",
    "ErrorCode",
    "InvalidFrameworkError",
    "InvalidSearchPathError",
    "InvalidSourceError",
    "LibraryFileNotFoundError",
    "NativePackError",
    "NoSupportedArchitecturesError",
    "ToolInvocationError",
    "ToolOutputError",
    "UnrecognizedLibraryNameError",
    "UnsupportedLibraryShapeError",
    "ValidationError",
]
