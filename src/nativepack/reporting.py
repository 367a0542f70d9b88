"""Diagnostic reporting: a three-severity sink with structured and logging-backed variants."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

Level = Literal["info", "verbose", "error"]

_LOGGER_NAME = "nativepack"


class Reporter(Protocol):
    def info(self, message: str) -> None: ...

    def verbose(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


@dataclass(slots=True)
class StructuredReporter:
    """Reporter that keeps every diagnostic as a record for later inspection."""

    operation: str | None = None
    records: list[dict[str, Any]] = field(default_factory=list)

    def info(self, message: str) -> None:
        self.log(message, level="info")

    def verbose(self, message: str) -> None:
        self.log(message, level="verbose")

    def error(self, message: str) -> None:
        self.log(message, level="error")

    def log(self, message: str, *, level: Level = "info", operation: str | None = None) -> None:
        self.records.append(
            {
                "level": level,
                "operation": operation or self.operation,
                "message": message,
            }
        )

    def messages(self, level: Level | None = None) -> list[str]:
        return [
            record["message"]
            for record in self.records
            if level is None or record["level"] == level
        ]

    def errors(self) -> list[str]:
        return self.messages("error")

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


@dataclass(slots=True)
class LoggingReporter:
    """Reporter that forwards diagnostics to the ``nativepack`` logger hierarchy."""

    logger: logging.Logger = field(default_factory=lambda: get_logger())

    def info(self, message: str) -> None:
        self.logger.info(message)

    def verbose(self, message: str) -> None:
        self.logger.debug(message)

    def error(self, message: str) -> None:
        self.logger.error(message)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the nativepack hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Configure the nativepack logger with console output and an optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated configuration must not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[nativepack] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = [
    "Level",
    "LoggingReporter",
    "Reporter",
    "StructuredReporter",
    "configure_logging",
    "get_logger",
]
