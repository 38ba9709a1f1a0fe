"""Error definitions for the localeforge scanner and codemod."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises per-file scan failures."""

    FILE_IO = auto()
    DECODE = auto()
    PARSE = auto()
    OTHER = auto()


class LocaleForgeError(Exception):
    """Base exception for all custom errors."""


class SourceParseError(LocaleForgeError):
    """Raised when a source file cannot be decoded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.line = line
        self.column = column


class InvalidInputError(LocaleForgeError):
    """Raised when a patch request is missing required fields."""


class InvalidFunctionNameError(InvalidInputError):
    """Raised when the translation function name is not a dotted identifier path."""


class StaleLocationError(LocaleForgeError):
    """Raised when no node matches the requested text and position."""


class ConfigurationError(LocaleForgeError):
    """Raised when configuration sources are unreadable or invalid."""


class ScanAborted(LocaleForgeError):
    """Raised when too many files failed during a scan."""


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    path: Optional[str] = None
    details: Optional[str] = None
