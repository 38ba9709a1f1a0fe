"""Core data structures for the localeforge scanner and codemod."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ErrorRecord


class ImportKind(str, Enum):
    """How the translation function is imported."""

    NAMED = "named"
    DEFAULT = "default"


@dataclass(frozen=True)
class SourceCandidate:
    """A string occurrence found by the scanner."""

    id: str
    text: str
    file: str
    line: int
    column: int
    context: str
    localized: bool = False
    key_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "context": self.context,
            "localized": self.localized,
            "keyPath": self.key_path,
        }


@dataclass(frozen=True)
class ImportBinding:
    """A module import the patcher must guarantee exists."""

    source: str
    symbol: str
    kind: ImportKind = ImportKind.NAMED


@dataclass(frozen=True)
class TranslationTarget:
    """A request to wrap one literal of one file in a translation call."""

    file_path: str
    text: str
    line: int
    column: int
    key: str
    function_name: str = "t"
    import_source: Optional[str] = None
    import_kind: ImportKind = ImportKind.NAMED
    skip_import: bool = False

    def binding(self) -> Optional[ImportBinding]:
        """Return the import the target asks for, if any."""

        if self.skip_import:
            return None
        source = (self.import_source or "").strip()
        symbol = self.function_name.split(".")[0].strip()
        if not source or not symbol:
            return None
        return ImportBinding(source=source, symbol=symbol, kind=ImportKind(self.import_kind))


@dataclass(frozen=True)
class PatchResult:
    """Outcome of a successful patch."""

    path: Path
    import_changed: bool = False


@dataclass
class ScanReport:
    """Report returned after scanning a project."""

    root: Path
    candidates: List[SourceCandidate] = field(default_factory=list)
    files_scanned: int = 0
    failures: List[ErrorRecord] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def localized_count(self) -> int:
        return sum(1 for candidate in self.candidates if candidate.localized)
