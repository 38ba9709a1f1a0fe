"""Failure policy applied while scanning many files."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord, ScanAborted

logger = logging.getLogger(__name__)


class ErrorPolicy:
    """Records per-file failures and decides whether the scan may continue."""

    def __init__(self, *, max_failures: Optional[int] = None) -> None:
        self.max_failures = max_failures
        self.records: List[ErrorRecord] = []

    @property
    def total(self) -> int:
        return len(self.records)

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        *,
        path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> ErrorRecord:
        """Record a failure and abort once the threshold is reached."""

        record = ErrorRecord(category=category, message=message, path=path, details=details)
        self.records.append(record)
        logger.warning("%s (%s)", message, path or "unknown file")

        if self.max_failures is not None and self.total >= self.max_failures:
            raise ScanAborted(
                f"{self.total} file(s) could not be scanned; "
                f"stopping after reaching the limit of {self.max_failures}."
            )
        return record
