"""Candidate scanning across a project tree."""

from __future__ import annotations

import concurrent.futures
import hashlib
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Sequence

from tree_sitter import Node

from .errors import ErrorCategory, SourceParseError
from .files import read_source, resolve_files
from .policy import ErrorPolicy
from .structures import ScanReport, SourceCandidate
from .syntax import SourcePosition, SourceTree, parse_source

logger = logging.getLogger(__name__)

DEFAULT_TRANSLATION_FUNCTIONS: FrozenSet[str] = frozenset(
    {"t", "translate", "formatMessage", "intl.formatMessage"}
)
DEFAULT_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js")


def candidate_id(text: str, file: str, line: int, column: int, localized: bool) -> str:
    """Stable identity of a candidate within and across scans."""

    tag = "localized" if localized else "plain"
    payload = f"{text}-{file}-{line}-{column}-{tag}"
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def extract_localized_key(source: SourceTree, call: Node, functions: FrozenSet[str]) -> Optional[str]:
    """Return the key of a recognized translation call, or None."""

    name = source.dotted_name(call.child_by_field_name("function"))
    if not name or name not in functions:
        return None

    arguments = call.child_by_field_name("arguments")
    if arguments is None or arguments.type != "arguments":
        return None
    if not arguments.named_children:
        return None
    first = arguments.named_children[0]

    if first.type == "string":
        return source.string_value(first)
    if first.type == "template_string":
        return source.template_value(first)
    if first.type == "object":
        for prop in first.named_children:
            if prop.type != "pair":
                continue
            key = prop.child_by_field_name("key")
            value = prop.child_by_field_name("value")
            if key is None or value is None:
                continue
            if key.type == "property_identifier" and source.node_text(key) == "id" and value.type == "string":
                return source.string_value(value)
    return None


@dataclass
class FileScan:
    """Candidates gathered from one file."""

    relative_path: str
    candidates: List[SourceCandidate] = field(default_factory=list)

    def record(
        self,
        source: SourceTree,
        text: str,
        position: SourcePosition,
        *,
        localized: bool,
        key_path: Optional[str] = None,
    ) -> None:
        value = text.strip()
        if not value:
            return
        self.candidates.append(
            SourceCandidate(
                id=candidate_id(value, self.relative_path, position.line, position.column, localized),
                text=value,
                file=self.relative_path,
                line=position.line,
                column=position.column,
                context=source.line_text(position.line).strip(),
                localized=localized,
                key_path=key_path,
            )
        )


def scan_source(
    text: str,
    relative_path: str,
    translation_functions: Iterable[str] = DEFAULT_TRANSLATION_FUNCTIONS,
) -> List[SourceCandidate]:
    """Extract candidates from one file's source text."""

    functions = frozenset(translation_functions)
    source = parse_source(text, path=relative_path)
    result = FileScan(relative_path=relative_path)

    for node in source.walk():
        literal = source.jsx_text_at(node)
        if literal is not None:
            value = literal.value.strip()
            if value and "\n" not in value and "\t" not in value:
                result.record(source, value, literal.position, localized=False)
            continue
        if node.type == "call_expression":
            key = extract_localized_key(source, node, functions)
            if key is not None:
                result.record(source, key, source.position(node), localized=True, key_path=key)

    return result.candidates


class Scanner:
    """Scans a project tree for localizable and localized strings."""

    def __init__(
        self,
        *,
        root: Path | str,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        ignore: Sequence[str] = (),
        include_dirs: Optional[Sequence[str]] = None,
        translation_functions: Iterable[str] = DEFAULT_TRANSLATION_FUNCTIONS,
        workers: int = 4,
        max_failures: Optional[int] = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.extensions = list(extensions)
        self.ignore = list(ignore)
        self.include_dirs = list(include_dirs) if include_dirs else None
        self.translation_functions = frozenset(translation_functions)
        self.workers = max(1, workers)
        self.error_policy = ErrorPolicy(max_failures=max_failures)

    def run(self) -> ScanReport:
        start_time = time.time()
        files = resolve_files(self.root, self.extensions, self.ignore, self.include_dirs)
        logger.info("Scanning %d file(s) under %s", len(files), self.root)

        candidates: List[SourceCandidate] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._scan_file, path) for path in files]
            try:
                for path, future in zip(files, futures):
                    candidates.extend(self._collect(path, future))
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return ScanReport(
            root=self.root,
            candidates=candidates,
            files_scanned=len(files),
            failures=list(self.error_policy.records),
            elapsed_seconds=time.time() - start_time,
        )

    def _scan_file(self, path: Path) -> List[SourceCandidate]:
        relative = path.relative_to(self.root).as_posix()
        text = read_source(path)
        candidates = scan_source(text, relative, self.translation_functions)
        logger.debug("%s: %d candidate(s)", relative, len(candidates))
        return candidates

    def _collect(self, path: Path, future: concurrent.futures.Future) -> List[SourceCandidate]:
        relative = path.relative_to(self.root).as_posix()
        try:
            return future.result()
        except SourceParseError as exc:
            self.error_policy.handle_error(
                ErrorCategory.PARSE,
                f"Could not parse {relative}: {exc}",
                path=relative,
            )
        except UnicodeDecodeError as exc:
            self.error_policy.handle_error(
                ErrorCategory.DECODE,
                f"Could not decode {relative} as UTF-8.",
                path=relative,
                details=str(exc),
            )
        except OSError as exc:
            self.error_policy.handle_error(
                ErrorCategory.FILE_IO,
                f"Could not read {relative}.",
                path=relative,
                details=str(exc),
            )
        except Exception as exc:
            self.error_policy.handle_error(
                ErrorCategory.OTHER,
                f"Unexpected error while scanning {relative}: {exc}",
                path=relative,
                details=repr(exc),
            )
        return []


def scan(
    root_dir: Path | str,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ignore: Sequence[str] = (),
    include_dirs: Optional[Sequence[str]] = None,
    *,
    translation_functions: Iterable[str] = DEFAULT_TRANSLATION_FUNCTIONS,
    workers: int = 4,
) -> List[SourceCandidate]:
    """Scan a project and return its candidates, skipping unparseable files."""

    scanner = Scanner(
        root=root_dir,
        extensions=extensions,
        ignore=ignore,
        include_dirs=include_dirs,
        translation_functions=translation_functions,
        workers=workers,
    )
    return scanner.run().candidates
