"""File-set resolution and source file I/O."""

from __future__ import annotations

import fnmatch
import logging
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

GLOB_CHARACTERS = set("*?[")


def normalise_extensions(extensions: Iterable[str]) -> List[str]:
    """Lower-case extensions and make sure each starts with a dot."""

    normalised: List[str] = []
    for raw in extensions:
        ext = raw.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in normalised:
            normalised.append(ext)
    return normalised


class IgnoreMatcher:
    """Matches relative paths against bare names and fnmatch globs."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self.names: set[str] = set()
        self.globs: List[str] = []
        for raw in patterns:
            pattern = raw.strip().replace("\\", "/")
            if not pattern:
                continue
            if "/" in pattern.strip("/") or GLOB_CHARACTERS & set(pattern):
                self.globs.append(pattern.strip("/"))
            else:
                self.names.add(pattern.strip("/"))

    def matches(self, relative: PurePosixPath) -> bool:
        if any(part in self.names for part in relative.parts):
            return True
        if not self.globs:
            return False
        prefixes = [
            PurePosixPath(*relative.parts[: index + 1]).as_posix()
            for index in range(len(relative.parts))
        ]
        for pattern in self.globs:
            for prefix in prefixes:
                if fnmatch.fnmatchcase(prefix, pattern):
                    return True
                if pattern.startswith("**/") and fnmatch.fnmatchcase(prefix, pattern[3:]):
                    return True
        return False


def _walk(base: Path, root: Path, extensions: Sequence[str], ignore: IgnoreMatcher) -> Iterable[Path]:
    for current, dirs, files in os.walk(base):
        current_path = Path(current)
        kept = []
        for name in sorted(dirs):
            relative = PurePosixPath((current_path / name).relative_to(root).as_posix())
            if not ignore.matches(relative):
                kept.append(name)
        dirs[:] = kept
        for name in sorted(files):
            if not name.lower().endswith(tuple(extensions)):
                continue
            path = current_path / name
            relative = PurePosixPath(path.relative_to(root).as_posix())
            if ignore.matches(relative):
                continue
            yield path


def resolve_files(
    root: Path | str,
    extensions: Iterable[str],
    ignore: Iterable[str] = (),
    include_dirs: Optional[Iterable[str]] = None,
) -> List[Path]:
    """Return sorted absolute paths under root matching the extensions."""

    root_path = Path(root).expanduser().resolve()
    if not root_path.is_dir():
        raise NotADirectoryError(f"Scan root is not a directory: {root_path}")

    suffixes = normalise_extensions(extensions)
    if not suffixes:
        return []
    matcher = IgnoreMatcher(ignore)

    requested = list(include_dirs or [])
    bases: List[Path] = [] if requested else [root_path]
    for raw in requested:
        normalised = raw.strip().replace("\\", "/").strip("/")
        base = root_path if normalised in {"", "."} else (root_path / normalised).resolve()
        if base != root_path and root_path not in base.parents:
            logger.warning("Include directory %s is outside %s; skipping it.", base, root_path)
            continue
        if not base.is_dir():
            logger.warning("Include directory %s does not exist; skipping it.", base)
            continue
        if base not in bases:
            bases.append(base)

    seen: set[Path] = set()
    files: List[Path] = []
    for base in bases:
        for path in _walk(base, root_path, suffixes, matcher):
            if path in seen:
                continue
            seen.add(path)
            files.append(path)
    files.sort()
    logger.debug("Resolved %d file(s) under %s", len(files), root_path)
    return files


def read_source(path: Path) -> str:
    """Read a source file as UTF-8 without newline translation."""

    return path.read_bytes().decode("utf-8")


def write_source(path: Path, text: str) -> None:
    """Replace a file's content atomically."""

    handle, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(handle, "wb") as stream:
            stream.write(text.encode("utf-8"))
        try:
            os.chmod(temp_name, path.stat().st_mode & 0o7777)
        except FileNotFoundError:
            pass
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise
