"""Localization key suggestion and locale bundle helpers."""

from __future__ import annotations

import hashlib
import re
import time
from pathlib import PurePosixPath
from typing import Any, Dict, MutableMapping, Set

MAX_WORDS = 6
MAX_SLUG_LENGTH = 64
HASH_LENGTH = 4

NON_ALPHANUMERIC_PATTERN = re.compile(r"[^A-Za-z0-9\s]")
WHITESPACE_PATTERN = re.compile(r"\s+")
# Word boundaries follow lodash `words`: camelCase humps, digit runs and ordinals.
WORD_PATTERN = re.compile(
    r"\d*(?:1st|2nd|3rd|(?![123])\dth)(?![a-z])"
    r"|[A-Z]+(?=[A-Z][a-z])"
    r"|[A-Z]?[a-z]+"
    r"|[A-Z]+"
    r"|\d+"
)
BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _slug_words(text: str) -> list[str]:
    return [word.lower() for word in WORD_PATTERN.findall(text)]


def _base36(value: int, width: int) -> str:
    digits = []
    for _ in range(width):
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def short_hash(text: str, length: int = HASH_LENGTH) -> str:
    """Return a short, stable base-36 digest of the text."""

    digest = int(hashlib.md5(text.encode("utf-8")).hexdigest(), 16)
    return _base36(digest % (36 ** length), length)


def suggest_key(text: str, namespace: str = "strings") -> str:
    """Suggest a dotted localization key for a piece of UI text."""

    cleaned = NON_ALPHANUMERIC_PATTERN.sub("", text)
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip().lower()
    words = cleaned.split(" ") if cleaned else []

    parts: list[str] = []
    for word in words[:MAX_WORDS]:
        parts.extend(_slug_words(word))
    slug = "_".join(parts)

    if not slug:
        return f"{namespace}.text_{int(time.time() * 1000)}"

    suffix = ""
    if len(words) > MAX_WORDS:
        suffix = f"_{short_hash(text)}"

    if len(slug) + len(suffix) > MAX_SLUG_LENGTH:
        slug = slug[: MAX_SLUG_LENGTH - len(suffix)].rstrip("_")

    return f"{namespace}.{slug}{suffix}"


def namespace_from_file(path: str, fallback: str = "strings") -> str:
    """Derive a key namespace from the file name of a source path."""

    name = PurePosixPath(path.replace("\\", "/")).name
    if "." in name.lstrip("."):
        name = name[: name.rindex(".")]
    slug = "_".join(_slug_words(name))[:MAX_SLUG_LENGTH].rstrip("_")
    return slug or fallback


def nest_key(key: str, value: Any, target: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Store value under a dotted key, creating intermediate mappings."""

    parts = key.split(".")
    current = target
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value
    return target


def flatten_language_keys(data: Dict[str, Any], prefix: str = "") -> Set[str]:
    """Return the dotted leaf keys of a nested locale bundle."""

    keys: Set[str] = set()
    for name, value in data.items():
        path = f"{prefix}.{name}" if prefix else name
        if isinstance(value, dict):
            keys.update(flatten_language_keys(value, path))
        else:
            keys.add(path)
    return keys
