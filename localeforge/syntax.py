"""Tree-sitter backed parsing and byte-exact source rewriting.

The adapter parses ECMAScript, TypeScript and JSX source into a concrete
syntax tree and exposes the few views the scanner and the codemod need:
literal nodes tagged by shape, dotted callee names, and 1-based line /
0-based column positions. Source is re-emitted by splicing replacement text
into the original bytes, so anything outside an edit is preserved exactly.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import PurePath
from typing import Iterator, List, NamedTuple, Optional, Sequence

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

from .errors import LocaleForgeError, SourceParseError

TYPESCRIPT_SUFFIXES = {".ts", ".mts", ".cts"}

JSX_TEXT_TYPES = {"jsx_text", "html_character_reference"}

# Strings in these positions are module specifiers or types, never UI text.
# `export_statement` only holds a specifier in its `source` field.
NON_VALUE_STRING_PARENTS = {
    "import_statement",
    "import_require_clause",
    "external_module_reference",
    "literal_type",
    "module",
    "ambient_declaration",
}

ESCAPE_PATTERN = re.compile(
    r"\\(?:u\{(?P<code>[0-9A-Fa-f]+)\}"
    r"|u(?P<u4>[0-9A-Fa-f]{4})"
    r"|x(?P<x2>[0-9A-Fa-f]{2})"
    r"|(?P<newline>\r\n|[\r\n\u2028\u2029])"
    r"|(?P<char>[\s\S]))"
)
SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class LiteralKind(Enum):
    """Shapes of literal text the scanner and codemod understand."""

    JSX_TEXT = "jsx_text"
    STRING = "string"
    TEMPLATE = "template"


@dataclass(frozen=True)
class SourcePosition:
    line: int
    column: int


@dataclass(frozen=True)
class Literal:
    """A literal node with its decoded value and replaceable byte span."""

    kind: LiteralKind
    value: str
    position: SourcePosition
    start_byte: int
    end_byte: int
    content_start: int
    content_end: int
    in_jsx_attribute: bool = False
    is_object_key: bool = False


class Edit(NamedTuple):
    start: int
    end: int
    replacement: str


def decode_escapes(raw: str) -> str:
    """Decode ECMAScript string escape sequences."""

    def _replace(match: re.Match[str]) -> str:
        if match.group("code") is not None:
            return chr(int(match.group("code"), 16))
        if match.group("u4") is not None:
            return chr(int(match.group("u4"), 16))
        if match.group("x2") is not None:
            return chr(int(match.group("x2"), 16))
        if match.group("newline") is not None:
            return ""
        char = match.group("char")
        return SIMPLE_ESCAPES.get(char, char)

    return ESCAPE_PATTERN.sub(_replace, raw)


@lru_cache(maxsize=None)
def _language(dialect: str) -> Language:
    if dialect == "typescript":
        return Language(tstypescript.language_typescript())
    return Language(tstypescript.language_tsx())


def dialect_for(path: Optional[str]) -> str:
    """Pick the grammar for a file name; JSX-capable unless plain TypeScript."""

    if path and PurePath(path).suffix.lower() in TYPESCRIPT_SUFFIXES:
        return "typescript"
    return "tsx"


def _is_bare_ampersand(node: Node, data: bytes) -> bool:
    """True for the ERROR node tree-sitter emits for a bare `&` in JSX text."""

    return (
        node.is_error
        and node.parent is not None
        and node.parent.type == "jsx_element"
        and data[node.start_byte:node.end_byte].startswith(b"&")
    )


def _first_error(root: Node, data: bytes) -> Optional[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        if _is_bare_ampersand(node, data):
            continue
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


class SourceTree:
    """A parsed source file plus helpers to inspect and rewrite it."""

    def __init__(self, text: str, *, path: Optional[str] = None) -> None:
        self.text = text
        self.path = path
        self.data = text.encode("utf-8")
        parser = Parser(_language(dialect_for(path)))
        self.tree = parser.parse(self.data)
        self.root = self.tree.root_node
        self._lines: Optional[List[str]] = None

    # --- Positions ---------------------------------------------------------

    def position(self, node: Node) -> SourcePosition:
        row, byte_column = node.start_point
        line_start = node.start_byte - byte_column
        column = len(self.data[line_start:node.start_byte].decode("utf-8", "replace"))
        return SourcePosition(line=row + 1, column=column)

    def line_text(self, line: int) -> str:
        if self._lines is None:
            self._lines = self.text.split("\n")
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return ""

    def node_text(self, node: Node) -> str:
        return self.data[node.start_byte:node.end_byte].decode("utf-8")

    def slice(self, start: int, end: int) -> str:
        return self.data[start:end].decode("utf-8")

    # --- Traversal ---------------------------------------------------------

    def walk(self) -> Iterator[Node]:
        """Yield every node in document (pre-)order."""

        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def literals(self) -> Iterator[Literal]:
        """Yield JSX text runs, string literals and plain template literals."""

        for node in self.walk():
            literal = self.literal_at(node)
            if literal is not None:
                yield literal

    def literal_at(self, node: Node) -> Optional[Literal]:
        if node.type == "string":
            return self._string_literal(node)
        if node.type == "template_string":
            return self._template_literal(node)
        return self.jsx_text_at(node)

    def is_jsx_text(self, node: Node) -> bool:
        """True for a piece of element text: text, entity or bare `&`."""

        if node.parent is None or node.parent.type != "jsx_element":
            return False
        return node.type in JSX_TEXT_TYPES or _is_bare_ampersand(node, self.data)

    def jsx_text_at(self, node: Node) -> Optional[Literal]:
        """Return the text run starting at node, or None if node does not start one."""

        if not self.is_jsx_text(node):
            return None
        previous = node.prev_sibling
        if previous is not None and self.is_jsx_text(previous):
            return None
        return self._jsx_text_run(node)

    def _jsx_text_run(self, first: Node) -> Literal:
        last = first
        sibling = first.next_sibling
        while sibling is not None and self.is_jsx_text(sibling):
            last = sibling
            sibling = sibling.next_sibling

        raw = self.slice(first.start_byte, last.end_byte)
        stripped = raw.strip()
        leading = raw[: len(raw) - len(raw.lstrip())]
        content_start = first.start_byte + len(leading.encode("utf-8"))
        content_end = content_start + len(stripped.encode("utf-8"))
        return Literal(
            kind=LiteralKind.JSX_TEXT,
            value=html.unescape(raw),
            position=self.position(first),
            start_byte=first.start_byte,
            end_byte=last.end_byte,
            content_start=content_start,
            content_end=content_end,
        )

    def _string_literal(self, node: Node) -> Optional[Literal]:
        parent = node.parent
        if parent is not None and parent.type in NON_VALUE_STRING_PARENTS:
            return None
        if (
            parent is not None
            and parent.type == "export_statement"
            and parent.child_by_field_name("source") == node
        ):
            return None
        in_attribute = parent is not None and parent.type == "jsx_attribute"
        is_key = (
            parent is not None
            and parent.type == "pair"
            and parent.child_by_field_name("key") == node
        )
        return Literal(
            kind=LiteralKind.STRING,
            value=self.string_value(node),
            position=self.position(node),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            content_start=node.start_byte,
            content_end=node.end_byte,
            in_jsx_attribute=in_attribute,
            is_object_key=is_key,
        )

    def _template_literal(self, node: Node) -> Optional[Literal]:
        value = self.template_value(node)
        if value is None:
            return None
        return Literal(
            kind=LiteralKind.TEMPLATE,
            value=value,
            position=self.position(node),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            content_start=node.start_byte,
            content_end=node.end_byte,
        )

    # --- Values ------------------------------------------------------------

    def string_value(self, node: Node) -> str:
        """Return the value of a `string` node."""

        raw = self.node_text(node)[1:-1]
        parent = node.parent
        if parent is not None and parent.type == "jsx_attribute":
            return html.unescape(raw)
        return decode_escapes(raw)

    def template_value(self, node: Node) -> Optional[str]:
        """Return the cooked value of a template literal without substitutions."""

        if any(child.type == "template_substitution" for child in node.children):
            return None
        raw = self.node_text(node)[1:-1].replace("\r\n", "\n")
        return decode_escapes(raw)

    def dotted_name(self, node: Optional[Node]) -> Optional[str]:
        """Render `a`, `a.b`, `this.a.b` callee shapes as a dotted name."""

        if node is None:
            return None
        if node.type in {"identifier", "property_identifier", "this"}:
            return self.node_text(node)
        if node.type == "member_expression":
            obj = self.dotted_name(node.child_by_field_name("object"))
            prop = node.child_by_field_name("property")
            if obj is None or prop is None or prop.type != "property_identifier":
                return None
            return f"{obj}.{self.node_text(prop)}"
        return None

    # --- Rewriting ---------------------------------------------------------

    def apply_edits(self, edits: Sequence[Edit]) -> str:
        """Splice edits into the original source and return the new text."""

        ordered = sorted(edits, key=lambda edit: (edit.start, edit.end))
        for before, after in zip(ordered, ordered[1:]):
            if after.start < before.end:
                raise LocaleForgeError("Overlapping source edits cannot be applied.")

        output = bytearray()
        cursor = 0
        for edit in ordered:
            output += self.data[cursor:edit.start]
            output += edit.replacement.encode("utf-8")
            cursor = edit.end
        output += self.data[cursor:]
        return output.decode("utf-8")


def parse_source(text: str, path: Optional[str] = None) -> SourceTree:
    """Parse source text, raising SourceParseError on syntax errors."""

    source = SourceTree(text, path=path)
    error = _first_error(source.root, source.data)
    if error is not None:
        position = source.position(error)
        what = "Missing token" if error.is_missing else "Syntax error"
        raise SourceParseError(
            f"{what} at line {position.line}, column {position.column}.",
            path=path,
            line=position.line,
            column=position.column,
        )
    return source
