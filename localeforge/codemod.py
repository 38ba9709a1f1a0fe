"""Wrap a single literal in a translation call and manage its import."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from tree_sitter import Node

from .errors import (
    InvalidFunctionNameError,
    InvalidInputError,
    SourceParseError,
    StaleLocationError,
)
from .files import read_source, write_source
from .structures import ImportBinding, ImportKind, PatchResult, TranslationTarget
from .syntax import Edit, Literal, LiteralKind, SourcePosition, SourceTree, parse_source

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def build_callee(function_name: str) -> str:
    """Normalise a dotted function path such as `intl.formatMessage`."""

    parts = [part.strip() for part in function_name.split(".")]
    parts = [part for part in parts if part]
    if not parts:
        raise InvalidFunctionNameError("Translation function name is invalid.")
    for part in parts:
        if not IDENTIFIER_PATTERN.match(part):
            raise InvalidFunctionNameError(
                f"Translation function name segment '{part}' is not a valid identifier."
            )
    return ".".join(parts)


def build_call(function_name: str, key: str) -> str:
    """Render `callee("key")`."""

    return f"{build_callee(function_name)}({json.dumps(key, ensure_ascii=False)})"


def locate_literal(source: SourceTree, text: str, line: int, column: int) -> Optional[Literal]:
    """Return the first literal starting at (line, column) whose text matches."""

    expected = text.strip()
    position = SourcePosition(line=line, column=column)
    for literal in source.literals():
        if literal.position != position:
            continue
        if literal.value.strip() != expected:
            continue
        return literal
    return None


def replacement_edit(literal: Literal, call: str) -> Edit:
    """Build the edit that swaps a literal for the call expression."""

    if literal.kind is LiteralKind.JSX_TEXT:
        return Edit(literal.content_start, literal.content_end, f"{{{call}}}")
    if literal.in_jsx_attribute:
        return Edit(literal.start_byte, literal.end_byte, f"{{{call}}}")
    if literal.is_object_key:
        return Edit(literal.start_byte, literal.end_byte, f"[{call}]")
    return Edit(literal.start_byte, literal.end_byte, call)


# --- Import management -----------------------------------------------------


@dataclass(frozen=True)
class ImportStyle:
    """Formatting conventions observed in the file's existing imports."""

    quote: str = '"'
    semicolon: str = ";"
    brace_padding: str = " "
    newline: str = "\n"


def _is_type_only(node: Node) -> bool:
    return any(not child.is_named and child.type in {"type", "typeof"} for child in node.children)


def _child_of_type(node: Node, node_type: str) -> Optional[Node]:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _is_directive(node: Node) -> bool:
    if node.type != "expression_statement":
        return False
    named = node.named_children
    return len(named) == 1 and named[0].type == "string"


def detect_style(source: SourceTree) -> ImportStyle:
    newline = "\r\n" if "\r\n" in source.text else "\n"
    for node in source.root.named_children:
        if node.type != "import_statement":
            continue
        module = node.child_by_field_name("source")
        if module is None:
            continue
        quote = source.node_text(module)[0]
        semicolon = ";" if source.node_text(node).rstrip().endswith(";") else ""
        padding = " "
        clause = _child_of_type(node, "import_clause")
        named = _child_of_type(clause, "named_imports") if clause is not None else None
        if named is not None and named.named_children:
            padding = " " if source.node_text(named).startswith("{ ") else ""
        return ImportStyle(quote=quote, semicolon=semicolon, brace_padding=padding, newline=newline)
    return ImportStyle(newline=newline)


def _specifier_clause(binding: ImportBinding, style: ImportStyle) -> str:
    if binding.kind is ImportKind.DEFAULT:
        return binding.symbol
    pad = style.brace_padding
    return f"{{{pad}{binding.symbol}{pad}}}"


def render_import(binding: ImportBinding, style: ImportStyle) -> str:
    """Render a new single-specifier import declaration (no line break)."""

    source = binding.source.replace("\\", "\\\\").replace(style.quote, f"\\{style.quote}")
    return (
        f"import {_specifier_clause(binding, style)} from "
        f"{style.quote}{source}{style.quote}{style.semicolon}"
    )


def _binds_symbol(source: SourceTree, node: Node, binding: ImportBinding) -> bool:
    clause = _child_of_type(node, "import_clause")
    if clause is None:
        return False
    if binding.kind is ImportKind.DEFAULT:
        default = _child_of_type(clause, "identifier")
        return default is not None and source.node_text(default) == binding.symbol

    named = _child_of_type(clause, "named_imports")
    if named is None:
        return False
    for specifier in named.named_children:
        if specifier.type != "import_specifier" or _is_type_only(specifier):
            continue
        imported = specifier.child_by_field_name("name")
        alias = specifier.child_by_field_name("alias")
        if imported is None or source.node_text(imported) != binding.symbol:
            continue
        if alias is None or source.node_text(alias) == binding.symbol:
            return True
    return False


def _augment(source: SourceTree, node: Node, binding: ImportBinding, style: ImportStyle) -> Optional[Edit]:
    """Add the binding to an existing declaration, or None if it cannot hold it."""

    if _child_of_type(node, "import_require_clause") is not None:
        return None
    clause = _child_of_type(node, "import_clause")
    if clause is None:
        keyword = node.children[0]
        return Edit(keyword.end_byte, keyword.end_byte, f" {_specifier_clause(binding, style)} from")

    default = _child_of_type(clause, "identifier")
    named = _child_of_type(clause, "named_imports")
    namespace = _child_of_type(clause, "namespace_import")

    if binding.kind is ImportKind.DEFAULT:
        if default is not None:
            return None
        return Edit(clause.start_byte, clause.start_byte, f"{binding.symbol}, ")

    if named is not None:
        specifiers = [child for child in named.named_children if child.type == "import_specifier"]
        if not specifiers:
            return Edit(named.start_byte, named.end_byte, _specifier_clause(binding, style))
        last = specifiers[-1]
        return Edit(last.end_byte, last.end_byte, f", {binding.symbol}")
    if namespace is not None:
        return None
    if default is not None:
        return Edit(default.end_byte, default.end_byte, f", {_specifier_clause(binding, style)}")
    return None


def _line_start(node: Node) -> int:
    return node.start_byte - node.start_point[1]


def _insertion_edit(source: SourceTree, text: str, style: ImportStyle) -> Edit:
    """Place a new declaration after the prologue and any detached header comments."""

    children = source.root.named_children
    index = 0
    while index < len(children) and (
        children[index].type == "hash_bang_line" or _is_directive(children[index])
    ):
        index += 1
    while index < len(children) and children[index].type == "comment":
        comment = children[index]
        trailing = index > 0 and comment.start_point[0] == children[index - 1].end_point[0]
        detached = (
            index + 1 < len(children)
            and children[index + 1].start_point[0] - comment.end_point[0] >= 2
        )
        if not (trailing or detached):
            break
        index += 1

    if index >= len(children):
        if index == 0:
            return Edit(0, 0, f"{text}{style.newline}")
        anchor = children[index - 1]
        return Edit(anchor.end_byte, anchor.end_byte, f"{style.newline}{text}")

    target = children[index]
    line_start = _line_start(target)
    if source.slice(line_start, target.start_byte).strip():
        return Edit(target.start_byte, target.start_byte, f"{text}{style.newline}")
    return Edit(line_start, line_start, f"{text}{style.newline}")


def ensure_import(source: SourceTree, binding: ImportBinding) -> Optional[Edit]:
    """Return the edit that guarantees the binding, or None when already present."""

    matching: List[Node] = []
    for node in source.root.named_children:
        if node.type != "import_statement" or _is_type_only(node):
            continue
        module = node.child_by_field_name("source")
        if module is None or source.string_value(module) != binding.source:
            continue
        matching.append(node)

    if any(_binds_symbol(source, node, binding) for node in matching):
        return None

    style = detect_style(source)
    for node in matching:
        edit = _augment(source, node, binding, style)
        if edit is not None:
            return edit

    declaration = render_import(binding, style)
    if matching:
        anchor = matching[0]
        return Edit(anchor.end_byte, anchor.end_byte, f"{style.newline}{declaration}")
    return _insertion_edit(source, declaration, style)


# --- Patcher ---------------------------------------------------------------


def _validate(target: TranslationTarget) -> None:
    if not target.file_path or not str(target.file_path).strip():
        raise InvalidInputError("File path is required.")
    if not target.key or not target.key.strip():
        raise InvalidInputError("Translation key is required.")
    if not target.function_name or not target.function_name.strip():
        raise InvalidInputError("Translation function name is required.")
    if not target.text or not target.text.strip():
        raise InvalidInputError("Target text is required.")


class Patcher:
    """Applies translation targets to files under an optional project root."""

    def __init__(self, *, project_root: Optional[Path | str] = None) -> None:
        self.project_root = Path(project_root).expanduser() if project_root else None

    def resolve_path(self, file_path: str) -> Path:
        path = Path(file_path).expanduser()
        if path.is_absolute():
            return path
        if self.project_root is None:
            return path.resolve()
        return (self.project_root / path).resolve()

    def render(self, target: TranslationTarget) -> tuple[Path, str, str, bool]:
        """Compute the patched source without writing it.

        Returns the resolved path, the original text, the new text, and
        whether an import edit was made.
        """

        _validate(target)
        call = build_call(target.function_name, target.key.strip())

        path = self.resolve_path(str(target.file_path))
        try:
            original = read_source(path)
        except UnicodeDecodeError as exc:
            raise SourceParseError(
                f"{path} is not valid UTF-8 text.", path=str(path)
            ) from exc
        source = parse_source(original, path=str(path))

        literal = locate_literal(source, target.text, target.line, target.column)
        if literal is None:
            raise StaleLocationError(
                f"Unable to locate '{target.text.strip()}' at line {target.line}, "
                f"column {target.column} of {path}. Try rescanning to refresh line numbers."
            )

        edits = [replacement_edit(literal, call)]
        import_changed = False
        binding = target.binding()
        if binding is not None:
            import_edit = ensure_import(source, binding)
            if import_edit is not None:
                edits.append(import_edit)
                import_changed = True

        return path, original, source.apply_edits(edits), import_changed

    def apply(self, target: TranslationTarget) -> PatchResult:
        path, _, updated, import_changed = self.render(target)
        write_source(path, updated)
        logger.info(
            "Wrapped '%s' at %s:%d:%d with key %s",
            target.text.strip(),
            path,
            target.line,
            target.column,
            target.key.strip(),
        )
        return PatchResult(path=path, import_changed=import_changed)


def apply_patch(target: TranslationTarget, project_root: Optional[Path | str] = None) -> PatchResult:
    """Wrap the target literal in a translation call and write the file."""

    return Patcher(project_root=project_root).apply(target)
