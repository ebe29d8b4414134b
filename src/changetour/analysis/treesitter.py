"""Tree-sitter syntax analysis.

This module extracts, per file:
- Function, method and class definitions with qualified names and line ranges
- Call references whose callee flattens to a dotted name (``self.helper``)
- Top-level variable bindings (used by overall exploration mode)

Grammars are loaded lazily and cached on the analyzer. A file whose grammar
is missing or whose parse raises analyzes to an empty result; nothing here
raises into the tour pipeline.
"""

from __future__ import annotations

import importlib
import re
from dataclasses import dataclass
from typing import Any

import structlog
import tree_sitter

from changetour.analysis.languages import GrammarPack, get_pack_for_path
from changetour.analysis.models import CallReference, Definition, DefinitionKind, FileAnalysis
from changetour.core.ranges import LineRange

log = structlog.get_logger(__name__)

_CLASS_NODES = frozenset({"class_declaration", "class_definition", "abstract_class_declaration"})
_FUNCTION_NODES = frozenset(
    {"function_declaration", "generator_function_declaration", "function_definition"}
)
_METHOD_NODES = frozenset({"method_definition"})
_CALL_NODES = frozenset({"call_expression", "call"})

_FUNCTION_LIKE = frozenset(
    {
        "function",
        "function_expression",
        "function_declaration",
        "generator_function",
        "generator_function_declaration",
        "method_definition",
        "arrow_function",
        "function_definition",
    }
)

_IDENTIFIER_NODES = frozenset(
    {
        "identifier",
        "property_identifier",
        "private_property_identifier",
        "type_identifier",
        "shorthand_property_identifier",
        "field_identifier",
        "this",
    }
)

_CHAIN_NODES = frozenset({"member_expression", "subscript_expression", "attribute"})

_JS_DECLARATION_NODES = frozenset({"lexical_declaration", "variable_declaration"})

_PY_GLOBAL_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)")
_PY_SKIP_RE = re.compile(r"^(def|class|from|import)\s+")


@dataclass(frozen=True, slots=True)
class TopLevelVariable:
    """A module-level variable binding."""

    name: str
    range: LineRange


def _node_range(node: Any) -> LineRange:
    return LineRange.clamped(node.start_point[0] + 1, node.end_point[0] + 1)


def _definition_range(node: Any, start: Any | None = None) -> LineRange:
    """From ``start`` (default the node) to the end of the node's body (or itself)."""
    body = (
        node.child_by_field_name("body")
        or node.child_by_field_name("statement")
        or node.child_by_field_name("block")
    )
    end = (body or node).end_point[0] + 1
    first = start if start is not None else node
    return LineRange.clamped(first.start_point[0] + 1, end)


def _decorated(node: Any) -> Any:
    parent = node.parent
    return parent if parent is not None and parent.type == "decorated_definition" else node


def _declaration(declarator: Any) -> Any:
    # Single-binding declarations start at the keyword
    parent = declarator.parent
    if parent is not None and parent.type in _JS_DECLARATION_NODES and parent.named_child_count == 1:
        return parent
    return declarator


def _statement(assignment: Any) -> Any:
    parent = assignment.parent
    return parent if parent is not None and parent.type == "expression_statement" else assignment


def _text(node: Any | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace").strip()


def flatten_callee(node: Any | None) -> list[str]:
    """Flatten a callee expression into identifier parts.

    ``a.b.c`` -> ``["a", "b", "c"]``; ``make()()`` -> ``["make"]``.
    Anything that is not an identifier chain flattens to ``[]``.
    """
    if node is None:
        return []
    if node.type in _IDENTIFIER_NODES:
        return [_text(node)]
    if node.type in _CHAIN_NODES:
        parts: list[str] = []
        for child in node.children:
            parts.extend(flatten_callee(child))
        return parts
    if node.type in _CALL_NODES:
        return flatten_callee(node.child_by_field_name("function") or node.child(0))
    return []


class _AstVisitor:
    """Pre-order walk collecting definitions and calls.

    Iterative so deeply nested expressions cannot exhaust the interpreter
    stack. Each queued node carries the class names enclosing it and
    whether its nearest enclosing scope is a class body.
    """

    def __init__(self, analysis: FileAnalysis) -> None:
        self._analysis = analysis

    def walk(self, root: Any) -> None:
        stack: list[tuple[Any, tuple[str, ...], bool]] = [(root, (), False)]
        while stack:
            node, classes, in_class = stack.pop()
            child_classes, child_in_class = self._visit(node, classes, in_class)
            for child in reversed(node.children):
                stack.append((child, child_classes, child_in_class))

    def _visit(
        self, node: Any, classes: tuple[str, ...], in_class: bool
    ) -> tuple[tuple[str, ...], bool]:
        node_type = node.type

        if node_type in _CLASS_NODES:
            name = _text(node.child_by_field_name("name"))
            if not name:
                return classes, True
            self._add(name, node, "class", classes, start=_decorated(node))
            return (*classes, name), True

        if node_type in _FUNCTION_NODES:
            name = _text(node.child_by_field_name("name"))
            if name:
                kind: DefinitionKind = "method" if in_class else "function"
                self._add(name, node, kind, classes, start=_decorated(node))
            return classes, False

        if node_type in _METHOD_NODES:
            name = _text(node.child_by_field_name("name"))
            if name:
                self._add(name, node, "method", classes)
            return classes, False

        if node_type == "variable_declarator":
            value = node.child_by_field_name("value")
            if value is not None and value.type in _FUNCTION_LIKE:
                name = _text(node.child_by_field_name("name"))
                if name:
                    self._add(name, value, "function", classes, start=_declaration(node))
        elif node_type == "assignment_expression":
            right = node.child_by_field_name("right")
            if right is not None and right.type in _FUNCTION_LIKE:
                parts = flatten_callee(node.child_by_field_name("left"))
                if parts:
                    self._add(parts[-1], right, "function", classes, start=_statement(node))
        elif node_type in _CALL_NODES:
            self._record_call(node)

        # Bodies and decorators do not end the class scope
        if node_type in ("block", "class_body", "decorated_definition"):
            return classes, in_class
        return classes, False

    def _add(
        self,
        name: str,
        node: Any,
        kind: DefinitionKind,
        classes: tuple[str, ...],
        start: Any | None = None,
    ) -> None:
        qualified = ".".join((*classes, name))
        self._analysis.add_definition(
            Definition(
                name=name,
                qualified_name=qualified,
                range=_definition_range(node, start),
                kind=kind,
            )
        )

    def _record_call(self, node: Any) -> None:
        callee = node.child_by_field_name("function") or node.child(0)
        parts = [p for p in flatten_callee(callee) if p]
        if not parts:
            return
        self._analysis.calls.append(
            CallReference(name=parts[-1], qualified_name=".".join(parts), range=_node_range(node))
        )


class SyntaxAnalyzer:
    """Parses source text and extracts definitions and calls.

    Usage::

        analyzer = SyntaxAnalyzer()
        analysis = analyzer.analyze("src/app.py", text)
        for definition in analysis.definitions:
            ...
    """

    def __init__(self) -> None:
        self._parsers: dict[str, tree_sitter.Parser] = {}

    def _get_parser(self, pack: GrammarPack) -> tree_sitter.Parser:
        """Get or build a parser for a grammar."""
        parser = self._parsers.get(pack.grammar_name)
        if parser is not None:
            return parser

        try:
            mod = importlib.import_module(pack.grammar_module)
            lang_fn = getattr(mod, pack.language_func)
            language = tree_sitter.Language(lang_fn())
        except (ImportError, AttributeError) as err:
            raise ValueError(f"Language not available: {pack.grammar_name}") from err

        parser = tree_sitter.Parser()
        parser.language = language
        self._parsers[pack.grammar_name] = parser
        return parser

    def parse(self, path: str, text: str) -> Any | None:
        """Parse ``text`` with the grammar for ``path``; None when unsupported."""
        pack = get_pack_for_path(path)
        if pack is None:
            return None
        parser = self._get_parser(pack)
        return parser.parse(text.encode("utf-8"))

    def analyze(self, path: str, text: str) -> FileAnalysis:
        """Definitions and calls of ``text``, read as the file at ``path``."""
        pack = get_pack_for_path(path)
        if pack is None:
            return FileAnalysis.empty()

        analysis = FileAnalysis(language=pack.family)
        try:
            tree = self.parse(path, text)
            if tree is None:
                return FileAnalysis.empty(pack.family)
            _AstVisitor(analysis).walk(tree.root_node)
        except Exception:
            log.warning("analysis_failed", path=path, grammar=pack.grammar_name, exc_info=True)
            return FileAnalysis.empty(pack.family)

        log.debug(
            "file_analyzed",
            path=path,
            definitions=len(analysis.definitions),
            calls=len(analysis.calls),
        )
        return analysis

    def top_level_variables(self, path: str, text: str) -> list[TopLevelVariable]:
        """Module-level variable bindings of a file."""
        pack = get_pack_for_path(path)
        if pack is None:
            return []
        if pack.family == "python":
            return python_globals(text)
        try:
            tree = self.parse(path, text)
        except Exception:
            log.warning("analysis_failed", path=path, grammar=pack.grammar_name, exc_info=True)
            return []
        if tree is None:
            return []
        return _js_globals(tree.root_node)


def python_globals(text: str) -> list[TopLevelVariable]:
    """``NAME = ...`` lines at column zero, one line each."""
    found: list[TopLevelVariable] = []
    for index, line in enumerate(text.splitlines(), start=1):
        if not line or line[0].isspace():
            continue
        if _PY_SKIP_RE.match(line):
            continue
        match = _PY_GLOBAL_RE.match(line)
        if match:
            found.append(TopLevelVariable(match.group(1), LineRange(index, index)))
    return found


def _js_globals(root: Any) -> list[TopLevelVariable]:
    found: list[TopLevelVariable] = []
    for statement in root.children:
        declaration = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
        if declaration is None or declaration.type not in _JS_DECLARATION_NODES:
            continue
        for declarator in declaration.children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            found.append(TopLevelVariable(_text(name_node), _node_range(declarator)))
    return found
