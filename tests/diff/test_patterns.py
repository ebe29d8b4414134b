"""Tests for text heuristics used by the splitter."""

from __future__ import annotations

import pytest

from changetour.core.ranges import LineRange
from changetour.diff.patterns import (
    detect_candidates,
    is_meaningful,
    python_enclosing_by_indent,
    scan_extent,
)


class TestDetectCandidates:
    """Signature regexes per language family."""

    def test_python(self) -> None:
        added = [
            (1, "def foo(x):"),
            (2, "    return x"),
            (3, "class Bar(Base):"),
            (4, "MAX = 3"),
            (5, "if a == b:"),
            (6, "async def go():"),
        ]
        found = [(c.name, c.kind, c.line, c.is_variable) for c in detect_candidates("python", added)]
        assert found == [
            ("foo", "function", 1, False),
            ("Bar", "class", 3, False),
            ("MAX", "variable", 4, True),
            ("go", "function", 6, False),
        ]

    def test_javascript(self) -> None:
        added = [
            (1, "export default async function run() {"),
            (2, "export const handler = async (req) => {"),
            (3, "const LIMIT = 10;"),
            (4, "export abstract class Base {"),
            (5, "const same = a === b;"),
        ]
        found = [(c.name, c.kind, c.is_binding) for c in detect_candidates("javascript", added)]
        assert found == [
            ("run", "function", False),
            ("handler", "function", True),
            ("LIMIT", "variable", True),
            ("Base", "class", False),
            ("same", "variable", True),
        ]

    def test_typescript_only_kinds(self) -> None:
        added = [
            (1, "export interface Props {"),
            (2, "type Id = string;"),
            (3, "export const enum Color {"),
        ]
        assert [(c.name, c.kind) for c in detect_candidates("typescript", added)] == [
            ("Props", "interface"),
            ("Id", "type"),
            ("Color", "enum"),
        ]
        # Plain JS does not know these declarations
        assert detect_candidates("javascript", [(1, "export interface Props {")]) == []

    def test_unknown_language(self) -> None:
        assert detect_candidates(None, [(1, "def foo():")]) == []


class TestIsMeaningful:
    @pytest.mark.parametrize(
        ("text", "language", "expected"),
        [
            ("# comment", "python", False),
            ("// comment", "javascript", False),
            (" * doc line", "typescript", False),
            ("   ", "python", False),
            ("x = 1", "python", True),
            ("# heading", None, False),
            ("call()", None, True),
        ],
    )
    def test_classification(self, text: str, language: str | None, expected: bool) -> None:
        assert is_meaningful(text, language) is expected  # type: ignore[arg-type]


def _numbered(*lines: str) -> dict[int, str]:
    return dict(enumerate(lines, start=1))


class TestScanExtent:
    """Declarations widen to the end of their expression."""

    def test_bracketed_literal(self) -> None:
        lines = _numbered("CONFIG = {", "    'a': 1,", "}", "x = 2")
        assert scan_extent(lines, 1, "python") == LineRange(1, 3)

    def test_triple_quoted_string(self) -> None:
        lines = _numbered('DOC = """', "text (", '"""', "y = 1")
        assert scan_extent(lines, 1, "python") == LineRange(1, 3)

    def test_backslash_continuation(self) -> None:
        lines = _numbered("TOTAL = 1 + \\", "    2", "z = 3")
        assert scan_extent(lines, 1, "python") == LineRange(1, 2)

    def test_template_literal(self) -> None:
        lines = _numbered("const t = `a (", "b`;", "next();")
        assert scan_extent(lines, 1, "javascript") == LineRange(1, 2)

    def test_brackets_in_strings_and_comments_ignored(self) -> None:
        assert scan_extent(_numbered("S = '('", "next"), 1, "python") == LineRange(1, 1)
        assert scan_extent(_numbered("X = 1  # (", "next"), 1, "python") == LineRange(1, 1)

    def test_unclosed_stops_at_last_known_line(self) -> None:
        lines = {4: "items = [", 5: "    1,"}
        assert scan_extent(lines, 4, "python") == LineRange(4, 5)


class TestPythonEnclosingByIndent:
    """Indentation fallback for enclosing definitions."""

    LINES = [
        "class A:",
        "    def m(self):",
        "        if x:",
        "            y = 1",
        "        return y",
        "",
        "def f():",
        "    pass",
    ]

    def test_method_inside_class(self) -> None:
        found = python_enclosing_by_indent(self.LINES, 4)
        assert found is not None
        assert (found.name, found.qualified_name, found.kind) == ("m", "A.m", "method")
        assert found.range == LineRange(2, 5)

    def test_top_level_function(self) -> None:
        found = python_enclosing_by_indent(self.LINES, 8)
        assert found is not None
        assert (found.qualified_name, found.kind, found.range) == ("f", "function", LineRange(7, 8))

    @pytest.mark.parametrize("line", [6, 7, 0, 99])
    def test_no_enclosing(self, line: int) -> None:
        assert python_enclosing_by_indent(self.LINES, line) is None
