"""Text heuristics used by the unit splitter.

- Definition signature detection on added lines (regex pass)
- Extent scanning for literals and declarations (bracket balance)
- Comment / blank line detection
- Indentation-based enclosing definition lookup for Python

These work on plain text so they still apply when a file fails to parse.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from changetour.analysis.languages import LanguageFamily
from changetour.core.ranges import LineRange

# =============================================================================
# Signature patterns
# =============================================================================

_JS_FUNCTION_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)"
)
_JS_CLASS_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)"
)
_JS_BINDING_RE = re.compile(
    r"^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?=(?![=>])\s*(.*)$"
)
_TS_INTERFACE_RE = re.compile(r"^\s*(?:export\s+)?(?:declare\s+)?interface\s+([A-Za-z_$][\w$]*)")
_TS_TYPE_RE = re.compile(
    r"^\s*(?:export\s+)?(?:declare\s+)?type\s+([A-Za-z_$][\w$]*)\s*(?:<[^>]*>)?\s*="
)
_TS_ENUM_RE = re.compile(
    r"^\s*(?:export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+([A-Za-z_$][\w$]*)"
)
_ARROW_RE = re.compile(r"=>|\bfunction\b")

_PY_DEF_RE = re.compile(r"^(\s*)(?:async\s+)?def\s+([A-Za-z_]\w*)")
_PY_CLASS_RE = re.compile(r"^(\s*)class\s+([A-Za-z_]\w*)")
_PY_GLOBAL_RE = re.compile(r"^([A-Za-z_]\w*)\s*(?::[^=]+)?=(?!=)")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())


@dataclass(frozen=True, slots=True)
class DefinitionCandidate:
    """A line that looks like the start of a definition."""

    name: str
    kind: str  # function, class, interface, type, enum, variable
    line: int
    is_variable: bool = False
    is_binding: bool = False  # const/let/var NAME = ...


def detect_candidates(
    language: LanguageFamily | None, added_lines: Sequence[tuple[int, str]]
) -> list[DefinitionCandidate]:
    """Definition-looking added lines, in line order."""
    if language is None:
        return []
    found: list[DefinitionCandidate] = []
    for line_no, text in added_lines:
        candidate = (
            _detect_python(text, line_no) if language == "python" else _detect_js(text, line_no, language)
        )
        if candidate is not None:
            found.append(candidate)
    return found


def _detect_python(text: str, line_no: int) -> DefinitionCandidate | None:
    if m := _PY_DEF_RE.match(text):
        return DefinitionCandidate(m.group(2), "function", line_no)
    if m := _PY_CLASS_RE.match(text):
        return DefinitionCandidate(m.group(2), "class", line_no)
    if m := _PY_GLOBAL_RE.match(text):
        return DefinitionCandidate(m.group(1), "variable", line_no, is_variable=True)
    return None


def _detect_js(text: str, line_no: int, language: LanguageFamily) -> DefinitionCandidate | None:
    if m := _JS_FUNCTION_RE.match(text):
        return DefinitionCandidate(m.group(1), "function", line_no)
    if m := _JS_CLASS_RE.match(text):
        return DefinitionCandidate(m.group(1), "class", line_no)
    if language == "typescript":
        if m := _TS_INTERFACE_RE.match(text):
            return DefinitionCandidate(m.group(1), "interface", line_no)
        if m := _TS_TYPE_RE.match(text):
            return DefinitionCandidate(m.group(1), "type", line_no)
        if m := _TS_ENUM_RE.match(text):
            return DefinitionCandidate(m.group(1), "enum", line_no)
    if m := _JS_BINDING_RE.match(text):
        if _ARROW_RE.search(m.group(2)):
            return DefinitionCandidate(m.group(1), "function", line_no, is_binding=True)
        return DefinitionCandidate(
            m.group(1), "variable", line_no, is_variable=True, is_binding=True
        )
    return None


# =============================================================================
# Line classification
# =============================================================================


def is_meaningful(text: str, language: LanguageFamily | None) -> bool:
    """Non-blank and not a comment-only line."""
    stripped = text.strip()
    if not stripped:
        return False
    if language == "python":
        return not stripped.startswith("#")
    if language in ("javascript", "typescript"):
        return not stripped.startswith(("//", "/*", "*"))
    return not stripped.startswith(("#", "//", "/*", "*"))


# =============================================================================
# Extent scanning
# =============================================================================


def scan_extent(
    lines: Mapping[int, str], start_line: int, language: LanguageFamily | None
) -> LineRange:
    """Widen a declaration starting at ``start_line`` to its full expression.

    Tracks bracket depth outside quoted strings, Python triple-quoted strings
    and JS template literals, and Python trailing-backslash continuation.
    The extent ends on the first line where everything is closed again.
    """
    comment = "#" if language == "python" else "//"
    depth = 0
    open_string: str | None = None  # multi-line delimiter: ''' """ or `
    line_no = start_line
    end = start_line
    last = max(lines) if lines else start_line

    while line_no <= last:
        text = lines.get(line_no)
        if text is None:
            break
        end = line_no
        i = 0
        n = len(text)
        while i < n:
            if open_string is not None:
                close = text.find(open_string, i)
                if close < 0:
                    i = n
                    break
                i = close + len(open_string)
                open_string = None
                continue
            ch = text[i]
            if text.startswith(comment, i):
                break
            if language == "python" and text.startswith(('"""', "'''"), i):
                open_string = text[i : i + 3]
                i += 3
                continue
            if ch == "`" and language != "python":
                open_string = "`"
                i += 1
                continue
            if ch in ("'", '"'):
                i = _skip_quoted(text, i)
                continue
            if ch in _OPENERS:
                depth += 1
            elif ch in _CLOSERS:
                depth = max(0, depth - 1)
            i += 1

        continued = language == "python" and text.rstrip().endswith("\\")
        if depth == 0 and open_string is None and not continued:
            break
        line_no += 1

    return LineRange.clamped(start_line, end)


def _skip_quoted(text: str, start: int) -> int:
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


# =============================================================================
# Python indentation lookup
# =============================================================================


@dataclass(frozen=True, slots=True)
class IndentDefinition:
    """A definition found by indentation scanning."""

    name: str
    qualified_name: str
    kind: str  # function, method, class
    range: LineRange


def _indent(text: str) -> int:
    return len(text) - len(text.lstrip())


def python_enclosing_by_indent(lines: Sequence[str], line: int) -> IndentDefinition | None:
    """Nearest ``def``/``class`` whose body indentation contains ``line``.

    Walks upward to a header with a smaller indent, then downward to where
    indentation returns to the header's level. Enclosing classes above the
    header qualify its name.
    """
    if not 1 <= line <= len(lines) or not lines[line - 1].strip():
        return None

    header = _header_above(lines, line, _indent(lines[line - 1]))
    if header is None:
        return None
    header_line, header_indent, name, is_class = header

    end = header_line
    for index in range(header_line + 1, len(lines) + 1):
        text = lines[index - 1]
        if not text.strip():
            continue
        if _indent(text) <= header_indent:
            break
        end = index
    if end < line:
        return None

    containers: list[str] = []
    kind = "class" if is_class else "function"
    cursor_line, cursor_indent = header_line, header_indent
    while cursor_indent > 0:
        outer = _header_above(lines, cursor_line, cursor_indent)
        if outer is None:
            break
        outer_line, outer_indent, outer_name, outer_is_class = outer
        if outer_is_class:
            containers.insert(0, outer_name)
            if kind == "function" and cursor_line == header_line:
                kind = "method"
        cursor_line, cursor_indent = outer_line, outer_indent

    qualified = ".".join((*containers, name))
    return IndentDefinition(name, qualified, kind, LineRange.clamped(header_line, end))


def _header_above(
    lines: Sequence[str], line: int, indent: int
) -> tuple[int, int, str, bool] | None:
    if indent == 0:
        return None
    for index in range(line - 1, 0, -1):
        text = lines[index - 1]
        if not text.strip():
            continue
        text_indent = _indent(text)
        if text_indent >= indent:
            continue
        if m := _PY_DEF_RE.match(text):
            return index, text_indent, m.group(2), False
        if m := _PY_CLASS_RE.match(text):
            return index, text_indent, m.group(2), True
        # A less-indented statement that is not a header (if/for/with) keeps
        # narrowing the search
        indent = text_indent
        if indent == 0:
            return None
    return None
