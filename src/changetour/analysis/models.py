"""Per-file syntax facts: definitions and call references."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from changetour.analysis.languages import LanguageFamily
from changetour.core.ranges import LineRange

DefinitionKind = Literal["function", "method", "class"]


@dataclass(frozen=True, slots=True)
class Definition:
    """A named function, method or class.

    ``qualified_name`` joins enclosing class names with ``.``
    (``Parser.parse``); ``range`` runs from the declaration line to the end
    of the body.
    """

    name: str
    qualified_name: str
    range: LineRange
    kind: DefinitionKind

    @property
    def container_name(self) -> str | None:
        head, sep, _ = self.qualified_name.rpartition(".")
        return head if sep else None


@dataclass(frozen=True, slots=True)
class CallReference:
    """A call site whose callee flattened to identifier parts."""

    name: str
    qualified_name: str | None
    range: LineRange


@dataclass
class FileAnalysis:
    """Definitions and calls of one file, with lookup tables."""

    language: LanguageFamily | None = None
    definitions: list[Definition] = field(default_factory=list)
    calls: list[CallReference] = field(default_factory=list)
    definitions_by_name: dict[str, list[Definition]] = field(default_factory=dict)
    definitions_by_qualified_name: dict[str, list[Definition]] = field(default_factory=dict)

    @classmethod
    def empty(cls, language: LanguageFamily | None = None) -> FileAnalysis:
        return cls(language=language)

    def add_definition(self, definition: Definition) -> None:
        self.definitions.append(definition)
        self.definitions_by_name.setdefault(definition.name, []).append(definition)
        self.definitions_by_qualified_name.setdefault(definition.qualified_name, []).append(
            definition
        )

    def resolve_call(self, name: str, qualified_name: str | None) -> Definition | None:
        """First definition matching the qualified name, else the simple name."""
        if qualified_name:
            found = self.definitions_by_qualified_name.get(qualified_name)
            if found:
                return found[0]
        found = self.definitions_by_name.get(name)
        return found[0] if found else None

    def enclosing_definition(self, line: int) -> Definition | None:
        """Innermost definition whose range contains ``line``."""
        best: Definition | None = None
        for definition in self.definitions:
            if not definition.range.contains_line(line):
                continue
            if best is None or definition.range.span < best.range.span:
                best = definition
        return best

    def is_nested(self, line: int) -> bool:
        """True when ``line`` sits inside any known definition."""
        return any(d.range.contains_line(line) for d in self.definitions)
