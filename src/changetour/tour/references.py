"""Reference collection and resolution shared by the graph and the orderer.

A unit references a name through its related calls, the identifiers on its
added lines, and (for operations) the definitions introduced beside it.
Names resolve against definition/global entries in this order:

1. same file, qualified name
2. same file, label
3. label anywhere, when exactly one entry carries it
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from changetour.diff.models import ChangeUnit, ElementKind
from changetour.tour.models import EdgeType, NodeKind, TourStep

_IDENTIFIER_RE = re.compile(r"\b([A-Za-z_][A-Za-z0-9_]*)\b")
_STRING_RE = re.compile(r"""(["'])(?:\\.|(?!\1).)*\1""")

_IGNORED_IDENTIFIERS = frozenset(
    {
        "if",
        "else",
        "elif",
        "for",
        "while",
        "return",
        "const",
        "let",
        "var",
        "function",
        "class",
        "def",
        "async",
        "await",
        "new",
        "import",
        "from",
        "export",
        "as",
        "this",
        "self",
        "true",
        "false",
        "True",
        "False",
        "None",
        "null",
        "undefined",
        "not",
        "and",
        "or",
        "in",
        "is",
        "pass",
    }
)

_RECEIVERS = frozenset({"self", "this"})


@dataclass(frozen=True, slots=True)
class Reference:
    name: str
    qualified_name: str | None = None


def identifier_names(diff_text: str) -> list[str]:
    """Identifiers on added lines, string literals blanked out."""
    names: dict[str, None] = {}
    for line in diff_text.splitlines():
        if not line.startswith("+"):
            continue
        text = _STRING_RE.sub(" ", line[1:])
        for match in _IDENTIFIER_RE.finditer(text):
            name = match.group(1)
            if name not in _IGNORED_IDENTIFIERS:
                names.setdefault(name, None)
    return list(names)


def collect_references(unit: ChangeUnit) -> list[Reference]:
    """Related calls first (with their dotted parts), then added-line identifiers."""
    refs: dict[Reference, None] = {}
    for call in unit.related_calls:
        refs.setdefault(Reference(call.name, call.qualified_name), None)
        if call.qualified_name and call.qualified_name != call.name:
            for part in call.qualified_name.split("."):
                if part and part not in _RECEIVERS:
                    refs.setdefault(Reference(part), None)
    for name in identifier_names(unit.diff_text):
        refs.setdefault(Reference(name), None)
    return list(refs)


@dataclass
class RefEntry:
    """One resolvable or referencing item: a graph node or an order node."""

    key: str
    kind: NodeKind
    file_path: str
    label: str
    qualified_name: str | None = None
    element_kind: ElementKind | None = None
    container_name: str | None = None
    is_overall: bool = False
    units: list[ChangeUnit] = field(default_factory=list)

    @property
    def resolvable(self) -> bool:
        return self.element_kind is not None or self.kind in ("definition", "global")


def unit_kind(unit: ChangeUnit) -> NodeKind:
    return unit.change_kind or "unknown"


def unit_label(unit: ChangeUnit) -> str:
    kind = unit_kind(unit)
    if kind == "definition":
        return unit.definition_name or unit.symbol_name or "Definition"
    if kind == "global":
        return unit.definition_name or unit.symbol_name or "Global"
    return unit.symbol_name or "Operation"


def entry_for_unit(key: str, unit: ChangeUnit) -> RefEntry:
    kind = unit_kind(unit)
    return RefEntry(
        key=key,
        kind=kind,
        file_path=unit.file_path,
        label=unit_label(unit),
        qualified_name=unit.qualified_name,
        element_kind=unit.element_kind or ("global" if kind == "global" else None),
        container_name=unit.container_name,
        is_overall=unit.is_overall,
        units=[unit],
    )


def merge_key(step: TourStep) -> str:
    """Operation steps with the same key collapse into one graph node."""
    unit = step.unit
    assert unit is not None
    if unit_kind(unit) != "operation":
        return f"step:{step.id}"
    if unit.segment_id:
        return f"segment:{unit.segment_id}"
    name = unit.qualified_name or unit.symbol_name
    if name:
        return f"name:{unit.file_path}|{name}"
    return f"step:{step.id}"


class ReferenceIndex:
    """Definition/global entries indexed three ways."""

    def __init__(self, entries: Iterable[RefEntry]) -> None:
        self._by_qualified: dict[tuple[str, str], list[RefEntry]] = {}
        self._by_label: dict[tuple[str, str], list[RefEntry]] = {}
        self._by_label_global: dict[str, list[RefEntry]] = {}
        self._classes: dict[tuple[str, str], list[RefEntry]] = {}
        for entry in entries:
            if not entry.resolvable:
                continue
            self._by_label.setdefault((entry.file_path, entry.label), []).append(entry)
            self._by_label_global.setdefault(entry.label, []).append(entry)
            if entry.qualified_name:
                self._by_qualified.setdefault((entry.file_path, entry.qualified_name), []).append(
                    entry
                )
            if entry.element_kind == "class":
                self._classes.setdefault((entry.file_path, entry.label), []).append(entry)

    def resolve(self, file_path: str, name: str, qualified_name: str | None = None) -> list[RefEntry]:
        if qualified_name:
            found = self._by_qualified.get((file_path, qualified_name))
            if found:
                return found
        found = self._by_label.get((file_path, name))
        if found:
            return found
        everywhere = self._by_label_global.get(name, [])
        return everywhere if len(everywhere) == 1 else []

    def classes(self, file_path: str, name: str) -> list[RefEntry]:
        return self._classes.get((file_path, name), [])


def build_edges(entries: Sequence[RefEntry]) -> list[tuple[str, str, EdgeType]]:
    """Directed edges ``(dependency, dependent, type)``, deduplicated, no self-edges."""
    index = ReferenceIndex(entries)
    edges: dict[tuple[str, str, EdgeType], None] = {}

    def link(source: RefEntry, target: RefEntry, edge_type: EdgeType) -> None:
        if source.key != target.key:
            edges.setdefault((source.key, target.key, edge_type), None)

    for entry in entries:
        if entry.kind == "operation":
            for unit in entry.units:
                for introduced in unit.introduced_definitions:
                    for found in index.resolve(unit.file_path, introduced.name):
                        link(found, entry, "op-to-def")
                for ref in collect_references(unit):
                    for found in index.resolve(unit.file_path, ref.name, ref.qualified_name):
                        link(found, entry, "op-to-def")
            continue

        references_definitions = entry.kind in ("definition", "global") or (
            entry.is_overall and any(u.related_calls for u in entry.units)
        )
        if references_definitions:
            for unit in entry.units:
                for ref in collect_references(unit):
                    for found in index.resolve(unit.file_path, ref.name, ref.qualified_name):
                        link(found, entry, "def-to-def")

        if entry.is_overall and entry.element_kind == "method" and entry.container_name:
            for cls in index.classes(entry.file_path, entry.container_name.rpartition(".")[2]):
                link(entry, cls, "def-to-def")

    return list(edges)
