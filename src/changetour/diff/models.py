"""Data models for change units.

All models are plain dataclasses. ``ChangeUnit`` is mutable because the
background and grouping passes annotate units in place; the small value
types are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from changetour.core.ranges import LineRange

ChangeKind = Literal["definition", "operation", "global"]
ChangeType = Literal["add", "remove", "modify", "unknown"]
ElementKind = Literal["function", "method", "class", "global"]
HunkLineKind = Literal["header", "context", "add", "remove", "meta"]


@dataclass(frozen=True, slots=True)
class RelatedCall:
    """A call inside a unit that resolves to a known definition."""

    name: str
    qualified_name: str | None
    range: LineRange

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "qualifiedName": self.qualified_name, "range": self.range.to_dict()}


@dataclass(frozen=True, slots=True)
class IntroducedDefinition:
    """A definition declared alongside an operational edit."""

    name: str
    type: str
    range: LineRange

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "range": self.range.to_dict()}


@dataclass(frozen=True, slots=True)
class CodeRegion:
    """A location without diff content (background context, overall mode)."""

    file_path: str
    range: LineRange
    label: str | None = None
    kind: Literal["region"] = "region"

    @property
    def region_key(self) -> str:
        return f"{self.file_path}|{self.range}|{self.label or ''}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "filePath": self.file_path,
            "range": self.range.to_dict(),
            "label": self.label,
        }


@dataclass(slots=True)
class ChangeUnit:
    """One semantically addressable piece of a diff."""

    file_path: str
    range: LineRange
    diff_text: str
    change_kind: ChangeKind | None = None
    change_type: ChangeType = "unknown"
    definition_name: str | None = None
    definition_type: str | None = None
    qualified_name: str | None = None
    container_name: str | None = None
    element_kind: ElementKind | None = None
    symbol_name: str | None = None
    semantic_group_id: str | None = None
    segment_id: str | None = None
    introduced_definitions: list[IntroducedDefinition] = field(default_factory=list)
    related_calls: list[RelatedCall] = field(default_factory=list)
    background_regions: list[CodeRegion] = field(default_factory=list)
    is_overall: bool = False
    kind: Literal["change"] = "change"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "filePath": self.file_path,
            "range": self.range.to_dict(),
            "diffText": self.diff_text,
            "changeKind": self.change_kind,
            "changeType": self.change_type,
            "definitionName": self.definition_name,
            "definitionType": self.definition_type,
            "qualifiedName": self.qualified_name,
            "containerName": self.container_name,
            "elementKind": self.element_kind,
            "symbolName": self.symbol_name,
            "semanticGroupId": self.semantic_group_id,
            "segmentId": self.segment_id,
            "introducedDefinitions": [d.to_dict() for d in self.introduced_definitions],
            "relatedCalls": [c.to_dict() for c in self.related_calls],
            "backgroundRegions": [r.to_dict() for r in self.background_regions],
            "isOverall": self.is_overall,
        }


@dataclass
class ChangeUnitGroup:
    """Units of one file and enclosing symbol within the proximity threshold."""

    id: str
    file_path: str
    symbol_name: str | None
    range: LineRange
    units: list[ChangeUnit] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class HunkLine:
    """One replayed hunk line.

    ``new_line`` is the revised-file line number for context and added
    lines; removed lines are anchored at the current new-side counter.
    Header and ``\\ No newline`` markers carry ``None``.
    """

    kind: HunkLineKind
    text: str
    new_line: int | None


def derive_change_type(diff_text: str) -> ChangeType:
    """``modify`` when both ``+`` and ``-`` lines are present, ``add``/``remove`` for one."""
    has_add = False
    has_remove = False
    # Unit text holds hunk lines only, never the +++/--- file headers
    for line in diff_text.splitlines():
        if line.startswith("+"):
            has_add = True
        elif line.startswith("-"):
            has_remove = True
    if has_add and has_remove:
        return "modify"
    if has_add:
        return "add"
    if has_remove:
        return "remove"
    return "unknown"


def segment_id(file_path: str, range_: LineRange) -> str:
    return f"{file_path}|{range_}"
