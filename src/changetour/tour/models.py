"""Tour data models: steps and the dependency graph projection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from changetour.diff.models import ChangeUnit, ChangeUnitGroup, CodeRegion, ElementKind

StepType = Literal["background", "main"]
NodeKind = Literal["operation", "definition", "global", "unknown"]
EdgeType = Literal["op-to-def", "def-to-def"]


@dataclass(slots=True)
class TourStep:
    """One explainable stop of a tour.

    A ``main`` step targets a ChangeUnit, a ``background`` step a
    CodeRegion. ``depends_on`` holds background step ids and is set once
    while the tour is assembled.
    """

    id: str
    type: StepType
    target: ChangeUnit | CodeRegion
    explanation: str = ""
    depends_on: list[str] = field(default_factory=list)

    @property
    def unit(self) -> ChangeUnit | None:
        return self.target if isinstance(self.target, ChangeUnit) else None

    @property
    def is_global(self) -> bool:
        unit = self.unit
        return self.type == "main" and unit is not None and unit.change_kind == "global"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "target": self.target.to_dict(),
            "explanation": self.explanation,
            "dependsOn": list(self.depends_on),
        }


@dataclass(slots=True)
class TourGraphNode:
    """A graph node; operation nodes may stand for several steps."""

    id: str
    index: int
    kind: NodeKind
    label: str
    file_path: str
    start_line: int
    end_line: int
    step_ids: list[str] = field(default_factory=list)
    element_kind: ElementKind | None = None
    qualified_name: str | None = None
    container_name: str | None = None
    is_overall: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "index": self.index,
            "kind": self.kind,
            "label": self.label,
            "filePath": self.file_path,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "stepIds": list(self.step_ids),
            "elementKind": self.element_kind,
            "qualifiedName": self.qualified_name,
            "isOverall": self.is_overall,
        }


@dataclass(frozen=True, slots=True)
class TourGraphEdge:
    """``source`` must be explained before ``target``."""

    source: str
    target: str
    type: EdgeType

    def to_dict(self) -> dict[str, str]:
        return {"from": self.source, "to": self.target, "type": self.type}


@dataclass
class TourGraph:
    nodes: list[TourGraphNode] = field(default_factory=list)
    edges: list[TourGraphEdge] = field(default_factory=list)

    def node_for_step(self, step_id: str) -> TourGraphNode | None:
        for node in self.nodes:
            if step_id in node.step_ids:
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class Tour:
    """Result of one tour build."""

    steps: list[TourStep]
    graph: TourGraph
    groups: list[ChangeUnitGroup] = field(default_factory=list)

    @property
    def main_steps(self) -> list[TourStep]:
        return [s for s in self.steps if s.type == "main"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "graph": self.graph.to_dict(),
        }
