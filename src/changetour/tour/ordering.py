"""Narrative ordering of main steps.

``order_graph`` is a pure function over a ``DependencyGraph`` value so the
policy can be exercised without the rest of the pipeline. ``order_main_steps``
builds that value from steps and puts global steps in front.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from changetour.tour.models import NodeKind, TourStep
from changetour.tour.references import RefEntry, build_edges, entry_for_unit, merge_key

log = structlog.get_logger(__name__)

_RANK: dict[str, int] = {"global": 2, "definition": 1}


@dataclass(frozen=True, slots=True)
class OrderNode:
    id: str
    kind: NodeKind
    file_path: str
    start_line: int
    end_line: int

    @property
    def sort_key(self) -> tuple[int, str, int, int, str]:
        return (-_RANK.get(self.kind, 0), self.file_path, self.start_line, self.end_line, self.id)

    @property
    def position(self) -> tuple[str, int, int, str]:
        return (self.file_path, self.start_line, self.end_line, self.id)


@dataclass(frozen=True)
class DependencyGraph:
    """Nodes plus directed ``(dependency, dependent)`` edges."""

    nodes: tuple[OrderNode, ...]
    edges: frozenset[tuple[str, str]] = field(default_factory=frozenset)

    @classmethod
    def build(cls, nodes: Iterable[OrderNode], edges: Iterable[tuple[str, str]]) -> DependencyGraph:
        node_tuple = tuple(nodes)
        known = {n.id for n in node_tuple}
        kept = frozenset((a, b) for a, b in edges if a in known and b in known and a != b)
        return cls(nodes=node_tuple, edges=kept)


def _components(graph: DependencyGraph) -> list[list[OrderNode]]:
    neighbours: dict[str, set[str]] = {n.id: set() for n in graph.nodes}
    for source, target in graph.edges:
        neighbours[source].add(target)
        neighbours[target].add(source)
    by_id = {n.id: n for n in graph.nodes}

    seen: set[str] = set()
    components: list[list[OrderNode]] = []
    for start in sorted(graph.nodes, key=lambda n: n.position):
        if start.id in seen:
            continue
        seen.add(start.id)
        stack = [start.id]
        members: list[OrderNode] = []
        while stack:
            node_id = stack.pop()
            members.append(by_id[node_id])
            for other in neighbours[node_id]:
                if other not in seen:
                    seen.add(other)
                    stack.append(other)
        components.append(members)

    def component_key(members: list[OrderNode]) -> tuple[int, tuple[str, int, int, str]]:
        has_operation = any(m.kind == "operation" for m in members)
        return (0 if has_operation else 1, min(m.position for m in members))

    components.sort(key=component_key)
    return components


def _order_component(members: list[OrderNode], edges: frozenset[tuple[str, str]]) -> list[str]:
    by_id = {m.id: m for m in members}
    dependents: dict[str, list[OrderNode]] = {m.id: [] for m in members}
    pending: dict[str, int] = {m.id: 0 for m in members}
    for source, target in edges:
        if source in by_id and target in by_id:
            dependents[source].append(by_id[target])
            pending[target] += 1
    for targets in dependents.values():
        targets.sort(key=lambda n: n.sort_key)

    order: list[str] = []
    placed: set[str] = set()
    queue: deque[str] = deque()

    def place(node_id: str) -> None:
        placed.add(node_id)
        order.append(node_id)
        queue.append(node_id)

    for node in sorted(members, key=lambda n: n.sort_key):
        if pending[node.id] == 0:
            place(node.id)

    while len(order) < len(members):
        while queue:
            current = queue.popleft()
            for dependent in dependents[current]:
                pending[dependent.id] -= 1
                if pending[dependent.id] == 0 and dependent.id not in placed:
                    place(dependent.id)
        if len(order) < len(members):
            # Cycle: release the first remaining node and resume
            leftover = min((m for m in members if m.id not in placed), key=lambda n: n.sort_key)
            log.debug("order_cycle_broken", node=leftover.id)
            place(leftover.id)
    return order


def order_graph(graph: DependencyGraph) -> list[str]:
    """Node ids in narrative order.

    Components holding an operation come first, then by earliest
    ``(file, line)``. Inside a component, nodes that depend on nothing lead
    (globals, then definitions, then operations, then file and line); the
    rest follow breadth-first once all their dependencies are placed.
    Nodes stuck in a cycle are released one at a time in the same
    tie-break order.
    """
    order: list[str] = []
    for members in _components(graph):
        order.extend(_order_component(members, graph.edges))
    return order


def _order_node(step: TourStep) -> OrderNode:
    unit = step.unit
    assert unit is not None
    return OrderNode(
        id=step.id,
        kind=unit.change_kind or "unknown",
        file_path=unit.file_path,
        start_line=unit.range.start_line,
        end_line=unit.range.end_line,
    )


def _blocks(steps: Sequence[TourStep]) -> dict[str, list[TourStep]]:
    """Steps grouped by merge key, each group in file and line order."""
    blocks: dict[str, list[TourStep]] = {}
    for step in sorted(steps, key=lambda s: _order_node(s).position):
        blocks.setdefault(merge_key(step), []).append(step)
    return blocks


def _block_node(members: Sequence[TourStep]) -> tuple[OrderNode, RefEntry]:
    lead = _order_node(members[0])
    entry = entry_for_unit(lead.id, members[0].unit)  # type: ignore[arg-type]
    entry.units.extend(s.unit for s in members[1:] if s.unit is not None)
    node = OrderNode(
        id=lead.id,
        kind=lead.kind,
        file_path=lead.file_path,
        start_line=min(_order_node(s).start_line for s in members),
        end_line=max(_order_node(s).end_line for s in members),
    )
    return node, entry


def order_main_steps(steps: Sequence[TourStep]) -> list[TourStep]:
    """Globals by file and line, then everything else in graph order.

    Operation steps that share a merge key are ordered as one block, after
    the union of their dependencies, and expanded in line order.
    """
    main = [s for s in steps if s.type == "main" and s.unit is not None]
    globals_ = sorted(
        (s for s in main if s.is_global),
        key=lambda s: _order_node(s).position,
    )
    rest = [s for s in main if not s.is_global]

    blocks = {members[0].id: members for members in _blocks(rest).values()}
    nodes: list[OrderNode] = []
    entries: list[RefEntry] = []
    for members in blocks.values():
        node, entry = _block_node(members)
        nodes.append(node)
        entries.append(entry)

    edges = [(a, b) for a, b, _ in build_edges(entries)]
    graph = DependencyGraph.build(nodes, edges)
    ordered = list(globals_)
    for block_id in order_graph(graph):
        ordered.extend(blocks[block_id])
    log.debug(
        "steps_ordered",
        globals=len(globals_),
        steps=len(ordered),
        blocks=len(blocks),
        edges=len(graph.edges),
    )
    return ordered
