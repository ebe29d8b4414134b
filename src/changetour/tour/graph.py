"""Node/edge projection of the ordered main steps."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from changetour.tour.models import TourGraph, TourGraphEdge, TourGraphNode, TourStep
from changetour.tour.references import RefEntry, build_edges, entry_for_unit, merge_key, unit_kind

log = structlog.get_logger(__name__)


def build_tour_graph(steps: Sequence[TourStep]) -> TourGraph:
    """Build the graph over main steps in their given order.

    Definition and global steps get a node each. Operation steps sharing a
    segment id (else qualified or symbol name) collapse into one node that
    keeps every contributing step id and the widest line span. A node's id
    is the id of its first step.
    """
    main = [s for s in steps if s.type == "main" and s.unit is not None]

    nodes: list[TourGraphNode] = []
    entries: list[RefEntry] = []
    merged: dict[str, tuple[TourGraphNode, RefEntry]] = {}

    for step in main:
        unit = step.unit
        assert unit is not None
        kind = unit_kind(unit)
        key = merge_key(step)

        existing = merged.get(key)
        if existing is not None:
            node, entry = existing
            node.step_ids.append(step.id)
            node.start_line = min(node.start_line, unit.range.start_line)
            node.end_line = max(node.end_line, unit.range.end_line)
            entry.units.append(unit)
            continue

        entry = entry_for_unit(step.id, unit)
        node = TourGraphNode(
            id=step.id,
            index=len(nodes),
            kind=kind,
            label=entry.label,
            file_path=unit.file_path,
            start_line=unit.range.start_line,
            end_line=unit.range.end_line,
            step_ids=[step.id],
            element_kind=entry.element_kind,
            qualified_name=unit.qualified_name,
            container_name=unit.container_name,
            is_overall=unit.is_overall,
        )
        merged[key] = (node, entry)
        nodes.append(node)
        entries.append(entry)

    edges = [TourGraphEdge(source, target, edge_type) for source, target, edge_type in build_edges(entries)]
    log.debug("graph_built", nodes=len(nodes), edges=len(edges))
    return TourGraph(nodes=nodes, edges=edges)
