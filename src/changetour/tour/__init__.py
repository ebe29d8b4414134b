"""Tour construction: ordering, graph, explanations, navigation."""

from changetour.tour.builder import build_tour, build_tour_skeleton
from changetour.tour.controller import TourController, TourState
from changetour.tour.debug_log import write_tour_debug_log
from changetour.tour.explain import Explainer, PlaceholderExplainer, ResponsesExplainer
from changetour.tour.graph import build_tour_graph
from changetour.tour.models import Tour, TourGraph, TourGraphEdge, TourGraphNode, TourStep
from changetour.tour.ordering import DependencyGraph, OrderNode, order_graph, order_main_steps
from changetour.tour.overall import (
    OverallIndex,
    apply_changes_to_overall,
    build_overall_index,
    discover_source_files,
)
from changetour.tour.store import ExplanationStore, apply_cached, step_key

__all__ = [
    "DependencyGraph",
    "Explainer",
    "ExplanationStore",
    "OrderNode",
    "OverallIndex",
    "PlaceholderExplainer",
    "ResponsesExplainer",
    "Tour",
    "TourController",
    "TourGraph",
    "TourGraphEdge",
    "TourGraphNode",
    "TourState",
    "TourStep",
    "apply_cached",
    "apply_changes_to_overall",
    "build_overall_index",
    "build_tour",
    "build_tour_graph",
    "build_tour_skeleton",
    "discover_source_files",
    "order_graph",
    "order_main_steps",
    "step_key",
    "write_tour_debug_log",
]
