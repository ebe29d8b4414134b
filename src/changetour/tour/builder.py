"""Tour assembly: grouping, explanation, ordering, background steps, graph."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping

import structlog

from changetour.core.errors import ExplanationError, InternalError
from changetour.diff.context import BuildContext
from changetour.diff.grouping import DEFAULT_PROXIMITY_THRESHOLD, group_change_units
from changetour.diff.models import ChangeUnit, ChangeUnitGroup, CodeRegion
from changetour.tour.explain import Explainer, PlaceholderExplainer
from changetour.tour.graph import build_tour_graph
from changetour.tour.models import Tour, TourStep
from changetour.tour.ordering import order_main_steps
from changetour.tour.store import step_key

log = structlog.get_logger(__name__)

_TYPE_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9_]*$")


def _main_steps(groups: Iterable[ChangeUnitGroup]) -> list[TourStep]:
    steps: list[TourStep] = []
    for group in groups:
        for unit in group.units:
            steps.append(TourStep(id=f"main-{len(steps) + 1}", type="main", target=unit))
    return steps


def _background_steps(ordered_main: list[TourStep]) -> list[TourStep]:
    """One step per distinct region, ids in first-seen order; sets ``depends_on``."""
    by_key: dict[str, TourStep] = {}
    for main in ordered_main:
        unit = main.unit
        assert unit is not None
        depends_on: list[str] = []
        for region in unit.background_regions:
            step = by_key.get(region.region_key)
            if step is None:
                step = TourStep(id=f"bg-{len(by_key) + 1}", type="background", target=region)
                by_key[region.region_key] = step
            if step.id not in depends_on:
                depends_on.append(step.id)
        main.depends_on = depends_on
    return list(by_key.values())


def _background_sort_key(step: TourStep) -> tuple[int, str, int]:
    region = step.target
    type_like = bool(region.label and _TYPE_NAME_RE.match(region.label))
    return (0 if type_like else 1, region.file_path, region.range.start_line)


def _explain(
    step: TourStep,
    generate: Callable[[], str],
    cached: Mapping[str, str],
    placeholder: str,
) -> None:
    text = cached.get(step_key(step))
    if text and text != placeholder:
        step.explanation = text
        return
    try:
        step.explanation = generate()
    except ExplanationError as e:
        log.warning("explanation_failed", step=step.id, error=str(e))
        step.explanation = placeholder


def build_tour(
    units: Iterable[ChangeUnit],
    explainer: Explainer,
    intent: str | None = None,
    proximity_threshold: int = DEFAULT_PROXIMITY_THRESHOLD,
    context: BuildContext | None = None,
    *,
    cached: Mapping[str, str] | None = None,
    placeholder_main: str = "Explanation pending.",
    placeholder_background: str = "Background context pending.",
) -> Tour:
    """Build the ordered step list and graph for a set of change units.

    Final order: global main steps, background steps (type-like labels
    first, then file and line), then the remaining main steps in
    dependency order. ``cached`` maps step keys to explanations that skip
    the explainer; a failing explainer call leaves the placeholder text.
    """
    cached = cached or {}
    groups = group_change_units(units, proximity_threshold, context)
    main = _main_steps(groups)

    for step in main:
        unit = step.unit
        assert unit is not None
        _explain(step, lambda u=unit: explainer.explain_unit(u, intent), cached, placeholder_main)

    ordered = order_main_steps(main)
    if len(ordered) != len(main):
        raise InternalError.invariant_violation(
            "ordering changed the number of main steps", before=len(main), after=len(ordered)
        )

    background = _background_steps(ordered)
    for step in background:
        region = step.target
        assert isinstance(region, CodeRegion)
        _explain(step, lambda r=region: explainer.explain_region(r), cached, placeholder_background)
    background.sort(key=_background_sort_key)

    globals_ = [s for s in ordered if s.is_global]
    rest = [s for s in ordered if not s.is_global]
    steps = globals_ + background + rest

    graph = build_tour_graph(ordered)
    log.info(
        "tour_built",
        main=len(ordered),
        background=len(background),
        groups=len(groups),
        nodes=len(graph.nodes),
        edges=len(graph.edges),
    )
    return Tour(steps=steps, graph=graph, groups=groups)


def build_tour_skeleton(
    units: Iterable[ChangeUnit],
    proximity_threshold: int = DEFAULT_PROXIMITY_THRESHOLD,
    context: BuildContext | None = None,
    *,
    placeholder_main: str = "Explanation pending.",
    placeholder_background: str = "Background context pending.",
) -> Tour:
    """Same structure as ``build_tour`` with placeholder text only."""
    return build_tour(
        units,
        PlaceholderExplainer(placeholder_main, placeholder_background),
        proximity_threshold=proximity_threshold,
        context=context,
        placeholder_main=placeholder_main,
        placeholder_background=placeholder_background,
    )
