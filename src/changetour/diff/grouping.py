"""Proximity grouping of change units for batched presentation."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from changetour.diff.context import BuildContext
from changetour.diff.models import ChangeUnit, ChangeUnitGroup

log = structlog.get_logger(__name__)

DEFAULT_PROXIMITY_THRESHOLD = 5


def _fill_symbol_names(units: list[ChangeUnit], context: BuildContext | None) -> None:
    """Name units without a symbol after their innermost enclosing definition."""
    if context is None:
        return
    missing = [u for u in units if u.symbol_name is None]
    if not missing:
        return
    text = context.read_now(missing[0].file_path)
    if text is None:
        return
    analysis = context.analyze(missing[0].file_path, text)
    for unit in missing:
        enclosing = analysis.enclosing_definition(unit.range.start_line)
        if enclosing is not None:
            unit.symbol_name = enclosing.name


def group_change_units(
    units: Iterable[ChangeUnit],
    proximity_threshold: int = DEFAULT_PROXIMITY_THRESHOLD,
    context: BuildContext | None = None,
) -> list[ChangeUnitGroup]:
    """Bucket units by file, symbol and line proximity.

    Files keep their first-seen order; units inside a file are visited by
    start line. A unit joins the open group when it shares the group's
    symbol and starts at most ``proximity_threshold`` lines after the
    group's end. Every unit's ``semantic_group_id`` is set.
    """
    by_file: dict[str, list[ChangeUnit]] = {}
    for unit in units:
        by_file.setdefault(unit.file_path, []).append(unit)

    groups: list[ChangeUnitGroup] = []
    for file_path, file_units in by_file.items():
        _fill_symbol_names(file_units, context)
        file_units.sort(key=lambda u: u.range.start_line)

        group_index = 0
        current: ChangeUnitGroup | None = None
        for unit in file_units:
            if (
                current is not None
                and current.symbol_name == unit.symbol_name
                and unit.range.start_line - current.range.end_line <= proximity_threshold
            ):
                current.units.append(unit)
                current.range = current.range.merge(unit.range)
                unit.semantic_group_id = current.id
                continue

            group_index += 1
            current = ChangeUnitGroup(
                id=f"{file_path}::{unit.symbol_name or 'top-level'}::{group_index}",
                file_path=file_path,
                symbol_name=unit.symbol_name,
                range=unit.range,
                units=[unit],
            )
            unit.semantic_group_id = current.id
            groups.append(current)

    log.debug("units_grouped", units=sum(len(g.units) for g in groups), groups=len(groups))
    return groups
