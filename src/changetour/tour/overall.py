"""Overall exploration mode: every definition of the repository as a unit.

The index holds one unit per definition and per top-level variable, each
flagged ``is_overall``. Change units from the working-tree diff are then
folded onto the index so the graph shows edited code in the context of
the code around it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

import structlog

from changetour.analysis.languages import detect_language
from changetour.analysis.models import CallReference
from changetour.diff.context import BuildContext
from changetour.diff.models import ChangeKind, ChangeUnit, ElementKind, RelatedCall

log = structlog.get_logger(__name__)


@dataclass
class OverallIndex:
    units: list[ChangeUnit] = field(default_factory=list)
    units_by_file: dict[str, list[ChangeUnit]] = field(default_factory=dict)

    def add(self, unit: ChangeUnit) -> None:
        self.units.append(unit)
        self.units_by_file.setdefault(unit.file_path, []).append(unit)

    def sort(self) -> None:
        self.units.sort(key=_unit_position)
        for units in self.units_by_file.values():
            units.sort(key=_unit_position)


def _unit_position(unit: ChangeUnit) -> tuple[str, int, int]:
    return (unit.file_path, unit.range.start_line, unit.range.end_line)


def discover_source_files(
    root: Path,
    include_globs: Sequence[str],
    exclude_dirs: Iterable[str],
) -> list[str]:
    """Workspace-relative posix paths of supported files, sorted."""
    excluded = set(exclude_dirs)
    found: set[str] = set()
    for pattern in include_globs:
        for path in root.glob(pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(root)
            if any(part in excluded for part in relative.parts[:-1]):
                continue
            if detect_language(relative.as_posix()) is None:
                continue
            found.add(relative.as_posix())
    return sorted(found)


def _attach_related_calls(units: list[ChangeUnit], calls: Sequence[CallReference]) -> None:
    for unit in units:
        unit.related_calls = [
            RelatedCall(call.name, call.qualified_name, call.range)
            for call in calls
            if call.range.overlaps(unit.range)
        ]


def build_overall_index(
    file_paths: Iterable[str],
    context: BuildContext,
) -> OverallIndex:
    """Index definitions and top-level variables of ``file_paths``.

    Unreadable and unsupported files are skipped.
    """
    index = OverallIndex()
    for file_path in file_paths:
        if detect_language(file_path) is None:
            continue
        text = context.read_now(file_path)
        if text is None:
            continue

        analysis = context.analyze(file_path, text)
        definition_units = [
            ChangeUnit(
                file_path=file_path,
                range=definition.range,
                diff_text="",
                symbol_name=definition.name,
                definition_name=definition.name,
                definition_type=definition.kind,
                qualified_name=definition.qualified_name,
                container_name=definition.container_name if definition.kind == "method" else None,
                element_kind=definition.kind,
                is_overall=True,
            )
            for definition in analysis.definitions
        ]
        for unit in definition_units:
            index.add(unit)

        for variable in context.analyzer.top_level_variables(file_path, text):
            index.add(
                ChangeUnit(
                    file_path=file_path,
                    range=variable.range,
                    diff_text="",
                    symbol_name=variable.name,
                    definition_name=variable.name,
                    definition_type="variable",
                    qualified_name=variable.name,
                    element_kind="global",
                    is_overall=True,
                )
            )

        _attach_related_calls(definition_units, analysis.calls)

    index.sort()
    log.info("overall_index_built", units=len(index.units), files=len(index.units_by_file))
    return index


def _smallest(candidates: list[ChangeUnit]) -> ChangeUnit | None:
    best: ChangeUnit | None = None
    for candidate in candidates:
        if best is None or candidate.range.span < best.range.span:
            best = candidate
    return best


def _find_enclosing(units: list[ChangeUnit], line: int) -> ChangeUnit | None:
    return _smallest([u for u in units if u.range.contains_line(line)])


def _find_by_definition_name(units: list[ChangeUnit], unit: ChangeUnit) -> ChangeUnit | None:
    if not unit.definition_name:
        return None
    return _smallest(
        [
            u
            for u in units
            if u.definition_name == unit.definition_name and u.range.overlaps(unit.range)
        ]
    )


def _mark_kind(target: ChangeUnit, kind: ChangeKind) -> None:
    if kind == "global":
        target.element_kind = "global"
    elif target.element_kind is None:
        target.element_kind = "function"
    # An operation mark is never downgraded
    if target.change_kind != "operation":
        target.change_kind = kind


def _merge_diff(target: ChangeUnit, source: ChangeUnit) -> None:
    target.introduced_definitions = [*target.introduced_definitions, *source.introduced_definitions]
    if source.diff_text:
        target.diff_text = (
            f"{target.diff_text}\n{source.diff_text}" if target.diff_text else source.diff_text
        )
    target.definition_name = target.definition_name or source.definition_name
    target.definition_type = target.definition_type or source.definition_type
    target.symbol_name = target.symbol_name or source.symbol_name
    target.element_kind = target.element_kind or source.element_kind


def _resolve_element_kind(unit: ChangeUnit) -> ElementKind | None:
    if unit.change_kind == "global" or unit.definition_type == "variable":
        return "global"
    if unit.definition_type in ("class", "method", "function"):
        return unit.definition_type  # type: ignore[return-value]
    return unit.element_kind


def apply_changes_to_overall(index: OverallIndex, change_units: Iterable[ChangeUnit]) -> list[ChangeUnit]:
    """Fold change units onto the index and return the sorted index units.

    Operation units mark their innermost enclosing index unit. Definition
    and global units mark the same-named overlapping index unit, else the
    innermost enclosing one; without either they are added as new overall
    units. Units of files outside the index are ignored.
    """
    folded = 0
    for unit in change_units:
        file_units = index.units_by_file.get(unit.file_path)
        if not file_units:
            continue

        if unit.change_kind == "operation":
            target = _find_enclosing(file_units, unit.range.start_line)
            if target is not None:
                target.change_kind = "operation"
                _merge_diff(target, unit)
                folded += 1
                continue

        if unit.change_kind in ("definition", "global"):
            target = _find_by_definition_name(file_units, unit) or _find_enclosing(
                file_units, unit.range.start_line
            )
            if target is not None:
                _mark_kind(target, unit.change_kind)
                _merge_diff(target, unit)
                folded += 1
                continue
            index.add(
                replace(
                    unit,
                    is_overall=True,
                    symbol_name=unit.definition_name or unit.symbol_name,
                    element_kind=_resolve_element_kind(unit),
                    introduced_definitions=list(unit.introduced_definitions),
                    related_calls=list(unit.related_calls),
                    background_regions=list(unit.background_regions),
                )
            )

    index.sort()
    log.debug("overall_changes_applied", folded=folded, units=len(index.units))
    return index.units
