"""Background resolution: calls inside a unit that point at prior definitions.

For each unit, calls of the revised file overlapping the unit's range are
resolved against the HEAD version of the same file. A match records the
call as a related call and the HEAD definition as a background region. A
call that only resolves against the revised file (a helper added in the
same change) is recorded as a related call without a region. Everything
else is dropped.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

import structlog

from changetour.analysis.languages import detect_language
from changetour.analysis.models import FileAnalysis
from changetour.diff.context import BuildContext
from changetour.diff.models import ChangeUnit, CodeRegion, RelatedCall
from changetour.diff.parser import normalize_path

log = structlog.get_logger(__name__)


def _relative(path: str, context: BuildContext) -> str:
    root = normalize_path(str(context.workspace_root)).rstrip("/")
    normalized = normalize_path(path)
    if normalized.startswith(root + "/"):
        return normalized[len(root) + 1 :]
    return normalized


def _attach(
    unit: ChangeUnit,
    path: str,
    head: FileAnalysis,
    revised: FileAnalysis,
) -> None:
    related: list[RelatedCall] = list(unit.related_calls)
    regions: list[CodeRegion] = list(unit.background_regions)
    seen_calls = {(c.name, c.qualified_name, c.range) for c in related}

    for call in revised.calls:
        if not call.range.overlaps(unit.range):
            continue
        prior = head.resolve_call(call.name, call.qualified_name)
        if prior is None and revised.resolve_call(call.name, call.qualified_name) is None:
            continue

        key = (call.name, call.qualified_name, call.range)
        if key not in seen_calls:
            seen_calls.add(key)
            related.append(RelatedCall(call.name, call.qualified_name, call.range))

        if prior is None:
            continue
        region = CodeRegion(file_path=path, range=prior.range, label=prior.qualified_name)
        if not any(r.file_path == region.file_path and r.range == region.range for r in regions):
            regions.append(region)

    unit.related_calls = related
    unit.background_regions = regions


def attach_background_regions(units: Iterable[ChangeUnit], context: BuildContext) -> None:
    """Attach related calls and background regions to units, in place."""
    by_file: dict[str, list[ChangeUnit]] = defaultdict(list)
    for unit in units:
        by_file[_relative(unit.file_path, context)].append(unit)

    for path, file_units in by_file.items():
        if detect_language(path) is None:
            continue

        revised_text = context.read_now(path)
        head_text = context.read_head(path)
        revised = (
            context.analyze(path, revised_text) if revised_text is not None else FileAnalysis.empty()
        )
        head = context.analyze(path, head_text) if head_text else FileAnalysis.empty()

        for unit in file_units:
            _attach(unit, path, head, revised)

        log.debug(
            "background_attached",
            path=path,
            units=len(file_units),
            regions=sum(len(u.background_regions) for u in file_units),
            has_head=head_text is not None,
        )
