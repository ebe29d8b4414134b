"""Unit splitting: one raw hunk into definition, global and operation units.

Two detection passes run over the added lines of a hunk:

- AST pass: definitions of the revised file whose declaration line was added
- Pattern pass: signature regexes, for what the AST does not record
  (TypeScript interface/type/enum, top-level variables) or missed

``merge_hits`` combines them (AST first). Added lines outside every hit
form operation units, one per contiguous run and enclosing definition.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

import structlog

from changetour.analysis.languages import LanguageFamily, detect_language
from changetour.analysis.models import Definition, FileAnalysis
from changetour.core.ranges import LineRange
from changetour.diff.context import BuildContext
from changetour.diff.models import (
    ChangeKind,
    ChangeUnit,
    ElementKind,
    HunkLine,
    IntroducedDefinition,
    derive_change_type,
    segment_id,
)
from changetour.diff.parser import replay_hunk
from changetour.diff.patterns import (
    DefinitionCandidate,
    IndentDefinition,
    detect_candidates,
    is_meaningful,
    python_enclosing_by_indent,
    scan_extent,
)

log = structlog.get_logger(__name__)

Enclosing = Definition | IndentDefinition


@dataclass(frozen=True, slots=True)
class DefinitionHit:
    """A definition or global whose declaration line is an added line."""

    name: str
    kind: str  # function, method, class, interface, type, enum, variable
    range: LineRange
    change_kind: ChangeKind
    qualified_name: str
    source: str  # "ast" | "pattern"

    @property
    def line(self) -> int:
        return self.range.start_line

    @property
    def container_name(self) -> str | None:
        head, sep, _ = self.qualified_name.rpartition(".")
        return head if sep else None


# =============================================================================
# Detection passes
# =============================================================================


def ast_hits(analysis: FileAnalysis, added_lines: set[int]) -> list[DefinitionHit]:
    """Definitions whose own start line was added in this hunk."""
    return [
        DefinitionHit(
            name=d.name,
            kind=d.kind,
            range=d.range,
            change_kind="definition",
            qualified_name=d.qualified_name,
            source="ast",
        )
        for d in analysis.definitions
        if d.range.start_line in added_lines
    ]


def resolve_candidates(
    candidates: Iterable[DefinitionCandidate],
    analysis: FileAnalysis,
    language: LanguageFamily | None,
    lines: Mapping[int, str],
) -> list[DefinitionHit]:
    """Turn regex candidates into hits, verified against the analysis."""
    hits: list[DefinitionHit] = []
    for candidate in candidates:
        hit = _resolve_candidate(candidate, analysis, language, lines)
        if hit is not None:
            hits.append(hit)
    return hits


def _resolve_candidate(
    candidate: DefinitionCandidate,
    analysis: FileAnalysis,
    language: LanguageFamily | None,
    lines: Mapping[int, str],
) -> DefinitionHit | None:
    name, kind, line = candidate.name, candidate.kind, candidate.line

    if candidate.is_variable:
        if language == "python":
            # The pattern only matches column-zero assignments
            nested = False
        else:
            nested = analysis.is_nested(line)
        if nested:
            return None
        return DefinitionHit(
            name=name,
            kind="variable",
            range=scan_extent(lines, line, language),
            change_kind="global",
            qualified_name=name,
            source="pattern",
        )

    if kind in ("interface", "type", "enum"):
        return DefinitionHit(
            name=name,
            kind=kind,
            range=scan_extent(lines, line, language),
            change_kind="definition",
            qualified_name=name,
            source="pattern",
        )

    for definition in analysis.definitions_by_name.get(name, []):
        if definition.range.start_line == line:
            return DefinitionHit(
                name=name,
                kind=definition.kind,
                range=definition.range,
                change_kind="definition",
                qualified_name=definition.qualified_name,
                source="pattern",
            )

    if candidate.is_binding:
        return DefinitionHit(
            name=name,
            kind="function",
            range=scan_extent(lines, line, language),
            change_kind="definition",
            qualified_name=name,
            source="pattern",
        )
    # A signature the AST does not confirm on this line
    return None


def merge_hits(
    primary: Sequence[DefinitionHit], fallback: Sequence[DefinitionHit]
) -> list[DefinitionHit]:
    """AST hits first; fallback hits only for lines no AST hit starts on.

    Duplicates by ``(name, range, kind)`` are removed and a hit inside
    another hit's range is absorbed by the outer one, so no line lands in
    two units.
    """
    taken_lines = {hit.line for hit in primary}
    combined = list(primary) + [hit for hit in fallback if hit.line not in taken_lines]

    seen: set[tuple[str, LineRange, str]] = set()
    unique: list[DefinitionHit] = []
    for hit in combined:
        key = (hit.name, hit.range, hit.kind)
        if key not in seen:
            seen.add(key)
            unique.append(hit)

    unique.sort(key=lambda h: (h.range.start_line, -h.range.end_line, h.source != "ast"))
    kept: list[DefinitionHit] = []
    for hit in unique:
        if any(outer.range.overlaps(hit.range) for outer in kept):
            continue
        kept.append(hit)
    return kept


# =============================================================================
# Enclosing definitions
# =============================================================================


def _enclosing_finder(
    analysis: FileAnalysis,
    language: LanguageFamily | None,
    file_lines: Sequence[str] | None,
) -> Callable[[int], Enclosing | None]:
    def find(line: int) -> Enclosing | None:
        found = analysis.enclosing_definition(line)
        if found is not None:
            return found
        if language == "python" and file_lines is not None:
            return python_enclosing_by_indent(file_lines, line)
        return None

    return find


def _identity(enclosing: Enclosing | None) -> tuple[str, LineRange] | None:
    if enclosing is None:
        return None
    return enclosing.qualified_name, enclosing.range


def _parent_of(hit: DefinitionHit, analysis: FileAnalysis) -> tuple[str, LineRange] | None:
    """Innermost definition strictly enclosing a hit."""
    best: Definition | None = None
    for definition in analysis.definitions:
        if definition.range == hit.range and definition.name == hit.name:
            continue
        if not definition.range.contains(hit.range):
            continue
        if best is None or definition.range.span < best.range.span:
            best = definition
    return _identity(best)


# =============================================================================
# Unit construction
# =============================================================================


def _filter_text(
    replayed: Sequence[HunkLine], keep: Callable[[HunkLine], bool]
) -> str:
    out: list[str] = []
    for hunk_line in replayed:
        if hunk_line.kind == "header":
            out.append(hunk_line.text)
        elif hunk_line.kind == "meta":
            continue
        elif keep(hunk_line):
            prefix = {"add": "+", "remove": "-", "context": " "}[hunk_line.kind]
            out.append(prefix + hunk_line.text)
    return "\n".join(out)


def _element_kind(kind: str) -> ElementKind:
    if kind == "variable":
        return "global"
    if kind in ("function", "method", "class"):
        return kind  # type: ignore[return-value]
    return "class"


def _definition_unit(
    raw: ChangeUnit, hit: DefinitionHit, replayed: Sequence[HunkLine]
) -> ChangeUnit:
    text = _filter_text(
        replayed,
        lambda hl: hl.new_line is not None and hit.range.contains_line(hl.new_line),
    )
    return ChangeUnit(
        file_path=raw.file_path,
        range=hit.range,
        diff_text=text,
        change_kind=hit.change_kind,
        change_type=derive_change_type(text),
        definition_name=hit.name,
        definition_type=hit.kind,
        qualified_name=hit.qualified_name,
        container_name=hit.container_name,
        element_kind=_element_kind(hit.kind),
        symbol_name=hit.name,
        segment_id=segment_id(raw.file_path, hit.range),
    )


def _apply_enclosing(unit: ChangeUnit, enclosing: Enclosing | None) -> None:
    if enclosing is None:
        return
    unit.definition_name = enclosing.name
    unit.definition_type = enclosing.kind
    unit.qualified_name = enclosing.qualified_name
    head, sep, _ = enclosing.qualified_name.rpartition(".")
    unit.container_name = head if sep else None
    unit.symbol_name = enclosing.name
    unit.segment_id = segment_id(unit.file_path, enclosing.range)


def _operation_unit(
    raw: ChangeUnit,
    meaningful: Sequence[int],
    enclosing: Enclosing | None,
    introduced: list[IntroducedDefinition],
    replayed: Sequence[HunkLine],
) -> ChangeUnit:
    span = LineRange.clamped(min(meaningful), max(meaningful))
    text = _filter_text(
        replayed,
        lambda hl: hl.kind != "remove"
        and hl.new_line is not None
        and span.contains_line(hl.new_line),
    )
    unit = ChangeUnit(
        file_path=raw.file_path,
        range=span,
        diff_text=text,
        change_kind="operation",
        change_type=derive_change_type(text),
        introduced_definitions=introduced,
    )
    _apply_enclosing(unit, enclosing)
    return unit


def _residual_runs(
    added: Sequence[tuple[int, str]],
    hits: Sequence[DefinitionHit],
    language: LanguageFamily | None,
    find_enclosing: Callable[[int], Enclosing | None],
) -> list[tuple[list[int], Enclosing | None]]:
    """Meaningful added lines outside every hit, grouped into runs.

    A run is a stretch of consecutive added line numbers sharing one
    innermost enclosing definition. Blank and comment lines join a run but
    never define its lines or range.
    """
    runs: list[tuple[list[int], Enclosing | None]] = []
    current: list[int] = []
    current_enclosing: Enclosing | None = None
    current_identity: tuple[str, LineRange] | None = None
    previous_line: int | None = None

    def close() -> None:
        nonlocal current
        if current:
            runs.append((current, current_enclosing))
        current = []

    for line_no, text in added:
        if any(hit.range.contains_line(line_no) for hit in hits):
            close()
            previous_line = None
            continue
        if previous_line is not None and line_no != previous_line + 1:
            close()
        previous_line = line_no
        if not is_meaningful(text, language):
            continue
        enclosing = find_enclosing(line_no)
        identity = _identity(enclosing)
        if current and identity != current_identity:
            close()
        if not current:
            current_enclosing, current_identity = enclosing, identity
        current.append(line_no)
    close()
    return runs


def _introduced_for(
    enclosing: Enclosing | None,
    hits: Sequence[DefinitionHit],
    parents: Mapping[DefinitionHit, tuple[str, LineRange] | None],
) -> list[IntroducedDefinition]:
    identity = _identity(enclosing)
    return [
        IntroducedDefinition(name=hit.name, type=hit.kind, range=hit.range)
        for hit in hits
        if parents[hit] == identity
    ]


def split_unit(raw: ChangeUnit, context: BuildContext) -> list[ChangeUnit]:
    """Split one raw hunk unit."""
    replayed = replay_hunk(raw.diff_text)
    added = [(hl.new_line, hl.text) for hl in replayed if hl.kind == "add" and hl.new_line is not None]

    language = detect_language(raw.file_path)
    text = context.read_now(raw.file_path)
    file_lines = text.splitlines() if text is not None else None
    if file_lines is not None:
        lines: dict[int, str] = dict(enumerate(file_lines, start=1))
    else:
        lines = {
            hl.new_line: hl.text
            for hl in replayed
            if hl.kind in ("add", "context") and hl.new_line is not None
        }

    if language is not None and text is not None:
        analysis = context.analyze(raw.file_path, text)
    else:
        analysis = FileAnalysis.empty(language)
    find_enclosing = _enclosing_finder(analysis, language, file_lines)

    if not added:
        # Pure deletion: nothing to attribute line by line
        passthrough = ChangeUnit(
            file_path=raw.file_path,
            range=raw.range,
            diff_text=raw.diff_text,
            change_kind="operation",
            change_type=derive_change_type(raw.diff_text),
        )
        _apply_enclosing(passthrough, find_enclosing(raw.range.start_line))
        return [passthrough]

    added_set = {line_no for line_no, _ in added}
    hits = merge_hits(
        ast_hits(analysis, added_set),
        resolve_candidates(detect_candidates(language, added), analysis, language, lines),
    )
    parents = {hit: _parent_of(hit, analysis) for hit in hits}

    units = [_definition_unit(raw, hit, replayed) for hit in hits]
    for meaningful, enclosing in _residual_runs(added, hits, language, find_enclosing):
        introduced = _introduced_for(enclosing, hits, parents)
        units.append(_operation_unit(raw, meaningful, enclosing, introduced, replayed))

    units.sort(key=lambda u: (u.range.start_line, u.range.end_line))
    log.debug(
        "hunk_split",
        path=raw.file_path,
        hunk=str(raw.range),
        hits=len(hits),
        units=len(units),
    )
    return units


def split_change_units(units: Iterable[ChangeUnit], context: BuildContext) -> list[ChangeUnit]:
    """Split every raw hunk unit, preserving hunk order."""
    result: list[ChangeUnit] = []
    for raw in units:
        result.extend(split_unit(raw, context))
    return result
