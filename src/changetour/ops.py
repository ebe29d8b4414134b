"""Pipeline entry points.

``build_change_units``, ``attach_background`` and ``build_tour`` are the
three composable stages. ``TourOps`` runs all of them against a git
repository, with the explanation cache and overall mode.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from changetour.config.models import ChangeTourConfig
from changetour.core.errors import StoreError
from changetour.core.logging import clear_build_id, set_build_id
from changetour.diff.background import attach_background_regions
from changetour.diff.context import BuildContext, SourceReader
from changetour.diff.models import ChangeUnit, CodeRegion
from changetour.diff.parser import parse_change_units
from changetour.diff.splitter import split_change_units
from changetour.git.access import RepoAccess
from changetour.git.sources import GitSourceReader
from changetour.tour.builder import build_tour
from changetour.tour.debug_log import write_tour_debug_log
from changetour.tour.explain import Explainer, PlaceholderExplainer, ResponsesExplainer
from changetour.tour.models import Tour
from changetour.tour.overall import (
    apply_changes_to_overall,
    build_overall_index,
    discover_source_files,
)
from changetour.tour.store import ExplanationStore, apply_cached

log = structlog.get_logger(__name__)

__all__ = [
    "TourOps",
    "attach_background",
    "build_change_units",
    "build_tour",
]


def build_change_units(
    diff_text: str,
    workspace_root: Path | str,
    context: BuildContext | None = None,
    ignored_extensions: Iterable[str] = (".md",),
) -> list[ChangeUnit]:
    """Parse a unified diff and split its hunks into semantic units."""
    context = context or BuildContext.for_workspace(workspace_root)
    raw = parse_change_units(diff_text, str(workspace_root), ignored_extensions)
    return split_change_units(raw, context)


def attach_background(
    units: Iterable[ChangeUnit],
    workspace_root: Path | str,
    reader: SourceReader | None = None,
    context: BuildContext | None = None,
) -> None:
    """Attach related calls and HEAD background regions to ``units`` in place."""
    if context is None:
        context = (
            BuildContext(workspace_root=Path(workspace_root), reader=reader)
            if reader is not None
            else BuildContext.for_workspace(workspace_root)
        )
    attach_background_regions(units, context)


class _ChangedOnlyExplainer:
    """Sends only units that carry diff text to the wrapped explainer."""

    def __init__(self, inner: Explainer, placeholder: PlaceholderExplainer) -> None:
        self._inner = inner
        self._placeholder = placeholder

    def explain_unit(self, unit: ChangeUnit, intent: str | None = None) -> str:
        if unit.is_overall and not unit.diff_text:
            return self._placeholder.explain_unit(unit, intent)
        return self._inner.explain_unit(unit, intent)

    def explain_region(self, region: CodeRegion) -> str:
        return self._inner.explain_region(region)


class TourOps:
    """Builds tours for one repository.

    Usage::

        ops = TourOps(repo_root, config)
        tour = ops.build(intent="Add retry support", offline=True)
        for step in tour.steps:
            ...
    """

    def __init__(
        self,
        repo_root: Path,
        config: ChangeTourConfig | None = None,
        explainer: Explainer | None = None,
    ) -> None:
        self._config = config or ChangeTourConfig()
        self._access = RepoAccess(repo_root)
        self._explainer = explainer
        self._store = ExplanationStore(self._access.path, self._config.store)

    @property
    def repo_root(self) -> Path:
        return self._access.path

    @property
    def store(self) -> ExplanationStore:
        return self._store

    def new_context(self) -> BuildContext:
        return BuildContext(workspace_root=self._access.path, reader=GitSourceReader(self._access))

    def collect_units(self, context: BuildContext, *, overall: bool = False) -> list[ChangeUnit]:
        """Diff, split and annotate; in overall mode fold onto the repository index."""
        diff_text = self._access.diff_against_head(self._config.diff.context_lines)
        units = build_change_units(
            diff_text,
            self._access.path,
            context,
            self._config.diff.ignored_extensions,
        )
        attach_background_regions(units, context)
        if not overall:
            return units

        files = discover_source_files(
            self._access.path,
            self._config.overall.include_globs,
            self._config.overall.exclude_dirs,
        )
        index = build_overall_index(files, context)
        return apply_changes_to_overall(index, units)

    def _placeholder(self) -> PlaceholderExplainer:
        return PlaceholderExplainer.from_config(self._config.explain)

    def build(
        self,
        *,
        intent: str | None = None,
        offline: bool = False,
        overall: bool = False,
        use_cache: bool = True,
        save: bool = True,
    ) -> Tour:
        """Run the full pipeline once.

        Offline builds never call the explainer; they show cached
        explanations where the cache has them. Online builds reuse cached
        text, explain the rest and write the cache back.
        """
        set_build_id()
        log.info("tour_build_started", offline=offline, overall=overall)
        try:
            context = self.new_context()
            units = self.collect_units(context, overall=overall)
            records = self._store.load(intent) if use_cache else {}
            explain_config = self._config.explain

            if offline:
                tour = build_tour(
                    units,
                    self._placeholder(),
                    intent,
                    self._config.grouping.proximity_threshold,
                    context,
                    placeholder_main=explain_config.placeholder_main,
                    placeholder_background=explain_config.placeholder_background,
                )
                filled = apply_cached(
                    tour.steps,
                    records,
                    (explain_config.placeholder_main, explain_config.placeholder_background),
                )
                log.debug("cached_explanations_applied", filled=filled)
                return tour

            owned: ResponsesExplainer | None = None
            explainer = self._explainer
            if explainer is None:
                owned = ResponsesExplainer(explain_config, context.reader)
                explainer = owned
            if overall:
                explainer = _ChangedOnlyExplainer(explainer, self._placeholder())
            try:
                tour = build_tour(
                    units,
                    explainer,
                    intent,
                    self._config.grouping.proximity_threshold,
                    context,
                    cached={key: record.explanation for key, record in records.items()},
                    placeholder_main=explain_config.placeholder_main,
                    placeholder_background=explain_config.placeholder_background,
                )
            finally:
                if owned is not None:
                    owned.close()

            if save:
                try:
                    self._store.save(
                        tour.steps,
                        intent,
                        (explain_config.placeholder_main, explain_config.placeholder_background),
                    )
                except StoreError as e:
                    log.warning("store_save_failed", error=str(e))
            return tour
        finally:
            clear_build_id()

    def clear(self) -> bool:
        return self._store.clear()

    def write_debug_log(self, tour: Tour) -> Path:
        path = self._access.path / self._config.store.directory / self._config.store.debug_log_file
        return write_tour_debug_log(path, tour.steps)
