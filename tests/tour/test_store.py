"""Tests for the on-disk explanation cache."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from changetour.config.models import StoreConfig
from changetour.core.errors import StoreError
from changetour.core.ranges import LineRange
from changetour.diff.models import ChangeUnit, CodeRegion
from changetour.tour.models import TourStep
from changetour.tour.store import ExplanationStore, apply_cached, step_key


def _steps() -> list[TourStep]:
    unit = ChangeUnit(file_path="src/a.py", range=LineRange(3, 8), diff_text="+x", change_kind="operation")
    region = CodeRegion("src/a.py", LineRange(1, 2), "helper")
    return [
        TourStep(id="bg-1", type="background", target=region, explanation="Helper returns one."),
        TourStep(id="main-1", type="main", target=unit, explanation="Adds x."),
    ]


class TestStepKey:
    def test_key_format(self) -> None:
        assert [step_key(s) for s in _steps()] == ["background|src/a.py|1-2", "main|src/a.py|3-8"]


class TestExplanationStore:
    """Save, reload and invalidate cached explanations."""

    def test_round_trip(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        store.save(_steps(), intent="Add x")

        records = store.load("  Add x ")

        assert store.path == tmp_path / ".changetour" / "explanations.json"
        assert records["main|src/a.py|3-8"].explanation == "Adds x."
        assert records["background|src/a.py|1-2"].type == "background"

    def test_file_uses_camel_case(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path, StoreConfig(directory="cache", explanations_file="e.json"))
        store.save(_steps())

        data = json.loads((tmp_path / "cache" / "e.json").read_text())

        assert data["version"] == 1
        assert "intent" not in data
        assert set(data["records"][0]) == {
            "key",
            "type",
            "filePath",
            "startLine",
            "endLine",
            "explanation",
            "updatedAt",
        }

    def test_other_intent_invalidates(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        store.save(_steps(), intent="Add x")
        assert store.load("Remove y") == {}
        assert store.load(None) == {}

    def test_missing_and_corrupt_files_load_empty(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        assert store.load() == {}

        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert store.load() == {}

    def test_write_failure_raises_store_error(self, tmp_path: Path) -> None:
        (tmp_path / ".changetour").write_text("a file, not a directory")
        store = ExplanationStore(tmp_path)

        with pytest.raises(StoreError) as exc_info:
            store.save(_steps())

        assert exc_info.value.details["path"] == str(store.path)

    def test_clear(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        assert store.clear() is False
        store.save(_steps())
        assert store.clear() is True
        assert not store.path.exists()


class TestApplyCached:
    def test_fills_placeholders_only(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        store.save(_steps())
        records = store.load()

        fresh = _steps()
        fresh[0].explanation = "Background context pending."
        fresh[1].explanation = "Written by hand."

        filled = apply_cached(fresh, records, ("Background context pending.",))

        assert filled == 1
        assert fresh[0].explanation == "Helper returns one."
        assert fresh[1].explanation == "Written by hand."

    def test_empty_records_ignored(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        blank = _steps()
        blank[1].explanation = "   "
        store.save(blank)

        fresh = _steps()
        fresh[1].explanation = ""
        assert apply_cached(fresh, store.load()) == 0
        assert fresh[1].explanation == ""

    def test_placeholder_text_not_written(self, tmp_path: Path) -> None:
        store = ExplanationStore(tmp_path)
        steps = _steps()
        steps[1].explanation = "Explanation pending."

        store.save(steps, placeholders=("Explanation pending.",))

        assert list(store.load()) == ["background|src/a.py|1-2"]
