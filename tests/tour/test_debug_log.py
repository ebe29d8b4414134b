"""Tests for the plain-text tour dump."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from changetour.core.ranges import LineRange
from changetour.diff.models import ChangeUnit, CodeRegion, IntroducedDefinition
from changetour.tour.debug_log import format_tour_debug_log, write_tour_debug_log
from changetour.tour.models import TourStep


def _steps() -> list[TourStep]:
    unit = ChangeUnit(
        file_path="a.py",
        range=LineRange(4, 6),
        diff_text="@@ -3,0 +4,3 @@\n+    def inner():\n+        pass\n+    inner()",
        change_kind="operation",
        definition_name="outer",
        definition_type="function",
        introduced_definitions=[IntroducedDefinition("inner", "function", LineRange(4, 5))],
    )
    return [
        TourStep(id="bg-1", type="background", target=CodeRegion("a.py", LineRange(1, 2), "helper")),
        TourStep(id="main-1", type="main", target=unit, explanation="Adds inner.", depends_on=["bg-1"]),
    ]


class TestFormatTourDebugLog:
    def test_layout(self) -> None:
        text = format_tour_debug_log(_steps(), datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC))
        lines = text.splitlines()

        assert lines[:3] == ["ChangeTour Debug Log", "Steps: 2", "Generated: 2026-01-02T03:04:05+00:00"]
        assert "Label: helper" in lines
        assert "ChangeKind: operation" in lines
        assert "IntroducedDefinitions: inner(function)@4-5" in lines
        assert "DependsOn: bg-1" in lines
        assert lines.count("---") == 2

    def test_missing_fields_spelled_out(self) -> None:
        unit = ChangeUnit(file_path="a.py", range=LineRange(1, 1), diff_text="")
        text = format_tour_debug_log([TourStep(id="main-1", type="main", target=unit)])

        assert "ChangeKind: unknown" in text
        assert "DefinitionName: n/a" in text
        assert "IntroducedDefinitions: none" in text
        assert "DiffText:\n(empty)" in text
        assert "Explanation:\n(empty)" in text


class TestWriteTourDebugLog:
    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        path = tmp_path / ".changetour" / "tour-debug.txt"
        assert write_tour_debug_log(path, _steps()) == path
        assert path.read_text().startswith("ChangeTour Debug Log")
