"""Tests for background region resolution."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from changetour.core.ranges import LineRange
from changetour.diff.background import attach_background_regions
from changetour.diff.context import BuildContext
from changetour.diff.models import ChangeUnit, CodeRegion, RelatedCall

MakeContext = Callable[..., BuildContext]

HEAD = "def bar():\n    return 1\n"
NOW = (
    "def bar():\n"
    "    return 1\n"
    "\n"
    "\n"
    "def foo():\n"
    '    print("x")\n'
    "    return bar() + bar()\n"
    "\n"
    "\n"
    "def baz():\n"
    "    return helper()\n"
    "\n"
    "\n"
    "def helper():\n"
    "    return 2\n"
)


def _unit(path: str, start: int, end: int) -> ChangeUnit:
    return ChangeUnit(file_path=path, range=LineRange(start, end), diff_text="", change_kind="definition")


class TestAttachBackground:
    """Calls resolved against HEAD become regions."""

    def test_prior_definition_becomes_region(self, make_context: MakeContext) -> None:
        context = make_context({"a.py": NOW}, {"a.py": HEAD})
        unit = _unit("a.py", 5, 7)

        attach_background_regions([unit], context)

        assert unit.related_calls == [RelatedCall("bar", "bar", LineRange(7, 7))]
        assert unit.background_regions == [CodeRegion("a.py", LineRange(1, 2), "bar")]

    def test_call_to_new_definition_is_related_without_region(
        self, make_context: MakeContext
    ) -> None:
        context = make_context({"a.py": NOW}, {"a.py": HEAD})
        unit = _unit("a.py", 10, 11)

        attach_background_regions([unit], context)

        assert [c.name for c in unit.related_calls] == ["helper"]
        assert unit.background_regions == []

    def test_unknown_calls_dropped(self, make_context: MakeContext) -> None:
        context = make_context({"a.py": NOW}, {"a.py": HEAD})
        unit = _unit("a.py", 6, 6)

        attach_background_regions([unit], context)

        assert unit.related_calls == []
        assert unit.background_regions == []

    def test_head_read_once_per_file(self, make_context: MakeContext) -> None:
        context = make_context({"a.py": NOW}, {"a.py": HEAD})

        attach_background_regions([_unit("a.py", 5, 7), _unit("a.py", 10, 11)], context)

        assert context.reader.head_reads == ["a.py"]  # type: ignore[attr-defined]

    def test_new_file_has_no_regions(self, make_context: MakeContext) -> None:
        context = make_context({"a.py": NOW})
        unit = _unit("a.py", 5, 7)

        attach_background_regions([unit], context)

        assert unit.background_regions == []
        assert [c.name for c in unit.related_calls] == ["bar"]

    def test_absolute_unit_path_made_relative(
        self, make_context: MakeContext, tmp_path: Path
    ) -> None:
        context = make_context({"a.py": NOW}, {"a.py": HEAD})
        unit = _unit((tmp_path / "a.py").as_posix(), 5, 7)

        attach_background_regions([unit], context)

        assert unit.background_regions[0].file_path == "a.py"

    def test_unsupported_language_untouched(self, make_context: MakeContext) -> None:
        context = make_context({"notes.txt": "bar()\n"}, {"notes.txt": HEAD})
        unit = _unit("notes.txt", 1, 1)

        attach_background_regions([unit], context)

        assert unit.related_calls == []
        assert context.reader.head_reads == []  # type: ignore[attr-defined]
