"""Tests for reference collection and resolution."""

from __future__ import annotations

from changetour.core.ranges import LineRange
from changetour.diff.models import ChangeUnit, IntroducedDefinition, RelatedCall
from changetour.tour.references import (
    Reference,
    ReferenceIndex,
    RefEntry,
    build_edges,
    collect_references,
    entry_for_unit,
    identifier_names,
)


def _entry(
    key: str,
    kind: str,
    label: str,
    file_path: str = "a.py",
    *,
    qualified_name: str | None = None,
    element_kind: str | None = None,
    diff_text: str = "",
    related: list[RelatedCall] | None = None,
    introduced: list[IntroducedDefinition] | None = None,
    container_name: str | None = None,
    is_overall: bool = False,
) -> RefEntry:
    unit = ChangeUnit(
        file_path=file_path,
        range=LineRange(1, 1),
        diff_text=diff_text,
        related_calls=related or [],
        introduced_definitions=introduced or [],
    )
    return RefEntry(
        key=key,
        kind=kind,  # type: ignore[arg-type]
        file_path=file_path,
        label=label,
        qualified_name=qualified_name,
        element_kind=element_kind,  # type: ignore[arg-type]
        container_name=container_name,
        is_overall=is_overall,
        units=[unit],
    )


class TestIdentifierNames:
    def test_added_lines_only_without_strings_or_keywords(self) -> None:
        text = "@@ -1 +1 @@\n+x = call('foo bar', \"baz\")\n-removed_name()\n self.ctx\n+return self.run(x)"
        assert identifier_names(text) == ["x", "call", "run"]


class TestCollectReferences:
    def test_related_calls_then_parts_then_identifiers(self) -> None:
        unit = ChangeUnit(
            file_path="a.py",
            range=LineRange(1, 2),
            diff_text="+value = self.store.save(item)",
            related_calls=[RelatedCall("save", "self.store.save", LineRange(1, 1))],
        )

        assert collect_references(unit) == [
            Reference("save", "self.store.save"),
            Reference("store"),
            Reference("save"),
            Reference("value"),
            Reference("item"),
        ]


class TestReferenceIndex:
    """Resolution order: qualified name, same-file label, unique label anywhere."""

    def test_qualified_name_wins(self) -> None:
        a = _entry("1", "definition", "parse", qualified_name="Lexer.parse", element_kind="method")
        b = _entry("2", "definition", "parse", qualified_name="Parser.parse", element_kind="method")
        index = ReferenceIndex([a, b])

        assert index.resolve("a.py", "parse", "Parser.parse") == [b]
        assert index.resolve("a.py", "parse", "p.parse") == [a, b]

    def test_unique_label_in_other_file(self) -> None:
        target = _entry("1", "definition", "load", "b.py", element_kind="function")
        index = ReferenceIndex([target])
        assert index.resolve("a.py", "load") == [target]

    def test_ambiguous_label_elsewhere_unresolved(self) -> None:
        index = ReferenceIndex(
            [
                _entry("1", "definition", "load", "b.py", element_kind="function"),
                _entry("2", "definition", "load", "c.py", element_kind="function"),
            ]
        )
        assert index.resolve("a.py", "load") == []

    def test_operations_are_not_resolvable(self) -> None:
        index = ReferenceIndex([_entry("1", "operation", "load")])
        assert index.resolve("a.py", "load") == []


class TestBuildEdges:
    """Edges run from the dependency to the dependent."""

    def test_operation_depends_on_introduced_and_referenced(self) -> None:
        helper = _entry("d1", "definition", "helper", element_kind="function")
        inner = _entry("d2", "definition", "inner", element_kind="function")
        op = _entry(
            "op",
            "operation",
            "main",
            diff_text="+    helper()",
            introduced=[IntroducedDefinition("inner", "function", LineRange(3, 4))],
        )

        edges = build_edges([helper, inner, op])

        assert sorted(edges) == [("d1", "op", "op-to-def"), ("d2", "op", "op-to-def")]

    def test_definition_depends_on_definition(self) -> None:
        base = _entry("d1", "definition", "Base", element_kind="class")
        child = _entry(
            "d2",
            "definition",
            "Child",
            element_kind="class",
            diff_text="+class Child(Base):",
        )
        assert build_edges([base, child]) == [("d1", "d2", "def-to-def")]

    def test_global_references_count(self) -> None:
        limit = _entry("g1", "global", "LIMIT")
        doubled = _entry("g2", "global", "DOUBLED", diff_text="+DOUBLED = LIMIT * 2")
        assert build_edges([limit, doubled]) == [("g1", "g2", "def-to-def")]

    def test_no_self_edges_and_no_duplicates(self) -> None:
        fn = _entry("d1", "definition", "fib", element_kind="function", diff_text="+    return fib(n - 1) + fib(n - 2)")
        assert build_edges([fn]) == []
        op = _entry("op", "operation", "main", diff_text="+fib(1)\n+fib(2)")
        assert build_edges([fn, op]) == [("d1", "op", "op-to-def")]

    def test_overall_method_links_to_class(self) -> None:
        cls = _entry("c", "unknown", "Box", element_kind="class", is_overall=True)
        method = _entry(
            "m",
            "unknown",
            "open",
            element_kind="method",
            container_name="pkg.Box",
            is_overall=True,
        )
        assert build_edges([cls, method]) == [("m", "c", "def-to-def")]

    def test_overall_entry_without_calls_adds_nothing(self) -> None:
        fn = _entry("f", "unknown", "run", element_kind="function", is_overall=True)
        other = _entry("g", "unknown", "walk", element_kind="function", is_overall=True, diff_text="+run()")
        assert build_edges([fn, other]) == []


class TestEntryForUnit:
    def test_labels_fall_back_by_kind(self) -> None:
        unit = ChangeUnit(file_path="a.py", range=LineRange(1, 1), diff_text="", change_kind="global")
        entry = entry_for_unit("k", unit)
        assert (entry.label, entry.element_kind, entry.resolvable) == ("Global", "global", True)

        op = ChangeUnit(file_path="a.py", range=LineRange(1, 1), diff_text="", change_kind="operation")
        assert entry_for_unit("o", op).label == "Operation"
