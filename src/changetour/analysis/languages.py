"""Language detection and grammar metadata.

Only the grammars the analyzer walks are registered here. Everything else
is "unsupported" and analyzes to an empty result.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Literal

LanguageFamily = Literal["javascript", "typescript", "python"]


@dataclass(frozen=True)
class GrammarPack:
    """Tree-sitter grammar configuration for one file family."""

    grammar_name: str  # "javascript", "typescript", "tsx", "python"
    family: LanguageFamily
    grammar_package: str  # PyPI package ("tree-sitter-python")
    grammar_module: str  # Python import ("tree_sitter_python")
    extensions: frozenset[str]
    # Non-standard function name (e.g. "language_typescript", "language_tsx")
    language_func: str = "language"


JAVASCRIPT_PACK = GrammarPack(
    grammar_name="javascript",
    family="javascript",
    grammar_package="tree-sitter-javascript",
    grammar_module="tree_sitter_javascript",
    extensions=frozenset({"js", "cjs", "mjs", "jsx"}),
)

TYPESCRIPT_PACK = GrammarPack(
    grammar_name="typescript",
    family="typescript",
    grammar_package="tree-sitter-typescript",
    grammar_module="tree_sitter_typescript",
    extensions=frozenset({"ts"}),
    language_func="language_typescript",
)

TSX_PACK = GrammarPack(
    grammar_name="tsx",
    family="typescript",
    grammar_package="tree-sitter-typescript",
    grammar_module="tree_sitter_typescript",
    extensions=frozenset({"tsx"}),
    language_func="language_tsx",
)

PYTHON_PACK = GrammarPack(
    grammar_name="python",
    family="python",
    grammar_package="tree-sitter-python",
    grammar_module="tree_sitter_python",
    extensions=frozenset({"py"}),
)

_ALL_PACKS = (JAVASCRIPT_PACK, TYPESCRIPT_PACK, TSX_PACK, PYTHON_PACK)

_EXT_TO_PACK: dict[str, GrammarPack] = {}
for _pack in _ALL_PACKS:
    for _ext in _pack.extensions:
        _EXT_TO_PACK[_ext] = _pack


def _extension(path: str) -> str:
    return posixpath.splitext(path.replace("\\", "/"))[1].lstrip(".").lower()


def get_pack_for_path(path: str) -> GrammarPack | None:
    """Grammar pack for a file path, or None when the extension is unsupported."""
    return _EXT_TO_PACK.get(_extension(path))


def detect_language(path: str) -> LanguageFamily | None:
    pack = get_pack_for_path(path)
    return pack.family if pack is not None else None
