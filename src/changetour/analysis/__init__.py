"""Syntax analysis: definitions and calls per file via tree-sitter."""

from changetour.analysis.languages import (
    GrammarPack,
    LanguageFamily,
    detect_language,
    get_pack_for_path,
)
from changetour.analysis.models import CallReference, Definition, FileAnalysis
from changetour.analysis.treesitter import SyntaxAnalyzer, TopLevelVariable

__all__ = [
    "CallReference",
    "Definition",
    "FileAnalysis",
    "GrammarPack",
    "LanguageFamily",
    "SyntaxAnalyzer",
    "TopLevelVariable",
    "detect_language",
    "get_pack_for_path",
]
