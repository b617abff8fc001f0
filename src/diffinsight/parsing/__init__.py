"""Parsing layer: grammar selection, Tree-sitter parsing, typed node variants."""

from diffinsight.parsing.grammars import (
    PACKS,
    Grammar,
    GrammarFamily,
    grammar_family,
    language_for,
    select_grammar,
)
from diffinsight.parsing.treesitter import ParseResult, TreeSitterParser

__all__ = [
    "PACKS",
    "Grammar",
    "GrammarFamily",
    "ParseResult",
    "TreeSitterParser",
    "grammar_family",
    "language_for",
    "select_grammar",
]
