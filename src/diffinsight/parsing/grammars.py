"""Grammar selection and tree-sitter grammar packs.

``select_grammar`` is a pure function of path and content sample: the file
extension decides first, content sniffing only breaks ties for extensions
that several dialects share.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath

from diffinsight.parsing.lexical import has_nested_rule


class Grammar(StrEnum):
    """Closed set of parsing strategies."""

    CODE_WITH_MARKUP = "code-with-markup"
    CODE_PLAIN = "code-plain"
    TYPED_CODE = "typed-code"
    STYLESHEET_PLAIN = "stylesheet-plain"
    STYLESHEET_NESTED = "stylesheet-nested"
    MARKUP = "markup"
    UNKNOWN = "unknown"


class GrammarFamily(StrEnum):
    """Which structural extractor (and pattern detector set) handles a grammar."""

    CODE = "code"
    STYLESHEET = "stylesheet"
    MARKUP = "markup"
    GENERIC = "generic"


_FAMILY: dict[Grammar, GrammarFamily] = {
    Grammar.CODE_WITH_MARKUP: GrammarFamily.CODE,
    Grammar.CODE_PLAIN: GrammarFamily.CODE,
    Grammar.TYPED_CODE: GrammarFamily.CODE,
    Grammar.STYLESHEET_PLAIN: GrammarFamily.STYLESHEET,
    Grammar.STYLESHEET_NESTED: GrammarFamily.STYLESHEET,
    Grammar.MARKUP: GrammarFamily.MARKUP,
    Grammar.UNKNOWN: GrammarFamily.GENERIC,
}


# =============================================================================
# Grammar packs
# =============================================================================


@dataclass(frozen=True)
class GrammarPack:
    """tree-sitter grammar installation metadata for one language key."""

    name: str  # language key ("javascript", "tsx", ...)
    grammar_package: str  # PyPI package ("tree-sitter-javascript")
    grammar_module: str  # Python import ("tree_sitter_javascript")
    language_func: str = "language"  # "language_typescript" for the TS grammars


PACKS: dict[str, GrammarPack] = {
    pack.name: pack
    for pack in (
        GrammarPack("javascript", "tree-sitter-javascript", "tree_sitter_javascript"),
        GrammarPack(
            "typescript",
            "tree-sitter-typescript",
            "tree_sitter_typescript",
            language_func="language_typescript",
        ),
        GrammarPack(
            "tsx",
            "tree-sitter-typescript",
            "tree_sitter_typescript",
            language_func="language_tsx",
        ),
        GrammarPack("css", "tree-sitter-css", "tree_sitter_css"),
        GrammarPack("html", "tree-sitter-html", "tree_sitter_html"),
    )
}


# =============================================================================
# Selection
# =============================================================================

_SNIFFED_CODE_EXTENSIONS = frozenset({".js", ".mjs", ".cjs"})
_MARKUP_CODE_EXTENSIONS = frozenset({".jsx", ".tsx"})
_TYPED_EXTENSIONS = frozenset({".ts", ".mts", ".cts"})
_NESTED_STYLE_EXTENSIONS = frozenset({".scss", ".sass", ".less"})
_MARKUP_EXTENSIONS = frozenset({".html", ".htm"})

_MARKUP_LITERAL = re.compile(
    r"<[A-Z][\w.]*[\s/>]"  # <Component ...>
    r"|<>"  # fragment
    r"|\bReact\b"
    r"|from\s+['\"](?:react|react-dom|preact)['\"]"
    r"|require\(\s*['\"]react['\"]\s*\)"
)
_TYPE_NAME = r"(?:string|number|boolean|any|unknown|void|never|[A-Z]\w*)\b"
# One annotated parameter inside a parameter list that has no nested
# parens or braces, so object literals and destructuring renames stay out.
_ANNOTATED_PARAMS = r"\([^(){}]*\b\w+\??\s*:\s*" + _TYPE_NAME + r"[^(){}]*\)"
_ANNOTATED_METHOD = (
    r"^\s*(?:async\s+)?(?!(?:if|for|while|switch|catch|with)\b)\w+\s*"
    + _ANNOTATED_PARAMS
    + r"\s*(?::[^{;]*)?\{"
)
_TYPE_ANNOTATION = re.compile(
    r"^\s*(?:export\s+)?(?:declare\s+)?interface\s+\w+"
    r"|^\s*(?:export\s+)?type\s+\w+(?:<[^>]*>)?\s*="
    r"|\bfunction\b[\s*]*\w*\s*" + _ANNOTATED_PARAMS
    + r"|" + _ANNOTATED_PARAMS + r"\s*(?::[^=;{]*)?=>"
    + r"|" + _ANNOTATED_METHOD
    + r"|\)\s*:\s*(?:string|number|boolean|void|Promise<[^>]*>)\s*(?:=>|\{)",
    re.MULTILINE,
)


def select_grammar(path: str, sample: str = "") -> Grammar:
    """Choose a parsing strategy for ``path``.

    Args:
        path: Repo-relative or absolute file path.
        sample: Content of the new version (may be empty).

    Returns:
        A grammar tag; ``Grammar.UNKNOWN`` for unrecognized extensions.
    """
    suffix = PurePosixPath(path).suffix.lower()

    if suffix in _MARKUP_CODE_EXTENSIONS:
        return Grammar.CODE_WITH_MARKUP
    if suffix in _TYPED_EXTENSIONS:
        return Grammar.TYPED_CODE
    if suffix in _SNIFFED_CODE_EXTENSIONS:
        if _MARKUP_LITERAL.search(sample):
            return Grammar.CODE_WITH_MARKUP
        if _TYPE_ANNOTATION.search(sample):
            return Grammar.TYPED_CODE
        return Grammar.CODE_PLAIN
    if suffix in _NESTED_STYLE_EXTENSIONS:
        return Grammar.STYLESHEET_NESTED
    if suffix == ".css":
        if has_nested_rule(sample):
            return Grammar.STYLESHEET_NESTED
        return Grammar.STYLESHEET_PLAIN
    if suffix in _MARKUP_EXTENSIONS:
        return Grammar.MARKUP
    return Grammar.UNKNOWN


def grammar_family(grammar: Grammar) -> GrammarFamily:
    return _FAMILY[grammar]


def language_for(grammar: Grammar, path: str) -> str | None:
    """Map a grammar tag to the tree-sitter language key that parses it."""
    suffix = PurePosixPath(path).suffix.lower()
    if grammar == Grammar.CODE_WITH_MARKUP:
        return "tsx" if suffix == ".tsx" else "javascript"
    if grammar == Grammar.CODE_PLAIN:
        return "javascript"
    if grammar == Grammar.TYPED_CODE:
        return "typescript"
    if grammar in (Grammar.STYLESHEET_PLAIN, Grammar.STYLESHEET_NESTED):
        return "css"
    if grammar == Grammar.MARKUP:
        return "html"
    return None
