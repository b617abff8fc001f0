"""Tree-sitter adapter.

Loads grammar languages through their Python packages, parses text, and
rejects trees whose error-node ratio exceeds the configured tolerance.
The generic node walkers here are internal to the parsing layer; the
structural extractors see either typed node variants (``nodes``) or a
per-node-type dispatch table over the closed set of grammar node types.
"""

from __future__ import annotations

import importlib
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog
import tree_sitter

from diffinsight.core.errors import ExtractionError
from diffinsight.diff.models import SourceLocation
from diffinsight.parsing.grammars import PACKS

log = structlog.get_logger(__name__)


@dataclass
class ParseResult:
    """Result of parsing one version of one artifact."""

    tree: Any  # tree-sitter Tree (not serializable)
    language: str
    error_count: int
    total_nodes: int
    root_node: Any  # tree-sitter Node

    @property
    def error_ratio(self) -> float:
        return self.error_count / self.total_nodes if self.total_nodes else 0.0


@dataclass
class TreeSitterParser:
    """Tree-sitter parser for the code, stylesheet and markup grammars.

    Usage::

        parser = TreeSitterParser(max_error_ratio=0.0)
        result = parser.parse(source_text, "javascript", path="src/app.js")

    Languages are loaded once and shared; a fresh ``tree_sitter.Parser`` is
    created per call so one instance can serve concurrent worker threads.
    """

    max_error_ratio: float = 0.0
    _languages: dict[str, Any] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _get_language(self, name: str, path: str) -> Any:
        with self._lock:
            if name in self._languages:
                return self._languages[name]

            pack = PACKS.get(name)
            if pack is None:
                raise ExtractionError.unsupported_grammar(path, name)
            try:
                mod = importlib.import_module(pack.grammar_module)
                lang = tree_sitter.Language(getattr(mod, pack.language_func)())
            except (ImportError, AttributeError) as err:
                log.error(
                    "grammar_unavailable",
                    language=name,
                    package=pack.grammar_package,
                    error=str(err),
                )
                raise ExtractionError.unsupported_grammar(path, name) from err
            self._languages[name] = lang
            return lang

    def parse(self, content: str, language: str, path: str = "<memory>") -> ParseResult:
        """Parse ``content`` with the named tree-sitter language.

        Raises:
            ExtractionError: ``UNSUPPORTED_GRAMMAR`` if the language cannot be
                loaded, ``UNPARSEABLE_SYNTAX`` if the error-node ratio exceeds
                ``max_error_ratio``.
        """
        ts_lang = self._get_language(language, path)
        parser = tree_sitter.Parser()
        parser.language = ts_lang
        tree = parser.parse(content.encode("utf-8"))

        error_count, total_nodes = _count_errors(tree.root_node, language)

        result = ParseResult(
            tree=tree,
            language=language,
            error_count=error_count,
            total_nodes=total_nodes,
            root_node=tree.root_node,
        )
        if error_count and result.error_ratio > self.max_error_ratio:
            raise ExtractionError.unparseable_syntax(path, language, error_count, total_nodes)
        return result


def walk(node: Any) -> Iterator[Any]:
    """Pre-order traversal of every node (named and anonymous)."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(node: Any) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def node_location(node: Any) -> SourceLocation:
    start_row, start_col = node.start_point
    end_row, end_col = node.end_point
    return SourceLocation(start_row + 1, start_col, end_row + 1, end_col)


def has_token(node: Any, token: str) -> bool:
    """True if ``node`` has a direct anonymous child of type ``token``."""
    return any(child.type == token for child in node.children)


def is_selectorless_block(node: Any) -> bool:
    """A stylesheet ``ERROR`` node that is only a ``{ ... }`` block with no selector.

    tree-sitter-css cannot attach such a block to a rule; the stylesheet
    extractor turns it into a rule with an empty selector instead of
    rejecting the file.
    """
    if node.type != "ERROR" or node.parent is None or node.parent.type not in ("stylesheet", "block"):
        return False
    text = node_text(node).strip()
    return text.startswith("{") and text.endswith("}")


def _count_errors(root: Any, language: str) -> tuple[int, int]:
    errors = 0
    total = 0
    stack = [root]
    while stack:
        node = stack.pop()
        total += 1
        if language == "css" and is_selectorless_block(node):
            continue
        if node.type == "ERROR" or node.is_missing:
            errors += 1
        stack.extend(node.children)
    return errors, total
