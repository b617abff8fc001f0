"""Structural extractor protocol and registry.

Defines the interface every grammar-family extractor implements and a
registry for looking extractors up by family. A missing registration is
an ``UNSUPPORTED_GRAMMAR`` extraction error, which the fallback controller
turns into a tier demotion.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from diffinsight.config.models import AnalysisConfig
from diffinsight.core.errors import ErrorCode, ExtractionError
from diffinsight.diff.models import StructuralModel
from diffinsight.extraction.code import extract_code
from diffinsight.extraction.markup import extract_markup
from diffinsight.extraction.stylesheet import extract_stylesheet
from diffinsight.parsing.grammars import Grammar, GrammarFamily, grammar_family
from diffinsight.parsing.treesitter import TreeSitterParser

log = structlog.get_logger(__name__)


@runtime_checkable
class StructuralExtractor(Protocol):
    """Builds a Structural Model from one complete version of an artifact."""

    @property
    def family(self) -> GrammarFamily: ...

    def extract(
        self,
        content: str,
        grammar: Grammar,
        *,
        path: str,
        parser: TreeSitterParser,
        config: AnalysisConfig,
    ) -> StructuralModel: ...


class CodeExtractor:
    family = GrammarFamily.CODE

    def extract(
        self,
        content: str,
        grammar: Grammar,
        *,
        path: str,
        parser: TreeSitterParser,
        config: AnalysisConfig,
    ) -> StructuralModel:
        return extract_code(content, grammar, path=path, parser=parser, config=config)


class StylesheetExtractor:
    family = GrammarFamily.STYLESHEET

    def extract(
        self,
        content: str,
        grammar: Grammar,
        *,
        path: str,
        parser: TreeSitterParser,
        config: AnalysisConfig,  # noqa: ARG002
    ) -> StructuralModel:
        return extract_stylesheet(content, grammar, path=path, parser=parser)


class MarkupExtractor:
    family = GrammarFamily.MARKUP

    def extract(
        self,
        content: str,
        grammar: Grammar,  # noqa: ARG002
        *,
        path: str,
        parser: TreeSitterParser,
        config: AnalysisConfig,  # noqa: ARG002
    ) -> StructuralModel:
        return extract_markup(content, path=path, parser=parser)


class ExtractorRegistry:
    """Registry of grammar-family extractors."""

    def __init__(self) -> None:
        self._extractors: dict[GrammarFamily, StructuralExtractor] = {}

    def register(self, extractor: StructuralExtractor) -> None:
        self._extractors[extractor.family] = extractor

    def get(self, family: GrammarFamily) -> StructuralExtractor | None:
        return self._extractors.get(family)

    def extract(
        self,
        content: str,
        grammar: Grammar,
        *,
        path: str,
        parser: TreeSitterParser,
        config: AnalysisConfig,
    ) -> StructuralModel:
        """Extract one version; absent content yields an empty model.

        Raises:
            ExtractionError: ``UNSUPPORTED_GRAMMAR`` when no extractor is
                registered for the grammar's family, or whatever the
                extractor raises for unparseable content.
        """
        extractor = self._extractors.get(grammar_family(grammar))
        if extractor is None:
            raise ExtractionError.unsupported_grammar(path, grammar.value)
        if not content:
            log.debug("empty_model", path=path, reason=ErrorCode.EMPTY_OR_MISSING_CONTENT.name)
            return StructuralModel(metadata={"empty": True})
        return extractor.extract(content, grammar, path=path, parser=parser, config=config)


def default_registry() -> ExtractorRegistry:
    registry = ExtractorRegistry()
    registry.register(CodeExtractor())
    registry.register(StylesheetExtractor())
    registry.register(MarkupExtractor())
    return registry


__all__ = [
    "CodeExtractor",
    "ExtractorRegistry",
    "MarkupExtractor",
    "StructuralExtractor",
    "StylesheetExtractor",
    "default_registry",
]
