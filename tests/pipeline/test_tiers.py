"""Tests for tier attempt functions."""

from __future__ import annotations

import pytest

from diffinsight.config.models import AnalysisConfig
from diffinsight.diff.models import ChangeType, EntityKind, StructuralModel
from diffinsight.extraction import ExtractorRegistry, default_registry
from diffinsight.parsing.grammars import Grammar, GrammarFamily
from diffinsight.parsing.treesitter import TreeSitterParser
from diffinsight.pipeline.models import Err, Ok
from diffinsight.pipeline.tiers import count_lines, run_ast_tier, run_generic_tier, run_pattern_tier


@pytest.fixture
def parser() -> TreeSitterParser:
    return TreeSitterParser()


def ast(path: str, old: str, new: str, grammar: Grammar, parser: TreeSitterParser, registry=None):
    return run_ast_tier(
        path,
        old,
        new,
        grammar,
        config=AnalysisConfig(),
        parser=parser,
        registry=registry or default_registry(),
    )


class TestAstTier:
    def test_success(self, parser: TreeSitterParser) -> None:
        result = ast("a.js", "function a() {}\n", "function a() {}\nfunction b() {}\n", Grammar.CODE_PLAIN, parser)

        assert isinstance(result, Ok)
        (record,) = result.records
        assert (record.change_type, record.identity_key) == (ChangeType.ADDED, "b")

    def test_syntax_error_is_err(self, parser: TreeSitterParser) -> None:
        result = ast("a.scss", ".a { color: red; }\n", "$x: 1;\n.a { color: $x; }\n", Grammar.STYLESHEET_NESTED, parser)

        assert isinstance(result, Err)
        assert result.reason == "UNPARSEABLE_SYNTAX"

    def test_no_changes_is_empty_result(self, parser: TreeSitterParser) -> None:
        result = ast("a.js", "const a = 1;\n", "const a = 1; // note\n", Grammar.CODE_PLAIN, parser)

        assert isinstance(result, Err)
        assert result.reason == "EMPTY_RESULT"

    def test_unregistered_family_is_unsupported(self, parser: TreeSitterParser) -> None:
        result = ast("a.js", "", "const a = 1;\n", Grammar.CODE_PLAIN, parser, registry=ExtractorRegistry())

        assert isinstance(result, Err)
        assert result.reason == "UNSUPPORTED_GRAMMAR"

    def test_unexpected_extractor_exception_is_internal_error(self, parser: TreeSitterParser) -> None:
        class Exploding:
            family = GrammarFamily.CODE

            def extract(self, *args, **kwargs) -> StructuralModel:
                raise RuntimeError("boom")

        registry = ExtractorRegistry()
        registry.register(Exploding())

        result = ast("a.js", "a", "b", Grammar.CODE_PLAIN, parser, registry=registry)

        assert isinstance(result, Err)
        assert result.reason == "INTERNAL_ERROR"
        assert "boom" in result.message

    def test_new_artifact_reports_only_additions(self, parser: TreeSitterParser) -> None:
        result = ast("a.css", "", ".a { color: red; }\n", Grammar.STYLESHEET_PLAIN, parser)

        assert isinstance(result, Ok)
        assert {r.change_type for r in result.records} == {ChangeType.ADDED}


class TestPatternTier:
    def test_success(self) -> None:
        result = run_pattern_tier("a.js", "+import x from 'y';\n", Grammar.CODE_PLAIN)

        assert isinstance(result, Ok)
        assert [(r.entity_kind, r.identity_key) for r in result.records] == [(EntityKind.IMPORT, "y")]

    def test_failure_is_err(self) -> None:
        result = run_pattern_tier("a.txt", "+hello\n", Grammar.UNKNOWN)

        assert isinstance(result, Err)
        assert result.reason == "UNSUPPORTED_GRAMMAR"


class TestGenericTier:
    def test_summary_from_counts(self) -> None:
        result = run_generic_tier("notes.txt", 3, 1)

        assert isinstance(result, Ok)
        (record,) = result.records
        assert record.entity_kind == EntityKind.FILE
        assert record.change_type == ChangeType.MODIFIED
        assert record.identity_key == "notes.txt"
        assert record.details == ("+3 -1 lines",)

    def test_counts_from_diff_text_when_missing(self) -> None:
        text = "--- a/n\n+++ b/n\n@@ -1 +1,2 @@\n-a\n+b\n+c\n"

        result = run_generic_tier("n", 0, 0, text)

        assert result.records[0].details == ("+2 -1 lines",)
        assert count_lines(text) == (2, 1)

    def test_never_fails_on_empty_input(self) -> None:
        result = run_generic_tier("empty", 0, 0, "")

        assert isinstance(result, Ok)
        assert result.records[0].details == ("+0 -0 lines",)
