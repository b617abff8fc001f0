"""Tests for CLI utilities."""

from __future__ import annotations

from pathlib import Path

import click
import pygit2
import pytest

from diffinsight.cli.utils import find_repo_root, format_analysis, format_tier_counts, split_patterns
from diffinsight.diff.models import ChangeRecord, ChangeType, EntityKind, Tier
from diffinsight.parsing.grammars import Grammar
from diffinsight.pipeline.models import ArtifactAnalysis


def analysis(path: str, tier: Tier, *records: ChangeRecord, old_path: str | None = None) -> ArtifactAnalysis:
    return ArtifactAnalysis(
        path=path,
        status="renamed" if old_path else "modified",
        grammar=Grammar.CODE_PLAIN,
        tier=tier,
        records=records,
        old_path=old_path,
    )


class TestFindRepoRoot:
    def test_finds_root_from_subdirectory(self, tmp_path: Path) -> None:
        pygit2.init_repository(str(tmp_path))
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)

        assert find_repo_root(nested) == tmp_path.resolve()

    def test_raises_outside_repository(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException):
            find_repo_root(tmp_path)


class TestSplitPatterns:
    def test_flattens_and_strips(self) -> None:
        assert split_patterns(["*.js, *.css", " *.html ", ","]) == ["*.js", "*.css", "*.html"]

    def test_empty(self) -> None:
        assert split_patterns([]) == []


class TestFormatAnalysis:
    def test_records_and_details(self) -> None:
        # Given
        record = ChangeRecord(
            ChangeType.MODIFIED,
            EntityKind.FUNCTION,
            "login",
            details=("changed to async", "API calls added"),
        )

        # When
        lines = format_analysis(analysis("src/auth.js", Tier.AST, record))

        # Then
        assert lines == [
            "src/auth.js [ast]",
            "  Modified Function login",
            "      changed to async",
            "      API calls added",
        ]

    def test_rename_header_and_count_suffix(self) -> None:
        record = ChangeRecord(ChangeType.ADDED, EntityKind.MARKUP_ELEMENT, "li.item", count=3)

        lines = format_analysis(analysis("new.html", Tier.PATTERN, record, old_path="old.html"))

        assert lines == ["old.html -> new.html [pattern]", "  Added MarkupElement li.item (×3)"]


class TestFormatTierCounts:
    def test_pluralization(self) -> None:
        single = [analysis("a.js", Tier.AST)]
        several = [analysis("a.js", Tier.AST), analysis("b.txt", Tier.GENERIC), analysis("c.scss", Tier.PATTERN)]

        assert format_tier_counts(single) == "1 file: 1 ast, 0 pattern, 0 generic"
        assert format_tier_counts(several) == "3 files: 1 ast, 1 pattern, 1 generic"
