"""Helpers shared by the CLI commands: repo discovery and plain-text rendering."""

from collections.abc import Iterable, Sequence
from pathlib import Path

import click
import pygit2

from diffinsight.diff.models import Tier
from diffinsight.pipeline.models import ArtifactAnalysis
from diffinsight.pipeline.ops import tier_counts


def find_repo_root(start_path: Path | None = None) -> Path:
    """Working-tree root of the repository containing ``start_path`` (default: cwd)."""
    start = (start_path or Path.cwd()).resolve()
    git_dir = pygit2.discover_repository(str(start))
    workdir = pygit2.Repository(git_dir).workdir if git_dir else None
    if not workdir:
        raise click.ClickException(f"Not inside a git repository: {start}")
    return Path(workdir).resolve()


def split_patterns(values: Iterable[str]) -> list[str]:
    """Flatten repeated and comma-separated ``--files`` values."""
    return [p.strip() for value in values for p in value.split(",") if p.strip()]


def format_analysis(analysis: ArtifactAnalysis) -> list[str]:
    header = analysis.path
    if analysis.old_path and analysis.old_path != analysis.path:
        header = f"{analysis.old_path} -> {analysis.path}"
    lines = [f"{header} [{analysis.tier.value}]"]
    for record in analysis.records:
        lines.append(f"  {record.describe()}")
        lines.extend(f"      {detail}" for detail in record.details)
    return lines


def format_tier_counts(analyses: Sequence[ArtifactAnalysis]) -> str:
    counts = tier_counts(analyses)
    noun = "file" if len(analyses) == 1 else "files"
    return f"{len(analyses)} {noun}: " + ", ".join(f"{counts[t]} {t.value}" for t in Tier)
