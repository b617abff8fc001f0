"""diff-insight analyze command - summarize structural changes since a ref."""

import asyncio
import json
from pathlib import Path

import click

from diffinsight.cli.utils import find_repo_root, format_analysis, format_tier_counts, split_patterns
from diffinsight.config import load_config
from diffinsight.core.errors import ConfigError
from diffinsight.core.logging import clear_run_id, configure_logging, set_run_id
from diffinsight.git import GitContentResolver, GitError, GitOps
from diffinsight.pipeline import VersionPair, analyze_artifacts


@click.command()
@click.argument("base")
@click.option("--target", default=None, help="Target ref (default: working tree)")
@click.option(
    "--files",
    "patterns",
    multiple=True,
    help="Glob(s) restricting analyzed files; repeatable or comma-separated",
)
@click.option(
    "--repo",
    "repo_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Repository path (default: current directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def analyze_command(
    ctx: click.Context,
    base: str,
    target: str | None,
    patterns: tuple[str, ...],
    repo_path: Path,
    as_json: bool,
) -> None:
    """Describe the structural changes between BASE and --target.

    BASE is any commit-ish (branch, tag, SHA, HEAD~1).
    """
    repo_root = find_repo_root(repo_path)
    try:
        config = load_config(repo_root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)

    try:
        git = GitOps(repo_root)
        artifacts = git.changed_artifacts(
            base, target, split_patterns(patterns) or config.pipeline.file_patterns
        )
    except GitError as e:
        raise click.ClickException(str(e)) from e

    set_run_id()
    try:
        analyses = asyncio.run(
            analyze_artifacts(artifacts, GitContentResolver(git), VersionPair(base, target), config)
        )
    finally:
        clear_run_id()

    if as_json:
        click.echo(json.dumps([a.to_dict() for a in analyses], indent=2))
        return

    if not analyses:
        click.echo("No changes.")
        return
    for analysis in analyses:
        click.echo("\n".join(format_analysis(analysis)))
        click.echo()
    click.echo(format_tier_counts(analyses))
