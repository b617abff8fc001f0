"""diff-insight CLI - structural change summaries for git diffs."""

import click

from diffinsight import __version__
from diffinsight.cli.analyze import analyze_command
from diffinsight.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="diff-insight")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """diff-insight - Describe what changed in structural terms."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(analyze_command, name="analyze")


if __name__ == "__main__":
    cli()
