import logging
import os

import click

from jj_spr.cli.commands.format_cmd import format_cmd
from jj_spr.cli.commands.land import land_cmd
from jj_spr.cli.output import exit_with_error
from jj_spr.core.context import create_context
from jj_spr.core.errors import SprError

# Enable debug logging if SPR_DEBUG environment variable is set
if os.getenv("SPR_DEBUG"):
    logging.basicConfig(level=logging.DEBUG, format="[DEBUG %(name)s:%(lineno)d] %(message)s")

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="jj-spr")
@click.option(
    "--github-repository",
    metavar="OWNER/REPO",
    help="GitHub repository to work with (default: spr.githubRepository).",
)
@click.option(
    "--branch-prefix",
    help="Prefix for generated pull request branches (default: spr.branchPrefix).",
)
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.pass_context
def cli(
    ctx: click.Context, github_repository: str | None, branch_prefix: str | None, quiet: bool
) -> None:
    """Stacked pull requests for Jujutsu repositories."""
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is not None:
        return
    # Subcommand help needs no repository
    if ctx.resilient_parsing or any(arg in ctx.help_option_names for arg in ctx.args):
        return
    try:
        ctx.obj = create_context(
            github_repository=github_repository,
            branch_prefix=branch_prefix,
            quiet=quiet,
        )
    except SprError as e:
        exit_with_error(e)


cli.add_command(format_cmd)
cli.add_command(land_cmd)


def main() -> None:
    """CLI entry point used by the `jj-spr` console script."""
    cli()
