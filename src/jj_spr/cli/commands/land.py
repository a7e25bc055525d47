"""CLI command for landing a pull request."""

import logging

import click

from jj_spr.cli.ensure import Ensure
from jj_spr.cli.output import exit_with_error
from jj_spr.core.context import SprContext
from jj_spr.core.errors import SprError
from jj_spr.core.land import execute_land

logger = logging.getLogger(__name__)


@click.command("land")
@click.option(
    "-r",
    "--revision",
    default="@",
    show_default=True,
    help="Jujutsu revision whose pull request to land.",
)
@click.option(
    "--cherry-pick",
    is_flag=True,
    help="Land a pull request that was created or updated with `diff --cherry-pick`.",
)
@click.pass_obj
def land_cmd(ctx: SprContext, revision: str, cherry_pick: bool) -> None:
    """Merge the pull request of a commit into the integration branch.

    The merge only happens if GitHub would produce exactly the tree you get
    by cherry-picking the commit onto the current integration branch.
    """
    revision = Ensure.not_blank(revision, "Revision")
    try:
        result = execute_land(ctx, revision, cherry_pick=cherry_pick)
    except SprError as e:
        exit_with_error(e)

    logger.debug("Landed #%d as %s", result.pull_request_number, result.merge_commit)
