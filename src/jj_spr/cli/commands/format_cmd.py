"""CLI command for normalizing commit messages."""

import click

from jj_spr.cli.ensure import Ensure
from jj_spr.cli.output import exit_with_error
from jj_spr.core.context import SprContext
from jj_spr.core.errors import SprError
from jj_spr.core.message import build_commit_message, validate_commit_message
from jj_spr.core.vcs import PreparedCommit

# Lower bound of the stack when formatting everything
TRUNK_REVSET = "trunk()"


def _needs_rewrite(ctx: SprContext, commit: PreparedCommit) -> bool:
    original = ctx.vcs.get_commit_message(commit.commit_id)
    return original.strip() != build_commit_message(commit.message).strip()


@click.command("format")
@click.option(
    "-r",
    "--revision",
    default="@",
    show_default=True,
    help="Jujutsu revision to format (with --all: the top of the range).",
)
@click.option(
    "-a",
    "--all",
    "all_commits",
    is_flag=True,
    help="Format every commit between trunk() and the revision.",
)
@click.pass_obj
def format_cmd(ctx: SprContext, revision: str, all_commits: bool) -> None:
    """Rewrite commit messages into the canonical section layout.

    Also checks that each message has what a pull request needs (a title,
    and a test plan unless spr.requireTestPlan is false).
    """
    revision = Ensure.not_blank(revision, "Revision")
    try:
        if all_commits:
            commits = ctx.vcs.prepare_range(ctx.config, TRUNK_REVSET, revision, inclusive=False)
        else:
            commits = [ctx.vcs.prepare_revision(ctx.config, revision)]

        failed = False
        for commit in commits:
            ctx.feedback.commit_title(commit.short_id, commit.title or "(no title)")
            try:
                warnings = validate_commit_message(
                    commit.message, require_test_plan=ctx.config.require_test_plan
                )
            except SprError as e:
                failed = True
                for message in e.messages:
                    ctx.feedback.step("💔", message)
                continue
            for warning in warnings:
                ctx.feedback.warning(warning)

            if _needs_rewrite(ctx, commit):
                commit.message_changed = True

        ctx.vcs.rewrite_messages(commits)
    except SprError as e:
        exit_with_error(e)

    if failed:
        raise SystemExit(1)
