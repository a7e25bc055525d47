"""Output utilities for CLI commands with clear intent.

user_output writes human-readable messages to stderr so that stdout stays
free for anything a script might want to parse.
"""

from typing import NoReturn

import click

from jj_spr.core.errors import SprError

ERROR_MARKER = "🛑"


def user_output(message: str = "", nl: bool = True) -> None:
    """Write a message for the user (to stderr)."""
    click.echo(message, nl=nl, err=True)


def format_step(icon: str, message: str) -> str:
    """Format a progress line; continuation lines are indented under the text."""
    first, *rest = message.split("\n")
    lines = [f"{icon}  {first}"]
    lines.extend(f"    {line}" if line else "" for line in rest)
    return "\n".join(lines)


def exit_with_error(error: SprError) -> NoReturn:
    """Print every message of an error and exit with status 1."""
    for message in error.messages:
        user_output(click.style(format_step(ERROR_MARKER, message), fg="red"))
    raise SystemExit(1)
