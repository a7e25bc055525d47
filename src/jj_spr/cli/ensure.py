"""CLI argument checks with styled output.

All errors use the same red marker as operation failures, so that a bad
invocation and a failed operation look alike to the user.
"""

import click

from jj_spr.cli.output import ERROR_MARKER, format_step, user_output


class Ensure:
    """Helper class for asserting invariants with consistent error handling."""

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            user_output(click.style(format_step(ERROR_MARKER, error_message), fg="red"))
            raise SystemExit(1)

    @staticmethod
    def not_blank(value: str, what: str) -> str:
        """Ensure a string option has non-whitespace content.

        Returns:
            The value, stripped
        """
        stripped = value.strip()
        Ensure.invariant(bool(stripped), f"{what} must not be empty")
        return stripped
