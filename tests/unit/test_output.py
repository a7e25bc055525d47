"""Tests for CLI output helpers and error messages."""

import pytest
from click.testing import CliRunner

from jj_spr.cli.output import exit_with_error, format_step
from jj_spr.core.errors import SprError
from jj_spr.core.user_feedback import InteractiveFeedback, SuppressedFeedback


def test_format_step_indents_continuation_lines() -> None:
    assert format_step("🛑", "Something failed\nM src/app.py\n\nA new.txt") == (
        "🛑  Something failed\n    M src/app.py\n\n    A new.txt"
    )


def test_spr_error_keeps_messages_in_order() -> None:
    error = SprError("merge failed")
    error.push("rollback failed")

    assert error.messages == ["merge failed", "rollback failed"]
    assert str(error) == "merge failed\nrollback failed"


def test_spr_error_messages_is_a_copy() -> None:
    error = SprError("merge failed")

    error.messages.append("ignored")

    assert error.messages == ["merge failed"]


def test_exit_with_error_prints_every_message(capsys: pytest.CaptureFixture[str]) -> None:
    error = SprError("merge failed")
    error.push("rollback failed")

    with pytest.raises(SystemExit) as exc_info:
        exit_with_error(error)

    assert exc_info.value.code == 1
    stderr = capsys.readouterr().err
    assert "merge failed" in stderr
    assert "rollback failed" in stderr
    assert stderr.index("merge failed") < stderr.index("rollback failed")


def test_suppressed_feedback_only_shows_warnings(capsys: pytest.CaptureFixture[str]) -> None:
    feedback = SuppressedFeedback()

    feedback.step("🛫", "Getting started...")
    feedback.commit_title("a1b2c3d", "Add retry")
    feedback.warning("Please rebase")

    stderr = capsys.readouterr().err
    assert "Getting started" not in stderr
    assert "Add retry" not in stderr
    assert "Please rebase" in stderr


def test_interactive_feedback_shows_steps(capsys: pytest.CaptureFixture[str]) -> None:
    InteractiveFeedback().step("🛬", "Landed!")

    assert "🛬  Landed!" in capsys.readouterr().err


def test_cli_help_lists_commands() -> None:
    from jj_spr.cli.cli import cli

    runner = CliRunner()
    result = runner.invoke(cli, ["--help"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "land" in result.output
    assert "format" in result.output
