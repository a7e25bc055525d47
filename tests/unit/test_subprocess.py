"""Tests for subprocess wrapper with rich error context."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from jj_spr.core.subprocess import run_subprocess_with_context, start_background_process


def test_success_case_returns_completed_process() -> None:
    """Test that successful subprocess execution returns CompletedProcess."""
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        mock_result = Mock(spec=subprocess.CompletedProcess)
        mock_result.returncode = 0
        mock_result.stdout = "success output"
        mock_result.stderr = ""
        mock_run.return_value = mock_result

        result = run_subprocess_with_context(
            ["jj", "status"],
            operation_context="check working copy status",
            cwd=Path("/repo"),
        )

        assert result == mock_result
        assert result.stdout == "success output"

        mock_run.assert_called_once_with(
            ["jj", "status"],
            cwd=Path("/repo"),
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=True,
            env=None,
            input=None,
        )


def test_failure_with_stderr_includes_stderr_in_error() -> None:
    """Test that subprocess failure with stderr includes stderr in error message."""
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = subprocess.CalledProcessError(
            returncode=1,
            cmd=["jj", "log", "-r", "nope"],
            stderr="Error: Revision `nope` doesn't exist",
        )

        with pytest.raises(RuntimeError) as exc_info:
            run_subprocess_with_context(
                ["jj", "log", "-r", "nope"],
                operation_context="resolve revision 'nope'",
                cwd=Path("/repo"),
            )

        error_message = str(exc_info.value)
        assert "Failed to resolve revision 'nope'" in error_message
        assert "Command: jj log -r nope" in error_message
        assert "Exit code: 1" in error_message
        assert "stderr: Error: Revision `nope` doesn't exist" in error_message


def test_failure_with_whitespace_stderr_omits_stderr_line() -> None:
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = subprocess.CalledProcessError(
            returncode=1,
            cmd=["command"],
            stderr="   \n  ",
        )

        with pytest.raises(RuntimeError) as exc_info:
            run_subprocess_with_context(["command"], operation_context="run command")

        error_message = str(exc_info.value)
        assert "Exit code: 1" in error_message
        assert "stderr:" not in error_message


def test_missing_binary_raises_runtime_error() -> None:
    """A binary that cannot be launched surfaces as RuntimeError, not FileNotFoundError."""
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'jj'")

        with pytest.raises(RuntimeError) as exc_info:
            run_subprocess_with_context(["jj", "root"], operation_context="find repository root")

        assert "Command not found while trying to find repository root: jj" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)


def test_exception_chaining_preserved() -> None:
    """Test that original CalledProcessError is preserved via exception chaining."""
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        original_error = subprocess.CalledProcessError(
            returncode=1,
            cmd=["git", "fetch"],
            stderr="fatal: could not read from remote repository",
        )
        mock_run.side_effect = original_error

        with pytest.raises(RuntimeError) as exc_info:
            run_subprocess_with_context(["git", "fetch"], operation_context="fetch from origin")

        assert exc_info.value.__cause__ is original_error


def test_check_false_behavior_no_exception() -> None:
    """Test that check=False prevents exception on non-zero exit."""
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        mock_result = Mock(spec=subprocess.CompletedProcess)
        mock_result.returncode = 1
        mock_result.stderr = "some error"
        mock_run.return_value = mock_result

        result = run_subprocess_with_context(
            ["git", "merge-tree"],
            operation_context="merge",
            check=False,
        )

        assert result.returncode == 1


def test_env_and_input_are_passed_through() -> None:
    with patch("jj_spr.core.subprocess.subprocess.run") as mock_run:
        mock_run.return_value = Mock(spec=subprocess.CompletedProcess)

        run_subprocess_with_context(
            ["git", "commit-tree", "tree"],
            operation_context="create commit",
            env={"GIT_AUTHOR_NAME": "Alice"},
            input="message\n",
        )

        kwargs = mock_run.call_args.kwargs
        assert kwargs["env"] == {"GIT_AUTHOR_NAME": "Alice"}
        assert kwargs["input"] == "message\n"


def test_background_process_drains_output_on_wait() -> None:
    with patch("jj_spr.core.subprocess.subprocess.Popen") as mock_popen:
        popen = mock_popen.return_value
        popen.communicate.return_value = ("", "error: unable to delete 'spr/x': remote ref does not exist")
        popen.returncode = 1

        process = start_background_process(
            ["git", "push", "--no-verify", "--delete", "--", "origin", "refs/heads/spr/x"],
            operation_context="delete branch",
        )
        result = process.wait()

        assert not result.success
        assert "remote ref does not exist" in result.stderr
        # A second wait returns the same outcome without touching the process again
        assert process.wait() is result
        popen.communicate.assert_called_once_with()


def test_background_process_missing_binary_raises_runtime_error() -> None:
    with patch("jj_spr.core.subprocess.subprocess.Popen") as mock_popen:
        mock_popen.side_effect = FileNotFoundError("git")

        with pytest.raises(RuntimeError, match="Command not found while trying to delete branch: git"):
            start_background_process(["git", "push"], operation_context="delete branch")
