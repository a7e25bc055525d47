"""Subprocess execution with rich error context.

Every external command (jj, git, gh) goes through this module. Commands run
to completion with their output captured and fully drained; a failing command
or a missing binary surfaces as RuntimeError describing the operation that
was attempted.
"""

import logging
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


def _format_failure(
    cmd: Sequence[str],
    operation_context: str,
    returncode: int,
    stdout: str | None,
    stderr: str | None,
) -> str:
    cmd_str = " ".join(str(arg) for arg in cmd)
    error_msg = f"Failed to {operation_context}"
    error_msg += f"\nCommand: {cmd_str}"
    error_msg += f"\nExit code: {returncode}"

    if stdout and stdout.strip():
        error_msg += f"\nstdout: {stdout.strip()}"

    if stderr and stderr.strip():
        error_msg += f"\nstderr: {stderr.strip()}"

    return error_msg


def _format_not_found(cmd: Sequence[str], operation_context: str) -> str:
    cmd_str = " ".join(str(arg) for arg in cmd)
    error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
    error_msg += f"\nFull command: {cmd_str}"
    return error_msg


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    input: str | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute subprocess with enriched error reporting.

    Wraps subprocess.run() to catch CalledProcessError and re-raise as RuntimeError
    with operation context, stderr output, and command details.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description of operation
        cwd: Working directory for command execution
        check: Whether to raise on non-zero exit (default: True)
        env: Complete environment for the child process (default: inherit)
        input: Text passed to the child's stdin

    Returns:
        CompletedProcess instance from subprocess.run()

    Raises:
        RuntimeError: If command fails, or its binary cannot be launched
    """
    logger.debug("Running %s (%s)", " ".join(cmd), operation_context)
    try:
        return subprocess.run(
            list(cmd),
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=check,
            env=None if env is None else dict(env),
            input=input,
        )
    except subprocess.CalledProcessError as e:
        msg = _format_failure(cmd, operation_context, e.returncode, e.stdout, e.stderr)
        raise RuntimeError(msg) from e
    except FileNotFoundError as e:
        raise RuntimeError(_format_not_found(cmd, operation_context)) from e


@dataclass(frozen=True)
class BackgroundResult:
    """Outcome of a background process once it has been joined."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class BackgroundProcess:
    """A command launched without waiting for it.

    Output is captured through pipes which wait() drains completely before
    reporting the exit status.
    """

    def __init__(self, cmd: Sequence[str], popen: subprocess.Popen[str]) -> None:
        self._cmd = list(cmd)
        self._popen = popen
        self._result: BackgroundResult | None = None

    @property
    def cmd(self) -> list[str]:
        return self._cmd

    def wait(self) -> BackgroundResult:
        """Block until the process exits and return its captured output."""
        if self._result is None:
            stdout, stderr = self._popen.communicate()
            self._result = BackgroundResult(
                returncode=self._popen.returncode,
                stdout=stdout or "",
                stderr=stderr or "",
            )
            logger.debug("%s exited with %d", " ".join(self._cmd), self._result.returncode)
        return self._result


def start_background_process(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
) -> BackgroundProcess:
    """Launch a command and return immediately.

    Raises:
        RuntimeError: If the binary cannot be launched
    """
    logger.debug("Starting %s (%s)", " ".join(cmd), operation_context)
    try:
        popen = subprocess.Popen(
            list(cmd),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
        )
    except FileNotFoundError as e:
        raise RuntimeError(_format_not_found(cmd, operation_context)) from e
    return BackgroundProcess(cmd, popen)
