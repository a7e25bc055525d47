"""Production Jujutsu implementation using subprocess."""

import os
import subprocess
from pathlib import Path

from jj_spr.core.jujutsu.abc import Jujutsu, WorkingCopyStatus
from jj_spr.core.subprocess import run_subprocess_with_context

# Markers jj prints when the working copy commit has no changes
_CLEAN_MARKERS = ("The working copy has no changes", "No changes.")


def jj_binary() -> str:
    """The jj executable, overridable through the JJ environment variable."""
    return os.environ.get("JJ", "jj")


def is_clean_status(output: str) -> bool:
    stripped = output.strip()
    if not stripped:
        return True
    return any(marker in stripped for marker in _CLEAN_MARKERS)


class RealJujutsu(Jujutsu):
    """Production implementation using subprocess.

    All operations execute actual jj commands via subprocess.
    """

    def get_repo_root(self, cwd: Path) -> Path | None:
        result = subprocess.run(
            [jj_binary(), "root"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return Path(result.stdout.strip())

    def log_commit_ids(self, repo_root: Path, revset: str) -> list[str]:
        result = run_subprocess_with_context(
            [jj_binary(), "log", "--no-graph", "-r", revset, "--template", 'commit_id ++ "\\n"'],
            operation_context=f"resolve revision '{revset}'",
            cwd=repo_root,
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_change_id(self, repo_root: Path, commit_id: str) -> str:
        result = run_subprocess_with_context(
            [jj_binary(), "log", "--no-graph", "-r", commit_id, "--template", "change_id"],
            operation_context=f"get change id of {commit_id}",
            cwd=repo_root,
        )
        return result.stdout.strip()

    def get_status(self, repo_root: Path) -> WorkingCopyStatus:
        result = run_subprocess_with_context(
            [jj_binary(), "status"],
            operation_context="check working copy status",
            cwd=repo_root,
        )
        return WorkingCopyStatus(is_clean=is_clean_status(result.stdout), summary=result.stdout.strip())

    def describe(self, repo_root: Path, change_id: str, message: str) -> None:
        run_subprocess_with_context(
            [jj_binary(), "describe", "-r", change_id, "-m", message],
            operation_context=f"update description of {change_id}",
            cwd=repo_root,
        )

    def config_get(self, repo_root: Path, key: str) -> str | None:
        result = subprocess.run(
            [jj_binary(), "config", "get", key],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()
