"""Jujutsu revision-control operations interface.

A deliberately narrow set of capabilities: resolve revsets, read change ids,
inspect the working copy, and rewrite commit descriptions. Everything content
related (trees, merges, new commit objects) goes through the Git gateway.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class WorkingCopyStatus:
    """Summary of ``jj status``."""

    is_clean: bool
    summary: str


class Jujutsu(ABC):
    """Abstract interface for jj operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    @abstractmethod
    def get_repo_root(self, cwd: Path) -> Path | None:
        """Root of the jj workspace containing cwd, or None outside of one."""
        ...

    @abstractmethod
    def log_commit_ids(self, repo_root: Path, revset: str) -> list[str]:
        """Commit ids matching a revset, in jj's native order (newest first).

        Raises:
            RuntimeError: If the revset cannot be evaluated
        """
        ...

    @abstractmethod
    def get_change_id(self, repo_root: Path, commit_id: str) -> str:
        """Change id of a commit.

        Unlike the commit id, the change id survives rewrites of the commit.
        """
        ...

    @abstractmethod
    def get_status(self, repo_root: Path) -> WorkingCopyStatus:
        """Whether the working copy has uncommitted changes."""
        ...

    @abstractmethod
    def describe(self, repo_root: Path, change_id: str, message: str) -> None:
        """Replace the description of a change.

        Raises:
            RuntimeError: If jj refuses the rewrite
        """
        ...

    @abstractmethod
    def config_get(self, repo_root: Path, key: str) -> str | None:
        """Read a jj config value, or None if unset."""
        ...
