"""Git object store operations interface.

jj-spr works in Jujutsu repositories that are colocated with git. Everything
that needs commit objects, trees or the network (fetch and push) goes through
git plumbing commands behind this interface.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- FakeGit: In-memory object store for tests
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

# Object id of the tree with no entries
EMPTY_TREE_ID = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


@dataclass(frozen=True)
class Signature:
    """Identity of a commit author or committer."""

    name: str
    email: str


@dataclass(frozen=True)
class CommitInfo:
    """A commit object as stored in git."""

    commit_id: str
    tree_id: str
    parent_ids: tuple[str, ...]
    message: str
    author: Signature
    committer: Signature


@dataclass(frozen=True)
class MergeTreeResult:
    """Outcome of a three-way merge performed without touching the worktree."""

    tree_id: str
    conflicted_paths: tuple[str, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicted_paths) > 0


class PendingOperation(ABC):
    """A git command running in the background."""

    @abstractmethod
    def wait(self) -> bool:
        """Block until the command finishes. Returns True on success."""
        ...


# ============================================================================
# Abstract Interface
# ============================================================================


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    @abstractmethod
    def config_get(self, repo_root: Path, key: str) -> str | None:
        """Read a git config value, or None if unset."""
        ...

    @abstractmethod
    def get_commit(self, repo_root: Path, commit_id: str) -> CommitInfo:
        """Read a commit object.

        Raises:
            RuntimeError: If the commit does not exist
        """
        ...

    @abstractmethod
    def resolve_ref(self, repo_root: Path, ref: str) -> str | None:
        """Resolve a ref name to a commit id, or None if it does not exist."""
        ...

    @abstractmethod
    def merge_base(self, repo_root: Path, commit_a: str, commit_b: str) -> str | None:
        """Best common ancestor of two commits, or None if they share no history."""
        ...

    @abstractmethod
    def merge_trees(
        self,
        repo_root: Path,
        *,
        ours: str,
        theirs: str,
        base: str | None = None,
    ) -> MergeTreeResult:
        """Three-way merge two commits and write the resulting tree.

        Args:
            repo_root: Repository root
            ours: Commit whose side is "ours"
            theirs: Commit whose side is "theirs"
            base: Commit or tree to use as merge base. If None, git computes the
                  merge base of ours and theirs.

        Returns:
            The written tree and any conflicted paths. Conflicts are reported,
            never resolved.
        """
        ...

    @abstractmethod
    def commit_tree(
        self,
        repo_root: Path,
        *,
        tree_id: str,
        parent_ids: list[str],
        message: str,
        author: Signature,
        committer: Signature,
    ) -> str:
        """Create a commit object with the current time as its timestamps.

        Returns:
            Id of the new commit
        """
        ...

    @abstractmethod
    def fetch(self, repo_root: Path, remote: str, refspecs: list[str]) -> None:
        """Fetch refspecs (or bare commit ids) from a remote.

        Raises:
            RuntimeError: If the fetch fails
        """
        ...

    @abstractmethod
    def push(self, repo_root: Path, remote: str, refspecs: list[str], *, atomic: bool) -> None:
        """Push refspecs to a remote without running hooks.

        Raises:
            RuntimeError: If the push fails
        """
        ...

    @abstractmethod
    def start_delete_remote_branch(self, repo_root: Path, remote: str, ref: str) -> PendingOperation:
        """Start deleting a branch on the remote without waiting for it."""
        ...
