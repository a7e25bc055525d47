"""Fake git operations for testing.

FakeGit is an in-memory object store that accepts pre-configured commits,
refs and config in its constructor. Construct instances directly with
keyword arguments.
"""

from pathlib import Path

from jj_spr.core.git.abc import (
    EMPTY_TREE_ID,
    CommitInfo,
    Git,
    MergeTreeResult,
    PendingOperation,
    Signature,
)


def created_commit_id(n: int) -> str:
    """Id FakeGit assigns to the n-th commit created through commit_tree() (1-based)."""
    return f"created{n:034d}"


class FakePendingOperation(PendingOperation):
    def __init__(self, *, success: bool) -> None:
        self._success = success
        self._waited = False

    @property
    def waited(self) -> bool:
        return self._waited

    def wait(self) -> bool:
        self._waited = True
        return self._success


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    This class has NO public setup methods. All state is provided via constructor
    using keyword arguments with sensible defaults (empty dicts).

    Merges follow the trivial three-way rule on tree ids: when one side equals
    the merge base the other side wins, when both sides agree that tree wins.
    Anything else is looked up in merge_results and reported as a conflict
    when absent.
    """

    def __init__(
        self,
        *,
        commits: list[CommitInfo] | None = None,
        refs: dict[str, str] | None = None,
        config: dict[str, str] | None = None,
        merge_results: dict[tuple[str, str, str], MergeTreeResult] | None = None,
        failing_fetches: int = 0,
        push_error: str | None = None,
        failing_deletes: set[str] | None = None,
        merge_base_error: str | None = None,
        merge_tree_error: str | None = None,
        commit_tree_error: str | None = None,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            commits: Commit objects in the store
            refs: Mapping of ref name -> commit id
            config: Mapping of config key -> value
            merge_results: Mapping of (base tree, ours tree, theirs tree) -> result
                for merges the trivial rule cannot decide
            failing_fetches: Number of initial fetch() calls that raise RuntimeError
            push_error: If set, every push() raises RuntimeError with this message
            failing_deletes: Remote refs whose deletion reports failure
            merge_base_error: If set, every merge_base() raises RuntimeError with this message
            merge_tree_error: If set, every merge_trees() raises RuntimeError with this message
            commit_tree_error: If set, every commit_tree() raises RuntimeError with this message
        """
        self._commits = {commit.commit_id: commit for commit in commits or []}
        self._refs = dict(refs or {})
        self._config = config or {}
        self._merge_results = merge_results or {}
        self._failing_fetches = failing_fetches
        self._push_error = push_error
        self._failing_deletes = failing_deletes or set()
        self._merge_base_error = merge_base_error
        self._merge_tree_error = merge_tree_error
        self._commit_tree_error = commit_tree_error
        self._next_commit = 1

        self._fetch_calls: list[tuple[str, list[str]]] = []
        self._push_calls: list[tuple[str, list[str], bool]] = []
        self._created_commits: list[CommitInfo] = []
        self._deleted_remote_branches: list[tuple[str, str]] = []
        self._pending_operations: list[FakePendingOperation] = []

    @property
    def fetch_calls(self) -> list[tuple[str, list[str]]]:
        """Tracked fetch() calls as (remote, refspecs) tuples."""
        return self._fetch_calls

    @property
    def push_calls(self) -> list[tuple[str, list[str], bool]]:
        """Tracked push() calls as (remote, refspecs, atomic) tuples."""
        return self._push_calls

    @property
    def created_commits(self) -> list[CommitInfo]:
        """Commits created through commit_tree(), in creation order."""
        return self._created_commits

    @property
    def deleted_remote_branches(self) -> list[tuple[str, str]]:
        """Remote branch deletions started, as (remote, ref) tuples."""
        return self._deleted_remote_branches

    @property
    def pending_operations(self) -> list[FakePendingOperation]:
        return self._pending_operations

    def config_get(self, repo_root: Path, key: str) -> str | None:
        return self._config.get(key)

    def get_commit(self, repo_root: Path, commit_id: str) -> CommitInfo:
        commit = self._commits.get(commit_id)
        if commit is None:
            msg = f"Failed to read commit {commit_id}\nstderr: fatal: Not a valid object name"
            raise RuntimeError(msg)
        return commit

    def resolve_ref(self, repo_root: Path, ref: str) -> str | None:
        if ref in self._commits:
            return ref
        return self._refs.get(ref)

    def _ancestors(self, commit_id: str) -> list[str]:
        """Commit and its ancestors, breadth first."""
        seen: list[str] = []
        queue = [commit_id]
        while queue:
            current = queue.pop(0)
            if current in seen:
                continue
            seen.append(current)
            commit = self._commits.get(current)
            if commit is not None:
                queue.extend(commit.parent_ids)
        return seen

    def merge_base(self, repo_root: Path, commit_a: str, commit_b: str) -> str | None:
        if self._merge_base_error is not None:
            raise RuntimeError(self._merge_base_error)
        ancestors_of_a = set(self._ancestors(commit_a))
        for candidate in self._ancestors(commit_b):
            if candidate in ancestors_of_a:
                return candidate
        return None

    def _tree_of(self, object_id: str) -> str:
        commit = self._commits.get(object_id)
        if commit is not None:
            return commit.tree_id
        # Not a commit: treat as a tree id (e.g. the empty tree)
        return object_id

    def merge_trees(
        self,
        repo_root: Path,
        *,
        ours: str,
        theirs: str,
        base: str | None = None,
    ) -> MergeTreeResult:
        if self._merge_tree_error is not None:
            raise RuntimeError(self._merge_tree_error)
        if base is None:
            base = self.merge_base(repo_root, ours, theirs)
        base_tree = EMPTY_TREE_ID if base is None else self._tree_of(base)
        ours_tree = self._tree_of(ours)
        theirs_tree = self._tree_of(theirs)

        if ours_tree == theirs_tree or theirs_tree == base_tree:
            return MergeTreeResult(tree_id=ours_tree)
        if ours_tree == base_tree:
            return MergeTreeResult(tree_id=theirs_tree)

        configured = self._merge_results.get((base_tree, ours_tree, theirs_tree))
        if configured is not None:
            return configured
        return MergeTreeResult(tree_id=f"conflict-{ours_tree}-{theirs_tree}", conflicted_paths=("README.md",))

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
        if self._commit_tree_error is not None:
            raise RuntimeError(self._commit_tree_error)
        commit_id = created_commit_id(self._next_commit)
        self._next_commit += 1
        commit = CommitInfo(
            commit_id=commit_id,
            tree_id=tree_id,
            parent_ids=tuple(parent_ids),
            message=message,
            author=author,
            committer=committer,
        )
        self._commits[commit_id] = commit
        self._created_commits.append(commit)
        return commit_id

    def fetch(self, repo_root: Path, remote: str, refspecs: list[str]) -> None:
        self._fetch_calls.append((remote, list(refspecs)))
        if self._failing_fetches > 0:
            self._failing_fetches -= 1
            msg = f"Failed to fetch from {remote}\nstderr: fatal: remote error: upload-pack: not our ref"
            raise RuntimeError(msg)

    def push(self, repo_root: Path, remote: str, refspecs: list[str], *, atomic: bool) -> None:
        self._push_calls.append((remote, list(refspecs), atomic))
        if self._push_error is not None:
            raise RuntimeError(self._push_error)

    def start_delete_remote_branch(self, repo_root: Path, remote: str, ref: str) -> PendingOperation:
        self._deleted_remote_branches.append((remote, ref))
        operation = FakePendingOperation(success=ref not in self._failing_deletes)
        self._pending_operations.append(operation)
        return operation
