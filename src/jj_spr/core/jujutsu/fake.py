"""Fake Jujutsu operations for testing.

FakeJujutsu is an in-memory implementation that accepts pre-configured state
in its constructor. Construct instances directly with keyword arguments.
"""

from pathlib import Path

from jj_spr.core.jujutsu.abc import Jujutsu, WorkingCopyStatus


class FakeJujutsu(Jujutsu):
    """In-memory fake implementation of jj operations.

    This class has NO public setup methods. All state is provided via constructor
    using keyword arguments with sensible defaults.
    """

    def __init__(
        self,
        *,
        repo_root: Path | None = None,
        revsets: dict[str, list[str]] | None = None,
        change_ids: dict[str, str] | None = None,
        status: WorkingCopyStatus | None = None,
        config: dict[str, str] | None = None,
        describe_errors: dict[str, str] | None = None,
        status_error: str | None = None,
        change_id_error: str | None = None,
    ) -> None:
        """Create FakeJujutsu with pre-configured state.

        Args:
            repo_root: Workspace root reported by get_repo_root()
            revsets: Mapping of revset -> commit ids, newest first (jj's order).
                Unknown revsets raise RuntimeError like jj does.
            change_ids: Mapping of commit id -> change id
            status: Working copy status (default: clean)
            config: Mapping of config key -> value
            describe_errors: Mapping of change id -> error message raised by describe()
            status_error: If set, get_status() raises RuntimeError with this message
            change_id_error: If set, get_change_id() raises RuntimeError with this message
        """
        self._repo_root = repo_root
        self._revsets = revsets or {}
        self._change_ids = change_ids or {}
        self._status = status or WorkingCopyStatus(is_clean=True, summary="")
        self._config = config or {}
        self._describe_errors = describe_errors or {}
        self._status_error = status_error
        self._change_id_error = change_id_error
        self._describe_calls: list[tuple[str, str]] = []
        self._log_calls: list[str] = []

    @property
    def describe_calls(self) -> list[tuple[str, str]]:
        """Tracked describe() calls as (change_id, message) tuples."""
        return self._describe_calls

    @property
    def log_calls(self) -> list[str]:
        """Revsets passed to log_commit_ids(), in call order."""
        return self._log_calls

    def get_repo_root(self, cwd: Path) -> Path | None:
        return self._repo_root

    def log_commit_ids(self, repo_root: Path, revset: str) -> list[str]:
        self._log_calls.append(revset)
        if revset in self._revsets:
            return list(self._revsets[revset])
        if revset in self._change_ids:
            return [revset]
        msg = f"Failed to resolve revision '{revset}'\nstderr: Error: Revision `{revset}` doesn't exist"
        raise RuntimeError(msg)

    def get_change_id(self, repo_root: Path, commit_id: str) -> str:
        if self._change_id_error is not None:
            raise RuntimeError(self._change_id_error)
        return self._change_ids.get(commit_id, f"change-{commit_id}")

    def get_status(self, repo_root: Path) -> WorkingCopyStatus:
        if self._status_error is not None:
            raise RuntimeError(self._status_error)
        return self._status

    def describe(self, repo_root: Path, change_id: str, message: str) -> None:
        error = self._describe_errors.get(change_id)
        if error is not None:
            raise RuntimeError(error)
        self._describe_calls.append((change_id, message))

    def config_get(self, repo_root: Path, key: str) -> str | None:
        return self._config.get(key)
