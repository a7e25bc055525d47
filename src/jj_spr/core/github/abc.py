"""Abstract interface for the GitHub pull request operations spr needs."""

from abc import ABC, abstractmethod
from pathlib import Path

from jj_spr.core.github.types import (
    MergeMethod,
    MergeResult,
    PullRequest,
    PullRequestMergeability,
    PullRequestUpdate,
)


class GitHub(ABC):
    """Abstract interface for GitHub operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.

    Failures are reported as RemoteCallError (NotFoundError for a pull
    request that does not exist).
    """

    @abstractmethod
    def get_pull_request(self, repo_root: Path, number: int) -> PullRequest:
        """Fetch the current state of a pull request.

        Args:
            repo_root: Repository root directory
            number: Pull request number

        Returns:
            The pull request, with its body parsed into sections

        Raises:
            NotFoundError: If the pull request does not exist
            RemoteCallError: If GitHub cannot be reached
        """
        ...

    @abstractmethod
    def get_pull_request_mergeability(self, repo_root: Path, number: int) -> PullRequestMergeability:
        """Fetch GitHub's current mergeability verdict.

        Read-only. The verdict may be "UNKNOWN" while GitHub is still
        computing it; callers poll.

        Raises:
            RemoteCallError: If GitHub cannot be reached
        """
        ...

    @abstractmethod
    def update_pull_request(self, repo_root: Path, number: int, update: PullRequestUpdate) -> None:
        """Apply a partial update. Fields left unset in update are unchanged.

        Raises:
            RemoteCallError: If the update is rejected or GitHub cannot be reached
        """
        ...

    @abstractmethod
    def merge_pull_request(
        self,
        repo_root: Path,
        number: int,
        *,
        method: MergeMethod,
        title: str,
        body: str,
        sha: str,
    ) -> MergeResult:
        """Ask GitHub to merge a pull request.

        Args:
            repo_root: Repository root directory
            number: Pull request number
            method: Merge method
            title: Title of the resulting commit
            body: Message body of the resulting commit
            sha: Head commit the merge is for. GitHub refuses the merge if the
                 head has moved since.

        Returns:
            GitHub's answer, which may be merged=False

        Raises:
            RemoteCallError: If GitHub cannot be reached or rejects the request
        """
        ...
