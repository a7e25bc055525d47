"""Fake GitHub operations for testing.

FakeGitHub is an in-memory implementation that accepts pre-configured state
in its constructor. Construct instances directly with keyword arguments.
"""

from dataclasses import dataclass
from pathlib import Path

from jj_spr.core.errors import NotFoundError, RemoteCallError
from jj_spr.core.github.abc import GitHub
from jj_spr.core.github.types import (
    MergeMethod,
    MergeResult,
    PullRequest,
    PullRequestMergeability,
    PullRequestUpdate,
)


@dataclass(frozen=True)
class MergeCall:
    number: int
    method: MergeMethod
    title: str
    body: str
    sha: str


class FakeGitHub(GitHub):
    """In-memory fake implementation of GitHub operations.

    This class has NO public setup methods. All state is provided via constructor
    using keyword arguments with sensible defaults (empty dicts).
    """

    def __init__(
        self,
        *,
        pull_requests: dict[int, PullRequest] | None = None,
        mergeability: dict[int, list[PullRequestMergeability]] | None = None,
        merge_results: dict[int, MergeResult] | None = None,
        merge_errors: dict[int, str] | None = None,
        update_errors: list[str | None] | None = None,
    ) -> None:
        """Create FakeGitHub with pre-configured state.

        Args:
            pull_requests: Mapping of number -> PullRequest
            mergeability: Mapping of number -> verdicts returned by successive
                get_pull_request_mergeability() calls. The last verdict repeats.
            merge_results: Mapping of number -> MergeResult
                (default: merged with sha "merge-<number>")
            merge_errors: Mapping of number -> message of a RemoteCallError
                raised by merge_pull_request()
            update_errors: Outcome of successive update_pull_request() calls:
                None succeeds, a string raises RemoteCallError with that message.
                Calls beyond the end of the list succeed.
        """
        self._pull_requests = pull_requests or {}
        self._mergeability = mergeability or {}
        self._merge_results = merge_results or {}
        self._merge_errors = merge_errors or {}
        self._update_errors = list(update_errors or [])

        self._get_pull_request_calls: list[int] = []
        self._mergeability_calls: list[int] = []
        self._update_attempts: list[tuple[int, PullRequestUpdate]] = []
        self._updated_pull_requests: list[tuple[int, PullRequestUpdate]] = []
        self._merge_calls: list[MergeCall] = []

    @property
    def get_pull_request_calls(self) -> list[int]:
        return self._get_pull_request_calls

    @property
    def mergeability_calls(self) -> list[int]:
        """Pull request numbers passed to get_pull_request_mergeability()."""
        return self._mergeability_calls

    @property
    def update_attempts(self) -> list[tuple[int, PullRequestUpdate]]:
        """Every update_pull_request() call, including ones that failed."""
        return self._update_attempts

    @property
    def updated_pull_requests(self) -> list[tuple[int, PullRequestUpdate]]:
        """Successful update_pull_request() calls as (number, update) tuples."""
        return self._updated_pull_requests

    @property
    def merge_calls(self) -> list[MergeCall]:
        """Every merge_pull_request() call, including ones that failed."""
        return self._merge_calls

    def get_pull_request(self, repo_root: Path, number: int) -> PullRequest:
        self._get_pull_request_calls.append(number)
        pull_request = self._pull_requests.get(number)
        if pull_request is None:
            raise NotFoundError(f"Pull Request #{number} does not exist")
        return pull_request

    def get_pull_request_mergeability(self, repo_root: Path, number: int) -> PullRequestMergeability:
        attempt = sum(1 for n in self._mergeability_calls if n == number)
        self._mergeability_calls.append(number)

        verdicts = self._mergeability.get(number)
        if not verdicts:
            raise RemoteCallError(f"No mergeability configured for Pull Request #{number}")
        return verdicts[min(attempt, len(verdicts) - 1)]

    def update_pull_request(self, repo_root: Path, number: int, update: PullRequestUpdate) -> None:
        attempt = len(self._update_attempts)
        self._update_attempts.append((number, update))

        if attempt < len(self._update_errors):
            error = self._update_errors[attempt]
            if error is not None:
                raise RemoteCallError(error)

        self._updated_pull_requests.append((number, update))

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
        self._merge_calls.append(MergeCall(number=number, method=method, title=title, body=body, sha=sha))

        error = self._merge_errors.get(number)
        if error is not None:
            raise RemoteCallError(error)

        return self._merge_results.get(number, MergeResult(merged=True, sha=f"merge-{number}"))
