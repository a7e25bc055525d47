"""Production GitHub implementation using the gh CLI.

Authentication is whatever ``gh auth login`` set up; spr never handles
tokens itself.
"""

import json
import logging
from pathlib import Path
from typing import Any

from jj_spr.core.config import Config, GitHubBranch
from jj_spr.core.errors import NotFoundError, RemoteCallError
from jj_spr.core.github.abc import GitHub
from jj_spr.core.github.types import (
    Mergeable,
    MergeMethod,
    MergeResult,
    PullRequest,
    PullRequestMergeability,
    PullRequestState,
    PullRequestUpdate,
    ReviewStatus,
)
from jj_spr.core.message import MessageSection, parse_message
from jj_spr.core.subprocess import run_subprocess_with_context

logger = logging.getLogger(__name__)

PULL_REQUEST_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      number
      state
      title
      body
      baseRefName
      headRefName
      baseRefOid
      headRefOid
      reviewDecision
      mergeable
    }
  }
}
"""

_NOT_FOUND_MARKERS = ("Could not resolve to a PullRequest", "(HTTP 404)")

_REVIEW_STATUS: dict[str, ReviewStatus] = {
    "APPROVED": "APPROVED",
    "CHANGES_REQUESTED": "CHANGES_REQUESTED",
    "REVIEW_REQUIRED": "PENDING",
}


def _parse_state(value: str) -> PullRequestState:
    if value == "OPEN":
        return "OPEN"
    if value == "MERGED":
        return "MERGED"
    return "CLOSED"


def _parse_mergeable(value: str | None) -> Mergeable:
    if value == "MERGEABLE":
        return "MERGEABLE"
    if value == "CONFLICTING":
        return "CONFLICTING"
    return "UNKNOWN"


class RealGitHub(GitHub):
    """Production implementation using gh CLI.

    All GitHub operations execute actual gh commands via subprocess.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    def _run_gh(self, cmd: list[str], repo_root: Path, operation: str) -> Any:
        """Run a gh command and parse its JSON output.

        Encapsulates the third-party error boundary for gh CLI operations.

        Raises:
            NotFoundError: If GitHub reports the pull request does not exist
            RemoteCallError: For any other failure, including unparseable output
        """
        try:
            result = run_subprocess_with_context(cmd, operation_context=operation, cwd=repo_root)
        except RuntimeError as e:
            not_found = any(marker in str(e) for marker in _NOT_FOUND_MARKERS)
            error_class = NotFoundError if not_found else RemoteCallError
            error = error_class(f"GitHub request failed: {operation}")
            error.push(str(e))
            raise error from e

        if not result.stdout.strip():
            return {}
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise RemoteCallError(f"GitHub returned invalid JSON while trying to {operation}") from e

    def _graphql(self, repo_root: Path, query: str, number: int, operation: str) -> dict[str, Any]:
        cmd = [
            "gh",
            "api",
            "graphql",
            "-f",
            f"query={query}",
            "-f",
            f"owner={self._config.owner}",
            "-f",
            f"repo={self._config.repo}",
            "-F",
            f"number={number}",
        ]
        data = self._run_gh(cmd, repo_root, operation)

        # LBYL: walk the response instead of trusting its shape
        repository = (data.get("data") or {}).get("repository") if isinstance(data, dict) else None
        if repository is None:
            raise RemoteCallError(f"GitHub returned no repository data while trying to {operation}")
        pull_request = repository.get("pullRequest")
        if pull_request is None:
            raise NotFoundError(f"Pull Request #{number} does not exist")
        return pull_request

    def _branch(self, name: str) -> GitHubBranch:
        return self._config.new_github_branch(name)

    def get_pull_request(self, repo_root: Path, number: int) -> PullRequest:
        data = self._graphql(repo_root, PULL_REQUEST_QUERY, number, f"load Pull Request #{number}")

        title = data.get("title") or ""
        sections = parse_message(data.get("body") or "", MessageSection.SUMMARY)
        sections[MessageSection.TITLE] = title
        pull_request_url = self._config.pull_request_url(number)
        sections[MessageSection.PULL_REQUEST] = pull_request_url

        review_decision = data.get("reviewDecision")
        return PullRequest(
            number=number,
            state=_parse_state(data.get("state", "")),
            title=title,
            sections=sections,
            base=self._branch(data["baseRefName"]),
            head=self._branch(data["headRefName"]),
            base_oid=data["baseRefOid"],
            head_oid=data["headRefOid"],
            review_status=None if review_decision is None else _REVIEW_STATUS.get(review_decision),
            mergeable=_parse_mergeable(data.get("mergeable")),
        )

    def get_pull_request_mergeability(self, repo_root: Path, number: int) -> PullRequestMergeability:
        # REST exposes merge_commit_sha, the test merge GitHub computed for an open PR
        cmd = ["gh", "api", f"repos/{self._config.owner}/{self._config.repo}/pulls/{number}"]
        data = self._run_gh(cmd, repo_root, f"check mergeability of Pull Request #{number}")

        # LBYL: Validate required keys before accessing
        head = data.get("head") or {}
        base = data.get("base") or {}
        if "sha" not in head or "ref" not in base:
            raise RemoteCallError(f"GitHub returned incomplete data for Pull Request #{number}")

        mergeable = data.get("mergeable")
        verdict: Mergeable
        if mergeable is None:
            verdict = "UNKNOWN"
        elif mergeable:
            verdict = "MERGEABLE"
        else:
            verdict = "CONFLICTING"

        return PullRequestMergeability(
            head_oid=head["sha"],
            base=self._branch(base["ref"]),
            mergeable=verdict,
            merge_commit=data.get("merge_commit_sha"),
        )

    def update_pull_request(self, repo_root: Path, number: int, update: PullRequestUpdate) -> None:
        if update.is_empty():
            return

        cmd = [
            "gh",
            "api",
            "--method",
            "PATCH",
            f"repos/{self._config.owner}/{self._config.repo}/pulls/{number}",
        ]
        if update.base is not None:
            cmd.extend(["-f", f"base={update.base}"])
        if update.title is not None:
            cmd.extend(["-f", f"title={update.title}"])
        if update.body is not None:
            cmd.extend(["-f", f"body={update.body}"])

        self._run_gh(cmd, repo_root, f"update Pull Request #{number}")
        logger.debug("Updated Pull Request #%d: %s", number, update)

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
        cmd = [
            "gh",
            "api",
            "--method",
            "PUT",
            f"repos/{self._config.owner}/{self._config.repo}/pulls/{number}/merge",
            "-f",
            f"merge_method={method}",
            "-f",
            f"commit_title={title}",
            "-f",
            f"commit_message={body}",
            "-f",
            f"sha={sha}",
        ]
        data = self._run_gh(cmd, repo_root, f"merge Pull Request #{number}")
        return MergeResult(
            merged=bool(data.get("merged", False)),
            sha=data.get("sha"),
            message=data.get("message"),
        )
