"""Type definitions for GitHub operations."""

from dataclasses import dataclass
from typing import Literal

from jj_spr.core.config import GitHubBranch
from jj_spr.core.message import MessageSections

PullRequestState = Literal["OPEN", "CLOSED", "MERGED"]
ReviewStatus = Literal["APPROVED", "CHANGES_REQUESTED", "PENDING"]
Mergeable = Literal["MERGEABLE", "CONFLICTING", "UNKNOWN"]
MergeMethod = Literal["squash", "merge", "rebase"]


@dataclass(frozen=True)
class PullRequest:
    """A pull request as currently recorded on GitHub."""

    number: int
    state: PullRequestState
    title: str
    sections: MessageSections
    base: GitHubBranch
    head: GitHubBranch
    base_oid: str
    head_oid: str
    review_status: ReviewStatus | None = None
    mergeable: Mergeable = "UNKNOWN"


@dataclass(frozen=True)
class PullRequestMergeability:
    """GitHub's (asynchronously computed) verdict on merging a pull request.

    Only meaningful for the head commit it was computed against: compare
    head_oid with the expected head before trusting mergeable.
    """

    head_oid: str
    base: GitHubBranch
    mergeable: Mergeable
    # Test merge of head into base, present once mergeability is resolved
    merge_commit: str | None = None


@dataclass(frozen=True)
class PullRequestUpdate:
    """Partial update of a pull request. Fields left as None are unchanged."""

    base: str | None = None
    title: str | None = None
    body: str | None = None

    def is_empty(self) -> bool:
        return self.base is None and self.title is None and self.body is None


@dataclass(frozen=True)
class MergeResult:
    merged: bool
    sha: str | None = None
    message: str | None = None
