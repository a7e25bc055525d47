"""Landing a single pull request.

The land protocol merges the pull request of one local commit into the
integration branch. It only lets GitHub merge when the result is exactly the
tree obtained by cherry-picking the local commit onto the current integration
branch tip, which is what was tested locally.

Phases, in order:

    START -> VALIDATED -> MASTER_FETCHED -> BASE_RECONCILED
          -> POLLING_MERGEABILITY -> MERGED -> CLEANING_UP -> DONE

A failure while polling or merging goes MERGE_FAILED -> ROLLED_BACK instead,
undoing the only remote mutation that precedes the merge: retargeting the
pull request's base branch. Validation failures abort before anything on
GitHub has changed. Cleanup is best effort and never fails a landed merge.

A run that was interrupted after retargeting leaves the pull request based
on the integration branch. The next run starts from the pull request's base
as GitHub reports it, so it skips the retarget and has nothing to roll back.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import TypeVar

from jj_spr.core.context import SprContext
from jj_spr.core.errors import (
    AlreadyClosedError,
    CherryPickConflictError,
    ConcurrentUpdateError,
    MergeabilityTimeoutError,
    MergeFailedError,
    NoPullRequestError,
    NotApprovedError,
    NotMergeableError,
    PreconditionError,
    RemoteCallError,
    SprError,
    TreeMismatchError,
)
from jj_spr.core.git.abc import EMPTY_TREE_ID, PendingOperation
from jj_spr.core.github.types import MergeResult, PullRequest, PullRequestUpdate
from jj_spr.core.message import build_github_body_for_merging
from jj_spr.core.retry import retry_with_backoff
from jj_spr.core.vcs import PreparedCommit

logger = logging.getLogger(__name__)

MERGEABILITY_ATTEMPTS = 10
MERGEABILITY_DELAY_SECONDS = 1.0
FETCH_ATTEMPTS = 3

LANDED_VERSION_MESSAGE = "[spr] landed version\n\nCreated using jj-spr land\n"

STALE_PULL_REQUEST_MESSAGE = (
    "This commit has been updated and/or rebased since the pull request was "
    "last updated. Please run `jj-spr diff` to update the pull request and "
    "then try `jj-spr land` again!"
)


class LandPhase(Enum):
    START = "start"
    VALIDATED = "validated"
    MASTER_FETCHED = "master_fetched"
    BASE_RECONCILED = "base_reconciled"
    POLLING_MERGEABILITY = "polling_mergeability"
    MERGED = "merged"
    MERGE_FAILED = "merge_failed"
    ROLLED_BACK = "rolled_back"
    CLEANING_UP = "cleaning_up"
    DONE = "done"


@dataclass(frozen=True)
class LandState:
    """Everything the protocol has established so far.

    Each phase returns a new state via dataclasses.replace().
    """

    phase: LandPhase
    revision: str
    commit: PreparedCommit | None = None
    pull_request: PullRequest | None = None
    master_oid: str | None = None
    cherry_pick_tree: str | None = None
    # Head the merge must be for: the validated head, or the landed version pushed on top of it
    expected_head: str | None = None
    base_retargeted: bool = False
    merge: MergeResult | None = None
    merge_commit_fetched: bool = False


@dataclass(frozen=True)
class LandResult:
    pull_request_number: int
    merge_commit: str | None
    merge_commit_fetched: bool


T = TypeVar("T")


def _require(value: T | None, what: str) -> T:
    if value is None:
        msg = f"Land protocol reached a phase without {what}"
        raise RuntimeError(msg)
    return value


# ============================================================================
# START -> VALIDATED
# ============================================================================


def validate(ctx: SprContext, state: LandState) -> LandState:
    """Check every precondition. Nothing on GitHub is changed here."""
    ctx.vcs.check_clean()

    commit = ctx.vcs.prepare_revision(ctx.config, state.revision)
    ctx.feedback.commit_title(commit.short_id, commit.title or "(no title)")

    number = commit.pull_request_number
    if number is None:
        raise NoPullRequestError("This commit does not refer to a Pull Request.")
    ctx.feedback.step("#️⃣ ", f"Pull Request #{number}")

    pull_request = ctx.github.get_pull_request(ctx.repo_root, number)

    if pull_request.state != "OPEN":
        raise AlreadyClosedError(f"This Pull Request is already {pull_request.state.lower()}!")

    if ctx.config.require_approval and pull_request.review_status != "APPROVED":
        raise NotApprovedError("This Pull Request has not been approved on GitHub.")

    return replace(
        state,
        phase=LandPhase.VALIDATED,
        commit=commit,
        pull_request=pull_request,
        expected_head=pull_request.head_oid,
    )


# ============================================================================
# VALIDATED -> MASTER_FETCHED
# ============================================================================


def fetch_master(ctx: SprContext, state: LandState) -> LandState:
    """Fetch the integration branch tip and the pull request's commits."""
    pull_request = _require(state.pull_request, "a pull request")
    master_ref = ctx.config.master_ref

    refspecs = [master_ref.on_github, pull_request.head_oid]
    if not pull_request.base.is_master_branch:
        refspecs.append(pull_request.base_oid)

    try:
        ctx.git.fetch(ctx.repo_root, ctx.config.remote_name, refspecs)
    except RuntimeError as e:
        error = RemoteCallError("git fetch failed")
        error.push(str(e))
        raise error from e

    master_oid = ctx.vcs.resolve_ref(master_ref.local)
    if master_oid is None:
        raise RemoteCallError(f"Could not find {master_ref.local} after fetching")
    logger.debug("%s is at %s", master_ref.local, master_oid)

    return replace(state, phase=LandPhase.MASTER_FETCHED, master_oid=master_oid)


# ============================================================================
# MASTER_FETCHED -> BASE_RECONCILED
# ============================================================================


def _check_parent_landed(ctx: SprContext, commit: PreparedCommit, master_oid: str) -> None:
    """Without --cherry-pick, a pull request against trunk needs its parent landed."""
    if commit.parent_id == commit.commit_id:
        return
    if ctx.vcs.merge_base(commit.parent_id, master_oid) == commit.parent_id:
        return
    raise PreconditionError(
        "The parent of this commit is not part of "
        f"{ctx.config.master_ref.name} yet. Land the commits below it first, "
        "or pass --cherry-pick if this Pull Request was created with cherry-picking."
    )


def _landed_version_needed(ctx: SprContext, pull_request: PullRequest, master_oid: str) -> bool:
    """Whether the base branch holds changes GitHub would show as part of this PR.

    That is the case when the base branch differs from the point where the
    pull request branched off the integration branch, i.e. it contains
    commits that have since landed.
    """
    fork_point = ctx.vcs.merge_base(pull_request.head_oid, master_oid)
    fork_tree = EMPTY_TREE_ID if fork_point is None else ctx.vcs.get_tree_id(fork_point)
    return ctx.vcs.get_tree_id(pull_request.base_oid) != fork_tree


def reconcile_base(ctx: SprContext, state: LandState, *, cherry_pick: bool) -> LandState:
    """Prove the merge result matches the local commit, then target trunk."""
    commit = _require(state.commit, "a prepared commit")
    pull_request = _require(state.pull_request, "a pull request")
    master_oid = _require(state.master_oid, "the integration branch tip")
    master_ref = ctx.config.master_ref

    if pull_request.base.is_master_branch and not cherry_pick:
        _check_parent_landed(ctx, commit, master_oid)

    cherry_picked = ctx.vcs.cherrypick(commit.commit_id, master_oid)
    if cherry_picked.has_conflicts:
        error = CherryPickConflictError(
            f"This commit cannot be applied on top of the {master_ref.name} branch. "
            "Please rebase this commit on top of current "
            f"{ctx.config.remote_name}/{master_ref.name}."
        )
        error.push("Conflicting files: " + ", ".join(cherry_picked.conflicted_paths))
        raise error

    # What GitHub would produce: the pull request head merged into trunk
    github_merge = ctx.vcs.merge_commits(master_oid, pull_request.head_oid)
    if github_merge.has_conflicts or github_merge.tree_id != cherry_picked.tree_id:
        raise TreeMismatchError(STALE_PULL_REQUEST_MESSAGE)

    state = replace(state, cherry_pick_tree=cherry_picked.tree_id)

    if pull_request.base.is_master_branch:
        return replace(state, phase=LandPhase.BASE_RECONCILED)

    expected_head = _require(state.expected_head, "an expected head")
    if _landed_version_needed(ctx, pull_request, master_oid):
        # Merge trunk into the PR branch so that only this commit's change
        # remains in the PR diff. The tree is the cherry-picked one, so the
        # PR content does not change.
        expected_head = ctx.vcs.create_derived_commit(
            pull_request.head_oid,
            LANDED_VERSION_MESSAGE,
            cherry_picked.tree_id,
            [pull_request.head_oid, master_oid],
        )
        try:
            ctx.git.push(
                ctx.repo_root,
                ctx.config.remote_name,
                [f"{expected_head}:{pull_request.head.on_github}"],
                atomic=True,
            )
        except RuntimeError as e:
            error = RemoteCallError("git push failed")
            error.push(str(e))
            raise error from e
        logger.debug("Pushed landed version %s to %s", expected_head, pull_request.head.on_github)

    ctx.github.update_pull_request(
        ctx.repo_root, pull_request.number, PullRequestUpdate(base=master_ref.name)
    )

    return replace(
        state,
        phase=LandPhase.BASE_RECONCILED,
        expected_head=expected_head,
        base_retargeted=True,
    )


# ============================================================================
# BASE_RECONCILED -> POLLING_MERGEABILITY
# ============================================================================


def _verify_merge_commit(ctx: SprContext, merge_commit: str, cherry_pick_tree: str) -> None:
    """GitHub's test merge must have the tree we tested."""
    try:
        ctx.git.fetch(ctx.repo_root, ctx.config.remote_name, [merge_commit])
    except RuntimeError as e:
        error = RemoteCallError("git fetch failed")
        error.push(str(e))
        raise error from e

    if ctx.vcs.get_tree_id(merge_commit) != cherry_pick_tree:
        raise TreeMismatchError(STALE_PULL_REQUEST_MESSAGE)


def await_mergeability(ctx: SprContext, state: LandState) -> LandState:
    """Poll until GitHub has decided whether the pull request can merge.

    GitHub computes mergeability asynchronously after every change to the
    pull request, so a fresh retarget usually reports UNKNOWN at first.
    """
    pull_request = _require(state.pull_request, "a pull request")
    expected_head = _require(state.expected_head, "an expected head")
    cherry_pick_tree = _require(state.cherry_pick_tree, "a cherry-picked tree")
    state = replace(state, phase=LandPhase.POLLING_MERGEABILITY)

    for attempt in range(1, MERGEABILITY_ATTEMPTS + 1):
        mergeability = ctx.github.get_pull_request_mergeability(ctx.repo_root, pull_request.number)
        logger.debug(
            "Mergeability attempt %d: %s against %s (head %s)",
            attempt,
            mergeability.mergeable,
            mergeability.base.name,
            mergeability.head_oid,
        )

        if mergeability.head_oid != expected_head:
            raise ConcurrentUpdateError(
                "The Pull Request seems to have been updated externally. Please try again!"
            )

        if mergeability.base.is_master_branch and mergeability.mergeable != "UNKNOWN":
            if mergeability.mergeable == "CONFLICTING":
                raise NotMergeableError(
                    "GitHub concluded the Pull Request is not mergeable at this point. "
                    "Please rebase your changes and try again!"
                )
            if mergeability.merge_commit is not None:
                _verify_merge_commit(ctx, mergeability.merge_commit, cherry_pick_tree)
            return state

        if attempt < MERGEABILITY_ATTEMPTS:
            ctx.time.sleep(MERGEABILITY_DELAY_SECONDS)

    raise MergeabilityTimeoutError("GitHub Pull Request did not update. Please try again!")


# ============================================================================
# POLLING_MERGEABILITY -> MERGED
# ============================================================================


def merge(ctx: SprContext, state: LandState) -> LandState:
    """Squash-merge the validated head."""
    pull_request = _require(state.pull_request, "a pull request")
    expected_head = _require(state.expected_head, "an expected head")

    result = ctx.github.merge_pull_request(
        ctx.repo_root,
        pull_request.number,
        method="squash",
        title=pull_request.title,
        body=build_github_body_for_merging(pull_request.sections),
        sha=expected_head,
    )
    if not result.merged:
        raise MergeFailedError(f"GitHub Pull Request merge failed: {result.message or ''}".rstrip())

    return replace(state, phase=LandPhase.MERGED, merge=result)


# ============================================================================
# MERGE_FAILED -> ROLLED_BACK
# ============================================================================


def roll_back(ctx: SprContext, state: LandState, error: SprError) -> LandState:
    """Restore the original base. Failures are appended to error."""
    state = replace(state, phase=LandPhase.MERGE_FAILED)
    if not state.base_retargeted:
        return state

    pull_request = _require(state.pull_request, "a pull request")
    try:
        ctx.github.update_pull_request(
            ctx.repo_root, pull_request.number, PullRequestUpdate(base=pull_request.base.name)
        )
    except SprError as rollback_error:
        error.push(
            f"Rollback failed: could not restore the base branch of Pull Request "
            f"#{pull_request.number} to {pull_request.base.name}"
        )
        for message in rollback_error.messages:
            error.push(message)
        return state

    logger.debug("Restored base of #%d to %s", pull_request.number, pull_request.base.name)
    return replace(state, phase=LandPhase.ROLLED_BACK, base_retargeted=False)


# ============================================================================
# MERGED -> CLEANING_UP -> DONE
# ============================================================================


def _start_branch_deletion(ctx: SprContext, ref: str) -> PendingOperation | None:
    try:
        return ctx.git.start_delete_remote_branch(ctx.repo_root, ctx.config.remote_name, ref)
    except RuntimeError as e:
        logger.warning("Could not start deleting %s: %s", ref, e)
        return None


def clean_up(ctx: SprContext, state: LandState) -> LandState:
    """Delete the PR branches and fetch the landed commit. Never raises SprError."""
    pull_request = _require(state.pull_request, "a pull request")
    result = _require(state.merge, "a merge result")
    state = replace(state, phase=LandPhase.CLEANING_UP)

    # Deletions run while we fetch; GitHub may already have deleted the branches
    pending: list[tuple[str, PendingOperation]] = []
    refs = [pull_request.head.on_github]
    if not pull_request.base.is_master_branch:
        refs.append(pull_request.base.on_github)
    for ref in refs:
        operation = _start_branch_deletion(ctx, ref)
        if operation is not None:
            pending.append((ref, operation))

    fetched = False
    if result.sha is not None:
        sha = result.sha

        @retry_with_backoff(
            ctx.time, max_attempts=FETCH_ATTEMPTS, base_delay=1.0, feedback=ctx.feedback
        )
        def fetch_landed_commit() -> None:
            ctx.git.fetch(
                ctx.repo_root,
                ctx.config.remote_name,
                [ctx.config.master_ref.on_github, sha],
            )

        try:
            fetch_landed_commit()
            fetched = True
        except RuntimeError as e:
            logger.debug("Fetching %s failed: %s", sha, e)
            ctx.feedback.warning(
                f"Could not fetch the landed commit {sha} after {FETCH_ATTEMPTS} attempts. "
                "Run `jj git fetch` later."
            )

        if fetched:
            ctx.feedback.warning(
                f"Please manually rebase your working copy onto {sha[:12]} after landing"
            )

    for ref, operation in pending:
        if not operation.wait():
            logger.debug("Deleting %s failed; it may have been deleted already", ref)

    return replace(state, phase=LandPhase.DONE, merge_commit_fetched=fetched)


def execute_land(ctx: SprContext, revision: str = "@", *, cherry_pick: bool = False) -> LandResult:
    """Land the pull request of the commit at revision.

    Raises:
        SprError: If the pull request was not landed. Its messages start with
            the root cause; a failed rollback is appended after it.
    """
    state = LandState(phase=LandPhase.START, revision=revision)

    state = validate(ctx, state)
    ctx.feedback.step("🛫", "Getting started...")

    state = fetch_master(ctx, state)
    state = reconcile_base(ctx, state, cherry_pick=cherry_pick)

    try:
        state = await_mergeability(ctx, state)
        state = merge(ctx, state)
    except SprError as error:
        ctx.feedback.step("❌", "GitHub Pull Request merge failed")
        state = roll_back(ctx, state, error)
        logger.debug("Land stopped in phase %s", state.phase.value)
        raise

    ctx.feedback.step("🛬", "Landed!")
    state = clean_up(ctx, state)

    pull_request = _require(state.pull_request, "a pull request")
    return LandResult(
        pull_request_number=pull_request.number,
        merge_commit=None if state.merge is None else state.merge.sha,
        merge_commit_fetched=state.merge_commit_fetched,
    )
