"""Commit preparation layer.

The Vcs adapter turns revision expressions into PreparedCommit snapshots,
builds derived commits, replays commits onto other commits, and writes
edited messages back through jj. It combines the two gateways: jj for
anything keyed by revision or change id, git for anything keyed by content.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from jj_spr.core.config import Config
from jj_spr.core.errors import DirtyWorkingCopyError, RevisionError, SprError
from jj_spr.core.git.abc import EMPTY_TREE_ID, CommitInfo, Git, MergeTreeResult
from jj_spr.core.jujutsu.abc import Jujutsu
from jj_spr.core.message import (
    MessageSection,
    MessageSections,
    build_commit_message,
    parse_message,
)

logger = logging.getLogger(__name__)

SHORT_ID_LENGTH = 7


@dataclass
class PreparedCommit:
    """Transient view of one local commit and its pull request linkage.

    message_changed is set by set_section()/remove_section() when the parsed
    message is edited, and cleared by Vcs.rewrite_messages() once the edit
    has been written back.
    """

    commit_id: str
    short_id: str
    # Same as commit_id for a root commit
    parent_id: str
    message: MessageSections
    pull_request_number: int | None
    message_changed: bool = False

    @property
    def title(self) -> str | None:
        return self.message.get(MessageSection.TITLE)

    def set_section(self, section: MessageSection, text: str) -> None:
        if self.message.get(section) == text:
            return
        self.message[section] = text
        self.message_changed = True

    def remove_section(self, section: MessageSection) -> None:
        if section not in self.message:
            return
        del self.message[section]
        self.message_changed = True


class Vcs:
    """Adapter over the jj and git gateways for one repository."""

    def __init__(self, *, jujutsu: Jujutsu, git: Git, repo_root: Path) -> None:
        self._jujutsu = jujutsu
        self._git = git
        self._repo_root = repo_root

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    # ------------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------------

    def resolve(self, revision: str) -> str:
        """Resolve a revision expression to exactly one commit id.

        Raises:
            RevisionError: If the expression is invalid, matches nothing, or
                matches more than one commit
        """
        try:
            commit_ids = self._jujutsu.log_commit_ids(self._repo_root, revision)
        except RuntimeError as e:
            error = RevisionError(f"Could not resolve revision '{revision}'")
            error.push(str(e))
            raise error from e

        if len(commit_ids) == 0:
            raise RevisionError(f"Revision '{revision}' does not match any commit")
        if len(commit_ids) > 1:
            raise RevisionError(
                f"Revision '{revision}' is ambiguous: it matches {len(commit_ids)} commits"
            )
        return commit_ids[0]

    def _get_commit(self, commit_id: str) -> CommitInfo:
        try:
            return self._git.get_commit(self._repo_root, commit_id)
        except RuntimeError as e:
            error = RevisionError(f"Commit {commit_id} is not in the object store")
            error.push(str(e))
            raise error from e

    def prepare(self, config: Config, commit_id: str) -> PreparedCommit:
        commit = self._get_commit(commit_id)
        message = parse_message(commit.message)
        link = message.get(MessageSection.PULL_REQUEST)
        pull_request_number = None if link is None else config.parse_pull_request_field(link)

        return PreparedCommit(
            commit_id=commit.commit_id,
            short_id=commit.commit_id[:SHORT_ID_LENGTH],
            parent_id=commit.parent_ids[0] if commit.parent_ids else commit.commit_id,
            message=message,
            pull_request_number=pull_request_number,
        )

    def prepare_revision(self, config: Config, revision: str) -> PreparedCommit:
        return self.prepare(config, self.resolve(revision))

    def prepare_range(
        self, config: Config, from_revision: str, to_revision: str, *, inclusive: bool
    ) -> list[PreparedCommit]:
        """Prepare every commit between two revisions, oldest first.

        Args:
            from_revision: Start of the range
            to_revision: End of the range
            inclusive: Whether from_revision itself is part of the range
        """
        operator = "::" if inclusive else ".."
        revset = f"{from_revision}{operator}{to_revision}"
        try:
            commit_ids = self._jujutsu.log_commit_ids(self._repo_root, revset)
        except RuntimeError as e:
            error = RevisionError(f"Could not resolve revisions '{revset}'")
            error.push(str(e))
            raise error from e

        # jj lists newest first
        return [self.prepare(config, commit_id) for commit_id in reversed(commit_ids)]

    def check_clean(self) -> None:
        """Raises DirtyWorkingCopyError if the working copy has changes.

        Raises:
            SprError: If jj cannot report the working copy status
        """
        try:
            status = self._jujutsu.get_status(self._repo_root)
        except RuntimeError as e:
            error = SprError("Could not read the status of the working copy")
            error.push(str(e))
            raise error from e

        if status.is_clean:
            return
        error = DirtyWorkingCopyError(
            "You have uncommitted changes in your working copy. "
            "Please run `jj new` or `jj squash` before proceeding."
        )
        if status.summary:
            error.push(status.summary)
        raise error

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def get_tree_id(self, commit_id: str) -> str:
        return self._get_commit(commit_id).tree_id

    def get_commit_message(self, commit_id: str) -> str:
        return self._get_commit(commit_id).message

    def resolve_ref(self, ref: str) -> str | None:
        return self._git.resolve_ref(self._repo_root, ref)

    def merge_base(self, commit_a: str, commit_b: str) -> str | None:
        try:
            return self._git.merge_base(self._repo_root, commit_a, commit_b)
        except RuntimeError as e:
            error = RevisionError(
                f"Could not find a common ancestor of {commit_a[:SHORT_ID_LENGTH]} "
                f"and {commit_b[:SHORT_ID_LENGTH]}"
            )
            error.push(str(e))
            raise error from e

    def _merge_trees(
        self, description: str, *, ours: str, theirs: str, base: str | None
    ) -> MergeTreeResult:
        try:
            return self._git.merge_trees(self._repo_root, ours=ours, theirs=theirs, base=base)
        except RuntimeError as e:
            error = SprError(f"Could not {description}")
            error.push(str(e))
            raise error from e

    def create_derived_commit(
        self,
        original_id: str,
        message: str,
        tree_id: str,
        parent_ids: list[str],
    ) -> str:
        """Create a commit with the identity of original_id but new content.

        Author and committer names and emails are taken from the original;
        both timestamps are the current time.
        """
        original = self._get_commit(original_id)
        try:
            commit_id = self._git.commit_tree(
                self._repo_root,
                tree_id=tree_id,
                parent_ids=parent_ids,
                message=message,
                author=original.author,
                committer=original.committer,
            )
        except RuntimeError as e:
            error = SprError(f"Could not create a commit from {original_id[:SHORT_ID_LENGTH]}")
            error.push(str(e))
            raise error from e
        logger.debug("Derived %s from %s (parents %s)", commit_id, original_id, parent_ids)
        return commit_id

    def cherrypick(self, commit_id: str, onto_id: str) -> MergeTreeResult:
        """Replay the change of commit_id on top of onto_id.

        The merge base is the commit's own parent (the empty tree for a root
        commit). Conflicts are returned to the caller, never resolved.
        """
        commit = self._get_commit(commit_id)
        base = commit.parent_ids[0] if commit.parent_ids else EMPTY_TREE_ID
        return self._merge_trees(
            f"cherry-pick {commit_id[:SHORT_ID_LENGTH]} onto {onto_id[:SHORT_ID_LENGTH]}",
            ours=onto_id,
            theirs=commit_id,
            base=base,
        )

    def merge_commits(self, ours_id: str, theirs_id: str) -> MergeTreeResult:
        """Merge two commits the way ``git merge`` would, without touching refs."""
        return self._merge_trees(
            f"merge {theirs_id[:SHORT_ID_LENGTH]} into {ours_id[:SHORT_ID_LENGTH]}",
            ours=ours_id,
            theirs=theirs_id,
            base=None,
        )

    # ------------------------------------------------------------------
    # Message rewriting
    # ------------------------------------------------------------------

    def rewrite_messages(self, commits: list[PreparedCommit]) -> None:
        """Write edited messages back to jj.

        Commits are addressed by change id because every rewrite gives the
        commit (and its descendants) a new commit id. Stops at the first
        failure; the commits that were not written keep message_changed set.

        Raises:
            SprError: If jj rejects a rewrite
        """
        pending = [commit for commit in commits if commit.message_changed]
        if not pending:
            return

        # Look up all change ids before the first rewrite changes commit ids
        change_ids: list[str] = []
        for commit in pending:
            try:
                change_ids.append(self._jujutsu.get_change_id(self._repo_root, commit.commit_id))
            except RuntimeError as e:
                error = RevisionError(
                    f"Could not look up the change id of commit {commit.short_id}"
                )
                error.push(str(e))
                raise error from e

        for commit, change_id in zip(pending, change_ids, strict=True):
            try:
                self._jujutsu.describe(self._repo_root, change_id, build_commit_message(commit.message))
            except RuntimeError as e:
                error = SprError(f"Failed to update the message of commit {commit.short_id}")
                error.push(str(e))
                raise error from e
            commit.message_changed = False
            logger.debug("Rewrote message of %s (%s)", commit.short_id, change_id)
