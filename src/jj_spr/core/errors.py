"""Error taxonomy for spr operations.

Every failure surfaced to the user is an SprError carrying an ordered list of
human-readable messages. The first message is the root cause; messages pushed
later (for example a failed rollback) describe what happened afterwards. The
CLI prints each message on its own line.
"""


class SprError(Exception):
    """Operation failure with an ordered list of messages."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self._messages: list[str] = [message]

    @property
    def messages(self) -> list[str]:
        """Messages in causal order, root cause first."""
        return list(self._messages)

    def push(self, message: str) -> None:
        """Append a follow-up message without replacing the root cause."""
        self._messages.append(message)

    def __str__(self) -> str:
        return "\n".join(self._messages)


class ConfigError(SprError):
    """Configuration is missing or malformed."""


class RevisionError(SprError):
    """A revision expression did not resolve to exactly one commit."""


# ============================================================================
# Preconditions (no remote mutation has happened yet)
# ============================================================================


class PreconditionError(SprError):
    """A precondition of the operation does not hold."""


class DirtyWorkingCopyError(PreconditionError):
    """The working copy has uncommitted changes."""


class NoPullRequestError(PreconditionError):
    """The commit does not refer to a pull request."""


class AlreadyClosedError(PreconditionError):
    """The pull request is not open."""


class NotApprovedError(PreconditionError):
    """Approval is required but the pull request is not approved."""


class CherryPickConflictError(PreconditionError):
    """The commit does not apply cleanly on top of the integration branch."""


# ============================================================================
# Staleness (local and remote views disagree)
# ============================================================================


class StalenessError(SprError):
    """The pull request no longer matches what was validated."""


class ConcurrentUpdateError(StalenessError):
    """The pull request head changed while the operation was running."""


class TreeMismatchError(StalenessError):
    """Merging the pull request would not produce the locally tested tree."""


# ============================================================================
# Remote state
# ============================================================================


class MergeabilityTimeoutError(SprError):
    """GitHub did not finish computing mergeability in time."""


class NotMergeableError(SprError):
    """GitHub reports the pull request cannot be merged."""


class RemoteCallError(SprError):
    """A call to GitHub failed."""


class NotFoundError(RemoteCallError):
    """The requested pull request does not exist."""


class MergeFailedError(RemoteCallError):
    """GitHub answered the merge request without merging."""
