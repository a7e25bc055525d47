"""Tests for the commit preparation layer."""

from pathlib import Path

import pytest

from jj_spr.core.config import Config
from jj_spr.core.errors import DirtyWorkingCopyError, RevisionError, SprError
from jj_spr.core.git.abc import EMPTY_TREE_ID, CommitInfo, Signature
from jj_spr.core.git.fake import FakeGit, created_commit_id
from jj_spr.core.jujutsu.abc import WorkingCopyStatus
from jj_spr.core.jujutsu.fake import FakeJujutsu
from jj_spr.core.message import MessageSection
from jj_spr.core.vcs import Vcs

REPO_ROOT = Path("/test/repo")
CONFIG = Config.create(owner="acme", repo="widgets", branch_prefix="spr/test/")

ALICE = Signature(name="Alice Example", email="alice@example.com")
BOB = Signature(name="Bob Example", email="bob@example.com")

ROOT = "a" * 40
FIRST = "b" * 40
SECOND = "c" * 40


def _commit(commit_id: str, tree_id: str, parents: tuple[str, ...], message: str) -> CommitInfo:
    return CommitInfo(
        commit_id=commit_id,
        tree_id=tree_id,
        parent_ids=parents,
        message=message,
        author=ALICE,
        committer=BOB,
    )


COMMITS = [
    _commit(ROOT, "tree-root", (), "Initial commit\n"),
    _commit(
        FIRST,
        "tree-first",
        (ROOT,),
        "Add parser\n\nTest Plan: unit tests\n\nPull Request: https://github.com/acme/widgets/pull/7\n",
    ),
    _commit(SECOND, "tree-second", (FIRST,), "Use parser\n\nPull Request: #8\n"),
]


def _vcs(
    *,
    revsets: dict[str, list[str]] | None = None,
    status: WorkingCopyStatus | None = None,
    describe_errors: dict[str, str] | None = None,
    git: FakeGit | None = None,
) -> tuple[Vcs, FakeJujutsu, FakeGit]:
    jujutsu = FakeJujutsu(
        repo_root=REPO_ROOT,
        revsets=revsets,
        change_ids={FIRST: "qpvuntsm", SECOND: "kkmpptxz"},
        status=status,
        describe_errors=describe_errors,
    )
    if git is None:
        git = FakeGit(commits=COMMITS)
    return Vcs(jujutsu=jujutsu, git=git, repo_root=REPO_ROOT), jujutsu, git


def test_resolve_single_commit() -> None:
    vcs, _, _ = _vcs(revsets={"@-": [SECOND]})

    assert vcs.resolve("@-") == SECOND


def test_resolve_no_match() -> None:
    vcs, _, _ = _vcs(revsets={"none()": []})

    with pytest.raises(RevisionError, match="does not match any commit"):
        vcs.resolve("none()")


def test_resolve_ambiguous() -> None:
    vcs, _, _ = _vcs(revsets={"mine()": [SECOND, FIRST]})

    with pytest.raises(RevisionError, match="ambiguous: it matches 2 commits"):
        vcs.resolve("mine()")


def test_resolve_invalid_expression_keeps_jj_error() -> None:
    vcs, _, _ = _vcs()

    with pytest.raises(RevisionError) as exc_info:
        vcs.resolve("nope")

    messages = exc_info.value.messages
    assert messages[0] == "Could not resolve revision 'nope'"
    assert "doesn't exist" in messages[1]


def test_prepare_reads_message_and_pull_request() -> None:
    vcs, _, _ = _vcs()

    commit = vcs.prepare(CONFIG, FIRST)

    assert commit.commit_id == FIRST
    assert commit.short_id == "bbbbbbb"
    assert commit.parent_id == ROOT
    assert commit.title == "Add parser"
    assert commit.message[MessageSection.TEST_PLAN] == "unit tests"
    assert commit.pull_request_number == 7
    assert commit.message_changed is False


def test_prepare_root_commit_is_its_own_parent() -> None:
    vcs, _, _ = _vcs()

    commit = vcs.prepare(CONFIG, ROOT)

    assert commit.parent_id == ROOT
    assert commit.pull_request_number is None


def test_prepare_unknown_commit() -> None:
    vcs, _, _ = _vcs()

    with pytest.raises(RevisionError, match="is not in the object store"):
        vcs.prepare(CONFIG, "f" * 40)


def test_prepare_range_is_oldest_first() -> None:
    vcs, jujutsu, _ = _vcs(revsets={"trunk()..@-": [SECOND, FIRST]})

    commits = vcs.prepare_range(CONFIG, "trunk()", "@-", inclusive=False)

    assert [c.commit_id for c in commits] == [FIRST, SECOND]
    assert [c.pull_request_number for c in commits] == [7, 8]
    assert jujutsu.log_calls == ["trunk()..@-"]


def test_prepare_range_inclusive_uses_ancestry_operator() -> None:
    vcs, jujutsu, _ = _vcs(revsets={f"{FIRST}::@-": [SECOND, FIRST]})

    vcs.prepare_range(CONFIG, FIRST, "@-", inclusive=True)

    assert jujutsu.log_calls == [f"{FIRST}::@-"]


def test_check_clean_passes_on_clean_working_copy() -> None:
    vcs, _, _ = _vcs()

    vcs.check_clean()


def test_check_clean_reports_changes() -> None:
    vcs, _, _ = _vcs(status=WorkingCopyStatus(is_clean=False, summary="M src/app.py"))

    with pytest.raises(DirtyWorkingCopyError) as exc_info:
        vcs.check_clean()

    assert exc_info.value.messages == [
        "You have uncommitted changes in your working copy. "
        "Please run `jj new` or `jj squash` before proceeding.",
        "M src/app.py",
    ]


def test_create_derived_commit_keeps_identity() -> None:
    vcs, _, git = _vcs()

    commit_id = vcs.create_derived_commit(FIRST, "rewritten\n", "tree-new", [SECOND])

    assert commit_id == created_commit_id(1)
    created = git.created_commits[0]
    assert created.tree_id == "tree-new"
    assert created.parent_ids == (SECOND,)
    assert created.message == "rewritten\n"
    assert created.author == ALICE
    assert created.committer == BOB


def test_cherrypick_uses_parent_as_base() -> None:
    vcs, _, _ = _vcs()

    # SECOND changed tree-first -> tree-second; replaying it onto FIRST is trivial
    result = vcs.cherrypick(SECOND, FIRST)

    assert not result.has_conflicts
    assert result.tree_id == "tree-second"


def test_cherrypick_root_commit_uses_empty_tree() -> None:
    git = FakeGit(commits=[*COMMITS, _commit("d" * 40, EMPTY_TREE_ID, (), "Empty root\n")])
    vcs, _, _ = _vcs(git=git)

    result = vcs.cherrypick(ROOT, "d" * 40)

    assert result.tree_id == "tree-root"


def test_cherrypick_reports_conflicts() -> None:
    vcs, _, _ = _vcs()

    result = vcs.cherrypick(SECOND, ROOT)

    assert result.has_conflicts
    assert result.conflicted_paths == ("README.md",)


def test_merge_commits_uses_common_ancestor() -> None:
    vcs, _, _ = _vcs()

    result = vcs.merge_commits(FIRST, SECOND)

    assert result.tree_id == "tree-second"


def test_rewrite_messages_only_touches_changed_commits() -> None:
    vcs, jujutsu, _ = _vcs()
    first = vcs.prepare(CONFIG, FIRST)
    second = vcs.prepare(CONFIG, SECOND)

    second.set_section(MessageSection.TEST_PLAN, "manual")
    vcs.rewrite_messages([first, second])

    assert jujutsu.describe_calls == [
        ("kkmpptxz", "Use parser\n\nTest Plan: manual\n\nPull Request: #8\n"),
    ]
    assert second.message_changed is False


def test_set_section_with_same_text_is_not_a_change() -> None:
    vcs, _, _ = _vcs()
    first = vcs.prepare(CONFIG, FIRST)

    first.set_section(MessageSection.TEST_PLAN, "unit tests")
    first.remove_section(MessageSection.REVIEWERS)

    assert first.message_changed is False


def test_rewrite_messages_stops_at_first_failure() -> None:
    vcs, jujutsu, _ = _vcs(describe_errors={"qpvuntsm": "Error: Commit is immutable"})
    first = vcs.prepare(CONFIG, FIRST)
    second = vcs.prepare(CONFIG, SECOND)
    first.remove_section(MessageSection.TEST_PLAN)
    second.remove_section(MessageSection.PULL_REQUEST)

    with pytest.raises(SprError) as exc_info:
        vcs.rewrite_messages([first, second])

    assert exc_info.value.messages == [
        "Failed to update the message of commit bbbbbbb",
        "Error: Commit is immutable",
    ]
    assert jujutsu.describe_calls == []
    assert first.message_changed is True
    assert second.message_changed is True


def test_check_clean_reports_status_failure() -> None:
    jujutsu = FakeJujutsu(repo_root=REPO_ROOT, status_error="Error: The working copy is stale")
    vcs = Vcs(jujutsu=jujutsu, git=FakeGit(commits=COMMITS), repo_root=REPO_ROOT)

    with pytest.raises(SprError) as exc_info:
        vcs.check_clean()

    assert exc_info.value.messages == [
        "Could not read the status of the working copy",
        "Error: The working copy is stale",
    ]


def test_merge_base_reports_git_failure() -> None:
    vcs, _, _ = _vcs(git=FakeGit(commits=COMMITS, merge_base_error="fatal: bad object"))

    with pytest.raises(RevisionError) as exc_info:
        vcs.merge_base(FIRST, SECOND)

    assert exc_info.value.messages == [
        "Could not find a common ancestor of bbbbbbb and ccccccc",
        "fatal: bad object",
    ]


def test_cherrypick_reports_git_failure() -> None:
    git = FakeGit(commits=COMMITS, merge_tree_error="error: unknown option `write-tree'")
    vcs, _, _ = _vcs(git=git)

    with pytest.raises(SprError) as exc_info:
        vcs.cherrypick(SECOND, ROOT)

    assert exc_info.value.messages == [
        "Could not cherry-pick ccccccc onto aaaaaaa",
        "error: unknown option `write-tree'",
    ]


def test_merge_commits_reports_git_failure() -> None:
    git = FakeGit(commits=COMMITS, merge_tree_error="error: unknown option `write-tree'")
    vcs, _, _ = _vcs(git=git)

    with pytest.raises(SprError, match="Could not merge ccccccc into bbbbbbb"):
        vcs.merge_commits(FIRST, SECOND)


def test_create_derived_commit_reports_git_failure() -> None:
    git = FakeGit(commits=COMMITS, commit_tree_error="fatal: not a valid tree")
    vcs, _, _ = _vcs(git=git)

    with pytest.raises(SprError) as exc_info:
        vcs.create_derived_commit(FIRST, "rewritten\n", "tree-new", [SECOND])

    assert exc_info.value.messages == [
        "Could not create a commit from bbbbbbb",
        "fatal: not a valid tree",
    ]
    assert git.created_commits == []


def test_rewrite_messages_reports_change_id_failure() -> None:
    jujutsu = FakeJujutsu(repo_root=REPO_ROOT, change_id_error="Error: Commit not found")
    vcs = Vcs(jujutsu=jujutsu, git=FakeGit(commits=COMMITS), repo_root=REPO_ROOT)
    first = vcs.prepare(CONFIG, FIRST)
    first.remove_section(MessageSection.TEST_PLAN)

    with pytest.raises(RevisionError) as exc_info:
        vcs.rewrite_messages([first])

    assert exc_info.value.messages == [
        "Could not look up the change id of commit bbbbbbb",
        "Error: Commit not found",
    ]
    assert jujutsu.describe_calls == []
    assert first.message_changed is True
