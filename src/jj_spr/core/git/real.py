"""Production Git implementation using subprocess."""

import os
import subprocess
from pathlib import Path

from jj_spr.core.git.abc import (
    CommitInfo,
    Git,
    MergeTreeResult,
    PendingOperation,
    Signature,
)
from jj_spr.core.subprocess import (
    BackgroundProcess,
    run_subprocess_with_context,
    start_background_process,
)

# ============================================================================
# Production Implementation
# ============================================================================


def _parse_signature(value: str) -> Signature:
    """Parse ``Name <email> timestamp tz`` from a commit header."""
    name, _, rest = value.partition("<")
    email, _, _ = rest.partition(">")
    return Signature(name=name.strip(), email=email.strip())


def parse_commit_object(commit_id: str, raw: str) -> CommitInfo:
    """Parse the output of ``git cat-file commit``."""
    header, _, message = raw.partition("\n\n")
    tree_id = ""
    parent_ids: list[str] = []
    author = Signature(name="", email="")
    committer = Signature(name="", email="")

    for line in header.split("\n"):
        # Continuation lines of multi-line headers (gpgsig) start with a space
        if line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree_id = value
        elif key == "parent":
            parent_ids.append(value)
        elif key == "author":
            author = _parse_signature(value)
        elif key == "committer":
            committer = _parse_signature(value)

    return CommitInfo(
        commit_id=commit_id,
        tree_id=tree_id,
        parent_ids=tuple(parent_ids),
        message=message,
        author=author,
        committer=committer,
    )


class RealPendingOperation(PendingOperation):
    def __init__(self, process: BackgroundProcess) -> None:
        self._process = process

    def wait(self) -> bool:
        return self._process.wait().success


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def config_get(self, repo_root: Path, key: str) -> str | None:
        result = subprocess.run(
            ["git", "config", "--get", key],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def get_commit(self, repo_root: Path, commit_id: str) -> CommitInfo:
        result = run_subprocess_with_context(
            ["git", "cat-file", "commit", commit_id],
            operation_context=f"read commit {commit_id}",
            cwd=repo_root,
        )
        return parse_commit_object(commit_id, result.stdout)

    def resolve_ref(self, repo_root: Path, ref: str) -> str | None:
        result = subprocess.run(
            ["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def merge_base(self, repo_root: Path, commit_a: str, commit_b: str) -> str | None:
        result = subprocess.run(
            ["git", "merge-base", commit_a, commit_b],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        # Exit code 1 means the commits have no common ancestor
        if result.returncode == 1:
            return None
        if result.returncode != 0:
            msg = f"Failed to find merge base of {commit_a} and {commit_b}: {result.stderr.strip()}"
            raise RuntimeError(msg)
        return result.stdout.strip()

    def merge_trees(
        self,
        repo_root: Path,
        *,
        ours: str,
        theirs: str,
        base: str | None = None,
    ) -> MergeTreeResult:
        cmd = ["git", "merge-tree", "--write-tree", "--name-only", "--no-messages"]
        if base is not None:
            cmd.append(f"--merge-base={base}")
        cmd.extend([ours, theirs])

        result = run_subprocess_with_context(
            cmd,
            operation_context=f"merge {theirs} into {ours}",
            cwd=repo_root,
            check=False,
        )
        # 0 = clean merge, 1 = conflicts; anything else is a real failure
        if result.returncode not in (0, 1):
            msg = f"Failed to merge {theirs} into {ours}"
            msg += f"\nExit code: {result.returncode}"
            if result.stderr.strip():
                msg += f"\nstderr: {result.stderr.strip()}"
            raise RuntimeError(msg)

        lines = result.stdout.split("\n")
        tree_id = lines[0].strip()
        conflicted: list[str] = []
        if result.returncode == 1:
            for line in lines[1:]:
                if not line:
                    break
                conflicted.append(line)

        return MergeTreeResult(tree_id=tree_id, conflicted_paths=tuple(conflicted))

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
        cmd = ["git", "commit-tree", tree_id]
        for parent_id in parent_ids:
            cmd.extend(["-p", parent_id])

        # No GIT_*_DATE variables: both timestamps default to now
        env = dict(os.environ)
        env.pop("GIT_AUTHOR_DATE", None)
        env.pop("GIT_COMMITTER_DATE", None)
        env["GIT_AUTHOR_NAME"] = author.name
        env["GIT_AUTHOR_EMAIL"] = author.email
        env["GIT_COMMITTER_NAME"] = committer.name
        env["GIT_COMMITTER_EMAIL"] = committer.email

        result = run_subprocess_with_context(
            cmd,
            operation_context=f"create commit with tree {tree_id}",
            cwd=repo_root,
            env=env,
            input=message,
        )
        return result.stdout.strip()

    def fetch(self, repo_root: Path, remote: str, refspecs: list[str]) -> None:
        run_subprocess_with_context(
            ["git", "fetch", "--no-write-fetch-head", "--no-tags", "--", remote, *refspecs],
            operation_context=f"fetch from {remote}",
            cwd=repo_root,
        )

    def push(self, repo_root: Path, remote: str, refspecs: list[str], *, atomic: bool) -> None:
        cmd = ["git", "push", "--no-verify"]
        if atomic:
            cmd.append("--atomic")
        cmd.extend(["--", remote, *refspecs])
        run_subprocess_with_context(
            cmd,
            operation_context=f"push to {remote}",
            cwd=repo_root,
        )

    def start_delete_remote_branch(self, repo_root: Path, remote: str, ref: str) -> PendingOperation:
        process = start_background_process(
            ["git", "push", "--no-verify", "--delete", "--", remote, ref],
            operation_context=f"delete {ref} on {remote}",
            cwd=repo_root,
        )
        return RealPendingOperation(process)
