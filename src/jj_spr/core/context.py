"""Application context with dependency injection."""

from dataclasses import dataclass
from pathlib import Path

from jj_spr.core.config import Config, load_config
from jj_spr.core.errors import ConfigError
from jj_spr.core.git.abc import Git
from jj_spr.core.git.real import RealGit
from jj_spr.core.github.abc import GitHub
from jj_spr.core.github.real import RealGitHub
from jj_spr.core.jujutsu.abc import Jujutsu
from jj_spr.core.jujutsu.real import RealJujutsu
from jj_spr.core.time.abc import Time
from jj_spr.core.time.real import RealTime
from jj_spr.core.user_feedback import InteractiveFeedback, SuppressedFeedback, UserFeedback
from jj_spr.core.vcs import Vcs


@dataclass(frozen=True)
class SprContext:
    """Immutable context holding all dependencies for spr operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.
    """

    jujutsu: Jujutsu
    git: Git
    github: GitHub
    vcs: Vcs
    time: Time
    feedback: UserFeedback
    config: Config
    repo_root: Path
    cwd: Path  # Current working directory at CLI invocation

    @staticmethod
    def for_test(
        jujutsu: Jujutsu | None = None,
        git: Git | None = None,
        github: GitHub | None = None,
        time: Time | None = None,
        feedback: UserFeedback | None = None,
        config: Config | None = None,
        repo_root: Path | None = None,
        cwd: Path | None = None,
    ) -> "SprContext":
        """Create test context with optional pre-configured integration classes.

        Any integration class left unspecified is replaced by its empty fake.

        Args:
            jujutsu: Optional Jujutsu implementation. If None, creates empty FakeJujutsu.
            git: Optional Git implementation. If None, creates empty FakeGit.
            github: Optional GitHub implementation. If None, creates empty FakeGitHub.
            time: Optional Time implementation. If None, creates FakeTime.
            feedback: Optional UserFeedback implementation.
                If None, creates FakeUserFeedback.
            config: Optional Config. If None, uses acme/widgets with trunk "main".
            repo_root: Optional repository root. If None, uses Path("/test/repo").
            cwd: Optional current working directory. If None, uses repo_root.

        Example:
            >>> github = FakeGitHub(pull_requests={42: pr})
            >>> ctx = SprContext.for_test(git=git, github=github)
        """
        from jj_spr.core.git.fake import FakeGit
        from jj_spr.core.github.fake import FakeGitHub
        from jj_spr.core.jujutsu.fake import FakeJujutsu
        from jj_spr.core.time.fake import FakeTime
        from jj_spr.core.user_feedback import FakeUserFeedback

        if jujutsu is None:
            jujutsu = FakeJujutsu()
        if git is None:
            git = FakeGit()
        if github is None:
            github = FakeGitHub()
        if time is None:
            time = FakeTime()
        if feedback is None:
            feedback = FakeUserFeedback()
        if config is None:
            config = Config.create(owner="acme", repo="widgets", branch_prefix="spr/test/")
        if repo_root is None:
            repo_root = Path("/test/repo")
        if cwd is None:
            cwd = repo_root

        return SprContext(
            jujutsu=jujutsu,
            git=git,
            github=github,
            vcs=Vcs(jujutsu=jujutsu, git=git, repo_root=repo_root),
            time=time,
            feedback=feedback,
            config=config,
            repo_root=repo_root,
            cwd=cwd,
        )


def safe_cwd() -> tuple[Path | None, str | None]:
    """Get current working directory, detecting if it no longer exists.

    Returns:
        tuple[Path | None, str | None]: (path, error_message)
        - If successful: (Path, None)
        - If directory deleted: (None, error_message)
    """
    try:
        return (Path.cwd(), None)
    except (FileNotFoundError, OSError):
        return (None, "Current working directory no longer exists")


def discover_repo_root(jujutsu: Jujutsu, cwd: Path) -> Path:
    """Find the colocated jj/git repository containing cwd.

    Raises:
        ConfigError: Outside a jj workspace, or if the workspace has no
            colocated git repository
    """
    repo_root = jujutsu.get_repo_root(cwd)
    if repo_root is None or not (repo_root / ".jj").is_dir():
        raise ConfigError(f"{cwd} is not inside a Jujutsu repository")
    if not (repo_root / ".git").exists():
        raise ConfigError(
            "jj-spr needs a Jujutsu repository colocated with git "
            "(create one with `jj git init --colocate`)"
        )
    return repo_root


def create_context(
    *,
    github_repository: str | None = None,
    branch_prefix: str | None = None,
    quiet: bool = False,
) -> SprContext:
    """Create production context with real implementations.

    Called at CLI entry point to create the context for the entire
    command execution.

    Args:
        github_repository: OWNER/REPO overriding spr.githubRepository
        branch_prefix: Overrides spr.branchPrefix
        quiet: If True, suppress progress output

    Raises:
        ConfigError: If the repository or its configuration is unusable
    """
    # 1. Capture cwd (no deps)
    cwd, error_msg = safe_cwd()
    if cwd is None:
        raise ConfigError(error_msg or "Current working directory no longer exists")

    # 2. Discover the repository
    jujutsu: Jujutsu = RealJujutsu()
    git: Git = RealGit()
    repo_root = discover_repo_root(jujutsu, cwd)

    # 3. Load config once; everything below shares it by reference
    config = load_config(
        jujutsu=jujutsu,
        git=git,
        repo_root=repo_root,
        github_repository=github_repository,
        branch_prefix=branch_prefix,
    )

    feedback: UserFeedback
    if quiet:
        feedback = SuppressedFeedback()
    else:
        feedback = InteractiveFeedback()

    return SprContext(
        jujutsu=jujutsu,
        git=git,
        github=RealGitHub(config),
        vcs=Vcs(jujutsu=jujutsu, git=git, repo_root=repo_root),
        time=RealTime(),
        feedback=feedback,
        config=config,
        repo_root=repo_root,
        cwd=cwd,
    )
