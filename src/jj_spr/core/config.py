"""Per-invocation configuration.

Config is built once at startup from the repository's jj and git
configuration (``spr.*`` keys) and is passed by reference to every
component that needs it. It is never modified afterwards.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from jj_spr.core.errors import ConfigError
from jj_spr.core.git.abc import Git
from jj_spr.core.jujutsu.abc import Jujutsu

logger = logging.getLogger(__name__)

HEADS_PREFIX = "refs/heads/"

_REPOSITORY = re.compile(r"^([\w\-\.]+)/([\w\-\.]+)$")
_PULL_REQUEST_NUMBER = re.compile(r"^\s*#?\s*(\d+)\s*$")
_PULL_REQUEST_URL = re.compile(
    r"^\s*https?://github\.com/([\w\-\.]+)/([\w\-\.]+)/pull/(\d+)([/?#].*)?\s*$"
)

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})
_FALSE_VALUES = frozenset({"false", "no", "off", "0", ""})


@dataclass(frozen=True)
class GitHubBranch:
    """A branch on GitHub, in both its remote and local tracking forms."""

    name: str
    remote_name: str
    is_master_branch: bool

    @property
    def on_github(self) -> str:
        """Ref name on GitHub, e.g. ``refs/heads/main``."""
        return f"{HEADS_PREFIX}{self.name}"

    @property
    def local(self) -> str:
        """Remote-tracking ref, e.g. ``refs/remotes/origin/main``."""
        return f"refs/remotes/{self.remote_name}/{self.name}"


@dataclass(frozen=True)
class Config:
    owner: str
    repo: str
    remote_name: str
    master_ref: GitHubBranch
    branch_prefix: str
    require_approval: bool = False
    require_test_plan: bool = True
    add_reviewed_by: bool = False
    add_spr_banner_commit: bool = True
    add_skip_ci_comment: bool = False

    @staticmethod
    def create(
        *,
        owner: str,
        repo: str,
        remote_name: str = "origin",
        master_branch: str = "main",
        branch_prefix: str = "spr/",
        require_approval: bool = False,
        require_test_plan: bool = True,
        add_reviewed_by: bool = False,
        add_spr_banner_commit: bool = True,
        add_skip_ci_comment: bool = False,
    ) -> "Config":
        """Build a Config, deriving the integration branch from its name."""
        return Config(
            owner=owner,
            repo=repo,
            remote_name=remote_name,
            master_ref=GitHubBranch(
                name=master_branch, remote_name=remote_name, is_master_branch=True
            ),
            branch_prefix=branch_prefix,
            require_approval=require_approval,
            require_test_plan=require_test_plan,
            add_reviewed_by=add_reviewed_by,
            add_spr_banner_commit=add_spr_banner_commit,
            add_skip_ci_comment=add_skip_ci_comment,
        )

    def pull_request_url(self, number: int) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/pull/{number}"

    def parse_pull_request_field(self, text: str) -> int | None:
        """Extract a pull request number from a ``Pull Request:`` value.

        Accepts ``42``, ``#42`` or a URL of a pull request in this repository.
        URLs pointing at other repositories are not ours and yield None.
        """
        if not text:
            return None

        match = _PULL_REQUEST_NUMBER.match(text)
        if match is not None:
            return int(match.group(1))

        match = _PULL_REQUEST_URL.match(text)
        if match is not None and match.group(1) == self.owner and match.group(2) == self.repo:
            return int(match.group(3))

        return None

    def new_github_branch(self, name: str) -> GitHubBranch:
        return GitHubBranch(
            name=name,
            remote_name=self.remote_name,
            is_master_branch=name == self.master_ref.name,
        )


def parse_repository(value: str) -> tuple[str, str]:
    """Split ``OWNER/REPO`` into its parts.

    Raises:
        ConfigError: If the value is not of that form
    """
    match = _REPOSITORY.match(value.strip())
    if match is None:
        raise ConfigError(f"GitHub repository must be given as 'OWNER/REPO', got '{value}'")
    return match.group(1), match.group(2)


def parse_bool(key: str, value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean value for {key}: '{value}'")


class _ConfigReader:
    """Reads spr.* keys from jj config, falling back to git config."""

    def __init__(self, jujutsu: Jujutsu, git: Git, repo_root: Path) -> None:
        self._jujutsu = jujutsu
        self._git = git
        self._repo_root = repo_root

    def get(self, key: str) -> str | None:
        value = self._jujutsu.config_get(self._repo_root, key)
        if value is not None:
            logger.debug("%s = %r (jj config)", key, value)
            return value
        value = self._git.config_get(self._repo_root, key)
        if value is not None:
            logger.debug("%s = %r (git config)", key, value)
        return value

    def get_bool(self, key: str, default: bool) -> bool:
        return parse_bool(key, self.get(key), default)


def load_config(
    *,
    jujutsu: Jujutsu,
    git: Git,
    repo_root: Path,
    github_repository: str | None = None,
    branch_prefix: str | None = None,
) -> Config:
    """Load configuration for the repository at repo_root.

    Explicit arguments (from command line flags) take precedence over
    configured values.

    Raises:
        ConfigError: If a required key is missing or a value is malformed
    """
    reader = _ConfigReader(jujutsu, git, repo_root)

    repository = github_repository or reader.get("spr.githubRepository")
    if repository is None:
        raise ConfigError(
            "GitHub repository must be given as 'OWNER/REPO' "
            "(configure spr.githubRepository or pass --github-repository)"
        )
    owner, repo = parse_repository(repository)

    prefix = branch_prefix or reader.get("spr.branchPrefix")
    if not prefix:
        raise ConfigError(
            "spr.branchPrefix must be configured (or pass --branch-prefix)"
        )

    return Config.create(
        owner=owner,
        repo=repo,
        remote_name=reader.get("spr.githubRemoteName") or "origin",
        master_branch=reader.get("spr.githubMasterBranch") or "main",
        branch_prefix=prefix,
        require_approval=reader.get_bool("spr.requireApproval", False),
        require_test_plan=reader.get_bool("spr.requireTestPlan", True),
        add_reviewed_by=reader.get_bool("spr.addReviewedBy", False),
        add_spr_banner_commit=reader.get_bool("spr.addSprBannerCommit", True),
        add_skip_ci_comment=reader.get_bool("spr.addSkipCiComment", False),
    )
