"""Tests for configuration loading and pull request link parsing."""

from pathlib import Path

import pytest

from jj_spr.core.config import Config, load_config, parse_bool, parse_repository
from jj_spr.core.errors import ConfigError
from jj_spr.core.git.fake import FakeGit
from jj_spr.core.jujutsu.fake import FakeJujutsu

REPO_ROOT = Path("/test/repo")


@pytest.fixture
def config() -> Config:
    return Config.create(owner="acme", repo="widgets", branch_prefix="spr/alice/")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("42", 42),
        ("#42", 42),
        ("  # 7 ", 7),
        ("https://github.com/acme/widgets/pull/42", 42),
        ("https://github.com/acme/widgets/pull/42/files", 42),
        ("http://github.com/acme/widgets/pull/3#issuecomment-1", 3),
        ("https://github.com/other/widgets/pull/42", None),
        ("https://github.com/acme/gadgets/pull/42", None),
        ("see the discussion", None),
        ("", None),
    ],
)
def test_parse_pull_request_field(config: Config, text: str, expected: int | None) -> None:
    assert config.parse_pull_request_field(text) == expected


def test_pull_request_url_round_trips(config: Config) -> None:
    url = config.pull_request_url(1234)

    assert url == "https://github.com/acme/widgets/pull/1234"
    assert config.parse_pull_request_field(url) == 1234


def test_github_branch_refs(config: Config) -> None:
    branch = config.new_github_branch("spr/alice/add-retry")

    assert branch.on_github == "refs/heads/spr/alice/add-retry"
    assert branch.local == "refs/remotes/origin/spr/alice/add-retry"
    assert not branch.is_master_branch


def test_master_branch_is_recognized(config: Config) -> None:
    assert config.master_ref.is_master_branch
    assert config.new_github_branch("main").is_master_branch
    assert config.new_github_branch("main") == config.master_ref


def test_parse_repository() -> None:
    assert parse_repository("acme/widgets") == ("acme", "widgets")
    assert parse_repository(" my-org/my.repo ") == ("my-org", "my.repo")

    with pytest.raises(ConfigError, match="OWNER/REPO"):
        parse_repository("widgets")


def test_parse_bool() -> None:
    assert parse_bool("spr.requireApproval", None, True) is True
    assert parse_bool("spr.requireApproval", "Yes", False) is True
    assert parse_bool("spr.requireApproval", "off", True) is False

    with pytest.raises(ConfigError, match="Invalid boolean value for spr.requireApproval: 'maybe'"):
        parse_bool("spr.requireApproval", "maybe", False)


def test_load_config_defaults() -> None:
    jujutsu = FakeJujutsu(
        config={"spr.githubRepository": "acme/widgets", "spr.branchPrefix": "spr/alice/"}
    )

    config = load_config(jujutsu=jujutsu, git=FakeGit(), repo_root=REPO_ROOT)

    assert config.owner == "acme"
    assert config.repo == "widgets"
    assert config.remote_name == "origin"
    assert config.master_ref.name == "main"
    assert config.master_ref.local == "refs/remotes/origin/main"
    assert config.branch_prefix == "spr/alice/"
    assert config.require_approval is False
    assert config.require_test_plan is True


def test_load_config_prefers_jj_over_git() -> None:
    jujutsu = FakeJujutsu(config={"spr.githubRepository": "acme/widgets"})
    git = FakeGit(
        config={
            "spr.githubRepository": "legacy/widgets",
            "spr.branchPrefix": "spr/bob/",
            "spr.githubRemoteName": "upstream",
            "spr.githubMasterBranch": "trunk",
            "spr.requireApproval": "true",
        }
    )

    config = load_config(jujutsu=jujutsu, git=git, repo_root=REPO_ROOT)

    assert config.owner == "acme"
    assert config.branch_prefix == "spr/bob/"
    assert config.remote_name == "upstream"
    assert config.master_ref.local == "refs/remotes/upstream/trunk"
    assert config.require_approval is True


def test_load_config_flags_override_configured_values() -> None:
    jujutsu = FakeJujutsu(
        config={"spr.githubRepository": "acme/widgets", "spr.branchPrefix": "spr/alice/"}
    )

    config = load_config(
        jujutsu=jujutsu,
        git=FakeGit(),
        repo_root=REPO_ROOT,
        github_repository="acme/gadgets",
        branch_prefix="spr/ci/",
    )

    assert config.repo == "gadgets"
    assert config.branch_prefix == "spr/ci/"


def test_load_config_requires_repository() -> None:
    jujutsu = FakeJujutsu(config={"spr.branchPrefix": "spr/alice/"})

    with pytest.raises(ConfigError, match="spr.githubRepository"):
        load_config(jujutsu=jujutsu, git=FakeGit(), repo_root=REPO_ROOT)


def test_load_config_requires_branch_prefix() -> None:
    jujutsu = FakeJujutsu(config={"spr.githubRepository": "acme/widgets"})

    with pytest.raises(ConfigError, match="spr.branchPrefix must be configured"):
        load_config(jujutsu=jujutsu, git=FakeGit(), repo_root=REPO_ROOT)
