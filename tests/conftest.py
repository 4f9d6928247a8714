"""Shared test configuration and fixtures."""

import os
from pathlib import Path

import pytest

from yoho.config import ConfigManager
from yoho.models import (
    Config,
    NotificationConfig,
    PollingConfig,
    PullRequestRef,
    RepoIdentity,
)


@pytest.fixture
def temp_home(tmp_path):
    """Create a temporary home directory for tests."""
    return tmp_path


@pytest.fixture
def isolated_config_manager(temp_home, monkeypatch):
    """Create an isolated ConfigManager that doesn't touch real config files."""
    monkeypatch.setattr(Path, "home", lambda: temp_home)
    monkeypatch.setattr("yoho.config.get_git_root", lambda: None)

    for key in list(os.environ):
        if key.startswith("YOHO_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("GITHUB_ACCESS_TOKEN", raising=False)

    manager = ConfigManager()
    manager._user_config_path = temp_home / ".yoho" / "config.yaml"
    manager._project_config_path = None
    manager._config = None

    return manager


@pytest.fixture(autouse=True)
def mock_global_config_manager(isolated_config_manager, monkeypatch):
    """Automatically replace the global config_manager for all tests."""
    import yoho.cli
    import yoho.config

    monkeypatch.setattr(yoho.config, "config_manager", isolated_config_manager)
    monkeypatch.setattr(yoho.cli, "config_manager", isolated_config_manager)

    return isolated_config_manager


@pytest.fixture
def test_config():
    """Configuration with fast polling and no desktop notifications."""
    return Config(
        polling=PollingConfig(interval=0.01, timeout=5, mergeable_false_grace=0),
        notifications=NotificationConfig(enabled=False),
    )


@pytest.fixture
def identity():
    """Fork of org/proj owned by alice."""
    return RepoIdentity(origin_owner="alice", upstream_owner="org", repo_name="proj")


def make_pr(number=7, mergeable=None, head_sha="abc1234def", title="feat-login"):
    """Build a pull request snapshot."""
    return PullRequestRef(
        number=number,
        head_sha=head_sha,
        head_ref="feat-login",
        html_url=f"https://github.com/org/proj/pull/{number}",
        mergeable=mergeable,
        title=title,
    )


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner
    return CliRunner()
