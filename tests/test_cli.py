"""Tests for CLI interface."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from yoho.cli import _prompt_confirm, cli
from yoho.integrations.git import GitError, PushError, RemoteListError, RepositoryConfigError
from yoho.integrations.github import MergeError
from yoho.integrations.tracker import TrackerError
from yoho.models import (
    CheckState,
    MergeSummary,
    OpenedPullRequest,
    ReadyPullRequest,
    StatusCheck,
    StatusCheckSet,
)
from yoho.workflows import WaitError, always_confirm

from conftest import make_pr


@pytest.fixture
def repo(identity):
    """Patch repository discovery and the GitHub client."""
    with patch("yoho.cli.locate_repository", return_value=identity) as mock_locate, \
            patch("yoho.cli.GitHubClient") as mock_client, \
            patch("yoho.cli.IssueTracker") as mock_tracker:
        yield Mock(locate=mock_locate, github=mock_client, tracker=mock_tracker)


class TestCLI:
    """Test CLI functionality."""

    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "yoho version" in result.output

    def test_short_version_flag(self, runner):
        result = runner.invoke(cli, ["-v"])
        assert result.exit_code == 0
        assert "yoho version" in result.output

    def test_help_output(self, runner):
        """Help lists the commands and usage examples."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Commands:" in result.output
        assert "Examples:" in result.output
        assert "yoho yohohou" in result.output
        for command in ("ls", "yo", "ho", "hou", "yohohou", "yay"):
            assert command in result.output

    def test_no_command_shows_help(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage:" in result.output

    @patch("yoho.cli.get_current_branch", return_value="feat-login")
    def test_ls(self, mock_branch, runner):
        result = runner.invoke(cli, ["ls"])
        assert result.exit_code == 0
        assert result.output.strip() == "feat-login"

    @patch("yoho.cli.get_current_branch")
    def test_ls_outside_repository(self, mock_branch, runner):
        mock_branch.side_effect = GitError("not a git repository")
        result = runner.invoke(cli, ["ls"])
        assert result.exit_code == 1
        assert "not a git repository" in result.output

    def test_init_command(self, runner, temp_home, monkeypatch):
        """init writes user and project configs without a token."""
        project = temp_home / "project"
        project.mkdir()
        monkeypatch.chdir(project)

        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 0
        assert (temp_home / ".yoho" / "config.yaml").exists()
        assert (project / ".yoho" / "config.yaml").exists()
        assert "GITHUB_ACCESS_TOKEN" in result.output

    def test_config_get_set(self, runner):
        result = runner.invoke(cli, ["config", "get", "workflow.base_branch"])
        assert result.exit_code == 0
        assert "workflow.base_branch: dev" in result.output

        result = runner.invoke(cli, ["config", "set", "workflow.base_branch", "main"])
        assert result.exit_code == 0
        assert "config updated" in result.output

        result = runner.invoke(cli, ["config", "get", "workflow.base_branch"])
        assert "workflow.base_branch: main" in result.output

    def test_config_set_invalid(self, runner):
        result = runner.invoke(cli, ["config", "set", "workflow.merge_method", "octopus"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_config_get_missing_key(self, runner):
        result = runner.invoke(cli, ["config", "get", "polling.nope"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_config_show_masks_token(self, runner, monkeypatch):
        monkeypatch.setenv("YOHO_GITHUB__TOKEN", "secret")
        result = runner.invoke(cli, ["config", "show", "--format", "json", "--section", "github"])
        assert result.exit_code == 0
        assert "secret" not in result.output
        assert "***" in result.output


class TestYoCommand:
    """yo and push commands."""

    def test_yo(self, runner, repo):
        opened = OpenedPullRequest(branch="feat-login", pull_request=make_pr())

        with patch("yoho.cli.yo_workflow", new_callable=AsyncMock, return_value=opened):
            result = runner.invoke(cli, ["yo"])

        assert result.exit_code == 0
        assert "PR #7 opened" in result.output
        assert result.output.strip().endswith("feat-login")

    def test_remote_listing_failure(self, runner):
        with patch("yoho.cli.locate_repository", side_effect=RemoteListError("git remote -v failed")):
            result = runner.invoke(cli, ["yo"])

        assert result.exit_code == 5

    def test_missing_upstream(self, runner):
        with patch("yoho.cli.locate_repository", side_effect=RepositoryConfigError("No 'upstream' remote")):
            result = runner.invoke(cli, ["yo"])

        assert result.exit_code == 1
        assert "upstream" in result.output

    def test_push_failure(self, runner, repo):
        with patch("yoho.cli.yo_workflow", new_callable=AsyncMock, side_effect=PushError("rejected")):
            result = runner.invoke(cli, ["yo"])

        assert result.exit_code == 2
        assert "rejected" in result.output

    def test_push(self, runner):
        with patch("yoho.cli.push_current_branch", new_callable=AsyncMock, return_value="feat-login"):
            result = runner.invoke(cli, ["push"])

        assert result.exit_code == 0
        assert "Pushed feat-login to origin" in result.output


class TestHoCommand:
    """ho command."""

    def test_ready(self, runner, repo):
        ready = ReadyPullRequest(
            pull_request=make_pr(mergeable=True),
            checks=StatusCheckSet(sha="abc1234def", checks=[StatusCheck(context="ci", state=CheckState.SUCCESS)]),
        )

        with patch("yoho.cli.ho_workflow", new_callable=AsyncMock, return_value=ready) as mock_ho:
            result = runner.invoke(cli, ["ho", "feat-login", "--interval", "0.5", "--timeout", "60"])

        assert result.exit_code == 0
        assert "mergeable and CI passed" in result.output
        config = mock_ho.await_args.args[0]
        assert config.polling.interval == 0.5
        assert config.polling.timeout == 60
        assert mock_ho.await_args.args[3] == "feat-login"

    def test_wait_failure(self, runner, repo):
        error = WaitError("CI failed (ci): https://github.com/org/proj/pull/7", None, "url")

        with patch("yoho.cli.get_current_branch", return_value="feat-login"), \
                patch("yoho.cli.ho_workflow", new_callable=AsyncMock, side_effect=error):
            result = runner.invoke(cli, ["ho"])

        assert result.exit_code == 1
        assert "CI failed" in result.output

    def test_interrupted(self, runner, repo):
        with patch("yoho.cli.get_current_branch", side_effect=KeyboardInterrupt):
            result = runner.invoke(cli, ["ho"])

        assert result.exit_code == 130

    def test_rejects_zero_interval(self, runner):
        result = runner.invoke(cli, ["ho", "--interval", "0"])
        assert result.exit_code == 2


class TestHouCommand:
    """hou command."""

    @pytest.fixture
    def summary(self):
        return MergeSummary(pull_request=make_pr(), merge_sha="f00d", branch_deleted=True, deleted_issue="42")

    def test_current_branch_asks(self, runner, repo, summary):
        with patch("yoho.cli.get_current_branch", return_value="42-fix-login"), \
                patch("yoho.cli.hou_workflow", new_callable=AsyncMock, return_value=summary) as mock_hou:
            result = runner.invoke(cli, ["hou"])

        assert result.exit_code == 0
        assert mock_hou.await_args.args[4] == "42-fix-login"
        assert mock_hou.await_args.args[5] is _prompt_confirm
        assert "Deleted issue 42" in result.output

    def test_explicit_branch_does_not_ask(self, runner, repo, summary):
        with patch("yoho.cli.hou_workflow", new_callable=AsyncMock, return_value=summary) as mock_hou:
            result = runner.invoke(cli, ["hou", "42-fix-login"])

        assert result.exit_code == 0
        assert mock_hou.await_args.args[5] is always_confirm

    def test_yes_flag(self, runner, repo, summary):
        with patch("yoho.cli.get_current_branch", return_value="42-fix-login"), \
                patch("yoho.cli.hou_workflow", new_callable=AsyncMock, return_value=summary) as mock_hou:
            result = runner.invoke(cli, ["hou", "--yes"])

        assert result.exit_code == 0
        assert mock_hou.await_args.args[5] is always_confirm

    def test_merge_refused(self, runner, repo):
        with patch("yoho.cli.hou_workflow", new_callable=AsyncMock, side_effect=MergeError("not mergeable")):
            result = runner.invoke(cli, ["hou", "42-fix-login"])

        assert result.exit_code == 1

    def test_issue_delete_failure(self, runner, repo):
        error = TrackerError("Failed to delete issue 42: HTTP 403", key="42")

        with patch("yoho.cli.hou_workflow", new_callable=AsyncMock, side_effect=error):
            result = runner.invoke(cli, ["hou", "42-fix-login"])

        assert result.exit_code == 3


class TestYohohouAndYay:
    """Combined and issue-titled commands."""

    def test_yohohou(self, runner, repo):
        summary = MergeSummary(pull_request=make_pr(), merge_sha="f00d")

        with patch("yoho.cli.yohohou_workflow", new_callable=AsyncMock, return_value=summary) as mock_all:
            result = runner.invoke(cli, ["yohohou", "-i", "2"])

        assert result.exit_code == 0
        assert "merged" in result.output
        assert mock_all.await_args.args[0].polling.interval == 2.0

    def test_yay(self, runner, repo):
        opened = OpenedPullRequest(branch="42-fix-login", pull_request=make_pr(title="Login is broken"))

        with patch("yoho.cli.yay_workflow", new_callable=AsyncMock, return_value=opened):
            result = runner.invoke(cli, ["yay"])

        assert result.exit_code == 0
        assert "Login is broken" in result.output

    def test_yay_without_issue_key(self, runner, repo):
        error = TrackerError("No issue key in branch name 'fix-login'")

        with patch("yoho.cli.yay_workflow", new_callable=AsyncMock, side_effect=error):
            result = runner.invoke(cli, ["yay"])

        assert result.exit_code == 3
        assert "No issue key" in result.output
