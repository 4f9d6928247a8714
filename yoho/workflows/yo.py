"""``yo``: push the current branch and open a pull request."""

from typing import Optional

from yoho.integrations.git import get_current_branch, push_branch
from yoho.integrations.github import GitHubClient
from yoho.models import Config, OpenedPullRequest, RepoIdentity
from yoho.notify import notify
from yoho.utils.logger import get_logger

logger = get_logger(__name__)


async def push_current_branch(config: Config, branch: Optional[str] = None) -> str:
    """Push ``branch`` (default: current) to the origin remote and return its name."""
    branch = branch or get_current_branch()
    await push_branch(branch, remote=config.workflow.origin_remote)
    return branch


async def yo_workflow(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    branch: Optional[str] = None,
) -> OpenedPullRequest:
    """Push the branch and open a PR against the base branch, titled with the branch name.

    Raises:
        PushError: If the push fails
        PullRequestError: If the PR cannot be created
    """
    branch = await push_current_branch(config, branch)

    pull_request = await github.create_pull_request(
        identity,
        branch=branch,
        title=branch,
        base=config.workflow.base_branch,
    )

    notify("yo", f"PR #{pull_request.number} opened for {branch}", config)
    return OpenedPullRequest(branch=branch, pull_request=pull_request)
