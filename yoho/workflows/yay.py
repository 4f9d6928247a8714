"""``yay``: push and open a pull request titled after the branch's issue."""

from typing import Optional

from yoho.integrations.github import GitHubClient
from yoho.integrations.tracker import IssueTracker, TrackerError
from yoho.models import Config, OpenedPullRequest, RepoIdentity
from yoho.notify import notify
from yoho.utils.logger import get_logger
from yoho.workflows.yo import push_current_branch

logger = get_logger(__name__)


async def yay_workflow(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    tracker: IssueTracker,
    branch: Optional[str] = None,
) -> OpenedPullRequest:
    """Push, look up the issue named by the branch, and open a PR with its title.

    Raises:
        PushError: If the push fails
        TrackerError: If the branch names no issue or the issue can't be fetched
        PullRequestError: If the PR cannot be created
    """
    branch = await push_current_branch(config, branch)

    key = tracker.issue_key_from_branch(branch)
    if key is None:
        raise TrackerError(f"No issue key in branch name '{branch}'")

    issue = await tracker.fetch_issue(key, identity)
    body = f"Closes {issue.url}" if issue.url else ""

    pull_request = await github.create_pull_request(
        identity,
        branch=branch,
        title=issue.title,
        base=config.workflow.base_branch,
        body=body,
    )

    notify("yay", f"PR #{pull_request.number}: {issue.title}", config)
    return OpenedPullRequest(branch=branch, pull_request=pull_request, issue=issue)
