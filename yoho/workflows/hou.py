"""``hou``: merge a pull request and clean up after it."""

from typing import Callable

from yoho.integrations.github import GitHubClient, GitHubIntegrationError
from yoho.integrations.tracker import IssueTracker
from yoho.models import Config, MergeSummary, RepoIdentity
from yoho.notify import notify
from yoho.utils.logger import get_logger

logger = get_logger(__name__)

Confirm = Callable[[str], bool]


def always_confirm(question: str) -> bool:
    """Confirmation predicate for non-interactive runs."""
    return True


async def hou_workflow(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    tracker: IssueTracker,
    branch: str,
    confirm: Confirm = always_confirm,
) -> MergeSummary:
    """Merge the branch's PR, then delete the remote branch and its issue.

    Cleanup only happens if ``confirm`` agrees. A failed branch deletion is
    logged and skipped; a failed issue deletion raises.

    Raises:
        PullRequestNotFoundError: If the branch has no open PR
        MergeError: If the merge is refused
        TrackerError: If the issue cannot be deleted
    """
    pr = await github.find_pull_request(identity, branch)
    merge_sha = await github.merge_pull_request(identity, pr, config.workflow.merge_method)
    summary = MergeSummary(pull_request=pr, merge_sha=merge_sha)
    logger.info(f"Merged PR #{pr.number}: {pr.html_url}")

    key = tracker.issue_key_from_branch(branch)
    target = f"{identity.origin_owner}:{branch}"
    question = f"Delete {target} and issue {key}?" if key else f"Delete {target}?"

    if not confirm(question):
        logger.info("Cleanup skipped")
        notify("hou", f"PR #{pr.number} merged", config)
        return summary

    try:
        await github.delete_branch(identity, branch)
        summary.branch_deleted = True
    except GitHubIntegrationError as e:
        logger.warning(f"Could not delete branch {target}: {e}")

    if key:
        await tracker.delete_issue(key, identity)
        summary.deleted_issue = key
    else:
        logger.warning(f"No issue key in branch name '{branch}'; issue left alone")

    notify("hou", f"PR #{pr.number} merged and cleaned up", config)
    return summary
