"""``ho``: wait until a pull request is mergeable and its CI has finished.

Both waits run through ``poll_until`` with the classifiers below:

- mergeability: pending while GitHub is still computing ``mergeable``,
  failure once it reports ``False`` (after the configured grace polls),
  success once it reports ``True``;
- CI: pending while any check is pending (or, for the first
  ``polling.empty_checks_settle`` polls, while no check is reported yet),
  failure if any check failed, success otherwise.
"""

import asyncio
from typing import Callable, Optional, Tuple

from yoho.integrations.github import GitHubClient
from yoho.models import (
    CheckState,
    Classification,
    Config,
    PollOutcome,
    PollStatus,
    PullRequestRef,
    ReadyPullRequest,
    RepoIdentity,
    StatusCheckSet,
)
from yoho.notify import notify
from yoho.poller import poll_until
from yoho.utils.logger import get_logger

logger = get_logger(__name__)

Progress = Callable[[str], None]


class WaitError(Exception):
    """Polling ended without the PR becoming ready."""

    exit_code = 1

    def __init__(self, message: str, outcome: PollOutcome, pr_url: str):
        super().__init__(message)
        self.outcome = outcome
        self.pr_url = pr_url


def classify_mergeability(pr: PullRequestRef) -> Classification:
    """Classify a PR snapshot by its mergeable flag."""
    if pr.mergeable is None:
        return Classification.pending()
    if pr.mergeable is False:
        return Classification.failure(f"PR #{pr.number} is not mergeable: {pr.html_url}")
    return Classification.success(pr)


def classify_ci_status(checks: StatusCheckSet, pr_url: str, settling: bool = False) -> Classification:
    """Classify a commit's check set by its aggregate state.

    While ``settling``, a commit with no checks yet is still pending.
    """
    if settling and not checks.checks:
        return Classification.pending()
    state = checks.state
    if state == CheckState.PENDING:
        return Classification.pending()
    if state == CheckState.FAILURE:
        failing = ", ".join(checks.contexts(CheckState.FAILURE))
        return Classification.failure(f"CI failed ({failing}): {pr_url}")
    return Classification.success(checks)


def _raise_unless_resolved(outcome: PollOutcome, what: str, pr: PullRequestRef) -> None:
    if outcome.ok:
        return
    if outcome.status == PollStatus.FAILED:
        message = outcome.reason or f"{what} failed: {pr.html_url}"
    else:
        message = f"Stopped waiting for {what} on PR #{pr.number} ({outcome.reason}): {pr.html_url}"
    raise WaitError(message, outcome, pr.html_url)


async def wait_for_mergeable(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    pr: PullRequestRef,
    progress: Optional[Progress] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> PullRequestRef:
    """Poll the PR until GitHub reports it mergeable.

    Raises:
        WaitError: If it is not mergeable, or polling timed out or was cancelled
    """
    polling = config.polling

    def on_progress(snapshot: PullRequestRef, attempt: int) -> None:
        state = "computing" if snapshot.mergeable is None else str(snapshot.mergeable).lower()
        message = f"PR #{snapshot.number} mergeable: {state} (check {attempt})"
        logger.debug(message)
        if progress is not None:
            progress(message)

    outcome = await poll_until(
        lambda: github.get_pull_request(identity, pr.number),
        classify_mergeability,
        polling.interval,
        max_attempts=polling.max_attempts,
        timeout=polling.timeout,
        failure_grace=polling.mergeable_false_grace,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )
    _raise_unless_resolved(outcome, "mergeability", pr)
    return outcome.value


async def wait_for_ci(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    pr: PullRequestRef,
    progress: Optional[Progress] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> StatusCheckSet:
    """Poll the combined status of the PR head commit until CI settles.

    Raises:
        WaitError: If CI failed, or polling timed out or was cancelled
    """
    polling = config.polling
    queries = 0

    async def query() -> Tuple[StatusCheckSet, bool]:
        nonlocal queries
        queries += 1
        checks = await github.get_combined_status(identity, pr.head_sha)
        return checks, queries <= polling.empty_checks_settle

    def on_progress(snapshot: Tuple[StatusCheckSet, bool], attempt: int) -> None:
        checks, _ = snapshot
        message = f"CI for {checks.sha[:7]}: {checks.summary()} (check {attempt})"
        logger.debug(message)
        if progress is not None:
            progress(message)

    outcome = await poll_until(
        query,
        lambda snapshot: classify_ci_status(snapshot[0], pr.html_url, settling=snapshot[1]),
        polling.interval,
        max_attempts=polling.max_attempts,
        timeout=polling.timeout,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )
    _raise_unless_resolved(outcome, "CI", pr)
    return outcome.value


async def ho_workflow(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    branch: str,
    progress: Optional[Progress] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> ReadyPullRequest:
    """Wait for the branch's PR to be mergeable, then for its CI to finish green.

    Raises:
        PullRequestNotFoundError: If the branch has no open PR
        WaitError: If either wait does not resolve
    """
    pr = await github.find_pull_request(identity, branch)
    logger.info(f"Waiting on PR #{pr.number}: {pr.html_url}")

    try:
        pr = await wait_for_mergeable(config, identity, github, pr, progress, cancel_event)
        checks = await wait_for_ci(config, identity, github, pr, progress, cancel_event)
    except WaitError as e:
        notify("ho", str(e), config)
        raise

    notify("ho", f"PR #{pr.number} is ready to merge", config)
    return ReadyPullRequest(pull_request=pr, checks=checks)
