"""Workflows behind the yoho commands."""

import asyncio
from typing import Optional

from yoho.integrations.github import GitHubClient
from yoho.integrations.tracker import IssueTracker
from yoho.models import Config, MergeSummary, RepoIdentity
from yoho.workflows.ho import (
    WaitError,
    classify_ci_status,
    classify_mergeability,
    ho_workflow,
    wait_for_ci,
    wait_for_mergeable,
)
from yoho.workflows.hou import always_confirm, hou_workflow
from yoho.workflows.yay import yay_workflow
from yoho.workflows.yo import push_current_branch, yo_workflow


async def yohohou_workflow(
    config: Config,
    identity: RepoIdentity,
    github: GitHubClient,
    tracker: IssueTracker,
    branch: Optional[str] = None,
    progress=None,
    cancel_event: Optional[asyncio.Event] = None,
) -> MergeSummary:
    """Run ``yo``, ``ho`` and ``hou`` back to back on one branch.

    The branch is passed explicitly to ``hou``, so cleanup is not confirmed.
    """
    opened = await yo_workflow(config, identity, github, branch)
    await ho_workflow(config, identity, github, opened.branch, progress, cancel_event)
    return await hou_workflow(config, identity, github, tracker, opened.branch, always_confirm)


__all__ = [
    "push_current_branch",
    "yo_workflow",
    "ho_workflow",
    "wait_for_mergeable",
    "wait_for_ci",
    "classify_mergeability",
    "classify_ci_status",
    "WaitError",
    "hou_workflow",
    "always_confirm",
    "yay_workflow",
    "yohohou_workflow",
]
