"""GitHub code-review client on top of ``gh api``."""

import json
import os
import re
from typing import Any, Dict, List, Optional

from yoho.config import TOKEN_ENV_VAR, resolve_github_token
from yoho.models import (
    CheckState,
    Config,
    PullRequestRef,
    RepoIdentity,
    StatusCheck,
    StatusCheckSet,
)
from yoho.utils.logger import get_logger
from yoho.utils.shell import ShellError, check_command_exists, run_command, run_command_async

logger = get_logger(__name__)

STATUS_STATE_MAP = {
    "pending": CheckState.PENDING,
    "success": CheckState.SUCCESS,
    "failure": CheckState.FAILURE,
    "error": CheckState.FAILURE,
}

CHECK_RUN_CONCLUSION_MAP = {
    "success": CheckState.SUCCESS,
    "neutral": CheckState.SUCCESS,
    "skipped": CheckState.SUCCESS,
    "failure": CheckState.FAILURE,
    "cancelled": CheckState.FAILURE,
    "timed_out": CheckState.FAILURE,
    "action_required": CheckState.FAILURE,
    "startup_failure": CheckState.FAILURE,
    "stale": CheckState.FAILURE,
}


class GitHubIntegrationError(Exception):
    """GitHub API error."""

    exit_code = 1

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GitHubAuthError(GitHubIntegrationError):
    """No usable GitHub credential."""


class PullRequestError(GitHubIntegrationError):
    """Pull request could not be created."""


class PullRequestNotFoundError(GitHubIntegrationError):
    """No open pull request for a branch."""


class MergeError(GitHubIntegrationError):
    """Pull request could not be merged."""


def validate_gh_auth() -> bool:
    """Check that the gh CLI is installed and logged in."""
    if not check_command_exists("gh"):
        logger.warning("GitHub CLI (gh) not found. Please install it first.")
        return False

    try:
        result = run_command("gh auth status", check=False)
    except ShellError:
        logger.debug("Failed to check GitHub CLI authentication")
        return False

    if result.success:
        logger.debug("GitHub CLI authentication verified")
        return True
    logger.debug("GitHub CLI not authenticated")
    return False


def _http_status(stderr: str) -> Optional[int]:
    match = re.search(r"HTTP (\d{3})", stderr)
    return int(match.group(1)) if match else None


def _error_message(error: ShellError) -> str:
    """Best human-readable message from a failed ``gh api`` call."""
    try:
        body = json.loads(error.stdout) if error.stdout.strip() else {}
    except json.JSONDecodeError:
        body = {}

    if isinstance(body, dict) and body.get("message"):
        message = body["message"]
        details = [
            item.get("message") for item in body.get("errors", [])
            if isinstance(item, dict) and item.get("message")
        ]
        if details:
            message = f"{message}: {'; '.join(details)}"
        return message
    return error.stderr.strip() or str(error)


def parse_pull_request(data: Dict[str, Any]) -> PullRequestRef:
    """Build a PullRequestRef from a REST pull request payload."""
    head = data.get("head") or {}
    return PullRequestRef(
        number=data["number"],
        head_sha=head.get("sha", ""),
        head_ref=head.get("ref"),
        html_url=data.get("html_url", ""),
        mergeable=data.get("mergeable"),
        title=data.get("title", ""),
        state=data.get("state", "open"),
    )


def parse_status_checks(
    sha: str,
    combined_status: Dict[str, Any],
    check_runs: Optional[Dict[str, Any]] = None,
) -> StatusCheckSet:
    """Fold commit statuses and check runs into one StatusCheckSet."""
    checks: List[StatusCheck] = []

    for status in combined_status.get("statuses", []):
        state = STATUS_STATE_MAP.get(str(status.get("state", "")).lower(), CheckState.PENDING)
        checks.append(
            StatusCheck(
                context=status.get("context", "unknown"),
                state=state,
                target_url=status.get("target_url"),
            )
        )

    for run in (check_runs or {}).get("check_runs", []):
        if run.get("status") != "completed":
            state = CheckState.PENDING
        else:
            conclusion = str(run.get("conclusion") or "").lower()
            state = CHECK_RUN_CONCLUSION_MAP.get(conclusion, CheckState.PENDING)
        checks.append(
            StatusCheck(
                context=run.get("name", "unknown"),
                state=state,
                target_url=run.get("html_url"),
            )
        )

    return StatusCheckSet(sha=sha, checks=checks)


class GitHubClient:
    """Pull request operations against the upstream repository."""

    def __init__(self, config: Config):
        """Initialize client.

        Raises:
            GitHubAuthError: If neither a token nor an authenticated gh CLI is available
        """
        self.config = config
        self._token = resolve_github_token(config)
        if self._token is None and not validate_gh_auth():
            raise GitHubAuthError(
                f"No GitHub credential. Set {TOKEN_ENV_VAR} or run 'gh auth login'."
            )

    def _env(self) -> Optional[Dict[str, str]]:
        if self._token is None:
            return None
        return {**os.environ, "GH_TOKEN": self._token}

    async def _api(
        self,
        method: str,
        path: str,
        fields: Optional[Dict[str, str]] = None,
        error_cls: type = GitHubIntegrationError,
    ) -> Any:
        """Call the REST API through gh and decode the JSON response.

        Raises:
            error_cls: If gh exits non-zero
            GitHubIntegrationError: If the response isn't JSON
        """
        cmd = [
            "gh", "api",
            "--hostname", self.config.github.hostname,
            "-H", f"Accept: {self.config.github.api_accept}",
            "-X", method,
            path,
        ]
        for key, value in (fields or {}).items():
            cmd.extend(["-f", f"{key}={value}"])

        try:
            result = await run_command_async(
                cmd,
                env=self._env(),
                check=True,
                timeout=self.config.github.request_timeout,
            )
        except ShellError as e:
            raise error_cls(
                f"{method} {path} failed: {_error_message(e)}", status=_http_status(e.stderr)
            ) from e

        if not result.stdout.strip():
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise GitHubIntegrationError(f"Unexpected response from {method} {path}: {e}") from e

    async def create_pull_request(
        self,
        identity: RepoIdentity,
        branch: str,
        title: str,
        base: str,
        body: str = "",
    ) -> PullRequestRef:
        """Open a PR on upstream from ``origin_owner:branch`` into ``base``.

        Raises:
            PullRequestError: If the remote refuses to create it
        """
        logger.info(f"Creating PR {identity.origin_owner}:{branch} -> {identity.upstream_full_name}:{base}")
        data = await self._api(
            "POST",
            f"repos/{identity.upstream_full_name}/pulls",
            {
                "title": title,
                "head": f"{identity.origin_owner}:{branch}",
                "base": base,
                "body": body,
            },
            error_cls=PullRequestError,
        )
        pr = parse_pull_request(data)
        logger.info(f"Created PR #{pr.number}: {pr.html_url}")
        return pr

    async def find_pull_request(self, identity: RepoIdentity, branch: str) -> PullRequestRef:
        """Find the open PR whose head is ``origin_owner:branch``.

        Raises:
            PullRequestNotFoundError: If there is none
        """
        data = await self._api(
            "GET",
            f"repos/{identity.upstream_full_name}/pulls",
            {"head": f"{identity.origin_owner}:{branch}", "state": "open"},
        )
        if not data:
            raise PullRequestNotFoundError(
                f"No open pull request for {identity.origin_owner}:{branch} "
                f"in {identity.upstream_full_name}"
            )
        return parse_pull_request(data[0])

    async def get_pull_request(self, identity: RepoIdentity, number: int) -> PullRequestRef:
        """Fetch a PR by number."""
        data = await self._api("GET", f"repos/{identity.upstream_full_name}/pulls/{number}")
        return parse_pull_request(data)

    async def get_combined_status(self, identity: RepoIdentity, sha: str) -> StatusCheckSet:
        """Fetch every check reported for a commit."""
        combined = await self._api(
            "GET", f"repos/{identity.upstream_full_name}/commits/{sha}/status"
        )
        check_runs = None
        if self.config.github.include_check_runs:
            check_runs = await self._api(
                "GET", f"repos/{identity.upstream_full_name}/commits/{sha}/check-runs"
            )
        return parse_status_checks(sha, combined or {}, check_runs)

    async def merge_pull_request(
        self, identity: RepoIdentity, pr: PullRequestRef, method: str = "squash"
    ) -> str:
        """Merge a PR using its title as the commit title.

        Returns:
            SHA of the merge commit

        Raises:
            MergeError: If the remote refuses the merge
        """
        logger.info(f"Merging PR #{pr.number} ({method}): {pr.title}")
        data = await self._api(
            "PUT",
            f"repos/{identity.upstream_full_name}/pulls/{pr.number}/merge",
            {"merge_method": method, "commit_title": pr.title},
            error_cls=MergeError,
        )
        if not data or not data.get("merged", False):
            message = (data or {}).get("message", "merge not performed")
            raise MergeError(f"PR #{pr.number} was not merged: {message}")
        return data.get("sha", "")

    async def delete_branch(self, identity: RepoIdentity, branch: str) -> None:
        """Delete a branch on origin."""
        logger.info(f"Deleting {identity.origin_full_name}:{branch}")
        await self._api(
            "DELETE", f"repos/{identity.origin_full_name}/git/refs/heads/{branch}"
        )
