"""Issue tracker integration via an external CLI."""

import json
import re
import shlex
from typing import List, Optional

from yoho.models import Config, RepoIdentity, TrackedIssue
from yoho.utils.logger import get_logger
from yoho.utils.shell import ShellError, run_command_async

logger = get_logger(__name__)


class TrackerError(Exception):
    """Issue tracker command failed."""

    exit_code = 3

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class IssueTracker:
    """Fetch and delete tracked issues by key."""

    def __init__(self, config: Config):
        self.config = config
        self._key_pattern = re.compile(config.tracker.key_pattern)

    def issue_key_from_branch(self, branch: str) -> Optional[str]:
        """Extract the issue key from a branch name, e.g. 'ENG-12-fix' -> 'ENG-12'."""
        match = self._key_pattern.search(branch)
        if not match:
            return None
        return match.group(1) if match.groups() else match.group(0)

    def _build_command(self, template: str, key: str, identity: RepoIdentity) -> List[str]:
        """Split the template and fill in ``{key}`` and ``{repo}``; other braces stay as-is.

        Raises:
            TrackerError: If the template is not valid shell syntax
        """
        try:
            parts = shlex.split(template)
        except ValueError as e:
            raise TrackerError(f"Invalid tracker command '{template}': {e}", key=key) from e
        return [
            part.replace("{key}", key).replace("{repo}", identity.upstream_full_name)
            for part in parts
        ]

    async def _run(self, template: str, key: str, identity: RepoIdentity, action: str) -> str:
        cmd = self._build_command(template, key, identity)
        try:
            result = await run_command_async(
                cmd, check=True, timeout=self.config.tracker.command_timeout
            )
        except ShellError as e:
            detail = e.stderr.strip() or str(e)
            raise TrackerError(f"Failed to {action} issue {key}: {detail}", key=key) from e
        return result.stdout

    async def fetch_issue(self, key: str, identity: RepoIdentity) -> TrackedIssue:
        """Fetch an issue.

        Output may be JSON with ``title`` (and optionally ``url``) or plain text
        with the title on the first line.

        Raises:
            TrackerError: If the command fails or prints nothing
        """
        output = await self._run(self.config.tracker.view_command, key, identity, "fetch")

        title, url = None, None
        try:
            data = json.loads(output)
        except json.JSONDecodeError:
            data = None

        if isinstance(data, dict):
            title = data.get("title")
            url = data.get("url")
        else:
            lines = [line.strip() for line in output.splitlines() if line.strip()]
            title = lines[0] if lines else None

        if not title:
            raise TrackerError(f"Issue {key} has no title", key=key)

        logger.debug(f"Fetched issue {key}: {title}")
        return TrackedIssue(key=key, title=title, url=url)

    async def delete_issue(self, key: str, identity: RepoIdentity) -> None:
        """Delete an issue.

        Raises:
            TrackerError: If the command fails
        """
        await self._run(self.config.tracker.delete_command, key, identity, "delete")
        logger.info(f"Deleted issue {key}")
