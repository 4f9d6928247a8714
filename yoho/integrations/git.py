"""Local git operations: current branch, remotes, push."""

import re
from typing import List, Optional, Tuple

from yoho.models import Config, GitRemote, RepoIdentity
from yoho.utils.logger import get_logger
from yoho.utils.shell import ShellError, run_command, run_command_async

logger = get_logger(__name__)

REMOTE_URL_PATTERNS = [
    re.compile(r"^git@(?P<host>[^:]+):(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?$"),
    re.compile(r"^ssh://git@(?P<host>[^/:]+)(?::\d+)?/(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"),
    re.compile(r"^https://(?P<host>[^/]+)/(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"),
]


class GitError(Exception):
    """Git operation error."""

    exit_code = 1


class RepositoryConfigError(GitError):
    """Required remotes are missing or unusable."""

    exit_code = 1


class RemoteListError(GitError):
    """Remotes could not be enumerated."""

    exit_code = 5


class PushError(GitError):
    """Push to a remote failed."""

    exit_code = 2


def get_current_branch() -> str:
    """Get the name of the checked-out branch.

    Raises:
        GitError: If not on a branch or not in a git repository
    """
    try:
        result = run_command("git branch --show-current", check=True)
    except ShellError as e:
        raise GitError(f"Could not determine current branch: {e.stderr.strip() or e}") from e

    branch = result.stdout.strip()
    if not branch:
        raise GitError("HEAD is detached; check out a branch first")
    return branch


def list_remotes() -> List[GitRemote]:
    """List configured remotes (fetch URLs).

    Raises:
        RemoteListError: If ``git remote -v`` fails
    """
    try:
        result = run_command("git remote -v", check=True)
    except ShellError as e:
        raise RemoteListError(f"Failed to list git remotes: {e.stderr.strip() or e}") from e

    remotes: List[GitRemote] = []
    seen = set()
    for line in result.stdout.splitlines():
        parts = line.split()
        if len(parts) < 2 or parts[0] in seen:
            continue
        if len(parts) >= 3 and parts[2] != "(fetch)":
            continue
        seen.add(parts[0])
        remotes.append(GitRemote(name=parts[0], url=parts[1]))

    logger.debug(f"Found remotes: {[remote.name for remote in remotes]}")
    return remotes


def parse_remote_url(url: str) -> Optional[Tuple[str, str, str]]:
    """Split a remote URL into (host, owner, name); None if it doesn't look like one."""
    for pattern in REMOTE_URL_PATTERNS:
        match = pattern.match(url.strip())
        if match:
            return match.group("host"), match.group("owner"), match.group("name")
    return None


def resolve_repo_identity(
    remotes: List[GitRemote], origin: str = "origin", upstream: str = "upstream"
) -> RepoIdentity:
    """Build the repository identity from the origin and upstream remotes.

    Raises:
        RepositoryConfigError: If a remote is missing or its URL can't be parsed
    """
    by_name = {remote.name: remote for remote in remotes}
    parsed = {}

    for role in (origin, upstream):
        remote = by_name.get(role)
        if remote is None:
            raise RepositoryConfigError(f"No '{role}' remote configured")
        parts = parse_remote_url(remote.url)
        if parts is None:
            raise RepositoryConfigError(
                f"Remote '{role}' URL is not of the form git@host:owner/name.git: {remote.url}"
            )
        parsed[role] = parts

    upstream_host, upstream_owner, repo_name = parsed[upstream]
    _, origin_owner, _ = parsed[origin]

    return RepoIdentity(
        origin_owner=origin_owner,
        upstream_owner=upstream_owner,
        repo_name=repo_name,
        host=upstream_host,
    )


def locate_repository(config: Config) -> RepoIdentity:
    """Resolve the identity of the repository in the current directory."""
    identity = resolve_repo_identity(
        list_remotes(),
        origin=config.workflow.origin_remote,
        upstream=config.workflow.upstream_remote,
    )
    logger.debug(
        f"Repository: origin={identity.origin_full_name} upstream={identity.upstream_full_name}"
    )
    return identity


async def push_branch(branch: str, remote: str = "origin", set_upstream: bool = True) -> None:
    """Push a branch to a remote.

    Raises:
        PushError: If the push fails
    """
    cmd = ["git", "push"]
    if set_upstream:
        cmd.append("-u")
    cmd.extend([remote, branch])

    logger.info(f"Pushing {branch} to {remote}")
    try:
        await run_command_async(cmd, check=True)
    except ShellError as e:
        raise PushError(f"Failed to push {branch} to {remote}: {e.stderr.strip() or e}") from e
