"""Data models for the yoho tool."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckState(str, Enum):
    """State of a single status check, or of a whole check set."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class PollState(str, Enum):
    """Classification of one poll snapshot."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class PollStatus(str, Enum):
    """Terminal status of a polling run."""

    RESOLVED = "resolved"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class GitRemote(BaseModel):
    """A configured git remote."""

    name: str = Field(description="Remote name")
    url: str = Field(description="Remote URL")


class RepoIdentity(BaseModel):
    """Who owns the fork, who owns upstream, and what the repo is called.

    Built once per invocation from the ``origin`` and ``upstream`` remotes and
    handed to every component that talks to the remote.
    """

    model_config = ConfigDict(frozen=True)

    origin_owner: str = Field(description="Owner of the origin (fork) repository")
    upstream_owner: str = Field(description="Owner of the upstream repository")
    repo_name: str = Field(description="Repository name")
    host: str = Field(default="github.com", description="Git host")

    @property
    def upstream_full_name(self) -> str:
        """Get upstream repository name (owner/name)."""
        return f"{self.upstream_owner}/{self.repo_name}"

    @property
    def origin_full_name(self) -> str:
        """Get origin repository name (owner/name)."""
        return f"{self.origin_owner}/{self.repo_name}"


class PullRequestRef(BaseModel):
    """Snapshot of a pull request as reported by the remote."""

    number: int = Field(description="PR number")
    head_sha: str = Field(description="Head commit SHA")
    head_ref: str | None = Field(default=None, description="Head branch name")
    html_url: str = Field(description="PR web URL")
    mergeable: bool | None = Field(
        default=None, description="Mergeability; None while the remote is computing it"
    )
    title: str = Field(description="PR title")
    state: str = Field(default="open", description="PR state")


class StatusCheck(BaseModel):
    """One reported check for a commit."""

    context: str = Field(description="Check name")
    state: CheckState = Field(description="Check state")
    target_url: str | None = Field(default=None, description="Details URL")


class StatusCheckSet(BaseModel):
    """All checks reported for one commit."""

    sha: str = Field(description="Commit SHA")
    checks: list[StatusCheck] = Field(default_factory=list, description="Individual checks")

    @property
    def state(self) -> CheckState:
        """Aggregate state: pending beats failure beats success."""
        states = {check.state for check in self.checks}
        if CheckState.PENDING in states:
            return CheckState.PENDING
        if CheckState.FAILURE in states:
            return CheckState.FAILURE
        return CheckState.SUCCESS

    def contexts(self, state: CheckState) -> list[str]:
        """Names of the checks in the given state."""
        return [check.context for check in self.checks if check.state == state]

    def summary(self) -> str:
        """One-line human readable rendering."""
        if not self.checks:
            return "no checks reported"
        counts = []
        for state in CheckState:
            count = len(self.contexts(state))
            if count:
                counts.append(f"{count} {state.value}")
        return ", ".join(counts)


class Classification(BaseModel):
    """Verdict of a classifier on one snapshot."""

    model_config = ConfigDict(frozen=True)

    state: PollState = Field(description="Classified state")
    value: Any = Field(default=None, description="Result value on success")
    reason: str | None = Field(default=None, description="Reason on failure")

    @classmethod
    def pending(cls) -> "Classification":
        return cls(state=PollState.PENDING)

    @classmethod
    def success(cls, value: Any = None) -> "Classification":
        return cls(state=PollState.SUCCESS, value=value)

    @classmethod
    def failure(cls, reason: str) -> "Classification":
        return cls(state=PollState.FAILURE, reason=reason)


class PollOutcome(BaseModel):
    """Result handed back by the condition poller."""

    status: PollStatus = Field(description="Terminal status")
    value: Any = Field(default=None, description="Success value when resolved")
    reason: str | None = Field(default=None, description="Why polling did not resolve")
    attempts: int = Field(default=0, description="Number of queries issued")
    elapsed: float = Field(default=0.0, description="Seconds spent polling")

    @property
    def ok(self) -> bool:
        """Whether polling resolved successfully."""
        return self.status == PollStatus.RESOLVED


class TrackedIssue(BaseModel):
    """Issue tracker work item."""

    key: str = Field(description="Issue key (e.g. '123', 'ENG-456')")
    title: str = Field(description="Issue title")
    url: str | None = Field(default=None, description="Issue URL")


class OpenedPullRequest(BaseModel):
    """Branch pushed and the PR opened for it."""

    branch: str = Field(description="Pushed branch")
    pull_request: PullRequestRef = Field(description="Created pull request")
    issue: TrackedIssue | None = Field(default=None, description="Issue the title came from")


class ReadyPullRequest(BaseModel):
    """PR that is mergeable with CI finished."""

    pull_request: PullRequestRef = Field(description="Latest PR snapshot")
    checks: StatusCheckSet = Field(description="Final check results for the head commit")


class MergeSummary(BaseModel):
    """What ``hou`` did."""

    pull_request: PullRequestRef = Field(description="Merged pull request")
    merge_sha: str = Field(default="", description="Merge commit SHA")
    branch_deleted: bool = Field(default=False, description="Remote branch was deleted")
    deleted_issue: str | None = Field(default=None, description="Key of the deleted issue")


class GitHubConfig(BaseModel):
    """GitHub settings."""

    hostname: str = Field(default="github.com", description="GitHub host passed to gh")
    token: str | None = Field(
        default=None, description="Access token (falls back to GITHUB_ACCESS_TOKEN)"
    )
    api_accept: str = Field(
        default="application/vnd.github+json", description="Accept header for API calls"
    )
    include_check_runs: bool = Field(
        default=True, description="Fold Checks API runs into the combined status"
    )
    request_timeout: int = Field(default=30, description="Timeout for one API call (seconds)")

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Request timeout must be at least 1 second")
        if v > 600:
            raise ValueError("Request timeout cannot exceed 10 minutes")
        return v


class WorkflowConfig(BaseModel):
    """Workflow settings."""

    base_branch: str = Field(default="dev", description="Branch PRs are opened against")
    merge_method: str = Field(default="squash", description="merge|squash|rebase")
    origin_remote: str = Field(default="origin", description="Remote holding your fork")
    upstream_remote: str = Field(default="upstream", description="Remote PRs are opened on")

    @field_validator("merge_method")
    @classmethod
    def validate_merge_method(cls, v: str) -> str:
        """Validate merge method."""
        valid_methods = {"merge", "squash", "rebase"}
        if v not in valid_methods:
            raise ValueError(f"Invalid merge method: {v}. Must be one of {valid_methods}")
        return v

    @field_validator("base_branch", "origin_remote", "upstream_remote")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class PollingConfig(BaseModel):
    """Condition polling settings."""

    interval: float = Field(default=3.0, description="Seconds between polls")
    timeout: int | None = Field(
        default=1800, description="Give up after this many seconds (null = never)"
    )
    max_attempts: int | None = Field(default=None, description="Give up after this many polls")
    mergeable_false_grace: int = Field(
        default=2,
        description="Extra polls tolerated after the remote first reports mergeable=false",
    )
    empty_checks_settle: int = Field(
        default=2,
        description="CI polls during which a commit with no checks yet still counts as pending",
    )

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate polling interval is reasonable."""
        if v <= 0:
            raise ValueError("Polling interval must be positive")
        if v > 300:
            raise ValueError("Polling interval cannot exceed 5 minutes")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("Polling timeout must be at least 1 second (or null)")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("Max attempts must be at least 1 (or null)")
        return v

    @field_validator("mergeable_false_grace", "empty_checks_settle")
    @classmethod
    def validate_grace(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Poll count cannot be negative")
        if v > 20:
            raise ValueError("Poll count cannot exceed 20")
        return v


class TrackerConfig(BaseModel):
    """Issue tracker settings.

    Commands are templates with ``{key}`` (issue key) and ``{repo}``
    (upstream owner/name) placeholders.
    """

    view_command: str = Field(
        default="gh issue view {key} --repo {repo} --json title,url",
        description="Command printing the issue (JSON with title/url, or title on line 1)",
    )
    delete_command: str = Field(
        default="gh issue delete {key} --repo {repo} --yes",
        description="Command deleting the issue",
    )
    key_pattern: str = Field(
        default=r"^(?:.*/)?([A-Z][A-Z0-9]+-\d+|\d+)(?=-|$)",
        description=(
            "Regex extracting the issue key from a branch name (group 1); the default "
            "only accepts a key that starts the name or its last path segment"
        ),
    )
    command_timeout: int = Field(default=30, description="Tracker command timeout (seconds)")

    @field_validator("view_command", "delete_command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if "{key}" not in v:
            raise ValueError("Tracker command must contain {key}")
        return v.strip()


class NotificationConfig(BaseModel):
    """Desktop notification settings."""

    enabled: bool = Field(default=True, description="Show a notification when a workflow ends")
    command: str | None = Field(
        default=None,
        description="Notifier command template with {title} and {message}; auto-detected if unset",
    )


class Config(BaseModel):
    """Main configuration model."""

    version: str = Field(default="1.0", description="Config version")
    github: GitHubConfig = Field(default_factory=GitHubConfig, description="GitHub settings")
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig, description="Workflow settings")
    polling: PollingConfig = Field(default_factory=PollingConfig, description="Polling settings")
    tracker: TrackerConfig = Field(default_factory=TrackerConfig, description="Tracker settings")
    notifications: NotificationConfig = Field(
        default_factory=NotificationConfig, description="Notification settings"
    )

    model_config = {"extra": "allow"}
