"""Click CLI interface for the yoho tool."""

import asyncio
import functools
import json
import sys
from typing import Optional

import click
import yaml
from rich.console import Console

from yoho import __version__
from yoho.config import ConfigError, config_manager, parse_config_value
from yoho.integrations.git import GitError, get_current_branch, locate_repository
from yoho.integrations.github import GitHubClient, GitHubIntegrationError
from yoho.integrations.tracker import IssueTracker, TrackerError
from yoho.models import Config
from yoho.utils.logger import enable_verbose_logging, get_logger
from yoho.workflows import (
    WaitError,
    always_confirm,
    ho_workflow,
    hou_workflow,
    push_current_branch,
    yay_workflow,
    yo_workflow,
    yohohou_workflow,
)

logger = get_logger(__name__)
console = Console()

EXAMPLES = """\b
Examples:
  yoho yo                 push this branch and open a PR against dev
  yoho ho                 wait until this branch's PR is mergeable and green
  yoho ho feature-x       same, for another branch
  yoho hou                merge, then ask before deleting branch and issue
  yoho hou feature-x      merge and clean up without asking
  yoho yohohou            all of the above in one go
  yoho yay                open a PR titled after the branch's issue
"""

HANDLED_ERRORS = (ConfigError, GitError, GitHubIntegrationError, TrackerError, WaitError)


def handle_errors(func):
    """Turn workflow errors into a message and the error's exit code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HANDLED_ERRORS as e:
            logger.debug(f"{type(e).__name__}: {e}")
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(e.exit_code)
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted[/yellow]")
            sys.exit(130)

    return wrapper


def polling_options(func):
    """--interval / --timeout overrides for commands that wait."""
    func = click.option(
        "--timeout", "-t", type=click.IntRange(min=1), default=None,
        help="Give up waiting after this many seconds",
    )(func)
    func = click.option(
        "--interval", "-i", type=click.FloatRange(min=0, min_open=True), default=None,
        help="Seconds between status checks",
    )(func)
    return func


def _load_config(interval: Optional[float] = None, timeout: Optional[int] = None) -> Config:
    config = config_manager.get_config()
    overrides = {}
    if interval is not None:
        overrides["interval"] = interval
    if timeout is not None:
        overrides["timeout"] = timeout
    if overrides:
        config = config.model_copy(
            update={"polling": config.polling.model_copy(update=overrides)}
        )
    return config


def _prompt_confirm(question: str) -> bool:
    return click.confirm(question, default=False)


@click.group(invoke_without_command=True, epilog=EXAMPLES)
@click.version_option(
    __version__, "-v", "--version", prog_name="yoho", message="%(prog)s version %(version)s"
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Yoho - push, wait, merge.

    Opens pull requests from your fork, waits for them to become mergeable
    and green, then merges and cleans up.
    """
    if verbose:
        enable_verbose_logging()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("ls")
@handle_errors
def ls_branch() -> None:
    """Print the current branch."""
    click.echo(get_current_branch())


@cli.command()
@handle_errors
def push() -> None:
    """Push the current branch to origin."""
    config = _load_config()
    branch = asyncio.run(push_current_branch(config))
    console.print(f"[green]✓[/green] Pushed {branch} to {config.workflow.origin_remote}")


@cli.command()
@handle_errors
def yo() -> None:
    """Push the current branch and open a PR against the base branch."""
    config = _load_config()
    identity = locate_repository(config)
    github = GitHubClient(config)

    opened = asyncio.run(yo_workflow(config, identity, github))

    console.print(f"[green]✓[/green] PR #{opened.pull_request.number} opened: {opened.pull_request.html_url}")
    click.echo(opened.branch)


@cli.command()
@click.argument("branch", required=False)
@polling_options
@handle_errors
def ho(branch: Optional[str], interval: Optional[float], timeout: Optional[int]) -> None:
    """Wait until the PR for BRANCH is mergeable and CI has passed.

    BRANCH defaults to the current branch.
    """
    config = _load_config(interval, timeout)
    identity = locate_repository(config)
    github = GitHubClient(config)
    branch = branch or get_current_branch()

    with console.status(f"Looking up PR for {branch}...") as status:
        ready = asyncio.run(ho_workflow(config, identity, github, branch, status.update))

    pr = ready.pull_request
    console.print(f"[green]✓[/green] PR #{pr.number} is mergeable and CI passed ({ready.checks.summary()})")
    console.print(f"  {pr.html_url}")


@cli.command()
@click.argument("branch", required=False)
@click.option("--yes", "-y", is_flag=True, help="Delete branch and issue without asking")
@handle_errors
def hou(branch: Optional[str], yes: bool) -> None:
    """Merge the PR for BRANCH, then delete the branch and its issue.

    Without BRANCH the current branch is merged and you are asked before
    anything is deleted. With BRANCH cleanup happens unconditionally.
    """
    config = _load_config()
    identity = locate_repository(config)
    github = GitHubClient(config)
    tracker = IssueTracker(config)

    confirm = always_confirm if (branch or yes) else _prompt_confirm
    branch = branch or get_current_branch()

    summary = asyncio.run(hou_workflow(config, identity, github, tracker, branch, confirm))

    console.print(f"[green]✓[/green] PR #{summary.pull_request.number} merged")
    if summary.branch_deleted:
        console.print(f"[green]✓[/green] Deleted {identity.origin_owner}:{branch}")
    if summary.deleted_issue:
        console.print(f"[green]✓[/green] Deleted issue {summary.deleted_issue}")


@cli.command()
@polling_options
@handle_errors
def yohohou(interval: Optional[float], timeout: Optional[int]) -> None:
    """Run yo, ho and hou on the current branch."""
    config = _load_config(interval, timeout)
    identity = locate_repository(config)
    github = GitHubClient(config)
    tracker = IssueTracker(config)

    with console.status("Pushing...") as status:
        summary = asyncio.run(
            yohohou_workflow(config, identity, github, tracker, progress=status.update)
        )

    console.print(f"[green]✓[/green] PR #{summary.pull_request.number} merged: {summary.pull_request.html_url}")


@cli.command()
@handle_errors
def yay() -> None:
    """Push and open a PR titled after the branch's issue."""
    config = _load_config()
    identity = locate_repository(config)
    github = GitHubClient(config)
    tracker = IssueTracker(config)

    opened = asyncio.run(yay_workflow(config, identity, github, tracker))

    console.print(f"[green]✓[/green] PR #{opened.pull_request.number} opened: {opened.pull_request.title}")
    console.print(f"  {opened.pull_request.html_url}")


@cli.command()
@handle_errors
def init() -> None:
    """Create the user configuration and one for the current project."""
    user_config_path = config_manager.create_default_config(user_level=True)
    console.print(f"[green]✓[/green] User configuration: {user_config_path}")

    project_config_path = config_manager.create_default_config(user_level=False)
    console.print(f"[green]✓[/green] Project configuration: {project_config_path}")

    console.print("\n[bold]Next steps:[/bold]")
    console.print("1. Export [cyan]GITHUB_ACCESS_TOKEN[/cyan] or run [cyan]gh auth login[/cyan]")
    console.print("2. Add an [cyan]upstream[/cyan] remote pointing at the shared repository")
    console.print("3. Run [cyan]yoho yo[/cyan] on your feature branch")


@cli.group()
def config() -> None:
    """Configuration management."""
    pass


@config.command("get")
@click.argument("key")
@handle_errors
def config_get(key: str) -> None:
    """Print the value of KEY (e.g. 'polling.interval')."""
    value = config_manager.get_config_value(key)
    console.print(f"{key}: {value}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--project", "-p", is_flag=True, help="Set in project config instead of user config")
@handle_errors
def config_set(key: str, value: str, project: bool) -> None:
    """Set KEY to VALUE and save it."""
    parsed_value = parse_config_value(value)
    config_manager.set_config_value(key, parsed_value, user_level=not project)

    config_type = "project" if project else "user"
    console.print(f"[green]✓[/green] {config_type.title()} config updated: {key} = {parsed_value}")


@config.command("show")
@click.option("--format", "-f", "output_format", type=click.Choice(["yaml", "json"]), default="yaml", help="Output format")
@click.option("--section", "-s", help="Show only one section (e.g. 'polling')")
@handle_errors
def config_show(output_format: str, section: Optional[str]) -> None:
    """Show the effective configuration."""
    config_dict = config_manager.get_config().model_dump(mode="json")
    if config_dict.get("github", {}).get("token"):
        config_dict["github"]["token"] = "***"

    if section:
        if section not in config_dict:
            console.print(f"[red]Error:[/red] Section '{section}' not found in configuration")
            console.print(f"[dim]Available sections: {', '.join(config_dict.keys())}[/dim]")
            sys.exit(1)
        config_dict = {section: config_dict[section]}

    if output_format == "json":
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=False))


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
