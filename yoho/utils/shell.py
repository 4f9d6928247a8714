"""Subprocess helpers for git, gh and tracker commands."""

import asyncio
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from yoho.utils.logger import get_logger

logger = get_logger(__name__)

Command = Union[str, List[str]]


class ShellError(Exception):
    """A command failed, timed out or could not be started."""

    def __init__(self, message: str, returncode: int, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


@dataclass
class ShellResult:
    """Exit status and captured output of one command."""

    returncode: int
    stdout: str
    stderr: str
    command: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def check(self) -> "ShellResult":
        """Raise ShellError unless the command exited 0."""
        if not self.success:
            raise ShellError(
                f"Command failed: {self.command}", self.returncode, self.stdout, self.stderr
            )
        return self


def _argv(command: Command) -> List[str]:
    return command.split() if isinstance(command, str) else list(command)


def _finish(result: ShellResult, check: bool) -> ShellResult:
    if not result.success:
        logger.debug(f"Exit {result.returncode}: {result.command}")
        if result.stderr:
            logger.debug(f"stderr: {result.stderr}")
    return result.check() if check else result


def run_command(command: Command, check: bool = False) -> ShellResult:
    """Run a short local command and capture its output.

    Strings are split on whitespace.

    Raises:
        ShellError: If the command is missing, or exits non-zero with ``check``
    """
    argv = _argv(command)
    command_str = " ".join(argv)
    logger.debug(f"Running: {command_str}")

    try:
        completed = subprocess.run(argv, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ShellError(f"Command not found: {argv[0]}", -1, "", str(e)) from e

    return _finish(
        ShellResult(completed.returncode, completed.stdout or "", completed.stderr or "", command_str),
        check,
    )


async def run_command_async(
    command: Command,
    env: Optional[Dict[str, str]] = None,
    check: bool = False,
    timeout: Optional[float] = None,
) -> ShellResult:
    """Run a command without blocking the event loop.

    The child is killed if it outlives ``timeout`` or the awaiting task is
    cancelled.

    Raises:
        ShellError: If the command is missing, times out, or exits non-zero with ``check``
    """
    argv = _argv(command)
    command_str = " ".join(argv)
    logger.debug(f"Running async: {command_str}")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ShellError(f"Command not found: {argv[0]}", -1, "", str(e)) from e

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ShellError(f"Command timed out after {timeout}s: {command_str}", -1, "", "Timeout") from None
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
        raise

    return _finish(
        ShellResult(
            process.returncode or 0,
            stdout_bytes.decode() if stdout_bytes else "",
            stderr_bytes.decode() if stderr_bytes else "",
            command_str,
        ),
        check,
    )


def spawn_detached(command: List[str]) -> None:
    """Start a command in its own session and return immediately.

    Raises:
        ShellError: If the command cannot be started
    """
    logger.debug(f"Spawning: {' '.join(command)}")
    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise ShellError(f"Failed to start: {' '.join(command)}", -1, "", str(e)) from e


def check_command_exists(command: str) -> bool:
    return shutil.which(command) is not None


def get_git_root() -> Optional[Path]:
    """Top of the current git work tree, or None outside one."""
    try:
        result = run_command("git rev-parse --show-toplevel", check=True)
    except ShellError:
        return None
    return Path(result.stdout.strip())
