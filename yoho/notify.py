"""Desktop notifications."""

import shlex
import sys
from typing import List, Optional

from yoho.models import Config
from yoho.utils.logger import get_logger
from yoho.utils.shell import ShellError, check_command_exists, spawn_detached

logger = get_logger(__name__)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_notify_command(title: str, message: str, config: Config) -> Optional[List[str]]:
    """Command that shows the notification, or None if no notifier is available."""
    template = config.notifications.command
    if template:
        try:
            parts = shlex.split(template)
        except ValueError as e:
            logger.warning(f"Invalid notification command '{template}': {e}")
            return None
        return [
            part.replace("{title}", title).replace("{message}", message) for part in parts
        ]

    if check_command_exists("notify-send"):
        return ["notify-send", "--app-name=yoho", title, message]

    if sys.platform == "darwin" and check_command_exists("osascript"):
        script = (
            f"display notification {_applescript_quote(message)} "
            f"with title {_applescript_quote(title)}"
        )
        return ["osascript", "-e", script]

    return None


def notify(title: str, message: str, config: Config) -> None:
    """Show a desktop notification without waiting for it."""
    if not config.notifications.enabled:
        return

    command = build_notify_command(title, message, config)
    if command is None:
        logger.debug("No desktop notifier available")
        return

    try:
        spawn_detached(command)
    except ShellError as e:
        logger.warning(f"Notification failed: {e.stderr or e}")
