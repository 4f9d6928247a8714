"""Tests for desktop notifications."""

from unittest.mock import patch

from yoho.models import Config, NotificationConfig
from yoho.notify import build_notify_command, notify
from yoho.utils.shell import ShellError


class TestNotify:
    """Notification dispatch."""

    @patch("yoho.notify.spawn_detached")
    def test_disabled(self, mock_spawn):
        notify("ho", "ready", Config(notifications=NotificationConfig(enabled=False)))
        mock_spawn.assert_not_called()

    @patch("yoho.notify.spawn_detached")
    def test_custom_command(self, mock_spawn):
        config = Config(notifications=NotificationConfig(command="terminal-notifier -title {title} -message {message}"))

        notify("ho", "PR ready", config)

        mock_spawn.assert_called_once_with(
            ["terminal-notifier", "-title", "ho", "-message", "PR ready"]
        )

    @patch("yoho.notify.spawn_detached")
    def test_custom_command_with_other_braces(self, mock_spawn):
        """Braces other than {title} and {message} pass through untouched."""
        config = Config(notifications=NotificationConfig(command="notifier --meta '{\"app\": 1}' {message}"))

        notify("hou", "PR {7} merged", config)

        mock_spawn.assert_called_once_with(["notifier", "--meta", '{"app": 1}', "PR {7} merged"])

    @patch("yoho.notify.spawn_detached")
    def test_unparseable_custom_command(self, mock_spawn):
        config = Config(notifications=NotificationConfig(command="notifier 'unclosed {message}"))

        notify("hou", "merged", config)

        mock_spawn.assert_not_called()

    @patch("yoho.notify.check_command_exists", return_value=True)
    def test_notify_send(self, mock_exists):
        command = build_notify_command("yo", "PR #7 opened", Config())
        assert command == ["notify-send", "--app-name=yoho", "yo", "PR #7 opened"]

    @patch("yoho.notify.sys")
    @patch("yoho.notify.check_command_exists", return_value=False)
    def test_no_notifier(self, mock_exists, mock_sys):
        mock_sys.platform = "linux"
        assert build_notify_command("yo", "hi", Config()) is None

    @patch("yoho.notify.spawn_detached")
    @patch("yoho.notify.check_command_exists", return_value=True)
    def test_launch_failure_is_logged(self, mock_exists, mock_spawn):
        mock_spawn.side_effect = ShellError("Failed to start", -1, "", "permission denied")

        notify("yo", "hi", Config())

        mock_spawn.assert_called_once()
