"""Logging utilities for the yoho tool."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "yoho"


class YohoLogger:
    """Logger wrapper with rich console output and a debug log file."""

    _handlers_setup = False

    def __init__(self, name: str = ROOT_LOGGER_NAME, level: str = "INFO"):
        """Initialize logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        # Handlers live on the root "yoho" logger only
        if not YohoLogger._handlers_setup:
            root_logger = logging.getLogger(ROOT_LOGGER_NAME)
            if not root_logger.handlers:
                self._setup_handlers(root_logger)
                YohoLogger._handlers_setup = True

        if name != ROOT_LOGGER_NAME and not self.logger.handlers:
            self.logger.propagate = True

    def _setup_handlers(self, logger: logging.Logger) -> None:
        """Setup console and file handlers."""
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(logging.INFO)
        logger.addHandler(console_handler)

        log_dir = Path.home() / ".yoho" / "logs"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Read-only home; console logging only
            return

        file_handler = logging.FileHandler(log_dir / "yoho.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        self.logger.warning(message, **kwargs)


logger = YohoLogger()


def get_logger(name: Optional[str] = None) -> YohoLogger:
    """Logger for a module; the shared "yoho" logger when no name is given."""
    if name is None:
        return logger
    return YohoLogger(name)


def enable_verbose_logging() -> None:
    """Switch the yoho loggers and the console handler to DEBUG."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    for name, child_logger in logging.Logger.manager.loggerDict.items():
        if isinstance(child_logger, logging.Logger) and name.startswith(ROOT_LOGGER_NAME):
            child_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.DEBUG)

    root_logger.debug("Verbose logging enabled")
