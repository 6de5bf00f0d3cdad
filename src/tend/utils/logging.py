"""Logging setup and the labeled log streams commands write into."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional

from tend.utils.paths import ensure_parent_exists

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# nice_header limits
LINE_LIMIT = 80
POSTAMBLE = "..."

_WHITESPACE = re.compile(r"\s\s+")


def setup_logging(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    name: str = "tend",
) -> logging.Logger:
    """
    Set up logging with a console handler and an optional file handler.

    Args:
        log_file: Path to log file. If None, only console logging is enabled.
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        name: Logger name.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = ensure_parent_exists(log_file)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "tend") -> logging.Logger:
    """
    Get a logger, giving its top-level parent basic console logging if
    nothing is configured yet.

    Handlers only ever go on the top-level logger, so a later
    setup_logging() replaces them instead of doubling output.
    """
    logger = logging.getLogger(name)
    top = logging.getLogger(name.split(".", 1)[0])
    if not top.hasHandlers():
        top.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        top.addHandler(handler)
    return logger


def nice_header(preamble: str, command: str) -> str:
    """
    Build a readable label for a command.

    Runs of whitespace are condensed so commands split over several indented
    lines stay legible, and the result is kept within LINE_LIMIT characters.

    Example:
        >>> nice_header("prep: ", "make   \\n    test")
        'prep: make test'
    """
    command = _WHITESPACE.sub(" ", command)
    post = ""
    if len(command) > LINE_LIMIT - len(POSTAMBLE):
        command = command[: LINE_LIMIT - len(POSTAMBLE)]
        post = POSTAMBLE
    return f"{preamble}{command}{post}"


class LogStream:
    """
    Output stream for a single command, labeled with a header.

    Each record carries ``stream`` (the label) and ``tag`` attributes so
    handlers can tell command output apart from warnings and failures.
    """

    def __init__(self, logger: logging.Logger, label: str) -> None:
        self._logger = logger
        self.label = label

    def _emit(self, level: int, tag: str, msg: str, args: tuple[Any, ...]) -> None:
        self._logger.log(level, msg, *args, extra={"stream": self.label, "tag": tag})

    def header(self) -> None:
        """Mark the start of a run of this command."""
        self._emit(logging.INFO, "header", "%s", (self.label,))

    def say(self, msg: str, *args: Any) -> None:
        self._emit(logging.INFO, "say", msg, args)

    def notice(self, msg: str, *args: Any) -> None:
        self._emit(logging.INFO, "notice", msg, args)

    def notice_as(self, name: str, msg: str, *args: Any) -> None:
        """Log a notice under a named category, e.g. ``cmdstats``."""
        self._emit(logging.INFO, f"notice:{name}", msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        self._emit(logging.WARNING, "warn", msg, args)

    def shout(self, msg: str, *args: Any) -> None:
        self._emit(logging.ERROR, "shout", msg, args)

    def __repr__(self) -> str:
        return f"LogStream({self.label!r})"


class TermLog:
    """Factory for per-command log streams sharing one logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger("tend.cmd")

    def stream(self, header: str) -> LogStream:
        return LogStream(self._logger, header)
