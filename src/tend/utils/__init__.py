"""Utility functions and classes."""

from tend.utils.paths import expand_path
from tend.utils.logging import LogStream, TermLog, get_logger, nice_header, setup_logging

__all__ = ["LogStream", "TermLog", "expand_path", "get_logger", "nice_header", "setup_logging"]
