"""
Logger Utility
==============

Context-prefixed, colour-coded logging for the orchestration core.

Every component creates its own logger with a short context name, so a
turn can be followed through the log:

    [2025-05-01T10:30:00] [INFO] [Agent] Turn started
    [2025-05-01T10:30:01] [INFO] [ToolExecutor] Executing tool: read_file
    [2025-05-01T10:30:02] [WARN] [Backend] Retrying request (attempt 1)

All output goes to stderr. The headless runner prints conversation text
on stdout, and keeping the two streams apart lets either be redirected.

Usage:
    from gamecode.utils.logger import Logger

    logger = Logger("Context")
    logger.info("Compressed history", {"removed": 12, "size": 3900})
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Log levels, ordered by severity."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def parse_level(name: str | None, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """
    Map a level name (case-insensitive) to a LogLevel.

    Unknown or empty names fall back to the default.
    """
    if not name:
        return default
    return _LEVEL_NAMES.get(name.strip().upper(), default)


# Process-wide threshold, shared by every Logger instance so that
# set_level() affects loggers created at import time as well.
_min_level: LogLevel = parse_level(os.getenv("LOG_LEVEL"))


class Logger:
    """
    A context-aware logger.

    Example:
        logger = Logger("Agent")
        logger.info("Turn started", {"input_chars": 42})

        child = logger.child("Round")
        child.debug("Requesting model")   # [Agent:Round] Requesting model
    """

    def __init__(self, context: str = "", stream: TextIO | None = None):
        """
        Args:
            context: Prefix shown in brackets on every line
            stream: Output stream; defaults to the current sys.stderr
        """
        self.context = context
        self._stream = stream

    @staticmethod
    def set_level(level: LogLevel | str) -> None:
        """Change the minimum level for all loggers."""
        global _min_level
        _min_level = parse_level(level) if isinstance(level, str) else level

    @staticmethod
    def get_level() -> LogLevel:
        return _min_level

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is nested under this one."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context, self._stream)

    def _format_message(self, level: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if level < _min_level:
            return

        stream = self._stream or sys.stderr
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message. Shown only when the level is DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an operational message."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a recoverable problem."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log an error, with the exception type and text when given.

        Args:
            message: The error message
            error: Optional exception to include details from
        """
        data = None
        if error:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


# Default logger for code that has no more specific context
logger = Logger("gamecode")
