"""Logging setup for the sixball server.

stdout carries the MCP stdio transport, so console logs go to stderr.
"""

from __future__ import annotations

import logging
import sys

from colorama import Fore, Style, just_fix_windows_console


DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class ColoredFormatter(logging.Formatter):
    """Colors the level name by severity."""

    COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        record.levelname = f"{self.COLORS.get(original, '')}{original}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            # Other handlers see the plain name.
            record.levelname = original


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    format_string: str = DEFAULT_FORMAT,
    use_colors: bool = True,
) -> logging.Logger:
    """Configure the root logger and return it.

    Existing handlers are replaced, so calling this twice doesn't double up output.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    if use_colors:
        just_fix_windows_console()
        console.setFormatter(ColoredFormatter(format_string))
    else:
        console.setFormatter(logging.Formatter(format_string))
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(format_string))
        root.addHandler(file_handler)

    return root
