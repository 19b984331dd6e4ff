"""
Logging setup for verification and repair runs.

Modules log through ``logging.getLogger(__name__)``; everything lives under
the ``citeguard`` logger configured here.
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)

ROOT_LOGGER = "citeguard"

# Client libraries that log every request at DEBUG/INFO.
NOISY_LOGGERS = ("aiohttp", "aiosqlite", "httpx", "httpcore", "exa_py")


class LogLevel(str, Enum):
    """Console verbosity."""

    MINIMAL = "minimal"  # warnings and errors only
    NORMAL = "normal"  # page progress
    DETAILED = "detailed"  # per-citation detail, module names and timestamps


_LEVELS = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.DETAILED: logging.DEBUG,
}


class ColoredFormatter(logging.Formatter):
    """Colors the level name; the record itself is left untouched."""

    COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, "")
        original = record.levelname
        record.levelname = f"{log_color}{record.levelname}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    level: Union[LogLevel, str] = LogLevel.NORMAL,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure the ``citeguard`` logger.

    Args:
        level: Console verbosity, a LogLevel or its string value
        log_file: Optional path; when given, every record down to DEBUG is
            also written there

    Returns:
        The configured package logger
    """
    level = LogLevel(level)
    log_level = _LEVELS[level]

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG if log_file else log_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if level == LogLevel.DETAILED:
        console_handler.setFormatter(
            ColoredFormatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%H:%M:%S")
        )
    else:
        console_handler.setFormatter(ColoredFormatter("%(levelname)-8s | %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    noisy_level = logging.DEBUG if level == LogLevel.DETAILED else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the package root; full ``citeguard.*`` names pass through."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
