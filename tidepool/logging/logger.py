# tidepool/logging/logger.py
from __future__ import annotations

import logging
import re
import sys
import time
from typing import Optional, Tuple

from tidepool.configuration.config import settings

# ANSI colors
_COLORS = {
    "RESET": "\033[0m",
    "DIM": "\033[2m",
    "RED": "\033[31m",
    "GREEN": "\033[32m",
    "YELLOW": "\033[33m",
    "MAGENTA": "\033[35m",
    "CYAN": "\033[36m",
}

_LEVEL_EMOJI = {
    "DEBUG": "🔍",
    "INFO": "ℹ️",
    "WARNING": "⚠️",
    "ERROR": "❌",
    "CRITICAL": "🛑",
}

_LEVEL_COLOR = {
    "DEBUG": _COLORS["CYAN"],
    "INFO": _COLORS["GREEN"],
    "WARNING": _COLORS["YELLOW"],
    "ERROR": _COLORS["RED"],
    "CRITICAL": _COLORS["MAGENTA"],
}

APP_NAMESPACE = "tidepool"


def _level_from_str(value: str) -> int:
    level = logging.getLevelName((value or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _canonical_name(name: str) -> str:
    """Map module logger names to the canonical 'tidepool.*' namespace."""
    if name == APP_NAMESPACE or name.startswith(APP_NAMESPACE + "."):
        return name
    if name == "__main__":
        return APP_NAMESPACE + ".main"
    return f"{APP_NAMESPACE}.{name}"


_TAG_PATTERN = re.compile(r"^((?:\[[A-Z0-9_]+\])+)\s*")


def _split_tags(message: str) -> Tuple[str, str]:
    """Split a leading tag chain like '[SWAP][POOL]' from the rest of the message."""
    match = _TAG_PATTERN.match(message)
    if match is None:
        return "", message
    return match.group(1), message[match.end():]


def _short_name(name: str) -> str:
    """Drop the 'tidepool.' prefix; every app logger lives under it."""
    prefix = APP_NAMESPACE + "."
    return name[len(prefix):] if name.startswith(prefix) else name


class ColorFormatter(logging.Formatter):
    """
    One line per record: timestamp, level emoji, module, tag chain, message.
    Example:
      2026-10-19 09:12:44.031 ℹ️ INFO     integrations.aave.aave_client [AAVE][SUPPLY] Supply successful https://sepolia.etherscan.io/tx/0x…

    With color on, the tag chain is highlighted so the pipeline step stands out.
    """

    def __init__(self, use_color: bool = True) -> None:
        super().__init__()
        self.use_color = use_color
        self.converter = time.localtime

    def format(self, record: logging.LogRecord) -> str:
        ct = self.converter(record.created)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", ct) + f".{int(record.msecs):03d}"

        level_name = record.levelname.upper()
        emoji = _LEVEL_EMOJI.get(level_name, "")
        tags, text = _split_tags(record.getMessage())
        name = _short_name(record.name or "")

        if self.use_color:
            color = _LEVEL_COLOR.get(level_name, "")
            reset = _COLORS["RESET"]
            dim = _COLORS["DIM"]
            tag_part = f"{_COLORS['MAGENTA']}{tags}{reset} " if tags else ""
            line = f"{dim}{timestamp}{reset} {color}{emoji} {level_name:<8}{reset} {dim}{name}{reset} {tag_part}{text}"
        else:
            tag_part = f"{tags} " if tags else ""
            line = f"{timestamp} {emoji} {level_name:<8} {name} {tag_part}{text}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class _ConsoleHandler(logging.StreamHandler):
    """The one stderr handler tidepool installs on the root logger."""


def _install_console_handler(root: logging.Logger) -> _ConsoleHandler:
    """Install the console handler once; later calls reuse it. It does not filter by level (NOTSET)."""
    for h in root.handlers:
        if isinstance(h, _ConsoleHandler):
            h.setLevel(logging.NOTSET)
            return h

    use_color = sys.stderr.isatty() and not settings.NO_COLOR
    handler = _ConsoleHandler(stream=sys.stderr)
    handler.setLevel(logging.NOTSET)
    handler.setFormatter(ColorFormatter(use_color=use_color))
    root.addHandler(handler)
    return handler


def init_logging() -> None:
    """
    Initialize logging with:
    - millisecond timestamps
    - emoji per level
    - 'tidepool.*' at LOG_LEVEL_TIDEPOOL, third-party libraries tamed
    """
    root = logging.getLogger()

    root.setLevel(_level_from_str(settings.LOG_LEVEL))
    _install_console_handler(root)

    logging.getLogger(APP_NAMESPACE).setLevel(_level_from_str(settings.LOG_LEVEL_TIDEPOOL))

    logging.getLogger("web3").setLevel(_level_from_str(settings.LOG_LEVEL_LIB_WEB3))
    logging.getLogger("urllib3").setLevel(_level_from_str(settings.LOG_LEVEL_LIB_URLLIB3))
    logging.getLogger("aiohttp").setLevel(_level_from_str(settings.LOG_LEVEL_LIB_AIOHTTP))
    logging.getLogger("asyncio").setLevel(_level_from_str(settings.LOG_LEVEL_LIB_ASYNCIO))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger in the canonical 'tidepool.*' namespace."""
    base = name or __name__
    full = _canonical_name(base)
    logger = logging.getLogger(full)
    logger.propagate = True
    return logger
