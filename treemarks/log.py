from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, TextIO

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Settings

PACKAGE_LOGGER = "treemarks"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_settings(settings: "Settings") -> "LogConfig":
        return LogConfig(level=settings.log_level, no_color=settings.no_color)


def resolve_level(name: str) -> int:
    key = (name or "").strip().upper()
    key = _LEVEL_ALIASES.get(key, key)
    level = logging.getLevelName(key)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(cfg: LogConfig, *, stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach one handler to the `treemarks` logger, replacing any earlier one.

    Colour output needs a terminal and is off under `--no-color`,
    `TREEMARKS_NO_COLOR` (via settings) or `NO_COLOR`.
    """
    stream = stream if stream is not None else sys.stderr
    level = resolve_level(cfg.level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for h in list(logger.handlers):
        logger.removeHandler(h)

    if _use_color(cfg, stream):
        handler: logging.Handler = RichHandler(
            console=Console(file=stream),
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _use_color(cfg: LogConfig, stream: TextIO) -> bool:
    if cfg.no_color or os.getenv("NO_COLOR") is not None:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())
