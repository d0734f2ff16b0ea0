"""Console logging formatter with per-level ANSI colors."""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

from ..domain.shared.constants import ConfigKeys

LEVEL_COLORS: dict[int, str] = {
    logging.DEBUG: "\033[2;37m",
    logging.INFO: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;41m",
}
RESET = "\033[0m"


def color_enabled(stream: TextIO | None = None) -> bool:
    """Colors are off under ``NO_COLOR`` or when *stream* is not a terminal."""
    if os.environ.get(ConfigKeys.NO_COLOR) is not None:
        return False
    target = stream if stream is not None else sys.stderr
    isatty = getattr(target, "isatty", None)
    return bool(isatty and isatty())


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in the level's color.

    The record passed in is never mutated; other handlers sharing it keep the
    plain level name.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        *,
        stream: TextIO | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._stream = stream

    def format(self, record: logging.LogRecord) -> str:
        if not color_enabled(self._stream):
            return super().format(record)

        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(colored)
